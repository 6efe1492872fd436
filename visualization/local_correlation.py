"""
Local Gaussian correlation renderer.

For every cell of a GRID_SIZE x GRID_SIZE grid over the (x, y) plane the
client computes a Gaussian-kernel weighted correlation of the points around
it. Cells whose total kernel weight is below MIN_WEIGHT are left blank.
Bootstrap t-statistics are computed lazily, only after the display mode is
switched to 'tstat', and cached until the data or bandwidth change.
"""

import math
from typing import List, Tuple

from chart_options.defaults import ChartKind
from chart_options.option_models import LocalCorrelationOptions, lookup_colorscale
from fragment_compiler.templates import (
    FILTER_JS,
    ControlTemplates,
    FilterScriptBuilder,
    js_constants,
    normalize_filters,
    update_call,
    wrap_functional
)
from fragment_compiler.validator import SchemaValidator
from table_schema.models import ColumnRole
from table_schema.tables import DataFrameTable
from visualization.base import ChartRenderer


AXIS_TRANSFORMS = ["identity", "log", "z_score", "quantile", "inverse_cdf"]
DISPLAY_MODES = ["correlation", "tstat"]


def population_silverman(table: DataFrameTable, column: str) -> float:
    values = table.frame[column].dropna().astype(float)
    n = len(values)
    if n < 2:
        return 0.0
    bandwidth = 1.06 * float(values.std(ddof=0)) * n ** -0.2
    return bandwidth if math.isfinite(bandwidth) else 0.0


LGC_JS = """
    let bootstrapCache = null;
    let lastDataHash = null;
    let bootstrapRunning = false;

    function hashData(xData, yData, bandwidth) {
        const sample = xData.slice(0, 10).concat(yData.slice(0, 10));
        return sample.join(',') + ':' + xData.length + ':' + (bandwidth || 'auto');
    }

    function gaussianKernel(dist, bandwidth) {
        return Math.exp(-0.5 * (dist / bandwidth) ** 2) / (bandwidth * Math.sqrt(2 * Math.PI));
    }

    function kernel2D(dx, dy, hx, hy) {
        return Math.exp(-0.5 * ((dx / hx) ** 2 + (dy / hy) ** 2));
    }

    function localCorrelation(xAt, yAt, xData, yData, hx, hy) {
        let sumW = 0, sumWX = 0, sumWY = 0;
        for (let i = 0; i < xData.length; i++) {
            const w = kernel2D(xData[i] - xAt, yData[i] - yAt, hx, hy);
            sumW += w;
            sumWX += w * xData[i];
            sumWY += w * yData[i];
        }
        if (sumW < MIN_WEIGHT) return null;

        const meanX = sumWX / sumW;
        const meanY = sumWY / sumW;
        let sumWXX = 0, sumWYY = 0, sumWXY = 0;
        for (let i = 0; i < xData.length; i++) {
            const w = kernel2D(xData[i] - xAt, yData[i] - yAt, hx, hy);
            const dx = xData[i] - meanX;
            const dy = yData[i] - meanY;
            sumWXX += w * dx * dx;
            sumWYY += w * dy * dy;
            sumWXY += w * dx * dy;
        }
        const varX = sumWXX / sumW;
        const varY = sumWYY / sumW;
        if (varX <= 0 || varY <= 0) return null;
        const corr = (sumWXY / sumW) / Math.sqrt(varX * varY);
        return Math.max(-1, Math.min(1, corr));
    }

    function kernelDensity1D(x, data, h) {
        let sum = 0;
        for (let i = 0; i < data.length; i++) sum += gaussianKernel(x - data[i], h);
        return sum / data.length;
    }

    function silvermanBandwidth(data) {
        const n = data.length;
        const mean = data.reduce((a, b) => a + b, 0) / n;
        const sd = Math.sqrt(data.reduce((s, x) => s + (x - mean) ** 2, 0) / n);
        const bw = 1.06 * sd * Math.pow(n, -0.2);
        return bw > 0 ? bw : 1;
    }

    function bootstrapIndices(n) {
        const indices = [];
        for (let i = 0; i < n; i++) indices.push(Math.floor(Math.random() * n));
        return indices;
    }

    function computeGridCorrelations(xData, yData, xGrid, yGrid, hx, hy) {
        return yGrid.map(yAt => xGrid.map(xAt => localCorrelation(xAt, yAt, xData, yData, hx, hy)));
    }

    function computeBootstrapTStats(xData, yData, xGrid, yGrid, hx, hy, originalZGrid, nBootstrap, progressCallback) {
        const n = xData.length;
        const samples = yGrid.map(() => xGrid.map(() => []));
        for (let b = 0; b < nBootstrap; b++) {
            const indices = bootstrapIndices(n);
            const zBoot = computeGridCorrelations(
                indices.map(i => xData[i]), indices.map(i => yData[i]), xGrid, yGrid, hx, hy
            );
            zBoot.forEach(function(row, j) {
                row.forEach(function(value, i) {
                    if (value !== null) samples[j][i].push(value);
                });
            });
            if (progressCallback && b % 20 === 0) progressCallback(b / nBootstrap);
        }

        const tGrid = [], seGrid = [];
        samples.forEach(function(row, j) {
            const tRow = [], seRow = [];
            row.forEach(function(values, i) {
                const original = originalZGrid[j][i];
                if (original === null || values.length < 10) {
                    tRow.push(null);
                    seRow.push(null);
                    return;
                }
                const mean = values.reduce((a, b) => a + b, 0) / values.length;
                const variance = values.reduce((s, c) => s + (c - mean) ** 2, 0) / (values.length - 1);
                const se = Math.sqrt(variance);
                seRow.push(se);
                if (se > 0.001) {
                    tRow.push(original / se);
                } else {
                    tRow.push(original > 0 ? 10 : (original < 0 ? -10 : 0));
                }
            });
            tGrid.push(tRow);
            seGrid.push(seRow);
        });
        return {tGrid: tGrid, seGrid: seGrid};
    }

    function weightedMarginals(grid, densityGrid) {
        const size = grid.length;
        const marginalX = [], marginalY = [];
        for (let j = 0; j < size; j++) {
            let s = 0, d = 0;
            for (let i = 0; i < size; i++) {
                if (grid[j][i] !== null) { s += grid[j][i] * densityGrid[j][i]; d += densityGrid[j][i]; }
            }
            marginalY.push(d > 0 ? s / d : null);
        }
        for (let i = 0; i < size; i++) {
            let s = 0, d = 0;
            for (let j = 0; j < size; j++) {
                if (grid[j][i] !== null) { s += grid[j][i] * densityGrid[j][i]; d += densityGrid[j][i]; }
            }
            marginalX.push(d > 0 ? s / d : null);
        }
        return {marginalX: marginalX, marginalY: marginalY};
    }

    function computeLocalCorrelation(xData, yData, gridSize, bandwidth) {
        const xMin = Math.min(...xData), xMax = Math.max(...xData);
        const yMin = Math.min(...yData), yMax = Math.max(...yData);
        const xPad = (xMax - xMin) * 0.05, yPad = (yMax - yMin) * 0.05;
        const hx = bandwidth || silvermanBandwidth(xData);
        const hy = bandwidth || silvermanBandwidth(yData);

        const xGrid = [], yGrid = [];
        for (let i = 0; i < gridSize; i++) xGrid.push(xMin - xPad + i * (xMax - xMin + 2 * xPad) / (gridSize - 1));
        for (let j = 0; j < gridSize; j++) yGrid.push(yMin - yPad + j * (yMax - yMin + 2 * yPad) / (gridSize - 1));

        const zGrid = computeGridCorrelations(xData, yData, xGrid, yGrid, hx, hy);
        const densityGrid = yGrid.map(yAt => xGrid.map(function(xAt) {
            let density = 0;
            for (let k = 0; k < xData.length; k++) density += kernel2D(xData[k] - xAt, yData[k] - yAt, hx, hy);
            return density / xData.length;
        }));
        const marginals = weightedMarginals(zGrid, densityGrid);
        return {
            xGrid: xGrid, yGrid: yGrid, zGrid: zGrid, densityGrid: densityGrid,
            marginalX: marginals.marginalX, marginalY: marginals.marginalY,
            marginalXDensity: xGrid.map(x => kernelDensity1D(x, xData, hx)),
            marginalYDensity: yGrid.map(y => kernelDensity1D(y, yData, hy)),
            bandwidth: {x: hx, y: hy}
        };
    }

    function normInv(p) {
        const a = [-39.69683028665376, 220.9460984245205, -275.9285104469687, 138.3577518672690, -30.66479806614716, 2.506628277459239];
        const b = [-54.47609879822406, 161.5858368580409, -155.6989798598866, 66.80131188771972, -13.28068155288572];
        const c = [-0.007784894002430293, -0.3223964580411365, -2.400758277161838, -2.549732539343734, 4.374664141464968, 2.938163982698783];
        const d = [0.007784695709041462, 0.3224671290700398, 2.445134137142996, 3.754408661907416];
        const pLow = 0.02425, pHigh = 1 - pLow;
        let q, r;
        if (p < pLow) {
            q = Math.sqrt(-2 * Math.log(p));
            return (((((c[0] * q + c[1]) * q + c[2]) * q + c[3]) * q + c[4]) * q + c[5]) / ((((d[0] * q + d[1]) * q + d[2]) * q + d[3]) * q + 1);
        }
        if (p > pHigh) {
            q = Math.sqrt(-2 * Math.log(1 - p));
            return -(((((c[0] * q + c[1]) * q + c[2]) * q + c[3]) * q + c[4]) * q + c[5]) / ((((d[0] * q + d[1]) * q + d[2]) * q + d[3]) * q + 1);
        }
        q = p - 0.5;
        r = q * q;
        return (((((a[0] * r + a[1]) * r + a[2]) * r + a[3]) * r + a[4]) * r + a[5]) * q / (((((b[0] * r + b[1]) * r + b[2]) * r + b[3]) * r + b[4]) * r + 1);
    }

    function applyAxisTransform(values, transform) {
        const n = values.length;
        if (transform === 'log') return values.map(v => v > 0 ? Math.log(v) : NaN);
        if (transform === 'z_score') {
            const mean = values.reduce((a, b) => a + b, 0) / n;
            const sd = Math.sqrt(values.reduce((s, v) => s + (v - mean) ** 2, 0) / n);
            return values.map(v => sd > 0 ? (v - mean) / sd : 0);
        }
        if (transform === 'quantile' || transform === 'inverse_cdf') {
            const order = values.map((v, i) => i).sort((i, j) => values[i] - values[j]);
            const ranks = new Array(n);
            order.forEach(function(idx, rank) { ranks[idx] = (rank + 1) / (n + 1); });
            return transform === 'quantile' ? ranks : ranks.map(normInv);
        }
        return values.slice();
    }

    function renderPlot(result, xData, yData, xCol, yCol, displayMode) {
        const isTStat = displayMode === 'tstat' && result.tGrid;
        const grid = isTStat ? result.tGrid : result.zGrid;
        const marginals = isTStat ? weightedMarginals(result.tGrid, result.densityGrid) : result;
        const label = isTStat ? 't-statistic' : 'local correlation';
        let zLimit = 1;
        if (isTStat) {
            zLimit = 0;
            grid.forEach(row => row.forEach(v => { if (v !== null) zLimit = Math.max(zLimit, Math.abs(v)); }));
            zLimit = zLimit || 1;
        }
        const traces = [
            {
                type: 'heatmap', x: result.xGrid, y: result.yGrid, z: grid,
                colorscale: COLORSCALE_STOPS, zmin: -zLimit, zmax: zLimit,
                colorbar: {title: label, x: 1.02}, xaxis: 'x', yaxis: 'y',
                hovertemplate: xCol + ': %{x:.3g}<br>' + yCol + ': %{y:.3g}<br>' + label + ': %{z:.3f}<extra></extra>'
            },
            {
                type: 'scatter', mode: 'markers', x: xData, y: yData, xaxis: 'x', yaxis: 'y',
                marker: {size: 3, color: 'rgba(0,0,0,0.35)'}, showlegend: false, hoverinfo: 'skip'
            },
            {
                type: 'scatter', mode: 'lines', x: result.xGrid, y: marginals.marginalX,
                xaxis: 'x', yaxis: 'y2', line: {color: '#444'}, showlegend: false, name: label + ' by ' + xCol
            },
            {
                type: 'scatter', mode: 'lines', x: marginals.marginalY, y: result.yGrid,
                xaxis: 'x2', yaxis: 'y', line: {color: '#444'}, showlegend: false, name: label + ' by ' + yCol
            }
        ];
        const layout = {
            xaxis: {title: xCol, domain: [0, 0.8]},
            yaxis: {title: yCol, domain: [0, 0.8]},
            xaxis2: {domain: [0.82, 1], title: label},
            yaxis2: {domain: [0.82, 1], title: label},
            margin: {t: 40},
            hovermode: 'closest'
        };
        Plotly.react(SAFE_TITLE, traces, layout, {responsive: true});
    }

    async function computeAndDisplayBootstrap(result, xData, yData, xCol, yCol) {
        const statusEl = document.getElementById(SAFE_TITLE + '_bootstrap_status');
        const progressEl = document.getElementById(SAFE_TITLE + '_bootstrap_progress');
        const startHash = lastDataHash;
        bootstrapRunning = true;
        if (statusEl) statusEl.textContent = 'Computing bootstrap...';
        if (progressEl) progressEl.style.width = '0%';
        await new Promise(resolve => setTimeout(resolve, 50));

        const stats = computeBootstrapTStats(
            xData, yData, result.xGrid, result.yGrid, result.bandwidth.x, result.bandwidth.y,
            result.zGrid, BOOTSTRAP_ITERATIONS,
            function(progress) { if (progressEl) progressEl.style.width = (progress * 100) + '%'; }
        );
        bootstrapRunning = false;

        // Rows, columns or bandwidth changed while sampling: discard and start over
        if (lastDataHash !== startHash) {
            if (statusEl) statusEl.textContent = 'Data changed, recomputing bootstrap...';
            window['update_' + SAFE_TITLE]();
            return;
        }
        result.tGrid = stats.tGrid;
        result.seGrid = stats.seGrid;
        bootstrapCache = result;

        if (statusEl) statusEl.textContent = 'Bootstrap complete (' + BOOTSTRAP_ITERATIONS + ' iterations)';
        if (progressEl) progressEl.style.width = '100%';
        if ($('#' + SAFE_TITLE + '_display_mode').val() === 'tstat') {
            renderPlot(result, xData, yData, xCol, yCol, 'tstat');
        }
    }

    function init(rows) {
        initSliders(window['update_' + SAFE_TITLE]);
    }

    function render(rows) {
        readControls();
        const xCol = $('#' + SAFE_TITLE + '_x_col').val() || DEFAULT_X_COL;
        const yCol = $('#' + SAFE_TITLE + '_y_col').val() || DEFAULT_Y_COL;
        const xTransform = $('#' + SAFE_TITLE + '_x_transform').val() || 'identity';
        const yTransform = $('#' + SAFE_TITLE + '_y_transform').val() || 'identity';
        const displayMode = $('#' + SAFE_TITLE + '_display_mode').val() || 'correlation';
        const chartDiv = document.getElementById(SAFE_TITLE);

        const pairs = rows.filter(rowPasses)
            .map(r => [parseFloat(r[xCol]), parseFloat(r[yCol])])
            .filter(p => !isNaN(p[0]) && !isNaN(p[1]));
        const xT = applyAxisTransform(pairs.map(p => p[0]), xTransform);
        const yT = applyAxisTransform(pairs.map(p => p[1]), yTransform);
        const xData = [], yData = [];
        for (let i = 0; i < xT.length; i++) {
            if (isFinite(xT[i]) && isFinite(yT[i])) { xData.push(xT[i]); yData.push(yT[i]); }
        }
        if (xData.length < 10) {
            Plotly.purge(chartDiv);
            chartDiv.innerHTML = '<p style="color: red; padding: 20px;">Need at least 10 valid data points for local correlation analysis.</p>';
            return;
        }
        if (chartDiv.querySelector('p')) chartDiv.innerHTML = '';

        const slider = document.getElementById(SAFE_TITLE + '_bandwidth');
        const sliderValue = slider ? parseFloat(slider.value) : 0;
        const bandwidth = sliderValue > 0 ? sliderValue : DEFAULT_BANDWIDTH;

        const dataHash = hashData(xData, yData, bandwidth) + ':' + xCol + ':' + yCol + ':' + xTransform + ':' + yTransform;
        let result;
        if (dataHash === lastDataHash && bootstrapCache) {
            result = bootstrapCache;
        } else {
            result = computeLocalCorrelation(xData, yData, GRID_SIZE, bandwidth);
            lastDataHash = dataHash;
            bootstrapCache = null;
        }
        const bwLabel = document.getElementById(SAFE_TITLE + '_bandwidth_value');
        if (bwLabel) bwLabel.textContent = sliderValue > 0 ? sliderValue : 'auto (' + result.bandwidth.x.toFixed(3) + ')';

        if (displayMode === 'tstat') {
            if (result.tGrid) {
                renderPlot(result, xData, yData, xCol, yCol, 'tstat');
            } else if (!bootstrapRunning) {
                renderPlot(result, xData, yData, xCol, yCol, 'correlation');
                computeAndDisplayBootstrap(result, xData, yData, xCol, yCol);
            } else {
                renderPlot(result, xData, yData, xCol, yCol, 'correlation');
            }
        } else {
            bootstrapCache = bootstrapCache || result;
            renderPlot(result, xData, yData, xCol, yCol, 'correlation');
        }
    }
"""


class LocalCorrelationRenderer(ChartRenderer):
    kind = ChartKind.LOCAL_CORRELATION
    description = "Local Gaussian correlation heatmap with lazy bootstrap t-statistics"

    def validate(self, validator: SchemaValidator, options: LocalCorrelationOptions) -> None:
        validator.require_min_columns(options.dimensions, 2, ColumnRole.DIMENSION)
        validator.require_columns(options.dimensions, ColumnRole.DIMENSION)
        validator.validate_filters(normalize_filters(options.filters), options.exclusions, options.choices)

    def render(
        self,
        title: str,
        safe_title: str,
        table: DataFrameTable,
        data_labels: List[str],
        options: LocalCorrelationOptions
    ) -> Tuple[str, str]:
        onchange = update_call(safe_title)
        dims = options.dimensions

        auto = max(population_silverman(table, dims[0]), population_silverman(table, dims[1]))
        slider_max = max(round(3 * auto, 2), 0.1)
        if options.bandwidth is not None:
            slider_max = max(slider_max, options.bandwidth)
        step = max(slider_max / 50, 0.001)

        filter_controls, filter_constants = FilterScriptBuilder(table, safe_title, onchange).build(
            normalize_filters(options.filters), options.exclusions, options.choices
        )

        attributes = [
            ControlTemplates.dropdown(f"{safe_title}_x_col", "X dimension", dims, dims[0], onchange),
            ControlTemplates.dropdown(f"{safe_title}_x_transform", "X transform", AXIS_TRANSFORMS, "identity", onchange),
            ControlTemplates.dropdown(f"{safe_title}_y_col", "Y dimension", dims, dims[1], onchange),
            ControlTemplates.dropdown(f"{safe_title}_y_transform", "Y transform", AXIS_TRANSFORMS, "identity", onchange),
            ControlTemplates.number_slider(
                f"{safe_title}_bandwidth", "Bandwidth (0 = auto)", 0, slider_max, step,
                options.bandwidth if options.bandwidth is not None else 0, onchange
            ),
            ControlTemplates.dropdown(f"{safe_title}_display_mode", "Display", DISPLAY_MODES, "correlation", onchange),
            (
                f'    <div style="margin: 10px;">\n'
                f'        <span id="{safe_title}_bootstrap_status" style="font-size: 0.9em; color: #666;"></span>\n'
                f'        <div style="width: 200px; height: 6px; background: #eee;">'
                f'<div id="{safe_title}_bootstrap_progress" style="width: 0%; height: 100%; background: #4a90d9;"></div></div>\n'
                f'    </div>'
            ),
        ]

        appearance = ControlTemplates.assemble(safe_title, title, options.notes, [
            ControlTemplates.section("Filters", filter_controls),
            ControlTemplates.section("Plot attributes", attributes),
        ], chart_style="width: 100%; height: 650px;")

        constants = {
            "DIMENSIONS": dims,
            "DEFAULT_X_COL": dims[0],
            "DEFAULT_Y_COL": dims[1],
            "DEFAULT_BANDWIDTH": options.bandwidth,
            "GRID_SIZE": options.grid_size,
            "MIN_WEIGHT": options.min_weight,
            "COLORSCALE": options.colorscale,
            "COLORSCALE_STOPS": lookup_colorscale(options.colorscale),
            "BOOTSTRAP_ITERATIONS": options.bootstrap_iterations,
        }
        constants.update(filter_constants)

        functional = wrap_functional(
            safe_title, data_labels[0], js_constants(constants), LGC_JS, helpers=(FILTER_JS,)
        )
        return appearance, functional
