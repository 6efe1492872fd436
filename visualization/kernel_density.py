"""
Kernel density renderer.
Gaussian KDE per group evaluated client-side; the bandwidth slider range
is derived here from the default value column.
"""

import math
from typing import List, Tuple

from chart_options.defaults import ChartKind
from chart_options.option_models import KernelDensityOptions
from config import CHART_CONFIG
from fragment_compiler.templates import (
    FACET_JS,
    FILTER_JS,
    ControlTemplates,
    FilterScriptBuilder,
    colour_maps,
    facet_controls,
    js_constants,
    normalize_filters,
    update_call,
    wrap_functional
)
from fragment_compiler.validator import SchemaValidator
from table_schema.models import ColumnRole
from table_schema.tables import DataFrameTable
from visualization.base import ChartRenderer


def silverman_bandwidth(table: DataFrameTable, column: str) -> float:
    """Silverman's rule of thumb, 1.06 * sd * n^(-1/5)."""
    values = table.frame[column].dropna().astype(float)
    n = len(values)
    if n < 2:
        return 0.1
    sd = float(values.std())
    bandwidth = 1.06 * sd * n ** -0.2
    if not math.isfinite(bandwidth) or bandwidth <= 0:
        return 0.1
    return bandwidth


def bandwidth_slider_range(auto_bandwidth: float) -> Tuple[float, float]:
    """(max, step) of the bandwidth slider."""
    slider_max = max(round(3 * auto_bandwidth, 2), 0.1)
    step = max(slider_max / 50, 0.001)
    return slider_max, step


KDE_JS = """
    function silverman(values) {
        const n = values.length;
        if (n < 2) return 1;
        const mean = values.reduce((a, b) => a + b, 0) / n;
        const sd = Math.sqrt(values.reduce((a, b) => a + (b - mean) * (b - mean), 0) / (n - 1));
        const bw = 1.06 * sd * Math.pow(n, -0.2);
        return bw > 0 && isFinite(bw) ? bw : 1;
    }

    function kde(values, bw, nPoints) {
        const lo = Math.min(...values) - 3 * bw;
        const hi = Math.max(...values) + 3 * bw;
        const step = (hi - lo) / (nPoints - 1);
        const norm = 1 / (values.length * bw * Math.sqrt(2 * Math.PI));
        const xs = [], ys = [];
        for (let i = 0; i < nPoints; i++) {
            const x = lo + i * step;
            let s = 0;
            for (let j = 0; j < values.length; j++) {
                const u = (x - values[j]) / bw;
                s += Math.exp(-0.5 * u * u);
            }
            xs.push(x);
            ys.push(s * norm);
        }
        return {x: xs, y: ys};
    }

    function hexToRgba(hex, alpha) {
        const h = hex.replace('#', '');
        return 'rgba(' + parseInt(h.substring(0, 2), 16) + ',' + parseInt(h.substring(2, 4), 16) + ',' +
            parseInt(h.substring(4, 6), 16) + ',' + alpha + ')';
    }

    function densityTraces(rows, valueCol, groupCol, bandwidth, fill, axisIndex) {
        const byGroup = {};
        rows.forEach(function(r) {
            const v = Number(r[valueCol]);
            if (r[valueCol] === null || r[valueCol] === undefined || isNaN(v)) return;
            const g = groupCol === NO_GROUP ? NO_GROUP : cellKey(r[groupCol]);
            (byGroup[g] = byGroup[g] || []).push(v);
        });
        return GROUP_ORDER[groupCol].filter(g => g in byGroup && byGroup[g].length > 0).map(function(g) {
            const values = byGroup[g];
            const curve = kde(values, bandwidth === null ? silverman(values) : bandwidth, 200);
            const colour = COLOR_MAPS[groupCol][g];
            return {
                type: 'scatter',
                mode: 'lines',
                x: curve.x,
                y: curve.y,
                name: g === NO_GROUP ? valueCol : g,
                legendgroup: g,
                showlegend: axisIndex === 0,
                line: {color: colour},
                fill: fill ? 'tozeroy' : 'none',
                fillcolor: hexToRgba(colour, DENSITY_OPACITY),
                xaxis: 'x' + axisSuffix(axisIndex),
                yaxis: 'y' + axisSuffix(axisIndex)
            };
        });
    }

    function init(rows) {
        initSliders(window['update_' + SAFE_TITLE]);
    }

    function render(rows) {
        readControls();
        const valueCol = $('#' + SAFE_TITLE + '_value_col').val() || DEFAULT_VALUE_COL;
        const groupCol = GROUP_COLS.length > 0 ? ($('#' + SAFE_TITLE + '_group_col').val() || DEFAULT_GROUP_COL) : NO_GROUP;
        const autoBox = document.getElementById(SAFE_TITLE + '_auto_bandwidth');
        const auto = autoBox ? autoBox.checked : DEFAULT_BANDWIDTH === null;
        const bandwidth = auto ? null : Number($('#' + SAFE_TITLE + '_bandwidth').val() || DEFAULT_BANDWIDTH);
        const fillBox = document.getElementById(SAFE_TITLE + '_fill_density');
        const fill = fillBox ? fillBox.checked : FILL_DENSITY;
        const facets = readFacets();

        const filtered = rows.filter(rowPasses);
        const grid = facetPanels(filtered, facets[0], facets[1]);
        let traces = [];
        grid.panels.forEach(function(panel, i) {
            traces = traces.concat(densityTraces(panel.rows, valueCol, groupCol, bandwidth, fill, i));
        });
        const layout = facetLayout(grid, {
            xaxis: {title: valueCol},
            yaxis: {title: 'density'},
            hovermode: 'closest',
            margin: {t: 40}
        });
        Plotly.react(SAFE_TITLE, traces, layout, {responsive: true});
    }
"""


class KernelDensityRenderer(ChartRenderer):
    kind = ChartKind.KERNEL_DENSITY
    description = "Gaussian kernel density estimate per group"

    def validate(self, validator: SchemaValidator, options: KernelDensityOptions) -> None:
        validator.require_columns(options.value_cols, ColumnRole.VALUE)
        validator.require_columns(options.group_cols, ColumnRole.GROUP)
        validator.validate_facets(options.facet_cols, options.default_facet_cols)
        validator.validate_filters(normalize_filters(options.filters), options.exclusions)

    def render(
        self,
        title: str,
        safe_title: str,
        table: DataFrameTable,
        data_labels: List[str],
        options: KernelDensityOptions
    ) -> Tuple[str, str]:
        onchange = update_call(safe_title)
        sentinel = CHART_CONFIG["no_group_label"]
        maps, order = colour_maps(table, options.group_cols)

        auto = silverman_bandwidth(table, options.value_cols[0])
        slider_max, step = bandwidth_slider_range(auto)
        initial = options.bandwidth if options.bandwidth is not None else round(auto, 3)
        slider_max = max(slider_max, initial)

        filter_controls, filter_constants = FilterScriptBuilder(table, safe_title, onchange).build(
            normalize_filters(options.filters), options.exclusions
        )
        facet_html, facet_ids = facet_controls(safe_title, options.facet_cols, options.default_facet_cols, onchange)

        attributes = [
            ControlTemplates.dropdown(
                f"{safe_title}_value_col", "Variable", options.value_cols, options.value_cols[0], onchange
            ),
        ]
        if options.group_cols:
            attributes.append(ControlTemplates.dropdown(
                f"{safe_title}_group_col", "Group by", options.group_cols, options.group_cols[0], onchange
            ))
        attributes.extend([
            ControlTemplates.checkbox(
                f"{safe_title}_auto_bandwidth", "Automatic bandwidth", options.bandwidth is None, onchange
            ),
            ControlTemplates.number_slider(
                f"{safe_title}_bandwidth", "Bandwidth", step, slider_max, step, initial,
                f"document.getElementById('{safe_title}_auto_bandwidth').checked = false; {onchange}"
            ),
            ControlTemplates.checkbox(f"{safe_title}_fill_density", "Fill", options.fill_density, onchange),
        ])

        appearance = ControlTemplates.assemble(safe_title, title, options.notes, [
            ControlTemplates.section("Filters", filter_controls),
            ControlTemplates.section("Plot attributes", attributes),
            ControlTemplates.section("Faceting", facet_html),
        ])

        constants = {
            "VALUE_COLS": options.value_cols,
            "GROUP_COLS": options.group_cols,
            "COLOR_MAPS": maps,
            "GROUP_ORDER": order,
            "NO_GROUP": sentinel,
            "DEFAULT_VALUE_COL": options.value_cols[0],
            "DEFAULT_GROUP_COL": options.group_cols[0] if options.group_cols else sentinel,
            "DEFAULT_BANDWIDTH": options.bandwidth,
            "DENSITY_OPACITY": options.density_opacity,
            "FILL_DENSITY": options.fill_density,
            "FACET_COLS": options.facet_cols,
            "FACET_IDS": facet_ids,
        }
        constants.update(filter_constants)

        functional = wrap_functional(
            safe_title, data_labels[0], js_constants(constants), KDE_JS, helpers=(FILTER_JS, FACET_JS)
        )
        return appearance, functional
