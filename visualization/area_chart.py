"""
Area chart renderer.
Series are aggregated per (x, group) client-side and composed per the stack mode.
"""

from typing import List, Tuple

from chart_options.defaults import ChartKind, StackMode
from chart_options.option_models import AreaChartOptions
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


AREA_JS = """
    function sortKeys(values) {
        return values.slice().sort(function(a, b) {
            if (typeof a === 'number' && typeof b === 'number') return a - b;
            return String(a).localeCompare(String(b));
        });
    }

    function hexToRgba(hex, alpha) {
        const h = hex.replace('#', '');
        const r = parseInt(h.substring(0, 2), 16);
        const g = parseInt(h.substring(2, 4), 16);
        const b = parseInt(h.substring(4, 6), 16);
        return 'rgba(' + r + ',' + g + ',' + b + ',' + alpha + ')';
    }

    function areaTraces(rows, xCol, yCol, groupCol, mode, axisIndex) {
        const sums = {};
        const xSeen = {};
        rows.forEach(function(r) {
            const y = Number(r[yCol]);
            if (r[xCol] === null || r[xCol] === undefined || isNaN(y)) return;
            const g = groupCol === NO_GROUP ? NO_GROUP : cellKey(r[groupCol]);
            const x = r[xCol];
            xSeen[cellKey(x)] = x;
            sums[g] = sums[g] || {};
            sums[g][cellKey(x)] = (sums[g][cellKey(x)] || 0) + y;
        });

        const xs = sortKeys(Object.values(xSeen));
        const groups = GROUP_ORDER[groupCol].filter(g => g in sums);
        const totals = xs.map(function(x) {
            return groups.reduce((acc, g) => acc + (sums[g][cellKey(x)] || 0), 0);
        });

        const baseline = xs.map(() => 0);
        return groups.map(function(g, gi) {
            const raw = xs.map(x => sums[g][cellKey(x)] || 0);
            let ys = raw;
            if (mode === 'normalised_stack') {
                ys = raw.map((v, i) => totals[i] === 0 ? 0 : v / totals[i]);
            }
            let fill = 'tozeroy';
            if (mode === 'stack' || mode === 'normalised_stack') {
                ys = ys.map((v, i) => baseline[i] + v);
                ys.forEach((v, i) => { baseline[i] = v; });
                fill = gi === 0 ? 'tozeroy' : 'tonexty';
            }
            const colour = COLOR_MAPS[groupCol][g] || '#636EFA';
            return {
                type: 'scatter',
                mode: 'lines',
                x: xs,
                y: ys,
                customdata: raw,
                name: g === NO_GROUP ? yCol : g,
                legendgroup: g,
                showlegend: axisIndex === 0,
                fill: fill,
                line: {color: colour},
                fillcolor: hexToRgba(colour, FILL_OPACITY),
                hovertemplate: '%{x}: %{customdata}<extra>' + (g === NO_GROUP ? yCol : g) + '</extra>',
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
        const xCol = $('#' + SAFE_TITLE + '_x_col').val() || DEFAULT_X_COL;
        const yCol = $('#' + SAFE_TITLE + '_y_col').val() || DEFAULT_Y_COL;
        const groupCol = GROUP_COLS.length > 0 ? ($('#' + SAFE_TITLE + '_group_col').val() || DEFAULT_GROUP_COL) : NO_GROUP;
        const mode = $('#' + SAFE_TITLE + '_stack_mode').val() || STACK_MODE;
        const facets = readFacets();

        const filtered = rows.filter(rowPasses);
        const grid = facetPanels(filtered, facets[0], facets[1]);
        let traces = [];
        grid.panels.forEach(function(panel, i) {
            traces = traces.concat(areaTraces(panel.rows, xCol, yCol, groupCol, mode, i));
        });

        const layout = facetLayout(grid, {
            xaxis: {title: xCol},
            yaxis: {title: mode === 'normalised_stack' ? yCol + ' (share of total)' : yCol},
            hovermode: 'closest',
            margin: {t: 40}
        });
        Plotly.react(SAFE_TITLE, traces, layout, {responsive: true});
    }
"""


class AreaChartRenderer(ChartRenderer):
    kind = ChartKind.AREA
    description = "Area chart of y against x per group, unstacked, stacked or normalised"

    def validate(self, validator: SchemaValidator, options: AreaChartOptions) -> None:
        validator.require_columns(options.x_cols, ColumnRole.AXIS)
        validator.require_columns(options.y_cols, ColumnRole.VALUE)
        validator.require_columns(options.group_cols, ColumnRole.GROUP)
        validator.validate_facets(options.facet_cols, options.default_facet_cols)
        validator.validate_filters(normalize_filters(options.filters), options.exclusions)

    def render(
        self,
        title: str,
        safe_title: str,
        table: DataFrameTable,
        data_labels: List[str],
        options: AreaChartOptions
    ) -> Tuple[str, str]:
        onchange = update_call(safe_title)
        sentinel = CHART_CONFIG["no_group_label"]
        maps, order = colour_maps(table, options.group_cols)

        filter_controls, filter_constants = FilterScriptBuilder(table, safe_title, onchange).build(
            normalize_filters(options.filters), options.exclusions
        )
        facet_html, facet_ids = facet_controls(safe_title, options.facet_cols, options.default_facet_cols, onchange)

        attributes = [
            ControlTemplates.dropdown(f"{safe_title}_x_col", "X axis", options.x_cols, options.x_cols[0], onchange),
            ControlTemplates.dropdown(f"{safe_title}_y_col", "Y axis", options.y_cols, options.y_cols[0], onchange),
        ]
        if options.group_cols:
            attributes.append(ControlTemplates.dropdown(
                f"{safe_title}_group_col", "Group by", options.group_cols, options.group_cols[0], onchange
            ))
        attributes.append(ControlTemplates.dropdown(
            f"{safe_title}_stack_mode", "Stacking", [m.value for m in StackMode], options.stack_mode.value, onchange
        ))

        appearance = ControlTemplates.assemble(safe_title, title, options.notes, [
            ControlTemplates.section("Filters", filter_controls),
            ControlTemplates.section("Plot attributes", attributes),
            ControlTemplates.section("Faceting", facet_html),
        ])

        constants = {
            "FILTER_COLS": list(normalize_filters(options.filters)),
            "X_COLS": options.x_cols,
            "Y_COLS": options.y_cols,
            "GROUP_COLS": options.group_cols,
            "COLOR_MAPS": maps,
            "GROUP_ORDER": order,
            "NO_GROUP": sentinel,
            "DEFAULT_X_COL": options.x_cols[0],
            "DEFAULT_Y_COL": options.y_cols[0],
            "DEFAULT_GROUP_COL": options.group_cols[0] if options.group_cols else sentinel,
            "STACK_MODE": options.stack_mode.value,
            "FILL_OPACITY": options.fill_opacity,
            "FACET_COLS": options.facet_cols,
            "FACET_IDS": facet_ids,
        }
        constants.update(filter_constants)

        functional = wrap_functional(
            safe_title, data_labels[0], js_constants(constants), AREA_JS, helpers=(FILTER_JS, FACET_JS)
        )
        return appearance, functional
