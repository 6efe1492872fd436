"""
Scatter plot renderer with optional marginal histograms.
"""

from typing import List, Tuple

from chart_options.defaults import ChartKind
from chart_options.option_models import ScatterOptions
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


SCATTER_JS = """
    function scatterTraces(rows, xCol, yCol, colorCol, axisIndex) {
        const byGroup = {};
        rows.forEach(function(r) {
            const x = Number(r[xCol]), y = Number(r[yCol]);
            if (isNaN(x) || isNaN(y)) return;
            const g = colorCol === NO_GROUP ? NO_GROUP : cellKey(r[colorCol]);
            byGroup[g] = byGroup[g] || {x: [], y: []};
            byGroup[g].x.push(x);
            byGroup[g].y.push(y);
        });
        return GROUP_ORDER[colorCol].filter(g => g in byGroup).map(function(g, gi) {
            return {
                type: TRACE_TYPE,
                mode: 'markers',
                x: byGroup[g].x,
                y: byGroup[g].y,
                name: g === NO_GROUP ? yCol : g,
                legendgroup: g,
                showlegend: axisIndex === 0,
                marker: {
                    size: MARKER_SIZE,
                    opacity: MARKER_OPACITY,
                    color: COLOR_MAPS[colorCol][g],
                    symbol: POINT_SYMBOLS[gi % POINT_SYMBOLS.length]
                },
                xaxis: 'x' + axisSuffix(axisIndex),
                yaxis: 'y' + axisSuffix(axisIndex)
            };
        });
    }

    function densityTraces(points) {
        const traces = [];
        points.forEach(function(t) {
            traces.push({
                type: 'histogram', x: t.x, xaxis: 'x', yaxis: 'y2', showlegend: false,
                legendgroup: t.legendgroup, marker: {color: t.marker.color}, opacity: MARKER_OPACITY
            });
            traces.push({
                type: 'histogram', y: t.y, xaxis: 'x2', yaxis: 'y', showlegend: false,
                legendgroup: t.legendgroup, marker: {color: t.marker.color}, opacity: MARKER_OPACITY
            });
        });
        return traces;
    }

    function init(rows) {
        initSliders(window['update_' + SAFE_TITLE]);
    }

    function render(rows) {
        readControls();
        const xCol = $('#' + SAFE_TITLE + '_x_col').val() || DEFAULT_X_COL;
        const yCol = $('#' + SAFE_TITLE + '_y_col').val() || DEFAULT_Y_COL;
        const colorCol = COLOR_COLS.length > 0 ? ($('#' + SAFE_TITLE + '_color_col').val() || DEFAULT_COLOR_COL) : NO_GROUP;
        const densityBox = document.getElementById(SAFE_TITLE + '_show_density');
        const showDensity = densityBox ? densityBox.checked : SHOW_DENSITY;
        const facets = readFacets();

        const filtered = rows.filter(rowPasses);
        const grid = facetPanels(filtered, facets[0], facets[1]);
        let traces = [];
        grid.panels.forEach(function(panel, i) {
            traces = traces.concat(scatterTraces(panel.rows, xCol, yCol, colorCol, i));
        });

        let layout;
        if (showDensity && grid.panels.length === 1) {
            traces = traces.concat(densityTraces(traces));
            layout = {
                xaxis: {title: xCol, domain: [0, 0.82]},
                yaxis: {title: yCol, domain: [0, 0.82]},
                xaxis2: {domain: [0.84, 1], showticklabels: false},
                yaxis2: {domain: [0.84, 1], showticklabels: false},
                barmode: 'overlay',
                hovermode: 'closest',
                margin: {t: 40}
            };
        } else {
            layout = facetLayout(grid, {xaxis: {title: xCol}, yaxis: {title: yCol}, hovermode: 'closest', margin: {t: 40}});
        }
        Plotly.react(SAFE_TITLE, traces, layout, {responsive: true});
    }
"""


class ScatterPlotRenderer(ChartRenderer):
    kind = ChartKind.SCATTER
    description = "Scatter plot of two numeric dimensions coloured by group"

    def validate(self, validator: SchemaValidator, options: ScatterOptions) -> None:
        validator.require_min_columns(options.dimensions, 2, ColumnRole.DIMENSION)
        validator.require_columns(options.dimensions, ColumnRole.DIMENSION)
        validator.require_columns(options.color_cols, ColumnRole.GROUP)
        validator.validate_facets(options.facet_cols, options.default_facet_cols)
        validator.validate_filters(normalize_filters(options.filters), options.exclusions)

    def render(
        self,
        title: str,
        safe_title: str,
        table: DataFrameTable,
        data_labels: List[str],
        options: ScatterOptions
    ) -> Tuple[str, str]:
        onchange = update_call(safe_title)
        sentinel = CHART_CONFIG["no_group_label"]
        maps, order = colour_maps(table, options.color_cols)

        filter_controls, filter_constants = FilterScriptBuilder(table, safe_title, onchange).build(
            normalize_filters(options.filters), options.exclusions
        )
        facet_html, facet_ids = facet_controls(safe_title, options.facet_cols, options.default_facet_cols, onchange)

        dims = options.dimensions
        attributes = [
            ControlTemplates.dropdown(f"{safe_title}_x_col", "X axis", dims, dims[0], onchange),
            ControlTemplates.dropdown(f"{safe_title}_y_col", "Y axis", dims, dims[1], onchange),
        ]
        if options.color_cols:
            attributes.append(ControlTemplates.dropdown(
                f"{safe_title}_color_col", "Colour by", options.color_cols, options.color_cols[0], onchange
            ))
        attributes.append(ControlTemplates.checkbox(
            f"{safe_title}_show_density", "Marginal distributions", options.show_density, onchange
        ))

        appearance = ControlTemplates.assemble(safe_title, title, options.notes, [
            ControlTemplates.section("Filters", filter_controls),
            ControlTemplates.section("Plot attributes", attributes),
            ControlTemplates.section("Faceting", facet_html),
        ])

        constants = {
            "TRACE_TYPE": "scatter",
            "DIMENSIONS": dims,
            "COLOR_COLS": options.color_cols,
            "COLOR_MAPS": maps,
            "GROUP_ORDER": order,
            "NO_GROUP": sentinel,
            "DEFAULT_X_COL": dims[0],
            "DEFAULT_Y_COL": dims[1],
            "DEFAULT_COLOR_COL": options.color_cols[0] if options.color_cols else sentinel,
            "POINT_SYMBOLS": options.point_symbols,
            "MARKER_SIZE": options.marker_size,
            "MARKER_OPACITY": options.marker_opacity,
            "SHOW_DENSITY": options.show_density,
            "FACET_COLS": options.facet_cols,
            "FACET_IDS": facet_ids,
        }
        constants.update(filter_constants)

        functional = wrap_functional(
            safe_title, data_labels[0], js_constants(constants), SCATTER_JS, helpers=(FILTER_JS, FACET_JS)
        )
        return appearance, functional
