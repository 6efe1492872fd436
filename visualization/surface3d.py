"""
3D surface renderer.
One surface per group, each with its own colour gradient.
"""

from typing import List, Tuple

from chart_options.defaults import ChartKind
from chart_options.option_models import Surface3DOptions, lookup_colorscale
from config import CHART_CONFIG
from fragment_compiler.templates import (
    FILTER_JS,
    ControlTemplates,
    FilterScriptBuilder,
    colour_maps,
    js_constants,
    normalize_filters,
    update_call,
    wrap_functional
)
from fragment_compiler.validator import SchemaValidator
from table_schema.models import ColumnRole
from table_schema.tables import DataFrameTable
from visualization.base import ChartRenderer


SURFACE_GRADIENTS = ["Blues", "OrRd", "Greens", "Purples", "YlOrBr", "Teal", "RdPu", "Brwnyl"]


SURFACE_JS = """
    function sortNumeric(values) {
        return values.slice().sort((a, b) => a - b);
    }

    function surfaceTrace(rows, colorscale, name) {
        const xs = sortNumeric([...new Set(rows.map(r => Number(r[X_COL])))]);
        const ys = sortNumeric([...new Set(rows.map(r => Number(r[Y_COL])))]);
        const xIndex = new Map(xs.map((x, i) => [x, i]));
        const yIndex = new Map(ys.map((y, i) => [y, i]));
        const sums = ys.map(() => xs.map(() => 0));
        const counts = ys.map(() => xs.map(() => 0));
        rows.forEach(function(r) {
            const i = yIndex.get(Number(r[Y_COL]));
            const j = xIndex.get(Number(r[X_COL]));
            sums[i][j] += Number(r[Z_COL]);
            counts[i][j] += 1;
        });
        const z = sums.map((row, i) => row.map((s, j) => counts[i][j] > 0 ? s / counts[i][j] : null));
        return {
            type: 'surface',
            x: xs,
            y: ys,
            z: z,
            name: name,
            colorscale: colorscale,
            showscale: false,
            opacity: 0.9
        };
    }

    function init(rows) {
        initSliders(window['update_' + SAFE_TITLE]);
    }

    function render(rows) {
        readControls();
        const filtered = rows.filter(function(r) {
            return rowPasses(r) && !isNaN(Number(r[X_COL])) && !isNaN(Number(r[Y_COL])) && !isNaN(Number(r[Z_COL]));
        });
        const byGroup = {};
        filtered.forEach(function(r) {
            const g = GROUP_COL === null ? NO_GROUP : cellKey(r[GROUP_COL]);
            (byGroup[g] = byGroup[g] || []).push(r);
        });
        const groups = GROUP_ORDER[GROUP_COL === null ? NO_GROUP : GROUP_COL].filter(g => g in byGroup);
        const traces = groups.map(function(g, index) {
            return surfaceTrace(byGroup[g], COLOR_GRADIENTS[index % COLOR_GRADIENTS.length], g === NO_GROUP ? Z_COL : g);
        });
        const layout = {
            height: HEIGHT,
            margin: {l: 0, r: 0, t: 30, b: 0},
            scene: {
                xaxis: {title: X_COL},
                yaxis: {title: Y_COL},
                zaxis: {title: Z_COL}
            },
            showlegend: groups.length > 1
        };
        Plotly.react(SAFE_TITLE, traces, layout, {responsive: true});
    }
"""


class Surface3DRenderer(ChartRenderer):
    kind = ChartKind.SURFACE3D
    description = "3D surface of z over an x/y grid, one surface per group"

    def validate(self, validator: SchemaValidator, options: Surface3DOptions) -> None:
        validator.require_columns([options.x_col, options.y_col, options.z_col], ColumnRole.DIMENSION)
        if options.group_col is not None:
            validator.require_column(options.group_col, ColumnRole.GROUP)
        validator.validate_filters(normalize_filters(options.filters), options.exclusions)

    def render(
        self,
        title: str,
        safe_title: str,
        table: DataFrameTable,
        data_labels: List[str],
        options: Surface3DOptions
    ) -> Tuple[str, str]:
        onchange = update_call(safe_title)
        group_cols = [options.group_col] if options.group_col else []
        _, order = colour_maps(table, group_cols)

        filter_controls, filter_constants = FilterScriptBuilder(table, safe_title, onchange).build(
            normalize_filters(options.filters), options.exclusions
        )

        axes = [ControlTemplates.caption("Axes", [options.x_col, options.y_col, options.z_col])]
        if options.group_col:
            axes.append(ControlTemplates.caption("Surfaces by", [options.group_col]))

        appearance = ControlTemplates.assemble(safe_title, title, options.notes, [
            ControlTemplates.section("Filters", filter_controls),
            ControlTemplates.section("Plot attributes", axes),
        ], chart_style=f"width: 100%; height: {options.height}px;")

        constants = {
            "X_COL": options.x_col,
            "Y_COL": options.y_col,
            "Z_COL": options.z_col,
            "GROUP_COL": options.group_col,
            "GROUP_ORDER": order,
            "NO_GROUP": CHART_CONFIG["no_group_label"],
            "COLOR_GRADIENTS": [lookup_colorscale(name) for name in SURFACE_GRADIENTS],
            "HEIGHT": options.height,
        }
        constants.update(filter_constants)

        functional = wrap_functional(
            safe_title, data_labels[0], js_constants(constants), SURFACE_JS, helpers=(FILTER_JS,)
        )
        return appearance, functional
