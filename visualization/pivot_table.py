"""
Pivot table renderer backed by PivotTable.js.
The config JSON is passed straight to pivotUI; the heatmap colour scale is
built from the colour map with d3.
"""

from typing import Any, Dict, List, Tuple

from chart_options.defaults import ChartKind
from chart_options.option_models import PivotTableOptions
from fragment_compiler.templates import (
    ControlTemplates,
    js_constants,
    update_call,
    value_key,
    wrap_functional
)
from fragment_compiler.validator import SchemaValidator
from table_schema.models import ColumnRole
from table_schema.tables import DataFrameTable
from visualization.base import ChartRenderer


PIVOT_JS = """
    let currentLabel = DATA_LABEL;
    let currentRows = null;
    let currentConfig = Object.assign({}, PIVOT_CONFIG);

    function colourScaleGenerator(values) {
        let scale = d3.scale.linear().domain(COLOUR_DOMAIN).range(COLOUR_RANGE);
        if (!EXTRAPOLATE_COLOURS) {
            scale = scale.clamp(true);
        }
        return scale;
    }

    function draw(rows) {
        currentRows = rows;
        const totalsBox = document.getElementById(SAFE_TITLE + '_show_totals');
        const showTotals = totalsBox ? totalsBox.checked : SHOW_TOTALS;
        const renderers = $.extend(
            {},
            $.pivotUtilities.renderers,
            $.pivotUtilities.c3_renderers || {},
            $.pivotUtilities.d3_renderers || {},
            $.pivotUtilities.export_renderers || {}
        );
        const options = $.extend(true, {}, currentConfig, {
            renderers: renderers,
            rendererOptions: {
                heatmap: {colorScaleGenerator: colourScaleGenerator},
                table: {rowTotals: showTotals, colTotals: showTotals}
            },
            onRefresh: function(config) {
                currentConfig = {
                    rows: config.rows,
                    cols: config.cols,
                    vals: config.vals,
                    inclusions: config.inclusions,
                    exclusions: config.exclusions,
                    aggregatorName: config.aggregatorName,
                    rendererName: config.rendererName
                };
            }
        });
        $('#' + SAFE_TITLE).pivotUI(rows, options, true);
    }

    function render(rows) {
        const picker = document.getElementById(SAFE_TITLE + '_dataset');
        const label = picker ? picker.value : DATA_LABEL;
        if (label !== currentLabel) {
            currentLabel = label;
            loadDataset(label).then(draw).catch(function(error) {
                console.error('Error loading dataset ' + label + ':', error);
            });
            return;
        }
        draw(currentRows || rows);
    }
"""


class PivotTableRenderer(ChartRenderer):
    kind = ChartKind.PIVOT_TABLE
    description = "Interactive pivot table with a heatmap colour scale"
    js_libraries = ["jquery", "jquery_ui", "d3", "c3", "pivottable"]

    def validate(self, validator: SchemaValidator, options: PivotTableOptions) -> None:
        validator.require_columns(options.rows, ColumnRole.AXIS)
        validator.require_columns(options.cols, ColumnRole.AXIS)
        validator.require_columns(options.vals, ColumnRole.AXIS)
        validator.validate_filters({}, options.exclusions, None)
        validator.validate_filters({column: None for column in options.inclusions}, {})

    @staticmethod
    def pivot_config(options: PivotTableOptions) -> Dict[str, Any]:
        """The configuration object handed to pivotUI."""
        return {
            "rows": options.rows,
            "cols": options.cols,
            "vals": options.vals,
            "inclusions": {c: [value_key(v) for v in values] for c, values in options.inclusions.items()},
            "exclusions": {c: [value_key(v) for v in values] for c, values in options.exclusions.items()},
            "aggregatorName": options.aggregator_name,
            "rendererName": options.renderer_name,
        }

    def render(
        self,
        title: str,
        safe_title: str,
        table: DataFrameTable,
        data_labels: List[str],
        options: PivotTableOptions
    ) -> Tuple[str, str]:
        onchange = update_call(safe_title)
        stops = sorted(options.colour_map.items())

        controls = []
        if len(data_labels) > 1:
            controls.append(ControlTemplates.dropdown(
                f"{safe_title}_dataset", "Dataset", data_labels, data_labels[0], onchange
            ))
        controls.append(ControlTemplates.checkbox(
            f"{safe_title}_show_totals", "Show totals", options.show_totals, onchange
        ))

        layout = []
        if options.rows:
            layout.append(ControlTemplates.caption("Rows", options.rows))
        if options.cols:
            layout.append(ControlTemplates.caption("Columns", options.cols))
        if options.vals:
            layout.append(ControlTemplates.caption("Values", options.vals))
        if options.inclusions:
            layout.append(ControlTemplates.caption("Included", [
                f"{column} = {', '.join(value_key(v) for v in values)}" for column, values in options.inclusions.items()
            ]))
        if options.exclusions:
            layout.append(ControlTemplates.caption("Excluded", [
                f"{column} = {', '.join(value_key(v) for v in values)}" for column, values in options.exclusions.items()
            ]))

        appearance = ControlTemplates.assemble(safe_title, title, options.notes, [
            ControlTemplates.section("Layout", layout),
            ControlTemplates.section("Options", controls),
        ], chart_style="width: 100%; overflow-x: auto;")

        constants = {
            "DATA_LABELS": data_labels,
            "PIVOT_CONFIG": self.pivot_config(options),
            "COLOUR_DOMAIN": [position for position, _ in stops],
            "COLOUR_RANGE": [colour for _, colour in stops],
            "EXTRAPOLATE_COLOURS": options.extrapolate_colours,
            "SHOW_TOTALS": options.show_totals,
        }

        functional = wrap_functional(safe_title, data_labels[0], js_constants(constants), PIVOT_JS)
        return appearance, functional
