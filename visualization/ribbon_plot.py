"""
Ribbon (Sankey flow) renderer.
Transitions between consecutive stage columns are aggregated into links.
"""

from typing import List, Tuple

from chart_options.defaults import ChartKind
from chart_options.option_models import RibbonOptions
from config import CHART_CONFIG
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


RIBBON_JS = """
    function hexToRgba(hex, alpha) {
        const h = hex.replace('#', '');
        return 'rgba(' + parseInt(h.substring(0, 2), 16) + ',' + parseInt(h.substring(2, 4), 16) + ',' +
            parseInt(h.substring(4, 6), 16) + ',' + alpha + ')';
    }

    function ribbonFlows(rows, valueCol) {
        const nodeIndex = new Map();
        const nodes = [];
        TIMESTAGE_COLS.forEach(function(col, stage) {
            [...new Set(rows.map(r => cellKey(r[col])))].forEach(function(value) {
                const name = col + ':' + value;
                if (!nodeIndex.has(name)) {
                    nodeIndex.set(name, nodes.length);
                    nodes.push({label: value, fullName: name, stage: stage});
                }
            });
        });

        const links = [];
        for (let i = 0; i < TIMESTAGE_COLS.length - 1; i++) {
            const sourceCol = TIMESTAGE_COLS[i];
            const targetCol = TIMESTAGE_COLS[i + 1];
            const flows = new Map();
            rows.forEach(function(r) {
                const source = nodeIndex.get(sourceCol + ':' + cellKey(r[sourceCol]));
                const target = nodeIndex.get(targetCol + ':' + cellKey(r[targetCol]));
                const weight = valueCol === null ? 1 : (Number(r[valueCol]) || 0);
                const key = source + '->' + target;
                flows.set(key, (flows.get(key) || 0) + weight);
            });
            flows.forEach(function(value, key) {
                const ends = key.split('->').map(Number);
                if (value > 0) links.push({source: ends[0], target: ends[1], value: value});
            });
        }
        return {nodes: nodes, links: links};
    }

    function init(rows) {
        initSliders(window['update_' + SAFE_TITLE]);
    }

    function render(rows) {
        readControls();
        let valueCol = null;
        if (!USE_COUNT) {
            valueCol = $('#' + SAFE_TITLE + '_value_col').val() || DEFAULT_VALUE_COL;
        }
        const filtered = rows.filter(rowPasses);
        const flow = ribbonFlows(filtered, valueCol);
        const trace = {
            type: 'sankey',
            orientation: 'h',
            node: {
                pad: 15,
                thickness: 20,
                line: {color: 'black', width: 0.5},
                label: flow.nodes.map(n => n.label),
                customdata: flow.nodes.map(n => n.fullName),
                hovertemplate: '%{customdata}<extra></extra>',
                color: flow.nodes.map(n => STAGE_COLOURS[n.stage % STAGE_COLOURS.length])
            },
            link: {
                source: flow.links.map(l => l.source),
                target: flow.links.map(l => l.target),
                value: flow.links.map(l => l.value),
                color: flow.links.map(l => hexToRgba(STAGE_COLOURS[flow.nodes[l.source].stage % STAGE_COLOURS.length], 0.3))
            }
        };
        const layout = {
            font: {size: 12},
            height: 600,
            margin: {l: 50, r: 50, t: 50, b: 50}
        };
        Plotly.react(SAFE_TITLE, [trace], layout, {responsive: true});
    }
"""


class RibbonPlotRenderer(ChartRenderer):
    kind = ChartKind.RIBBON
    description = "Flows between consecutive stage columns drawn as a Sankey diagram"

    def validate(self, validator: SchemaValidator, options: RibbonOptions) -> None:
        validator.require_min_columns(options.timestage_cols, 2, ColumnRole.STAGE)
        validator.require_unique(options.timestage_cols, ColumnRole.STAGE)
        validator.require_columns(options.timestage_cols, ColumnRole.STAGE)
        validator.require_columns(options.value_cols, ColumnRole.VALUE)
        validator.validate_filters(normalize_filters(options.filters), options.exclusions)

    def render(
        self,
        title: str,
        safe_title: str,
        table: DataFrameTable,
        data_labels: List[str],
        options: RibbonOptions
    ) -> Tuple[str, str]:
        onchange = update_call(safe_title)

        filter_controls, filter_constants = FilterScriptBuilder(table, safe_title, onchange).build(
            normalize_filters(options.filters), options.exclusions
        )

        attributes = [ControlTemplates.caption("Stages", options.timestage_cols)]
        if options.value_cols:
            attributes.append(ControlTemplates.dropdown(
                f"{safe_title}_value_col", "Weight By", options.value_cols, options.value_cols[0], onchange
            ))

        appearance = ControlTemplates.assemble(safe_title, title, options.notes, [
            ControlTemplates.section("Filters", filter_controls),
            ControlTemplates.section("Plot attributes", attributes),
        ], chart_style="width: 100%; height: 600px;")

        constants = {
            "TIMESTAGE_COLS": options.timestage_cols,
            "VALUE_COLS": options.value_cols,
            "DEFAULT_VALUE_COL": options.value_cols[0] if options.value_cols else None,
            "USE_COUNT": not options.value_cols,
            "STAGE_COLOURS": CHART_CONFIG["color_palette"],
        }
        constants.update(filter_constants)

        functional = wrap_functional(
            safe_title, data_labels[0], js_constants(constants), RIBBON_JS, helpers=(FILTER_JS,)
        )
        return appearance, functional
