"""
HTML and JavaScript templates shared by every chart kind.
Same configuration ALWAYS produces the same fragment text.
No data access beyond reading the bound table - pure string building.
"""

import datetime
import html
import json
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from config import CHART_CONFIG
from table_schema.models import DataType
from table_schema.tables import DataFrameTable, temporal_text


def sanitize_chart_title(title: str) -> str:
    """Turn a chart title into a string usable inside element ids and JS names."""
    return re.sub(r"[\s\-\.:]", "_", str(title))


def _json_default(value: Any) -> Any:
    if isinstance(value, np.bool_):
        return bool(value)
    if isinstance(value, np.integer):
        return int(value)
    if isinstance(value, np.floating):
        return float(value)
    if isinstance(value, (pd.Timestamp, np.datetime64, datetime.date)):
        return temporal_text(value)
    raise TypeError(f"Cannot serialise {type(value).__name__} into a fragment")


def js_literal(value: Any) -> str:
    """Render a Python value as a JavaScript literal."""
    return json.dumps(value, default=_json_default, ensure_ascii=False)


def js_constants(constants: Dict[str, Any]) -> str:
    """Render `const NAME = literal;` lines, one per constant, in the given order."""
    return "\n".join(f"    const {name} = {js_literal(value)};" for name, value in constants.items())


def value_key(value: Any) -> str:
    """
    String form of a cell value as the client sees it after parsing,
    used for option values and filter lookups.
    """
    if isinstance(value, (bool, np.bool_)):
        return "true" if value else "false"
    if isinstance(value, (float, np.floating)) and float(value).is_integer():
        return str(int(value))
    if isinstance(value, (pd.Timestamp, np.datetime64, datetime.date)):
        return temporal_text(value)
    return str(value)


def normalize_filters(filters: Any) -> Dict[str, Optional[List[Any]]]:
    """
    Filters come either as a list of columns (every value allowed initially)
    or as a mapping column -> allowed default value(s).
    """
    if filters is None:
        return {}
    if isinstance(filters, (list, tuple)):
        return {str(column): None for column in filters}
    if isinstance(filters, dict):
        normalized = {}
        for column, allowed in filters.items():
            if allowed is None:
                normalized[str(column)] = None
            elif isinstance(allowed, (list, tuple, set)):
                normalized[str(column)] = list(allowed)
            else:
                normalized[str(column)] = [allowed]
        return normalized
    raise TypeError(f"filters must be a list of columns or a mapping, got {type(filters).__name__}")


class ControlTemplates:
    """
    Builds the markup of the appearance fragment.
    Every element id is prefixed with the sanitised chart title.
    """

    @staticmethod
    def dropdown(
        control_id: str,
        label: str,
        options: Sequence[Any],
        default: Any,
        onchange: str,
        multiple: bool = False
    ) -> str:
        """A labelled select element; `default` may be a single value or a list."""
        defaults = default if isinstance(default, (list, tuple, set)) else [default]
        default_keys = {value_key(d) for d in defaults}

        option_lines = []
        for option in options:
            key = value_key(option)
            selected = " selected" if key in default_keys else ""
            option_lines.append(
                f'            <option value="{html.escape(key, quote=True)}"{selected}>{html.escape(key)}</option>'
            )

        multiple_attr = " multiple" if multiple else ""
        return (
            f'    <div class="chart-control" style="margin: 10px;">\n'
            f'        <label for="{control_id}">{html.escape(label)}: </label>\n'
            f'        <select id="{control_id}"{multiple_attr} onchange="{onchange}">\n'
            + "\n".join(option_lines) + "\n"
            f'        </select>\n'
            f'    </div>'
        )

    @staticmethod
    def range_slider(control_id: str, label: str, min_value: float, max_value: float) -> str:
        """Placeholder for a jQuery UI range slider; the functional fragment initialises it."""
        return (
            f'    <div class="chart-control" style="margin: 10px;">\n'
            f'        <label>{html.escape(label)}: <span id="{control_id}_label">{min_value} - {max_value}</span></label>\n'
            f'        <div id="{control_id}" style="margin-top: 6px; width: 60%;"></div>\n'
            f'    </div>'
        )

    @staticmethod
    def checkbox(control_id: str, label: str, checked: bool, onchange: str) -> str:
        checked_attr = " checked" if checked else ""
        return (
            f'    <div class="chart-control" style="margin: 10px;">\n'
            f'        <label><input type="checkbox" id="{control_id}"{checked_attr} onchange="{onchange}"> {html.escape(label)}</label>\n'
            f'    </div>'
        )

    @staticmethod
    def number_slider(
        control_id: str,
        label: str,
        min_value: float,
        max_value: float,
        step: float,
        value: float,
        onchange: str
    ) -> str:
        """A native single-value range input with its current value shown beside it."""
        return (
            f'    <div class="chart-control" style="margin: 10px;">\n'
            f'        <label for="{control_id}">{html.escape(label)}: <span id="{control_id}_value">{value}</span></label>\n'
            f'        <input type="range" id="{control_id}" min="{min_value}" max="{max_value}" '
            f'step="{step}" value="{value}" '
            f'oninput="document.getElementById(\'{control_id}_value\').textContent = this.value; {onchange}">\n'
            f'    </div>'
        )

    @staticmethod
    def caption(label: str, columns: Sequence[str]) -> str:
        """Static line naming the columns a chart is bound to."""
        names = ", ".join(html.escape(str(c)) for c in columns)
        return f'    <p class="chart-caption" style="margin: 10px;"><b>{html.escape(label)}:</b> {names}</p>'

    @staticmethod
    def section(heading: str, controls: List[str]) -> str:
        """Group controls under a heading; empty groups render nothing."""
        controls = [c for c in controls if c]
        if not controls:
            return ""
        return (
            f'<div class="chart-section">\n'
            f'    <h4 style="margin: 10px 10px 0 10px;">{html.escape(heading)}</h4>\n'
            + "\n".join(controls) + "\n"
            f'</div>'
        )

    @staticmethod
    def assemble(
        safe_title: str,
        title: str,
        notes: str,
        sections: List[str],
        chart_style: str = "width: 100%; height: 500px;"
    ) -> str:
        """Full appearance fragment: heading, notes, control sections, chart container."""
        parts = [f'<div class="chart-block" id="{safe_title}_block">']
        parts.append(f'<h2>{html.escape(title)}</h2>')
        if notes:
            parts.append(f'<p class="chart-notes">{notes}</p>')
        parts.extend(s for s in sections if s)
        parts.append(f'<div id="{safe_title}" style="{chart_style}"></div>')
        parts.append('</div>')
        return "\n".join(parts)


class FilterScriptBuilder:
    """
    Turns filters, exclusions and choices into controls plus the JS lookup
    structures (INCLUSIONS, EXCLUSIONS, RANGES, CHOICES) evaluated per row.
    """

    def __init__(self, table: DataFrameTable, safe_title: str, update_call: str, continuous_threshold: Optional[int] = None):
        self.table = table
        self.safe_title = safe_title
        self.update_call = update_call
        self.continuous_threshold = (
            continuous_threshold
            if continuous_threshold is not None
            else CHART_CONFIG["continuous_threshold"]
        )

    def _slider_bounds(self, column: str) -> Tuple[float, float, str]:
        spec = self.table.schema.get_column(column)
        values = self.table.frame[column].dropna()
        if spec.is_temporal:
            stamps = pd.to_datetime(values)
            value_type = "date" if spec.data_type == DataType.DATE else "datetime"
            return float(stamps.min().value // 10 ** 6), float(stamps.max().value // 10 ** 6), value_type
        value_type = "integer" if spec.is_integer else "numeric"
        return float(values.min()), float(values.max()), value_type

    def build(
        self,
        filters: Dict[str, Optional[List[Any]]],
        exclusions: Dict[str, List[Any]],
        choices: Optional[Dict[str, Any]] = None
    ) -> Tuple[List[str], Dict[str, Any]]:
        """
        Returns (control html list, JS constants). Categorical filters become
        multi-select dropdowns, continuous ones range sliders.
        """
        controls = []
        inclusions: Dict[str, List[str]] = {}
        ranges: Dict[str, List[float]] = {}
        slider_types: Dict[str, str] = {}
        filter_ids: Dict[str, str] = {}
        slider_ids: Dict[str, str] = {}
        choice_values: Dict[str, str] = {}
        choice_ids: Dict[str, str] = {}

        for column, default in (choices or {}).items():
            options = self.table.unique_values(column, sort=True)
            if not options:
                continue
            selected = options[0] if default is None else default
            control_id = f"{self.safe_title}_choice_{sanitize_chart_title(column)}"
            controls.append(ControlTemplates.dropdown(control_id, column, options, selected, self.update_call))
            choice_values[column] = value_key(selected)
            choice_ids[column] = control_id

        for column, allowed in filters.items():
            spec = self.table.schema.get_column(column)
            control_id = f"{self.safe_title}_filter_{sanitize_chart_title(column)}"
            if spec.is_continuous(self.continuous_threshold) and allowed is None:
                lo, hi, value_type = self._slider_bounds(column)
                controls.append(ControlTemplates.range_slider(control_id, column, lo, hi))
                ranges[column] = [lo, hi]
                slider_types[column] = value_type
                slider_ids[column] = control_id
            else:
                options = self.table.unique_values(column, sort=True)
                defaults = options if allowed is None else allowed
                controls.append(ControlTemplates.dropdown(
                    control_id, column, options, defaults, self.update_call, multiple=True
                ))
                inclusions[column] = [value_key(v) for v in defaults]
                filter_ids[column] = control_id

        if exclusions:
            excluded_text = "; ".join(
                f"{column} &ne; {', '.join(html.escape(value_key(v)) for v in values)}"
                for column, values in exclusions.items()
            )
            controls.append(f'    <p class="chart-exclusions" style="margin: 10px;"><i>Excluded: {excluded_text}</i></p>')

        constants = {
            "INCLUSIONS": inclusions,
            "EXCLUSIONS": {column: [value_key(v) for v in values] for column, values in exclusions.items()},
            "RANGES": ranges,
            "SLIDER_TYPES": slider_types,
            "CHOICES": choice_values,
            "FILTER_IDS": filter_ids,
            "SLIDER_IDS": slider_ids,
            "CHOICE_IDS": choice_ids,
        }
        return controls, constants


# Row predicate and control wiring, evaluated client-side against loaded rows.
FILTER_JS = """
    function cellKey(value) {
        if (value === null || value === undefined) return '';
        if (typeof value === 'boolean') return value ? 'true' : 'false';
        return String(value);
    }

    function cellNumber(value) {
        if (typeof value === 'number') return value;
        // Naive timestamps are UTC, as are the slider bounds
        const text = String(value);
        const parsed = Date.parse(/T[0-9:.]+$/.test(text) ? text + 'Z' : text);
        return isNaN(parsed) ? Number(value) : parsed;
    }

    function formatSliderValue(column, x) {
        const kind = SLIDER_TYPES[column];
        if (kind === 'date') return new Date(x).toISOString().slice(0, 10);
        if (kind === 'datetime') return new Date(x).toISOString().slice(0, 19);
        if (kind === 'integer') return Math.round(x).toString();
        return (Math.round(x * 100) / 100).toString();
    }

    function readControls() {
        for (const column in FILTER_IDS) {
            const selected = $('#' + FILTER_IDS[column]).val();
            INCLUSIONS[column] = selected ? selected.map(String) : [];
        }
        for (const column in CHOICE_IDS) {
            CHOICES[column] = String($('#' + CHOICE_IDS[column]).val());
        }
    }

    function rowPasses(row) {
        for (const column in EXCLUSIONS) {
            if (EXCLUSIONS[column].includes(cellKey(row[column]))) return false;
        }
        for (const column in INCLUSIONS) {
            if (!INCLUSIONS[column].includes(cellKey(row[column]))) return false;
        }
        for (const column in CHOICES) {
            if (cellKey(row[column]) !== CHOICES[column]) return false;
        }
        for (const column in RANGES) {
            const v = cellNumber(row[column]);
            if (isNaN(v) || v < RANGES[column][0] || v > RANGES[column][1]) return false;
        }
        return true;
    }

    function initSliders(onChange) {
        for (const column in SLIDER_IDS) {
            const id = SLIDER_IDS[column];
            const bounds = RANGES[column].slice();
            const step = SLIDER_TYPES[column] === 'integer' ? 1 : (bounds[1] - bounds[0]) / 1000 || 1;
            $('#' + id).slider({
                range: true,
                min: bounds[0],
                max: bounds[1],
                step: step,
                values: bounds,
                slide: function(event, ui) {
                    $('#' + id + '_label').text(
                        formatSliderValue(column, ui.values[0]) + ' - ' + formatSliderValue(column, ui.values[1])
                    );
                },
                change: function(event, ui) {
                    RANGES[column] = [ui.values[0], ui.values[1]];
                    onChange();
                }
            });
            $('#' + id + '_label').text(
                formatSliderValue(column, bounds[0]) + ' - ' + formatSliderValue(column, bounds[1])
            );
        }
    }
"""


# Splits rows into facet panels and lays them out on a Plotly grid.
FACET_JS = """
    function facetPanels(rows, facetCol1, facetCol2) {
        const panels = [];
        const index = {};
        const keys1 = facetCol1 ? [...new Set(rows.map(r => cellKey(r[facetCol1])))].sort() : [null];
        const keys2 = facetCol2 ? [...new Set(rows.map(r => cellKey(r[facetCol2])))].sort() : [null];
        keys1.forEach(function(k1, i) {
            keys2.forEach(function(k2, j) {
                const label = [k1, k2].filter(k => k !== null).join(' | ');
                const panel = {label: label, rows: [], row: i, col: j};
                index[k1 + '\\u0000' + k2] = panel;
                panels.push(panel);
            });
        });
        rows.forEach(function(r) {
            const k1 = facetCol1 ? cellKey(r[facetCol1]) : null;
            const k2 = facetCol2 ? cellKey(r[facetCol2]) : null;
            index[k1 + '\\u0000' + k2].rows.push(r);
        });
        let nRows = keys1.length, nCols = keys2.length;
        if (facetCol1 && !facetCol2) {
            nCols = Math.ceil(Math.sqrt(panels.length));
            nRows = Math.ceil(panels.length / nCols);
            panels.forEach(function(p, i) { p.row = Math.floor(i / nCols); p.col = i % nCols; });
        }
        return {panels: panels, nRows: nRows, nCols: nCols};
    }

    function axisSuffix(i) {
        return i === 0 ? '' : String(i + 1);
    }

    function facetLayout(grid, baseLayout) {
        const layout = Object.assign({}, baseLayout);
        if (grid.panels.length <= 1) return layout;
        layout.grid = {rows: grid.nRows, columns: grid.nCols, pattern: 'independent'};
        layout.annotations = grid.panels.map(function(p, i) {
            return {
                text: p.label, showarrow: false,
                xref: 'x' + axisSuffix(i) + ' domain', yref: 'y' + axisSuffix(i) + ' domain',
                x: 0.5, y: 1.08, xanchor: 'center'
            };
        });
        return layout;
    }

    function readFacets() {
        const f1 = FACET_IDS.length > 0 ? $('#' + FACET_IDS[0]).val() : 'None';
        const f2 = FACET_IDS.length > 1 ? $('#' + FACET_IDS[1]).val() : 'None';
        return [f1 === 'None' ? null : f1, f2 === 'None' ? null : f2];
    }
"""


def facet_controls(safe_title: str, facet_cols: List[str], default_facet_cols: List[str], onchange: str) -> Tuple[List[str], List[str]]:
    """Facet dropdowns (up to two). Returns (control html list, control ids)."""
    if not facet_cols:
        return [], []
    count = 2 if len(facet_cols) > 1 else 1
    controls, ids = [], []
    for i in range(count):
        control_id = f"{safe_title}_facet{i + 1}"
        default = default_facet_cols[i] if i < len(default_facet_cols) else "None"
        controls.append(ControlTemplates.dropdown(
            control_id, f"Facet {i + 1}", ["None"] + list(facet_cols), default, onchange
        ))
        ids.append(control_id)
    return controls, ids


def wrap_functional(safe_title: str, data_label: str, constants: str, body: str, helpers: Sequence[str] = ()) -> str:
    """
    Wrap chart code into a self-contained IIFE that loads its dataset and
    exposes `update_<title>` for the control handlers.
    """
    return (
        "<script>\n"
        "(function() {\n"
        f"    const SAFE_TITLE = {js_literal(safe_title)};\n"
        f"    const DATA_LABEL = {js_literal(data_label)};\n"
        f"{constants}\n"
        + "".join(helpers)
        + body
        + "\n"
        "    let allRows = [];\n"
        "    window['update_' + SAFE_TITLE] = function() { render(allRows); };\n"
        "    loadDataset(DATA_LABEL).then(function(rows) {\n"
        "        allRows = rows;\n"
        "        if (typeof init === 'function') init(rows);\n"
        "        render(allRows);\n"
        "    }).catch(function(error) {\n"
        "        console.error('Error loading data for chart ' + SAFE_TITLE + ':', error);\n"
        "    });\n"
        "})();\n"
        "</script>"
    )


def update_call(safe_title: str) -> str:
    """Inline handler that redraws one chart."""
    return f"update_{safe_title}()"


def colour_maps(table: DataFrameTable, group_cols: List[str], palette: Optional[List[str]] = None) -> Tuple[Dict[str, Dict[str, str]], Dict[str, List[str]]]:
    """
    Assign palette colours to the values of each group column in order of
    first appearance. With no group columns the sentinel group gets the
    first colour. Returns (COLOR_MAPS, GROUP_ORDER).
    """
    palette = palette or CHART_CONFIG["color_palette"]
    sentinel = CHART_CONFIG["no_group_label"]
    if not group_cols:
        return {sentinel: {sentinel: palette[0]}}, {sentinel: [sentinel]}

    maps, order = {}, {}
    for column in group_cols:
        keys = [value_key(v) for v in table.unique_values(column)]
        maps[column] = {key: palette[i % len(palette)] for i, key in enumerate(keys)}
        order[column] = keys
    return maps, order
