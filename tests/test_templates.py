"""
Tests for the shared HTML/JS templates.
"""

import numpy as np
import pandas as pd
import pytest

from config import CHART_CONFIG
from fragment_compiler.templates import (
    ControlTemplates,
    FilterScriptBuilder,
    colour_maps,
    facet_controls,
    js_constants,
    js_literal,
    normalize_filters,
    sanitize_chart_title,
    value_key,
    wrap_functional
)
from table_schema.tables import DataFrameTable


class TestHelpers:
    """Test the small string helpers."""

    def test_sanitize_chart_title(self):
        assert sanitize_chart_title("Sales 2024: Q1-Q2.v1") == "Sales_2024__Q1_Q2_v1"

    def test_value_key(self):
        assert value_key(True) == "true"
        assert value_key(3.0) == "3"
        assert value_key(2.5) == "2.5"
        assert value_key(pd.Timestamp("2024-01-02")) == "2024-01-02"
        assert value_key(np.datetime64("2024-01-02T00:00:00.000000")) == "2024-01-02"
        assert value_key(pd.Timestamp("2024-01-02 06:15")) == "2024-01-02T06:15:00"
        assert value_key("a") == "a"

    def test_js_literal_numpy(self):
        assert js_literal({"n": np.int64(3), "f": np.float64(0.5)}) == '{"n": 3, "f": 0.5}'

    def test_js_constants(self):
        text = js_constants({"GRID_SIZE": 30, "COLORSCALE": "RdBu"})
        assert "const GRID_SIZE = 30;" in text
        assert 'const COLORSCALE = "RdBu";' in text

    def test_normalize_filters(self):
        assert normalize_filters(["a", "b"]) == {"a": None, "b": None}
        assert normalize_filters({"a": "x", "b": ["y", "z"], "c": None}) == {
            "a": ["x"], "b": ["y", "z"], "c": None
        }
        with pytest.raises(TypeError):
            normalize_filters(5)


class TestControlTemplates:
    """Test control markup."""

    def test_dropdown_marks_default(self):
        markup = ControlTemplates.dropdown("t_x_col", "X axis", ["x", "y"], "y", "update_t()")

        assert 'id="t_x_col"' in markup
        assert '<option value="y" selected>' in markup
        assert '<option value="x">' in markup

    def test_empty_section_renders_nothing(self):
        assert ControlTemplates.section("Filters", []) == ""

    def test_assemble(self):
        markup = ControlTemplates.assemble("t", "T", "Some notes", [])
        assert '<div id="t"' in markup
        assert "Some notes" in markup


class TestFilterScriptBuilder:
    """Test filter controls and lookup structures."""

    def test_categorical_and_continuous(self, sample_frame):
        table = DataFrameTable(sample_frame)
        controls, constants = FilterScriptBuilder(table, "t", "update_t()").build(
            {"category": None, "x": None}, {"stage1": ["start"]}
        )

        assert constants["INCLUSIONS"] == {"category": ["a", "b", "c"]}
        assert constants["RANGES"] == {"x": [0.5, 29.5]}
        assert constants["SLIDER_TYPES"] == {"x": "numeric"}
        assert constants["EXCLUSIONS"] == {"stage1": ["start"]}
        assert constants["FILTER_IDS"] == {"category": "t_filter_category"}
        assert any("Excluded" in c for c in controls)

    def test_default_allowed_values(self, sample_frame):
        table = DataFrameTable(sample_frame)
        _, constants = FilterScriptBuilder(table, "t", "update_t()").build({"category": ["b"]}, {})
        assert constants["INCLUSIONS"] == {"category": ["b"]}

    def test_choices(self, sample_frame):
        table = DataFrameTable(sample_frame)
        _, constants = FilterScriptBuilder(table, "t", "update_t()").build({}, {}, {"category": None})

        assert constants["CHOICES"] == {"category": "a"}
        assert constants["CHOICE_IDS"] == {"category": "t_choice_category"}


class TestColourMaps:
    """Test group colour assignment."""

    def test_no_groups_uses_sentinel(self, sample_frame):
        sentinel = CHART_CONFIG["no_group_label"]
        maps, order = colour_maps(DataFrameTable(sample_frame), [])

        assert maps == {sentinel: {sentinel: CHART_CONFIG["color_palette"][0]}}
        assert order == {sentinel: [sentinel]}

    def test_first_appearance_order(self, sample_frame):
        palette = CHART_CONFIG["color_palette"]
        maps, order = colour_maps(DataFrameTable(sample_frame), ["stage2"])

        assert order == {"stage2": ["middle", "end"]}
        assert maps["stage2"] == {"middle": palette[0], "end": palette[1]}


class TestFacetsAndWrapper:
    """Test facet controls and the functional wrapper."""

    def test_facet_controls(self):
        controls, ids = facet_controls("t", ["category", "stage1"], ["stage1"], "update_t()")

        assert ids == ["t_facet1", "t_facet2"]
        assert '<option value="stage1" selected>' in controls[0]
        assert '<option value="None" selected>' in controls[1]

    def test_no_facets(self):
        assert facet_controls("t", [], [], "update_t()") == ([], [])

    def test_wrap_functional(self):
        script = wrap_functional("t", "my data", "    const A = 1;", "    function render(rows) {}\n")

        assert script.startswith("<script>")
        assert 'const DATA_LABEL = "my data";' in script
        assert "loadDataset(DATA_LABEL)" in script
        assert "window['update_' + SAFE_TITLE]" in script


@pytest.fixture
def typed_frame():
    """Twelve rows with a daily date, a timestamp and a flag column."""
    return pd.DataFrame({
        "day": pd.to_datetime(["2024-01-01", "2024-01-02", "2024-01-03"] * 4),
        "stamp": pd.to_datetime(["2024-01-01 06:00", "2024-01-01 18:30"] * 6),
        "flag": [True, False, False] * 4,
        "y": np.arange(12, dtype=float),
    })


class TestDateAndBooleanKeys:
    """Test that date and boolean option values use the client's text form."""

    def test_date_filter_and_exclusion(self, typed_frame):
        table = DataFrameTable(typed_frame)
        controls, constants = FilterScriptBuilder(table, "t", "update_t()").build(
            {"day": None}, {"day": [pd.Timestamp("2024-01-03")]}
        )

        assert constants["INCLUSIONS"] == {"day": ["2024-01-01", "2024-01-02", "2024-01-03"]}
        assert constants["EXCLUSIONS"] == {"day": ["2024-01-03"]}
        assert '<option value="2024-01-02" selected>' in controls[0]

    def test_timestamp_filter(self, typed_frame):
        _, constants = FilterScriptBuilder(DataFrameTable(typed_frame), "t", "update_t()").build({"stamp": None}, {})
        assert constants["INCLUSIONS"] == {"stamp": ["2024-01-01T06:00:00", "2024-01-01T18:30:00"]}

    def test_date_choice(self, typed_frame):
        _, constants = FilterScriptBuilder(DataFrameTable(typed_frame), "t", "update_t()").build({}, {}, {"day": None})
        assert constants["CHOICES"] == {"day": "2024-01-01"}

    def test_boolean_filter(self, typed_frame):
        _, constants = FilterScriptBuilder(DataFrameTable(typed_frame), "t", "update_t()").build(
            {"flag": [True]}, {}
        )
        assert constants["INCLUSIONS"] == {"flag": ["true"]}

    def test_date_and_boolean_groups(self, typed_frame):
        maps, order = colour_maps(DataFrameTable(typed_frame), ["flag", "day"])

        assert order["flag"] == ["true", "false"]
        assert order["day"] == ["2024-01-01", "2024-01-02", "2024-01-03"]
        assert set(maps["day"]) == set(order["day"])

    def test_constants_render_dates_as_text(self):
        assert js_literal({"d": np.datetime64("2024-01-02T00:00:00")}) == '{"d": "2024-01-02"}'
