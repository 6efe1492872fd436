"""
Tests for chart construction across every kind.
"""

import pytest

from chart_options.defaults import ChartKind
from config import CHART_CONFIG, JS_DEPENDENCIES
from fragment_compiler.errors import ConfigurationError
from visualization import (
    CHART_REGISTRY,
    area_chart,
    build_chart,
    kernel_density,
    local_correlation_plot,
    pivot_table,
    ribbon_plot,
    scatter_plot,
    surface3d
)
from visualization.kernel_density import bandwidth_slider_range, silverman_bandwidth
from table_schema.tables import DataFrameTable


class TestChartGenerator:
    """Test behaviour shared by every kind."""

    def test_same_inputs_same_fragments(self, sample_frame):
        first = scatter_plot("Repeat", sample_frame, "data", dimensions=["x", "y"])
        second = scatter_plot("Repeat", sample_frame, "data", dimensions=["x", "y"])

        assert first.appearance_html == second.appearance_html
        assert first.functional_html == second.functional_html

    def test_empty_title(self, sample_frame):
        with pytest.raises(ConfigurationError):
            area_chart("  ", sample_frame, "data", x_cols=["x"], y_cols=["y"])

    def test_missing_data_label(self, sample_frame):
        with pytest.raises(ConfigurationError):
            area_chart("Area", sample_frame, "", x_cols=["x"], y_cols=["y"])

    def test_unsupported_table(self):
        with pytest.raises(ConfigurationError):
            area_chart("Area", "not a table", "data", x_cols=["x"], y_cols=["y"])

    def test_unknown_kind(self, sample_frame):
        with pytest.raises(ConfigurationError):
            build_chart("histogram", "Hist", sample_frame, "data")

    def test_rows_are_accepted(self, sample_rows):
        chart = scatter_plot("From rows", sample_rows, "data", dimensions=["x", "y"])
        assert chart.dependencies() == {"data"}

    def test_frame_is_not_mutated(self, sample_frame):
        before = sample_frame.copy()
        area_chart("Area", sample_frame, "data", x_cols=["x"], y_cols=["y"], group_cols=["category"])
        assert sample_frame.equals(before)

    def test_registry_describes_every_kind(self):
        kinds = [entry["kind"] for entry in CHART_REGISTRY.describe()]
        assert kinds == [kind.value for kind in ChartKind]


class TestScatterPlot:
    """Test the scatter plot renderer."""

    def test_scatter_with_category(self, sample_frame):
        chart = scatter_plot("My Scatter", sample_frame, "data", dimensions=["x", "y"], color_cols=["category"])

        assert chart.kind == ChartKind.SCATTER
        assert chart.dependencies() == {"data"}
        for column in ("x", "y", "category"):
            assert f'"{column}"' in chart.functional_html
            assert column in chart.appearance_html
        assert "scatter" in chart.functional_html
        assert "update_My_Scatter()" in chart.appearance_html
        assert 'id="My_Scatter"' in chart.appearance_html

    def test_js_dependencies(self, sample_frame):
        chart = scatter_plot("S", sample_frame, "data", dimensions=["x", "y"])
        assert chart.js_dependencies() == [
            JS_DEPENDENCIES["jquery"], JS_DEPENDENCIES["jquery_ui"], JS_DEPENDENCIES["plotly"]
        ]

    def test_marker_settings(self, sample_frame):
        chart = scatter_plot("S", sample_frame, "data", dimensions=["x", "y"], marker_size=7, marker_opacity=0.25)

        assert "const MARKER_SIZE = 7" in chart.functional_html
        assert "const MARKER_OPACITY = 0.25;" in chart.functional_html

    def test_needs_two_dimensions(self, sample_frame):
        with pytest.raises(ConfigurationError):
            scatter_plot("S", sample_frame, "data", dimensions=["x"])

    def test_dimensions_must_be_numeric(self, sample_frame):
        with pytest.raises(ConfigurationError):
            scatter_plot("S", sample_frame, "data", dimensions=["x", "category"])

    def test_facets(self, sample_frame):
        chart = scatter_plot(
            "S", sample_frame, "data", dimensions=["x", "y"],
            facet_cols=["category", "stage1"], default_facet_cols=["stage1"]
        )
        assert 'id="S_facet1"' in chart.appearance_html
        assert 'const FACET_IDS = ["S_facet1", "S_facet2"];' in chart.functional_html


class TestAreaChart:
    """Test the area chart renderer."""

    def test_normalised_stack(self, sample_frame):
        chart = area_chart(
            "Area", sample_frame, "data", x_cols=["x"], y_cols=["value"],
            group_cols=["category"], stack_mode="normalised_stack"
        )
        assert 'const STACK_MODE = "normalised_stack";' in chart.functional_html
        assert '<option value="normalised_stack" selected>' in chart.appearance_html

    def test_no_group_sentinel(self, sample_frame):
        chart = area_chart("Area", sample_frame, "data", x_cols=["x"], y_cols=["y"])
        sentinel = CHART_CONFIG["no_group_label"]

        assert f'"{sentinel}"' in chart.functional_html
        assert "Area_group_col" not in chart.appearance_html

    def test_missing_column(self, sample_frame):
        with pytest.raises(ConfigurationError) as exc_info:
            area_chart("Area", sample_frame, "data", x_cols=["nope"], y_cols=["y"])
        assert "nope" in str(exc_info.value)

    def test_filters_and_exclusions(self, sample_frame):
        chart = area_chart(
            "Area", sample_frame, "data", x_cols=["x"], y_cols=["y"],
            filters={"category": ["a", "b"]}, exclusions={"stage1": "start"}
        )
        assert 'const INCLUSIONS = {"category": ["a", "b"]};' in chart.functional_html
        assert 'const EXCLUSIONS = {"stage1": ["start"]};' in chart.functional_html
        assert 'id="Area_filter_category"' in chart.appearance_html

    def test_config_holds_resolved_options(self, sample_frame):
        chart = area_chart("Area", sample_frame, "data", x_cols="x", y_cols="y")
        assert chart.config["x_cols"] == ["x"]
        assert chart.config["fill_opacity"] == 0.6

    def test_fill_opacity_literal(self, sample_frame):
        chart = area_chart("Area", sample_frame, "data", x_cols=["x"], y_cols=["y"], fill_opacity=0.35)

        assert "const FILL_OPACITY = 0.35;" in chart.functional_html
        assert "hexToRgba(colour, FILL_OPACITY)" in chart.functional_html

    def test_default_fill_opacity_literal(self, sample_frame):
        chart = area_chart("Area", sample_frame, "data", x_cols=["x"], y_cols=["y"])
        assert "const FILL_OPACITY = 0.6;" in chart.functional_html


class TestKernelDensity:
    """Test the kernel density renderer."""

    def test_literal_settings(self, sample_frame):
        chart = kernel_density(
            "KDE", sample_frame, "data", value_cols=["y"], group_cols=["category"],
            bandwidth=0.75, density_opacity=0.4
        )
        assert "const DEFAULT_BANDWIDTH = 0.75;" in chart.functional_html
        assert "const DENSITY_OPACITY = 0.4;" in chart.functional_html
        assert 'id="KDE_bandwidth"' in chart.appearance_html

    def test_automatic_bandwidth(self, sample_frame):
        chart = kernel_density("KDE", sample_frame, "data", value_cols=["y"])
        assert "const DEFAULT_BANDWIDTH = null;" in chart.functional_html
        assert 'id="KDE_auto_bandwidth" checked' in chart.appearance_html

    def test_silverman_bandwidth(self, sample_frame):
        table = DataFrameTable(sample_frame)
        values = sample_frame["y"]
        expected = 1.06 * values.std() * len(values) ** -0.2

        assert silverman_bandwidth(table, "y") == pytest.approx(expected)

    def test_slider_range(self):
        assert bandwidth_slider_range(1.0) == pytest.approx((3.0, 0.06))
        assert bandwidth_slider_range(0.001) == pytest.approx((0.1, 0.002))

    def test_value_columns_must_be_numeric(self, sample_frame):
        with pytest.raises(ConfigurationError):
            kernel_density("KDE", sample_frame, "data", value_cols=["category"])


class TestPivotTable:
    """Test the pivot table renderer."""

    def test_pivot_config_and_scale(self, sample_frame):
        chart = pivot_table(
            "Pivot", sample_frame, ["d1", "d2"], rows=["category"], cols=["stage1"], vals=["value"],
            colour_map={1.0: "#00FF00", -1.0: "#FF0000"}, aggregator_name="Sum"
        )
        assert chart.dependencies() == {"d1", "d2"}
        assert 'const COLOUR_DOMAIN = [-1.0, 1.0];' in chart.functional_html
        assert 'const COLOUR_RANGE = ["#FF0000", "#00FF00"];' in chart.functional_html
        assert '"aggregatorName": "Sum"' in chart.functional_html
        assert "d3.scale.linear()" in chart.functional_html
        assert 'id="Pivot_dataset"' in chart.appearance_html

    def test_pivot_libraries(self, sample_frame):
        chart = pivot_table("Pivot", sample_frame, "data", rows=["category"])
        assert JS_DEPENDENCIES["pivottable"] in chart.js_dependencies()
        assert JS_DEPENDENCIES["plotly"] not in chart.js_dependencies()

    def test_exclusion_column_must_exist(self, sample_frame):
        with pytest.raises(ConfigurationError):
            pivot_table("Pivot", sample_frame, "data", exclusions={"missing": ["a"]})


class TestSurface3D:
    """Test the 3D surface renderer."""

    def test_surface(self, sample_frame):
        chart = surface3d("Surface", sample_frame, "data", x_col="x", y_col="y", z_col="value", group_col="category", height=700)

        assert 'const Z_COL = "value";' in chart.functional_html
        assert "const HEIGHT = 700;" in chart.functional_html
        assert "height: 700px" in chart.appearance_html
        assert "category" in chart.appearance_html

    def test_z_must_be_numeric(self, sample_frame):
        with pytest.raises(ConfigurationError):
            surface3d("Surface", sample_frame, "data", x_col="x", y_col="y", z_col="category")


class TestRibbonPlot:
    """Test the ribbon (Sankey) renderer."""

    def test_ribbon(self, sample_frame):
        chart = ribbon_plot("Flows", sample_frame, "data", timestage_cols=["stage1", "stage2"], value_cols=["value"])

        assert 'const TIMESTAGE_COLS = ["stage1", "stage2"];' in chart.functional_html
        assert "const USE_COUNT = false;" in chart.functional_html
        assert 'id="Flows_value_col"' in chart.appearance_html

    def test_unit_weights(self, sample_frame):
        chart = ribbon_plot("Flows", sample_frame, "data", timestage_cols=["stage1", "stage2"])
        assert "const USE_COUNT = true;" in chart.functional_html

    def test_needs_two_stages(self, sample_frame):
        with pytest.raises(ConfigurationError):
            ribbon_plot("Flows", sample_frame, "data", timestage_cols=["stage1"])

    def test_stages_must_be_unique(self, sample_frame):
        with pytest.raises(ConfigurationError):
            ribbon_plot("Flows", sample_frame, "data", timestage_cols=["stage1", "stage1"])


class TestLocalCorrelation:
    """Test the local Gaussian correlation renderer."""

    def test_literal_settings(self, sample_frame):
        chart = local_correlation_plot(
            "LGC", sample_frame, "data", dimensions=["x", "y"],
            grid_size=25, colorscale="Viridis", bandwidth=1.5
        )
        assert "const GRID_SIZE = 25;" in chart.functional_html
        assert 'const COLORSCALE = "Viridis";' in chart.functional_html
        assert "const DEFAULT_BANDWIDTH = 1.5;" in chart.functional_html

    def test_bootstrap_only_for_tstat(self, sample_frame):
        chart = local_correlation_plot("LGC", sample_frame, "data", dimensions=["x", "y"])
        script = chart.functional_html

        gate = script.index("if (displayMode === 'tstat') {")
        call = script.index("computeAndDisplayBootstrap(result, xData, yData, xCol, yCol);")
        assert gate < call
        assert '<option value="correlation" selected>' in chart.appearance_html

    def test_choices(self, sample_frame):
        chart = local_correlation_plot(
            "LGC", sample_frame, "data", dimensions=["x", "y"], choices={"category": "b"}
        )
        assert 'const CHOICES = {"category": "b"};' in chart.functional_html
        assert 'id="LGC_choice_category"' in chart.appearance_html

    def test_needs_two_dimensions(self, sample_frame):
        with pytest.raises(ConfigurationError):
            local_correlation_plot("LGC", sample_frame, "data", dimensions=["x"])

    def test_tunable_defaults(self, sample_frame):
        chart = local_correlation_plot("LGC", sample_frame, "data", dimensions=["x", "y"])
        script = chart.functional_html

        assert "const GRID_SIZE = 30;" in script
        assert "const MIN_WEIGHT = 0.1;" in script
        assert "const BOOTSTRAP_ITERATIONS = 200;" in script
        assert 'const COLORSCALE = "RdBu";' in script
        assert "const DEFAULT_BANDWIDTH = null;" in script

    def test_stale_bootstrap_is_discarded(self, sample_frame):
        script = local_correlation_plot("LGC", sample_frame, "data", dimensions=["x", "y"]).functional_html
        bootstrap = script[script.index("async function computeAndDisplayBootstrap"):script.index("function init(rows)")]

        sampled = bootstrap.index("computeBootstrapTStats(")
        recheck = bootstrap.index("if (lastDataHash !== startHash) {")
        cached = bootstrap.index("bootstrapCache = result;")
        assert sampled < recheck < cached
        assert "window['update_' + SAFE_TITLE]();" in bootstrap[recheck:cached]

    def test_tstat_redraws_while_bootstrap_runs(self, sample_frame):
        script = local_correlation_plot("LGC", sample_frame, "data", dimensions=["x", "y"]).functional_html
        branch = script[script.index("if (displayMode === 'tstat') {"):]

        assert "} else if (!bootstrapRunning) {" in branch
        running = branch[branch.index("computeAndDisplayBootstrap(result, xData, yData, xCol, yCol);"):]
        assert running.index("} else {") < running.index("renderPlot(result, xData, yData, xCol, yCol, 'correlation');")


# Column names with spaces and punctuation, bound exactly as given
SPACED_COLUMNS = {
    "x": "x pos",
    "y": "y pos",
    "category": "Category A",
    "value": "value (n)",
    "stage1": "stage 1",
    "stage2": "stage 2",
}


@pytest.fixture
def spaced_frame(sample_frame):
    return sample_frame.rename(columns=SPACED_COLUMNS)


class TestBoundColumnsVerbatim:
    """Test that every kind emits its bound, filter and exclusion columns verbatim."""

    @pytest.mark.parametrize("builder, options, columns", [
        (area_chart,
         {"x_cols": ["x pos"], "y_cols": ["value (n)"], "group_cols": ["Category A"],
          "filters": ["stage 2"], "exclusions": {"stage 1": ["start"]}},
         ["x pos", "value (n)", "Category A", "stage 2", "stage 1"]),
        (scatter_plot,
         {"dimensions": ["x pos", "y pos"], "color_cols": ["Category A"],
          "filters": ["stage 2"], "exclusions": {"stage 1": ["start"]}},
         ["x pos", "y pos", "Category A", "stage 2", "stage 1"]),
        (kernel_density,
         {"value_cols": ["y pos"], "group_cols": ["Category A"],
          "filters": {"stage 2": ["end"]}, "exclusions": {"stage 1": ["start"]}},
         ["y pos", "Category A", "stage 2", "stage 1"]),
        (pivot_table,
         {"rows": ["Category A"], "cols": ["stage 1"], "vals": ["value (n)"],
          "inclusions": {"stage 2": ["end"]}, "exclusions": {"stage 1": ["start"]}},
         ["Category A", "stage 1", "value (n)", "stage 2"]),
        (surface3d,
         {"x_col": "x pos", "y_col": "y pos", "z_col": "value (n)", "group_col": "Category A",
          "filters": ["stage 2"], "exclusions": {"stage 1": ["start"]}},
         ["x pos", "y pos", "value (n)", "Category A", "stage 2", "stage 1"]),
        (ribbon_plot,
         {"timestage_cols": ["stage 1", "stage 2"], "value_cols": ["value (n)"],
          "filters": ["x pos"], "exclusions": {"Category A": ["c"]}},
         ["stage 1", "stage 2", "value (n)", "x pos", "Category A"]),
        (local_correlation_plot,
         {"dimensions": ["x pos", "y pos"], "filters": ["stage 2"], "exclusions": {"Category A": ["c"]}},
         ["x pos", "y pos", "stage 2", "Category A"]),
    ])
    def test_columns_in_functional_fragment(self, spaced_frame, builder, options, columns):
        chart = builder("Bound", spaced_frame, "data", **options)

        for column in columns:
            assert f'"{column}"' in chart.functional_html

    @pytest.mark.parametrize("builder, options", [
        (area_chart, {"x_cols": ["x pos"], "y_cols": ["y pos"]}),
        (kernel_density, {"value_cols": ["y pos"]}),
        (surface3d, {"x_col": "x pos", "y_col": "y pos", "z_col": "value (n)"}),
        (ribbon_plot, {"timestage_cols": ["stage 1", "stage 2"]}),
        (local_correlation_plot, {"dimensions": ["x pos", "y pos"]}),
    ])
    def test_exclusion_values_verbatim(self, spaced_frame, builder, options):
        chart = builder("Bound", spaced_frame, "data", exclusions={"Category A": ["c"]}, **options)

        assert 'const EXCLUSIONS = {"Category A": ["c"]};' in chart.functional_html
        assert "Category A &ne; c" in chart.appearance_html

    def test_pivot_exclusions_verbatim(self, spaced_frame):
        chart = pivot_table("Bound", spaced_frame, "data", rows=["Category A"], exclusions={"stage 1": ["start"]})
        assert '"exclusions": {"stage 1": ["start"]}' in chart.functional_html
