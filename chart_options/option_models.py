"""
Pydantic models for resolved chart options.
Each chart kind accepts exactly these fields - anything else is rejected.
"""

from typing import Any, Dict, List, Optional, Union

from plotly import colors as plotly_colors
from pydantic import BaseModel, ConfigDict, Field, field_validator

from chart_options.defaults import DEFAULT_COLOUR_MAP, DEFAULT_POINT_SYMBOLS, StackMode


PIVOT_AGGREGATORS = [
    "Count", "Count Unique Values", "List Unique Values", "Sum", "Integer Sum",
    "Average", "Median", "Sample Variance", "Sample Standard Deviation",
    "Minimum", "Maximum", "First", "Last", "Sum over Sum",
    "80% Upper Bound", "80% Lower Bound",
    "Sum as Fraction of Total", "Sum as Fraction of Rows", "Sum as Fraction of Columns",
    "Count as Fraction of Total", "Count as Fraction of Rows", "Count as Fraction of Columns",
]

PIVOT_RENDERERS = [
    "Table", "Table Barchart", "Heatmap", "Row Heatmap", "Col Heatmap",
    "Treemap",
    "Horizontal Bar Chart", "Horizontal Stacked Bar Chart", "Bar Chart",
    "Stacked Bar Chart", "Line Chart", "Area Chart", "Scatter Chart",
    "TSV Export",
]

PICTURE_FORMATS = ["png", "svg", "jpeg", "jpg", "gif"]


def _as_list(v: Any) -> List[Any]:
    """Accept a single column name where a list is expected."""
    if v is None:
        return []
    if isinstance(v, str):
        return [v]
    return list(v)


def lookup_colorscale(name: str) -> Optional[List[List[Any]]]:
    """
    Find a named Plotly colour scale (case-insensitive, `_r` reverses it).
    Returns [[position, colour], ...] or None when unknown.
    """
    target = name.lower()
    reverse = target.endswith("_r")
    if reverse:
        target = target[:-2]

    for module in (plotly_colors.sequential, plotly_colors.diverging, plotly_colors.cyclical):
        for attr in dir(module):
            if attr.startswith("_") or attr.lower() != target:
                continue
            swatch = getattr(module, attr)
            if isinstance(swatch, list) and len(swatch) >= 2:
                swatch = list(reversed(swatch)) if reverse else list(swatch)
                return [[float(pos), colour] for pos, colour in plotly_colors.make_colorscale(swatch)]
    return None


class ChartOptions(BaseModel):
    """Options shared by every kind."""
    notes: str = Field("", description="Free text shown under the chart title")

    model_config = ConfigDict(extra="forbid")


class FilteredChartOptions(ChartOptions):
    """Options of kinds whose rows can be filtered client-side."""
    filters: Union[List[str], Dict[str, Any]] = Field(
        default_factory=list,
        description="Columns to filter on, or column -> default allowed value(s)"
    )
    exclusions: Dict[str, List[Any]] = Field(
        default_factory=dict,
        description="Column -> values always removed"
    )

    @field_validator('exclusions', mode="before")
    @classmethod
    def coerce_exclusions(cls, v):
        if v is None:
            return {}
        return {column: _as_list(values) for column, values in dict(v).items()}


class FacetedChartOptions(FilteredChartOptions):
    facet_cols: List[str] = Field(default_factory=list)
    default_facet_cols: List[str] = Field(default_factory=list)

    @field_validator('facet_cols', 'default_facet_cols', mode="before")
    @classmethod
    def coerce_facets(cls, v):
        return _as_list(v)


class AreaChartOptions(FacetedChartOptions):
    x_cols: List[str] = Field(..., description="Candidate x axis columns; the first is the default")
    y_cols: List[str] = Field(..., description="Candidate y value columns; the first is the default")
    group_cols: List[str] = Field(default_factory=list, description="Candidate series grouping columns")
    stack_mode: StackMode = Field(StackMode.UNSTACK, description="How series are composed vertically")
    fill_opacity: float = Field(0.6, ge=0.0, le=1.0)

    @field_validator('x_cols', 'y_cols', 'group_cols', mode="before")
    @classmethod
    def coerce_columns(cls, v):
        return _as_list(v)

    @field_validator('x_cols', 'y_cols')
    @classmethod
    def require_one(cls, v):
        if not v:
            raise ValueError("at least one column is required")
        return v


class ScatterOptions(FacetedChartOptions):
    dimensions: List[str] = Field(..., description="Numeric columns offered on the x and y axes")
    color_cols: List[str] = Field(default_factory=list)
    point_symbols: List[str] = Field(default_factory=lambda: list(DEFAULT_POINT_SYMBOLS))
    marker_size: float = Field(4, gt=0)
    marker_opacity: float = Field(0.6, ge=0.0, le=1.0)
    show_density: bool = True

    @field_validator('dimensions', 'color_cols', mode="before")
    @classmethod
    def coerce_columns(cls, v):
        return _as_list(v)

    @field_validator('point_symbols')
    @classmethod
    def require_symbols(cls, v):
        if not v:
            raise ValueError("at least one point symbol is required")
        return v


class KernelDensityOptions(FacetedChartOptions):
    value_cols: List[str] = Field(..., description="Numeric columns whose density is estimated")
    group_cols: List[str] = Field(default_factory=list)
    bandwidth: Optional[float] = Field(None, gt=0, description="None means Silverman's rule")
    density_opacity: float = Field(0.6, ge=0.0, le=1.0)
    fill_density: bool = True

    @field_validator('value_cols', 'group_cols', mode="before")
    @classmethod
    def coerce_columns(cls, v):
        return _as_list(v)

    @field_validator('value_cols')
    @classmethod
    def require_one(cls, v):
        if not v:
            raise ValueError("at least one value column is required")
        return v


class PivotTableOptions(ChartOptions):
    rows: List[str] = Field(default_factory=list)
    cols: List[str] = Field(default_factory=list)
    vals: List[str] = Field(default_factory=list)
    inclusions: Dict[str, List[Any]] = Field(default_factory=dict)
    exclusions: Dict[str, List[Any]] = Field(default_factory=dict)
    colour_map: Dict[float, str] = Field(default_factory=lambda: dict(DEFAULT_COLOUR_MAP))
    extrapolate_colours: bool = False
    aggregator_name: str = "Average"
    renderer_name: str = "Heatmap"
    show_totals: bool = False

    @field_validator('rows', 'cols', 'vals', mode="before")
    @classmethod
    def coerce_columns(cls, v):
        return _as_list(v)

    @field_validator('inclusions', 'exclusions', mode="before")
    @classmethod
    def coerce_value_lists(cls, v):
        if v is None:
            return {}
        return {column: _as_list(values) for column, values in dict(v).items()}

    @field_validator('colour_map')
    @classmethod
    def require_two_stops(cls, v):
        if len(v) < 2:
            raise ValueError("colour_map needs at least two stops")
        return v

    @field_validator('aggregator_name')
    @classmethod
    def known_aggregator(cls, v):
        if v not in PIVOT_AGGREGATORS:
            raise ValueError(f"unknown aggregator '{v}', expected one of {PIVOT_AGGREGATORS}")
        return v

    @field_validator('renderer_name')
    @classmethod
    def known_renderer(cls, v):
        if v not in PIVOT_RENDERERS:
            raise ValueError(f"unknown renderer '{v}', expected one of {PIVOT_RENDERERS}")
        return v


class Surface3DOptions(FilteredChartOptions):
    x_col: str
    y_col: str
    z_col: str
    group_col: Optional[str] = None
    height: int = Field(600, gt=0)


class RibbonOptions(FilteredChartOptions):
    timestage_cols: List[str] = Field(..., description="Ordered stage columns, first stage on the left")
    value_cols: List[str] = Field(default_factory=list, description="Weight columns; empty means unit count")

    @field_validator('timestage_cols', 'value_cols', mode="before")
    @classmethod
    def coerce_columns(cls, v):
        return _as_list(v)


class LocalCorrelationOptions(FilteredChartOptions):
    dimensions: List[str] = Field(..., description="Numeric columns offered on the x and y axes")
    bandwidth: Optional[float] = Field(None, gt=0, description="None means Silverman's rule")
    grid_size: int = Field(30, ge=5, le=200)
    min_weight: float = Field(0.1, ge=0.0)
    colorscale: str = "RdBu"
    bootstrap_iterations: int = Field(200, ge=10)
    choices: Dict[str, Any] = Field(default_factory=dict, description="Single-select filters: column -> default value")

    @field_validator('dimensions', mode="before")
    @classmethod
    def coerce_columns(cls, v):
        return _as_list(v)

    @field_validator('colorscale')
    @classmethod
    def known_colorscale(cls, v):
        if lookup_colorscale(v) is None:
            raise ValueError(f"unknown colour scale '{v}'")
        return v


class PictureOptions(ChartOptions):
    path: str = Field(..., description="Image file to embed")
    format: Optional[str] = Field(None, description="Overrides the format implied by the file extension")
