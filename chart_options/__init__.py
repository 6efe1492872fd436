"""
Chart options package - per-kind defaults and validated option models.
"""

from chart_options.defaults import (
    ChartKind,
    StackMode,
    CHART_DEFAULTS,
    DEFAULT_COLOUR_MAP,
    defaults_for
)

from chart_options.option_models import (
    AreaChartOptions,
    ScatterOptions,
    KernelDensityOptions,
    PivotTableOptions,
    Surface3DOptions,
    RibbonOptions,
    LocalCorrelationOptions,
    PictureOptions,
    lookup_colorscale
)

from chart_options.resolver import OptionResolver

__all__ = [
    'ChartKind',
    'StackMode',
    'CHART_DEFAULTS',
    'DEFAULT_COLOUR_MAP',
    'defaults_for',
    'AreaChartOptions',
    'ScatterOptions',
    'KernelDensityOptions',
    'PivotTableOptions',
    'Surface3DOptions',
    'RibbonOptions',
    'LocalCorrelationOptions',
    'PictureOptions',
    'lookup_colorscale',
    'OptionResolver'
]
