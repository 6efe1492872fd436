"""
Visualization package - chart renderers and the construction entry point.
Every chart is a pure function of its table, options and title.
"""

from visualization.base import Chart, ChartRenderer

from visualization.chart_templates import (
    ChartTemplateRegistry,
    CHART_REGISTRY
)

from visualization.picture import Picture

from visualization.generator import (
    ChartGenerator,
    build_chart,
    area_chart,
    scatter_plot,
    kernel_density,
    pivot_table,
    surface3d,
    ribbon_plot,
    local_correlation_plot,
    picture
)

__all__ = [
    'Chart',
    'ChartRenderer',
    'ChartTemplateRegistry',
    'CHART_REGISTRY',
    'Picture',
    'ChartGenerator',
    'build_chart',
    'area_chart',
    'scatter_plot',
    'kernel_density',
    'pivot_table',
    'surface3d',
    'ribbon_plot',
    'local_correlation_plot',
    'picture'
]

__version__ = "1.0.0"
