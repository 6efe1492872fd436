"""
Registry of chart renderers, one per chart kind.
"""

from typing import Any, Dict, List

from chart_options.defaults import CHART_DEFAULTS, ChartKind
from fragment_compiler.errors import ConfigurationError
from visualization.area_chart import AreaChartRenderer
from visualization.base import ChartRenderer
from visualization.kernel_density import KernelDensityRenderer
from visualization.local_correlation import LocalCorrelationRenderer
from visualization.pivot_table import PivotTableRenderer
from visualization.ribbon_plot import RibbonPlotRenderer
from visualization.scatter_plot import ScatterPlotRenderer
from visualization.surface3d import Surface3DRenderer


class ChartTemplateRegistry:
    """
    Maps each tabular chart kind to its renderer.
    Pictures are not rendered from a table and have no entry here.
    """

    def __init__(self):
        self.renderers = self._initialize_renderers()

    def _initialize_renderers(self) -> Dict[ChartKind, ChartRenderer]:
        renderers = [
            AreaChartRenderer(),
            ScatterPlotRenderer(),
            KernelDensityRenderer(),
            PivotTableRenderer(),
            Surface3DRenderer(),
            RibbonPlotRenderer(),
            LocalCorrelationRenderer(),
        ]
        return {renderer.kind: renderer for renderer in renderers}

    def get_renderer(self, kind: ChartKind) -> ChartRenderer:
        if kind not in self.renderers:
            raise ConfigurationError(f"No table renderer for chart kind '{kind.value}'")
        return self.renderers[kind]

    def describe(self) -> List[Dict[str, Any]]:
        """Kinds, descriptions, script libraries and defaults - for listings."""
        listing = []
        for kind in ChartKind:
            renderer = self.renderers.get(kind)
            listing.append({
                "kind": kind.value,
                "description": renderer.description if renderer else "Static image embedded from a file or object",
                "js_libraries": list(renderer.js_libraries) if renderer else [],
                "defaults": {
                    name: (value.value if hasattr(value, "value") else value)
                    for name, value in CHART_DEFAULTS[kind].items()
                },
            })
        return listing


# Global registry instance
CHART_REGISTRY = ChartTemplateRegistry()
