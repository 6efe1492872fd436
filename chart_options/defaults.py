"""
Per-kind default tables.
Static constants loaded at import - never mutated at runtime.
"""

from enum import Enum
from types import MappingProxyType
from typing import Any, Dict


class ChartKind(str, Enum):
    """Supported chart kinds."""
    AREA = "area"
    SCATTER = "scatter"
    KERNEL_DENSITY = "kernel_density"
    PIVOT_TABLE = "pivot_table"
    SURFACE3D = "surface3d"
    RIBBON = "ribbon"
    LOCAL_CORRELATION = "local_correlation"
    PICTURE = "picture"


class StackMode(str, Enum):
    """How area series are composed vertically."""
    UNSTACK = "unstack"
    STACK = "stack"
    NORMALISED_STACK = "normalised_stack"


DEFAULT_COLOUR_MAP = {
    -2.5: "#FF9999",
    -1.0: "#FFFF99",
    0.0: "#FFFFFF",
    1.0: "#99FF99",
    2.5: "#99CCFF",
}

DEFAULT_POINT_SYMBOLS = ["circle", "square", "diamond", "triangle-up", "cross", "x"]

_DEFAULTS: Dict[ChartKind, Dict[str, Any]] = {
    ChartKind.AREA: {
        "group_cols": [],
        "facet_cols": [],
        "default_facet_cols": [],
        "stack_mode": StackMode.UNSTACK,
        "fill_opacity": 0.6,
    },
    ChartKind.SCATTER: {
        "color_cols": [],
        "point_symbols": DEFAULT_POINT_SYMBOLS,
        "marker_size": 4,
        "marker_opacity": 0.6,
        "show_density": True,
        "facet_cols": [],
        "default_facet_cols": [],
    },
    ChartKind.KERNEL_DENSITY: {
        "group_cols": [],
        "bandwidth": None,
        "density_opacity": 0.6,
        "fill_density": True,
        "facet_cols": [],
        "default_facet_cols": [],
    },
    ChartKind.PIVOT_TABLE: {
        "rows": [],
        "cols": [],
        "vals": [],
        "inclusions": {},
        "exclusions": {},
        "colour_map": DEFAULT_COLOUR_MAP,
        "extrapolate_colours": False,
        "aggregator_name": "Average",
        "renderer_name": "Heatmap",
        "show_totals": False,
    },
    ChartKind.SURFACE3D: {
        "group_col": None,
        "height": 600,
    },
    ChartKind.RIBBON: {
        "value_cols": [],
    },
    ChartKind.LOCAL_CORRELATION: {
        "bandwidth": None,
        "grid_size": 30,
        "min_weight": 0.1,
        "colorscale": "RdBu",
        "bootstrap_iterations": 200,
        "choices": {},
    },
    ChartKind.PICTURE: {
        "format": None,
    },
}

# Options every kind except pictures and pivot tables accepts
_COMMON = {"filters": [], "exclusions": {}, "notes": ""}

CHART_DEFAULTS = MappingProxyType({
    kind: MappingProxyType({**({"notes": ""} if kind in (ChartKind.PICTURE, ChartKind.PIVOT_TABLE) else _COMMON), **table})
    for kind, table in _DEFAULTS.items()
})


def defaults_for(kind: ChartKind) -> Dict[str, Any]:
    """A fresh, mutable copy of the defaults of one kind."""
    table = CHART_DEFAULTS[kind]
    return {
        name: (list(value) if isinstance(value, list) else dict(value) if isinstance(value, dict) else value)
        for name, value in table.items()
    }
