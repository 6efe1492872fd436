"""
Chart value object and the renderer interface every chart kind implements.
"""

from typing import Any, Dict, List, Set, Tuple

from pydantic import BaseModel, ConfigDict, Field

from chart_options.defaults import ChartKind
from config import JS_DEPENDENCIES
from fragment_compiler.validator import SchemaValidator
from table_schema.tables import DataFrameTable


class Chart(BaseModel):
    """
    One rendered chart. Created once, never mutated.
    The data itself is not held - only the labels of the tables it reads.
    """
    chart_title: str = Field(..., description="Unique title; element ids derive from it")
    kind: ChartKind
    data_labels: List[str] = Field(..., description="Tables the page must bind for this chart")
    config: Dict[str, Any] = Field(default_factory=dict, description="Resolved options")
    appearance_html: str
    functional_html: str
    js_libraries: List[str] = Field(default_factory=list, description="Keys into JS_DEPENDENCIES")

    model_config = ConfigDict(frozen=True)

    def dependencies(self) -> Set[str]:
        """Data labels this chart needs bound on the page."""
        return set(self.data_labels)

    def js_dependencies(self) -> List[str]:
        """Script tags the functional fragment needs loaded, in load order."""
        return [JS_DEPENDENCIES[name] for name in self.js_libraries]


class ChartRenderer:
    """
    Base class for per-kind renderers.
    validate() checks column references; render() returns (appearance, functional).
    """

    kind: ChartKind
    description: str = ""
    js_libraries: List[str] = ["jquery", "jquery_ui", "plotly"]

    def validate(self, validator: SchemaValidator, options: Any) -> None:
        raise NotImplementedError

    def render(
        self,
        title: str,
        safe_title: str,
        table: DataFrameTable,
        data_labels: List[str],
        options: Any
    ) -> Tuple[str, str]:
        raise NotImplementedError

    def referenced_columns(self, options: Any) -> List[str]:
        """Every column name the options refer to, in first-mention order."""
        seen: List[str] = []
        for name, value in options.model_dump().items():
            if name in ("notes", "point_symbols", "colour_map", "colorscale", "stack_mode", "format", "path"):
                continue
            candidates: List[Any] = []
            if name.endswith("_col") and isinstance(value, str):
                candidates = [value]
            elif name.endswith("_cols") or name in ("dimensions", "rows", "cols", "vals"):
                candidates = list(value or [])
            elif name in ("filters", "exclusions", "inclusions", "choices"):
                candidates = list(value or [])
            for column in candidates:
                if column not in seen:
                    seen.append(column)
        return seen
