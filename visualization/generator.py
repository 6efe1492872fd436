# visualization/generator.py

"""
Chart construction entry point.
validate -> resolve -> render, dispatched on the chart kind.
Same inputs ALWAYS produce the same fragments.
"""

import logging
import os
from typing import Any, Callable, List, Optional, Union

from chart_options.defaults import ChartKind
from chart_options.resolver import OptionResolver
from fragment_compiler.errors import ConfigurationError
from fragment_compiler.templates import sanitize_chart_title
from fragment_compiler.validator import SchemaValidator
from table_schema.tables import TableLike, as_table
from visualization.base import Chart
from visualization.chart_templates import CHART_REGISTRY, ChartTemplateRegistry
from visualization.picture import Picture

logger = logging.getLogger(__name__)

DataLabel = Union[str, List[str]]


class ChartGenerator:
    """
    Builds charts from a table and keyword options.
    Every failure is raised immediately; there is no partial output.
    """

    def __init__(self, registry: Optional[ChartTemplateRegistry] = None):
        self.registry = registry or CHART_REGISTRY

    @staticmethod
    def _labels(data_label: DataLabel) -> List[str]:
        labels = [data_label] if isinstance(data_label, str) else list(data_label or [])
        if not labels or not all(isinstance(label, str) and label for label in labels):
            raise ConfigurationError(f"A non-empty data label is required, got {data_label!r}")
        return labels

    def build(
        self,
        kind: Union[ChartKind, str],
        title: str,
        table: Optional[TableLike],
        data_label: Optional[DataLabel],
        **options: Any
    ) -> Union[Chart, Picture]:
        """Build one chart of `kind` bound to the table known on the page as `data_label`."""
        kind = OptionResolver.kind_of(kind)
        if not str(title).strip():
            raise ConfigurationError("A chart title is required")

        if kind == ChartKind.PICTURE:
            resolved = OptionResolver.resolve(kind, **options)
            return Picture.from_file(title, resolved.path, notes=resolved.notes, format=resolved.format)

        labels = self._labels(data_label)
        try:
            source = as_table(table)
        except TypeError as e:
            raise ConfigurationError(str(e)) from e

        resolved = OptionResolver.resolve(kind, **options)
        renderer = self.registry.get_renderer(kind)
        renderer.validate(SchemaValidator(source.schema), resolved)

        safe_title = sanitize_chart_title(title)
        appearance, functional = renderer.render(str(title), safe_title, source, labels, resolved)

        logger.debug(
            f"Built {kind.value} chart '{title}' on {labels} "
            f"(columns: {renderer.referenced_columns(resolved)})"
        )

        return Chart(
            chart_title=str(title),
            kind=kind,
            data_labels=labels,
            config=resolved.model_dump(),
            appearance_html=appearance,
            functional_html=functional,
            js_libraries=list(renderer.js_libraries),
        )


_GENERATOR = ChartGenerator()


def build_chart(
    kind: Union[ChartKind, str],
    title: str,
    table: Optional[TableLike],
    data_label: Optional[DataLabel],
    **options: Any
) -> Union[Chart, Picture]:
    """Build a chart of any kind with the shared generator."""
    return _GENERATOR.build(kind, title, table, data_label, **options)


def area_chart(title: str, table: TableLike, data_label: str, **options: Any) -> Chart:
    return build_chart(ChartKind.AREA, title, table, data_label, **options)


def scatter_plot(title: str, table: TableLike, data_label: str, **options: Any) -> Chart:
    return build_chart(ChartKind.SCATTER, title, table, data_label, **options)


def kernel_density(title: str, table: TableLike, data_label: str, **options: Any) -> Chart:
    return build_chart(ChartKind.KERNEL_DENSITY, title, table, data_label, **options)


def pivot_table(title: str, table: TableLike, data_label: DataLabel, **options: Any) -> Chart:
    """Pivot tables may offer several datasets with the same columns."""
    return build_chart(ChartKind.PIVOT_TABLE, title, table, data_label, **options)


def surface3d(title: str, table: TableLike, data_label: str, **options: Any) -> Chart:
    return build_chart(ChartKind.SURFACE3D, title, table, data_label, **options)


def ribbon_plot(title: str, table: TableLike, data_label: str, **options: Any) -> Chart:
    return build_chart(ChartKind.RIBBON, title, table, data_label, **options)


def local_correlation_plot(title: str, table: TableLike, data_label: str, **options: Any) -> Chart:
    return build_chart(ChartKind.LOCAL_CORRELATION, title, table, data_label, **options)


def picture(title: str, obj: Any, save_function: Optional[Callable[[Any, str], None]] = None,
            format: str = "png", notes: str = "") -> Picture:
    """A picture from a file path, or from an object written out by `save_function`."""
    if isinstance(obj, (str, os.PathLike)):
        return Picture.from_file(title, obj, notes=notes)
    return Picture.from_object(title, obj, save_function, format=format, notes=notes)
