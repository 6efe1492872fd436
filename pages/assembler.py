"""
Page assembly.
Collects charts and the tables they read into one HTML document, embedding
the data inline or writing it next to the page, per the data format.
"""

import logging
import re
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Union

from config import JS_DEPENDENCIES, PAGE_CONFIG
from fragment_compiler.errors import ConfigurationError, UnsupportedFormatError
from pages.page_template import render_document
from table_schema.tables import DataFrameTable, TableLike, as_table
from visualization.base import Chart
from visualization.picture import Picture

logger = logging.getLogger(__name__)

PageItem = Union[Chart, Picture]


class DataFormat(str, Enum):
    """How tables are bound into the page."""
    CSV_EMBEDDED = "csv_embedded"
    JSON_EMBEDDED = "json_embedded"
    CSV_EXTERNAL = "csv_external"
    JSON_EXTERNAL = "json_external"

    @property
    def is_external(self) -> bool:
        return self in (DataFormat.CSV_EXTERNAL, DataFormat.JSON_EXTERNAL)

    @property
    def extension(self) -> str:
        return "json" if self in (DataFormat.JSON_EMBEDDED, DataFormat.JSON_EXTERNAL) else "csv"


def dataset_element_id(label: str) -> str:
    return "data_" + re.sub(r"[\s\-\.:/\\]", "_", label)


def dataset_file_name(label: str, data_format: DataFormat) -> str:
    """File name an external format writes one table to, under the data directory."""
    return f"{re.sub(r'[^A-Za-z0-9_]', '_', label)}.{data_format.extension}"


def _escape_script_text(text: str) -> str:
    """Keep embedded data from closing its script element early."""
    return re.sub(r"</(script)", r"<\\/\1", text, flags=re.IGNORECASE)


def serialize_table(table: DataFrameTable, data_format: DataFormat) -> str:
    """
    Dates and timestamps are written in the same text form the chart
    controls use. CSV booleans are lowercase so the CSV parser types them.
    """
    if data_format.extension == "json":
        return table.client_frame().to_json(orient="records")
    return table.client_frame(text_booleans=True).to_csv(index=False)


def dataset_to_html(label: str, table: DataFrameTable, data_format: DataFormat, data_src: str = "") -> str:
    """The <script type="text/plain"> element holding (or pointing at) one table."""
    content = "" if data_format.is_external else _escape_script_text(serialize_table(table, data_format))
    return (
        f'<script type="text/plain" id="{dataset_element_id(label)}" '
        f'data-format="{data_format.value}" data-src="{data_src}">{content}</script>'
    )


class ChartPage:
    """
    One HTML page: named tables plus the charts drawn from them.
    Every data label a chart depends on must be among the tables.
    """

    def __init__(
        self,
        tables: Dict[str, TableLike],
        charts: List[PageItem],
        tab_title: Optional[str] = None,
        page_header: str = "",
        notes: str = "",
        data_format: Union[DataFormat, str, None] = None
    ):
        try:
            self.data_format = DataFormat(data_format or PAGE_CONFIG["default_data_format"])
        except ValueError:
            raise UnsupportedFormatError(
                f"Unsupported data format '{data_format}'. Supported formats: {[f.value for f in DataFormat]}"
            )

        self.tables: Dict[str, DataFrameTable] = {}
        for label, table in tables.items():
            try:
                self.tables[label] = as_table(table)
            except TypeError as e:
                raise ConfigurationError(f"Table '{label}': {e}") from e

        element_ids: Dict[str, str] = {}
        for label in self.tables:
            element_id = dataset_element_id(label)
            if element_id in element_ids:
                raise ConfigurationError(
                    f"Data labels '{element_ids[element_id]}' and '{label}' collide on the page"
                )
            element_ids[element_id] = label

        if self.data_format.is_external:
            # Compared case-insensitively, as some filesystems are
            file_names: Dict[str, str] = {}
            for label in self.tables:
                file_name = dataset_file_name(label, self.data_format).lower()
                if file_name in file_names:
                    raise ConfigurationError(
                        f"Data labels '{file_names[file_name]}' and '{label}' would both be written to "
                        f"{PAGE_CONFIG['data_dir']}/{dataset_file_name(label, self.data_format)}"
                    )
                file_names[file_name] = label

        titles = [item.chart_title for item in charts]
        duplicates = sorted({t for t in titles if titles.count(t) > 1})
        if duplicates:
            raise ConfigurationError(f"Chart titles must be unique on a page, repeated: {duplicates}")

        self.charts = list(charts)
        missing = sorted(self.dependencies() - set(self.tables))
        if missing:
            raise ConfigurationError(f"Charts depend on tables that were not supplied: {missing}")

        self.tab_title = tab_title or PAGE_CONFIG["default_tab_title"]
        self.page_header = page_header
        self.notes = notes

    def dependencies(self) -> set:
        labels = set()
        for item in self.charts:
            labels |= item.dependencies()
        return labels

    def js_dependencies(self) -> List[str]:
        """Script tags for every chart on the page, deduplicated, first use first."""
        tags: List[str] = []
        if self.tables and self.data_format.extension == "csv":
            tags.append(JS_DEPENDENCIES["papaparse"])
        for item in self.charts:
            for tag in item.js_dependencies():
                if tag not in tags:
                    tags.append(tag)
        return tags


def render_page(page: ChartPage, project_dir: Optional[Union[str, Path]] = None) -> str:
    """
    The page as an HTML string. External formats write their data and
    pictures under `project_dir`, which they require.
    """
    external = page.data_format.is_external
    if external and project_dir is None:
        raise ConfigurationError(f"Data format '{page.data_format.value}' needs a project directory")

    data_dir = pictures_dir = None
    if external:
        project_dir = Path(project_dir)
        data_dir = project_dir / PAGE_CONFIG["data_dir"]
        pictures_dir = project_dir / PAGE_CONFIG["pictures_dir"]
        data_dir.mkdir(parents=True, exist_ok=True)

    datasets = []
    for label, table in page.tables.items():
        data_src = ""
        if external:
            file_name = dataset_file_name(label, page.data_format)
            (data_dir / file_name).write_text(serialize_table(table, page.data_format), encoding="utf-8")
            data_src = f"{PAGE_CONFIG['data_dir']}/{file_name}"
            logger.debug(f"Wrote table '{label}' to {data_dir / file_name}")
        datasets.append(dataset_to_html(label, table, page.data_format, data_src))

    segments = []
    for item in page.charts:
        if isinstance(item, Picture):
            segments.append(item.render_html(pictures_dir=pictures_dir, relative_dir=PAGE_CONFIG["pictures_dir"]))
        else:
            segments.append(item.appearance_html + "\n" + item.functional_html)

    return render_document(
        page.tab_title,
        page.page_header,
        page.notes,
        page.js_dependencies(),
        datasets,
        segments
    )


def create_html(page: ChartPage, outfile_path: Union[str, Path]) -> Path:
    """
    Write the page. Embedded formats produce the single file `outfile_path`;
    external formats produce a project directory named after the file,
    holding the page plus data/ and pictures/.
    """
    outfile_path = Path(outfile_path)
    if page.data_format.is_external:
        project_dir = outfile_path.parent / outfile_path.stem
        target = project_dir / outfile_path.name
        document = render_page(page, project_dir=project_dir)
    else:
        target = outfile_path
        document = render_page(page)

    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(document, encoding="utf-8")
    logger.info(f"✅ Page '{page.tab_title}' written to {target} ({len(page.charts)} charts, {page.data_format.value})")
    return target
