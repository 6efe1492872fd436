"""
Static picture embeds.

A Picture wraps either an existing image file or a temporary one written by
a caller-supplied save routine. SVG is embedded inline as markup; raster
formats become base64 data URIs or files under the page's pictures/ directory.
"""

import base64
import html
import logging
import os
import re
import shutil
import tempfile
from pathlib import Path
from typing import Any, Callable, List, Optional, Set, Union

from chart_options.defaults import ChartKind
from config import CHART_CONFIG
from fragment_compiler.errors import ConfigurationError, NotFoundError, UnsupportedFormatError
from fragment_compiler.templates import sanitize_chart_title

logger = logging.getLogger(__name__)


READABLE_FORMATS = {"png", "svg", "jpeg", "jpg", "gif"}
SAVEABLE_FORMATS = {"png", "svg", "jpeg", "jpg"}

MIME_TYPES = {
    "png": "image/png",
    "jpeg": "image/jpeg",
    "jpg": "image/jpeg",
    "gif": "image/gif",
    "svg": "image/svg+xml",
}

SaveFunction = Callable[[Any, str], None]


def default_save_function(obj: Any, path: str) -> None:
    """Save figure-like objects that know how to write themselves."""
    fmt = Path(path).suffix.lstrip(".")
    if hasattr(obj, "savefig"):
        obj.savefig(path, format=fmt)
    elif hasattr(obj, "write_image"):
        obj.write_image(path, format=fmt)
    else:
        raise ConfigurationError(
            f"No save function given and {type(obj).__name__} has neither savefig() nor write_image()"
        )


class Picture:
    """
    An image shown on a page.
    Owns its file when is_temp is True; call cleanup() (or use it as a
    context manager) once the page has been written.
    """

    kind = ChartKind.PICTURE

    def __init__(self, chart_title: str, image_path: Union[str, Path], format: str, is_temp: bool = False, notes: str = ""):
        self.chart_title = str(chart_title)
        self.image_path = Path(image_path)
        self.format = format.lower()
        self.is_temp = is_temp
        self.notes = notes
        self.data_labels: List[str] = []

    @classmethod
    def from_file(cls, chart_title: str, path: Union[str, Path], notes: str = "", format: Optional[str] = None) -> "Picture":
        path = Path(path)
        if not path.is_file():
            raise NotFoundError(f"Picture file not found: {path}")

        fmt = (format or path.suffix.lstrip(".")).lower()
        if fmt not in READABLE_FORMATS:
            raise UnsupportedFormatError(
                f"Unsupported picture format '{fmt}'. Supported formats: {sorted(READABLE_FORMATS)}"
            )
        logger.debug(f"Picture '{chart_title}' from file {path}")
        return cls(chart_title, path, fmt, is_temp=False, notes=notes)

    @classmethod
    def from_object(
        cls,
        chart_title: str,
        obj: Any,
        save_function: Optional[SaveFunction] = None,
        format: str = "png",
        notes: str = ""
    ) -> "Picture":
        """Write `obj` to a temporary file with `save_function(obj, path)` and wrap it."""
        fmt = str(format).lower()
        if fmt not in SAVEABLE_FORMATS:
            raise UnsupportedFormatError(
                f"Unsupported picture format '{format}'. Supported formats: {sorted(SAVEABLE_FORMATS)}"
            )

        temp_dir = tempfile.mkdtemp(prefix="chart_picture_")
        path = os.path.join(temp_dir, f"{sanitize_chart_title(chart_title)}.{fmt}")
        save = save_function or default_save_function

        try:
            save(obj, path)
        except ConfigurationError:
            shutil.rmtree(temp_dir, ignore_errors=True)
            raise
        except Exception as e:
            shutil.rmtree(temp_dir, ignore_errors=True)
            raise ConfigurationError(f"Save function failed for picture '{chart_title}': {e}") from e

        if not os.path.isfile(path):
            shutil.rmtree(temp_dir, ignore_errors=True)
            raise NotFoundError(f"Save function did not create the picture file {path}")

        logger.debug(f"Picture '{chart_title}' saved to temporary file {path}")
        return cls(chart_title, path, fmt, is_temp=True, notes=notes)

    @property
    def safe_title(self) -> str:
        return sanitize_chart_title(self.chart_title)

    @property
    def appearance_html(self) -> str:
        """Markup with the image embedded in the document."""
        return self.render_html()

    @property
    def functional_html(self) -> str:
        return ""

    def dependencies(self) -> Set[str]:
        return set()

    def js_dependencies(self) -> List[str]:
        return []

    def _image_markup(self, pictures_dir: Optional[Path], relative_dir: str) -> str:
        alt = html.escape(self.chart_title, quote=True)

        if self.format == "svg":
            svg = self.image_path.read_text(encoding="utf-8")
            # Drop the XML prolog so the markup can sit inside the page body
            svg = re.sub(r"<\?xml[^>]*\?>", "", svg)
            svg = re.sub(r"<!DOCTYPE[^>]*>", "", svg, flags=re.IGNORECASE)
            return svg.strip()

        if pictures_dir is not None:
            pictures_dir.mkdir(parents=True, exist_ok=True)
            target = pictures_dir / f"{self.safe_title}{self.image_path.suffix.lower()}"
            shutil.copyfile(self.image_path, target)
            logger.debug(f"Copied picture '{self.chart_title}' to {target}")
            return f'<img src="{relative_dir}/{target.name}" alt="{alt}" style="max-width: 100%;">'

        size_mb = self.image_path.stat().st_size / (1024 * 1024)
        if size_mb > CHART_CONFIG["max_embedded_image_mb"]:
            logger.warning(
                f"⚠️  Embedding {size_mb:.1f} MB picture '{self.chart_title}' as base64; "
                f"consider an external data format"
            )
        encoded = base64.b64encode(self.image_path.read_bytes()).decode("ascii")
        return f'<img src="data:{MIME_TYPES[self.format]};base64,{encoded}" alt="{alt}" style="max-width: 100%;">'

    def render_html(self, pictures_dir: Optional[Path] = None, relative_dir: str = "pictures") -> str:
        """
        Appearance markup. With `pictures_dir` raster images are copied there
        and referenced relatively instead of being inlined.
        """
        parts = [f'<div class="chart-block" id="{self.safe_title}_block">']
        parts.append(f'<h2>{html.escape(self.chart_title)}</h2>')
        if self.notes:
            parts.append(f'<p class="chart-notes">{self.notes}</p>')
        parts.append(f'<div id="{self.safe_title}" class="picture">')
        parts.append(self._image_markup(pictures_dir, relative_dir))
        parts.append('</div>')
        parts.append('</div>')
        return "\n".join(parts)

    def cleanup(self) -> None:
        """Remove the temporary file this picture owns, if any."""
        if self.is_temp and self.image_path.exists():
            shutil.rmtree(self.image_path.parent, ignore_errors=True)
            logger.debug(f"Removed temporary picture {self.image_path}")

    def __enter__(self) -> "Picture":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()
