"""
Tests for pictures embedded from files and objects.
"""

import os

import pytest

from fragment_compiler.errors import ConfigurationError, NotFoundError, UnsupportedFormatError
from visualization import build_chart, picture
from visualization.picture import Picture

SVG_TEXT = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    '<!DOCTYPE svg PUBLIC "-//W3C//DTD SVG 1.1//EN" "http://www.w3.org/Graphics/SVG/1.1/DTD/svg11.dtd">\n'
    '<svg xmlns="http://www.w3.org/2000/svg" width="10" height="10"><rect width="10" height="10"/></svg>\n'
)

# Smallest valid PNG header plus padding is enough for embedding
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


def write_svg(obj, path):
    with open(path, "w", encoding="utf-8") as f:
        f.write(obj)


class TestPictureFromFile:
    """Test pictures read from existing files."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(NotFoundError):
            Picture.from_file("Missing", tmp_path / "nope.png")

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "report.pdf"
        path.write_bytes(b"%PDF-1.4")

        with pytest.raises(UnsupportedFormatError):
            Picture.from_file("Report", path)

    def test_png_is_base64_embedded(self, tmp_path):
        path = tmp_path / "plot.png"
        path.write_bytes(PNG_BYTES)
        pic = Picture.from_file("Plot", path, notes="A plot")

        markup = pic.appearance_html
        assert "data:image/png;base64," in markup
        assert "A plot" in markup
        assert pic.functional_html == ""
        assert pic.dependencies() == set()
        assert not pic.is_temp

    def test_build_chart_picture(self, tmp_path):
        path = tmp_path / "plot.png"
        path.write_bytes(PNG_BYTES)

        pic = build_chart("picture", "Plot", None, None, path=str(path))
        assert isinstance(pic, Picture)
        assert pic.format == "png"


class TestPictureFromObject:
    """Test pictures written by a save routine."""

    def test_svg_is_inlined(self):
        with picture("Drawing", SVG_TEXT, save_function=write_svg, format="svg") as pic:
            markup = pic.appearance_html
            temp_path = pic.image_path

            assert pic.is_temp
            assert "<svg" in markup
            assert "<?xml" not in markup
            assert "<!DOCTYPE" not in markup
            assert "base64," not in markup

        assert not os.path.exists(temp_path)

    def test_unsupported_format(self):
        with pytest.raises(UnsupportedFormatError):
            Picture.from_object("Drawing", SVG_TEXT, write_svg, format="pdf")

    def test_failing_save_routine(self):
        def broken(obj, path):
            raise RuntimeError("disk full")

        with pytest.raises(ConfigurationError) as exc_info:
            Picture.from_object("Drawing", SVG_TEXT, broken, format="svg")
        assert "disk full" in str(exc_info.value)

    def test_save_routine_writes_nothing(self):
        with pytest.raises(NotFoundError):
            Picture.from_object("Drawing", SVG_TEXT, lambda obj, path: None, format="svg")

    def test_object_without_save_method(self):
        with pytest.raises(ConfigurationError):
            Picture.from_object("Drawing", object(), format="png")

    def test_file_path_goes_to_from_file(self, tmp_path):
        path = tmp_path / "drawing.svg"
        path.write_text(SVG_TEXT, encoding="utf-8")

        pic = picture("Drawing", path)
        assert not pic.is_temp
        assert pic.format == "svg"
