"""
Fragment compiler package - validation and shared templates.
Column references are checked against the table schema before any text is emitted.
"""

from fragment_compiler.errors import (
    ChartError,
    ConfigurationError,
    NotFoundError,
    UnsupportedFormatError
)

from fragment_compiler.validator import SchemaValidator

from fragment_compiler.templates import (
    ControlTemplates,
    FilterScriptBuilder,
    sanitize_chart_title,
    js_literal,
    normalize_filters
)

__all__ = [
    'ChartError',
    'ConfigurationError',
    'NotFoundError',
    'UnsupportedFormatError',
    'SchemaValidator',
    'ControlTemplates',
    'FilterScriptBuilder',
    'sanitize_chart_title',
    'js_literal',
    'normalize_filters'
]

__version__ = "1.0.0"
