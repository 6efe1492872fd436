"""
Errors raised while building charts.
Every failure is fatal to the single chart construction call.
"""


class ChartError(Exception):
    """Base class for chart construction failures."""


class ConfigurationError(ChartError, ValueError):
    """Missing or invalid column reference, wrong column count, bad option value."""


class NotFoundError(ChartError, FileNotFoundError):
    """A referenced source file does not exist."""


class UnsupportedFormatError(ChartError, ValueError):
    """A requested serialization format is not in the supported set."""
