"""
Option resolution layer.
Merges caller options over the per-kind defaults and validates the result.
"""

import logging
from typing import Any, Dict, Type, Union

from pydantic import BaseModel, ValidationError

from chart_options.defaults import ChartKind, defaults_for
from chart_options.option_models import (
    AreaChartOptions,
    ChartOptions,
    KernelDensityOptions,
    LocalCorrelationOptions,
    PictureOptions,
    PivotTableOptions,
    RibbonOptions,
    ScatterOptions,
    Surface3DOptions
)
from fragment_compiler.errors import ConfigurationError

logger = logging.getLogger(__name__)


class OptionResolver:
    """
    Resolves partial caller options into a complete options model.
    Policy:
    1. Explicit values win; None means "use the default"
    2. Unknown option names are rejected
    3. Out-of-range values fail fast, never clamped
    """

    MODELS: Dict[ChartKind, Type[ChartOptions]] = {
        ChartKind.AREA: AreaChartOptions,
        ChartKind.SCATTER: ScatterOptions,
        ChartKind.KERNEL_DENSITY: KernelDensityOptions,
        ChartKind.PIVOT_TABLE: PivotTableOptions,
        ChartKind.SURFACE3D: Surface3DOptions,
        ChartKind.RIBBON: RibbonOptions,
        ChartKind.LOCAL_CORRELATION: LocalCorrelationOptions,
        ChartKind.PICTURE: PictureOptions,
    }

    @staticmethod
    def kind_of(kind: Union[ChartKind, str]) -> ChartKind:
        try:
            return ChartKind(kind)
        except ValueError:
            raise ConfigurationError(
                f"Unsupported chart kind '{kind}'. Supported kinds: {[k.value for k in ChartKind]}"
            )

    @classmethod
    def resolve(cls, kind: Union[ChartKind, str], **options: Any) -> BaseModel:
        """Return the validated options model for `kind`."""
        kind = cls.kind_of(kind)
        merged = defaults_for(kind)
        merged.update({name: value for name, value in options.items() if value is not None})

        try:
            resolved = cls.MODELS[kind](**merged)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in error['loc']) or 'options'}: {error['msg']}"
                for error in e.errors()
            )
            logger.debug(f"Option resolution failed for {kind.value}: {problems}")
            raise ConfigurationError(f"Invalid options for {kind.value} chart: {problems}") from e

        return resolved
