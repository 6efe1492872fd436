"""
Schema validation layer.
Validates requested columns against the bound table before templating.
"""

from typing import Dict, Iterable, List, Optional

from config import CHART_CONFIG
from table_schema.models import (
    CATEGORICAL_ROLES,
    NUMERIC_ROLES,
    ColumnRole,
    DataType,
    TableSchema
)
from fragment_compiler.errors import ConfigurationError


class SchemaValidator:
    """
    Validates column references against a table schema.
    Ensures:
    1. Columns exist
    2. Column types fit the role they are used in
    3. Charts get the minimum number of columns they need
    4. Filter, exclusion and choice columns exist
    """

    def __init__(self, schema: TableSchema, max_group_cardinality: Optional[int] = None):
        self.schema = schema
        self.max_group_cardinality = (
            max_group_cardinality
            if max_group_cardinality is not None
            else CHART_CONFIG["max_group_cardinality"]
        )

    def require_column(self, name: str, role: ColumnRole) -> None:
        """Check one column for presence and role compatibility."""
        if not self.schema.has_column(name):
            raise ConfigurationError(
                f"Column '{name}' ({role.value}) not found in table. "
                f"Available columns: {self.schema.column_names()}"
            )

        column = self.schema.get_column(name)

        if role in NUMERIC_ROLES and not column.is_numeric:
            raise ConfigurationError(
                f"Column '{name}' is used as a {role.value} column and must be numeric, "
                f"got {column.data_type.value}"
            )

        if role == ColumnRole.SLIDER and not (column.is_numeric or column.is_temporal):
            raise ConfigurationError(
                f"Column '{name}' is used as a slider and must be numeric or a date, "
                f"got {column.data_type.value}"
            )

        if role in CATEGORICAL_ROLES and column.data_type == DataType.NUMBER:
            if column.n_unique > self.max_group_cardinality:
                raise ConfigurationError(
                    f"Column '{name}' is used as a {role.value} column but has "
                    f"{column.n_unique} distinct numeric values "
                    f"(limit {self.max_group_cardinality})"
                )

    def require_columns(self, names: Iterable[str], role: ColumnRole) -> List[str]:
        """Check a list of columns; returns them as a list."""
        names = list(names)
        for name in names:
            self.require_column(name, role)
        return names

    def require_min_columns(self, names: List[str], minimum: int, role: ColumnRole) -> None:
        """Enforce a minimum column count for a role."""
        if len(names) < minimum:
            raise ConfigurationError(
                f"At least {minimum} {role.value} columns are required, got {len(names)}: {names}"
            )

    def require_unique(self, names: List[str], role: ColumnRole) -> None:
        if len(names) != len(set(names)):
            raise ConfigurationError(f"{role.value} columns must be unique, got {names}")

    def validate_filters(
        self,
        filters: Dict[str, Optional[List[str]]],
        exclusions: Dict[str, List[str]],
        choices: Optional[Dict[str, Optional[str]]] = None
    ) -> None:
        """Validate that every filter-like column exists."""
        for name in filters:
            self.require_column(name, ColumnRole.FILTER)
        for name in exclusions:
            self.require_column(name, ColumnRole.FILTER)
        for name in (choices or {}):
            self.require_column(name, ColumnRole.FILTER)

    def validate_facets(self, facet_cols: List[str], default_facet_cols: List[str]) -> None:
        """Facet columns must exist; defaults must be among the choices and at most two."""
        self.require_columns(facet_cols, ColumnRole.FACET)
        if len(default_facet_cols) > 2:
            raise ConfigurationError(
                f"At most 2 default facet columns are supported, got {default_facet_cols}"
            )
        for name in default_facet_cols:
            if name not in facet_cols:
                raise ConfigurationError(
                    f"Default facet column '{name}' must be one of facet_cols {facet_cols}"
                )
