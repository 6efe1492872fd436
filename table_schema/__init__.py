"""
Table schema package - typed view of the tables charts are bound to.
Defines column type tags, column roles and table sources.
"""

from table_schema.models import (
    DataType,
    ColumnRole,
    ColumnSpec,
    TableSchema,
    CATEGORICAL_ROLES,
    NUMERIC_ROLES
)

from table_schema.tables import (
    DataFrameTable,
    TableLike,
    as_table,
    infer_data_type
)

__all__ = [
    'DataType',
    'ColumnRole',
    'ColumnSpec',
    'TableSchema',
    'CATEGORICAL_ROLES',
    'NUMERIC_ROLES',
    'DataFrameTable',
    'TableLike',
    'as_table',
    'infer_data_type'
]

__version__ = "1.0.0"
