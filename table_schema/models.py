"""
Table Schema Models
Describes the columns of a bound table - the source of truth for validation.
Charts never see the data itself at templating time, only this schema.
"""

from typing import Dict, List, Optional
from pydantic import BaseModel, Field
from enum import Enum


class DataType(str, Enum):
    """Column type tags. Extend as needed."""
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"


class ColumnRole(str, Enum):
    """The part a column plays in a chart."""
    AXIS = "axis"
    VALUE = "value"
    DIMENSION = "dimension"
    GROUP = "group"
    FACET = "facet"
    STAGE = "stage"
    FILTER = "filter"
    SLIDER = "slider"


# Roles whose columns must hold a small set of categories
CATEGORICAL_ROLES = {ColumnRole.GROUP, ColumnRole.FACET, ColumnRole.STAGE}

# Roles whose columns must be numeric
NUMERIC_ROLES = {ColumnRole.VALUE, ColumnRole.DIMENSION}


class ColumnSpec(BaseModel):
    """
    A column of the bound table.
    """
    name: str = Field(..., description="Column name as it appears in the table")
    data_type: DataType = Field(..., description="Type tag of the column")
    is_integer: bool = Field(False, description="Numeric column holding whole numbers only")
    n_unique: int = Field(0, description="Number of distinct non-missing values", ge=0)

    @property
    def is_temporal(self) -> bool:
        return self.data_type in (DataType.DATE, DataType.DATETIME)

    @property
    def is_numeric(self) -> bool:
        return self.data_type == DataType.NUMBER

    def is_continuous(self, threshold: int) -> bool:
        """A column is continuous when it is ordered and has many distinct values."""
        return (self.is_numeric or self.is_temporal) and self.n_unique > threshold


class TableSchema(BaseModel):
    """
    Column-name-to-type mapping of one table.
    """
    columns: Dict[str, ColumnSpec] = Field(default_factory=dict)
    row_count: int = Field(0, ge=0)

    def add_column(self, column: ColumnSpec) -> None:
        """Add a column to this schema."""
        self.columns[column.name] = column

    def has_column(self, name: str) -> bool:
        return name in self.columns

    def get_column(self, name: str) -> ColumnSpec:
        """Get a column by name."""
        if name not in self.columns:
            raise KeyError(f"Column '{name}' not found in table")
        return self.columns[name]

    def column_names(self) -> List[str]:
        return list(self.columns.keys())

    def column_type(self, name: str) -> Optional[DataType]:
        column = self.columns.get(name)
        return column.data_type if column else None
