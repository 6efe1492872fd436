"""
Table sources.
A thin typed interface over concrete table representations so that the
validator and renderers never reach into a DataFrame directly.
"""

import datetime
from typing import Any, Dict, List, Union

import pandas as pd

from table_schema.models import ColumnSpec, DataType, TableSchema


def infer_data_type(series: pd.Series) -> DataType:
    """Map a pandas column to a type tag."""
    if pd.api.types.is_bool_dtype(series):
        return DataType.BOOLEAN
    if pd.api.types.is_numeric_dtype(series):
        return DataType.NUMBER
    if pd.api.types.is_datetime64_any_dtype(series):
        return DataType.DATETIME

    # Object columns: look at the first non-missing value
    non_missing = series.dropna()
    if non_missing.empty:
        return DataType.STRING
    sample = non_missing.iloc[0]
    if isinstance(sample, bool):
        return DataType.BOOLEAN
    if isinstance(sample, datetime.datetime):
        return DataType.DATETIME
    if isinstance(sample, datetime.date):
        return DataType.DATE
    return DataType.STRING


def temporal_text(value: Any) -> str:
    """
    Text form of a date or timestamp, shared by the serialised data and by
    every option value compared against it: `YYYY-MM-DD` at midnight,
    ISO 8601 with the time otherwise.
    """
    if isinstance(value, datetime.date) and not isinstance(value, datetime.datetime):
        return value.isoformat()
    stamp = pd.Timestamp(value)
    if stamp == stamp.normalize():
        return stamp.strftime("%Y-%m-%d")
    return stamp.isoformat()


class DataFrameTable:
    """
    Table source backed by a pandas DataFrame. The frame is never mutated.
    """

    def __init__(self, frame: pd.DataFrame):
        self.frame = frame
        self._schema = None

    @property
    def schema(self) -> TableSchema:
        if self._schema is None:
            self._schema = self._build_schema()
        return self._schema

    def _build_schema(self) -> TableSchema:
        schema = TableSchema(row_count=len(self.frame))
        for name in self.frame.columns:
            series = self.frame[name]
            data_type = infer_data_type(series)
            is_integer = False
            if data_type == DataType.NUMBER:
                values = series.dropna()
                is_integer = bool(pd.api.types.is_integer_dtype(series) or
                                  (len(values) > 0 and (values % 1 == 0).all()))
            schema.add_column(ColumnSpec(
                name=str(name),
                data_type=data_type,
                is_integer=is_integer,
                n_unique=int(series.nunique(dropna=True))
            ))
        return schema

    def column_names(self) -> List[str]:
        return [str(c) for c in self.frame.columns]

    def column_type(self, name: str) -> DataType:
        return self.schema.get_column(name).data_type

    def unique_values(self, name: str, sort: bool = False) -> List[Any]:
        """Distinct non-missing values, in order of first appearance unless sorted."""
        values = list(pd.unique(self.frame[name].dropna()))
        if sort:
            try:
                values = sorted(values)
            except TypeError:
                values = sorted(values, key=str)
        return values

    def client_frame(self, text_booleans: bool = False) -> pd.DataFrame:
        """
        Copy of the frame as the page ships it: temporal columns as text,
        and booleans as lowercase `true`/`false` when `text_booleans` is set.
        """
        frame = self.frame.copy()
        for column in frame.columns:
            spec = self.schema.get_column(str(column))
            if spec.is_temporal:
                frame[column] = frame[column].map(
                    lambda v: None if pd.isna(v) else temporal_text(v)
                ).astype(object)
            elif spec.data_type == DataType.BOOLEAN and text_booleans:
                frame[column] = frame[column].map({True: "true", False: "false"})
        return frame


TableLike = Union[DataFrameTable, pd.DataFrame, List[Dict[str, Any]]]


def as_table(data: TableLike) -> DataFrameTable:
    """Coerce a DataFrame or a list of row dicts into a table source."""
    if isinstance(data, DataFrameTable):
        return data
    if isinstance(data, pd.DataFrame):
        return DataFrameTable(data)
    if isinstance(data, list):
        return DataFrameTable(pd.DataFrame(data))
    raise TypeError(f"Unsupported table type: {type(data).__name__}")
