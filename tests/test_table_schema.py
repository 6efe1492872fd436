"""
Tests for table sources and schema inference.
"""

import datetime

import numpy as np
import pandas as pd
import pytest

from table_schema.models import ColumnSpec, DataType, TableSchema
from table_schema.tables import DataFrameTable, as_table, infer_data_type, temporal_text


class TestInferDataType:
    """Test type tag inference from pandas columns."""

    def test_numeric_and_string(self, sample_frame):
        assert infer_data_type(sample_frame["x"]) == DataType.NUMBER
        assert infer_data_type(sample_frame["value"]) == DataType.NUMBER
        assert infer_data_type(sample_frame["category"]) == DataType.STRING

    def test_datetime_and_boolean(self, sample_frame):
        assert infer_data_type(sample_frame["date"]) == DataType.DATETIME
        assert infer_data_type(pd.Series([True, False])) == DataType.BOOLEAN

    def test_empty_object_column_is_string(self):
        assert infer_data_type(pd.Series([None, None], dtype=object)) == DataType.STRING


class TestDataFrameTable:
    """Test the DataFrame-backed table source."""

    def test_schema_counts(self, sample_frame):
        table = DataFrameTable(sample_frame)
        schema = table.schema

        assert schema.row_count == 30
        assert schema.get_column("category").n_unique == 3
        assert schema.get_column("value").is_integer
        assert not schema.get_column("y").is_integer

    def test_continuous_columns(self, sample_frame):
        schema = DataFrameTable(sample_frame).schema

        assert schema.get_column("x").is_continuous(20)
        assert schema.get_column("date").is_continuous(20)
        assert not schema.get_column("category").is_continuous(20)

    def test_unique_values_order(self, sample_frame):
        table = DataFrameTable(sample_frame)

        assert table.unique_values("stage2") == ["middle", "end"]
        assert table.unique_values("stage2", sort=True) == ["end", "middle"]

    def test_frame_is_not_mutated(self, sample_frame):
        before = sample_frame.copy()
        table = DataFrameTable(sample_frame)
        table.schema
        table.client_frame(text_booleans=True)

        pd.testing.assert_frame_equal(sample_frame, before)


class TestClientFrame:
    """Test the frame as it is shipped to the page."""

    def test_temporal_text(self):
        assert temporal_text(pd.Timestamp("2024-01-01")) == "2024-01-01"
        assert temporal_text(np.datetime64("2024-01-01T00:00:00")) == "2024-01-01"
        assert temporal_text(datetime.date(2024, 1, 1)) == "2024-01-01"
        assert temporal_text(datetime.datetime(2024, 1, 1, 6, 30)) == "2024-01-01T06:30:00"

    def test_dates_as_text(self, sample_frame):
        frame = DataFrameTable(sample_frame).client_frame()

        assert frame["date"].iloc[0] == "2024-01-01"
        assert frame["date"].iloc[29] == "2024-01-30"
        assert frame["x"].equals(sample_frame["x"])

    def test_missing_timestamp_stays_missing(self):
        frame = DataFrameTable(pd.DataFrame({"t": pd.to_datetime(["2024-01-01 06:00", None])})).client_frame()
        assert frame["t"].tolist() == ["2024-01-01T06:00:00", None]

    def test_lowercase_booleans(self):
        table = DataFrameTable(pd.DataFrame({"flag": [True, False]}))

        assert table.client_frame(text_booleans=True)["flag"].tolist() == ["true", "false"]
        assert table.client_frame()["flag"].tolist() == [True, False]


class TestAsTable:
    """Test coercion into table sources."""

    def test_accepts_rows(self):
        table = as_table([{"a": 1, "b": "x"}, {"a": 2, "b": "y"}])
        assert table.column_names() == ["a", "b"]
        assert table.column_type("a") == DataType.NUMBER

    def test_passes_tables_through(self, sample_frame):
        table = DataFrameTable(sample_frame)
        assert as_table(table) is table

    def test_rejects_other_types(self):
        with pytest.raises(TypeError):
            as_table("not a table")


class TestTableSchema:
    """Test the schema container."""

    def test_missing_column(self):
        schema = TableSchema()
        schema.add_column(ColumnSpec(name="a", data_type=DataType.STRING))

        assert schema.has_column("a")
        assert schema.column_type("b") is None
        with pytest.raises(KeyError):
            schema.get_column("b")
