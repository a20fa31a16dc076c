"""Tests for the read-path record marshaller."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from sqlmarshal.errors import DataReadError
from sqlmarshal.marshal import RecordReader, RowCursor
from sqlmarshal.schema import CanonicalField, CanonicalSchema, LogicalType, SchemaType, SqlType


def read(columns, row, schema, reader=None):
    return (reader or RecordReader()).read_row(RowCursor(columns, row), schema)


class TestRowCursor:
    """Tests for the fetched-row cursor."""

    def test_find_column_ignores_case(self, column) -> None:
        """Columns are found by name regardless of case."""
        cursor = RowCursor([column("Id"), column("Name")], (1, "a"))
        assert cursor.find_column("name") == 1
        assert cursor.get_value(1) == "a"

    def test_missing_column(self, column) -> None:
        """Unknown columns raise DataReadError."""
        cursor = RowCursor([column("id")])
        with pytest.raises(DataReadError, match="Column 'nope' is not present"):
            cursor.find_column("nope")

    def test_advance_reuses_positions(self, column) -> None:
        """The same cursor reads successive rows."""
        cursor = RowCursor([column("id")])
        assert cursor.advance((1,)).get_value(0) == 1
        assert cursor.advance((2,)).get_value(0) == 2


class TestReadRow:
    """Tests for the default conversions."""

    def test_reads_by_name_not_position(self, column) -> None:
        """Schema order may differ from result order."""
        columns = [column("a", SqlType.INTEGER), column("b", SqlType.VARCHAR)]
        schema = CanonicalSchema.of(
            CanonicalField.of("b", SchemaType.STRING),
            CanonicalField.of("a", SchemaType.INT),
        )
        record = read(columns, (5, "x"), schema)
        assert dict(record) == {"b": "x", "a": 5}

    def test_null_values(self, column) -> None:
        """NULL becomes None for nullable fields."""
        columns = [column("a", SqlType.INTEGER)]
        schema = CanonicalSchema.of(CanonicalField.of("a", SchemaType.INT, nullable=True))
        assert read(columns, (None,), schema)["a"] is None

    def test_decimal_rescaled_half_even(self, column) -> None:
        """Decimals are rescaled to the field scale with banker's rounding."""
        columns = [column("p", SqlType.NUMERIC, precision=10, scale=4)]
        schema = CanonicalSchema.of(CanonicalField.decimal("p", 10, 2))
        assert read(columns, (Decimal("1.0050"),), schema)["p"] == Decimal("1.00")
        assert read(columns, (Decimal("1.0150"),), schema)["p"] == Decimal("1.02")

    def test_numeric_into_long(self, column) -> None:
        """Whole NUMERIC values can be read into LONG fields."""
        columns = [column("n", SqlType.NUMERIC, precision=19)]
        schema = CanonicalSchema.of(CanonicalField.of("n", SchemaType.LONG))
        assert read(columns, (Decimal("42"),), schema)["n"] == 42

    def test_fractional_numeric_into_long_fails(self, column) -> None:
        """Fractions are not silently truncated."""
        columns = [column("n", SqlType.NUMERIC, precision=19, scale=2)]
        schema = CanonicalSchema.of(CanonicalField.of("n", SchemaType.LONG))
        with pytest.raises(DataReadError, match="Failed to read column 'n'"):
            read(columns, (Decimal("4.5"),), schema)

    def test_timestamp_as_utc(self, column) -> None:
        """Naive timestamps are taken as UTC."""
        columns = [column("ts", SqlType.TIMESTAMP)]
        schema = CanonicalSchema.of(CanonicalField.logical("ts", LogicalType.TIMESTAMP_MICROS))
        record = read(columns, (datetime(2024, 5, 1, 8, 30),), schema)
        assert record["ts"] == datetime(2024, 5, 1, 8, 30, tzinfo=timezone.utc)

    def test_timestamp_into_datetime(self, column) -> None:
        """DATETIME fields keep the wall-clock value."""
        columns = [column("ts", SqlType.TIMESTAMP)]
        schema = CanonicalSchema.of(CanonicalField.logical("ts", LogicalType.DATETIME))
        record = read(columns, ("2024-05-01 08:30:00.1234567",), schema)
        assert record["ts"] == datetime(2024, 5, 1, 8, 30, 0, 123456)

    def test_time_from_timedelta(self, column) -> None:
        """Drivers returning timedelta for TIME are supported."""
        columns = [column("t", SqlType.TIME)]
        schema = CanonicalSchema.of(CanonicalField.logical("t", LogicalType.TIME_MICROS))
        record = read(columns, (timedelta(hours=13, minutes=5, microseconds=7),), schema)
        assert record["t"] == time(13, 5, 0, 7)

    def test_date_from_string(self, column) -> None:
        """ISO date strings are parsed."""
        columns = [column("d", SqlType.DATE)]
        schema = CanonicalSchema.of(CanonicalField.logical("d", LogicalType.DATE))
        assert read(columns, ("2024-02-29",), schema)["d"] == date(2024, 2, 29)

    def test_lob_values_are_read(self, column) -> None:
        """Large-object handles are materialized."""
        lob = MagicMock()
        lob.read.return_value = b"data"
        columns = [column("b", SqlType.BLOB)]
        schema = CanonicalSchema.of(CanonicalField.of("b", SchemaType.BYTES))
        assert read(columns, (lob,), schema)["b"] == b"data"

    def test_boolean_from_bit(self, column) -> None:
        """Integer and single-byte BIT values become booleans."""
        columns = [column("f", SqlType.BIT), column("g", SqlType.BIT)]
        schema = CanonicalSchema.of(
            CanonicalField.of("f", SchemaType.BOOLEAN),
            CanonicalField.of("g", SchemaType.BOOLEAN),
        )
        record = read(columns, (1, b"\x00"), schema)
        assert record["f"] is True
        assert record["g"] is False

    def test_error_names_column(self, column) -> None:
        """Conversion failures name the field and column."""
        columns = [column("n", SqlType.INTEGER)]
        schema = CanonicalSchema.of(CanonicalField.of("n", SchemaType.INT))
        with pytest.raises(DataReadError) as info:
            read(columns, ("abc",), schema)
        assert info.value.field == "n"
        assert info.value.column == "n"


class TestSequentialStreams:
    """Tests for the read order of streamed columns."""

    def test_streamed_columns_read_first(self, column) -> None:
        """Sequential-stream columns are drained before the others, in column order."""
        order: list[str] = []

        class TrackingReader(RecordReader):
            sequential_stream_types = frozenset({SqlType.LONGVARCHAR})

            def handle_field(self, cursor, builder, schema_field, index, column):
                order.append(schema_field.name)
                super().handle_field(cursor, builder, schema_field, index, column)

        columns = [
            column("a", SqlType.INTEGER),
            column("long2", SqlType.LONGVARCHAR),
            column("b", SqlType.INTEGER),
            column("long1", SqlType.LONGVARCHAR),
        ]
        schema = CanonicalSchema.of(
            CanonicalField.of("long1", SchemaType.STRING),
            CanonicalField.of("b", SchemaType.INT),
            CanonicalField.of("a", SchemaType.INT),
            CanonicalField.of("long2", SchemaType.STRING),
        )
        record = read(columns, (1, "x", 2, "y"), schema, TrackingReader())
        assert order == ["long2", "long1", "b", "a"]
        assert list(record) == ["long1", "b", "a", "long2"]
