"""Record marshaller, read path.

Converts a positioned result row into a canonical Record. Dialect readers
subclass RecordReader and override handle_field() for the SQL types the
default conversion cannot represent faithfully.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import ROUND_HALF_EVEN
from typing import Any, Protocol, Sequence

from ..errors import DataReadError
from ..schema.models import CanonicalField, CanonicalSchema, ColumnDescriptor
from ..schema.record import Record, RecordBuilder
from ..schema.types import DECIMAL_TYPES, LogicalType, SchemaType, SqlType
from . import conversions

logger = logging.getLogger(__name__)


class ResultCursor(Protocol):
    """A positioned result row and its column metadata."""

    columns: Sequence[ColumnDescriptor]

    def find_column(self, name: str) -> int:
        """Zero-based position of a column, matched case-insensitively."""
        ...

    def get_value(self, index: int) -> Any:
        """Driver-native value of the column at ``index``."""
        ...


class RowCursor:
    """ResultCursor over an already fetched row.

    The same cursor can be re-pointed at each row of a result with
    advance(), so column lookups are resolved once per query.
    """

    def __init__(
        self, columns: Sequence[ColumnDescriptor], row: Sequence[Any] = ()
    ) -> None:
        self.columns = list(columns)
        self._positions = {c.name.casefold(): i for i, c in enumerate(self.columns)}
        self._row = row

    def advance(self, row: Sequence[Any]) -> RowCursor:
        self._row = row
        return self

    def find_column(self, name: str) -> int:
        position = self._positions.get(name.casefold())
        if position is None:
            raise DataReadError(f"Column '{name}' is not present in the result", column=name)
        return position

    def get_value(self, index: int) -> Any:
        return self._row[index]


class RecordReader:
    """Default row to record conversion.

    Attributes:
        sequential_stream_types: SQL type codes whose values must be read
            before any other column of the row
        decimal_rounding: Rounding used when rescaling decimals to the
            field's declared scale
    """

    sequential_stream_types: frozenset[int] = frozenset()
    decimal_rounding: str = ROUND_HALF_EVEN

    def read_row(self, cursor: ResultCursor, schema: CanonicalSchema) -> Record:
        """Build a Record from the cursor's current row.

        Sequential-stream columns are drained first in column order, then
        the remaining fields are read in schema order.

        Raises:
            DataReadError: If any column value cannot be converted; no
                partial record is returned
        """
        builder = Record.builder(schema)
        positions = [(f, cursor.find_column(f.name)) for f in schema]

        streamed = sorted(
            (
                (index, schema_field)
                for schema_field, index in positions
                if cursor.columns[index].type_code in self.sequential_stream_types
            ),
            key=lambda item: item[0],
        )
        for index, schema_field in streamed:
            self._read_field(cursor, builder, schema_field, index)

        done = {index for index, _ in streamed}
        for schema_field, index in positions:
            if index not in done:
                self._read_field(cursor, builder, schema_field, index)

        return builder.build()

    def _read_field(
        self,
        cursor: ResultCursor,
        builder: RecordBuilder,
        schema_field: CanonicalField,
        index: int,
    ) -> None:
        column = cursor.columns[index]
        try:
            self.handle_field(cursor, builder, schema_field, index, column)
        except DataReadError as e:
            if e.column is None:
                e.column = column.name
            raise
        except (ValueError, TypeError, ArithmeticError, OSError) as e:
            raise DataReadError(
                f"Failed to read column '{column.name}' of type {column.type_label} "
                f"into field '{schema_field.name}': {e}",
                field=schema_field.name,
                column=column.name,
            ) from e

    def handle_field(
        self,
        cursor: ResultCursor,
        builder: RecordBuilder,
        schema_field: CanonicalField,
        index: int,
        column: ColumnDescriptor,
    ) -> None:
        """Convert and set a single field. Dialects override this."""
        self.set_field(cursor, builder, schema_field, index, column)

    def set_field(
        self,
        cursor: ResultCursor,
        builder: RecordBuilder,
        schema_field: CanonicalField,
        index: int,
        column: ColumnDescriptor,
    ) -> None:
        value = cursor.get_value(index)
        builder.set(schema_field.name, self.transform_value(value, schema_field, column))

    def transform_value(
        self, value: Any, schema_field: CanonicalField, column: ColumnDescriptor
    ) -> Any:
        """Materialize a driver value and convert it to the field's type."""
        if value is None:
            return None

        code = column.type_code
        if code in (SqlType.BLOB, SqlType.LONGVARBINARY, SqlType.BINARY, SqlType.VARBINARY):
            value = conversions.to_bytes(value)
        elif code in (SqlType.CLOB, SqlType.NCLOB):
            value = conversions.to_text(value)
        elif code == SqlType.ROWID:
            value = conversions.to_text(value)
        elif code == SqlType.TIME:
            value = conversions.to_time(value)
        elif code == SqlType.DATE and schema_field.logical_type is LogicalType.DATE:
            value = conversions.to_date(value)
        elif code in DECIMAL_TYPES and schema_field.logical_type is None:
            value = self.convert_numeric(value, schema_field)

        return self.coerce(value, schema_field)

    def convert_numeric(self, value: Any, schema_field: CanonicalField) -> Any:
        """Convert a NUMERIC/DECIMAL value read into a non-decimal field."""
        if schema_field.type in (SchemaType.INT, SchemaType.LONG):
            return conversions.to_integer(value)
        if schema_field.type in (SchemaType.FLOAT, SchemaType.DOUBLE):
            return conversions.to_float(value)
        return value

    def coerce(self, value: Any, schema_field: CanonicalField) -> Any:
        """Convert an already materialized value to the canonical type."""
        if value is None:
            return None

        logical = schema_field.logical_type
        if logical is LogicalType.DECIMAL:
            return conversions.to_decimal(value, schema_field.scale or 0, self.decimal_rounding)
        if logical is LogicalType.DATE:
            return conversions.to_date(value)
        if logical is LogicalType.TIME_MICROS:
            return conversions.to_time(value)
        if logical is LogicalType.TIMESTAMP_MICROS:
            return conversions.to_utc_timestamp(value)
        if logical is LogicalType.DATETIME:
            return conversions.to_local_datetime(value)

        schema_type = schema_field.type
        if schema_type in (SchemaType.INT, SchemaType.LONG):
            return conversions.to_integer(value)
        if schema_type in (SchemaType.FLOAT, SchemaType.DOUBLE):
            return conversions.to_float(value)
        if schema_type is SchemaType.STRING:
            return conversions.to_text(value)
        if schema_type is SchemaType.BYTES:
            return conversions.to_bytes(value)
        if schema_type is SchemaType.BOOLEAN:
            if isinstance(value, (bool, int)):
                return bool(value)
            if isinstance(value, (bytes, bytearray)) and len(value) == 1:
                return value != b"\x00"
            raise TypeError(f"Expected a boolean but got '{type(value).__name__}'")
        return value


def is_datetime_field(schema_field: CanonicalField) -> bool:
    return schema_field.logical_type is LogicalType.DATETIME


def local_or_utc(value: datetime, schema_field: CanonicalField) -> datetime:
    """Naive wall-clock datetime for DATETIME fields, UTC instant otherwise."""
    if is_datetime_field(schema_field):
        return conversions.to_local_datetime(value)
    return conversions.to_utc_timestamp(value)
