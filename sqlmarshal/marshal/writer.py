"""Record marshaller, write path.

Binds the field values of a canonical Record to the positional parameters
of a prepared INSERT, UPDATE or UPSERT statement. The column-type binding
is expected to have been validated against the target table; no type
compatibility inference happens here, only value conversion.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Sequence

from ..errors import DataWriteError
from ..schema.models import CanonicalField, ColumnType
from ..schema.record import Record
from ..schema.types import LogicalType, SchemaType, type_code_name
from .conversions import to_naive_utc

logger = logging.getLogger(__name__)


class Operation(str, Enum):
    """Write operations supported by sinks."""

    INSERT = "insert"
    UPDATE = "update"
    UPSERT = "upsert"


@dataclass(frozen=True)
class BoundParameter:
    """A single positional parameter value and its target SQL type."""

    value: Any
    type_code: int

    @property
    def is_null(self) -> bool:
        return self.value is None


class BoundStatement:
    """Positional parameters allocated for one statement execution.

    Parameters are addressed by zero-based position and exposed to
    SQLAlchemy as named parameters p0, p1, ... via as_params().
    """

    def __init__(self, size: int) -> None:
        self._parameters: list[BoundParameter | None] = [None] * size

    def set_value(self, index: int, value: Any, type_code: int) -> None:
        self._parameters[index] = BoundParameter(value, type_code)

    def set_null(self, index: int, type_code: int) -> None:
        self._parameters[index] = BoundParameter(None, type_code)

    def __getitem__(self, index: int) -> BoundParameter | None:
        return self._parameters[index]

    def __len__(self) -> int:
        return len(self._parameters)

    @property
    def values(self) -> list[Any]:
        return [p.value if p is not None else None for p in self._parameters]

    def is_complete(self) -> bool:
        return all(p is not None for p in self._parameters)

    def as_params(self) -> dict[str, Any]:
        return {param_name(i): value for i, value in enumerate(self.values)}


def param_name(index: int) -> str:
    return f"p{index}"


def statement_size(
    column_types: Sequence[ColumnType],
    operation: Operation,
    key_columns: Sequence[str] = (),
) -> int:
    """Number of parameters a statement for this binding needs."""
    if operation is Operation.UPDATE:
        return len(column_types) + len(key_columns)
    return len(column_types)


class RecordWriter:
    """Default record to bound statement conversion."""

    def write_row(
        self,
        statement: BoundStatement,
        record: Record,
        column_types: Sequence[ColumnType],
        operation: Operation = Operation.INSERT,
        key_columns: Sequence[str] = (),
        field_names: Mapping[str, str] | None = None,
    ) -> None:
        """Bind a record to the statement's parameters.

        Args:
            statement: Statement with parameters allocated for the binding
            record: Record to write
            column_types: Column-type binding of the target table
            operation: INSERT, UPDATE or UPSERT
            key_columns: Key columns for UPDATE, appended as WHERE params
            field_names: Optional physical column name to record field name
                mapping, for columns whose field has a different name

        Raises:
            DataWriteError: If a value cannot be bound to its column
        """
        for index, column in enumerate(column_types):
            field_name = self._field_name(column.name, field_names)
            self.write_to_db(statement, record, field_name, index, column)

        if operation is Operation.UPDATE:
            positions = {c.name.casefold(): c for c in column_types}
            for offset, key in enumerate(key_columns):
                column = positions.get(key.casefold())
                if column is None:
                    raise DataWriteError(f"Missing key column '{key}' in SQL table", column=key)
                self.write_to_db(
                    statement,
                    record,
                    self._field_name(column.name, field_names),
                    len(column_types) + offset,
                    column,
                )

    @staticmethod
    def _field_name(column_name: str, field_names: Mapping[str, str] | None) -> str:
        if field_names:
            return field_names.get(column_name, column_name)
        return column_name

    def write_to_db(
        self,
        statement: BoundStatement,
        record: Record,
        field_name: str,
        index: int,
        column: ColumnType,
    ) -> None:
        schema_field = record.schema.get_field(field_name)
        value = record.get(schema_field.name) if schema_field is not None else None
        if schema_field is None or value is None:
            self.write_null(statement, schema_field, index, column)
            return
        try:
            self.write_value(statement, schema_field, value, index, column)
        except DataWriteError:
            raise
        except (ValueError, TypeError, ArithmeticError) as e:
            raise DataWriteError(
                f"Failed to write field '{schema_field.name}' to column '{column.name}' "
                f"of type {column.type_name or type_code_name(column.type_code)}: {e}",
                field=schema_field.name,
                column=column.name,
            ) from e

    def write_null(
        self,
        statement: BoundStatement,
        schema_field: CanonicalField | None,
        index: int,
        column: ColumnType,
    ) -> None:
        statement.set_null(index, column.type_code)

    def write_value(
        self,
        statement: BoundStatement,
        schema_field: CanonicalField,
        value: Any,
        index: int,
        column: ColumnType,
    ) -> None:
        """Bind a non-null value. Dialects override this for vendor types."""
        converted = self.convert_value(schema_field, value, column)
        statement.set_value(index, converted, column.type_code)

    def convert_value(
        self, schema_field: CanonicalField, value: Any, column: ColumnType
    ) -> Any:
        logical = schema_field.logical_type
        if logical is LogicalType.DATE:
            return _expect(schema_field, column, value, date, exclude=datetime)
        if logical is LogicalType.TIME_MICROS:
            return _expect(schema_field, column, value, time)
        if logical is LogicalType.TIMESTAMP_MICROS:
            return to_naive_utc(_expect(schema_field, column, value, datetime))
        if logical is LogicalType.DATETIME:
            return _expect(schema_field, column, value, datetime)
        if logical is LogicalType.DECIMAL:
            return _expect(schema_field, column, value, Decimal)

        schema_type = schema_field.type
        if schema_type is SchemaType.STRING:
            return _expect(schema_field, column, value, str)
        if schema_type is SchemaType.BOOLEAN:
            return _expect(schema_field, column, value, bool)
        if schema_type in (SchemaType.INT, SchemaType.LONG):
            return _expect(schema_field, column, value, int, exclude=bool)
        if schema_type in (SchemaType.FLOAT, SchemaType.DOUBLE):
            return float(_expect(schema_field, column, value, (int, float), exclude=bool))
        if schema_type is SchemaType.BYTES:
            return bytes(_expect(schema_field, column, value, (bytes, bytearray, memoryview)))
        raise DataWriteError(
            "Only simple types are supported (boolean, int, long, float, double, "
            f"string, bytes) for writing, but found '{schema_field.display_type}' "
            f"as the type for column '{column.name}'. Please remove this column "
            "or transform it to a simple type.",
            field=schema_field.name,
            column=column.name,
        )


def _expect(
    schema_field: CanonicalField,
    column: ColumnType,
    value: Any,
    expected: type | tuple[type, ...],
    exclude: type | None = None,
) -> Any:
    if isinstance(value, expected) and not (exclude and isinstance(value, exclude)):
        return value
    raise DataWriteError(
        f"Field '{schema_field.name}' of type {schema_field.display_type} holds a "
        f"'{type(value).__name__}' value which cannot be written to column "
        f"'{column.name}'",
        field=schema_field.name,
        column=column.name,
    )
