"""Canonical records and their builder.

A Record is built once per row against a CanonicalSchema and is read-only
afterwards. The builder enforces the canonical Python representation of
each field type:

- DATE: datetime.date
- TIME_MICROS: datetime.time
- TIMESTAMP_MICROS: timezone-aware datetime in UTC
- DATETIME: naive datetime
- DECIMAL: decimal.Decimal with exactly the field's scale
- INT/LONG: int within 32/64-bit signed range
- FLOAT/DOUBLE: float
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any, Iterator, Mapping

from ..errors import DataReadError
from .models import CanonicalField, CanonicalSchema
from .types import LogicalType, SchemaType

INT_MIN, INT_MAX = -(2**31), 2**31 - 1
LONG_MIN, LONG_MAX = -(2**63), 2**63 - 1


class Record(Mapping[str, Any]):
    """Read-only mapping of field name to value, ordered by schema."""

    __slots__ = ("_schema", "_values")

    def __init__(self, schema: CanonicalSchema, values: dict[str, Any]) -> None:
        self._schema = schema
        self._values = {f.name: values.get(f.name) for f in schema}

    @classmethod
    def builder(cls, schema: CanonicalSchema) -> RecordBuilder:
        return RecordBuilder(schema)

    @property
    def schema(self) -> CanonicalSchema:
        return self._schema

    def __getitem__(self, name: str) -> Any:
        if name in self._values:
            return self._values[name]
        schema_field = self._schema.get_field(name)
        if schema_field is None:
            raise KeyError(name)
        return self._values[schema_field.name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"Record({self._values!r})"


class RecordBuilder:
    """Accumulates converted field values and produces a Record."""

    def __init__(self, schema: CanonicalSchema) -> None:
        self.schema = schema
        self._values: dict[str, Any] = {}

    def set(self, name: str, value: Any) -> RecordBuilder:
        """Set a field value after checking it against the field type.

        Raises:
            DataReadError: If the field is unknown or the value does not
                have the field's canonical representation
        """
        schema_field = self.schema.get_field(name)
        if schema_field is None:
            raise DataReadError(f"Field '{name}' is not present in the schema", field=name)
        self._values[schema_field.name] = (
            None if value is None else _check_value(schema_field, value)
        )
        return self

    def build(self) -> Record:
        """Build the record.

        Raises:
            DataReadError: If a non-nullable field has no value
        """
        for schema_field in self.schema:
            if not schema_field.nullable and self._values.get(schema_field.name) is None:
                if schema_field.type is SchemaType.NULL:
                    continue
                raise DataReadError(
                    f"Unexpected null in non-nullable field '{schema_field.name}'",
                    field=schema_field.name,
                )
        return Record(self.schema, self._values)


def _check_value(schema_field: CanonicalField, value: Any) -> Any:
    logical = schema_field.logical_type
    if logical is LogicalType.DECIMAL:
        return _check_decimal(schema_field, value)
    if logical is LogicalType.DATE:
        if isinstance(value, date) and not isinstance(value, datetime):
            return value
    elif logical is LogicalType.TIME_MICROS:
        if isinstance(value, time):
            return value
    elif logical is LogicalType.TIMESTAMP_MICROS:
        if isinstance(value, datetime):
            if value.tzinfo is None:
                return value.replace(tzinfo=timezone.utc)
            return value.astimezone(timezone.utc)
    elif logical is LogicalType.DATETIME:
        if isinstance(value, datetime) and value.tzinfo is None:
            return value
    else:
        return _check_primitive(schema_field, value)

    raise _mismatch(schema_field, value)


def _check_primitive(schema_field: CanonicalField, value: Any) -> Any:
    schema_type = schema_field.type
    if schema_type is SchemaType.BOOLEAN and isinstance(value, bool):
        return value
    if schema_type in (SchemaType.INT, SchemaType.LONG):
        if isinstance(value, int) and not isinstance(value, bool):
            low, high = (
                (INT_MIN, INT_MAX) if schema_type is SchemaType.INT else (LONG_MIN, LONG_MAX)
            )
            if not low <= value <= high:
                raise DataReadError(
                    f"Value {value} is out of range for {schema_type.value} "
                    f"field '{schema_field.name}'",
                    field=schema_field.name,
                )
            return value
    elif schema_type in (SchemaType.FLOAT, SchemaType.DOUBLE):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    elif schema_type is SchemaType.STRING and isinstance(value, str):
        return value
    elif schema_type is SchemaType.BYTES and isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    raise _mismatch(schema_field, value)


def _check_decimal(schema_field: CanonicalField, value: Any) -> Decimal:
    if not isinstance(value, Decimal):
        raise _mismatch(schema_field, value)
    exponent = value.as_tuple().exponent
    if not isinstance(exponent, int):
        raise DataReadError(
            f"Value {value} cannot be stored in decimal field '{schema_field.name}'",
            field=schema_field.name,
        )
    if -exponent != schema_field.scale:
        raise DataReadError(
            f"Value scale {-exponent} does not match the scale {schema_field.scale} "
            f"of decimal field '{schema_field.name}'",
            field=schema_field.name,
        )
    digits = len(value.as_tuple().digits)
    if schema_field.precision is not None and digits > schema_field.precision:
        raise DataReadError(
            f"Value {value} has precision {digits} which exceeds the precision "
            f"{schema_field.precision} of decimal field '{schema_field.name}'",
            field=schema_field.name,
        )
    return value


def _mismatch(schema_field: CanonicalField, value: Any) -> DataReadError:
    return DataReadError(
        f"Value of type '{type(value).__name__}' does not match "
        f"{schema_field.display_type} field '{schema_field.name}'",
        field=schema_field.name,
    )
