"""Default schema reader.

Maps driver column metadata to canonical fields. Dialect readers subclass
SchemaReader and intercept their vendor types in get_schema() before
delegating to the default mapping.
"""

from __future__ import annotations

import logging
from typing import Sequence

from ..errors import SchemaInferenceError
from .models import CanonicalField, CanonicalSchema, ColumnDescriptor
from .types import (
    BINARY_TYPES,
    DECIMAL_TYPES,
    UNSUPPORTED_TYPES,
    LogicalType,
    SchemaType,
    SqlType,
)

logger = logging.getLogger(__name__)


class SchemaReader:
    """Infers canonical fields from column descriptors.

    get_schema() is a pure function of the metadata and is called once per
    column when a query or table is described, never per row.
    """

    def get_schema(
        self, columns: Sequence[ColumnDescriptor], index: int
    ) -> CanonicalField:
        """Map one column to a non-nullable canonical field.

        Args:
            columns: Column descriptors of the query or table
            index: Zero-based column position

        Returns:
            CanonicalField named after the column

        Raises:
            SchemaInferenceError: If the SQL type has no canonical mapping
        """
        column = columns[index]
        code = column.type_code
        name = column.name

        if code == SqlType.NULL:
            return CanonicalField.of(name, SchemaType.NULL)
        if code == SqlType.ROWID:
            return CanonicalField.of(name, SchemaType.STRING)
        if code in (SqlType.BOOLEAN, SqlType.BIT):
            return CanonicalField.of(name, SchemaType.BOOLEAN)
        if code in (SqlType.TINYINT, SqlType.SMALLINT):
            return CanonicalField.of(name, SchemaType.INT)
        if code == SqlType.INTEGER:
            # Unsigned INT values go up to 2^32 - 1
            schema_type = SchemaType.INT if column.signed else SchemaType.LONG
            return CanonicalField.of(name, schema_type)
        if code == SqlType.BIGINT:
            if column.signed:
                return CanonicalField.of(name, SchemaType.LONG)
            # Unsigned BIGINT values go up to 2^64 - 1
            return CanonicalField.decimal(name, column.precision or 20, 0)
        if code in (SqlType.REAL, SqlType.FLOAT):
            return CanonicalField.of(name, SchemaType.FLOAT)
        if code in DECIMAL_TYPES:
            return self.get_decimal_schema(column)
        if code == SqlType.DOUBLE:
            return CanonicalField.of(name, SchemaType.DOUBLE)
        if code == SqlType.DATE:
            return CanonicalField.logical(name, LogicalType.DATE)
        if code == SqlType.TIME:
            return CanonicalField.logical(name, LogicalType.TIME_MICROS)
        if code == SqlType.TIMESTAMP:
            return CanonicalField.logical(name, LogicalType.TIMESTAMP_MICROS)
        if code in BINARY_TYPES:
            return CanonicalField.of(name, SchemaType.BYTES)
        if code in UNSUPPORTED_TYPES:
            raise SchemaInferenceError(
                f"Column {name} has unsupported SQL type of {code}.",
                column=name,
            )
        return CanonicalField.of(name, SchemaType.STRING)

    def get_decimal_schema(self, column: ColumnDescriptor) -> CanonicalField:
        """Map a NUMERIC/DECIMAL column using its reported precision and scale."""
        return CanonicalField.decimal(column.name, column.precision, column.scale)

    def should_ignore_column(
        self, columns: Sequence[ColumnDescriptor], index: int
    ) -> bool:
        return False

    def get_schema_fields(
        self, columns: Sequence[ColumnDescriptor]
    ) -> list[CanonicalField]:
        """Map every non-ignored column, honouring column nullability."""
        fields = []
        for index, column in enumerate(columns):
            if self.should_ignore_column(columns, index):
                continue
            schema_field = self.get_schema(columns, index)
            if column.nullable:
                schema_field = schema_field.as_nullable()
            fields.append(schema_field)
        return fields

    def get_schema_from(self, columns: Sequence[ColumnDescriptor]) -> CanonicalSchema:
        return CanonicalSchema.from_fields(self.get_schema_fields(columns))


class SessionColumnsMixin:
    """Skips the helper columns added by a sampling session.

    Sampling queries add 'c_<session>' and 'sqn_<session>' columns which
    are not part of the user's data.
    """

    session_id: str | None = None

    def should_ignore_column(
        self, columns: Sequence[ColumnDescriptor], index: int
    ) -> bool:
        if self.session_id is None:
            return False
        name = columns[index].name
        helpers = (f"c_{self.session_id}", f"sqn_{self.session_id}")
        return name.casefold() in (h.casefold() for h in helpers)


def warn_undefined_precision(column: ColumnDescriptor) -> None:
    """Log the advisory for numerics reported without precision or scale."""
    logger.warning(
        f"{column.type_label} type with undefined precision and scale is detected, "
        "there may be a precision loss while running the pipeline. "
        "Please define an output precision and scale for field "
        f"'{column.name}' to avoid precision loss."
    )
