"""Fields validator.

Checks every field of an input schema against the columns of an existing
table and collects all problems before reporting them, so a single run
shows every mismatched field.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from ..errors import ValidationFailure
from ..schema.models import CanonicalField, CanonicalSchema, ColumnDescriptor
from ..schema.types import (
    BINARY_TYPES,
    DECIMAL_TYPES,
    INTEGER_TYPES,
    STRING_TYPES,
    LogicalType,
    SchemaType,
    SqlType,
)

logger = logging.getLogger(__name__)


class IncompatibilityKind(str, Enum):
    """Reason a field cannot be written to its column."""

    MISSING_COLUMN = "missing_column"
    NULLABILITY = "nullability"
    TYPE = "type"


@dataclass(frozen=True)
class Incompatibility:
    """A single field/column mismatch."""

    field_name: str
    kind: IncompatibilityKind
    expected: str
    actual: str | None
    message: str


class FieldsValidator:
    """Decides per-field write compatibility using a type matrix.

    Dialect validators extend is_type_compatible() with their vendor type
    codes and call super() for everything else.
    """

    def validate(
        self, schema: CanonicalSchema, columns: Sequence[ColumnDescriptor]
    ) -> list[Incompatibility]:
        """Collect every incompatibility between schema and table columns.

        Args:
            schema: Input schema to be written
            columns: Column descriptors of the target table

        Returns:
            List of incompatibilities, empty if every field is writable
        """
        by_name = {c.name.casefold(): c for c in columns}
        problems: list[Incompatibility] = []

        for schema_field in schema:
            column = by_name.get(schema_field.name.casefold())
            if column is None:
                message = f"Missing column '{schema_field.name}' in SQL table"
                logger.error(message)
                problems.append(
                    Incompatibility(
                        field_name=schema_field.name,
                        kind=IncompatibilityKind.MISSING_COLUMN,
                        expected=schema_field.display_type,
                        actual=None,
                        message=message,
                    )
                )
                continue

            if not self.is_nullability_compatible(schema_field, column):
                message = (
                    f"Field '{schema_field.name}' was given as nullable but the "
                    "database column is not nullable"
                )
                logger.error(message)
                problems.append(
                    Incompatibility(
                        field_name=schema_field.name,
                        kind=IncompatibilityKind.NULLABILITY,
                        expected=schema_field.display_type,
                        actual=column.type_label,
                        message=message,
                    )
                )

            if not self.is_type_compatible(schema_field, column):
                message = (
                    f"Field '{schema_field.name}' was given as type "
                    f"'{schema_field.display_type}' but the database column is "
                    f"actually of type '{column.type_label}'."
                )
                logger.error(message)
                problems.append(
                    Incompatibility(
                        field_name=schema_field.name,
                        kind=IncompatibilityKind.TYPE,
                        expected=schema_field.display_type,
                        actual=column.type_label,
                        message=message,
                    )
                )

        return problems

    def validate_or_raise(
        self, schema: CanonicalSchema, columns: Sequence[ColumnDescriptor]
    ) -> None:
        """Validate and raise once with every offending field named.

        Raises:
            ValidationFailure: If any field is incompatible
        """
        problems = self.validate(schema, columns)
        if problems:
            names = ",".join(dict.fromkeys(p.field_name for p in problems))
            raise ValidationFailure(
                "Couldn't find matching database column(s) for input field(s) "
                f"'{names}'.",
                incompatibilities=problems,
            )

    def is_field_compatible(
        self, schema_field: CanonicalField, column: ColumnDescriptor
    ) -> bool:
        return self.is_nullability_compatible(
            schema_field, column
        ) and self.is_type_compatible(schema_field, column)

    def is_nullability_compatible(
        self, schema_field: CanonicalField, column: ColumnDescriptor
    ) -> bool:
        # A non-nullable field on a nullable column is fine
        return column.nullable or not schema_field.nullable

    def is_type_compatible(
        self, schema_field: CanonicalField, column: ColumnDescriptor
    ) -> bool:
        """Default compatibility matrix, logical types first."""
        code = column.type_code
        logical = schema_field.logical_type

        if logical is not None:
            if logical is LogicalType.DATE:
                return code == SqlType.DATE
            if logical is LogicalType.TIME_MICROS:
                return code == SqlType.TIME
            if logical is LogicalType.TIMESTAMP_MICROS:
                return code == SqlType.TIMESTAMP
            if logical is LogicalType.DATETIME:
                return code == SqlType.TIMESTAMP
            if logical is LogicalType.DECIMAL:
                return code in DECIMAL_TYPES or (
                    code == SqlType.BIGINT and not column.signed
                )

        schema_type = schema_field.type
        if schema_type is SchemaType.NULL:
            return True
        if schema_type is SchemaType.BOOLEAN:
            return code in (SqlType.BOOLEAN, SqlType.BIT)
        if schema_type is SchemaType.INT:
            return code in INTEGER_TYPES
        if schema_type is SchemaType.LONG:
            return code == SqlType.BIGINT or (
                code == SqlType.INTEGER and not column.signed
            )
        if schema_type is SchemaType.FLOAT:
            return code in (SqlType.REAL, SqlType.FLOAT)
        if schema_type is SchemaType.DOUBLE:
            return code == SqlType.DOUBLE
        if schema_type is SchemaType.BYTES:
            return code in BINARY_TYPES
        if schema_type is SchemaType.STRING:
            return code in STRING_TYPES
        return False
