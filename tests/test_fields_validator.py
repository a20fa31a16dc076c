"""Tests for the fields validator."""

from __future__ import annotations

import logging

import pytest

from sqlmarshal.errors import ValidationFailure
from sqlmarshal.schema import CanonicalField, CanonicalSchema, LogicalType, SchemaType, SqlType
from sqlmarshal.validation import FieldsValidator, IncompatibilityKind


class TestIsTypeCompatible:
    """Tests for the default compatibility matrix."""

    @pytest.mark.parametrize(
        "field,type_code,expected",
        [
            (CanonicalField.of("f", SchemaType.INT), SqlType.SMALLINT, True),
            (CanonicalField.of("f", SchemaType.INT), SqlType.BIGINT, False),
            (CanonicalField.of("f", SchemaType.LONG), SqlType.BIGINT, True),
            (CanonicalField.of("f", SchemaType.FLOAT), SqlType.REAL, True),
            (CanonicalField.of("f", SchemaType.DOUBLE), SqlType.FLOAT, False),
            (CanonicalField.of("f", SchemaType.STRING), SqlType.NVARCHAR, True),
            (CanonicalField.of("f", SchemaType.STRING), SqlType.INTEGER, False),
            (CanonicalField.of("f", SchemaType.BYTES), SqlType.BLOB, True),
            (CanonicalField.of("f", SchemaType.BOOLEAN), SqlType.BIT, True),
            (CanonicalField.of("f", SchemaType.NULL), SqlType.INTEGER, True),
            (CanonicalField.logical("f", LogicalType.DATE), SqlType.DATE, True),
            (CanonicalField.logical("f", LogicalType.DATE), SqlType.TIMESTAMP, False),
            (CanonicalField.logical("f", LogicalType.TIME_MICROS), SqlType.TIME, True),
            (CanonicalField.logical("f", LogicalType.DATETIME), SqlType.TIMESTAMP, True),
            (CanonicalField.decimal("f", 10, 2), SqlType.DECIMAL, True),
            (CanonicalField.decimal("f", 10, 2), SqlType.DOUBLE, False),
        ],
    )
    def test_matrix(self, column, field, type_code, expected) -> None:
        """Each field type accepts its family of column codes."""
        assert FieldsValidator().is_type_compatible(field, column("f", type_code)) is expected

    def test_unsigned_integers(self, column) -> None:
        """Unsigned columns accept the wider canonical types."""
        validator = FieldsValidator()
        long_field = CanonicalField.of("f", SchemaType.LONG)
        assert validator.is_type_compatible(long_field, column("f", SqlType.INTEGER, signed=False))
        decimal_field = CanonicalField.decimal("f", 20, 0)
        unsigned_bigint = column("f", SqlType.BIGINT, signed=False)
        assert validator.is_type_compatible(decimal_field, unsigned_bigint)


class TestValidate:
    """Tests for whole-schema validation."""

    def test_collects_every_problem(self, column) -> None:
        """All incompatibilities are reported at once."""
        schema = CanonicalSchema.of(
            CanonicalField.of("id", SchemaType.INT),
            CanonicalField.of("missing", SchemaType.STRING),
            CanonicalField.of("name", SchemaType.STRING, nullable=True),
            CanonicalField.of("price", SchemaType.STRING),
        )
        columns = [
            column("ID", SqlType.INTEGER),
            column("name", SqlType.VARCHAR, nullable=False),
            column("price", SqlType.DOUBLE),
        ]
        problems = FieldsValidator().validate(schema, columns)
        kinds = [(p.field_name, p.kind) for p in problems]
        assert kinds == [
            ("missing", IncompatibilityKind.MISSING_COLUMN),
            ("name", IncompatibilityKind.NULLABILITY),
            ("price", IncompatibilityKind.TYPE),
        ]

    def test_type_message(self, column) -> None:
        """Type problems name both types."""
        schema = CanonicalSchema.of(CanonicalField.of("price", SchemaType.STRING))
        problems = FieldsValidator().validate(schema, [column("price", SqlType.DOUBLE, "FLOAT8")])
        assert problems[0].message == (
            "Field 'price' was given as type 'string' but the database column "
            "is actually of type 'FLOAT8'."
        )

    def test_errors_are_logged(self, column, caplog) -> None:
        """Each incompatibility is logged at error level."""
        schema = CanonicalSchema.of(CanonicalField.of("gone", SchemaType.INT))
        with caplog.at_level(logging.ERROR):
            FieldsValidator().validate(schema, [column("id", SqlType.INTEGER)])
        assert "Missing column 'gone' in SQL table" in caplog.text

    def test_compatible_schema(self, column) -> None:
        """A compatible schema yields no problems."""
        schema = CanonicalSchema.of(CanonicalField.of("id", SchemaType.INT))
        assert FieldsValidator().validate(schema, [column("id", SqlType.INTEGER)]) == []


class TestValidateOrRaise:
    """Tests for the raising entry point."""

    def test_message_lists_fields(self, column) -> None:
        """Every offending field is named once."""
        schema = CanonicalSchema.of(
            CanonicalField.of("a", SchemaType.INT, nullable=True),
            CanonicalField.of("b", SchemaType.INT),
        )
        columns = [column("a", SqlType.VARCHAR, nullable=False)]
        with pytest.raises(ValidationFailure, match="input field\\(s\\) 'a,b'") as info:
            FieldsValidator().validate_or_raise(schema, columns)
        assert info.value.field_names == ["a", "b"]
        assert len(info.value.incompatibilities) == 3

    def test_passes_when_compatible(self, column) -> None:
        """No exception for compatible schemas."""
        schema = CanonicalSchema.of(CanonicalField.of("a", SchemaType.INT))
        FieldsValidator().validate_or_raise(schema, [column("a", SqlType.INTEGER)])
