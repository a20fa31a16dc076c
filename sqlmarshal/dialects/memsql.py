"""MemSQL (SingleStore) dialect.

Wire compatible with MySQL; BOOLEAN is stored as TINYINT(1).
"""

from __future__ import annotations

from ..schema.models import CanonicalField, ColumnDescriptor
from ..schema.types import SchemaType, SqlType
from .models import DialectName
from .mysql import MySQLDialect, MySQLFieldsValidator
from .registry import register_dialect


class MemSQLFieldsValidator(MySQLFieldsValidator):
    def is_type_compatible(
        self, schema_field: CanonicalField, column: ColumnDescriptor
    ) -> bool:
        if (
            schema_field.type is SchemaType.BOOLEAN
            and schema_field.logical_type is None
            and column.type_code == SqlType.TINYINT
        ):
            return True
        return super().is_type_compatible(schema_field, column)


class MemSQLDialect(MySQLDialect):
    """MemSQL over PyMySQL."""

    name = DialectName.MEMSQL
    display_name = "MemSQL"

    fields_validator_class = MemSQLFieldsValidator


# Auto-register on import
register_dialect(DialectName.MEMSQL, MemSQLDialect)
