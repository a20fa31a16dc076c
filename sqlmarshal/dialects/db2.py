"""IBM DB2 dialect."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any, Sequence

from sqlalchemy import text
from sqlalchemy.engine import Connection

from ..errors import DataWriteError
from ..marshal import conversions
from ..marshal.reader import RecordReader, ResultCursor
from ..schema.models import CanonicalField, ColumnDescriptor
from ..schema.reader import SchemaReader
from ..schema.record import RecordBuilder
from ..schema.types import SchemaType, SqlType
from ..validation.fields import FieldsValidator
from .base import Dialect
from .models import DialectName
from .registry import register_dialect

if TYPE_CHECKING:
    from ..connectors.models import ConnectionConfig

DECFLOAT_TYPE_NAME = "DECFLOAT"

# Raised by the driver when a value cannot be converted to the column type
ILLEGAL_CONVERSION_ERROR_CODE = -4474

_SQLCODE = re.compile(r"SQLCODE=(-?\d+)")


def is_decfloat(column: ColumnDescriptor) -> bool:
    return column.type_name.upper() == DECFLOAT_TYPE_NAME


def sql_code(error: BaseException) -> int | None:
    """SQLCODE carried by a DB2 driver error, if any."""
    for candidate in (error, getattr(error, "orig", None)):
        if candidate is None:
            continue
        match = _SQLCODE.search(str(candidate))
        if match:
            return int(match.group(1))
    return None


class DB2SchemaReader(SchemaReader):
    """Schema reader for DB2."""

    def get_schema(
        self, columns: Sequence[ColumnDescriptor], index: int
    ) -> CanonicalField:
        column = columns[index]
        if column.type_code == SqlType.OTHER and is_decfloat(column):
            return CanonicalField.of(column.name, SchemaType.DOUBLE)
        return super().get_schema(columns, index)


class DB2RecordReader(RecordReader):
    def handle_field(
        self,
        cursor: ResultCursor,
        builder: RecordBuilder,
        schema_field: CanonicalField,
        index: int,
        column: ColumnDescriptor,
    ) -> None:
        if not is_decfloat(column):
            super().handle_field(cursor, builder, schema_field, index, column)
            return
        value = cursor.get_value(index)
        if value is None:
            builder.set(schema_field.name, None)
        elif schema_field.type is SchemaType.STRING:
            builder.set(schema_field.name, conversions.to_text(value))
        else:
            builder.set(schema_field.name, self.coerce(value, schema_field))


class DB2FieldsValidator(FieldsValidator):
    def is_type_compatible(
        self, schema_field: CanonicalField, column: ColumnDescriptor
    ) -> bool:
        if schema_field.logical_type is None and schema_field.type is SchemaType.STRING:
            if column.type_code == SqlType.OTHER or is_decfloat(column):
                return True
        if schema_field.logical_type is None and schema_field.type is SchemaType.DOUBLE:
            if is_decfloat(column):
                return True
        return super().is_type_compatible(schema_field, column)


class DB2Dialect(Dialect):
    """DB2 over ibm_db_sa."""

    name = DialectName.DB2
    display_name = "IBM DB2"
    driver = "db2+ibm_db"
    default_port = 50000

    schema_reader_class = DB2SchemaReader
    record_reader_class = DB2RecordReader
    fields_validator_class = DB2FieldsValidator

    type_name_codes = {
        "DECFLOAT": SqlType.OTHER,
        "GRAPHIC": SqlType.NCHAR,
        "VARGRAPHIC": SqlType.NVARCHAR,
        "DBCLOB": SqlType.NCLOB,
        "XML": SqlType.SQLXML,
    }

    def build_url(self, config: ConnectionConfig) -> str:
        """Build DB2 connection string.

        Format: db2+ibm_db://user:password@host:port/database
        """
        return self._host_url(config)

    def declared_type_names(
        self, connection: Connection, table: str, schema_name: str | None = None
    ) -> dict[str, str]:
        query = "SELECT colname, typename FROM syscat.columns WHERE tabname = :table"
        params: dict[str, Any] = {"table": table.upper()}
        if schema_name:
            query += " AND tabschema = :schema"
            params["schema"] = schema_name.upper()
        rows = connection.execute(text(query), params)
        return {name.lower(): type_name.strip() for name, type_name in rows}

    def translate_write_error(
        self, error: Exception, column: str | None = None
    ) -> Exception | None:
        if sql_code(error) == ILLEGAL_CONVERSION_ERROR_CODE:
            return DataWriteError(str(error), column=column)
        return super().translate_write_error(error, column)


# Auto-register on import
register_dialect(DialectName.DB2, DB2Dialect)
