"""SQL type codes and canonical type enums.

SQL type codes follow the portable driver numbering used by most database
drivers' metadata APIs. Dialect-specific vendor codes live in the dialect
modules as plain integers and compare equal to these members.
"""

from __future__ import annotations

from enum import Enum, IntEnum


class SqlType(IntEnum):
    """Portable SQL type codes reported by column metadata."""

    BIT = -7
    TINYINT = -6
    SMALLINT = 5
    INTEGER = 4
    BIGINT = -5
    FLOAT = 6
    REAL = 7
    DOUBLE = 8
    NUMERIC = 2
    DECIMAL = 3
    CHAR = 1
    VARCHAR = 12
    LONGVARCHAR = -1
    DATE = 91
    TIME = 92
    TIMESTAMP = 93
    BINARY = -2
    VARBINARY = -3
    LONGVARBINARY = -4
    NULL = 0
    OTHER = 1111
    JAVA_OBJECT = 2000
    DISTINCT = 2001
    STRUCT = 2002
    ARRAY = 2003
    BLOB = 2004
    CLOB = 2005
    REF = 2006
    DATALINK = 70
    BOOLEAN = 16
    ROWID = -8
    NCHAR = -15
    NVARCHAR = -9
    LONGNVARCHAR = -16
    NCLOB = 2011
    SQLXML = 2009
    TIME_WITH_TIMEZONE = 2013
    TIMESTAMP_WITH_TIMEZONE = 2014


class SchemaType(str, Enum):
    """Canonical primitive types."""

    NULL = "null"
    BOOLEAN = "boolean"
    INT = "int"
    LONG = "long"
    FLOAT = "float"
    DOUBLE = "double"
    BYTES = "bytes"
    STRING = "string"


class LogicalType(str, Enum):
    """Semantic refinements carried by a primitive type."""

    DATE = "date"
    TIME_MICROS = "time-micros"
    TIMESTAMP_MICROS = "timestamp-micros"
    DATETIME = "datetime"
    DECIMAL = "decimal"

    @property
    def primitive(self) -> SchemaType:
        """The primitive type this logical type is carried by."""
        return _LOGICAL_PRIMITIVES[self]


_LOGICAL_PRIMITIVES = {
    LogicalType.DATE: SchemaType.INT,
    LogicalType.TIME_MICROS: SchemaType.LONG,
    LogicalType.TIMESTAMP_MICROS: SchemaType.LONG,
    LogicalType.DATETIME: SchemaType.STRING,
    LogicalType.DECIMAL: SchemaType.BYTES,
}

# Codes the default schema reader refuses to map
UNSUPPORTED_TYPES = frozenset(
    {
        SqlType.ARRAY,
        SqlType.DATALINK,
        SqlType.DISTINCT,
        SqlType.JAVA_OBJECT,
        SqlType.OTHER,
        SqlType.REF,
        SqlType.SQLXML,
        SqlType.STRUCT,
    }
)

STRING_TYPES = frozenset(
    {
        SqlType.VARCHAR,
        SqlType.CHAR,
        SqlType.CLOB,
        SqlType.LONGNVARCHAR,
        SqlType.LONGVARCHAR,
        SqlType.NCHAR,
        SqlType.NCLOB,
        SqlType.NVARCHAR,
    }
)

BINARY_TYPES = frozenset(
    {SqlType.BINARY, SqlType.VARBINARY, SqlType.LONGVARBINARY, SqlType.BLOB}
)

INTEGER_TYPES = frozenset({SqlType.INTEGER, SqlType.SMALLINT, SqlType.TINYINT})

DECIMAL_TYPES = frozenset({SqlType.NUMERIC, SqlType.DECIMAL})


def type_code_name(code: int) -> str:
    """Render a SQL type code for diagnostics."""
    try:
        return SqlType(code).name
    except ValueError:
        return str(code)
