"""Canonical schema model.

Provides the portable type system shared by every dialect:
- SQL type codes and canonical primitive/logical types
- Canonical fields, schemas and records
- The default schema reader
"""

from .models import CanonicalField, CanonicalSchema, ColumnDescriptor, ColumnType
from .reader import SchemaReader
from .record import Record, RecordBuilder
from .types import LogicalType, SchemaType, SqlType

__all__ = [
    "CanonicalField",
    "CanonicalSchema",
    "ColumnDescriptor",
    "ColumnType",
    "LogicalType",
    "Record",
    "RecordBuilder",
    "SchemaReader",
    "SchemaType",
    "SqlType",
]
