"""Record marshallers for the read and write paths."""

from .reader import RecordReader, ResultCursor, RowCursor
from .writer import BoundParameter, BoundStatement, Operation, RecordWriter

__all__ = [
    "BoundParameter",
    "BoundStatement",
    "Operation",
    "RecordReader",
    "RecordWriter",
    "ResultCursor",
    "RowCursor",
]
