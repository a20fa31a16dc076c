"""Batched table sink.

Validates an input schema against an existing table, then binds canonical
records to INSERT, UPDATE or UPSERT statements and writes them in batches
inside a single transaction.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from itertools import chain
from typing import Any, Iterable

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from ..dialects.base import Dialect
from ..dialects.registry import get_dialect
from ..marshal.writer import BoundStatement, Operation, param_name, statement_size
from ..schema.models import CanonicalSchema, ColumnDescriptor, ColumnType
from ..schema.record import Record
from ..schema.types import DECIMAL_TYPES
from .introspection import column_types, create_engine, describe_table
from .models import SinkConfig

logger = logging.getLogger(__name__)

# Driver messages that name the parameter or the class of a rejected value
_PARAM_NAME = re.compile(r"\b(p\d+)\b")
_VALUE_TYPE = re.compile(r"type '([\w.]+)'")


@dataclass
class WriteResult:
    """Result from a sink write."""

    table: str
    operation: Operation
    written_count: int = 0
    batch_count: int = 0


@dataclass(frozen=True)
class PreparedWrite:
    """Statement and column-type binding validated for one input schema."""

    schema: CanonicalSchema
    column_types: tuple[ColumnType, ...]
    query: str
    field_names: dict[str, str]


class TableSink:
    """Writes canonical records into an existing table.

    A write runs in one transaction: rows are flushed every batch_size
    records (only at the end when batch_size is 0), committed once all
    records are written, and rolled back if any record or flush fails.
    """

    def __init__(
        self,
        config: SinkConfig,
        engine: Engine | None = None,
        dialect: Dialect | None = None,
    ) -> None:
        """Initialize the sink.

        Args:
            config: Sink task configuration
            engine: Optional engine to use instead of building one
            dialect: Optional dialect, looked up from config.dialect by default
        """
        self.config = config
        self.dialect = dialect or get_dialect(config.dialect)
        self._engine = engine
        self._owns_engine = engine is None
        self._table_columns: list[ColumnDescriptor] | None = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            self._engine = create_engine(self.config.connection, self.dialect)
        return self._engine

    def close(self) -> None:
        """Dispose the engine if this sink created it."""
        if self._owns_engine and self._engine is not None:
            self._engine.dispose()
            self._engine = None

    def __enter__(self) -> TableSink:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def table_name(self) -> str:
        return self.dialect.qualified_table_name(self.config.table, self.config.schema_name)

    def describe(self) -> list[ColumnDescriptor]:
        """Target table columns, with the default precision and scale
        applied to numeric columns that report none."""
        if self._table_columns is None:
            columns = describe_table(
                self.engine, self.dialect, self.config.table, self.config.schema_name
            )
            self._table_columns = [self._with_default_precision(c) for c in columns]
        return self._table_columns

    def _with_default_precision(self, column: ColumnDescriptor) -> ColumnDescriptor:
        if column.type_code in DECIMAL_TYPES and column.precision == 0:
            return replace(
                column,
                precision=self.config.default_decimal_precision,
                scale=self.config.default_decimal_scale,
            )
        return column

    def table_schema(self) -> CanonicalSchema:
        """Canonical schema of the target table."""
        return self.dialect.schema_reader.get_schema_from(self.describe())

    def prepare(self, schema: CanonicalSchema) -> PreparedWrite:
        """Validate an input schema and build its statement.

        Args:
            schema: Schema of the records to be written

        Returns:
            The prepared statement and its column-type binding

        Raises:
            ValueError: If the dialect cannot run the configured operation
            ValidationFailure: If any field is not write-compatible
        """
        operation = self.config.operation
        if operation is Operation.UPSERT and not self.dialect.supports_upsert:
            raise ValueError(
                f"The upsert operation is not supported for {self.dialect.display_name}"
            )

        mapping = self.config.column_mapping
        table_schema = CanonicalSchema.from_fields(
            f.renamed(mapping.get(f.name, f.name)) for f in schema
        )
        columns = self.describe()
        self.dialect.fields_validator.validate_or_raise(table_schema, columns)

        requested = self.config.columns or table_schema.field_names
        binding = column_types(columns, requested)
        query = self.dialect.write_query(
            operation, self.table_name, binding, self.config.relation_table_key
        )
        # Physical column name -> record field name
        mapped_fields = {column.casefold(): name for name, column in mapping.items()}
        field_names = {
            c.name: mapped_fields[c.name.casefold()]
            for c in binding
            if c.name.casefold() in mapped_fields
        }
        logger.debug(f"Prepared {operation.value} statement: {query}")
        return PreparedWrite(schema, binding, query, field_names)

    def write(
        self, records: Iterable[Record], schema: CanonicalSchema | None = None
    ) -> WriteResult:
        """Write records in one transaction.

        Args:
            records: Records to write, all sharing one schema
            schema: Schema of the records, taken from the first record
                when omitted

        Returns:
            WriteResult with row and batch counts

        Raises:
            ValidationFailure: If the schema is not write-compatible
            DataWriteError: If a value cannot be bound or is rejected
        """
        iterator = iter(records)
        result = WriteResult(table=self.table_name, operation=self.config.operation)
        if schema is None:
            first = next(iterator, None)
            if first is None:
                logger.info(f"No records to write into {self.table_name}")
                return result
            schema = first.schema
            iterator = chain([first], iterator)

        prepared = self.prepare(schema)
        statement = text(prepared.query)
        size = statement_size(
            prepared.column_types, self.config.operation, self.config.relation_table_key
        )
        writer = self.dialect.record_writer
        batch_size = self.config.batch_size
        param_columns = self._param_columns(prepared)

        with self.engine.connect() as conn:
            transaction = conn.begin()
            try:
                pending: list[dict[str, Any]] = []
                for record in iterator:
                    bound = BoundStatement(size)
                    writer.write_row(
                        bound,
                        record,
                        prepared.column_types,
                        self.config.operation,
                        self.config.relation_table_key,
                        prepared.field_names,
                    )
                    pending.append(bound.as_params())
                    if batch_size and len(pending) >= batch_size:
                        self._flush(conn, statement, pending, result, param_columns)
                        pending = []
                if pending:
                    self._flush(conn, statement, pending, result, param_columns)
                transaction.commit()
            except Exception:
                transaction.rollback()
                logger.error(
                    f"Rolled back {self.config.operation.value} into {self.table_name} "
                    f"after {result.written_count} row(s)"
                )
                raise

        logger.info(
            f"Wrote {result.written_count} row(s) into {self.table_name} "
            f"in {result.batch_count} batch(es)"
        )
        return result

    def _flush(
        self,
        conn: Connection,
        statement: Any,
        pending: list[dict[str, Any]],
        result: WriteResult,
        param_columns: dict[str, str],
    ) -> None:
        try:
            conn.execute(statement, pending)
        except SQLAlchemyError as e:
            column = failing_column(e, pending, param_columns)
            translated = self.dialect.translate_write_error(e, column)
            if translated is not None:
                raise translated from e
            raise
        result.written_count += len(pending)
        result.batch_count += 1
        logger.debug(f"Flushed batch of {len(pending)} row(s) into {self.table_name}")

    def _param_columns(self, prepared: PreparedWrite) -> dict[str, str]:
        """Parameter name -> column name, key columns last for UPDATE."""
        names = [c.name for c in prepared.column_types]
        if self.config.operation is Operation.UPDATE:
            names.extend(self.config.relation_table_key)
        return {param_name(i): name for i, name in enumerate(names)}


def failing_column(
    error: Exception, pending: list[dict[str, Any]], param_columns: dict[str, str]
) -> str | None:
    """Column of the value a driver error complains about, when it says."""
    message = str(getattr(error, "orig", None) or error)
    match = _PARAM_NAME.search(message)
    if match and match.group(1) in param_columns:
        return param_columns[match.group(1)]
    match = _VALUE_TYPE.search(message)
    if match is None:
        return None
    type_name = match.group(1)
    for params in pending:
        for key, value in params.items():
            value_class = type(value)
            qualified = f"{value_class.__module__}.{value_class.__qualname__}"
            if type_name in (value_class.__name__, qualified) and key in param_columns:
                return param_columns[key]
    return None
