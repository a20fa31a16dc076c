"""Streaming table source.

Reads rows from a table or a custom query and marshals them into
canonical records in batches.
"""

from __future__ import annotations

import logging
from itertools import chain
from typing import Any, Iterator, Sequence

from sqlalchemy import text
from sqlalchemy.engine import CursorResult, Engine
from sqlalchemy.exc import SQLAlchemyError

from ..dialects.base import Dialect
from ..dialects.models import SampleType
from ..dialects.registry import get_dialect
from ..errors import ConnectivityError
from ..marshal.reader import RowCursor
from ..schema.models import CanonicalSchema, ColumnDescriptor
from ..schema.record import Record
from .introspection import create_engine, describe_table, result_columns
from .models import SourceConfig

logger = logging.getLogger(__name__)


class TableSource:
    """Reads canonical records from a database table.

    The engine is built from the configuration unless one is injected;
    injected engines are used as they are and never disposed here.
    """

    def __init__(
        self,
        config: SourceConfig,
        engine: Engine | None = None,
        dialect: Dialect | None = None,
    ) -> None:
        """Initialize the source.

        Args:
            config: Source task configuration
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
        """Dispose the engine if this source created it."""
        if self._owns_engine and self._engine is not None:
            self._engine.dispose()
            self._engine = None

    def __enter__(self) -> TableSource:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def describe(self) -> list[ColumnDescriptor]:
        """Column descriptors of the source table, read once per source."""
        if self._table_columns is None:
            assert self.config.table is not None
            self._table_columns = describe_table(
                self.engine, self.dialect, self.config.table, self.config.schema_name
            )
        return self._table_columns

    def build_query(self) -> str:
        """SQL used to read the records."""
        if self.config.query:
            return self.config.query
        assert self.config.table is not None
        table = self.dialect.qualified_table_name(self.config.table, self.config.schema_name)
        if self.config.columns:
            columns = ", ".join(self.dialect.quote_identifier(c) for c in self.config.columns)
        else:
            columns = "*"
        return f"SELECT {columns} FROM {table}"

    def infer_schema(self, session_id: str | None = None) -> CanonicalSchema:
        """Canonical schema of the records this source produces.

        Table reads are described from the table metadata alone. A custom
        query is executed and its columns are typed from the first row and
        the cursor description, falling back to the table columns.
        """
        if self.config.query:
            columns = self._query_columns(self.config.query)
        elif self.config.columns:
            columns = result_columns(self.config.columns, self.describe())
        else:
            columns = self.describe()
        reader = self.dialect.session_schema_reader(session_id)
        return reader.get_schema_from(columns)

    def _describe_result(
        self, result: CursorResult, first_row: Sequence[Any] | None
    ) -> list[ColumnDescriptor]:
        """Describe a custom query's columns from the result itself."""
        cursor = getattr(result, "cursor", None)
        return result_columns(
            list(result.keys()),
            self.describe(),
            first_row,
            getattr(cursor, "description", None),
            self.engine.dialect.dbapi,
        )

    def _query_columns(self, query: str) -> list[ColumnDescriptor]:
        try:
            with self.engine.connect() as conn:
                result = conn.execution_options(stream_results=True).execute(text(query))
                try:
                    return self._describe_result(result, result.fetchone())
                finally:
                    result.close()
        except SQLAlchemyError as e:
            raise ConnectivityError(
                f"Failed to read the result columns of the query: {e}",
                url=self.engine.url.render_as_string(hide_password=True),
            ) from e

    def read(self, schema: CanonicalSchema | None = None) -> Iterator[list[Record]]:
        """Stream the records in batches.

        Args:
            schema: Output schema, inferred from the result when omitted

        Yields:
            Batches of at most config.batch_size records

        Raises:
            DataReadError: If a value cannot be converted
            ConnectivityError: If the query fails
        """
        yield from self._read(self.build_query(), schema, None, bool(self.config.query))

    def sample(
        self,
        limit: int,
        sample_type: SampleType = SampleType.FIRST,
        strata: str | None = None,
        session_id: str | None = None,
    ) -> list[Record]:
        """Read a preview of the table using the dialect's sampling query.

        Args:
            limit: Maximum number of rows requested
            sample_type: FIRST, RANDOM or STRATIFIED
            strata: Strata column for stratified sampling
            session_id: Sampling session id, used to name helper columns

        Returns:
            Sampled records
        """
        assert self.config.table is not None
        table_name = self.dialect.table_name(
            self.config.connection.database, self.config.schema_name, self.config.table
        )
        query = self.dialect.sample_query(table_name, limit, sample_type, strata, session_id)
        records: list[Record] = []
        for batch in self._read(query, None, session_id, False):
            records.extend(batch)
        return records

    def _read(
        self,
        query: str,
        schema: CanonicalSchema | None,
        session_id: str | None,
        custom_query: bool,
    ) -> Iterator[list[Record]]:
        batch_size = self.config.batch_size
        count = 0
        try:
            with self.engine.connect() as conn:
                # Use server-side cursor for large datasets
                result = conn.execution_options(
                    stream_results=True, yield_per=self.config.fetch_size
                ).execute(text(query))

                rows = iter(result)
                first_row = next(rows, None)
                if custom_query:
                    columns = self._describe_result(result, first_row)
                else:
                    columns = result_columns(list(result.keys()), self.describe())
                if schema is None:
                    reader = self.dialect.session_schema_reader(session_id)
                    schema = reader.get_schema_from(columns)
                cursor = RowCursor(columns)
                record_reader = self.dialect.record_reader

                batch: list[Record] = []
                if first_row is not None:
                    rows = chain([first_row], rows)
                for row in rows:
                    batch.append(record_reader.read_row(cursor.advance(row), schema))
                    if len(batch) >= batch_size:
                        count += len(batch)
                        yield batch
                        batch = []

                # Yield remaining records
                if batch:
                    count += len(batch)
                    yield batch
        except SQLAlchemyError as e:
            raise ConnectivityError(
                f"Reading table '{self.config.table}' failed: {e}",
                url=self.engine.url.render_as_string(hide_password=True),
            ) from e

        logger.info(f"Read {count} record(s) from table '{self.config.table}'")
