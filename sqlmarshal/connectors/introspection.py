"""Engine construction and table introspection.

Turns a ConnectionConfig into a SQLAlchemy Engine for a dialect, reads
the column metadata of a live table as ColumnDescriptors and describes the
columns of custom query results.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Sequence

import sqlalchemy
from sqlalchemy import event, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql import sqltypes

from ..config import DEFAULT_DECIMAL_PRECISION
from ..dialects.base import Dialect
from ..errors import ConnectivityError, SchemaInferenceError
from ..schema.models import ColumnDescriptor, ColumnType
from ..schema.types import SqlType
from .models import ConnectionConfig

logger = logging.getLogger(__name__)


def create_engine(
    config: ConnectionConfig, dialect: Dialect, **engine_options: Any
) -> Engine:
    """Create an Engine that prepares every new connection for the dialect.

    Args:
        config: Connection settings
        dialect: Dialect used to build the URL and the init queries
        **engine_options: Extra keyword arguments for sqlalchemy.create_engine

    Returns:
        SQLAlchemy Engine

    Raises:
        ConnectivityError: If the engine cannot be created
    """
    url = dialect.build_url(config)
    options: dict[str, Any] = {"pool_pre_ping": True}
    if config.transaction_isolation_level is not None:
        options["isolation_level"] = config.transaction_isolation_level.value
    options.update(engine_options)

    try:
        engine = sqlalchemy.create_engine(url, **options)
    except SQLAlchemyError as e:
        raise ConnectivityError(
            f"Failed to create {dialect.display_name} engine: {e}", url=url
        ) from e

    init_queries = dialect.init_queries(config)
    if init_queries or dialect.configures_connections:

        def prepare_connection(dbapi_connection: Any, connection_record: Any) -> None:
            dialect.configure_connection(dbapi_connection)
            if not init_queries:
                return
            cursor = dbapi_connection.cursor()
            try:
                for query in init_queries:
                    logger.debug(f"Running init query: {query}")
                    cursor.execute(query)
            finally:
                cursor.close()

        event.listen(engine, "connect", prepare_connection)

    return engine


def _safe_url(engine: Engine) -> str:
    return engine.url.render_as_string(hide_password=True)


def describe_table(
    engine: Engine,
    dialect: Dialect,
    table: str,
    schema_name: str | None = None,
) -> list[ColumnDescriptor]:
    """Read the column metadata of an existing table.

    Args:
        engine: Engine connected to the database holding the table
        dialect: Dialect used to map reflected types to SQL type codes
        table: Table name
        schema_name: Optional schema of the table

    Returns:
        Column descriptors in table column order

    Raises:
        SchemaInferenceError: If the table does not exist
        ConnectivityError: If introspection fails
    """
    try:
        inspector = inspect(engine)
        if not inspector.has_table(table, schema=schema_name):
            raise SchemaInferenceError(f"Table '{table}' does not exist.")
        reflected = inspector.get_columns(table, schema=schema_name)

        # Vendor types SQLAlchemy does not know come back as NullType
        declared: dict[str, str] = {}
        if any(isinstance(c["type"], sqltypes.NullType) for c in reflected):
            with engine.connect() as conn:
                names = dialect.declared_type_names(conn, table, schema_name)
            declared = {name.casefold(): type_name for name, type_name in names.items()}
    except SQLAlchemyError as e:
        raise ConnectivityError(
            f"Failed to describe table '{table}': {e}", url=_safe_url(engine)
        ) from e

    columns = [
        dialect.describe_column(
            column, engine.dialect, declared.get(column["name"].casefold())
        )
        for column in reflected
    ]
    logger.debug(f"Described {len(columns)} column(s) of table '{table}'")
    return columns


def column_types(
    columns: Sequence[ColumnDescriptor], requested: Sequence[str] | None = None
) -> tuple[ColumnType, ...]:
    """Build the column-type binding for a write task.

    Args:
        columns: Descriptors of the target table
        requested: Column names to bind, in statement order. Defaults to
            every table column.

    Returns:
        Immutable binding of column name, declared type name and type code

    Raises:
        SchemaInferenceError: If a requested column is not in the table
    """
    if requested is None:
        selected = list(columns)
    else:
        by_name = {c.name.casefold(): c for c in columns}
        selected = []
        for name in requested:
            column = by_name.get(name.casefold())
            if column is None:
                raise SchemaInferenceError(
                    f"Missing column '{name}' in SQL table", column=name
                )
            selected.append(column)
    return tuple(ColumnType(c.name, c.type_name, c.type_code) for c in selected)


# Classes of fetched values -> SQL type code; datetime precedes date
_VALUE_TYPE_CODES: tuple[tuple[Any, int], ...] = (
    (bool, SqlType.BOOLEAN),
    (int, SqlType.BIGINT),
    (float, SqlType.DOUBLE),
    (Decimal, SqlType.NUMERIC),
    (str, SqlType.VARCHAR),
    ((bytes, bytearray, memoryview), SqlType.VARBINARY),
    (datetime, SqlType.TIMESTAMP),
    (date, SqlType.DATE),
    (time, SqlType.TIME),
)

# PEP 249 type objects -> SQL type code
_DBAPI_TYPE_CODES = (
    ("STRING", SqlType.VARCHAR),
    ("BINARY", SqlType.VARBINARY),
    ("NUMBER", SqlType.NUMERIC),
    ("DATETIME", SqlType.TIMESTAMP),
    ("ROWID", SqlType.ROWID),
)


def _value_kind(value_class: type | None) -> str | None:
    if value_class is None:
        return None
    if issubclass(value_class, (bool, int, float, Decimal)):
        return "number"
    if issubclass(value_class, str):
        return "text"
    if issubclass(value_class, (bytes, bytearray, memoryview)):
        return "binary"
    if issubclass(value_class, (date, time, timedelta)):
        return "temporal"
    return None


def _same_kind(table_class: type | None, value_class: type | None) -> bool:
    kinds = {_value_kind(table_class), _value_kind(value_class)}
    # Some drivers fetch temporal values as text
    return None in kinds or len(kinds) == 1 or kinds == {"text", "temporal"}


def _dbapi_type_code(dbapi: Any, type_code: Any) -> int | None:
    if dbapi is None or type_code is None:
        return None
    for attribute, code in _DBAPI_TYPE_CODES:
        type_object = getattr(dbapi, attribute, None)
        if type_object is not None and type_object == type_code:
            return code
    return None


def _description_int(entry: Sequence[Any], position: int) -> int:
    value = entry[position] if len(entry) > position else None
    return value if isinstance(value, int) and not isinstance(value, bool) else 0


def describe_result_column(
    name: str,
    value: Any,
    entry: Sequence[Any] | None = None,
    dbapi: Any = None,
) -> ColumnDescriptor:
    """Describe a query result column that no table column describes.

    The class of the first fetched value decides the type; without a value
    the DBAPI type object in the cursor description does. Numbers without
    a reported precision, and anything else left unknown, are read as text.

    Args:
        name: Result column name
        value: First fetched value of the column, None if unknown
        entry: The column's cursor.description entry
        dbapi: DBAPI module whose type objects classify the entry
    """
    entry = entry or (name,)
    precision = _description_int(entry, 4)
    scale = _description_int(entry, 5)

    if value is not None:
        value_class = type(value)
        for classes, code in _VALUE_TYPE_CODES:
            if isinstance(value, classes):
                break
        else:
            return ColumnDescriptor(name=name, type_code=SqlType.VARCHAR, value_class=value_class)
        if code == SqlType.NUMERIC and precision < 1:
            exponent = value.as_tuple().exponent
            precision = DEFAULT_DECIMAL_PRECISION
            scale = min(-exponent, precision) if isinstance(exponent, int) and exponent < 0 else 0
        return ColumnDescriptor(
            name=name, type_code=code, precision=precision, scale=scale, value_class=value_class
        )

    code = _dbapi_type_code(dbapi, entry[1] if len(entry) > 1 else None)
    if code is None or (code == SqlType.NUMERIC and precision < 1):
        return ColumnDescriptor(name=name, type_code=SqlType.VARCHAR)
    return ColumnDescriptor(name=name, type_code=code, precision=precision, scale=scale)


def result_columns(
    names: Sequence[str],
    table_columns: Sequence[ColumnDescriptor],
    first_row: Sequence[Any] | None = None,
    description: Sequence[Sequence[Any]] | None = None,
    dbapi: Any = None,
) -> list[ColumnDescriptor]:
    """Descriptors for the columns of a query result, in result order.

    A result column takes the descriptor of the table column it is named
    after unless its fetched value is of another kind, as for an aliased
    expression. Other columns are described from their values and the
    cursor description.

    Args:
        names: Result column names
        table_columns: Descriptors of the queried table
        first_row: First fetched row, None when the result is empty
        description: DBAPI cursor.description of the result
        dbapi: DBAPI module of the connection
    """
    by_name = {c.name.casefold(): c for c in table_columns}
    columns = []
    for index, name in enumerate(names):
        value = first_row[index] if first_row is not None else None
        table_column = by_name.get(name.casefold())
        if table_column is not None and (
            value is None or _same_kind(table_column.value_class, type(value))
        ):
            columns.append(replace(table_column, name=name))
            continue
        entry = description[index] if description and index < len(description) else None
        column = describe_result_column(name, value, entry, dbapi)
        logger.debug(f"Result column '{name}' described as {column.type_label}")
        columns.append(column)
    return columns
