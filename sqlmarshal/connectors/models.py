"""Pydantic models for source and sink task configuration.

Defines the connection settings and per-task options consumed by
TableSource and TableSink.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from .. import config
from ..dialects.models import DialectName
from ..marshal.writer import Operation
from ..utils.sanitization import validate_identifier


class IsolationLevel(str, Enum):
    """Transaction isolation levels accepted by SQLAlchemy."""

    READ_UNCOMMITTED = "READ UNCOMMITTED"
    READ_COMMITTED = "READ COMMITTED"
    REPEATABLE_READ = "REPEATABLE READ"
    SERIALIZABLE = "SERIALIZABLE"
    AUTOCOMMIT = "AUTOCOMMIT"


class ConnectionConfig(BaseModel):
    """Configuration for a database connection."""

    host: str | None = Field(None, min_length=1, max_length=255)
    port: int | None = Field(None, ge=1, le=65535)
    database: str | None = Field(None, min_length=1, max_length=255)
    username: str | None = Field(None, max_length=255)
    password: str | None = Field(None, exclude=True, repr=False)
    url: str | None = None  # Full SQLAlchemy URL for the generic dialect
    ssl_mode: str | None = None
    instance: str | None = None  # CloudSQL instance connection name
    connection_type: str | None = None  # Oracle: sid/service/tns, CloudSQL: public/private
    connection_arguments: dict[str, str] = {}
    init_queries: list[str] = []
    transaction_isolation_level: IsolationLevel | None = None
    sql_mode: str | None = None  # MySQL only
    ansi_quotes: bool = False  # MySQL only

    @field_validator("transaction_isolation_level", mode="before")
    @classmethod
    def normalize_isolation_level(cls, v: Any) -> Any:
        """Accept TRANSACTION_READ_COMMITTED style names."""
        if isinstance(v, str):
            level = v.strip().upper()
            if level.startswith("TRANSACTION_"):
                level = level[len("TRANSACTION_"):]
            if level == "NONE":
                return None
            return level.replace("_", " ")
        return v

    @field_validator("init_queries")
    @classmethod
    def validate_init_queries(cls, v: list[str]) -> list[str]:
        queries = [q.strip() for q in v]
        if any(not q for q in queries):
            raise ValueError("Initialization queries cannot be empty")
        return queries

    @field_validator("connection_type")
    @classmethod
    def normalize_connection_type(cls, v: str | None) -> str | None:
        return v.strip().lower() if v else v


class SourceConfig(BaseModel):
    """Configuration for reading records from a table or query."""

    name: str | None = None
    dialect: DialectName
    connection: ConnectionConfig
    table: str | None = None
    schema_name: str | None = None
    query: str | None = None
    columns: list[str] | None = None
    fetch_size: int = Field(config.FETCH_SIZE, ge=1)
    batch_size: int = Field(config.BATCH_SIZE, ge=1)

    @field_validator("schema_name", "table")
    @classmethod
    def validate_sql_identifier(cls, v: str | None) -> str | None:
        """Validate SQL identifiers to prevent injection."""
        if v is None:
            return v
        return validate_identifier(v)

    @field_validator("columns")
    @classmethod
    def validate_columns(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return v
        return [validate_identifier(c) for c in v]

    @field_validator("query")
    @classmethod
    def validate_query(cls, v: str | None) -> str | None:
        """Validate custom query doesn't contain dangerous patterns."""
        if v is None:
            return v
        if ";" in v or "--" in v:
            raise ValueError("Custom queries cannot contain ';' or '--' characters")
        return v

    @model_validator(mode="after")
    def check_table_or_query(self) -> SourceConfig:
        if not self.table:
            raise ValueError("'table' must be specified, optionally with a 'query'")
        return self


class SinkConfig(BaseModel):
    """Configuration for writing records into an existing table."""

    name: str | None = None
    dialect: DialectName
    connection: ConnectionConfig
    table: str
    schema_name: str | None = None
    columns: list[str] | None = None
    column_mapping: dict[str, str] = {}  # record field -> table column
    operation: Operation = Operation.INSERT
    relation_table_key: list[str] = []
    batch_size: int = Field(config.BATCH_SIZE, ge=0)
    default_decimal_precision: int = Field(config.DEFAULT_DECIMAL_PRECISION, ge=1)
    default_decimal_scale: int = Field(config.DEFAULT_DECIMAL_SCALE, ge=0)

    @field_validator("schema_name", "table")
    @classmethod
    def validate_sql_identifier(cls, v: str | None) -> str | None:
        """Validate SQL identifiers to prevent injection."""
        if v is None:
            return v
        return validate_identifier(v)

    @field_validator("relation_table_key", mode="before")
    @classmethod
    def split_keys(cls, v: Any) -> Any:
        """Accept a comma separated key list."""
        if isinstance(v, str):
            return [k.strip() for k in v.split(",") if k.strip()]
        return v

    @field_validator("columns", "relation_table_key")
    @classmethod
    def validate_column_names(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return v
        return [validate_identifier(c) for c in v]

    @field_validator("column_mapping")
    @classmethod
    def validate_mapping(cls, v: dict[str, str]) -> dict[str, str]:
        for column in v.values():
            validate_identifier(column)
        return v

    @model_validator(mode="after")
    def check_operation(self) -> SinkConfig:
        if self.operation is not Operation.INSERT and not self.relation_table_key:
            raise ValueError(
                f"'relation_table_key' is required for the {self.operation.value} operation"
            )
        if self.default_decimal_scale > self.default_decimal_precision:
            raise ValueError(
                "'default_decimal_scale' cannot be greater than 'default_decimal_precision'"
            )
        return self
