"""Enums and metadata models for database dialects."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class DialectName(str, Enum):
    """Supported database dialects."""

    GENERIC = "generic"
    MYSQL = "mysql"
    AURORA_MYSQL = "aurora_mysql"
    CLOUDSQL_MYSQL = "cloudsql_mysql"
    MARIADB = "mariadb"
    MEMSQL = "memsql"
    POSTGRESQL = "postgresql"
    AURORA_POSTGRESQL = "aurora_postgresql"
    CLOUDSQL_POSTGRESQL = "cloudsql_postgresql"
    ORACLE = "oracle"
    SQLSERVER = "sqlserver"
    DB2 = "db2"
    REDSHIFT = "redshift"
    TERADATA = "teradata"
    NETEZZA = "netezza"


class SampleType(str, Enum):
    """Row sampling strategies used for table previews."""

    FIRST = "first"
    RANDOM = "random"
    STRATIFIED = "stratified"


class DialectInfo(BaseModel):
    """Information about a registered dialect."""

    name: DialectName
    display_name: str
    driver: str
    default_port: int | None = None
    supports_upsert: bool = False
