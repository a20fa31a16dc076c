"""Database dialects.

Each dialect bundles the schema reader, record reader, record writer and
fields validator of one database together with its SQL helpers:
- MySQL family (MySQL, Aurora MySQL, CloudSQL MySQL, MariaDB, MemSQL)
- PostgreSQL family (PostgreSQL, Aurora PostgreSQL, CloudSQL PostgreSQL)
- Oracle, SQL Server, DB2, Redshift, Teradata, Netezza
- A generic dialect for any SQLAlchemy URL

Example usage:
    from sqlmarshal.dialects import get_dialect

    dialect = get_dialect("postgresql")
    schema = dialect.schema_reader.get_schema_from(columns)
"""

from .base import Dialect, sqlalchemy_type_code
from .models import DialectInfo, DialectName, SampleType
from .registry import (
    DialectRegistry,
    get_dialect,
    get_registry,
    list_dialects,
    register_dialect,
)

# Import dialect modules so they register themselves
from . import generic  # noqa: F401
from . import mysql  # noqa: F401
from . import memsql  # noqa: F401
from . import postgresql  # noqa: F401
from . import oracle  # noqa: F401
from . import sqlserver  # noqa: F401
from . import db2  # noqa: F401
from . import redshift  # noqa: F401
from . import teradata  # noqa: F401
from . import netezza  # noqa: F401

__all__ = [
    "Dialect",
    "DialectInfo",
    "DialectName",
    "DialectRegistry",
    "SampleType",
    "get_dialect",
    "get_registry",
    "list_dialects",
    "register_dialect",
    "sqlalchemy_type_code",
]
