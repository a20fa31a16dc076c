"""Connectors: table introspection, streaming source and batched sink.

Usage:
    from sqlmarshal.connectors import SinkConfig, TableSink

    sink = TableSink(SinkConfig(dialect="postgresql", table="orders", connection=...))
    result = sink.write(records)
"""

from .config_loader import ConfigLoader, ConfigValidationError, load_tasks_from_config
from .introspection import column_types, create_engine, describe_table
from .models import ConnectionConfig, IsolationLevel, SinkConfig, SourceConfig
from .sink import PreparedWrite, TableSink, WriteResult
from .source import TableSource

__all__ = [
    "ConfigLoader",
    "ConfigValidationError",
    "ConnectionConfig",
    "IsolationLevel",
    "PreparedWrite",
    "SinkConfig",
    "SourceConfig",
    "TableSink",
    "TableSource",
    "WriteResult",
    "column_types",
    "create_engine",
    "describe_table",
    "load_tasks_from_config",
]
