"""Tests for task configuration models and the config loader."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from sqlmarshal.connectors import (
    ConfigLoader,
    ConfigValidationError,
    ConnectionConfig,
    IsolationLevel,
    SinkConfig,
    SourceConfig,
    load_tasks_from_config,
)
from sqlmarshal.connectors.config_loader import EXAMPLE_POSTGRESQL_CONFIG, expand_env
from sqlmarshal.dialects import DialectName
from sqlmarshal.marshal import Operation

CONNECTION = {"host": "db", "database": "shop", "username": "app", "password": "secret"}


class TestConnectionConfig:
    """Tests for connection settings."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("TRANSACTION_READ_COMMITTED", IsolationLevel.READ_COMMITTED),
            ("serializable", IsolationLevel.SERIALIZABLE),
            ("REPEATABLE_READ", IsolationLevel.REPEATABLE_READ),
            ("TRANSACTION_NONE", None),
        ],
    )
    def test_isolation_level_names(self, value, expected) -> None:
        """JDBC style isolation names are accepted."""
        config = ConnectionConfig(transaction_isolation_level=value)
        assert config.transaction_isolation_level == expected

    def test_unknown_isolation_level(self) -> None:
        """Unknown levels are rejected."""
        with pytest.raises(ValidationError):
            ConnectionConfig(transaction_isolation_level="CHAOS")

    def test_empty_init_query(self) -> None:
        """Blank initialization queries are rejected."""
        with pytest.raises(ValidationError, match="Initialization queries cannot be empty"):
            ConnectionConfig(init_queries=["SELECT 1", "  "])

    def test_password_not_dumped(self) -> None:
        """Passwords are excluded from serialization and repr."""
        config = ConnectionConfig(**CONNECTION)
        assert "password" not in config.model_dump()
        assert "secret" not in repr(config)

    def test_port_range(self) -> None:
        """Ports must be valid TCP ports."""
        with pytest.raises(ValidationError):
            ConnectionConfig(port=70000)


class TestSourceConfig:
    """Tests for source task options."""

    def test_defaults(self) -> None:
        """Fetch and batch sizes have defaults."""
        config = SourceConfig(dialect="postgresql", connection=CONNECTION, table="orders")
        assert config.dialect is DialectName.POSTGRESQL
        assert config.fetch_size == 1000
        assert config.batch_size == 1000

    def test_table_required(self) -> None:
        """A table is always required."""
        with pytest.raises(ValidationError, match="'table' must be specified"):
            SourceConfig(dialect="mysql", connection=CONNECTION, query="SELECT 1")

    @pytest.mark.parametrize("query", ["SELECT 1; DROP TABLE t", "SELECT 1 -- x"])
    def test_query_rejects_statement_breaks(self, query) -> None:
        """Custom queries are a single statement without comments."""
        with pytest.raises(ValidationError, match="cannot contain"):
            SourceConfig(dialect="mysql", connection=CONNECTION, table="t", query=query)

    def test_identifiers_validated(self) -> None:
        """Table and column names must be plain identifiers."""
        with pytest.raises(ValidationError, match="Invalid SQL identifier"):
            SourceConfig(dialect="mysql", connection=CONNECTION, table="t x")
        with pytest.raises(ValidationError, match="Invalid SQL identifier"):
            SourceConfig(dialect="mysql", connection=CONNECTION, table="t", columns=["a;b"])

    def test_unknown_dialect(self) -> None:
        """Only registered dialect names are accepted."""
        with pytest.raises(ValidationError):
            SourceConfig(dialect="informix", connection=CONNECTION, table="t")


class TestSinkConfig:
    """Tests for sink task options."""

    def test_key_list_from_string(self) -> None:
        """Comma separated keys are split."""
        config = SinkConfig(
            dialect="mysql",
            connection=CONNECTION,
            table="t",
            operation="update",
            relation_table_key="id, region",
        )
        assert config.operation is Operation.UPDATE
        assert config.relation_table_key == ["id", "region"]

    @pytest.mark.parametrize("operation", ["update", "upsert"])
    def test_operation_needs_keys(self, operation) -> None:
        """UPDATE and UPSERT need key columns."""
        with pytest.raises(ValidationError, match="'relation_table_key' is required"):
            SinkConfig(dialect="mysql", connection=CONNECTION, table="t", operation=operation)

    def test_scale_not_above_precision(self) -> None:
        """The default scale cannot exceed the default precision."""
        with pytest.raises(ValidationError, match="default_decimal_scale"):
            SinkConfig(
                dialect="mysql",
                connection=CONNECTION,
                table="t",
                default_decimal_precision=5,
                default_decimal_scale=6,
            )

    def test_mapping_targets_validated(self) -> None:
        """Mapped column names must be identifiers."""
        with pytest.raises(ValidationError, match="Invalid SQL identifier"):
            SinkConfig(
                dialect="mysql",
                connection=CONNECTION,
                table="t",
                column_mapping={"name": "bad name"},
            )


class TestExpandEnv:
    """Tests for environment references."""

    def test_nested_values(self, monkeypatch) -> None:
        """References are resolved in nested strings only."""
        monkeypatch.setenv("DB_PASSWORD", "hunter2")
        data = {
            "connection": {"password": "${DB_PASSWORD}", "port": 5432},
            "tags": ["x${DB_PASSWORD}"],
        }
        assert expand_env(data) == {
            "connection": {"password": "hunter2", "port": 5432},
            "tags": ["xhunter2"],
        }

    def test_missing_variable(self, monkeypatch) -> None:
        """Unset variables raise KeyError."""
        monkeypatch.delenv("NOT_SET_ANYWHERE", raising=False)
        with pytest.raises(KeyError):
            expand_env("${NOT_SET_ANYWHERE}")


class TestConfigLoader:
    """Tests for loading task files."""

    def test_load_yaml_sources_and_sinks(self, tmp_path: Path, monkeypatch) -> None:
        """The example document loads one source and one sink."""
        monkeypatch.setenv("POSTGRES_PASSWORD", "a")
        monkeypatch.setenv("REPORTING_PASSWORD", "b")
        path = tmp_path / "tasks.yaml"
        path.write_text(EXAMPLE_POSTGRESQL_CONFIG)
        source, sink = ConfigLoader().load_file(path)
        assert isinstance(source, SourceConfig)
        assert source.connection.password == "a"
        assert isinstance(sink, SinkConfig)
        assert sink.operation is Operation.UPSERT
        assert sink.relation_table_key == ["order_id"]

    def test_load_json_with_kind(self, tmp_path: Path) -> None:
        """Single tasks declare their kind."""
        path = tmp_path / "task.json"
        task = {"kind": "sink", "dialect": "oracle", "table": "T", "connection": CONNECTION}
        path.write_text(json.dumps(task))
        (task,) = ConfigLoader().load_file(path)
        assert isinstance(task, SinkConfig)
        assert task.dialect is DialectName.ORACLE

    def test_missing_file(self, tmp_path: Path) -> None:
        """Missing files raise FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            ConfigLoader().load_file(tmp_path / "nope.yaml")

    def test_unsupported_format(self, tmp_path: Path) -> None:
        """Only YAML and JSON are supported."""
        path = tmp_path / "tasks.toml"
        path.write_text("")
        with pytest.raises(ValueError, match="Unsupported config format"):
            ConfigLoader().load_file(path)

    def test_errors_are_collected(self) -> None:
        """Every invalid task is reported with its index and field."""
        data = [
            {"kind": "source", "dialect": "mysql", "connection": CONNECTION},
            {"kind": "sink", "dialect": "mysql", "table": "t", "connection": CONNECTION},
            {"kind": "report"},
        ]
        with pytest.raises(ConfigValidationError, match="2 item\\(s\\)") as info:
            ConfigLoader().parse_config(data, "tasks.yaml")
        errors = info.value.errors
        assert [e["index"] for e in errors] == [0, 2]
        assert errors[1]["field"] == "kind"
        assert all(e["file"] == "tasks.yaml" for e in errors)

    def test_pydantic_error_fields(self) -> None:
        """Nested validation errors name the dotted field path."""
        data = {"kind": "source", "dialect": "mysql", "table": "t", "connection": {"port": 0}}
        with pytest.raises(ConfigValidationError) as info:
            ConfigLoader().parse_config(data)
        assert info.value.errors[0]["field"] == "connection.port"

    def test_undefined_variable(self, monkeypatch) -> None:
        """Undefined environment references are validation errors."""
        monkeypatch.delenv("MISSING_PASSWORD", raising=False)
        connection = dict(CONNECTION, password="${MISSING_PASSWORD}")
        data = {"kind": "source", "dialect": "mysql", "table": "t", "connection": connection}
        with pytest.raises(ConfigValidationError) as info:
            ConfigLoader().parse_config(data)
        assert "MISSING_PASSWORD" in info.value.errors[0]["error"]

    def test_invalid_document(self) -> None:
        """Documents must be mappings or lists."""
        with pytest.raises(ConfigValidationError, match="Invalid config format"):
            ConfigLoader().parse_config("just text")

    def test_load_directory(self, tmp_path: Path) -> None:
        """YAML files are loaded before JSON files."""
        task = {"dialect": "mysql", "table": "t", "connection": CONNECTION}
        (tmp_path / "b.yaml").write_text(yaml.safe_dump({"sinks": [dict(task, name="b")]}))
        (tmp_path / "a.json").write_text(json.dumps({"sources": [dict(task, name="a")]}))
        tasks = load_tasks_from_config(tmp_path)
        assert [t.name for t in tasks] == ["b", "a"]

    def test_load_directory_reports_bad_files(self, tmp_path: Path) -> None:
        """Unparseable files are reported instead of aborting the scan."""
        (tmp_path / "bad.yaml").write_text("sources: [unclosed")
        with pytest.raises(ConfigValidationError) as info:
            ConfigLoader(tmp_path).load_directory()
        assert info.value.errors[0]["file"].endswith("bad.yaml")

    def test_missing_directory(self, tmp_path: Path) -> None:
        """A missing directory yields no tasks."""
        assert ConfigLoader(tmp_path / "absent").load_directory() == []

    def test_export_excludes_passwords(self, tmp_path: Path) -> None:
        """Exported files never contain passwords."""
        loader = ConfigLoader()
        tasks = [
            SourceConfig(dialect="postgresql", connection=CONNECTION, table="orders"),
            SinkConfig(
                dialect="mysql",
                connection=CONNECTION,
                table="t",
                operation="upsert",
                relation_table_key=["id"],
            ),
        ]
        output = tmp_path / "out" / "tasks.yaml"
        loader.export_config(tasks, output)
        text = output.read_text()
        assert "secret" not in text
        exported = yaml.safe_load(text)
        assert exported["sinks"][0]["operation"] == "upsert"
        assert exported["sources"][0]["connection"]["host"] == "db"

    def test_export_round_trips_through_loader(self, tmp_path: Path) -> None:
        """Exported JSON can be loaded back."""
        loader = ConfigLoader()
        task = SourceConfig(dialect="mysql", connection=CONNECTION, table="orders")
        output = tmp_path / "tasks.json"
        loader.export_config([task], output, format="json")
        (loaded,) = loader.load_file(output)
        assert loaded.table == "orders"
        assert loaded.connection.password is None
