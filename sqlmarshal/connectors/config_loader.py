"""Configuration file loader for source and sink tasks.

Supports loading task configurations from YAML and JSON files, with
${VAR} references resolved from the environment.
"""

from __future__ import annotations

import json
import logging
import os
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Union

import yaml
from pydantic import BaseModel, ValidationError

from .models import SinkConfig, SourceConfig

logger = logging.getLogger(__name__)

TaskConfig = Union[SourceConfig, SinkConfig]

_ENV_REFERENCE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")

_TASK_KINDS: dict[str, type[BaseModel]] = {
    "source": SourceConfig,
    "sink": SinkConfig,
}


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.errors = errors or []


class ConfigLoader:
    """Loads and validates task configurations from files.

    See EXAMPLE_POSTGRESQL_CONFIG for the YAML layout of a task file.
    """

    def __init__(self, config_dir: str | Path | None = None):
        """Initialize the config loader.

        Args:
            config_dir: Directory containing config files.
                        Defaults to ./config/tasks/
        """
        if config_dir:
            self.config_dir = Path(config_dir)
        else:
            self.config_dir = Path("config/tasks")

    def load_file(self, file_path: str | Path) -> list[TaskConfig]:
        """Load task configurations from a single file.

        Args:
            file_path: Path to YAML or JSON config file

        Returns:
            List of SourceConfig and SinkConfig models

        Raises:
            ConfigValidationError: If validation fails
            FileNotFoundError: If file doesn't exist
        """
        path = Path(file_path)

        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        suffix = path.suffix.lower()
        if suffix in (".yaml", ".yml"):
            with open(path) as f:
                data = yaml.safe_load(f)
        elif suffix == ".json":
            with open(path) as f:
                data = json.load(f)
        else:
            raise ValueError(f"Unsupported config format: {suffix}")

        return self.parse_config(data, str(path))

    def load_directory(self, directory: str | Path | None = None) -> list[TaskConfig]:
        """Load all task configurations from a directory.

        Args:
            directory: Directory to scan. Defaults to self.config_dir.

        Returns:
            List of task models from all files

        Raises:
            ConfigValidationError: If any validation fails
        """
        config_dir = Path(directory) if directory else self.config_dir

        if not config_dir.exists():
            logger.warning(f"Config directory does not exist: {config_dir}")
            return []

        tasks: list[TaskConfig] = []
        errors: list[dict[str, Any]] = []

        for pattern in ("*.yaml", "*.yml", "*.json"):
            for file_path in sorted(config_dir.glob(pattern)):
                try:
                    file_tasks = self.load_file(file_path)
                    tasks.extend(file_tasks)
                    logger.info(f"Loaded {len(file_tasks)} task(s) from {file_path.name}")
                except ConfigValidationError as e:
                    errors.extend(e.errors)
                except (OSError, ValueError, yaml.YAMLError) as e:
                    errors.append({"file": str(file_path), "error": str(e)})

        if errors:
            raise ConfigValidationError(
                f"Validation failed for {len(errors)} item(s)",
                errors=errors,
            )

        return tasks

    def parse_config(self, data: Any, source: str = "<memory>") -> list[TaskConfig]:
        """Parse configuration data into task models.

        A document is either a single task with a 'kind' key, a list of
        such tasks, or a mapping with 'sources' and/or 'sinks' lists.

        Raises:
            ConfigValidationError: If validation fails
        """
        if isinstance(data, dict) and ("sources" in data or "sinks" in data):
            entries = [("source", c) for c in data.get("sources") or []]
            entries += [("sink", c) for c in data.get("sinks") or []]
        elif isinstance(data, dict):
            entries = [(data.get("kind"), data)]
        elif isinstance(data, list):
            entries = [(c.get("kind") if isinstance(c, dict) else None, c) for c in data]
        else:
            raise ConfigValidationError(
                f"Invalid config format in {source}",
                errors=[{"file": source, "error": "Expected dict or list"}],
            )

        tasks: list[TaskConfig] = []
        errors: list[dict[str, Any]] = []

        for idx, (kind, config) in enumerate(entries):
            try:
                tasks.append(self._validate_task_config(kind, config, source, idx))
            except ConfigValidationError as e:
                errors.extend(e.errors)

        if errors:
            raise ConfigValidationError(
                f"Validation failed for {len(errors)} item(s) in {source}",
                errors=errors,
            )

        return tasks

    def _validate_task_config(
        self, kind: Any, config: Any, source: str, index: int
    ) -> TaskConfig:
        """Validate and convert a single task configuration.

        Raises:
            ConfigValidationError: If validation fails
        """
        model = _TASK_KINDS.get(kind) if isinstance(kind, str) else None
        if model is None:
            raise ConfigValidationError(
                f"Invalid kind in {source}",
                errors=[
                    {
                        "file": source,
                        "index": index,
                        "field": "kind",
                        "error": f"Invalid kind: {kind}. Valid: {list(_TASK_KINDS)}",
                    }
                ],
            )
        if not isinstance(config, dict):
            raise ConfigValidationError(
                f"Invalid task in {source}",
                errors=[{"file": source, "index": index, "error": "Expected a mapping"}],
            )

        body = {k: v for k, v in config.items() if k != "kind"}
        try:
            body = expand_env(body)
            return model.model_validate(body)  # type: ignore[return-value]
        except KeyError as e:
            raise ConfigValidationError(
                f"Undefined environment variable in {source}",
                errors=[
                    {
                        "file": source,
                        "index": index,
                        "error": f"Environment variable not set: {e.args[0]}",
                    }
                ],
            ) from e
        except ValidationError as e:
            raise ConfigValidationError(
                f"Validation failed for {kind} '{config.get('name')}'",
                errors=[
                    {
                        "file": source,
                        "index": index,
                        "field": ".".join(str(p) for p in error["loc"]),
                        "error": error["msg"],
                    }
                    for error in e.errors()
                ],
            ) from e

    def export_config(
        self,
        tasks: list[TaskConfig],
        output_path: str | Path,
        format: str = "yaml",
    ) -> None:
        """Export task configurations to a file.

        Passwords are never written.

        Args:
            tasks: Task models to export
            output_path: Output file path
            format: Output format ("yaml" or "json")
        """
        path = Path(output_path)

        export_data: dict[str, Any] = {
            "version": "1.0",
            "exported_at": datetime.now().isoformat(),
            "sources": [
                t.model_dump(mode="json", exclude_none=True)
                for t in tasks
                if isinstance(t, SourceConfig)
            ],
            "sinks": [
                t.model_dump(mode="json", exclude_none=True)
                for t in tasks
                if isinstance(t, SinkConfig)
            ],
        }

        path.parent.mkdir(parents=True, exist_ok=True)

        if format == "yaml":
            with open(path, "w") as f:
                yaml.dump(export_data, f, default_flow_style=False, sort_keys=False)
        elif format == "json":
            with open(path, "w") as f:
                json.dump(export_data, f, indent=2)
        else:
            raise ValueError(f"Unsupported format: {format}")

        logger.info(f"Exported {len(tasks)} task(s) to {path}")


def expand_env(value: Any) -> Any:
    """Resolve ${VAR} references in every string of a config document.

    Raises:
        KeyError: If a referenced variable is not set
    """
    if isinstance(value, str):
        return _ENV_REFERENCE.sub(lambda m: os.environ[m.group(1)], value)
    if isinstance(value, dict):
        return {k: expand_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [expand_env(v) for v in value]
    return value


def load_tasks_from_config(config_dir: str | Path | None = None) -> list[TaskConfig]:
    """Convenience function to load tasks from a config directory."""
    loader = ConfigLoader(config_dir)
    return loader.load_directory()


# Task file accepted by ConfigLoader.load_file(), one source and one sink
EXAMPLE_POSTGRESQL_CONFIG = """
# Copy orders from PostgreSQL into a reporting table
sources:
  - name: orders
    dialect: postgresql
    table: orders
    schema_name: public
    batch_size: 5000
    connection:
      host: db.example.com
      database: warehouse
      username: readonly_user
      password: "${POSTGRES_PASSWORD}"
      ssl_mode: require

sinks:
  - name: orders_copy
    dialect: postgresql
    table: orders_copy
    operation: upsert
    relation_table_key: order_id
    connection:
      host: reporting.example.com
      database: reporting
      username: writer
      password: "${REPORTING_PASSWORD}"
"""
