"""Dialect registry for managing available database dialects.

The registry pattern allows dialect modules to register themselves on
import and provides lookup of the capability bundle by dialect name.
"""

from __future__ import annotations

import logging
from typing import Type

from .base import Dialect
from .models import DialectInfo, DialectName

logger = logging.getLogger(__name__)


class DialectRegistry:
    """Registry of dialect implementations.

    Maintains a mapping of dialect names to their implementation classes
    and hands out one shared, stateless instance per dialect.
    """

    def __init__(self) -> None:
        self._dialects: dict[DialectName, Type[Dialect]] = {}
        self._instances: dict[DialectName, Dialect] = {}

    def register(self, name: DialectName, dialect_class: Type[Dialect]) -> None:
        """Register a dialect implementation.

        Args:
            name: The dialect name (e.g., POSTGRESQL, ORACLE)
            dialect_class: The Dialect subclass to register
        """
        if name in self._dialects:
            logger.warning(f"Overwriting existing dialect for {name}")
        self._dialects[name] = dialect_class
        self._instances.pop(name, None)
        logger.debug(f"Registered dialect: {name}")

    def unregister(self, name: DialectName) -> None:
        self._dialects.pop(name, None)
        self._instances.pop(name, None)

    def get(self, name: DialectName | str) -> Dialect:
        """Get the dialect bundle for a name.

        Args:
            name: Dialect name or its string value

        Returns:
            The Dialect instance

        Raises:
            ValueError: If the dialect is not registered
        """
        key = DialectName(name)
        dialect_class = self._dialects.get(key)
        if dialect_class is None:
            raise ValueError(f"No dialect registered for: {key.value}")
        if key not in self._instances:
            self._instances[key] = dialect_class()
        return self._instances[key]

    def is_registered(self, name: DialectName) -> bool:
        return name in self._dialects

    def list_dialects(self) -> list[DialectInfo]:
        """List information about all registered dialects."""
        return [self.get(name).info for name in self._dialects]


# Global registry instance
_registry = DialectRegistry()


def get_registry() -> DialectRegistry:
    """Get the global dialect registry."""
    return _registry


def register_dialect(name: DialectName, dialect_class: Type[Dialect]) -> None:
    """Convenience function to register a dialect."""
    _registry.register(name, dialect_class)


def get_dialect(name: DialectName | str) -> Dialect:
    """Convenience function to look up a dialect."""
    return _registry.get(name)


def list_dialects() -> list[DialectInfo]:
    return _registry.list_dialects()
