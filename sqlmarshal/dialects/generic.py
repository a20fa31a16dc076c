"""Generic dialect for any database reachable through a SQLAlchemy URL.

Uses the default schema reader, marshallers and validator without any
vendor-specific handling.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .base import Dialect
from .models import DialectName
from .registry import register_dialect

if TYPE_CHECKING:
    from ..connectors.models import ConnectionConfig


class GenericDialect(Dialect):
    """Dialect for databases without a dedicated implementation."""

    name = DialectName.GENERIC
    display_name = "Generic Database"
    driver = ""

    def build_url(self, config: ConnectionConfig) -> str:
        """Return the configured SQLAlchemy URL as-is.

        Raises:
            ValueError: If no URL is configured
        """
        if not config.url:
            raise ValueError("The generic dialect requires a full connection 'url'")
        return config.url


# Auto-register on import
register_dialect(DialectName.GENERIC, GenericDialect)
