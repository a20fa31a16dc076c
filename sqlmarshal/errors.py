"""Exception hierarchy for schema mapping and record marshalling."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .utils.sanitization import sanitize_error_message

if TYPE_CHECKING:
    from .validation.fields import Incompatibility


class MarshallingError(Exception):
    """Base exception for marshalling errors."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        column: str | None = None,
    ) -> None:
        super().__init__(message)
        self.field = field
        self.column = column


class SchemaInferenceError(MarshallingError):
    """Column metadata could not be mapped to a canonical type."""

    pass


class DataReadError(MarshallingError):
    """A column value could not be converted into a record field."""

    pass


class DataWriteError(MarshallingError):
    """A record value could not be bound to its target column."""

    pass


class ValidationFailure(MarshallingError):
    """One or more input fields are not write-compatible with the table."""

    def __init__(
        self, message: str, incompatibilities: list["Incompatibility"] | None = None
    ) -> None:
        super().__init__(message)
        self.incompatibilities = incompatibilities or []

    @property
    def field_names(self) -> list[str]:
        """Distinct offending field names, in report order."""
        return list(dict.fromkeys(i.field_name for i in self.incompatibilities))


class ConnectivityError(MarshallingError):
    """Connection setup or table introspection failed."""

    def __init__(self, message: str, url: str | None = None) -> None:
        super().__init__(sanitize_error_message(message))
        self.url = sanitize_error_message(url) if url else None
