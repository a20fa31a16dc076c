"""Write-compatibility validation of canonical schemas against tables."""

from .fields import FieldsValidator, Incompatibility, IncompatibilityKind

__all__ = ["FieldsValidator", "Incompatibility", "IncompatibilityKind"]
