"""Canonical schema model and column metadata types.

Fields and schemas are immutable. Column descriptors are produced per
table introspection and never persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterable, Iterator

from ..errors import SchemaInferenceError
from .types import LogicalType, SchemaType, type_code_name


@dataclass(frozen=True)
class CanonicalField:
    """A named, typed field of a canonical schema."""

    name: str
    type: SchemaType
    logical_type: LogicalType | None = None
    precision: int | None = None
    scale: int | None = None
    nullable: bool = False

    @classmethod
    def of(
        cls, name: str, schema_type: SchemaType, nullable: bool = False
    ) -> CanonicalField:
        """Create a field of a primitive type."""
        return cls(name=name, type=schema_type, nullable=nullable)

    @classmethod
    def logical(
        cls, name: str, logical_type: LogicalType, nullable: bool = False
    ) -> CanonicalField:
        """Create a field of a logical type other than DECIMAL."""
        if logical_type is LogicalType.DECIMAL:
            raise SchemaInferenceError(
                f"Field '{name}' needs a precision and scale for a decimal type",
                field=name,
            )
        return cls(
            name=name,
            type=logical_type.primitive,
            logical_type=logical_type,
            nullable=nullable,
        )

    @classmethod
    def decimal(
        cls, name: str, precision: int, scale: int = 0, nullable: bool = False
    ) -> CanonicalField:
        """Create a DECIMAL(precision, scale) field.

        Raises:
            SchemaInferenceError: If precision is not positive or scale is
                outside [0, precision]
        """
        if precision is None or precision < 1:
            raise SchemaInferenceError(
                f"Invalid precision '{precision}' for decimal field '{name}'. "
                "Precision must be a positive integer.",
                field=name,
            )
        if scale is None or scale < 0 or scale > precision:
            raise SchemaInferenceError(
                f"Invalid scale '{scale}' for decimal field '{name}'. "
                f"Scale must be between 0 and the precision ({precision}).",
                field=name,
            )
        return cls(
            name=name,
            type=SchemaType.BYTES,
            logical_type=LogicalType.DECIMAL,
            precision=precision,
            scale=scale,
            nullable=nullable,
        )

    def as_nullable(self, nullable: bool = True) -> CanonicalField:
        return replace(self, nullable=nullable)

    def renamed(self, name: str) -> CanonicalField:
        return replace(self, name=name)

    def matches(self, name: str) -> bool:
        """Case-insensitive name comparison."""
        return self.name.casefold() == name.casefold()

    @property
    def display_type(self) -> str:
        """Type label used in diagnostics, e.g. 'decimal(10,6)'."""
        if self.logical_type is LogicalType.DECIMAL:
            return f"decimal({self.precision},{self.scale})"
        if self.logical_type is not None:
            return self.logical_type.value
        return self.type.value


@dataclass(frozen=True)
class CanonicalSchema:
    """Ordered sequence of uniquely named canonical fields."""

    fields: tuple[CanonicalField, ...] = ()
    _index: dict[str, int] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", tuple(self.fields))
        for position, schema_field in enumerate(self.fields):
            key = schema_field.name.casefold()
            if key in self._index:
                raise SchemaInferenceError(
                    f"Duplicate field name '{schema_field.name}' in schema",
                    field=schema_field.name,
                )
            self._index[key] = position

    @classmethod
    def of(cls, *fields: CanonicalField) -> CanonicalSchema:
        return cls(fields)

    @classmethod
    def from_fields(cls, fields: Iterable[CanonicalField]) -> CanonicalSchema:
        return cls(tuple(fields))

    def get_field(self, name: str) -> CanonicalField | None:
        """Look up a field by name, ignoring case."""
        position = self._index.get(name.casefold())
        return None if position is None else self.fields[position]

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    def __iter__(self) -> Iterator[CanonicalField]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)


@dataclass(frozen=True)
class ColumnDescriptor:
    """Driver metadata for a single result or table column.

    Attributes:
        name: Column name as reported by the database
        type_code: SQL type code (portable or vendor-specific)
        type_name: Declared database type name, e.g. 'VARCHAR2' or 'YEAR'
        precision: Reported precision or length, 0 when unknown
        scale: Reported scale, may be negative for unconstrained numerics
        nullable: Whether the column accepts NULL
        signed: False for unsigned integer columns
        value_class: Native Python class the driver returns for the column
    """

    name: str
    type_code: int
    type_name: str = ""
    precision: int = 0
    scale: int = 0
    nullable: bool = True
    signed: bool = True
    value_class: type | None = None

    @property
    def type_label(self) -> str:
        return self.type_name or type_code_name(self.type_code)


@dataclass(frozen=True)
class ColumnType:
    """One entry of a sink's column-type binding."""

    name: str
    type_name: str
    type_code: int
