"""Record descriptors: the language the compiler reads record definitions in."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, NewType


class FieldKind(Enum):
    """Declared element kind of a field."""

    SCALAR = "scalar"
    RECORD = "record"
    LIST = "list"
    POLYMORPHIC = "polymorphic"


class PrimitiveKind(Enum):
    """Primitive kinds a scalar field may be declared with."""

    BOOL = "bool"
    INT = "int"
    INT8 = "int8"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    UINT = "uint"
    UINT8 = "uint8"
    UINT16 = "uint16"
    UINT32 = "uint32"
    UINT64 = "uint64"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    STRING = "string"
    # Kinds below have no scalar mapping.
    COMPLEX64 = "complex64"
    COMPLEX128 = "complex128"
    BYTES = "bytes"
    ARRAY = "array"
    CHANNEL = "chan"
    FUNC = "func"
    MAP = "map"
    UNKNOWN = "unknown"


# Mapping from primitive names to PrimitiveKind values
PRIMITIVE_KIND_NAMES: dict[str, PrimitiveKind] = {pk.value: pk for pk in PrimitiveKind}


class SpecialType(Enum):
    """Types mapped to dedicated scalars whatever their representation."""

    TIMESTAMP = "time"
    IDENTIFIER = "id"


class TargetMode(Enum):
    """Direction of the schema type being produced."""

    OUTPUT = "output"
    INPUT = "input"


# Width markers for annotating Python record fields
Int8 = NewType("Int8", int)
Int16 = NewType("Int16", int)
Int32 = NewType("Int32", int)
Int64 = NewType("Int64", int)
UInt8 = NewType("UInt8", int)
UInt16 = NewType("UInt16", int)
UInt32 = NewType("UInt32", int)
UInt64 = NewType("UInt64", int)
Float32 = NewType("Float32", float)

WIDTH_MARKERS: dict[Any, PrimitiveKind] = {
    Int8: PrimitiveKind.INT8,
    Int16: PrimitiveKind.INT16,
    Int32: PrimitiveKind.INT32,
    Int64: PrimitiveKind.INT64,
    UInt8: PrimitiveKind.UINT8,
    UInt16: PrimitiveKind.UINT16,
    UInt32: PrimitiveKind.UINT32,
    UInt64: PrimitiveKind.UINT64,
    Float32: PrimitiveKind.FLOAT32,
}

# Field metadata keys read from dataclass fields
DESCRIPTION_KEY = "description"
REQUIRED_KEY = "required"
REPLACE_TYPE_WITH_KEY = "replace_type_with"
DEPRECATION_REASON_KEY = "deprecation_reason"


@dataclass(frozen=True)
class Reference:
    """Handle to an object held elsewhere, fetched on demand."""

    type: str
    value: str


@dataclass(frozen=True)
class Operation:
    """An operation exposed by a polymorphic type."""

    name: str
    returns: KindDescriptor | None = None


@dataclass(frozen=True)
class KindDescriptor:
    """The declared type of a field (or of a list element).

    Record kinds carry an opaque ``record`` handle that the describer turns
    into a RecordDescriptor when the compiler gets to it, so cyclic record
    graphs never have to be materialized.
    """

    kind: FieldKind
    name: str
    primitive: PrimitiveKind | None = None
    special: SpecialType | None = None
    record: Any = None
    element: KindDescriptor | None = None
    operations: tuple[Operation, ...] = ()
    by_reference: bool = False

    @property
    def base_name(self) -> str:
        """Name of the innermost element type."""
        if self.kind is FieldKind.LIST and self.element is not None:
            return self.element.base_name
        return self.name

    @property
    def base(self) -> KindDescriptor:
        """Innermost element descriptor."""
        if self.kind is FieldKind.LIST and self.element is not None:
            return self.element.base
        return self

    @classmethod
    def scalar(cls, primitive: PrimitiveKind, name: str | None = None) -> KindDescriptor:
        return cls(kind=FieldKind.SCALAR, name=name or primitive.value, primitive=primitive)

    @classmethod
    def special_scalar(cls, special: SpecialType, name: str) -> KindDescriptor:
        return cls(kind=FieldKind.SCALAR, name=name, special=special)

    @classmethod
    def list_of(cls, element: KindDescriptor) -> KindDescriptor:
        return cls(kind=FieldKind.LIST, name=f"[{element.name}]", element=element)


@dataclass(frozen=True)
class FieldAnnotations:
    """Declarative annotations carried by a field definition."""

    description: str = ""
    required: bool = False
    replace_type_with: str = ""
    deprecation_reason: str | None = None

    @classmethod
    def from_metadata(cls, metadata: Any) -> FieldAnnotations:
        """Read annotations from a dataclass field's metadata mapping."""
        return cls(
            description=str(metadata.get(DESCRIPTION_KEY, "")),
            required=_truthy(metadata.get(REQUIRED_KEY, False)),
            replace_type_with=str(metadata.get(REPLACE_TYPE_WITH_KEY, "")),
            deprecation_reason=metadata.get(DEPRECATION_REASON_KEY),
        )

    def merge(self, other: FieldAnnotations) -> FieldAnnotations:
        """Combine two annotation sets; values set in ``other`` win."""
        return FieldAnnotations(
            description=other.description or self.description,
            required=other.required or self.required,
            replace_type_with=other.replace_type_with or self.replace_type_with,
            deprecation_reason=other.deprecation_reason or self.deprecation_reason,
        )


def _truthy(value: Any) -> bool:
    # Accept "true"/"false" strings as written in declaration tags.
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


@dataclass(frozen=True)
class FieldDescriptor:
    """A field as read from a record definition."""

    name: str
    type: KindDescriptor
    optional: bool = False
    annotations: FieldAnnotations = field(default_factory=FieldAnnotations)


@dataclass(frozen=True)
class RecordDescriptor:
    """A record definition: a nominal name and its ordered fields."""

    name: str
    fields: tuple[FieldDescriptor, ...] = ()
    source: Any = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Record name cannot be empty")

    def get_field(self, name: str) -> FieldDescriptor | None:
        """Get a field by name."""
        for f in self.fields:
            if f.name == name:
                return f
        return None
