"""Tests for describing Python classes as records."""

from __future__ import annotations

import abc
import queue
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Annotated, Any, ClassVar, Optional, Protocol, Union
from uuid import UUID

import pytest

from recordql.describe import ClassDescriber, ClassSubstitution
from recordql.errors import InputKindError
from recordql.types import (
    FieldAnnotations,
    FieldKind,
    Float32,
    Int8,
    PrimitiveKind,
    Reference,
    SpecialType,
    UInt64,
)


@dataclass
class Address:
    street: str
    number: int


@dataclass
class Person:
    name: str
    age: int | None
    address: Address
    tags: list[str]
    friends: Sequence[Person]
    nickname: Optional[str] = field(default=None, metadata={"description": "What friends say"})
    _secret: str = ""


class Plain:
    """Annotated class that is not a dataclass."""

    title: str
    pages: int
    edition: ClassVar[int] = 1


@dataclass
class Wide:
    small: Int8
    big: UInt64
    single: Float32
    double: float
    pair: tuple[int, str]
    many: tuple[int, ...]
    lookup: dict[str, int]
    callback: Callable[[int], int]
    jobs: queue.Queue
    raw: bytes
    number: complex


class Shape(abc.ABC):
    @abc.abstractmethod
    def area(self) -> float: ...

    def name(self) -> str:
        return "shape"

    def _hidden(self) -> int:
        return 0


class Sized(Protocol):
    def size(self) -> int: ...


@dataclass(frozen=True)
class UserRef(Reference):
    pass


@dataclass
class Mixed:
    created: datetime
    ident: UUID
    anything: Any
    either: Union[int, str]
    shape: Shape
    sized: Sized
    owner: UserRef
    noted: Annotated[str, FieldAnnotations(description="Noted", required=True)]
    maybe_noted: Annotated[Optional[int], FieldAnnotations(deprecation_reason="Old")]


class TestIsRecord:
    """Tests for recognizing record classes."""

    def test_records(self):
        """Test dataclasses and annotated classes are records."""
        describer = ClassDescriber()
        assert describer.is_record(Person)
        assert describer.is_record(Plain)

    def test_not_records(self):
        """Test builtins, polymorphic classes and non-classes are not records."""
        describer = ClassDescriber()
        assert not describer.is_record(int)
        assert not describer.is_record(dict)
        assert not describer.is_record(Shape)
        assert not describer.is_record(Sized)
        assert not describer.is_record(Person("a", 1, Address("s", 1), [], []))


class TestDescribe:
    """Tests for ClassDescriber.describe."""

    def test_dataclass_fields(self):
        """Test fields are read in declaration order, skipping private ones."""
        record = ClassDescriber().describe(Person)

        assert record.name == "Person"
        assert record.source is Person
        assert [f.name for f in record.fields] == [
            "name", "age", "address", "tags", "friends", "nickname",
        ]

    def test_optional_and_lists(self):
        """Test optional markers and list element types."""
        record = ClassDescriber().describe(Person)

        age = record.get_field("age")
        assert age.optional is True
        assert age.type.primitive is PrimitiveKind.INT

        tags = record.get_field("tags")
        assert tags.optional is False
        assert tags.type.kind is FieldKind.LIST
        assert tags.type.element.primitive is PrimitiveKind.STRING

        friends = record.get_field("friends")
        assert friends.type.kind is FieldKind.LIST
        assert friends.type.element.kind is FieldKind.RECORD
        assert friends.type.element.record is Person

    def test_nested_record(self):
        """Test record fields carry the class as their handle."""
        address = ClassDescriber().describe(Person).get_field("address")
        assert address.type.kind is FieldKind.RECORD
        assert address.type.record is Address
        assert address.type.name == "Address"

    def test_metadata(self):
        """Test dataclass field metadata becomes annotations."""
        nickname = ClassDescriber().describe(Person).get_field("nickname")
        assert nickname.optional is True
        assert nickname.annotations.description == "What friends say"

    def test_plain_class(self):
        """Test annotated classes are described, ClassVars skipped."""
        record = ClassDescriber().describe(Plain)
        assert [f.name for f in record.fields] == ["title", "pages"]

    def test_instance(self):
        """Test instances describe as their class."""
        record = ClassDescriber().describe(Address("Main", 1))
        assert record.name == "Address"

    def test_record_name(self):
        """Test record names are read without describing fields."""
        describer = ClassDescriber()
        assert describer.record_name(Address) == "Address"
        assert describer.record_name(Address("Main", 1)) == "Address"
        assert describer.record_name(str) is None

    def test_not_a_record(self):
        """Test non-records are rejected."""
        with pytest.raises(InputKindError):
            ClassDescriber().describe(str)
        with pytest.raises(InputKindError):
            ClassDescriber().describe(3.5)


class TestDescribeType:
    """Tests for mapping type hints to kinds."""

    def test_width_markers(self):
        """Test width markers and primitive kinds."""
        record = ClassDescriber().describe(Wide)
        kinds = {f.name: f.type for f in record.fields}

        assert kinds["small"].primitive is PrimitiveKind.INT8
        assert kinds["big"].primitive is PrimitiveKind.UINT64
        assert kinds["single"].primitive is PrimitiveKind.FLOAT32
        assert kinds["double"].primitive is PrimitiveKind.FLOAT64

    def test_unsupported_kinds(self):
        """Test kinds with no scalar mapping are still described."""
        record = ClassDescriber().describe(Wide)
        kinds = {f.name: f.type for f in record.fields}

        assert kinds["pair"].primitive is PrimitiveKind.ARRAY
        assert kinds["lookup"].primitive is PrimitiveKind.MAP
        assert kinds["callback"].primitive is PrimitiveKind.FUNC
        assert kinds["jobs"].primitive is PrimitiveKind.CHANNEL
        assert kinds["raw"].primitive is PrimitiveKind.BYTES
        assert kinds["number"].primitive is PrimitiveKind.COMPLEX128

    def test_variadic_tuple(self):
        """Test tuple[X, ...] is a list."""
        many = ClassDescriber().describe(Wide).get_field("many")
        assert many.type.kind is FieldKind.LIST
        assert many.type.element.primitive is PrimitiveKind.INT

    def test_special_types(self):
        """Test timestamps and identifiers."""
        record = ClassDescriber().describe(Mixed)
        assert record.get_field("created").type.special is SpecialType.TIMESTAMP
        assert record.get_field("ident").type.special is SpecialType.IDENTIFIER

    def test_opaque_polymorphic(self):
        """Test Any and multi-member unions have no operations."""
        record = ClassDescriber().describe(Mixed)
        for name in ("anything", "either"):
            kind = record.get_field(name).type
            assert kind.kind is FieldKind.POLYMORPHIC
            assert kind.operations == ()

    def test_abstract_operations(self):
        """Test abstract classes expose their public methods in order."""
        shape = ClassDescriber().describe(Mixed).get_field("shape").type

        assert shape.kind is FieldKind.POLYMORPHIC
        assert [op.name for op in shape.operations] == ["area", "name"]
        assert shape.operations[0].returns.primitive is PrimitiveKind.FLOAT64
        assert shape.operations[1].returns.primitive is PrimitiveKind.STRING

    def test_protocol_operations(self):
        """Test protocols are polymorphic."""
        sized = ClassDescriber().describe(Mixed).get_field("sized").type
        assert sized.kind is FieldKind.POLYMORPHIC
        assert [op.name for op in sized.operations] == ["size"]

    def test_reference(self):
        """Test Reference subclasses are fetched by reference."""
        owner = ClassDescriber().describe(Mixed).get_field("owner").type
        assert owner.kind is FieldKind.RECORD
        assert owner.by_reference is True

    def test_annotated(self):
        """Test FieldAnnotations inside Annotated are read."""
        record = ClassDescriber().describe(Mixed)

        noted = record.get_field("noted")
        assert noted.annotations.description == "Noted"
        assert noted.annotations.required is True
        assert noted.type.primitive is PrimitiveKind.STRING

        maybe = record.get_field("maybe_noted")
        assert maybe.optional is True
        assert maybe.annotations.deprecation_reason == "Old"


class TestClassSubstitution:
    """Tests for ClassSubstitution."""

    def test_by_class_name(self):
        """Test classes are found by their own name."""
        substitution = ClassSubstitution([Address, Person])
        assert substitution.get_type("Address").name == "Address"
        assert substitution.get_type("Missing") is None

    def test_by_mapping(self):
        """Test explicit names."""
        substitution = ClassSubstitution({"Location": Address})
        record = substitution.get_type("Location")
        assert record.name == "Address"
        assert substitution.get_type("Address") is None
