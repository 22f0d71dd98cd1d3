"""Record descriptors read from Python classes.

Dataclasses and classes with annotated attributes are records. Field types
come from their type hints:

- ``X | None`` / ``Optional[X]`` marks a field optional (one level)
- ``list[X]``, ``Sequence[X]``, ``set[X]``, ``tuple[X, ...]`` are lists
- ``Protocol`` and abstract classes are polymorphic; their public methods,
  in declaration order, are the exposed operations
- ``Any``, ``object`` and unions of several types are polymorphic with no
  operations
- ``datetime`` is a timestamp, ``uuid.UUID`` (or any class named
  ``ObjectId``) an opaque identifier
- subclasses of ``Reference`` are records fetched by reference

Field annotations are read from dataclass field metadata (see the
``*_KEY`` constants in :mod:`recordql.types`) or from a ``FieldAnnotations``
instance in ``Annotated[...]``.
"""

from __future__ import annotations

import asyncio
import collections.abc
import dataclasses
import inspect
import queue
import types
import typing
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Annotated, Any, Union, get_args, get_origin, get_type_hints
from uuid import UUID

from recordql.errors import InputKindError, RecordDescriptionError
from recordql.types import (
    WIDTH_MARKERS,
    FieldAnnotations,
    FieldDescriptor,
    FieldKind,
    KindDescriptor,
    Operation,
    PrimitiveKind,
    RecordDescriptor,
    Reference,
    SpecialType,
)

_PRIMITIVES: dict[type, PrimitiveKind] = {
    bool: PrimitiveKind.BOOL,
    int: PrimitiveKind.INT,
    float: PrimitiveKind.FLOAT64,
    str: PrimitiveKind.STRING,
    complex: PrimitiveKind.COMPLEX128,
    bytes: PrimitiveKind.BYTES,
    bytearray: PrimitiveKind.BYTES,
}

_SEQUENCES = (
    list,
    set,
    frozenset,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
    collections.abc.Set,
    collections.abc.MutableSet,
    collections.abc.Iterable,
    collections.abc.Collection,
)

_MAPPINGS = (dict, collections.abc.Mapping, collections.abc.MutableMapping)

_CHANNELS = (queue.Queue, asyncio.Queue)


class ClassDescriber:
    """Describes Python record classes."""

    def is_record(self, cls: Any) -> bool:
        """Check if a class is record-shaped."""
        if not isinstance(cls, type) or cls in _PRIMITIVES:
            return False
        if cls.__module__ == "builtins" or _is_polymorphic(cls):
            return False
        if dataclasses.is_dataclass(cls):
            return True
        return any(inspect.get_annotations(klass) for klass in cls.__mro__[:-1])

    def describe(self, record: Any) -> RecordDescriptor:
        """Describe a record class (or an instance of one)."""
        if isinstance(record, RecordDescriptor):
            return record
        cls = record if isinstance(record, type) else type(record)
        if not self.is_record(cls):
            raise InputKindError(record, "not a dataclass or annotated class")
        try:
            hints = get_type_hints(cls, include_extras=True)
        except (NameError, TypeError) as error:
            raise InputKindError(record, f"cannot read type hints: {error}") from error

        fields: list[FieldDescriptor] = []
        for name, metadata in self._field_names(cls, hints):
            hint = hints[name]
            if get_origin(hint) is typing.ClassVar:
                continue
            fields.append(self.describe_field(name, hint, metadata))
        return RecordDescriptor(name=cls.__name__, fields=tuple(fields), source=cls)

    def record_name(self, record: Any) -> str | None:
        if isinstance(record, RecordDescriptor):
            return record.name
        cls = record if isinstance(record, type) else type(record)
        return cls.__name__ if self.is_record(cls) else None

    @staticmethod
    def _field_names(cls: type, hints: dict[str, Any]) -> Iterable[tuple[str, Mapping[str, Any]]]:
        if dataclasses.is_dataclass(cls):
            for f in dataclasses.fields(cls):
                if not f.name.startswith("_"):
                    yield f.name, f.metadata
            return
        for name in hints:
            if not name.startswith("_"):
                yield name, {}

    def describe_field(
        self, name: str, hint: Any, metadata: Mapping[str, Any] | None = None
    ) -> FieldDescriptor:
        """Describe one field from its type hint and metadata."""
        annotations = FieldAnnotations.from_metadata(metadata or {})
        hint, extra = _strip_annotated(hint)
        for item in extra:
            annotations = annotations.merge(item)
        hint, optional = _strip_optional(hint)
        hint, extra = _strip_annotated(hint)
        for item in extra:
            annotations = annotations.merge(item)
        return FieldDescriptor(
            name=name,
            type=self.describe_type(hint),
            optional=optional,
            annotations=annotations,
        )

    def describe_type(self, hint: Any) -> KindDescriptor:
        """Describe a type hint as a field kind."""
        hint, _ = _strip_annotated(hint)
        name = _type_name(hint)

        special = _special_type(hint)
        if special is not None:
            return KindDescriptor.special_scalar(special, name)

        if hint in WIDTH_MARKERS:
            return KindDescriptor.scalar(WIDTH_MARKERS[hint], name)
        supertype = getattr(hint, "__supertype__", None)
        if supertype is not None:  # other NewTypes describe as their base
            return self.describe_type(supertype)

        if hint is Any or hint is object:
            return KindDescriptor(kind=FieldKind.POLYMORPHIC, name=name)

        origin = get_origin(hint)
        args = get_args(hint)
        if origin in (Union, types.UnionType):
            members = [a for a in args if a is not type(None)]
            if len(members) == 1:
                return self.describe_type(members[0])
            return KindDescriptor(kind=FieldKind.POLYMORPHIC, name=name)
        if origin is tuple or hint is tuple:
            if len(args) == 2 and args[1] is Ellipsis:
                return KindDescriptor.list_of(self.describe_type(args[0]))
            return KindDescriptor.scalar(PrimitiveKind.ARRAY, name)
        if origin in _SEQUENCES or hint in _SEQUENCES:
            element = self.describe_type(args[0]) if args else self.describe_type(Any)
            return KindDescriptor.list_of(element)
        if origin in _MAPPINGS or hint in _MAPPINGS:
            return KindDescriptor.scalar(PrimitiveKind.MAP, name)
        if origin is collections.abc.Callable or hint is collections.abc.Callable:
            return KindDescriptor.scalar(PrimitiveKind.FUNC, name)
        if (origin or hint) in _CHANNELS:
            return KindDescriptor.scalar(PrimitiveKind.CHANNEL, name)

        if hint in _PRIMITIVES:
            return KindDescriptor.scalar(_PRIMITIVES[hint], name)

        if isinstance(hint, type):
            if _is_polymorphic(hint):
                return KindDescriptor(
                    kind=FieldKind.POLYMORPHIC,
                    name=name,
                    operations=self.describe_operations(hint),
                )
            if self.is_record(hint):
                return KindDescriptor(
                    kind=FieldKind.RECORD,
                    name=name,
                    record=hint,
                    by_reference=issubclass(hint, Reference),
                )
        return KindDescriptor.scalar(PrimitiveKind.UNKNOWN, name)

    def describe_operations(self, cls: type) -> tuple[Operation, ...]:
        """Public methods of a polymorphic class, in declaration order."""
        operations: list[Operation] = []
        seen: set[str] = set()
        for klass in cls.__mro__:
            if klass is object or klass is typing.Generic or getattr(klass, "__module__", "") == "typing":
                continue
            for attr, member in vars(klass).items():
                if attr.startswith("_") or attr in seen or not inspect.isfunction(member):
                    continue
                seen.add(attr)
                operations.append(Operation(name=attr, returns=self._return_kind(cls, member)))
        return tuple(operations)

    def _return_kind(self, cls: type, func: Any) -> KindDescriptor | None:
        try:
            hints = get_type_hints(func)
        except (NameError, TypeError) as error:
            raise RecordDescriptionError(
                f"Cannot read the return type of {cls.__name__}.{func.__name__}: {error}"
            ) from error
        returns = hints.get("return")
        if returns is None or returns is type(None):
            return None
        returns, _ = _strip_optional(returns)
        return self.describe_type(returns)


class ClassSubstitution:
    """Substitutes record classes looked up by name."""

    def __init__(
        self,
        classes: Mapping[str, type] | Iterable[type],
        describer: ClassDescriber | None = None,
    ) -> None:
        if isinstance(classes, Mapping):
            self.classes = dict(classes)
        else:
            self.classes = {cls.__name__: cls for cls in classes}
        self.describer = describer or ClassDescriber()

    def get_type(self, name: str) -> RecordDescriptor | None:
        cls = self.classes.get(name)
        if cls is None:
            return None
        return self.describer.describe(cls)


def _strip_annotated(hint: Any) -> tuple[Any, list[FieldAnnotations]]:
    if get_origin(hint) is Annotated:
        base, *extras = get_args(hint)
        return base, [e for e in extras if isinstance(e, FieldAnnotations)]
    return hint, []


def _strip_optional(hint: Any) -> tuple[Any, bool]:
    if get_origin(hint) in (Union, types.UnionType):
        args = get_args(hint)
        if type(None) in args:
            members = tuple(a for a in args if a is not type(None))
            if len(members) == 1:
                return members[0], True
            return Union[members], True  # type: ignore[return-value]
    return hint, False


def _special_type(hint: Any) -> SpecialType | None:
    if not isinstance(hint, type) or get_origin(hint) is not None:
        return None
    if issubclass(hint, datetime):
        return SpecialType.TIMESTAMP
    if issubclass(hint, UUID) or hint.__name__ == "ObjectId":
        return SpecialType.IDENTIFIER
    return None


def _is_polymorphic(cls: type) -> bool:
    return bool(getattr(cls, "_is_protocol", False)) or inspect.isabstract(cls)


def _type_name(hint: Any) -> str:
    name = getattr(hint, "__name__", None)
    if isinstance(name, str):
        return name
    origin = get_origin(hint)
    if origin is not None:
        return getattr(origin, "__name__", str(hint))
    return str(hint)
