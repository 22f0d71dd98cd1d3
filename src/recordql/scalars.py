"""Scalar types and the primitive-kind to scalar mapping."""

from __future__ import annotations

import dataclasses
import json
import logging
from datetime import date, datetime
from enum import Enum
from typing import Any
from uuid import UUID

from graphql import (
    GraphQLBoolean,
    GraphQLError,
    GraphQLFloat,
    GraphQLInt,
    GraphQLScalarType,
    GraphQLString,
)
from graphql.language import IntValueNode, StringValueNode, ValueNode, print_ast
from graphql.pyutils import inspect
from graphql.utilities import value_from_ast_untyped

from recordql.errors import UnsupportedKindWarning
from recordql.types import PrimitiveKind, SpecialType

logger = logging.getLogger(__name__)

MIN_INT64 = -(2**63)
MAX_INT64 = 2**63 - 1
MAX_UINT64 = 2**64 - 1


def _coerce_int(value: Any, low: int, high: int, name: str) -> int:
    if isinstance(value, bool):
        num = int(value)
    elif isinstance(value, int):
        num = value
    elif isinstance(value, float) and value.is_integer():
        num = int(value)
    elif isinstance(value, str) and value.strip().lstrip("-").isdigit():
        num = int(value)
    else:
        raise GraphQLError(f"{name} cannot represent non-integer value: {inspect(value)}")
    if not low <= num <= high:
        raise GraphQLError(f"{name} cannot represent value outside range: {inspect(value)}")
    return num


def _int_literal(node: ValueNode, low: int, high: int, name: str) -> int:
    if not isinstance(node, IntValueNode):
        raise GraphQLError(f"{name} cannot represent non-integer value: {print_ast(node)}", node)
    return _coerce_int(int(node.value), low, high, name)


GraphQLInt64 = GraphQLScalarType(
    name="Int64",
    description="The `Int64` scalar type represents a signed 64-bit integer.",
    serialize=lambda value: _coerce_int(value, MIN_INT64, MAX_INT64, "Int64"),
    parse_value=lambda value: _coerce_int(value, MIN_INT64, MAX_INT64, "Int64"),
    parse_literal=lambda node, _variables=None: _int_literal(node, MIN_INT64, MAX_INT64, "Int64"),
)

GraphQLUInt64 = GraphQLScalarType(
    name="UInt64",
    description="The `UInt64` scalar type represents an unsigned 64-bit integer.",
    serialize=lambda value: _coerce_int(value, 0, MAX_UINT64, "UInt64"),
    parse_value=lambda value: _coerce_int(value, 0, MAX_UINT64, "UInt64"),
    parse_literal=lambda node, _variables=None: _int_literal(node, 0, MAX_UINT64, "UInt64"),
)


def _parse_datetime(value: str) -> datetime:
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError as error:
        raise GraphQLError(f"DateTime cannot represent value: {inspect(value)}") from error


def _serialize_datetime(value: Any) -> str:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, str):
        return _parse_datetime(value).isoformat()
    raise GraphQLError(f"DateTime cannot represent value: {inspect(value)}")


def _parse_datetime_value(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        return _parse_datetime(value)
    raise GraphQLError(f"DateTime cannot represent value: {inspect(value)}")


def _parse_datetime_literal(node: ValueNode, _variables: Any = None) -> datetime:
    if not isinstance(node, StringValueNode):
        raise GraphQLError(f"DateTime cannot represent value: {print_ast(node)}", node)
    return _parse_datetime(node.value)


GraphQLDateTime = GraphQLScalarType(
    name="DateTime",
    description="The `DateTime` scalar type represents an ISO-8601 timestamp.",
    serialize=_serialize_datetime,
    parse_value=_parse_datetime_value,
    parse_literal=_parse_datetime_literal,
)


def _serialize_object_id(value: Any) -> str:
    if isinstance(value, UUID):
        return value.hex
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).hex()
    if isinstance(value, str):
        return _parse_object_id(value).hex()
    binary = getattr(value, "binary", None)  # bson.ObjectId
    if isinstance(binary, bytes):
        return binary.hex()
    raise GraphQLError(f"ObjectID cannot represent value: {inspect(value)}")


def _parse_object_id(value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        try:
            return bytes.fromhex(value)
        except ValueError as error:
            raise GraphQLError(f"ObjectID cannot represent value: {inspect(value)}") from error
    raise GraphQLError(f"ObjectID cannot represent value: {inspect(value)}")


def _parse_object_id_literal(node: ValueNode, _variables: Any = None) -> bytes:
    if not isinstance(node, StringValueNode):
        raise GraphQLError(f"ObjectID cannot represent value: {print_ast(node)}", node)
    return _parse_object_id(node.value)


GraphQLObjectID = GraphQLScalarType(
    name="ObjectID",
    description="The `ObjectID` scalar type represents an opaque binary identifier as hex text.",
    serialize=_serialize_object_id,
    parse_value=_parse_object_id,
    parse_literal=_parse_object_id_literal,
)


def _to_jsonable(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset)):
        return list(value)
    if hasattr(value, "__dict__"):
        return {k: v for k, v in vars(value).items() if not k.startswith("_")}
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _serialize_any(value: Any) -> str:
    try:
        return json.dumps(value, default=_to_jsonable)
    except (TypeError, ValueError) as error:
        raise GraphQLError(f"Any cannot represent value: {inspect(value)}") from error


def _parse_any_value(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError:
            return value
    return value


def _parse_any_literal(node: ValueNode, variables: Any = None) -> Any:
    return _parse_any_value(value_from_ast_untyped(node, variables))


GraphQLAny = GraphQLScalarType(
    name="Any",
    description="The `Any` scalar type carries an arbitrary value as a JSON document.",
    serialize=_serialize_any,
    parse_value=_parse_any_value,
    parse_literal=_parse_any_literal,
)


SCALAR_TABLE: dict[PrimitiveKind, GraphQLScalarType] = {
    PrimitiveKind.BOOL: GraphQLBoolean,
    PrimitiveKind.INT: GraphQLInt,
    PrimitiveKind.INT8: GraphQLInt,
    PrimitiveKind.INT16: GraphQLInt,
    PrimitiveKind.INT32: GraphQLInt,
    PrimitiveKind.INT64: GraphQLInt64,
    PrimitiveKind.UINT: GraphQLInt,
    PrimitiveKind.UINT8: GraphQLInt,
    PrimitiveKind.UINT16: GraphQLInt,
    PrimitiveKind.UINT32: GraphQLInt,
    PrimitiveKind.UINT64: GraphQLUInt64,
    PrimitiveKind.FLOAT32: GraphQLFloat,
    PrimitiveKind.FLOAT64: GraphQLFloat,
    PrimitiveKind.STRING: GraphQLString,
}

SPECIAL_SCALARS: dict[SpecialType, GraphQLScalarType] = {
    SpecialType.TIMESTAMP: GraphQLDateTime,
    SpecialType.IDENTIFIER: GraphQLObjectID,
}


class ScalarMapper:
    """Maps primitive kinds to scalar types.

    Kinds without a mapping degrade to ``String``; each degradation is logged
    and recorded in ``diagnostics``.
    """

    def __init__(self, diagnostics: list[Exception] | None = None) -> None:
        self.diagnostics = diagnostics if diagnostics is not None else []

    def map(self, kind: PrimitiveKind | None, field_name: str = "") -> GraphQLScalarType:
        """Return the scalar for a primitive kind."""
        scalar = SCALAR_TABLE.get(kind) if kind is not None else None
        if scalar is not None:
            return scalar
        warning = UnsupportedKindWarning(kind.value if kind else None, field_name)
        logger.warning("%s", warning)
        self.diagnostics.append(warning)
        return GraphQLString

    def special(self, special: SpecialType) -> GraphQLScalarType:
        """Return the dedicated scalar for a special type."""
        return SPECIAL_SCALARS[special]
