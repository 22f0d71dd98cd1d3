"""Capability interfaces supplied by the caller, with no-op defaults."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

from graphql import GraphQLFieldResolver

from recordql.types import RecordDescriptor, Reference


@runtime_checkable
class TypeSubstitution(Protocol):
    """Looks up the record to compile in place of a field's declared type."""

    def get_type(self, name: str) -> RecordDescriptor | None:
        ...


@runtime_checkable
class FieldResolverFinder(Protocol):
    """Finds a custom resolver for a field.

    ``declared`` is the name of the field's declared type, ``substituted``
    the substitution name from the field's annotations ("" if none).
    """

    def get_resolver(self, declared: str, substituted: str) -> GraphQLFieldResolver | None:
        ...


# Takes the handles found at a field and the request context, returns the
# referenced objects in the same order.
ReferenceFetcher = Callable[[Sequence[Reference], Any], Sequence[Any]]


class NullTypeSubstitution:
    """Substitutes nothing."""

    def get_type(self, name: str) -> RecordDescriptor | None:
        return None


class NullResolverFinder:
    """Finds no resolvers."""

    def get_resolver(self, declared: str, substituted: str) -> GraphQLFieldResolver | None:
        return None


class MappingResolverFinder:
    """Resolver finder backed by a type-name to resolver mapping.

    The substitution name is tried before the declared type name.
    """

    def __init__(self, resolvers: Mapping[str, GraphQLFieldResolver]) -> None:
        self.resolvers = dict(resolvers)

    def get_resolver(self, declared: str, substituted: str) -> GraphQLFieldResolver | None:
        if substituted and substituted in self.resolvers:
            return self.resolvers[substituted]
        return self.resolvers.get(declared)
