"""Field resolvers attached by the compiler."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from graphql import GraphQLError, GraphQLFieldResolver, GraphQLResolveInfo

from recordql.hooks import ReferenceFetcher
from recordql.types import Reference

logger = logging.getLogger(__name__)


def field_value(source: Any, name: str) -> Any:
    """Read a field from a record value (attribute or mapping key)."""
    if isinstance(source, Mapping):
        return source.get(name)
    return getattr(source, name, None)


def first_operation_resolver(operation: str) -> GraphQLFieldResolver:
    """Resolve a polymorphic field through its first declared operation.

    The field value (or each element of a list value) is asked for
    ``operation()``; that result is what the field's type describes.
    """

    def resolve(source: Any, info: GraphQLResolveInfo, **_args: Any) -> Any:
        value = field_value(source, info.field_name)
        if value is None:
            return None
        if isinstance(value, (list, tuple)):
            return [_call(item, operation) for item in value if item is not None]
        return _call(value, operation)

    resolve.__name__ = f"resolve_{operation}"
    return resolve


def _call(value: Any, operation: str) -> Any:
    method = getattr(value, operation, None)
    if not callable(method):
        raise GraphQLError(f"{type(value).__name__} has no operation '{operation}'")
    return method()


def dereference_resolver(fetch: ReferenceFetcher) -> GraphQLFieldResolver:
    """Resolve a by-reference field into the objects its handles point at."""

    def resolve(source: Any, info: GraphQLResolveInfo, **_args: Any) -> Any:
        value = field_value(source, info.field_name)
        if value is None:
            return None
        is_list = isinstance(value, (list, tuple))
        references = list(value) if is_list else [value]
        for reference in references:
            if not isinstance(reference, Reference):
                raise GraphQLError(
                    f"Field '{info.field_name}' on {type(source).__name__} holds "
                    f"{type(reference).__name__}, not a Reference"
                )
        if not references:
            return []
        results = list(fetch(references, info.context))
        logger.debug("Fetched %d object(s) for %d reference(s)", len(results), len(references))
        if is_list:
            return results
        return results[0] if results else None

    return resolve
