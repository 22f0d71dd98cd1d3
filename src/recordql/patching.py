"""Stub placeholders for recursive records and the pass that replaces them."""

from __future__ import annotations

import logging

from graphql import (
    GraphQLField,
    GraphQLInputField,
    GraphQLInputObjectType,
    GraphQLInt,
    GraphQLList,
    GraphQLNonNull,
    GraphQLObjectType,
    GraphQLType,
    get_named_type,
    is_list_type,
    is_non_null_type,
)

from recordql.config import CompilerConfig
from recordql.errors import UnresolvedStubError
from recordql.registry import CompiledObject, TypeRegistry
from recordql.types import TargetMode

logger = logging.getLogger(__name__)


class StubInserter:
    """Manufactures placeholder types for records met again while in progress."""

    def __init__(self, registry: TypeRegistry, config: CompilerConfig) -> None:
        self.registry = registry
        self.config = config

    def insert(self, name: str, mode: TargetMode) -> CompiledObject:
        """Return the stub standing in for registered name ``name``.

        Idempotent: an existing stub is reused. The stub carries exactly one
        synthetic field so it is a valid object type on its own. When the
        stub name is taken by another entry, the suffix is appended again
        until a free name (or this record's own stub) is found.
        """
        stub_name = self.config.stub_name(name)
        while stub_name in self.registry:
            if self.registry.stub_base(stub_name) == name:
                return self.registry.lookup(stub_name)  # type: ignore[return-value]
            logger.debug("Stub name '%s' is taken; trying a longer one", stub_name)
            stub_name = self.config.stub_name(stub_name)
        field_name = self.config.stub_field_name
        stub: CompiledObject
        if mode is TargetMode.INPUT:
            stub = GraphQLInputObjectType(stub_name, {field_name: GraphQLInputField(GraphQLInt)})
        else:
            stub = GraphQLObjectType(stub_name, {field_name: GraphQLField(GraphQLInt)})
        logger.debug("Inserted stub '%s' for '%s'", stub_name, name)
        return self.registry.register_stub(stub_name, stub, base=name)


def rewrap(type_: GraphQLType, named: GraphQLType) -> GraphQLType:
    """Rebuild the List/NonNull wrappers of ``type_`` around ``named``."""
    if is_list_type(type_):
        return GraphQLList(rewrap(type_.of_type, named))  # type: ignore[union-attr]
    if is_non_null_type(type_):
        return GraphQLNonNull(rewrap(type_.of_type, named))  # type: ignore[union-attr, arg-type]
    return named


class PatchResolver:
    """Replaces every stub reference in the registry with its canonical type.

    Run once, when the outermost compile call unwinds. A single linear pass
    over the fields of all registered objects; nothing is recompiled.
    """

    def __init__(self, registry: TypeRegistry, config: CompilerConfig) -> None:
        self.registry = registry
        self.config = config

    def stub_target(self, type_: GraphQLType) -> str | None:
        """Registered name a field type's stub stands in for, if it is a stub."""
        named = get_named_type(type_)
        if named is None:
            return None
        base = self.config.stub_base(named.name)
        if base is None or not self.registry.is_stub(named.name):
            return None
        if self.registry.lookup(named.name) is not named:
            return None
        return self.registry.stub_base(named.name)

    def resolve(self) -> int:
        """Patch all stub references; return how many fields were replaced."""
        patched = 0
        for owner, compiled in self.registry.objects():
            fields = compiled.fields
            for field_name, field_def in list(fields.items()):
                base = self.stub_target(field_def.type)
                if base is None:
                    continue
                canonical = self.registry.lookup(base)
                if canonical is None:
                    error = UnresolvedStubError(owner, field_name, get_named_type(field_def.type).name)
                    logger.warning("%s; leaving the field unpatched", error)
                    self.registry.diagnostics.append(error)
                    continue
                fields[field_name] = self._replace(field_def, rewrap(field_def.type, canonical))
                patched += 1
                logger.debug("Replaced %s.%s with type %s", owner, field_name, canonical.name)
        return patched

    @staticmethod
    def _replace(
        field_def: GraphQLField | GraphQLInputField, type_: GraphQLType
    ) -> GraphQLField | GraphQLInputField:
        if isinstance(field_def, GraphQLInputField):
            return GraphQLInputField(
                type_,  # type: ignore[arg-type]
                default_value=field_def.default_value,
                description=field_def.description,
                deprecation_reason=field_def.deprecation_reason,
                out_name=field_def.out_name,
            )
        return GraphQLField(
            type_,  # type: ignore[arg-type]
            args=field_def.args,
            resolve=field_def.resolve,
            description=field_def.description,
            deprecation_reason=field_def.deprecation_reason,
        )

