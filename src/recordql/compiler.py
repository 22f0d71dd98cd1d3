"""Compiles record descriptors into GraphQL object and input object types."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from graphql import (
    GraphQLField,
    GraphQLFieldResolver,
    GraphQLInputField,
    GraphQLInputObjectType,
    GraphQLList,
    GraphQLNonNull,
    GraphQLObjectType,
    GraphQLType,
)

from recordql.config import CompilerConfig
from recordql.errors import (
    CompileError,
    EmptyRecordError,
    InputKindError,
    RecordDescriptionError,
)
from recordql.hooks import (
    FieldResolverFinder,
    NullResolverFinder,
    NullTypeSubstitution,
    ReferenceFetcher,
    TypeSubstitution,
)
from recordql.patching import PatchResolver, StubInserter
from recordql.registry import CompilationContext, CompiledObject, TypeRegistry
from recordql.resolvers import dereference_resolver, first_operation_resolver
from recordql.scalars import GraphQLAny, ScalarMapper
from recordql.types import (
    FieldDescriptor,
    FieldKind,
    KindDescriptor,
    RecordDescriptor,
    TargetMode,
)

logger = logging.getLogger(__name__)


class RecordDescriber(Protocol):
    """Turns a record handle into a RecordDescriptor."""

    def record_name(self, record: Any) -> str | None:
        ...

    def describe(self, record: Any) -> RecordDescriptor:
        ...


class FieldMapper:
    """Classifies one field and builds its GraphQL field definition."""

    def __init__(
        self,
        compiler: Compiler,
        scalars: ScalarMapper,
        substitution: TypeSubstitution,
        resolver_finder: FieldResolverFinder,
        fetcher: ReferenceFetcher | None = None,
    ) -> None:
        self.compiler = compiler
        self.scalars = scalars
        self.substitution = substitution
        self.resolver_finder = resolver_finder
        self.fetcher = fetcher

    def map(
        self, field: FieldDescriptor, context: CompilationContext
    ) -> GraphQLField | GraphQLInputField:
        """Build the field definition for ``field``.

        Raises CompileError if the field cannot be mapped; the caller drops
        the field.
        """
        annotations = field.annotations
        substitute = self.substitute(field, context)
        compiled = self.classify(field.type, field, context, substitute)
        # required only has an effect on fields declared optional
        if field.optional and annotations.required:
            compiled = GraphQLNonNull(compiled)  # type: ignore[arg-type]
        description = annotations.description or None
        if context.mode is TargetMode.INPUT:
            return GraphQLInputField(
                compiled,  # type: ignore[arg-type]
                description=description,
                deprecation_reason=annotations.deprecation_reason,
            )
        return GraphQLField(
            compiled,  # type: ignore[arg-type]
            resolve=self.select_resolver(field),
            description=description,
            deprecation_reason=annotations.deprecation_reason,
        )

    def substitute(
        self, field: FieldDescriptor, context: CompilationContext
    ) -> RecordDescriptor | None:
        """Look up the record replacing the field's declared type, if any."""
        name = field.annotations.replace_type_with
        if not name:
            return None
        substitute = self.substitution.get_type(name)
        if substitute is None:
            logger.info(
                "%sNo type found for substitution '%s' on field '%s'; using the declared type",
                context.indent, name, field.name,
            )
            return None
        logger.debug(
            "%sSubstituting type '%s' of field '%s' with '%s'",
            context.indent, field.type.base_name, field.name, substitute.name,
        )
        return substitute

    def classify(
        self,
        kind: KindDescriptor,
        field: FieldDescriptor,
        context: CompilationContext,
        substitute: RecordDescriptor | None = None,
    ) -> GraphQLType:
        """Compile a declared kind into a GraphQL type."""
        if kind.special is not None:
            return self.scalars.special(kind.special)
        if kind.kind is FieldKind.LIST:
            if kind.element is None:
                raise RecordDescriptionError(f"List field '{field.name}' has no element type")
            element = self.classify(kind.element, field, context, substitute)
            logger.debug("%s%s will be a list of %s", context.indent, field.name, element)
            return GraphQLList(element)
        if substitute is not None:
            return self.compiler.compile_record(substitute, context)
        if kind.kind is FieldKind.RECORD:
            return self.compiler.compile_record(kind.record, context)
        if kind.kind is FieldKind.POLYMORPHIC:
            return self.classify_polymorphic(kind, field, context)
        return self.scalars.map(kind.primitive, field.name)

    def classify_polymorphic(
        self, kind: KindDescriptor, field: FieldDescriptor, context: CompilationContext
    ) -> GraphQLType:
        """Polymorphic kinds without operations are opaque JSON.

        Otherwise the return type of the first declared operation stands in
        for the field's type. Lossy when a type exposes several operations.
        """
        if not kind.operations:
            return GraphQLAny
        operation = kind.operations[0]
        if operation.returns is None:
            raise RecordDescriptionError(
                f"Cannot find the type returned by {kind.name}.{operation.name}()"
            )
        logger.debug(
            "%sUsing the return type of %s.%s() for field '%s'",
            context.indent, kind.name, operation.name, field.name,
        )
        return self.classify(operation.returns, field, context)

    def select_resolver(self, field: FieldDescriptor) -> GraphQLFieldResolver | None:
        """Pick the resolver for an output field."""
        base = field.type.base
        resolver = self.resolver_finder.get_resolver(
            base.name, field.annotations.replace_type_with
        )
        if resolver is not None:
            return resolver
        if base.by_reference and self.fetcher is not None:
            return dereference_resolver(self.fetcher)
        if base.kind is FieldKind.POLYMORPHIC and base.operations:
            return first_operation_resolver(base.operations[0].name)
        return None


class Compiler:
    """Compiles record graphs into the types held by one TypeRegistry."""

    def __init__(
        self,
        registry: TypeRegistry,
        describer: RecordDescriber,
        substitution: TypeSubstitution | None = None,
        resolver_finder: FieldResolverFinder | None = None,
        fetcher: ReferenceFetcher | None = None,
        config: CompilerConfig | None = None,
    ) -> None:
        self.registry = registry
        self.describer = describer
        self.config = config or CompilerConfig()
        self.scalars = ScalarMapper(registry.diagnostics)
        self.fields = FieldMapper(
            self,
            self.scalars,
            substitution or NullTypeSubstitution(),
            resolver_finder or NullResolverFinder(),
            fetcher,
        )
        self.stubs = StubInserter(registry, self.config)
        self.patcher = PatchResolver(registry, self.config)

    def compile(self, record: Any, mode: TargetMode = TargetMode.OUTPUT) -> CompiledObject:
        """Compile a root record for ``mode``.

        Raises:
            InputKindError: If ``record`` is not record-shaped.
            EmptyRecordError: If the record has no mappable fields.
        """
        if record is None:
            raise InputKindError(record, "the record cannot be None")
        context = CompilationContext(mode, self.registry)
        with self.config.logging_scope():
            return self.compile_record(record, context)

    def compile_output(self, record: Any) -> GraphQLObjectType:
        """Compile a root record into an object type."""
        compiled = self.compile(record, TargetMode.OUTPUT)
        if not isinstance(compiled, GraphQLObjectType):
            raise InputKindError(record, f"compiled to {compiled}, not an object type")
        return compiled

    def compile_input(self, record: Any) -> GraphQLInputObjectType:
        """Compile a root record into an input object type."""
        compiled = self.compile(record, TargetMode.INPUT)
        if not isinstance(compiled, GraphQLInputObjectType):
            raise InputKindError(record, f"compiled to {compiled}, not an input object type")
        return compiled

    def describe(self, record: Any) -> RecordDescriptor:
        if isinstance(record, RecordDescriptor):
            return record
        return self.describer.describe(record)

    def record_name(self, record: Any) -> str | None:
        """Name of a record handle, if known without describing it."""
        if isinstance(record, RecordDescriptor):
            return record.name
        return self.describer.record_name(record)

    def _cached(self, name: str, context: CompilationContext) -> CompiledObject | None:
        cached = self.registry.lookup(name)
        if cached is not None:
            logger.debug("%sType '%s' already defined; returning that one", context.indent, name)
        return cached

    def compile_record(self, record: Any, context: CompilationContext) -> CompiledObject:
        """Compile one record within an ongoing build.

        Returns the cached type on a repeat request, and a stub when the
        record is already being compiled further up the call path. When the
        outermost call unwinds, stub references are patched.
        """
        hint = self.record_name(record)
        if hint is not None:
            cached = self._cached(self.config.type_name(hint, context.mode), context)
            if cached is not None:
                return cached

        descriptor = self.describe(record)
        name = self.config.type_name(descriptor.name, context.mode)
        cached = self._cached(name, context)
        if cached is not None:
            return cached

        if not context.guard.enter(name):
            logger.debug(
                "%sRecord '%s' is nested in itself; inserting a stub for resolution later",
                context.indent, name,
            )
            return self.stubs.insert(name, context.mode)

        context.depth += 1
        try:
            logger.debug("%sBegin compiling %s", context.indent, name)
            fields: dict[str, GraphQLField | GraphQLInputField] = {}
            for field in descriptor.fields:
                try:
                    fields[field.name] = self.fields.map(field, context)
                except CompileError as error:
                    logger.info(
                        "%sIgnoring %s.%s; reason: %s", context.indent, name, field.name, error
                    )
            logger.debug("%sEnd compiling %s", context.indent, name)
            if not fields:
                raise EmptyRecordError(name)
            compiled: CompiledObject
            if context.mode is TargetMode.INPUT:
                compiled = GraphQLInputObjectType(name, fields)  # type: ignore[arg-type]
            else:
                compiled = GraphQLObjectType(name, fields)  # type: ignore[arg-type]
            return self.registry.register(name, compiled)
        finally:
            context.guard.exit(name)
            context.depth -= 1
            if context.depth == 0:
                patched = self.patcher.resolve()
                if patched:
                    logger.debug("Patched %d stub reference(s)", patched)
                context.guard.clear()
