"""SchemaBuilder: the entry point for compiling records into a GraphQL schema."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from graphql import (
    GraphQLField,
    GraphQLInputObjectType,
    GraphQLObjectType,
    GraphQLSchema,
)

from recordql.compiler import Compiler, RecordDescriber
from recordql.config import CompilerConfig
from recordql.describe import ClassDescriber
from recordql.hooks import FieldResolverFinder, ReferenceFetcher, TypeSubstitution
from recordql.parsing import DeclarationSet, RecordParser
from recordql.registry import CompiledObject, TypeRegistry
from recordql.types import TargetMode


class SchemaBuilder:
    """Compiled record types for one schema, with lookup and assembly."""

    def __init__(
        self,
        describer: RecordDescriber | None = None,
        substitution: TypeSubstitution | None = None,
        resolver_finder: FieldResolverFinder | None = None,
        fetcher: ReferenceFetcher | None = None,
        config: CompilerConfig | None = None,
        registry: TypeRegistry | None = None,
    ) -> None:
        """Initialize a schema builder.

        Args:
            describer: Reads record definitions; Python classes by default.
            substitution: Finds records named by ``replace_type_with``.
            resolver_finder: Finds custom resolvers for output fields.
            fetcher: Loads objects for by-reference fields.
            config: Naming and logging settings.
            registry: Registry to compile into; a fresh one by default.
        """
        self.registry = registry if registry is not None else TypeRegistry()
        self.config = config or CompilerConfig()
        self.declarations: DeclarationSet | None = None
        self.compiler = Compiler(
            self.registry,
            describer or ClassDescriber(),
            substitution=substitution,
            resolver_finder=resolver_finder,
            fetcher=fetcher,
            config=self.config,
        )

    @classmethod
    def from_declarations(cls, text: str, **kwargs: Any) -> SchemaBuilder:
        """Parse record declarations and create a builder over them.

        The parsed declarations describe records and substitute ``@as(...)``
        types unless ``describer`` / ``substitution`` are given.

        Args:
            text: Declaration language source.
            **kwargs: Passed through to the constructor.

        Returns:
            A new SchemaBuilder; ``declarations`` holds the parsed set.
        """
        declarations = RecordParser().parse(text)
        kwargs.setdefault("describer", declarations)
        kwargs.setdefault("substitution", declarations)
        builder = cls(**kwargs)
        builder.declarations = declarations
        return builder

    def compile_output(self, record: Any) -> GraphQLObjectType:
        """Compile a record (and everything it reaches) into an object type."""
        return self.compiler.compile_output(record)

    def compile_input(self, record: Any) -> GraphQLInputObjectType:
        """Compile a record (and everything it reaches) into an input object type."""
        return self.compiler.compile_input(record)

    def get_type(self, name: str) -> GraphQLObjectType | None:
        """Get the compiled object type of a record by record name."""
        compiled = self.registry.lookup(self.config.type_name(name, TargetMode.OUTPUT))
        return compiled if isinstance(compiled, GraphQLObjectType) else None

    def get_input_type(self, name: str) -> GraphQLInputObjectType | None:
        """Get the compiled input object type of a record by record name."""
        compiled = self.registry.lookup(self.config.type_name(name, TargetMode.INPUT))
        return compiled if isinstance(compiled, GraphQLInputObjectType) else None

    def set_description(self, type_name: str, field_name: str, text: str) -> None:
        """Set the description of a field on a compiled type.

        Args:
            type_name: Registered name of the type.
            field_name: Name of the field.
            text: The new description.

        Raises:
            KeyError: If the type or field is not found.
        """
        compiled = self.registry.lookup(type_name)
        if compiled is None:
            raise KeyError(f"Type '{type_name}' not found")
        field_def = compiled.fields.get(field_name)
        if field_def is None:
            raise KeyError(f"Field '{field_name}' not found on '{type_name}'")
        field_def.description = text

    def build_schema(
        self,
        query: Mapping[str, GraphQLField],
        mutation: Mapping[str, GraphQLField] | None = None,
    ) -> GraphQLSchema:
        """Assemble a schema from root fields and every compiled type."""
        return GraphQLSchema(
            query=GraphQLObjectType("Query", dict(query)),
            mutation=GraphQLObjectType("Mutation", dict(mutation)) if mutation else None,
            types=[compiled for _, compiled in self.registry.objects()],
        )

    def list_types(self) -> list[str]:
        """List all registered type names, stubs included."""
        return self.registry.list_types()

    def objects(self) -> list[CompiledObject]:
        """List the canonical compiled types in registration order."""
        return [compiled for _, compiled in self.registry.objects()]

    @property
    def diagnostics(self) -> list[Exception]:
        """Non-fatal issues recorded while compiling."""
        return self.registry.diagnostics
