"""recordql - Compile record type graphs into GraphQL object and input types."""

from recordql.compiler import Compiler
from recordql.config import CompilerConfig
from recordql.describe import ClassDescriber, ClassSubstitution
from recordql.errors import (
    CompileError,
    EmptyRecordError,
    InputKindError,
    RecordDescriptionError,
    UnresolvedStubError,
    UnsupportedKindWarning,
)
from recordql.hooks import (
    FieldResolverFinder,
    MappingResolverFinder,
    ReferenceFetcher,
    TypeSubstitution,
)
from recordql.parsing import DeclarationSet, RecordParser
from recordql.registry import TypeRegistry
from recordql.scalars import (
    GraphQLAny,
    GraphQLDateTime,
    GraphQLInt64,
    GraphQLObjectID,
    GraphQLUInt64,
)
from recordql.schema import SchemaBuilder
from recordql.types import (
    FieldAnnotations,
    FieldDescriptor,
    FieldKind,
    Float32,
    Int8,
    Int16,
    Int32,
    Int64,
    KindDescriptor,
    Operation,
    PrimitiveKind,
    RecordDescriptor,
    Reference,
    SpecialType,
    TargetMode,
    UInt8,
    UInt16,
    UInt32,
    UInt64,
)

__all__ = [
    # Main API
    "SchemaBuilder",
    "Compiler",
    "CompilerConfig",
    "TypeRegistry",
    # Record descriptions
    "ClassDescriber",
    "ClassSubstitution",
    "DeclarationSet",
    "RecordParser",
    "RecordDescriptor",
    "FieldDescriptor",
    "FieldAnnotations",
    "KindDescriptor",
    "FieldKind",
    "PrimitiveKind",
    "SpecialType",
    "TargetMode",
    "Operation",
    "Reference",
    # Width markers
    "Int8",
    "Int16",
    "Int32",
    "Int64",
    "UInt8",
    "UInt16",
    "UInt32",
    "UInt64",
    "Float32",
    # Hooks
    "TypeSubstitution",
    "FieldResolverFinder",
    "MappingResolverFinder",
    "ReferenceFetcher",
    # Scalars
    "GraphQLAny",
    "GraphQLDateTime",
    "GraphQLInt64",
    "GraphQLObjectID",
    "GraphQLUInt64",
    # Errors
    "CompileError",
    "EmptyRecordError",
    "InputKindError",
    "RecordDescriptionError",
    "UnresolvedStubError",
    "UnsupportedKindWarning",
]

__version__ = "0.1.0"
