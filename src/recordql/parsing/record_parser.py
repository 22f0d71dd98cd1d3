"""Parser for the record declaration language.

Declarations describe records the way a class body would::

    # a self-referential record
    Node {
        next: Node? @required,
        children: Node[] @description("Direct descendants"),
        name: string,
    }

    interface Named {
        name(): string
    }

Field types are declared record or interface names, builtin scalars
(``bool``, ``int``, ``int8`` .. ``int64``, ``uint`` .. ``uint64``,
``float32``, ``float64``, ``string``, ``time``, ``id``), ``any`` for opaque
values and ``ref`` for by-reference handles. ``T[]`` declares a list and a
trailing ``?`` an optional field. Annotations: ``@required``,
``@description("...")``, ``@deprecated("...")`` and ``@as(Record)`` to
compile another record in place of the declared type.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import ply.yacc as yacc

from recordql.errors import InputKindError
from recordql.parsing.record_lexer import RecordLexer
from recordql.types import (
    PRIMITIVE_KIND_NAMES,
    FieldAnnotations,
    FieldDescriptor,
    FieldKind,
    KindDescriptor,
    Operation,
    PrimitiveKind,
    RecordDescriptor,
    SpecialType,
)

ANY_TYPE = "any"
REFERENCE_TYPE = "ref"

BUILTIN_SCALARS: dict[str, PrimitiveKind] = {
    name: kind for name, kind in PRIMITIVE_KIND_NAMES.items() if kind is not PrimitiveKind.UNKNOWN
}
BUILTIN_SPECIALS: dict[str, SpecialType] = {st.value: st for st in SpecialType}

# Annotation name -> whether it takes an argument
ANNOTATIONS: dict[str, bool] = {
    "required": False,
    "description": True,
    "deprecated": True,
    "as": True,
}

REFERENCE_DESCRIPTOR = RecordDescriptor(
    name="Reference",
    fields=(
        FieldDescriptor(name="type", type=KindDescriptor.scalar(PrimitiveKind.STRING)),
        FieldDescriptor(name="value", type=KindDescriptor.scalar(PrimitiveKind.STRING)),
    ),
)


@dataclass
class TypeRef:
    """Reference to a type, possibly as a (nested) list."""

    name: str
    list_depth: int = 0


@dataclass
class AnnotationSpec:
    """An ``@name`` or ``@name(value)`` annotation."""

    name: str
    value: str | None = None


@dataclass
class FieldSpec:
    """Specification for a field before resolution."""

    name: str
    type_ref: TypeRef
    optional: bool = False
    annotations: list[AnnotationSpec] = field(default_factory=list)


@dataclass
class RecordSpec:
    """Specification for a record before resolution."""

    name: str
    fields: list[FieldSpec]


@dataclass
class OperationSpec:
    """An operation declared by an interface."""

    name: str
    returns: TypeRef


@dataclass
class InterfaceSpec:
    """Specification for an interface before resolution."""

    name: str
    operations: list[OperationSpec]


class DeclarationSet:
    """Parsed declarations.

    Describes declared records (by name) for the compiler, and doubles as
    the type substitution hook for ``@as(...)`` annotations.
    """

    def __init__(
        self,
        records: dict[str, RecordSpec] | None = None,
        interfaces: dict[str, InterfaceSpec] | None = None,
    ) -> None:
        self.records = records or {}
        self.interfaces = interfaces or {}

    def list_records(self) -> list[str]:
        """List declared record names in declaration order."""
        return list(self.records.keys())

    def record_name(self, record: Any) -> str | None:
        if isinstance(record, RecordDescriptor):
            return record.name
        if isinstance(record, str) and record in self.records:
            return self.records[record].name
        return None

    def describe(self, record: Any) -> RecordDescriptor:
        """Describe a declared record by name."""
        if isinstance(record, RecordDescriptor):
            return record
        if not isinstance(record, str) or record not in self.records:
            raise InputKindError(record, "not a declared record")
        spec = self.records[record]
        return RecordDescriptor(
            name=spec.name,
            fields=tuple(self._describe_field(f) for f in spec.fields),
            source=spec,
        )

    def get_type(self, name: str) -> RecordDescriptor | None:
        if name not in self.records:
            return None
        return self.describe(name)

    def _describe_field(self, spec: FieldSpec) -> FieldDescriptor:
        values = {a.name: a.value for a in spec.annotations}
        annotations = FieldAnnotations(
            description=values.get("description") or "",
            required="required" in values,
            replace_type_with=values.get("as") or "",
            deprecation_reason=values.get("deprecated"),
        )
        return FieldDescriptor(
            name=spec.name,
            type=self.describe_type(spec.type_ref),
            optional=spec.optional,
            annotations=annotations,
        )

    def describe_type(self, type_ref: TypeRef) -> KindDescriptor:
        """Resolve a type reference to a field kind."""
        kind = self._describe_named(type_ref.name)
        for _ in range(type_ref.list_depth):
            kind = KindDescriptor.list_of(kind)
        return kind

    def _describe_named(self, name: str) -> KindDescriptor:
        if name in self.records:
            return KindDescriptor(kind=FieldKind.RECORD, name=name, record=name)
        if name in self.interfaces:
            spec = self.interfaces[name]
            operations = tuple(
                Operation(name=op.name, returns=self.describe_type(op.returns))
                for op in spec.operations
            )
            return KindDescriptor(kind=FieldKind.POLYMORPHIC, name=name, operations=operations)
        if name in BUILTIN_SPECIALS:
            return KindDescriptor.special_scalar(BUILTIN_SPECIALS[name], name)
        if name in BUILTIN_SCALARS:
            return KindDescriptor.scalar(BUILTIN_SCALARS[name], name)
        if name == ANY_TYPE:
            return KindDescriptor(kind=FieldKind.POLYMORPHIC, name=name)
        if name == REFERENCE_TYPE:
            return KindDescriptor(
                kind=FieldKind.RECORD,
                name=REFERENCE_DESCRIPTOR.name,
                record=REFERENCE_DESCRIPTOR,
                by_reference=True,
            )
        raise KeyError(f"Type '{name}' not found")

    def __contains__(self, name: str) -> bool:
        return name in self.records or name in self.interfaces


class RecordParser:
    """Parser for the record declaration language."""

    tokens = RecordLexer.tokens

    def __init__(self) -> None:
        self.lexer = RecordLexer()
        self.lexer.build()
        self.parser: yacc.LRParser = None  # type: ignore

    def p_schema(self, p: yacc.YaccProduction) -> None:
        """schema : statement_list"""
        p[0] = p[1]

    def p_statement_list_multiple(self, p: yacc.YaccProduction) -> None:
        """statement_list : statement_list statement"""
        p[0] = p[1] + [p[2]]

    def p_statement_list_empty(self, p: yacc.YaccProduction) -> None:
        """statement_list : empty"""
        p[0] = []

    def p_empty(self, p: yacc.YaccProduction) -> None:
        """empty :"""
        p[0] = None

    def p_statement(self, p: yacc.YaccProduction) -> None:
        """statement : record_def
                     | interface_def"""
        p[0] = p[1]

    def p_record_def(self, p: yacc.YaccProduction) -> None:
        """record_def : IDENTIFIER LBRACE field_list RBRACE
                      | IDENTIFIER LBRACE field_list COMMA RBRACE"""
        p[0] = RecordSpec(name=p[1], fields=p[3])

    def p_record_def_empty(self, p: yacc.YaccProduction) -> None:
        """record_def : IDENTIFIER LBRACE RBRACE"""
        p[0] = RecordSpec(name=p[1], fields=[])

    def p_field_list_single(self, p: yacc.YaccProduction) -> None:
        """field_list : field"""
        p[0] = [p[1]]

    def p_field_list_multiple(self, p: yacc.YaccProduction) -> None:
        """field_list : field_list COMMA field"""
        p[0] = p[1] + [p[3]]

    def p_field(self, p: yacc.YaccProduction) -> None:
        """field : IDENTIFIER COLON field_type annotation_list"""
        type_ref, optional = p[3]
        p[0] = FieldSpec(name=p[1], type_ref=type_ref, optional=optional, annotations=p[4])

    def p_field_type(self, p: yacc.YaccProduction) -> None:
        """field_type : type_ref"""
        p[0] = (p[1], False)

    def p_field_type_optional(self, p: yacc.YaccProduction) -> None:
        """field_type : type_ref QUESTION"""
        p[0] = (p[1], True)

    def p_type_ref_simple(self, p: yacc.YaccProduction) -> None:
        """type_ref : IDENTIFIER"""
        p[0] = TypeRef(name=p[1])

    def p_type_ref_list(self, p: yacc.YaccProduction) -> None:
        """type_ref : type_ref LBRACKET RBRACKET"""
        p[0] = TypeRef(name=p[1].name, list_depth=p[1].list_depth + 1)

    def p_annotation_list_multiple(self, p: yacc.YaccProduction) -> None:
        """annotation_list : annotation_list annotation"""
        p[0] = p[1] + [p[2]]

    def p_annotation_list_empty(self, p: yacc.YaccProduction) -> None:
        """annotation_list : empty"""
        p[0] = []

    def p_annotation_bare(self, p: yacc.YaccProduction) -> None:
        """annotation : AT IDENTIFIER"""
        p[0] = AnnotationSpec(name=p[2])

    def p_annotation_value(self, p: yacc.YaccProduction) -> None:
        """annotation : AT IDENTIFIER LPAREN STRING RPAREN
                      | AT IDENTIFIER LPAREN IDENTIFIER RPAREN"""
        p[0] = AnnotationSpec(name=p[2], value=p[4])

    def p_interface_def(self, p: yacc.YaccProduction) -> None:
        """interface_def : INTERFACE IDENTIFIER LBRACE operation_list RBRACE
                         | INTERFACE IDENTIFIER LBRACE operation_list COMMA RBRACE"""
        p[0] = InterfaceSpec(name=p[2], operations=p[4])

    def p_interface_def_empty(self, p: yacc.YaccProduction) -> None:
        """interface_def : INTERFACE IDENTIFIER LBRACE RBRACE"""
        p[0] = InterfaceSpec(name=p[2], operations=[])

    def p_operation_list_single(self, p: yacc.YaccProduction) -> None:
        """operation_list : operation"""
        p[0] = [p[1]]

    def p_operation_list_multiple(self, p: yacc.YaccProduction) -> None:
        """operation_list : operation_list COMMA operation"""
        p[0] = p[1] + [p[3]]

    def p_operation(self, p: yacc.YaccProduction) -> None:
        """operation : IDENTIFIER LPAREN RPAREN COLON field_type"""
        p[0] = OperationSpec(name=p[1], returns=p[5][0])

    def p_error(self, p: yacc.YaccProduction) -> None:
        if p:
            raise SyntaxError(f"Syntax error at '{p.value}' (line {p.lineno})")
        else:
            raise SyntaxError("Syntax error at end of input")

    def build(self, **kwargs: Any) -> None:
        """Build the parser."""
        self.parser = yacc.yacc(module=self, **kwargs)

    def parse(self, data: str) -> DeclarationSet:
        """Parse declarations and return the resolved DeclarationSet."""
        if self.parser is None:
            self.build(debug=False, write_tables=False)

        self.lexer.lexer.lineno = 1
        specs = self.parser.parse(data, lexer=self.lexer.lexer)
        if specs is None:
            specs = []
        return self._resolve_specs(specs)

    def _resolve_specs(self, specs: list[RecordSpec | InterfaceSpec]) -> DeclarationSet:
        """Check declarations and references, then build the DeclarationSet."""
        declarations = DeclarationSet()
        for spec in specs:
            if spec.name in declarations or _is_builtin(spec.name):
                raise ValueError(f"Type '{spec.name}' is already defined")
            if isinstance(spec, RecordSpec):
                declarations.records[spec.name] = spec
            else:
                declarations.interfaces[spec.name] = spec

        unresolved: list[str] = []
        for spec in specs:
            if isinstance(spec, RecordSpec):
                for field_spec in spec.fields:
                    self._check_annotations(declarations, spec, field_spec)
                    if not _resolves(declarations, field_spec.type_ref.name):
                        unresolved.append(f"{spec.name}.{field_spec.name}: {field_spec.type_ref.name}")
            else:
                for op in spec.operations:
                    if not _resolves(declarations, op.returns.name):
                        unresolved.append(f"{spec.name}.{op.name}(): {op.returns.name}")
        if unresolved:
            raise ValueError(f"Cannot resolve types: {unresolved}")
        return declarations

    @staticmethod
    def _check_annotations(
        declarations: DeclarationSet, record: RecordSpec, field_spec: FieldSpec
    ) -> None:
        where = f"{record.name}.{field_spec.name}"
        for annotation in field_spec.annotations:
            if annotation.name not in ANNOTATIONS:
                raise ValueError(f"Unknown annotation '@{annotation.name}' on '{where}'")
            takes_value = ANNOTATIONS[annotation.name]
            if takes_value and annotation.value is None:
                raise ValueError(f"Annotation '@{annotation.name}' on '{where}' needs a value")
            if not takes_value and annotation.value is not None:
                raise ValueError(f"Annotation '@{annotation.name}' on '{where}' takes no value")
            if annotation.name == "as" and annotation.value not in declarations.records:
                raise ValueError(
                    f"Annotation '@as({annotation.value})' on '{where}' names no declared record"
                )


def _is_builtin(name: str) -> bool:
    return (
        name in BUILTIN_SCALARS
        or name in BUILTIN_SPECIALS
        or name in (ANY_TYPE, REFERENCE_TYPE)
    )


def _resolves(declarations: DeclarationSet, name: str) -> bool:
    return name in declarations or _is_builtin(name)
