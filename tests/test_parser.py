"""Tests for the record declaration language."""

import pytest

from recordql.errors import InputKindError
from recordql.parsing import DeclarationSet, RecordParser
from recordql.parsing.record_lexer import RecordLexer
from recordql.types import FieldKind, PrimitiveKind, SpecialType


class TestRecordLexer:
    """Tests for the record lexer."""

    def test_tokenize_record(self):
        """Test tokenizing a record declaration."""
        lexer = RecordLexer()
        lexer.build()

        tokens = lexer.tokenize("Node { next: Node? @required }")
        token_types = [t.type for t in tokens]

        assert token_types == [
            "IDENTIFIER",
            "LBRACE",
            "IDENTIFIER",
            "COLON",
            "IDENTIFIER",
            "QUESTION",
            "AT",
            "IDENTIFIER",
            "RBRACE",
        ]

    def test_tokenize_interface(self):
        """Test the interface keyword and operation syntax."""
        lexer = RecordLexer()
        lexer.build()

        tokens = lexer.tokenize("interface Named { name(): string[] }")
        token_types = [t.type for t in tokens]

        assert token_types == [
            "INTERFACE",
            "IDENTIFIER",
            "LBRACE",
            "IDENTIFIER",
            "LPAREN",
            "RPAREN",
            "COLON",
            "IDENTIFIER",
            "LBRACKET",
            "RBRACKET",
            "RBRACE",
        ]

    def test_string(self):
        """Test string literals are unquoted and unescaped."""
        lexer = RecordLexer()
        lexer.build()

        tokens = lexer.tokenize(r'@description("Say \"hi\"")')
        strings = [t.value for t in tokens if t.type == "STRING"]

        assert strings == ['Say "hi"']

    def test_comments_and_newlines(self):
        """Test comments are skipped and lines are counted."""
        lexer = RecordLexer()
        lexer.build()

        tokens = lexer.tokenize("# a comment\nNode {\n}\n")
        assert [t.type for t in tokens] == ["IDENTIFIER", "LBRACE", "RBRACE"]
        assert tokens[0].lineno == 2
        assert tokens[2].lineno == 3

    def test_illegal_character(self):
        """Test error on illegal character."""
        lexer = RecordLexer()
        lexer.build()

        with pytest.raises(SyntaxError):
            lexer.tokenize("Node { x: int $ }")


class TestRecordParser:
    """Tests for the record parser."""

    def test_parse_simple_record(self):
        """Test parsing a simple record."""
        parser = RecordParser()
        declarations = parser.parse("""
        Point {
            x: int,
            y: int
        }
        """)

        assert isinstance(declarations, DeclarationSet)
        assert "Point" in declarations
        assert declarations.list_records() == ["Point"]

        point = declarations.describe("Point")
        assert point.name == "Point"
        assert [f.name for f in point.fields] == ["x", "y"]
        assert point.fields[0].type.primitive is PrimitiveKind.INT

    def test_trailing_comma(self):
        """Test a trailing comma after the last field."""
        declarations = RecordParser().parse("Point { x: float64, y: float64, }")
        assert len(declarations.describe("Point").fields) == 2

    def test_self_reference(self):
        """Test a record may reference itself."""
        declarations = RecordParser().parse("Node { next: Node?, name: string }")
        node = declarations.describe("Node")

        next_field = node.get_field("next")
        assert next_field.optional is True
        assert next_field.type.kind is FieldKind.RECORD
        assert next_field.type.record == "Node"

    def test_forward_reference(self):
        """Test records may be used before they are declared."""
        declarations = RecordParser().parse("""
        Parent { children: Child[] }
        Child { value: int }
        """)

        children = declarations.describe("Parent").get_field("children")
        assert children.type.kind is FieldKind.LIST
        assert children.type.element.record == "Child"
        assert declarations.list_records() == ["Parent", "Child"]

    def test_nested_lists(self):
        """Test list suffixes nest."""
        declarations = RecordParser().parse("Grid { cells: int[][] }")
        cells = declarations.describe("Grid").get_field("cells").type

        assert cells.kind is FieldKind.LIST
        assert cells.element.kind is FieldKind.LIST
        assert cells.base.primitive is PrimitiveKind.INT

    def test_builtin_types(self):
        """Test builtin scalar, special and opaque types."""
        declarations = RecordParser().parse("""
        Everything {
            a: int64,
            b: uint8,
            c: float32,
            d: bool,
            e: time,
            f: id,
            g: any,
            h: ref,
            i: complex128,
        }
        """)
        kinds = {f.name: f.type for f in declarations.describe("Everything").fields}

        assert kinds["a"].primitive is PrimitiveKind.INT64
        assert kinds["b"].primitive is PrimitiveKind.UINT8
        assert kinds["c"].primitive is PrimitiveKind.FLOAT32
        assert kinds["d"].primitive is PrimitiveKind.BOOL
        assert kinds["e"].special is SpecialType.TIMESTAMP
        assert kinds["f"].special is SpecialType.IDENTIFIER
        assert kinds["g"].kind is FieldKind.POLYMORPHIC
        assert kinds["g"].operations == ()
        assert kinds["h"].kind is FieldKind.RECORD
        assert kinds["h"].by_reference is True
        assert kinds["i"].primitive is PrimitiveKind.COMPLEX128

    def test_annotations(self):
        """Test field annotations."""
        declarations = RecordParser().parse("""
        Other { label: string }
        Person {
            name: string? @required @description("Full name"),
            old: int @deprecated("Use name"),
            thing: Person @as(Other),
        }
        """)
        person = declarations.describe("Person")

        name = person.get_field("name").annotations
        assert name.required is True
        assert name.description == "Full name"
        assert person.get_field("old").annotations.deprecation_reason == "Use name"
        assert person.get_field("thing").annotations.replace_type_with == "Other"

    def test_interface(self):
        """Test interfaces are polymorphic with their operations."""
        declarations = RecordParser().parse("""
        interface Named {
            name(): string,
            aliases(): string[]
        }
        Person { who: Named }
        """)
        who = declarations.describe("Person").get_field("who").type

        assert who.kind is FieldKind.POLYMORPHIC
        assert who.name == "Named"
        assert [op.name for op in who.operations] == ["name", "aliases"]
        assert who.operations[0].returns.primitive is PrimitiveKind.STRING
        assert who.operations[1].returns.kind is FieldKind.LIST
        assert "Named" in declarations
        assert declarations.list_records() == ["Person"]

    def test_empty_declarations(self):
        """Test parsing nothing at all."""
        declarations = RecordParser().parse("# nothing here\n")
        assert declarations.list_records() == []

    def test_empty_record(self):
        """Test an empty record parses; compiling it is what fails."""
        declarations = RecordParser().parse("Empty { }")
        assert declarations.describe("Empty").fields == ()

    def test_substitution_lookup(self):
        """Test the declaration set looks records up by name."""
        declarations = RecordParser().parse("Other { label: string }")
        assert declarations.get_type("Other").name == "Other"
        assert declarations.get_type("Missing") is None

    def test_record_name(self):
        """Test the declaration set names declared records only."""
        declarations = RecordParser().parse("Other { label: string }")
        assert declarations.record_name("Other") == "Other"
        assert declarations.record_name("Missing") is None
        assert declarations.record_name(42) is None

    def test_describe_unknown(self):
        """Test describing an undeclared record."""
        declarations = RecordParser().parse("Other { label: string }")
        with pytest.raises(InputKindError):
            declarations.describe("Missing")
        with pytest.raises(InputKindError):
            declarations.describe(42)

    def test_undefined_type_error(self):
        """Test error on undefined type reference."""
        parser = RecordParser()

        with pytest.raises(ValueError, match="Cannot resolve types"):
            parser.parse("""
            Person {
                name: undefined_type
            }
            """)

    def test_duplicate_error(self):
        """Test error on a duplicate declaration."""
        with pytest.raises(ValueError, match="already defined"):
            RecordParser().parse("A { x: int } A { y: int }")

    def test_builtin_name_error(self):
        """Test builtin type names cannot be redeclared."""
        with pytest.raises(ValueError, match="already defined"):
            RecordParser().parse("string { x: int }")

    def test_unknown_annotation(self):
        """Test error on an unknown annotation."""
        with pytest.raises(ValueError, match="Unknown annotation"):
            RecordParser().parse("A { x: int @indexed }")

    def test_annotation_value_errors(self):
        """Test annotations with missing or unexpected values."""
        with pytest.raises(ValueError, match="needs a value"):
            RecordParser().parse("A { x: int @description }")
        with pytest.raises(ValueError, match="takes no value"):
            RecordParser().parse('A { x: int @required("yes") }')
        with pytest.raises(ValueError, match="names no declared record"):
            RecordParser().parse("A { x: int @as(Nowhere) }")

    def test_syntax_error(self):
        """Test error on invalid syntax."""
        with pytest.raises(SyntaxError):
            RecordParser().parse("Person { name string }")

    def test_syntax_error_at_end(self):
        """Test error on truncated input."""
        with pytest.raises(SyntaxError, match="end of input"):
            RecordParser().parse("Person { name: string")

    def test_parser_reuse(self):
        """Test one parser instance parses several inputs."""
        parser = RecordParser()
        first = parser.parse("A { x: int }")
        second = parser.parse("B { y: int }")

        assert first.list_records() == ["A"]
        assert second.list_records() == ["B"]
