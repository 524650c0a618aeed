"""
Unit Tests - Test individual components in isolation.
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from typing import Annotated, Any, Callable, NamedTuple

import pytest

from bracetext.errors import (
    BraceError, EndOfStream, LexicalError, LiteralError, StructureError, UnsupportedShapeError,
)
from bracetext.grammar import EMPTY_WORD, escape_word, needs_quotes, quote_word
from bracetext.literals import format_bool, format_float, format_int, parse_bool, parse_float, parse_int
from bracetext.shape import Kind, describe, describe_value
from bracetext.token import Token, Tokenizer, TokenKind
from bracetext.types import FixedLength, Float32, Int8, Uint16, Uint64, Word, is_word_type


def kinds(text: str) -> list:
    return [(t.kind, t.data) for t in Tokenizer(text)]


# =============================================================================
# Grammar
# =============================================================================

class TestQuoting:

    def test_plain_word_unquoted(self):
        assert quote_word("hello") == "hello"
        assert quote_word("a{b}") == "a{b}"

    def test_empty_string_always_quoted(self):
        assert quote_word("") == EMPTY_WORD == '""'

    @pytest.mark.parametrize("text", ["a b", "a\tb", "a\nb", "a\rb", "it's", "back\\slash", 'say "hi"'])
    def test_trigger_characters_force_quotes(self, text):
        assert needs_quotes(text)
        assert quote_word(text).startswith('"')
        assert quote_word(text).endswith('"')

    @pytest.mark.parametrize("text", ["{x", "}x", "[x", "]x", "/x", "//x"])
    def test_leading_structure_forces_quotes(self, text):
        assert quote_word(text) == f'"{text}"'

    def test_escape_table(self):
        assert escape_word('a\nb\rc\td\\e"f') == 'a\\nb\\rc\\td\\\\e\\"f'

    def test_backslash_escaped_once(self):
        # An escaped newline must not have its backslash escaped again
        assert escape_word("\\n") == "\\\\n"
        assert escape_word("\n") == "\\n"


# =============================================================================
# Literals
# =============================================================================

class TestParseInt:

    @pytest.mark.parametrize("text,value", [
        ("0", 0),
        ("42", 42),
        ("-17", -17),
        ("+5", 5),
        ("0x1F", 31),
        ("0X1f", 31),
        ("017", 15),
        ("0o17", 15),
        ("0b101", 5),
        ("1_000", 1000),
    ])
    def test_bases(self, text, value):
        assert parse_int(text) == value

    def test_signed_bounds(self):
        assert parse_int("-128", 8) == -128
        assert parse_int("127", 8) == 127
        with pytest.raises(LiteralError, match="out of range"):
            parse_int("128", 8)
        with pytest.raises(LiteralError, match="out of range"):
            parse_int("-129", 8)

    def test_unsigned_bounds(self):
        assert parse_int("255", 8, signed=False) == 255
        assert parse_int("18446744073709551615", 64, signed=False) == 2**64 - 1
        with pytest.raises(LiteralError, match="out of range"):
            parse_int("256", 8, signed=False)

    def test_unsigned_rejects_sign(self):
        with pytest.raises(LiteralError):
            parse_int("-1", 16, signed=False)
        with pytest.raises(LiteralError):
            parse_int("+1", 16, signed=False)

    @pytest.mark.parametrize("text", ["", "-", "1.5", "abc", "09", "0x", "_1", "--1", "1e3"])
    def test_malformed(self, text):
        with pytest.raises(LiteralError):
            parse_int(text)


class TestParseFloat:

    def test_decimal_and_exponent(self):
        assert parse_float("1.5") == 1.5
        assert parse_float("-2e3") == -2000.0
        assert parse_float("7") == 7.0

    def test_hex_float(self):
        assert parse_float("0x1p-2") == 0.25

    def test_special_values(self):
        assert parse_float("+Inf") == math.inf
        assert parse_float("-Inf") == -math.inf
        assert math.isnan(parse_float("NaN"))

    def test_overflow_is_range_error(self):
        with pytest.raises(LiteralError, match="out of range"):
            parse_float("1e400")
        with pytest.raises(LiteralError, match="out of range for float32"):
            parse_float("1e39", 32)

    def test_float32_rounding(self):
        assert parse_float("0.1", 32) != 0.1
        assert parse_float("0.5", 32) == 0.5

    def test_malformed(self):
        with pytest.raises(LiteralError):
            parse_float("one")
        with pytest.raises(LiteralError):
            parse_float("")


class TestParseBool:

    @pytest.mark.parametrize("text", ["1", "t", "T", "true", "TRUE", "True"])
    def test_true(self, text):
        assert parse_bool(text) is True

    @pytest.mark.parametrize("text", ["0", "f", "F", "false", "FALSE", "False"])
    def test_false(self, text):
        assert parse_bool(text) is False

    def test_invalid(self):
        with pytest.raises(LiteralError):
            parse_bool("yes")


class TestFormat:

    def test_int_and_bool(self):
        assert format_int(-3) == "-3"
        assert format_bool(True) == "true"
        assert format_bool(False) == "false"

    @pytest.mark.parametrize("value,text", [
        (1.5, "1.5"),
        (3.0, "3.0"),
        (0.1, "0.1"),
        (1e20, "100000000000000000000"),
        (1e-7, "0.0000001"),
        (-2.25, "-2.25"),
    ])
    def test_float_never_uses_exponent(self, value, text):
        assert format_float(value) == text

    def test_float_specials(self):
        assert format_float(math.inf) == "+Inf"
        assert format_float(-math.inf) == "-Inf"
        assert format_float(math.nan) == "NaN"

    def test_float32_shortest(self):
        assert format_float(parse_float("0.1", 32), 32) == "0.1"
        assert format_float(parse_float("3.14159", 32), 32) == "3.14159"

    def test_float32_out_of_range(self):
        with pytest.raises(LiteralError, match="out of range for float32"):
            format_float(1e39, 32)
        assert format_float(1e39) == "1" + "0" * 39

    def test_negative_zero_keeps_sign(self):
        assert format_float(-0.0) == "-0.0"
        assert format_float(-0.0, 32) == "-0"


# =============================================================================
# Tokenizer
# =============================================================================

class TestTokenizer:

    def test_token_kinds(self):
        assert kinds("{ a } [ b ]") == [
            (TokenKind.OPEN, ""),
            (TokenKind.WORD, "a"),
            (TokenKind.CLOSE, ""),
            (TokenKind.OPEN_HEADER, ""),
            (TokenKind.WORD, "b"),
            (TokenKind.CLOSE_HEADER, ""),
        ]

    def test_positions(self):
        tokens = list(Tokenizer('{ Name "Ada" }\n  x'))
        assert [(t.line, t.column) for t in tokens] == [(1, 1), (1, 3), (1, 8), (1, 14), (2, 3)]

    def test_bare_word_keeps_braces(self):
        assert kinds("a{b}c") == [(TokenKind.WORD, "a{b}c")]

    def test_word_at_end_of_stream(self):
        tokens = Tokenizer("abc")
        assert tokens.next() == Token(TokenKind.WORD, "abc", 1, 1)
        with pytest.raises(EndOfStream):
            tokens.next()

    def test_empty_stream(self):
        with pytest.raises(EndOfStream):
            Tokenizer("").next()
        with pytest.raises(EndOfStream):
            Tokenizer(" \t\r\n").next()

    def test_quoted_escapes(self):
        assert kinds(r'"a\nb\tc\rd\\e\"f"') == [(TokenKind.WORD, 'a\nb\tc\rd\\e"f')]

    def test_quoted_empty_and_spaces(self):
        assert kinds('"" "two words"') == [(TokenKind.WORD, ""), (TokenKind.WORD, "two words")]

    def test_quoted_word_may_span_lines(self):
        tokens = Tokenizer('"a\nb" c')
        assert tokens.next().data == "a\nb"
        c = tokens.next()
        assert (c.line, c.column) == (2, 4)

    def test_line_comment(self):
        tokens = list(Tokenizer("a // ignored } {\nb"))
        assert [t.data for t in tokens] == ["a", "b"]
        assert tokens[1].line == 2

    def test_block_comment_counts_lines(self):
        tokens = list(Tokenizer("/* one\ntwo */ b"))
        assert [(t.data, t.line, t.column) for t in tokens] == [("b", 2, 8)]

    def test_slash_inside_bare_word(self):
        assert kinds("a/b") == [(TokenKind.WORD, "a/b")]

    def test_stray_comment_marker(self):
        with pytest.raises(LexicalError, match="stray comment marker"):
            list(Tokenizer("a /x"))

    def test_unterminated_block_comment(self):
        with pytest.raises(LexicalError, match="unterminated block comment"):
            list(Tokenizer("/* never closed"))

    def test_unterminated_quote(self):
        with pytest.raises(LexicalError, match="unterminated quoted word") as exc_info:
            list(Tokenizer('a "open'))
        assert exc_info.value.line == 1
        assert exc_info.value.column == 3

    def test_unknown_escape(self):
        with pytest.raises(LexicalError, match=r"unknown escape sequence: \\q"):
            list(Tokenizer(r'"a\qb"'))

    def test_peek_does_not_consume(self):
        tokens = Tokenizer("a b")
        assert tokens.peek().data == "a"
        assert tokens.peek().data == "a"
        assert tokens.next().data == "a"
        assert tokens.next().data == "b"

    def test_peek_at_end_raises(self):
        tokens = Tokenizer("a")
        tokens.next()
        with pytest.raises(EndOfStream):
            tokens.peek()

    def test_next_word_rejects_structure(self):
        with pytest.raises(StructureError, match="expected a word"):
            Tokenizer("{").next_word()

    def test_bytes_and_binary_streams(self):
        import io
        assert kinds(b"caf\xc3\xa9") == [(TokenKind.WORD, "café")]
        assert kinds(io.BytesIO(b"{ x }")) == [
            (TokenKind.OPEN, ""), (TokenKind.WORD, "x"), (TokenKind.CLOSE, ""),
        ]

    def test_word_length_limit(self):
        with pytest.raises(LexicalError, match="exceeds 3 characters"):
            list(Tokenizer("abcd", max_word_length=3))
        with pytest.raises(LexicalError, match="exceeds 3 characters"):
            list(Tokenizer('"abcd"', max_word_length=3))


# =============================================================================
# Errors
# =============================================================================

class TestErrors:

    def test_hierarchy(self):
        assert issubclass(BraceError, ValueError)
        assert issubclass(EndOfStream, EOFError)
        assert not issubclass(EndOfStream, BraceError)
        assert issubclass(UnsupportedShapeError, TypeError)

    def test_message_with_location_and_path(self):
        err = LiteralError("bad number", line=3, column=7)
        err.add_context("[2]")
        err.add_context(".Items")
        assert err.location == ".Items[2]"
        assert str(err) == "line 3, column 7, at .Items[2]: bad number"

    def test_bare_message(self):
        assert str(StructureError("oops")) == "oops"


# =============================================================================
# Shapes
# =============================================================================

@dataclass
class Sample:
    Count: int = 0
    Name: str = "anon"
    Tags: list[str] = field(default_factory=list)


class Pair(NamedTuple):
    left: int
    right: str = "r"


class Bare(NamedTuple):
    x: int
    y: str


@dataclass
class Needed:
    Count: int
    Tags: list[str]
    Name: str = "x"


@dataclass
class Gauge:
    Total: float = 0


class Color(enum.Enum):
    RED = 1


class Stamp:
    def __init__(self) -> None:
        self.text = ""

    def encode_word(self) -> str:
        return self.text

    def decode_word(self, data: str) -> None:
        self.text = data


class TestShape:

    def test_scalars(self):
        assert describe(int).kind is Kind.INT
        assert describe(int).bits == 64
        assert describe(bool).kind is Kind.BOOL
        assert describe(str).kind is Kind.STRING
        assert describe(float).kind is Kind.FLOAT

    def test_width_annotations(self):
        assert (describe(Int8).kind, describe(Int8).bits) == (Kind.INT, 8)
        assert (describe(Uint16).kind, describe(Uint16).bits) == (Kind.UINT, 16)
        assert describe(Uint64).name == "uint64"
        assert describe(Float32).name == "float32"

    def test_containers(self):
        assert describe(list[int]).kind is Kind.SEQUENCE
        assert describe(tuple[int, ...]).kind is Kind.SEQUENCE
        assert describe(tuple[int, str]).kind is Kind.ARRAY
        assert describe(tuple[int, str]).length == 2
        fixed = describe(Annotated[list[int], FixedLength(4)])
        assert (fixed.kind, fixed.length) == (Kind.ARRAY, 4)
        assert describe(dict[str, int]).kind is Kind.MAP

    def test_dataclass_record(self):
        shape = describe(Sample)
        assert shape.kind is Kind.RECORD
        assert not shape.positional
        assert [f.name for f in shape.fields] == ["Count", "Name", "Tags"]
        assert shape.get_field("Name").zero() == "anon"
        assert shape.zero() == Sample()

    def test_namedtuple_record(self):
        shape = describe(Pair)
        assert shape.kind is Kind.RECORD
        assert shape.positional
        assert shape.zero() == Pair(0, "r")

    def test_required_fields_fall_back_to_shape_zero(self):
        assert describe(Bare).zero() == Bare(0, "")
        assert describe(Needed).zero() == Needed(0, [], "x")

    def test_negative_zero_is_not_zero(self):
        total = describe(Gauge).get_field("Total")
        assert total.is_zero(0.0)
        assert not total.is_zero(-0.0)
        assert not total.is_zero(0.5)

    def test_word_type_preempts(self):
        assert is_word_type(Stamp)
        assert isinstance(Stamp(), Word)
        assert describe(Stamp).kind is Kind.WORD
        assert not is_word_type(dict)

    def test_dynamic(self):
        assert describe(Any).kind is Kind.DYNAMIC
        assert describe_value([1]).kind is Kind.SEQUENCE
        assert describe_value({}).kind is Kind.MAP

    @pytest.mark.parametrize("tp", [set[int], Callable[[], int], dict[list[int], int], Color, complex])
    def test_unsupported(self, tp):
        with pytest.raises(UnsupportedShapeError):
            describe(tp)

    def test_none_value_unsupported(self):
        with pytest.raises(UnsupportedShapeError):
            describe_value(None)
