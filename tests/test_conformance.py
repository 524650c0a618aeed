"""
Brace Text Conformance Tests

Shared test vectors plus the format's core guarantees:
keyed round-trips, zero-field omission, string quoting, map determinism,
tabular positional mapping, duplicate and bounds rejection, comment
transparency, word preemption and end-of-stream handling.
"""

from __future__ import annotations

import io
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Annotated

import pytest

from bracetext import Decoder, Encoder, dumps, load_all, loads
from bracetext.converters import from_builtins, to_builtins
from bracetext.errors import (
    BoundsError, DuplicateFieldError, EndOfStream, LexicalError, LiteralError, StructureError,
)
from bracetext.grammar import quote_word
from bracetext.literals import format_float, parse_int
from bracetext.token import Tokenizer
from bracetext.types import FixedLength, Int16, Uint8, Uint64


VECTORS_PATH = Path(__file__).parent / "conformance" / "vectors.json"

@pytest.fixture(scope="module")
def vectors():
    with open(VECTORS_PATH, encoding="utf-8") as f:
        return json.load(f)


@dataclass
class Entry:
    ID: Uint64 = 0
    Key: str = ""
    Strings: list[str] = field(default_factory=list)


@dataclass
class Sensor:
    Name: str = ""
    Port: Uint8 = 0
    Offset: Int16 = 0
    Gain: float = 0.0
    Live: bool = False
    Samples: list[int] = field(default_factory=list)
    Limits: tuple[int, int] = (0, 0)
    Notes: dict[str, str] = field(default_factory=dict)


@dataclass
class One:
    A: int = 0


class CsvWord(dict):
    """A map that writes itself as one comma separated word."""

    def encode_word(self) -> str:
        return ",".join(f"{k}:{v}" for k, v in sorted(self.items()))

    def decode_word(self, data: str) -> None:
        for pair in filter(None, data.split(",")):
            key, _, value = pair.partition(":")
            self[key] = value


@dataclass
class Span:
    start: int = 0
    end: int = 0

    def encode_word(self) -> str:
        return f"{self.start}..{self.end}"

    def decode_word(self, data: str) -> None:
        start, _, end = data.partition("..")
        self.start, self.end = int(start), int(end)


# ================================================================
# Shared Vectors
# ================================================================

class TestVectors:

    def test_quote_word(self, vectors):
        for case in vectors["quote_word"]["cases"]:
            quoted = quote_word(case["input"])
            assert quoted == case["quoted"], f"[{case['desc']}] got {quoted!r}"
            assert loads(quoted, str) == case["input"], f"[{case['desc']}] round-trip"

    def test_tokens(self, vectors):
        for case in vectors["tokens"]["cases"]:
            tokens = [
                [t.kind.name, t.data] if t.data or t.kind.name == "WORD" else [t.kind.name]
                for t in Tokenizer(case["input"])
            ]
            assert tokens == case["tokens"], f"[{case['desc']}] got {tokens!r}"

    def test_lexical_errors(self, vectors):
        for case in vectors["lexical_errors"]["cases"]:
            with pytest.raises(LexicalError):
                list(Tokenizer(case["input"]))

    def test_integers(self, vectors):
        for case in vectors["integers"]["cases"]:
            if case.get("error"):
                with pytest.raises(LiteralError):
                    parse_int(case["text"], case["bits"], case["signed"])
            else:
                value = parse_int(case["text"], case["bits"], case["signed"])
                assert value == case["value"], f"[{case['desc']}] got {value!r}"

    def test_floats(self, vectors):
        for case in vectors["floats"]["cases"]:
            text = format_float(case["value"], case["bits"])
            assert text == case["text"], f"[{case['desc']}] got {text!r}"

    def test_documents(self, vectors):
        for case in vectors["documents"]["cases"]:
            rows = [to_builtins(e) for e in load_all(case["input"], Entry)]
            assert rows == case["expected"], f"[{case['desc']}] got {rows!r}"

    def test_encodings(self, vectors):
        for case in vectors["encodings"]["cases"]:
            entry = from_builtins(case["value"], Entry)
            assert dumps(entry) == case["keyed"], f"[{case['desc']}] keyed"
            assert dumps(entry, tabular=True) == case["tabular"], f"[{case['desc']}] tabular"


# ================================================================
# Round-trip and omission
# ================================================================

class TestKeyedRoundTrip:

    def test_non_zero_record(self):
        sensor = Sensor(
            Name="probe 1", Port=200, Offset=-300, Gain=0.75, Live=True,
            Samples=[3, -1, 0], Limits=(-5, 5), Notes={"unit": "mV", "where": "left arm"},
        )
        assert loads(dumps(sensor), Sensor) == sensor

    def test_stream_of_records(self):
        sensors = [Sensor(Name=f"s{i}", Port=i + 1, Samples=[i]) for i in range(5)]
        text = "".join(dumps(s) for s in sensors)
        assert load_all(text, Sensor) == sensors

    def test_custom_indent_decodes(self):
        sensor = Sensor(Name="x", Samples=[1, 2], Notes={"a": "b"})
        assert loads(dumps(sensor, indent="    "), Sensor) == sensor


class TestZeroOmission:

    def test_only_non_zero_fields_written(self):
        text = dumps(Sensor(Name="n", Live=True))
        words = [t.data for t in Tokenizer(text) if t.data]
        assert words == ["Name", "n", "Live", "true"]

    def test_omitted_fields_decode_to_zero(self):
        assert loads("{ Port 9 }", Sensor) == Sensor(Port=9)

    def test_zero_record_roundtrip(self):
        assert loads(dumps(Sensor()), Sensor) == Sensor()


class TestStringQuoting:

    SPECIALS = ["", " ", "\t", "\n", "\r", '"', "\\", "'", "\\n", '\\"', "{", "}", "[", "]", "//", "/*"]

    @pytest.mark.parametrize("text", SPECIALS)
    def test_each_special(self, text):
        assert loads(dumps(text), str) == text

    def test_every_special_at_once(self):
        text = 'a b\tc\nd\re"f\\g\'h'
        assert loads(dumps(text), str) == text

    def test_inside_record_and_row(self):
        entry = Entry(ID=1, Key=' {}"\\\n', Strings=["", "x y"])
        assert loads(dumps(entry), Entry) == entry
        out = io.StringIO()
        encoder = Encoder(out, tabular=True)
        encoder.write_header(Entry)
        encoder.encode(entry)
        assert load_all(out.getvalue(), Entry) == [entry]


class TestMapDeterminism:

    def test_insertion_order_irrelevant(self):
        forward = {"delta": 4, "alpha": 1, "charlie": 3, "bravo": 2}
        backward = dict(reversed(list(forward.items())))
        assert dumps(forward, dict[str, int]) == dumps(backward, dict[str, int])

    def test_string_keys_ascending(self):
        text = dumps({"b": 1, "a": 1, "c": 1}, dict[str, int])
        assert [t.data for t in Tokenizer(text) if t.data and t.data != "1"] == ["a", "b", "c"]

    def test_numeric_keys_ascending(self):
        text = dumps({10: 0, -2: 0, 3: 0}, dict[int, int])
        keys = [t.data for t in Tokenizer(text) if t.data][::2]
        assert keys == ["-2", "3", "10"]

    def test_float_keys_numeric(self):
        text = dumps({2.5: "x", 10.0: "y"}, dict[float, str])
        assert text == "{\n\t2.5 x\n\t10.0 y\n}\n"


# ================================================================
# Tabular
# ================================================================

class TestTabularPositional:

    def test_header_example(self):
        text = "[ ID Key Strings ]\n{ 1 ABCDEFGHIJKLMNOP { 00 01 02 03 } }"
        assert loads(text, Entry) == Entry(ID=1, Key="ABCDEFGHIJKLMNOP", Strings=["00", "01", "02", "03"])

    def test_encode_example(self):
        entry = Entry(ID=1, Key="ABCDEFGHIJKLMNOP", Strings=["00", "01", "02", "03"])
        assert dumps(entry, tabular=True) == "{ 1 ABCDEFGHIJKLMNOP { 00 01 02 03 } }\n"


# ================================================================
# Rejections
# ================================================================

class TestRejections:

    def test_duplicate_field(self):
        with pytest.raises(DuplicateFieldError):
            loads("{ A 1 A 2 }", One)

    def test_bounds_exceeded(self):
        with pytest.raises(BoundsError):
            loads("{ 1 2 3 4 5 }", Annotated[list[int], FixedLength(4)])
        with pytest.raises(BoundsError):
            loads("{ 1 2 3 4 5 }", tuple[int, int, int, int])

    def test_sequence_has_no_bound(self):
        assert loads("{ 1 2 3 4 5 }", list[int]) == [1, 2, 3, 4, 5]


# ================================================================
# Comments
# ================================================================

class TestCommentTransparency:

    PLAIN = "{ Name probe Samples { 1 2 } Notes { k v } }"
    COMMENTED = (
        "// leading comment\n"
        "{ /* before field */ Name probe // trailing\n"
        "  Samples { 1 /* mid */ 2 }\n"
        "  /* multi\n     line */ Notes { k // key\n v }\n"
        "}\n"
        "// after"
    )

    def test_same_value(self):
        assert loads(self.COMMENTED, Sensor) == loads(self.PLAIN, Sensor)

    def test_same_words(self):
        plain = [(t.kind, t.data) for t in Tokenizer(self.PLAIN)]
        commented = [(t.kind, t.data) for t in Tokenizer(self.COMMENTED)]
        assert plain == commented

    def test_comment_in_header(self):
        assert loads("[ ID /* x */ Key ]\n{ 1 a }", Entry) == Entry(1, "a")


# ================================================================
# Word preemption
# ================================================================

class TestWordPreemption:

    def test_map_type_as_one_word(self):
        value = CsvWord(b="2", a="1")
        text = dumps(value)
        assert text == "a:1,b:2\n"
        assert len(list(Tokenizer(text))) == 1
        decoded = loads(text, CsvWord)
        assert isinstance(decoded, CsvWord)
        assert decoded == value

    def test_record_type_as_one_word(self):
        text = dumps(Span(3, 9))
        assert text == "3..9\n"
        assert loads(text, Span) == Span(3, 9)

    def test_words_in_containers(self):
        value = {"x": Span(1, 2), "y": Span(5, 8)}
        text = dumps(value, dict[str, Span])
        assert text == "{\n\tx 1..2\n\ty 5..8\n}\n"
        assert loads(text, dict[str, Span]) == value

    def test_word_rejects_braces(self):
        with pytest.raises(StructureError):
            loads("{ start 1 end 2 }", Span)


# ================================================================
# End of stream
# ================================================================

class TestEndOfStream:

    def test_empty_stream(self):
        with pytest.raises(EndOfStream):
            Decoder("").decode(int)

    def test_trailing_word_without_delimiter(self):
        decoder = Decoder("{ A 1 } 5")
        assert decoder.decode(One) == One(1)
        assert decoder.decode(int) == 5
        with pytest.raises(EndOfStream):
            decoder.decode(int)

    def test_exhaustion_is_not_a_format_error(self):
        assert not issubclass(EndOfStream, ValueError)

    def test_truncated_value_is_structure_error(self):
        with pytest.raises(StructureError):
            Decoder("{ A").decode(One)
        with pytest.raises(StructureError):
            Decoder("[ ID ]\n{ 1").decode(Entry)
