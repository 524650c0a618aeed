"""
Brace Text Encoder - Writes typed values as brace text.

Keyed output (default):
  - scalars sit inline after their field name, one space apart
  - bracketed values (records, sequences, arrays, maps) open on their own
    line, one indent unit deeper, and close at the depth they opened
  - record fields holding their zero value are left out
  - map keys are written in ascending order

Tabular output (``tabular=True``):
  - one row per value, all on one line: ``{ 1 ABC { x y } }``
  - every field is written positionally, an all-zero row is ``{}``
  - the header is never written implicitly; call ``write_header`` for it
"""

from __future__ import annotations

import copy
import io
import logging
from typing import IO, Any, Callable, Iterable

from bracetext.errors import BraceError, LiteralError, StructureError, UnsupportedShapeError, WordHookError
from bracetext.grammar import CLOSE, CLOSE_HEADER, DEFAULT_INDENT, OPEN, OPEN_HEADER, ROW_SEPARATOR, quote_word
from bracetext.literals import format_bool, format_float, format_int, int_bounds
from bracetext.shape import Kind, Shape, describe, describe_value

logger = logging.getLogger(__name__)

_ORDERED_KEY_KINDS = frozenset({Kind.INT, Kind.UINT, Kind.FLOAT, Kind.BOOL, Kind.STRING, Kind.ARRAY})


def _writer(out: IO) -> Callable[[str], Any]:
    if isinstance(out, io.TextIOBase):
        return out.write
    if isinstance(out, (io.RawIOBase, io.BufferedIOBase)) or "b" in getattr(out, "mode", ""):
        return lambda text: out.write(text.encode("utf-8"))
    return out.write


def inline_text(value: Any, tp: Any = None) -> str:
    """Render a value on one line, the way it appears inside a tabular row."""
    shape = describe(tp) if tp is not None else describe_value(value)
    return render_inline(value, shape)


def render_inline(value: Any, shape: Shape) -> str:
    return Encoder(io.StringIO())._column_text(value, shape)


def word_to_text(value: Any) -> str:
    """Call a word-capable value's encode_word hook."""
    try:
        text = value.encode_word()
    except BraceError:
        raise
    except Exception as exc:
        raise WordHookError(str(exc)) from exc
    if not isinstance(text, str):
        raise WordHookError(
            f"{type(value).__name__}.encode_word returned {type(text).__name__}, not str"
        )
    return text


class Encoder:
    """
    Encodes values as brace text onto a text or binary stream.

    Usage:
        encoder = Encoder(sys.stdout)
        encoder.encode(person)

        rows = Encoder(sys.stdout, tabular=True)
        rows.write_header(Person)
        for person in people:
            rows.encode(person)
    """

    def __init__(self, out: IO, indent: str = DEFAULT_INDENT, tabular: bool = False) -> None:
        self._write = _writer(out)
        self.indent = indent
        self.tabular = tabular

    def encode(self, value: Any, tp: Any = None) -> None:
        """Write one value. ``tp`` overrides the shape taken from the value's class."""
        shape = describe(tp) if tp is not None else describe_value(value)
        if self.tabular:
            self._encode_row(value, shape)
            return

        shape = self._resolve(value, shape)
        self._encode_value(0, value, shape)
        if not shape.bracketed:
            # Keep consecutive top-level scalars apart
            self._write("\n")

    def write_header(self, columns: type | Iterable[str]) -> None:
        """Write a ``[ A B C ]`` table header from a record type or column names."""
        if isinstance(columns, type):
            shape = describe(columns)
            if shape.kind is not Kind.RECORD:
                raise UnsupportedShapeError(f"{columns.__name__} is not a record type")
            names = [f.name for f in shape.fields]
        else:
            names = list(columns)
        logger.debug("writing table header: %s", " ".join(names))
        words = " ".join(quote_word(name) for name in names)
        self._write(f"{OPEN_HEADER} {words} {CLOSE_HEADER}\n" if names else f"{OPEN_HEADER}{CLOSE_HEADER}\n")

    # -- helpers ------------------------------------------------------------

    @staticmethod
    def _resolve(value: Any, shape: Shape) -> Shape:
        if shape.kind is Kind.DYNAMIC:
            return describe_value(value)
        return shape

    @staticmethod
    def _at(segment: str, encode: Callable[..., Any], *args: Any) -> Any:
        try:
            return encode(*args)
        except BraceError as exc:
            exc.add_context(segment)
            raise

    def _write_indent(self, depth: int) -> None:
        if depth:
            self._write(self.indent * depth)

    @staticmethod
    def _check_type(value: Any, shape: Shape) -> None:
        expected: Any
        if shape.kind in (Kind.RECORD, Kind.WORD):
            expected = shape.py_type
        elif shape.kind in (Kind.ARRAY, Kind.SEQUENCE):
            expected = (list, tuple)
        elif shape.kind is Kind.MAP:
            expected = dict
        elif shape.kind in (Kind.INT, Kind.UINT):
            expected = int
        elif shape.kind is Kind.FLOAT:
            expected = (int, float)
        elif shape.kind is Kind.BOOL:
            expected = bool
        elif shape.kind is Kind.STRING:
            expected = str
        else:
            raise UnsupportedShapeError(f"unknown value kind {shape.name!r}: cannot encode it")
        if not isinstance(value, expected):
            raise UnsupportedShapeError(
                f"expected {shape.name}, got {type(value).__name__}: {value!r}"
            )

    def _scalar_text(self, value: Any, shape: Shape) -> str:
        kind = shape.kind
        if kind is Kind.STRING:
            return quote_word(value)
        if kind is Kind.BOOL:
            return format_bool(value)
        if kind is Kind.FLOAT:
            return format_float(float(value), shape.bits)
        low, high = int_bounds(shape.bits, shape.signed)
        if not low <= value <= high:
            raise LiteralError(f"value {value} out of range for {shape.name}")
        return format_int(int(value))

    @staticmethod
    def _word_text(value: Any) -> str:
        return quote_word(word_to_text(value))

    def _sorted_keys(self, mapping: dict, key_shape: Shape) -> list:
        keys = list(mapping)
        if not keys:
            return keys
        kind = self._resolve(keys[0], key_shape).kind
        try:
            if kind in _ORDERED_KEY_KINDS:
                return sorted(keys)
            if kind is Kind.WORD:
                if isinstance(keys[0], (int, float, str)):
                    return sorted(keys)
                return sorted(keys, key=lambda k: self._word_text(copy.copy(k)))
        except TypeError as exc:
            raise UnsupportedShapeError(f"map keys cannot be ordered: {exc}") from exc
        raise UnsupportedShapeError(f"map keys of kind {kind.value!r} cannot be ordered")

    # -- keyed output -------------------------------------------------------

    def _encode_value(self, depth: int, value: Any, shape: Shape) -> None:
        self._check_type(value, shape)
        self._write_indent(depth)
        kind = shape.kind

        if kind is Kind.WORD:
            self._write(self._word_text(value))
        elif kind in (Kind.ARRAY, Kind.SEQUENCE):
            self._encode_sequence(depth, value, shape)
        elif kind is Kind.RECORD:
            self._encode_record(depth, value, shape)
        elif kind is Kind.MAP:
            self._encode_map(depth, value, shape)
        else:
            self._write(self._scalar_text(value, shape))

    def _encode_member(self, depth: int, value: Any, shape: Shape) -> None:
        """Write the value part after a field name or map key."""
        if shape.bracketed:
            self._write("\n")
            self._encode_value(depth, value, shape)
        else:
            self._write(" ")
            self._encode_value(0, value, shape)
            self._write("\n")

    def _encode_sequence(self, depth: int, value: Any, shape: Shape) -> None:
        if shape.kind is Kind.ARRAY and len(value) > shape.length:
            raise StructureError(f"{len(value)} elements exceed array bounds of {shape.length}")
        self._write(f"{OPEN}\n")
        for i, item in enumerate(value):
            element = shape.elements[i] if shape.kind is Kind.ARRAY else shape.element
            element = self._resolve(item, element)
            self._at(f"[{i}]", self._encode_value, depth + 1, item, element)
            if not element.bracketed:
                self._write("\n")
        self._write_indent(depth)
        self._write(f"{CLOSE}\n")

    def _encode_record(self, depth: int, value: Any, shape: Shape) -> None:
        self._write(f"{OPEN}\n")
        for field, field_value in shape.values_of(value):
            if field.is_zero(field_value):
                continue
            field_shape = self._resolve(field_value, field.shape)
            self._write_indent(depth + 1)
            self._write(field.name)
            self._at(f".{field.name}", self._encode_member, depth + 1, field_value, field_shape)
        self._write_indent(depth)
        self._write(f"{CLOSE}\n")

    def _encode_map(self, depth: int, value: dict, shape: Shape) -> None:
        self._write(f"{OPEN}\n")
        for key in self._sorted_keys(value, shape.key):
            item = value[key]
            key_shape = self._resolve(key, shape.key)
            item_shape = self._resolve(item, shape.element)
            if key_shape.kind is Kind.WORD:
                # A mutating encode_word must never touch the live dict key
                key = copy.copy(key)
            self._at(f"[key {key!r}]", self._encode_value, depth + 1, key, key_shape)
            if key_shape.bracketed and not item_shape.bracketed:
                self._write_indent(depth + 1)
                self._at(f"[{key!r}]", self._encode_value, 0, item, item_shape)
                self._write("\n")
            elif key_shape.bracketed:
                self._at(f"[{key!r}]", self._encode_value, depth + 1, item, item_shape)
            else:
                self._at(f"[{key!r}]", self._encode_member, depth + 1, item, item_shape)
        self._write_indent(depth)
        self._write(f"{CLOSE}\n")

    # -- tabular output -----------------------------------------------------

    def _encode_row(self, value: Any, shape: Shape) -> None:
        shape = self._resolve(value, shape)
        if shape.kind is not Kind.RECORD:
            raise StructureError("to use tabular encoding, a row must be a record")
        self._check_type(value, shape)
        self._write(self._record_columns(value, shape) + "\n")

    def _record_columns(self, value: Any, shape: Shape) -> str:
        members = shape.values_of(value)
        if all(field.is_zero(v) for field, v in members):
            return OPEN + CLOSE
        parts = [
            self._at(f".{field.name}", self._column_text, v, field.shape)
            for field, v in members
        ]
        return self._bracket(parts)

    @staticmethod
    def _bracket(parts: list[str]) -> str:
        if not parts:
            return OPEN + CLOSE
        return f"{OPEN} {ROW_SEPARATOR.join(parts)} {CLOSE}"

    def _column_text(self, value: Any, shape: Shape) -> str:
        shape = self._resolve(value, shape)
        self._check_type(value, shape)
        kind = shape.kind

        if kind is Kind.WORD:
            return self._word_text(value)
        if kind is Kind.RECORD:
            return self._record_columns(value, shape)
        if kind in (Kind.ARRAY, Kind.SEQUENCE):
            if shape.kind is Kind.ARRAY and len(value) > shape.length:
                raise StructureError(f"{len(value)} elements exceed array bounds of {shape.length}")
            parts = []
            for i, item in enumerate(value):
                element = shape.elements[i] if kind is Kind.ARRAY else shape.element
                parts.append(self._at(f"[{i}]", self._column_text, item, element))
            return self._bracket(parts)
        if kind is Kind.MAP:
            parts = []
            for key in self._sorted_keys(value, shape.key):
                item = value[key]
                key_shape = self._resolve(key, shape.key)
                if key_shape.kind is Kind.WORD:
                    key = copy.copy(key)
                parts.append(self._at(f"[key {key!r}]", self._column_text, key, key_shape))
                parts.append(self._at(f"[{key!r}]", self._column_text, item, shape.element))
            return self._bracket(parts)
        return self._scalar_text(value, shape)
