"""
Brace Text Decoder - Reads typed values from a token stream.

The first token of the stream decides the framing, once:
  - ``[`` starts a table header: the stream is tabular, the header names
    the columns, and every decode call reads one positional row
  - anything else: every decode call reads one keyed value

Shapes come from the target type, never from the stream. Errors carry the
line/column of the offending token and the path of fields, indexes and keys
that led to it.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import IO, Any, Callable, Iterator, TypeVar

from bracetext.errors import (
    BraceError, BoundsError, ColumnCountError, DuplicateFieldError, EndOfStream,
    HeaderError, StructureError, UnknownFieldError, UnsupportedShapeError, WordHookError,
)
from bracetext.grammar import MAX_COLUMNS, MAX_NESTING_DEPTH, MAX_WORD_LENGTH
from bracetext.literals import parse_bool, parse_float, parse_int
from bracetext.shape import Kind, Shape, describe
from bracetext.token import Token, Tokenizer, TokenKind

logger = logging.getLogger(__name__)

T = TypeVar("T")

_BUILTIN_SCALARS = (int, float, str, bool)


def word_from_text(shape: Shape, data: str) -> Any:
    """Build a word-capable value from its text via its decode_word hook."""
    # Zero first: a word-capable dict still needs an empty dict to fill
    instance = shape.zero()
    try:
        result = instance.decode_word(data)
    except BraceError:
        raise
    except Exception as exc:
        raise WordHookError(str(exc)) from exc
    return instance if result is None else result


def parse_inline(text: str, tp: Any) -> Any:
    """Decode one value written the way it appears inside a tabular row."""
    return decode_inline(text, describe(tp))


def decode_inline(text: str, shape: Shape) -> Any:
    decoder = Decoder(text)
    decoder._framing_resolved = True
    try:
        value = decoder._decode_column(shape)
    except EndOfStream as exc:
        raise StructureError("unexpected end of inline value") from exc
    try:
        extra = decoder._tokens.peek()
    except EndOfStream:
        return value
    raise StructureError(
        f"unexpected {extra.describe()} after inline value",
        line=extra.line, column=extra.column,
    )


class Decoder:
    """
    Decodes a stream of brace text values.

    Usage:
        decoder = Decoder(open("people.btx", "rb"))
        for person in decoder.iter_decode(Person):
            ...

        # or one at a time; EndOfStream means there is nothing left
        person = decoder.decode(Person)

    A Decoder keeps lookahead, position and framing state and must not be
    shared between threads.
    """

    def __init__(
        self,
        source: str | bytes | IO,
        max_depth: int = MAX_NESTING_DEPTH,
        max_word_length: int = MAX_WORD_LENGTH,
    ) -> None:
        self._tokens = Tokenizer(source, max_word_length=max_word_length)
        self.max_depth = max_depth
        self._depth = 0
        self._framing_resolved = False
        self._tabular = False
        self.columns: list[str] = []

    @property
    def tabular(self) -> bool:
        """True once a table header has been read."""
        return self._tabular

    @property
    def line(self) -> int:
        return self._tokens.line

    @property
    def column(self) -> int:
        return self._tokens.column

    # -- public API ---------------------------------------------------------

    def decode(self, tp: type[T] | Any) -> T:
        """Read the next value (or row) as an instance of ``tp``.

        Raises EndOfStream when the input holds no further values.
        """
        shape = describe(tp)
        self._resolve_framing()
        self._tokens.peek()  # EndOfStream here is plain exhaustion

        self._depth = 0
        try:
            if self._tabular:
                return self._decode_row(shape)
            return self._decode_value(shape)
        except EndOfStream as exc:
            raise StructureError(
                "unexpected end of input inside a value",
                line=self.line, column=self.column,
            ) from exc

    def iter_decode(self, tp: type[T] | Any) -> Iterator[T]:
        """Yield values until the input is exhausted."""
        while True:
            try:
                value = self.decode(tp)
            except EndOfStream:
                return
            yield value

    def skip(self) -> int:
        """Consume one value without a target type. Returns its word count."""
        self._resolve_framing()
        token = self._tokens.next()
        if token.kind is TokenKind.WORD:
            return 1
        if token.kind is not TokenKind.OPEN:
            raise StructureError(
                f"unexpected {token.describe()} at start of value",
                line=token.line, column=token.column,
            )

        depth, words = 1, 0
        while depth:
            try:
                token = self._tokens.next()
            except EndOfStream as exc:
                raise StructureError(
                    "unexpected end of input inside a value",
                    line=self.line, column=self.column,
                ) from exc
            if token.kind is TokenKind.OPEN:
                depth += 1
                if depth > self.max_depth:
                    raise StructureError(
                        f"nesting exceeds {self.max_depth} levels",
                        line=token.line, column=token.column,
                    )
            elif token.kind is TokenKind.CLOSE:
                depth -= 1
            elif token.kind is TokenKind.WORD:
                words += 1
            else:
                raise StructureError(
                    f"table header token {token.describe()} inside a value",
                    line=token.line, column=token.column,
                )
        return words

    # -- framing ------------------------------------------------------------

    def _resolve_framing(self) -> None:
        if self._framing_resolved:
            return
        self._framing_resolved = True
        first = self._tokens.peek()
        if first.kind is TokenKind.OPEN_HEADER:
            self._tabular = True
            self._read_header()
            logger.debug("tabular stream, columns: %s", " ".join(self.columns))
        else:
            logger.debug("keyed stream")

    def _read_header(self) -> None:
        token = self._tokens.next()
        if token.kind is not TokenKind.OPEN_HEADER:
            raise HeaderError("table header is invalid", line=token.line, column=token.column)

        while True:
            try:
                token = self._tokens.next()
            except EndOfStream as exc:
                raise HeaderError(
                    "unterminated table header", line=self.line, column=self.column,
                ) from exc

            if token.kind is TokenKind.CLOSE_HEADER:
                return
            if token.kind is not TokenKind.WORD:
                raise HeaderError(
                    f"invalid token {token.describe()} in table header",
                    line=token.line, column=token.column,
                )
            if token.data in self.columns:
                raise HeaderError(
                    f"duplicate column {token.data!r} in table header",
                    line=token.line, column=token.column,
                )
            if len(self.columns) >= MAX_COLUMNS:
                raise HeaderError(
                    f"table header exceeds {MAX_COLUMNS} columns",
                    line=token.line, column=token.column,
                )
            self.columns.append(token.data)

    # -- helpers ------------------------------------------------------------

    @contextmanager
    def _nested(self) -> Iterator[None]:
        self._depth += 1
        try:
            if self._depth > self.max_depth:
                raise StructureError(
                    f"nesting exceeds {self.max_depth} levels",
                    line=self.line, column=self.column,
                )
            yield
        finally:
            self._depth -= 1

    @staticmethod
    def _at(segment: str, decode: Callable[[Shape], Any], shape: Shape) -> Any:
        try:
            return decode(shape)
        except BraceError as exc:
            exc.add_context(segment)
            raise

    def _expect_open(self, what: str) -> Token:
        token = self._tokens.next()
        if token.kind is not TokenKind.OPEN:
            raise StructureError(
                f"{what} must start with '{{', found {token.describe()}",
                line=token.line, column=token.column,
            )
        return token

    def _expect_close(self, what: str) -> None:
        token = self._tokens.next()
        if token.kind is not TokenKind.CLOSE:
            raise StructureError(
                f"{what} must end with '}}', found {token.describe()}",
                line=token.line, column=token.column,
            )

    def _at_close(self) -> bool:
        return self._tokens.peek().kind is TokenKind.CLOSE

    # -- keyed traversal ----------------------------------------------------

    def _decode_value(self, shape: Shape) -> Any:
        kind = shape.kind
        if kind is Kind.WORD:
            return self._decode_word(shape)
        if kind is Kind.RECORD:
            return self._decode_record(shape)
        return self._decode_common(shape, self._decode_value)

    def _decode_common(self, shape: Shape, decode_element: Callable[[Shape], Any]) -> Any:
        kind = shape.kind
        if kind in (Kind.INT, Kind.UINT, Kind.FLOAT, Kind.BOOL, Kind.STRING):
            return self._decode_scalar(shape)
        if kind is Kind.ARRAY:
            return self._decode_array(shape, decode_element)
        if kind is Kind.SEQUENCE:
            return self._decode_sequence(shape, decode_element)
        if kind is Kind.MAP:
            return self._decode_map(shape, decode_element)
        raise UnsupportedShapeError(f"unknown value kind {shape.name!r}: cannot decode into it")

    def _decode_scalar(self, shape: Shape) -> Any:
        token = self._tokens.next_word()
        try:
            if shape.kind is Kind.STRING:
                value: Any = token.data
            elif shape.kind is Kind.BOOL:
                value = parse_bool(token.data)
            elif shape.kind is Kind.FLOAT:
                value = parse_float(token.data, shape.bits)
            else:
                value = parse_int(token.data, shape.bits, shape.signed)
        except BraceError as exc:
            exc.line, exc.column = token.line, token.column
            raise

        if shape.py_type in _BUILTIN_SCALARS:
            return value
        return shape.py_type(value)

    def _decode_word(self, shape: Shape) -> Any:
        token = self._tokens.next_word()
        try:
            return word_from_text(shape, token.data)
        except BraceError as exc:
            if exc.line is None:
                exc.line, exc.column = token.line, token.column
            raise

    def _decode_array(self, shape: Shape, decode_element: Callable[[Shape], Any]) -> Any:
        with self._nested():
            self._expect_open(f"array of {shape.length}")
            values = [element.zero() for element in shape.elements]
            for i, element in enumerate(shape.elements):
                if self._at_close():
                    break
                values[i] = self._at(f"[{i}]", decode_element, element)

            token = self._tokens.next()
            if token.kind is not TokenKind.CLOSE:
                raise BoundsError(
                    f"array exceeds bounds of {shape.length} elements",
                    line=token.line, column=token.column,
                )
            return shape.py_type(values)

    def _decode_sequence(self, shape: Shape, decode_element: Callable[[Shape], Any]) -> Any:
        with self._nested():
            self._expect_open("sequence")
            values = []
            while not self._at_close():
                values.append(self._at(f"[{len(values)}]", decode_element, shape.element))
            self._expect_close("sequence")
            return shape.py_type(values)

    def _decode_map(self, shape: Shape, decode_value: Callable[[Shape], Any]) -> Any:
        with self._nested():
            self._expect_open("map")
            result = shape.py_type()
            count = 0
            while not self._at_close():
                key = self._at(f"[key #{count}]", self._decode_value, shape.key)
                # Duplicate keys overwrite
                result[key] = self._at(f"[{key!r}]", decode_value, shape.element)
                count += 1
            self._expect_close("map")
            return result

    def _decode_record(self, shape: Shape) -> Any:
        with self._nested():
            self._expect_open(shape.name)
            values: dict[str, Any] = {}
            while True:
                token = self._tokens.next()
                if token.kind is TokenKind.CLOSE:
                    break
                if token.kind is not TokenKind.WORD:
                    raise StructureError(
                        f"expected a field name in {shape.name}, found {token.describe()}",
                        line=token.line, column=token.column,
                    )

                name = token.data
                if not name:
                    raise StructureError(
                        f"empty field name in {shape.name}",
                        line=token.line, column=token.column,
                    )
                field = shape.get_field(name)
                if field is None:
                    raise UnknownFieldError(
                        f"{shape.name} has no field {name!r}",
                        line=token.line, column=token.column,
                    )
                if name in values:
                    raise DuplicateFieldError(
                        f"field {name!r} already set",
                        line=token.line, column=token.column,
                    )
                values[name] = self._at(f".{name}", self._decode_value, field.shape)
            return shape.build(values)

    # -- tabular traversal --------------------------------------------------

    def _decode_column(self, shape: Shape) -> Any:
        """Like _decode_value, but records nested in a row are positional."""
        kind = shape.kind
        if kind is Kind.WORD:
            return self._decode_word(shape)
        if kind is Kind.RECORD:
            return self._decode_unkeyed_record(shape)
        return self._decode_common(shape, self._decode_column)

    def _decode_row(self, shape: Shape) -> Any:
        if shape.kind is not Kind.RECORD:
            raise StructureError(
                f"tabular rows decode into records, not {shape.name}",
                line=self.line, column=self.column,
            )

        with self._nested():
            open_token = self._expect_open(f"row of {shape.name}")
            limit = min(len(self.columns), len(shape.fields))
            values: dict[str, Any] = {}
            i = 0
            while not self._at_close():
                if i >= limit:
                    raise ColumnCountError(
                        f"value #{i} in row at line {open_token.line} exceeds "
                        f"the number of columns in table header",
                        line=self.line, column=self.column,
                    )
                if shape.positional:
                    field = shape.fields[i]
                else:
                    field = shape.get_field(self.columns[i])
                    if field is None:
                        raise UnknownFieldError(
                            f"{shape.name} has no field {self.columns[i]!r}",
                            line=self.line, column=self.column,
                        )
                values[field.name] = self._at(f".{field.name}", self._decode_column, field.shape)
                i += 1
            self._expect_close(f"row of {shape.name}")
            return shape.build(values)

    def _decode_unkeyed_record(self, shape: Shape) -> Any:
        with self._nested():
            self._expect_open(shape.name)
            values: dict[str, Any] = {}
            i = 0
            while not self._at_close():
                if i >= len(shape.fields):
                    raise ColumnCountError(
                        f"value #{i} exceeds the {len(shape.fields)} fields of {shape.name}",
                        line=self.line, column=self.column,
                    )
                field = shape.fields[i]
                values[field.name] = self._at(f".{field.name}", self._decode_column, field.shape)
                i += 1
            self._expect_close(shape.name)
            return shape.build(values)
