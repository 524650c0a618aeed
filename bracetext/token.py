"""
Brace Text Tokenizer - Turns a character stream into five kinds of token.

    Open { | Close } | OpenHeader [ | CloseHeader ] | Word

Comments and whitespace are skipped. Every token records the 1-based line
and column where it starts. ``peek()`` buffers tokens in a FIFO so any number
of peeks followed by ``next()`` calls see the same tokens in order.
"""

from __future__ import annotations

import codecs
import enum
import io
from collections import deque
from dataclasses import dataclass
from typing import IO, Iterator

from bracetext.errors import EndOfStream, LexicalError, StructureError
from bracetext.grammar import (
    OPEN, CLOSE, OPEN_HEADER, CLOSE_HEADER, COMMENT_MARKER,
    NEWLINE, WHITESPACE, WORD_TERMINATORS, QUOTE, ESCAPE, ESCAPES,
    MAX_WORD_LENGTH,
)

_CHUNK_SIZE = 8192


class TokenKind(enum.Enum):
    OPEN = "{"
    CLOSE = "}"
    WORD = "word"
    OPEN_HEADER = "["
    CLOSE_HEADER = "]"


_STRUCTURAL_KINDS = {
    OPEN: TokenKind.OPEN,
    CLOSE: TokenKind.CLOSE,
    OPEN_HEADER: TokenKind.OPEN_HEADER,
    CLOSE_HEADER: TokenKind.CLOSE_HEADER,
}


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    data: str = ""  # only set for WORD
    line: int = 0
    column: int = 0

    def describe(self) -> str:
        if self.kind is TokenKind.WORD:
            return f"word {self.data!r}"
        return f"'{self.kind.value}'"


def open_text(source: str | bytes | IO) -> IO:
    """Wrap str and bytes as streams. Binary streams are decoded as they are read."""
    if isinstance(source, str):
        return io.StringIO(source)
    if isinstance(source, (bytes, bytearray, memoryview)):
        return io.BytesIO(bytes(source))
    return source


class Tokenizer:
    """
    Lexer over a text stream with unlimited token lookahead.

    Usage:
        tokens = Tokenizer('{ Name "Ada Lovelace" }')
        tokens.peek().kind     # TokenKind.OPEN, not consumed
        tokens.next().kind     # TokenKind.OPEN
        [t.data for t in tokens]   # remaining tokens
    """

    def __init__(self, source: str | bytes | IO, max_word_length: int = MAX_WORD_LENGTH) -> None:
        self._input = open_text(source)
        self._decoder = None
        if not isinstance(self._input, io.TextIOBase) and isinstance(self._input.read(0), bytes):
            self._decoder = codecs.getincrementaldecoder("utf-8")()
        self._buffer = ""
        self._pos = 0
        self._exhausted = False
        self._pending: deque[Token] = deque()
        self.max_word_length = max_word_length
        self.line = 1
        self.column = 1

    # -- characters ---------------------------------------------------------

    def _peek_char(self, offset: int = 0) -> str:
        """Return the character ``offset`` ahead without consuming it ("" at EOF)."""
        while self._pos + offset >= len(self._buffer):
            if self._exhausted:
                return ""
            chunk = self._read_chunk()
            if not chunk:
                self._exhausted = True
                return ""
            self._buffer = self._buffer[self._pos:] + chunk
            self._pos = 0
        return self._buffer[self._pos + offset]

    def _read_chunk(self) -> str:
        if self._decoder is None:
            return self._input.read(_CHUNK_SIZE)
        while True:
            data = self._input.read(_CHUNK_SIZE)
            try:
                text = self._decoder.decode(data, final=not data)
            except UnicodeDecodeError as exc:
                raise self._decode_error(exc) from exc
            # A chunk holding only part of a multi-byte character decodes to ""
            if text or not data:
                return text

    def _decode_error(self, exc: UnicodeDecodeError) -> LexicalError:
        """Locate an invalid byte relative to the characters not yet consumed."""
        line, column = self.line, self.column
        valid = exc.object[:exc.start].decode("utf-8", "replace")
        for ch in self._buffer[self._pos:] + valid:
            if ch == NEWLINE:
                line += 1
                column = 1
            else:
                column += 1
        return LexicalError(
            f"invalid UTF-8 byte 0x{exc.object[exc.start]:02x}", line=line, column=column,
        )

    def _read_char(self) -> str:
        ch = self._peek_char()
        if not ch:
            return ""
        self._pos += 1
        if ch == NEWLINE:
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return ch

    def _error(self, message: str, line: int | None = None, column: int | None = None) -> LexicalError:
        return LexicalError(
            message,
            line=self.line if line is None else line,
            column=self.column if column is None else column,
        )

    # -- tokens -------------------------------------------------------------

    def next(self) -> Token:
        """Consume and return the next token. Raises EndOfStream when none is left."""
        if self._pending:
            return self._pending.popleft()
        return self._scan()

    def peek(self) -> Token:
        """Return the next token without consuming it."""
        if not self._pending:
            self._pending.append(self._scan())
        return self._pending[0]

    def next_word(self) -> Token:
        """Consume a token that must be a word."""
        token = self.next()
        if token.kind is not TokenKind.WORD:
            raise StructureError(
                f"expected a word, found {token.describe()}",
                line=token.line, column=token.column,
            )
        return token

    def __iter__(self) -> Iterator[Token]:
        while True:
            try:
                yield self.next()
            except EndOfStream:
                return

    def _scan(self) -> Token:
        while True:
            ch = self._peek_char()
            if not ch:
                raise EndOfStream("end of input")

            if ch == COMMENT_MARKER:
                self._skip_comment()
                continue

            if ch in WHITESPACE or ch == NEWLINE:
                self._read_char()
                continue

            line, column = self.line, self.column
            kind = _STRUCTURAL_KINDS.get(ch)
            if kind is not None:
                self._read_char()
                return Token(kind, line=line, column=column)

            if ch == QUOTE:
                data = self._read_quoted_word()
            else:
                data = self._read_bare_word()
            return Token(TokenKind.WORD, data, line=line, column=column)

    def _skip_comment(self) -> None:
        line, column = self.line, self.column
        follower = self._peek_char(1)

        if follower == COMMENT_MARKER:
            # Line comment: the newline itself is left for the main loop
            while True:
                ch = self._peek_char()
                if not ch or ch == NEWLINE:
                    return
                self._read_char()

        if follower == "*":
            self._read_char()
            self._read_char()
            while True:
                ch = self._read_char()
                if not ch:
                    raise self._error("unterminated block comment", line, column)
                if ch == "*" and self._peek_char() == COMMENT_MARKER:
                    self._read_char()
                    return

        raise self._error("stray comment marker", line, column)

    def _read_quoted_word(self) -> str:
        line, column = self.line, self.column
        self._read_char()  # opening quote
        chars: list[str] = []
        while True:
            ch = self._read_char()
            if not ch:
                raise self._error("unterminated quoted word", line, column)
            if ch == QUOTE:
                return "".join(chars)
            if ch == ESCAPE:
                escaped = self._read_char()
                if not escaped:
                    raise self._error("unterminated quoted word", line, column)
                if escaped not in ESCAPES:
                    raise self._error(f"unknown escape sequence: \\{escaped}")
                ch = ESCAPES[escaped]
            chars.append(ch)
            if len(chars) > self.max_word_length:
                raise self._error(f"word exceeds {self.max_word_length} characters", line, column)

    def _read_bare_word(self) -> str:
        line, column = self.line, self.column
        chars: list[str] = []
        while True:
            ch = self._read_char()
            # End of stream concludes a word already in progress
            if not ch or ch in WORD_TERMINATORS:
                return "".join(chars)
            chars.append(ch)
            if len(chars) > self.max_word_length:
                raise self._error(f"word exceeds {self.max_word_length} characters", line, column)
