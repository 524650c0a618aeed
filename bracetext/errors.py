"""
Brace Text Errors.

    BraceError (ValueError)
      LexicalError          stray comment, bad quote/escape, oversized word
      StructureError        missing braces, wrong token kind, truncated value
        UnknownFieldError
        DuplicateFieldError
        BoundsError
        ColumnCountError
        HeaderError
      LiteralError          numeric/bool parse or range failure
        WordHookError       exception raised by a custom word codec

    EndOfStream (EOFError)          no further values: callers loop on it
    UnsupportedShapeError (TypeError)   programmer misuse, not a data error
"""

from __future__ import annotations


class BraceError(ValueError):
    """Base class for errors found while reading or writing brace text."""

    def __init__(self, message: str, line: int | None = None, column: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column
        self.path: list[str] = []

    def add_context(self, segment: str) -> None:
        """Prepend one nesting level (".Field", "[2]", "['key']") to the path."""
        self.path.insert(0, segment)

    @property
    def location(self) -> str:
        return "".join(self.path)

    def __str__(self) -> str:
        parts = []
        if self.line is not None:
            parts.append(f"line {self.line}, column {self.column}")
        if self.path:
            parts.append(f"at {self.location}")
        if parts:
            return f"{', '.join(parts)}: {self.message}"
        return self.message


class LexicalError(BraceError):
    pass


class StructureError(BraceError):
    pass


class UnknownFieldError(StructureError):
    pass


class DuplicateFieldError(StructureError):
    pass


class BoundsError(StructureError):
    pass


class ColumnCountError(StructureError):
    pass


class HeaderError(StructureError):
    pass


class LiteralError(BraceError):
    pass


class WordHookError(LiteralError):
    """A type's decode_word/encode_word raised. The original is __cause__."""


class EndOfStream(EOFError):
    """The input holds no further values."""


class UnsupportedShapeError(TypeError):
    """The type or value cannot be represented in brace text."""
