"""
bracetext - Brace-delimited typed text codec.

    { Name "Ada Lovelace" Born 1815 Tags { math engines } }

Shapes come from Python annotations; the text carries only words and braces.
"""

__version__ = "0.1.0"
__format_version__ = "1.0"

from bracetext.grammar import EXTENSION, MAX_NESTING_DEPTH, MAX_WORD_LENGTH
from bracetext.errors import (
    BraceError, BoundsError, ColumnCountError, DuplicateFieldError, EndOfStream, HeaderError,
    LexicalError, LiteralError, StructureError, UnknownFieldError, UnsupportedShapeError, WordHookError,
)
from bracetext.types import (
    FixedLength, Float32, Float64, Int8, Int16, Int32, Int64,
    Uint8, Uint16, Uint32, Uint64, Word,
)
from bracetext.token import Token, TokenKind, Tokenizer
from bracetext.decoder import Decoder
from bracetext.encoder import Encoder
from bracetext.api import dump, dumps, load, load_all, loads
