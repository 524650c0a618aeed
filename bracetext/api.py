"""
One-shot helpers over Encoder/Decoder.

    text = dumps(person)
    person = loads(text, Person)
    people = load_all(open("people.btx", "rb"), Person)
"""

from __future__ import annotations

import io
from typing import IO, Any, TypeVar

from bracetext.decoder import Decoder
from bracetext.encoder import Encoder
from bracetext.grammar import DEFAULT_INDENT

T = TypeVar("T")


def dump(value: Any, out: IO, tp: Any = None, *, tabular: bool = False, indent: str = DEFAULT_INDENT) -> None:
    """Encode one value onto a stream."""
    Encoder(out, indent=indent, tabular=tabular).encode(value, tp)


def dumps(value: Any, tp: Any = None, *, tabular: bool = False, indent: str = DEFAULT_INDENT) -> str:
    """Encode one value to a string."""
    out = io.StringIO()
    dump(value, out, tp, tabular=tabular, indent=indent)
    return out.getvalue()


def load(source: IO, tp: type[T] | Any) -> T:
    """Decode the first value (or row) of a stream."""
    return Decoder(source).decode(tp)


def loads(data: str | bytes, tp: type[T] | Any) -> T:
    """Decode the first value (or row) of a string or bytes."""
    return Decoder(data).decode(tp)


def load_all(source: str | bytes | IO, tp: type[T] | Any) -> list[T]:
    """Decode every value (or row) until the input is exhausted."""
    return list(Decoder(source).iter_decode(tp))
