"""
Type annotations understood by the codec.

Python has one int and one float type, so fixed bit widths are expressed with
``Annotated`` markers:

    @dataclass
    class Packet:
        id: Uint64
        ttl: Uint8
        ratio: Float32
        samples: Annotated[list[int], FixedLength(4)]
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Any, Protocol, runtime_checkable


@dataclass(frozen=True)
class IntWidth:
    bits: int
    signed: bool = True


@dataclass(frozen=True)
class FloatWidth:
    bits: int


@dataclass(frozen=True)
class FixedLength:
    """Marks a list/tuple annotation as a fixed array of ``length`` slots."""
    length: int


Int8 = Annotated[int, IntWidth(8)]
Int16 = Annotated[int, IntWidth(16)]
Int32 = Annotated[int, IntWidth(32)]
Int64 = Annotated[int, IntWidth(64)]

Uint8 = Annotated[int, IntWidth(8, signed=False)]
Uint16 = Annotated[int, IntWidth(16, signed=False)]
Uint32 = Annotated[int, IntWidth(32, signed=False)]
Uint64 = Annotated[int, IntWidth(64, signed=False)]

Float32 = Annotated[float, FloatWidth(32)]
Float64 = Annotated[float, FloatWidth(64)]


@runtime_checkable
class Word(Protocol):
    """A type that reads and writes itself as one word.

    Implementing both methods preempts structural traversal: a dict or
    dataclass subclass with these methods is written as a single scalar.

    ``decode_word`` is called on a freshly built zero instance. It may fill
    that instance in place and return None, or return a replacement instance
    (the only option for immutable types such as int subclasses).

    A record field holding a word is left out of keyed output when it
    compares equal to its zero value, so word classes need ``__eq__`` for
    that omission to happen. Without it the field is always written.
    """

    def encode_word(self) -> str:
        ...

    def decode_word(self, data: str) -> Any:
        ...


def is_word_type(tp: Any) -> bool:
    """Check if a class satisfies the Word capability."""
    return isinstance(tp, type) and issubclass(tp, Word)
