"""Record types used by the example data and the CLI tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import NamedTuple

from bracetext import Float32, Uint8, Uint64


class Point(NamedTuple):
    x: int = 0
    y: int = 0


class Version:
    """A dotted version written as one word: 1.4.2"""

    def __init__(self, parts: tuple[int, ...] = ()) -> None:
        self.parts = parts

    def encode_word(self) -> str:
        return ".".join(str(p) for p in self.parts)

    def decode_word(self, data: str) -> None:
        self.parts = tuple(int(p) for p in data.split(".")) if data else ()

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Version) and self.parts == other.parts

    def __hash__(self) -> int:
        return hash(self.parts)

    def __repr__(self) -> str:
        return f"Version({self.encode_word()!r})"


@dataclass
class Person:
    Name: str = ""
    Age: Uint8 = 0
    Tags: list[str] = field(default_factory=list)
    Home: Point = Point()


@dataclass
class Package:
    ID: Uint64 = 0
    Name: str = ""
    Release: Version = field(default_factory=Version)
    Score: Float32 = 0.0
    Depends: dict[str, Version] = field(default_factory=dict)
