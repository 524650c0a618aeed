"""
Scalar literal parsing and formatting.

Integers accept their own base prefix: 0x / 0o / 0b, a bare leading 0 for
octal, and underscores between digits. Values are range-checked against the
declared bit width. Floats accept decimal, exponent, hex (0x1p-2) and the
inf / nan spellings; 32-bit floats are rounded to single precision.
"""

from __future__ import annotations

import math
import struct
from decimal import Decimal

from bracetext.errors import LiteralError
from bracetext.grammar import TRUE_WORDS, FALSE_WORDS

_FLOAT32_MAX = struct.unpack("<f", b"\xff\xff\x7f\x7f")[0]


def int_bounds(bits: int, signed: bool) -> tuple[int, int]:
    if signed:
        return -(1 << (bits - 1)), (1 << (bits - 1)) - 1
    return 0, (1 << bits) - 1


def parse_int(text: str, bits: int = 64, signed: bool = True) -> int:
    """Parse an integer literal, honouring its base prefix and bit width."""
    body = text
    negative = False
    if body[:1] in ("+", "-"):
        if not signed:
            raise LiteralError(f"invalid unsigned integer {text!r}: sign not allowed")
        negative = body[0] == "-"
        body = body[1:]
    if not body or body[0] in "+-_" or body != body.strip():
        raise LiteralError(f"invalid integer {text!r}")

    try:
        if len(body) > 1 and body[0] == "0" and body[1] not in "xXoObB":
            # Leading zero without a letter prefix is octal
            value = int(body, 8)
        else:
            value = int(body, 0)
    except ValueError:
        raise LiteralError(f"invalid integer {text!r}") from None

    if negative:
        value = -value

    low, high = int_bounds(bits, signed)
    if not low <= value <= high:
        kind = "int" if signed else "uint"
        raise LiteralError(f"value {text!r} out of range for {kind}{bits}")
    return value


def parse_float(text: str, bits: int = 64) -> float:
    """Parse a float literal; 32-bit values are rounded to single precision."""
    body = text.lstrip("+-")
    if not body or body != body.strip():
        raise LiteralError(f"invalid float {text!r}")
    try:
        if body[:2] in ("0x", "0X"):
            value = float.fromhex(text)
        else:
            value = float(text)
    except ValueError:
        raise LiteralError(f"invalid float {text!r}") from None

    if math.isinf(value) and "inf" not in body.lower():
        raise LiteralError(f"value {text!r} out of range for float{bits}")

    if bits == 32 and math.isfinite(value):
        if abs(value) > _FLOAT32_MAX:
            raise LiteralError(f"value {text!r} out of range for float32")
        value = struct.unpack("<f", struct.pack("<f", value))[0]
    return value


def parse_bool(text: str) -> bool:
    if text in TRUE_WORDS:
        return True
    if text in FALSE_WORDS:
        return False
    raise LiteralError(f"invalid boolean {text!r}")


def format_int(value: int) -> str:
    return str(value)


def format_bool(value: bool) -> str:
    return "true" if value else "false"


def format_float(value: float, bits: int = 64) -> str:
    """Shortest round-tripping decimal form, never in exponent notation."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"

    if bits == 32:
        if abs(value) > _FLOAT32_MAX:
            raise LiteralError(f"value {value!r} out of range for float32")
        digits = _shortest_float32(value)
    else:
        digits = repr(value)
    return format(Decimal(digits), "f")


def _shortest_float32(value: float) -> str:
    target = struct.pack("<f", value)
    for precision in range(1, 10):
        candidate = f"{value:.{precision}g}"
        if struct.pack("<f", float(candidate)) == target:
            return candidate
    return repr(value)
