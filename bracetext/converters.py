"""
Brace Text Converters - Bridge typed values to JSON and CSV.

Every format goes both ways:
  - to_builtins / from_builtins   (plain dict/list/str/int/float/bool)
  - to_json / from_json
  - rows_to_csv / rows_from_csv   (one record per row, header = field names)

Map keys and CSV cells are carried as text: strings verbatim, numbers and
booleans in their brace text spelling, word types via encode_word, and
bracketed values as inline brace text (``{ 1 2 3 }``).
"""

from __future__ import annotations

import csv
import io
import json
from typing import Any, Iterable, TypeVar

from bracetext.decoder import decode_inline, word_from_text
from bracetext.encoder import render_inline, word_to_text
from bracetext.errors import BoundsError, BraceError, StructureError, UnknownFieldError
from bracetext.literals import format_bool, format_float, format_int, int_bounds, parse_bool, parse_float, parse_int
from bracetext.shape import Kind, Shape, describe, describe_value

T = TypeVar("T")


def _resolve(value: Any, shape: Shape) -> Shape:
    if shape.kind is Kind.DYNAMIC:
        return describe_value(value)
    return shape


def _nested(segment: str, convert: Any, *args: Any) -> Any:
    try:
        return convert(*args)
    except BraceError as exc:
        exc.add_context(segment)
        raise


# =============================================================================
# Text cells (map keys, CSV columns)
# =============================================================================

def _cell_text(value: Any, shape: Shape) -> str:
    shape = _resolve(value, shape)
    kind = shape.kind
    if kind is Kind.STRING:
        return value
    if kind is Kind.WORD:
        return word_to_text(value)
    if kind is Kind.BOOL:
        return format_bool(value)
    if kind is Kind.FLOAT:
        return format_float(float(value), shape.bits)
    if kind in (Kind.INT, Kind.UINT):
        return format_int(value)
    return render_inline(value, shape)


def _cell_value(text: str, shape: Shape) -> Any:
    kind = shape.kind
    if kind is Kind.STRING:
        return text
    if kind is Kind.WORD:
        return word_from_text(shape, text)
    if kind is Kind.BOOL:
        return parse_bool(text)
    if kind is Kind.FLOAT:
        return parse_float(text, shape.bits)
    if kind in (Kind.INT, Kind.UINT):
        return parse_int(text, shape.bits, shape.signed)
    if kind is Kind.DYNAMIC:
        return text
    return decode_inline(text, shape)


# =============================================================================
# Builtins
# =============================================================================

def to_builtins(value: Any, tp: Any = None) -> Any:
    """Convert a typed value to plain JSON-compatible data."""
    shape = describe(tp) if tp is not None else describe_value(value)
    return _to_builtins(value, shape)


def _to_builtins(value: Any, shape: Shape) -> Any:
    shape = _resolve(value, shape)
    kind = shape.kind
    if kind is Kind.WORD:
        return word_to_text(value)
    if kind in (Kind.ARRAY, Kind.SEQUENCE):
        return [
            _nested(f"[{i}]", _to_builtins, item, shape.elements[i] if kind is Kind.ARRAY else shape.element)
            for i, item in enumerate(value)
        ]
    if kind is Kind.RECORD:
        return {
            field.name: _nested(f".{field.name}", _to_builtins, v, field.shape)
            for field, v in shape.values_of(value)
        }
    if kind is Kind.MAP:
        return {
            _cell_text(k, shape.key): _nested(f"[{k!r}]", _to_builtins, v, shape.element)
            for k, v in value.items()
        }
    if kind in (Kind.INT, Kind.UINT):
        return int(value)
    if kind is Kind.FLOAT:
        return float(value)
    return value


def from_builtins(data: Any, tp: type[T] | Any) -> T:
    """Build a typed value from plain JSON-compatible data."""
    return _from_builtins(data, describe(tp))


def _expect(data: Any, types: Any, shape: Shape) -> None:
    if not isinstance(data, types) or (isinstance(data, bool) and bool not in _as_tuple(types)):
        raise StructureError(f"expected {shape.name}, got {type(data).__name__}: {data!r}")


def _as_tuple(types: Any) -> tuple:
    return types if isinstance(types, tuple) else (types,)


def _from_builtins(data: Any, shape: Shape) -> Any:
    kind = shape.kind
    if kind is Kind.DYNAMIC:
        return data
    if kind is Kind.WORD:
        _expect(data, str, shape)
        return word_from_text(shape, data)
    if kind is Kind.STRING:
        _expect(data, str, shape)
        return shape.py_type(data)
    if kind is Kind.BOOL:
        _expect(data, bool, shape)
        return data
    if kind in (Kind.INT, Kind.UINT):
        if isinstance(data, str):
            return shape.py_type(parse_int(data, shape.bits, shape.signed))
        _expect(data, int, shape)
        low, high = int_bounds(shape.bits, shape.signed)
        if not low <= data <= high:
            raise StructureError(f"value {data} out of range for {shape.name}")
        return shape.py_type(data)
    if kind is Kind.FLOAT:
        if isinstance(data, str):
            return shape.py_type(parse_float(data, shape.bits))
        _expect(data, (int, float), shape)
        return shape.py_type(parse_float(repr(float(data)), shape.bits))
    if kind is Kind.ARRAY:
        _expect(data, list, shape)
        if len(data) > shape.length:
            raise BoundsError(f"{len(data)} elements exceed array bounds of {shape.length}")
        values = [element.zero() for element in shape.elements]
        for i, item in enumerate(data):
            values[i] = _nested(f"[{i}]", _from_builtins, item, shape.elements[i])
        return shape.py_type(values)
    if kind is Kind.SEQUENCE:
        _expect(data, list, shape)
        return shape.py_type(
            _nested(f"[{i}]", _from_builtins, item, shape.element) for i, item in enumerate(data)
        )
    if kind is Kind.MAP:
        _expect(data, dict, shape)
        result = shape.py_type()
        for key_text, item in data.items():
            key = _nested(f"[key {key_text!r}]", _cell_value, key_text, shape.key)
            result[key] = _nested(f"[{key_text!r}]", _from_builtins, item, shape.element)
        return result
    if kind is Kind.RECORD:
        _expect(data, dict, shape)
        values = {}
        for name, item in data.items():
            field = shape.get_field(name)
            if field is None:
                raise UnknownFieldError(f"{shape.name} has no field {name!r}")
            values[name] = _nested(f".{name}", _from_builtins, item, field.shape)
        return shape.build(values)
    raise StructureError(f"cannot convert into {shape.name}")


# =============================================================================
# JSON
# =============================================================================

def to_json(value: Any, tp: Any = None, indent: int | None = 2) -> str:
    """Convert a typed value to a JSON string."""
    return json.dumps(to_builtins(value, tp), indent=indent, ensure_ascii=False)


def from_json(json_str: str, tp: type[T] | Any) -> T:
    """Build a typed value from a JSON string."""
    return from_builtins(json.loads(json_str), tp)


# =============================================================================
# CSV
# =============================================================================

def _record_shape(tp: Any) -> Shape:
    shape = describe(tp)
    if shape.kind is not Kind.RECORD:
        raise StructureError(f"CSV rows map to records, not {shape.name}")
    return shape


def rows_to_csv(rows: Iterable[Any], tp: Any) -> str:
    """Write records as CSV, one column per field."""
    shape = _record_shape(tp)
    out = io.StringIO()
    writer = csv.writer(out, lineterminator="\n")
    writer.writerow([field.name for field in shape.fields])
    for n, row in enumerate(rows):
        writer.writerow([
            _nested(f"[{n}].{field.name}", _cell_text, v, field.shape)
            for field, v in shape.values_of(row)
        ])
    return out.getvalue()


def rows_from_csv(csv_str: str, tp: type[T] | Any) -> list[T]:
    """Read records from CSV. Empty cells leave the field at its zero value."""
    shape = _record_shape(tp)
    reader = csv.reader(io.StringIO(csv_str))
    header = next(reader, None)
    if header is None:
        return []

    fields = []
    for name in header:
        field = shape.get_field(name)
        if field is None:
            raise UnknownFieldError(f"{shape.name} has no field {name!r}")
        fields.append(field)

    rows = []
    for n, cells in enumerate(reader):
        if len(cells) > len(fields):
            raise StructureError(f"row {n + 1} has {len(cells)} cells for {len(fields)} columns")
        values = {}
        for field, cell in zip(fields, cells):
            if cell == "":
                continue
            values[field.name] = _nested(f"[{n}].{field.name}", _cell_value, cell, field.shape)
        rows.append(shape.build(values))
    return rows
