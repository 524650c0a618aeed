"""
Shape discovery - what a Python type looks like to the codec.

A Shape is worked out from annotations at call time:

    int / Int8..Int64 / Uint8..Uint64     -> INT / UINT with a bit width
    float / Float32 / Float64             -> FLOAT
    bool, str                             -> BOOL, STRING
    tuple[A, B, C], Annotated[list[T], FixedLength(n)]  -> ARRAY (fixed slots)
    list[T], tuple[T, ...]                -> SEQUENCE
    @dataclass / NamedTuple               -> RECORD (NamedTuple is positional)
    dict[K, V]                            -> MAP
    classes with encode_word/decode_word  -> WORD (checked first)
    Any, bare list/dict elements          -> DYNAMIC (resolved from the value on encode)

Shapes are built per call; ``memo`` only exists so recursive records
(a Tree holding list[Tree]) resolve to a finite graph.
"""

from __future__ import annotations

import dataclasses
import enum
import math
from dataclasses import dataclass, field
from typing import Annotated, Any, get_args, get_origin, get_type_hints

from bracetext.errors import UnsupportedShapeError
from bracetext.types import FixedLength, FloatWidth, IntWidth, is_word_type


class Kind(enum.Enum):
    INT = "int"
    UINT = "uint"
    FLOAT = "float"
    BOOL = "bool"
    STRING = "string"
    ARRAY = "array"
    SEQUENCE = "sequence"
    RECORD = "record"
    MAP = "map"
    WORD = "word"
    DYNAMIC = "dynamic"


SCALAR_KINDS = frozenset({Kind.INT, Kind.UINT, Kind.FLOAT, Kind.BOOL, Kind.STRING})
BRACKETED_KINDS = frozenset({Kind.ARRAY, Kind.SEQUENCE, Kind.RECORD, Kind.MAP})
_KEY_KINDS = SCALAR_KINDS | {Kind.WORD, Kind.ARRAY}

_NO_DEFAULT = object()


def _declared(value: Any) -> Any:
    return _NO_DEFAULT if value is dataclasses.MISSING else value


@dataclass(eq=False)
class FieldShape:
    """One named member of a record."""
    name: str
    shape: Shape
    default: Any = _NO_DEFAULT
    default_factory: Any = _NO_DEFAULT

    def zero(self) -> Any:
        if self.default_factory is not _NO_DEFAULT:
            return self.default_factory()
        if self.default is not _NO_DEFAULT:
            return self.default
        return self.shape.zero()

    def is_zero(self, value: Any) -> bool:
        zero = self.zero()
        if isinstance(value, float) and value == 0.0 and value == zero:
            # -0.0 == 0.0, but the sign must survive a round-trip
            return math.copysign(1.0, value) == math.copysign(1.0, float(zero))
        return bool(value == zero)


@dataclass(eq=False)
class Shape:
    kind: Kind
    py_type: Any = None
    bits: int = 64
    signed: bool = True
    elements: list[Shape] = field(default_factory=list)   # ARRAY slots
    element: Shape | None = None                          # SEQUENCE element, MAP value
    key: Shape | None = None                              # MAP key
    fields: list[FieldShape] = field(default_factory=list)
    positional: bool = False                              # NamedTuple records
    _by_name: dict[str, FieldShape] = field(default_factory=dict, repr=False)

    @property
    def bracketed(self) -> bool:
        return self.kind in BRACKETED_KINDS

    @property
    def length(self) -> int:
        return len(self.elements)

    @property
    def name(self) -> str:
        if self.kind is Kind.INT:
            return f"int{self.bits}"
        if self.kind is Kind.UINT:
            return f"uint{self.bits}"
        if self.kind is Kind.FLOAT:
            return f"float{self.bits}"
        if self.kind in (Kind.RECORD, Kind.WORD):
            return self.py_type.__name__
        return self.kind.value

    def get_field(self, name: str) -> FieldShape | None:
        return self._by_name.get(name)

    def add_field(self, f: FieldShape) -> None:
        self.fields.append(f)
        self._by_name[f.name] = f

    def zero(self) -> Any:
        """A fresh zero value of this shape."""
        kind = self.kind
        if kind in SCALAR_KINDS:
            return self.py_type()
        if kind is Kind.ARRAY:
            return self.py_type(e.zero() for e in self.elements)
        if kind in (Kind.SEQUENCE, Kind.MAP):
            return self.py_type()
        if kind is Kind.RECORD:
            return self.build({})
        if kind is Kind.WORD:
            if dataclasses.is_dataclass(self.py_type) or hasattr(self.py_type, "_fields"):
                return _record_shape(self.py_type, {}).zero()
            return self.py_type()
        return None

    def build(self, values: dict[str, Any]) -> Any:
        """Construct a record from decoded field values; the rest are zero."""
        kwargs = {}
        for f in self.fields:
            kwargs[f.name] = values[f.name] if f.name in values else f.zero()
        return self.py_type(**kwargs)

    def values_of(self, record: Any) -> list[tuple[FieldShape, Any]]:
        return [(f, getattr(record, f.name)) for f in self.fields]


def _memo_key(tp: Any) -> Any:
    try:
        hash(tp)
    except TypeError:
        return id(tp)
    return tp


def describe(tp: Any, memo: dict | None = None) -> Shape:
    """Work out the Shape of a type annotation."""
    if memo is None:
        memo = {}
    key = _memo_key(tp)
    if key in memo:
        return memo[key]
    shape = _describe(tp, memo)
    memo[key] = shape
    return shape


def describe_value(value: Any, memo: dict | None = None) -> Shape:
    """Work out the Shape of a value from its runtime class."""
    if value is None:
        raise UnsupportedShapeError("None has no brace text representation")
    return describe(type(value), memo)


def _describe(tp: Any, memo: dict) -> Shape:
    if tp is Any or tp is object:
        return Shape(Kind.DYNAMIC)

    origin = get_origin(tp)

    if origin is Annotated:
        base, *metadata = get_args(tp)
        return _describe_annotated(tp, base, metadata, memo)

    if isinstance(tp, type) and is_word_type(tp):
        return Shape(Kind.WORD, tp)

    if origin is None and isinstance(tp, type):
        if issubclass(tp, bool):
            return Shape(Kind.BOOL, tp)
        if issubclass(tp, enum.Enum):
            raise UnsupportedShapeError(
                f"enum {tp.__name__} needs encode_word/decode_word to be written as a word"
            )
        if issubclass(tp, int):
            return Shape(Kind.INT, tp, bits=64)
        if issubclass(tp, float):
            return Shape(Kind.FLOAT, tp, bits=64)
        if issubclass(tp, str):
            return Shape(Kind.STRING, tp)
        if issubclass(tp, tuple) and hasattr(tp, "_fields"):
            return _record_shape(tp, memo)
        if dataclasses.is_dataclass(tp):
            return _record_shape(tp, memo)
        if issubclass(tp, (list, tuple)):
            return Shape(Kind.SEQUENCE, tp, element=Shape(Kind.DYNAMIC))
        if issubclass(tp, dict):
            return Shape(Kind.MAP, tp, key=Shape(Kind.DYNAMIC), element=Shape(Kind.DYNAMIC))

    if origin is list:
        (element,) = get_args(tp) or (Any,)
        return Shape(Kind.SEQUENCE, list, element=describe(element, memo))

    if origin is tuple:
        args = get_args(tp)
        if len(args) == 2 and args[1] is Ellipsis:
            return Shape(Kind.SEQUENCE, tuple, element=describe(args[0], memo))
        if args == ((),):
            args = ()
        return Shape(Kind.ARRAY, tuple, elements=[describe(a, memo) for a in args])

    if origin is dict:
        key_tp, value_tp = get_args(tp) or (Any, Any)
        key = describe(key_tp, memo)
        if key.kind is not Kind.DYNAMIC:
            _check_key(key, tp)
        return Shape(Kind.MAP, dict, key=key, element=describe(value_tp, memo))

    raise UnsupportedShapeError(f"cannot represent {tp!r} in brace text")


def _describe_annotated(tp: Any, base: Any, metadata: list, memo: dict) -> Shape:
    shape = describe(base, memo)
    for marker in metadata:
        if isinstance(marker, IntWidth):
            if shape.kind is not Kind.INT:
                raise UnsupportedShapeError(f"{tp!r}: IntWidth needs an int base type")
            kind = Kind.INT if marker.signed else Kind.UINT
            shape = Shape(kind, shape.py_type, bits=marker.bits, signed=marker.signed)
        elif isinstance(marker, FloatWidth):
            if shape.kind is not Kind.FLOAT:
                raise UnsupportedShapeError(f"{tp!r}: FloatWidth needs a float base type")
            shape = Shape(Kind.FLOAT, shape.py_type, bits=marker.bits)
        elif isinstance(marker, FixedLength):
            if shape.kind is not Kind.SEQUENCE:
                raise UnsupportedShapeError(f"{tp!r}: FixedLength needs a list or tuple[T, ...]")
            shape = Shape(
                Kind.ARRAY, shape.py_type,
                elements=[shape.element] * marker.length,
            )
    return shape


def _check_key(key: Shape, tp: Any) -> None:
    if key.kind not in _KEY_KINDS:
        raise UnsupportedShapeError(f"{tp!r}: map keys must be scalars, words or tuples")
    if key.kind is Kind.ARRAY and key.py_type is not tuple:
        raise UnsupportedShapeError(f"{tp!r}: list map keys are unhashable, use a tuple")
    if key.kind is Kind.WORD and key.py_type.__hash__ is None:
        raise UnsupportedShapeError(f"{tp!r}: word key type {key.py_type.__name__} is unhashable")


def _record_shape(cls: type, memo: dict) -> Shape:
    shape = Shape(Kind.RECORD, cls, positional=not dataclasses.is_dataclass(cls))
    # Registered before the fields resolve so self-references terminate
    memo[_memo_key(cls)] = shape

    try:
        hints = get_type_hints(cls, include_extras=True)
    except NameError as exc:
        raise UnsupportedShapeError(f"cannot resolve annotations of {cls.__name__}: {exc}") from exc

    if dataclasses.is_dataclass(cls):
        for f in dataclasses.fields(cls):
            if not f.init:
                continue
            shape.add_field(FieldShape(
                f.name,
                describe(hints[f.name], memo),
                default=_declared(f.default),
                default_factory=_declared(f.default_factory),
            ))
    else:
        defaults = getattr(cls, "_field_defaults", {})
        for name in cls._fields:
            shape.add_field(FieldShape(
                name,
                describe(hints.get(name, Any), memo),
                default=defaults.get(name, _NO_DEFAULT),
            ))
    return shape
