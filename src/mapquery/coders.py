"""
Value coding: typed values <-> multimap strings.

Two levels, mirroring each other:

    decode_field / encode_field
        One field <-> all strings under its key. Sequences take one string
        per element; pointers unwrap; every other kind uses the first string.

    decode_value / encode_value
        One value <-> one string, dispatched on the shape's Kind through
        the _DECODERS / _ENCODERS tables.

Scalars use Go-compatible literal syntax so that query strings produced by
other mapqueryparam implementations decode unchanged:

    boolean   1 t T TRUE true True / 0 f F FALSE false False
    integers  base 10, optional sign for signed kinds, range checked
    floats    decimal or exponent notation, inf / nan
    complex   (1+2i), 1+2i, 1+2j
"""

import logging
import math
import re
import struct
from decimal import Decimal
from typing import Any, Callable, Dict, List, Sequence

from mapquery import jsoncodec
from mapquery.errors import ParseError, UnsupportedKindError
from mapquery.schema import (
    Kind,
    SchemaBuilder,
    Shape,
    int_range,
    shape_of_value,
    unwrap_pointer,
    zero_value,
)
from mapquery.timestamps import format_timestamp, parse_timestamp

logger = logging.getLogger(__name__)

_BOOLEANS = {
    "1": True, "t": True, "T": True, "TRUE": True, "true": True, "True": True,
    "0": False, "f": False, "F": False, "FALSE": False, "false": False, "False": False,
}
_SIGNED = re.compile(r"^[+-]?[0-9]+\Z")
_UNSIGNED = re.compile(r"^[0-9]+\Z")
_FLOAT = re.compile(
    r"^[+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|inf|infinity|nan)\Z",
    re.IGNORECASE,
)


# -- scalar parsing ----------------------------------------------------------

def parse_bool(s: str) -> bool:
    try:
        return _BOOLEANS[s]
    except KeyError as e:
        raise ParseError(s, ValueError("invalid boolean syntax")) from e


def parse_int(s: str, shape: Shape) -> int:
    pattern = _UNSIGNED if shape.kind is Kind.UNSIGNED_INTEGER else _SIGNED
    if not pattern.match(s):
        raise ParseError(s, ValueError("invalid integer syntax"))
    try:
        value = int(s)
    except ValueError as e:
        # more digits than the interpreter converts
        raise ParseError(s, e) from e
    low, high = int_range(shape)
    if not low <= value <= high:
        raise ParseError(s, ValueError(f"value out of range for {shape.bits}-bit integer"))
    return value


def round_float32(value: float) -> float:
    """Round to single precision; values beyond its range become infinite."""
    try:
        return struct.unpack("f", struct.pack("f", value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


def _check_finite(s: str, value: float, rounded: float) -> float:
    if math.isinf(rounded) and not math.isinf(value):
        raise ParseError(s, OverflowError("value out of range"))
    return rounded


def parse_float(s: str, bits: int = 64) -> float:
    if not _FLOAT.match(s):
        raise ParseError(s, ValueError("invalid float syntax"))
    value = float(s)
    if math.isinf(value) and "inf" not in s.lower():
        raise ParseError(s, OverflowError("value out of range"))
    if bits == 32:
        value = _check_finite(s, value, round_float32(value))
    return value


def parse_complex(s: str, bits: int = 128) -> complex:
    if s != s.strip() or "_" in s:
        raise ParseError(s, ValueError("invalid complex syntax"))
    inner = s[1:-1] if s.startswith("(") and s.endswith(")") else s
    if inner[-1:] in ("i", "I"):
        inner = inner[:-1] + "j"
    try:
        value = complex(inner)
    except ValueError as e:
        raise ParseError(s, e) from e
    if "inf" not in s.lower():
        _check_finite(s, 0.0, value.real)
        _check_finite(s, 0.0, value.imag)
    if bits == 64:
        value = complex(
            _check_finite(s, value.real, round_float32(value.real)),
            _check_finite(s, value.imag, round_float32(value.imag)),
        )
    return value


# -- scalar formatting -------------------------------------------------------

def _shortest_float32(value: float) -> str:
    for precision in range(1, 10):
        text = f"{value:.{precision}g}"
        if round_float32(float(text)) == value:
            return text
    return repr(value)


def format_float(value: float, bits: int = 64) -> str:
    """Shortest round-trip decimal, never in exponent notation."""
    value = float(value)
    if math.isnan(value):
        return "NaN"
    if bits == 32:
        value = round_float32(value)
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    digits = _shortest_float32(value) if bits == 32 else repr(value)

    text = format(Decimal(digits), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def format_complex(value: complex, bits: int = 128) -> str:
    part_bits = 32 if bits == 64 else 64
    real = format_float(value.real, part_bits)
    imag = format_float(value.imag, part_bits)
    if not imag.startswith(("+", "-")):
        imag = "+" + imag
    return f"({real}{imag}i)"


# -- single values -----------------------------------------------------------

Decoder = Callable[[str, Shape, Any, SchemaBuilder], Any]
Encoder = Callable[[Any, Shape, SchemaBuilder], str]


def _decode_composite(s: str, shape: Shape, current: Any, builder: SchemaBuilder) -> Any:
    if shape.timestamp:
        return parse_timestamp(s)
    return jsoncodec.from_json(s, shape, builder)


def _encode_composite(value: Any, shape: Shape, builder: SchemaBuilder) -> str:
    if shape.timestamp:
        return format_timestamp(value)
    return jsoncodec.to_json(value, shape, builder)


_DECODERS: Dict[Kind, Decoder] = {
    Kind.TEXT: lambda s, shape, current, builder: s,
    Kind.BOOLEAN: lambda s, shape, current, builder: parse_bool(s),
    Kind.SIGNED_INTEGER: lambda s, shape, current, builder: parse_int(s, shape),
    Kind.UNSIGNED_INTEGER: lambda s, shape, current, builder: parse_int(s, shape),
    Kind.FLOATING_POINT: lambda s, shape, current, builder: parse_float(s, shape.bits),
    Kind.COMPLEX_NUMBER: lambda s, shape, current, builder: parse_complex(s, shape.bits),
    Kind.COMPOSITE: _decode_composite,
    Kind.UNREPRESENTABLE: lambda s, shape, current, builder: current,
}

_ENCODERS: Dict[Kind, Encoder] = {
    Kind.TEXT: lambda value, shape, builder: str(value),
    Kind.BOOLEAN: lambda value, shape, builder: "true" if value else "false",
    Kind.SIGNED_INTEGER: lambda value, shape, builder: str(int(value)),
    Kind.UNSIGNED_INTEGER: lambda value, shape, builder: str(int(value)),
    Kind.FLOATING_POINT: lambda value, shape, builder: format_float(value, shape.bits),
    Kind.COMPLEX_NUMBER: lambda value, shape, builder: format_complex(complex(value), shape.bits),
    Kind.COMPOSITE: _encode_composite,
    Kind.UNREPRESENTABLE: lambda value, shape, builder: "",
}


def _concrete(shape: Shape, current: Any) -> Shape:
    shape = unwrap_pointer(shape, current)
    if shape.kind is Kind.POINTER_OR_DYNAMIC:
        raise UnsupportedKindError(f"{shape.name} (no value to decode into)")
    return shape


def decode_value(s: str, shape: Shape, current: Any, builder: SchemaBuilder) -> Any:
    """Decode one string into one value of the given shape."""
    shape = _concrete(shape, current)
    decoder = _DECODERS.get(shape.kind)
    if decoder is None:
        raise UnsupportedKindError(shape.kind.value if shape.kind else shape.name)
    return decoder(s, shape, current, builder)


def encode_value(value: Any, shape: Shape, builder: SchemaBuilder) -> str:
    """Encode one value of the given shape as one string."""
    if value is None:
        raise UnsupportedKindError("NoneType")
    shape = unwrap_pointer(shape, value)
    encoder = _ENCODERS.get(shape.kind)
    if encoder is None:
        raise UnsupportedKindError(shape.kind.value if shape.kind else shape.name)
    return encoder(value, shape, builder)


# -- fields ------------------------------------------------------------------

def decode_field(strings: Sequence[str], shape: Shape, current: Any, builder: SchemaBuilder) -> Any:
    """
    Decode every string found under a field's key into the field's new value.

    Fixed sequences take at most one string per slot; slots without input
    hold their zero value. Growable sequences take one element per string.
    Other kinds read the first string only.
    """
    shape = _concrete(shape, current)

    if shape.kind is Kind.FIXED_SEQUENCE:
        arity = len(shape.items)
        if len(strings) > arity:
            logger.debug("Discarding %d values beyond arity %d", len(strings) - arity, arity)
        slots = [zero_value(s, builder) for s in shape.items]
        for i, (s, slot_shape) in enumerate(zip(strings, shape.items)):
            slots[i] = decode_value(s, slot_shape, None, builder)
        return tuple(slots)

    if shape.kind is Kind.GROWABLE_SEQUENCE:
        element = shape.items[0]
        return shape.tp(decode_value(s, element, None, builder) for s in strings)

    return decode_value(strings[0], shape, current, builder)


def encode_field(value: Any, shape: Shape, builder: SchemaBuilder) -> List[str]:
    """Encode a non-empty field value as the list of strings for its key."""
    shape = unwrap_pointer(shape, value)

    if shape.kind is Kind.FIXED_SEQUENCE:
        return [
            encode_value(v, shape.items[i] if i < len(shape.items) else shape_of_value(v), builder)
            for i, v in enumerate(value)
        ]

    if shape.kind is Kind.GROWABLE_SEQUENCE:
        return [encode_value(v, shape.items[0], builder) for v in value]

    if shape.kind is Kind.UNREPRESENTABLE:
        return []

    return [encode_value(value, shape, builder)]
