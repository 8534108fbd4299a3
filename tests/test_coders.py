"""
Tests for value coding.

Covers scalar literal syntax, the field-level sequence policies
(fixed arity truncation/padding, growable sequences), pointer and dynamic
unwrapping, and the unsupported/unrepresentable kinds.
"""

import math
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

from mapquery.coders import (
    decode_field,
    decode_value,
    encode_field,
    encode_value,
    format_complex,
    format_float,
    parse_bool,
    parse_complex,
    parse_float,
    parse_int,
    round_float32,
)
from mapquery.errors import ParseError, UnsupportedKindError
from mapquery.schema import SchemaBuilder, derive_shape
from mapquery.types import Complex64, Float32, Int8, Uint, Uint8


@pytest.fixture
def builder():
    return SchemaBuilder()


class TestParseScalars:
    """Test scalar literal parsing."""

    @pytest.mark.parametrize("s, expected", [
        ("1", True), ("t", True), ("T", True), ("TRUE", True), ("true", True), ("True", True),
        ("0", False), ("f", False), ("F", False), ("FALSE", False), ("false", False), ("False", False),
    ])
    def test_bool_literals(self, s, expected):
        assert parse_bool(s) is expected

    @pytest.mark.parametrize("s", ["yes", "", "tRuE", "2"])
    def test_bool_invalid(self, s):
        with pytest.raises(ParseError):
            parse_bool(s)

    def test_signed_integers(self):
        shape = derive_shape(int)
        assert parse_int("2", shape) == 2
        assert parse_int("+5", shape) == 5
        assert parse_int("-3", shape) == -3

    @pytest.mark.parametrize("s", ["", "1.5", "1_000", " 1", "0x10", "abc"])
    def test_integer_syntax_errors(self, s):
        with pytest.raises(ParseError) as exc_info:
            parse_int(s, derive_shape(int))
        assert isinstance(exc_info.value.cause, ValueError)

    def test_integer_bit_width(self):
        shape = derive_shape(Int8)
        assert parse_int("127", shape) == 127
        assert parse_int("-128", shape) == -128
        with pytest.raises(ParseError):
            parse_int("128", shape)

    def test_int64_bounds(self):
        shape = derive_shape(int)
        assert parse_int(str(2**63 - 1), shape) == 2**63 - 1
        with pytest.raises(ParseError):
            parse_int(str(2**63), shape)

    def test_unsigned_integers(self):
        assert parse_int("255", derive_shape(Uint8)) == 255
        assert parse_int(str(2**64 - 1), derive_shape(Uint)) == 2**64 - 1
        with pytest.raises(ParseError):
            parse_int("256", derive_shape(Uint8))
        with pytest.raises(ParseError):
            parse_int("-1", derive_shape(Uint))
        with pytest.raises(ParseError):
            parse_int("+1", derive_shape(Uint))

    def test_floats(self):
        assert parse_float("2.2") == 2.2
        assert parse_float("-1e3") == -1000.0
        assert parse_float(".5") == 0.5
        assert math.isinf(parse_float("+Inf"))
        assert math.isnan(parse_float("NaN"))

    @pytest.mark.parametrize("s", ["", "abc", "1.2.3", "1_0", " 1"])
    def test_float_syntax_errors(self, s):
        with pytest.raises(ParseError):
            parse_float(s)

    def test_float_overflow(self):
        with pytest.raises(ParseError):
            parse_float("1e400")
        with pytest.raises(ParseError):
            parse_float("1e39", 32)

    def test_huge_integer(self):
        with pytest.raises(ParseError):
            parse_int("1" * 5000, derive_shape(int))

    @pytest.mark.parametrize("s", ["5\n", "5 ", "\n5"])
    def test_integer_rejects_surrounding_whitespace(self, s):
        with pytest.raises(ParseError):
            parse_int(s, derive_shape(int))

    @pytest.mark.parametrize("s", ["1.5\n", "inf\n"])
    def test_float_rejects_trailing_newline(self, s):
        with pytest.raises(ParseError):
            parse_float(s)

    def test_float32_overflow_after_rounding(self):
        assert math.isinf(round_float32(1e39))
        with pytest.raises(ParseError):
            parse_float("-1e39", 32)
        assert math.isinf(parse_float("Inf", 32))

    def test_float32_rounding(self):
        assert parse_float("0.1", 32) != 0.1
        assert parse_float("0.5", 32) == 0.5

    @pytest.mark.parametrize("s, expected", [
        ("(1+2i)", 1 + 2j),
        ("1+2i", 1 + 2j),
        ("(1+2j)", 1 + 2j),
        ("3", 3 + 0j),
        ("-2.5i", -2.5j),
    ])
    def test_complex(self, s, expected):
        assert parse_complex(s) == expected

    def test_complex_overflow(self):
        with pytest.raises(ParseError):
            parse_complex("(1e39+0i)", 64)
        with pytest.raises(ParseError):
            parse_complex("1e400+0i")
        assert math.isinf(parse_complex("(0+Infi)").imag)

    @pytest.mark.parametrize("s", ["", "x", "(1+2i", " 1+2i", "1_0+2i"])
    def test_complex_syntax_errors(self, s):
        with pytest.raises(ParseError):
            parse_complex(s)


class TestFormatScalars:
    """Test canonical textual formatting."""

    @pytest.mark.parametrize("value, expected", [
        (2.2, "2.2"),
        (0.0, "0"),
        (-0.0, "-0"),
        (1.0, "1"),
        (100.0, "100"),
        (1e21, "1000000000000000000000"),
        (1.5e-7, "0.00000015"),
        (math.nan, "NaN"),
        (math.inf, "+Inf"),
        (-math.inf, "-Inf"),
    ])
    def test_float64(self, value, expected):
        assert format_float(value) == expected

    def test_float32_shortest(self):
        assert format_float(32.32, 32) == "32.32"
        assert format_float(0.1, 32) == "0.1"

    def test_float32_overflow_is_infinite(self):
        assert format_float(1e39, 32) == "+Inf"

    def test_float32_negative_overflow(self):
        assert format_float(-1e39, 32) == "-Inf"

    def test_complex(self):
        assert format_complex(1 + 2j) == "(1+2i)"
        assert format_complex(complex(1.5, -2)) == "(1.5-2i)"
        assert format_complex(complex(0, math.inf)) == "(0+Infi)"

    def test_complex64(self):
        shape = derive_shape(Complex64)
        assert encode_value(complex(0.1, 0.2), shape, SchemaBuilder()) == "(0.1+0.2i)"


class TestDecodeField:
    """Test field-level decoding policies."""

    def test_fixed_sequence_truncates(self, builder):
        shape = derive_shape(Tuple[str, str])
        assert decode_field(["foo", "bar", "baz"], shape, None, builder) == ("foo", "bar")

    def test_fixed_sequence_pads_with_zero(self, builder):
        shape = derive_shape(Tuple[str, str])
        assert decode_field(["foo"], shape, None, builder) == ("foo", "")

    def test_fixed_sequence_mixed_slots(self, builder):
        shape = derive_shape(Tuple[str, int, bool])
        assert decode_field(["a", "2"], shape, None, builder) == ("a", 2, False)

    def test_growable_sequence(self, builder):
        assert decode_field(["1", "2", "3"], derive_shape(List[int]), None, builder) == [1, 2, 3]

    def test_growable_tuple(self, builder):
        assert decode_field(["1", "2"], derive_shape(Tuple[int, ...]), None, builder) == (1, 2)

    def test_sequence_of_optionals(self, builder):
        shape = derive_shape(List[Optional[int]])
        assert decode_field(["1", "2"], shape, None, builder) == [1, 2]

    def test_scalar_uses_first_value(self, builder):
        assert decode_field(["7", "8"], derive_shape(int), 0, builder) == 7

    def test_pointer(self, builder):
        assert decode_field(["5"], derive_shape(Optional[int]), None, builder) == 5

    def test_dynamic_with_current_value(self, builder):
        assert decode_field(["7"], derive_shape(Any), 3, builder) == 7

    def test_dynamic_without_value(self, builder):
        with pytest.raises(UnsupportedKindError):
            decode_field(["7"], derive_shape(Any), None, builder)

    def test_unrepresentable_is_noop(self, builder):
        shape = derive_shape(Callable[[], None])
        assert decode_field(["x"], shape, print, builder) is print

    def test_unsupported_kind(self, builder):
        with pytest.raises(UnsupportedKindError) as exc_info:
            decode_field(["x"], derive_shape(bytes), None, builder)
        assert exc_info.value.kind == "bytes"

    def test_nested_sequence_unsupported(self, builder):
        with pytest.raises(UnsupportedKindError):
            decode_field(["1"], derive_shape(List[List[int]]), None, builder)

    def test_element_parse_error(self, builder):
        with pytest.raises(ParseError):
            decode_field(["1", "x"], derive_shape(List[int]), None, builder)

    def test_mapping(self, builder):
        shape = derive_shape(Dict[str, str])
        assert decode_field(['{"foo":"bar"}'], shape, None, builder) == {"foo": "bar"}


class TestEncodeField:
    """Test field-level encoding."""

    def test_sequences(self, builder):
        assert encode_field(("foo", "bar"), derive_shape(Tuple[str, str]), builder) == ["foo", "bar"]
        assert encode_field([1, 2], derive_shape(List[int]), builder) == ["1", "2"]

    def test_pointer(self, builder):
        assert encode_field(5, derive_shape(Optional[int]), builder) == ["5"]

    def test_dynamic(self, builder):
        assert encode_field([1, "a"], derive_shape(Any), builder) == ["1", "a"]
        assert encode_field(True, derive_shape(Any), builder) == ["true"]

    def test_unrepresentable(self, builder):
        assert encode_field(print, derive_shape(Callable[[], None]), builder) == []

    def test_bool_and_int(self, builder):
        assert encode_field(True, derive_shape(bool), builder) == ["true"]
        assert encode_field(32, derive_shape(int), builder) == ["32"]

    def test_float32(self, builder):
        assert encode_field(32.32, derive_shape(Float32), builder) == ["32.32"]

    def test_mapping_sorted_keys(self, builder):
        value = {"b": "2", "a": "1"}
        assert encode_field(value, derive_shape(Dict[str, str]), builder) == ['{"a":"1","b":"2"}']

    def test_none_element(self, builder):
        with pytest.raises(UnsupportedKindError):
            encode_field([1, None], derive_shape(List[Optional[int]]), builder)

    def test_unsupported(self, builder):
        with pytest.raises(UnsupportedKindError):
            encode_field(b"x", derive_shape(bytes), builder)

    def test_decode_value_direct(self, builder):
        assert decode_value("x", derive_shape(str), None, builder) == "x"
