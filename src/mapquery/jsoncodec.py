"""
JSON coding for composite values (mappings and nested records).

Values go through an intermediate JSON-compatible object:

    record   <-> dict keyed by each field's JSON key, in declaration order
    mapping  <-> dict with string keys, sorted on output
    sequence <-> list
    datetime <-> RFC3339 string

Record fields follow the secondary ("json") tag: its first segment renames
the key, "-" drops the field and "omitempty" drops empty values. Embedded
fields without a JSON name flatten into the containing object. Unknown
keys in the input are ignored; keys match exactly first, then
case-insensitively.
"""

from __future__ import annotations

import json
from typing import Any, Dict

from mapquery.errors import CompositeError, UnsupportedKindError
from mapquery.schema import (
    FieldDescriptor,
    Kind,
    SchemaBuilder,
    Shape,
    assign,
    int_range,
    is_empty,
    shape_of_value,
    unwrap_pointer,
    zero_value,
)
from mapquery.timestamps import format_timestamp, parse_rfc3339

_INT_KINDS = (Kind.SIGNED_INTEGER, Kind.UNSIGNED_INTEGER)


def _flattens(fd: FieldDescriptor) -> bool:
    return fd.embedded and fd.json_key == fd.name and unwrap_pointer(fd.shape).record


def record_to_dict(record: Any, builder: SchemaBuilder) -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    for fd in builder.fields_of(type(record)):
        if fd.json_skip:
            continue
        value = getattr(record, fd.name)
        if fd.json_omitempty and is_empty(value, fd.shape):
            continue
        if _flattens(fd):
            if value is not None:
                result.update(record_to_dict(value, builder))
            continue
        result[fd.json_key] = value_to_obj(value, fd.shape, builder)
    return result


def _match_key(d: Dict[str, Any], key: str) -> Any:
    if key in d:
        return key
    folded = key.casefold()
    for k in d:
        if isinstance(k, str) and k.casefold() == folded:
            return k
    return None


def record_from_dict(d: Any, cls: type, builder: SchemaBuilder) -> Any:
    if not isinstance(d, dict):
        raise TypeError(f"cannot decode JSON {type(d).__name__} into {cls.__name__}")
    record = builder.new_record(cls)
    for fd in builder.fields_of(cls):
        if fd.json_skip:
            continue
        if _flattens(fd):
            assign(record, fd.name, record_from_dict(d, unwrap_pointer(fd.shape).tp, builder))
            continue
        key = _match_key(d, fd.json_key)
        if key is None:
            continue
        assign(record, fd.name, value_from_obj(d[key], fd.shape, builder))
    return record


def value_to_obj(value: Any, shape: Shape, builder: SchemaBuilder) -> Any:
    if value is None:
        return None

    shape = unwrap_pointer(shape, value)
    kind = shape.kind

    if kind is Kind.TEXT:
        return str(value)
    if kind is Kind.BOOLEAN:
        return bool(value)
    if kind in (Kind.SIGNED_INTEGER, Kind.UNSIGNED_INTEGER):
        return int(value)
    if kind is Kind.FLOATING_POINT:
        return float(value)
    if kind is Kind.FIXED_SEQUENCE:
        return [
            value_to_obj(v, shape.items[i] if i < len(shape.items) else shape_of_value(v), builder)
            for i, v in enumerate(value)
        ]
    if kind is Kind.GROWABLE_SEQUENCE:
        return [value_to_obj(v, shape.items[0], builder) for v in value]
    if kind is Kind.COMPOSITE:
        if shape.timestamp:
            return format_timestamp(value)
        if shape.record:
            return record_to_dict(value, builder)
        key_shape, value_shape = shape.items
        return {
            _key_to_str(k, key_shape): value_to_obj(v, value_shape, builder)
            for k, v in sorted(value.items(), key=lambda kv: _key_to_str(kv[0], key_shape))
        }
    raise TypeError(f"JSON does not support {shape.name} values")


def _key_to_str(key: Any, shape: Shape) -> str:
    shape = unwrap_pointer(shape, key)
    if shape.kind in (Kind.TEXT, Kind.SIGNED_INTEGER, Kind.UNSIGNED_INTEGER):
        return str(key)
    raise TypeError(f"JSON object keys cannot be {shape.name}")


def _key_from_str(key: str, shape: Shape) -> Any:
    if shape.dynamic or shape.kind is Kind.TEXT:
        return key
    if shape.kind in _INT_KINDS:
        return _check_int(int(key), shape)
    raise TypeError(f"JSON object keys cannot be decoded into {shape.name}")


def _check_int(value: int, shape: Shape) -> int:
    low, high = int_range(shape)
    if not low <= value <= high:
        raise ValueError(f"{value} overflows {shape.name}")
    return value


def value_from_obj(obj: Any, shape: Shape, builder: SchemaBuilder) -> Any:
    if obj is None:
        if shape.kind is Kind.POINTER_OR_DYNAMIC:
            return None
        return zero_value(shape, builder)

    shape = unwrap_pointer(shape)
    if shape.dynamic:
        return obj
    kind = shape.kind

    if kind is Kind.TEXT:
        if not isinstance(obj, str):
            raise TypeError(f"cannot decode JSON {type(obj).__name__} into {shape.name}")
        return obj
    if kind is Kind.BOOLEAN:
        if not isinstance(obj, bool):
            raise TypeError(f"cannot decode JSON {type(obj).__name__} into {shape.name}")
        return obj
    if kind in _INT_KINDS:
        if isinstance(obj, bool) or not isinstance(obj, int):
            raise TypeError(f"cannot decode JSON {type(obj).__name__} into {shape.name}")
        return _check_int(obj, shape)
    if kind is Kind.FLOATING_POINT:
        if isinstance(obj, bool) or not isinstance(obj, (int, float)):
            raise TypeError(f"cannot decode JSON {type(obj).__name__} into {shape.name}")
        return float(obj)
    if kind is Kind.FIXED_SEQUENCE:
        if not isinstance(obj, list):
            raise TypeError(f"cannot decode JSON {type(obj).__name__} into {shape.name}")
        slots = [zero_value(s, builder) for s in shape.items]
        for i, (item, slot_shape) in enumerate(zip(obj, shape.items)):
            slots[i] = value_from_obj(item, slot_shape, builder)
        return tuple(slots)
    if kind is Kind.GROWABLE_SEQUENCE:
        if not isinstance(obj, list):
            raise TypeError(f"cannot decode JSON {type(obj).__name__} into {shape.name}")
        return shape.tp(value_from_obj(item, shape.items[0], builder) for item in obj)
    if kind is Kind.COMPOSITE:
        if shape.timestamp:
            if not isinstance(obj, str):
                raise TypeError(f"cannot decode JSON {type(obj).__name__} into datetime")
            return parse_rfc3339(obj)
        if shape.record:
            return record_from_dict(obj, shape.tp, builder)
        if not isinstance(obj, dict):
            raise TypeError(f"cannot decode JSON {type(obj).__name__} into {shape.name}")
        key_shape, value_shape = shape.items
        return {
            _key_from_str(k, key_shape): value_from_obj(v, value_shape, builder)
            for k, v in obj.items()
        }
    if kind is None:
        raise UnsupportedKindError(shape.name)
    raise TypeError(f"JSON does not support {shape.name} values")


def to_json(value: Any, shape: Shape, builder: SchemaBuilder) -> str:
    try:
        obj = value_to_obj(value, shape, builder)
        return json.dumps(obj, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as e:
        raise CompositeError(e) from e


def from_json(s: str, shape: Shape, builder: SchemaBuilder) -> Any:
    try:
        obj = json.loads(s)
        return value_from_obj(obj, shape, builder)
    except (TypeError, ValueError) as e:
        raise CompositeError(e, s) from e
