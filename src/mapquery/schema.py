"""
Schema derivation for mapquery records.

Turns type annotations into immutable descriptions of how a value is coded:

    - Kind:             the closed set of capability kinds
    - Shape:            one annotation, resolved to a kind plus element shapes
    - FieldDescriptor:  one record field, with its keys and shape
    - SchemaBuilder:    derives field descriptors for record types

Records are dataclasses. A SchemaBuilder belongs to a single encode/decode
call; it memoises field lists per type for the duration of that call only.
Nothing is cached at module level.
"""

from __future__ import annotations

import collections.abc
import dataclasses
import logging
import queue
import types
import typing
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from mapquery.config import CodecConfig, DEFAULT_CONFIG
from mapquery.errors import InvalidTargetError, UnaddressableTargetError
from mapquery.tags import has_explicit_tag, is_embedded, resolve_keys
from mapquery.types import Width

logger = logging.getLogger(__name__)


class Kind(Enum):
    """Capability kinds. Every supported annotation maps to exactly one."""

    TEXT = "text"
    BOOLEAN = "boolean"
    SIGNED_INTEGER = "signed-integer"
    UNSIGNED_INTEGER = "unsigned-integer"
    FLOATING_POINT = "floating-point"
    COMPLEX_NUMBER = "complex-number"
    FIXED_SEQUENCE = "fixed-sequence"
    GROWABLE_SEQUENCE = "growable-sequence"
    POINTER_OR_DYNAMIC = "pointer-or-dynamic"
    COMPOSITE = "composite"
    UNREPRESENTABLE = "unrepresentable"


@dataclass(frozen=True)
class Shape:
    """
    Resolved description of one annotation.

    Properties:
        kind:       Capability kind, or None when the type has no coder
        tp:         Concrete Python class (list, tuple, dict, the dataclass, ...)
        name:       Readable type name, used in error messages
        bits:       Bit width for numeric kinds
        items:      Element shapes:
                        growable sequence -> (element,)
                        fixed sequence    -> one per slot
                        pointer           -> (pointee,)
                        dynamic           -> ()
                        mapping           -> (key, value)
        timestamp:  True for the datetime special case of COMPOSITE
        record:     True when tp is a dataclass (nested record)
    """

    kind: Optional[Kind]
    tp: Any
    name: str
    bits: int = 64
    items: Tuple["Shape", ...] = ()
    timestamp: bool = False
    record: bool = False

    @property
    def supported(self) -> bool:
        return self.kind is not None

    @property
    def dynamic(self) -> bool:
        return self.kind is Kind.POINTER_OR_DYNAMIC and not self.items


@dataclass(frozen=True)
class FieldDescriptor:
    """
    One exported record field.

    Properties:
        name:           Attribute name on the dataclass
        keys:           Candidate multimap keys, in lookup order
        canonical_key:  Key written on encode
        shape:          Resolved shape of the annotation
        embedded:       Field's own fields flatten into the container
        tagged:         Field carries an explicit primary or secondary tag
        json_key:       Key used when the containing record is JSON-coded
        json_omitempty: JSON coding omits the field when empty
        json_skip:      JSON coding ignores the field ("-" tag)
    """

    name: str
    keys: Tuple[str, ...]
    canonical_key: str
    shape: Shape
    embedded: bool = False
    tagged: bool = False
    json_key: str = ""
    json_omitempty: bool = False
    json_skip: bool = False


DYNAMIC = Shape(Kind.POINTER_OR_DYNAMIC, object, "any")
UNSUPPORTED_NONE = Shape(None, type(None), "NoneType")

_SCALARS: Dict[Any, Tuple[Kind, int]] = {
    str: (Kind.TEXT, 0),
    bool: (Kind.BOOLEAN, 0),
    int: (Kind.SIGNED_INTEGER, 64),
    float: (Kind.FLOATING_POINT, 64),
    complex: (Kind.COMPLEX_NUMBER, 128),
}

_SEQUENCE_ORIGINS = (list, collections.abc.Sequence, collections.abc.MutableSequence)
_MAPPING_ORIGINS = (dict, collections.abc.Mapping, collections.abc.MutableMapping)
_UNREPRESENTABLE_ORIGINS = (
    collections.abc.Callable,
    collections.abc.Iterator,
    collections.abc.Generator,
    collections.abc.AsyncIterator,
    collections.abc.AsyncGenerator,
    queue.Queue,
)
_UNREPRESENTABLE_TYPES = (
    types.FunctionType,
    types.BuiltinFunctionType,
    types.MethodType,
    types.GeneratorType,
    types.CoroutineType,
    queue.Queue,
)

_UNION_TYPES: Tuple[Any, ...] = (typing.Union,)
if hasattr(types, "UnionType"):
    _UNION_TYPES += (types.UnionType,)


def _type_name(annotation: Any) -> str:
    return getattr(annotation, "__name__", None) or str(annotation)


def _apply_width(shape: Shape, width: Width) -> Shape:
    if shape.kind is Kind.SIGNED_INTEGER and not width.signed:
        return dataclasses.replace(shape, kind=Kind.UNSIGNED_INTEGER, bits=width.bits)
    if shape.kind in (
        Kind.SIGNED_INTEGER,
        Kind.UNSIGNED_INTEGER,
        Kind.FLOATING_POINT,
        Kind.COMPLEX_NUMBER,
    ):
        return dataclasses.replace(shape, bits=width.bits)
    return shape


def int_range(shape: Shape) -> Tuple[int, int]:
    """Inclusive (low, high) bounds of an integer shape."""
    if shape.kind is Kind.UNSIGNED_INTEGER:
        return 0, (1 << shape.bits) - 1
    return -(1 << (shape.bits - 1)), (1 << (shape.bits - 1)) - 1


def is_record_type(tp: Any) -> bool:
    return isinstance(tp, type) and dataclasses.is_dataclass(tp)


def is_record_instance(value: Any) -> bool:
    return dataclasses.is_dataclass(value) and not isinstance(value, type)


def derive_shape(annotation: Any) -> Shape:
    """
    Resolve a type annotation to a Shape.

    Unknown annotations yield a Shape with kind None; they only fail once a
    coder actually reaches them.
    """
    origin = typing.get_origin(annotation)
    args = typing.get_args(annotation)

    if origin is typing.Annotated:
        shape = derive_shape(args[0])
        for extra in args[1:]:
            if isinstance(extra, Width):
                shape = _apply_width(shape, extra)
        return shape

    if annotation is Any or annotation is object:
        return DYNAMIC

    if origin in _UNION_TYPES:
        members = [a for a in args if a is not type(None)]
        if len(members) == 1 and len(members) < len(args):
            pointee = derive_shape(members[0])
            return Shape(Kind.POINTER_OR_DYNAMIC, pointee.tp, f"Optional[{pointee.name}]", items=(pointee,))
        return Shape(None, annotation, str(annotation))

    if annotation in _SCALARS:
        kind, bits = _SCALARS[annotation]
        return Shape(kind, annotation, annotation.__name__, bits=bits)

    if annotation is datetime:
        return Shape(Kind.COMPOSITE, datetime, "datetime", timestamp=True)

    if is_record_type(annotation):
        return Shape(Kind.COMPOSITE, annotation, annotation.__name__, record=True)

    if origin is tuple or annotation is tuple:
        if not args:
            return Shape(Kind.GROWABLE_SEQUENCE, tuple, "tuple", items=(DYNAMIC,))
        if len(args) == 2 and args[1] is Ellipsis:
            element = derive_shape(args[0])
            return Shape(Kind.GROWABLE_SEQUENCE, tuple, f"Tuple[{element.name}, ...]", items=(element,))
        if args == ((),):
            return Shape(Kind.FIXED_SEQUENCE, tuple, "Tuple[()]")
        slots = tuple(derive_shape(a) for a in args)
        return Shape(
            Kind.FIXED_SEQUENCE,
            tuple,
            f"Tuple[{', '.join(s.name for s in slots)}]",
            items=slots,
        )

    if origin in _SEQUENCE_ORIGINS or annotation is list:
        element = derive_shape(args[0]) if args else DYNAMIC
        return Shape(Kind.GROWABLE_SEQUENCE, list, f"List[{element.name}]", items=(element,))

    if origin in _MAPPING_ORIGINS or annotation is dict:
        key = derive_shape(args[0]) if args else DYNAMIC
        value = derive_shape(args[1]) if len(args) > 1 else DYNAMIC
        return Shape(Kind.COMPOSITE, dict, f"Dict[{key.name}, {value.name}]", items=(key, value))

    if origin in _UNREPRESENTABLE_ORIGINS or annotation in _UNREPRESENTABLE_ORIGINS:
        return Shape(Kind.UNREPRESENTABLE, origin or annotation, _type_name(origin or annotation))

    if isinstance(annotation, type) and issubclass(annotation, _UNREPRESENTABLE_TYPES):
        return Shape(Kind.UNREPRESENTABLE, annotation, annotation.__name__)

    return Shape(None, annotation, _type_name(annotation))


def shape_of_value(value: Any) -> Shape:
    """Shape of a runtime value, used behind dynamic (Any) fields."""
    if value is None:
        return UNSUPPORTED_NONE
    if callable(value) and not isinstance(value, type) and not is_record_instance(value):
        return Shape(Kind.UNREPRESENTABLE, type(value), type(value).__name__)
    return derive_shape(type(value))


def unwrap_pointer(shape: Shape, current: Any = None) -> Shape:
    """
    Follow pointer/dynamic levels until a concrete shape is reached.

    Optional[X] unwraps to X; a dynamic shape unwraps to the shape of the
    current runtime value (None when there is no value to inspect).
    """
    while shape.kind is Kind.POINTER_OR_DYNAMIC:
        if shape.items:
            shape = shape.items[0]
            continue
        if current is None:
            return shape
        runtime = shape_of_value(current)
        if runtime.kind is Kind.POINTER_OR_DYNAMIC:
            return Shape(None, runtime.tp, runtime.name)
        shape = runtime
    return shape


def parse_json_tag(name: str, metadata: Any, config: CodecConfig) -> Tuple[str, bool, bool]:
    """Return (json key, omitempty, skip) for one field."""
    tag = metadata.get(config.secondary_tag)
    if not tag:
        return name, False, False
    tag = str(tag)
    if tag == "-":
        return name, False, True
    parts = tag.split(",")
    return parts[0] or name, "omitempty" in parts[1:], False


class SchemaBuilder:
    """
    Derives FieldDescriptors for record types.

    One instance lives for one encode/decode call.
    """

    def __init__(self, config: CodecConfig = DEFAULT_CONFIG):
        self.config = config
        self._hints: Dict[type, Dict[str, Any]] = {}
        self._fields: Dict[type, List[FieldDescriptor]] = {}

    def hints_of(self, cls: type) -> Dict[str, Any]:
        if cls not in self._hints:
            try:
                self._hints[cls] = typing.get_type_hints(cls, include_extras=True)
            except (NameError, TypeError) as e:
                raise InvalidTargetError(f"cannot resolve annotations of {cls.__name__}: {e}") from e
        return self._hints[cls]

    def fields_of(self, cls: type) -> List[FieldDescriptor]:
        """
        Exported fields of a record type, in declaration order.

        Fields whose name starts with an underscore are internal and are
        left out entirely.
        """
        if cls in self._fields:
            return self._fields[cls]

        hints = self.hints_of(cls)
        result = []
        for f in dataclasses.fields(cls):
            if f.name.startswith("_"):
                continue
            keys, canonical = resolve_keys(f.name, f.metadata, self.config)
            json_key, omitempty, skip = parse_json_tag(f.name, f.metadata, self.config)
            result.append(FieldDescriptor(
                name=f.name,
                keys=tuple(keys),
                canonical_key=canonical,
                shape=derive_shape(hints.get(f.name, Any)),
                embedded=is_embedded(f.metadata, self.config),
                tagged=has_explicit_tag(f.metadata, self.config),
                json_key=json_key,
                json_omitempty=omitempty,
                json_skip=skip,
            ))

        logger.debug("Derived %d fields for %s", len(result), cls.__name__)
        self._fields[cls] = result
        return result

    def new_record(self, cls: type, values: Optional[Dict[str, Any]] = None) -> Any:
        """
        Allocate a record, filling required init fields with zero values.

        Args:
            cls: Dataclass type
            values: Field values to set on the new record

        Returns:
            The new record instance
        """
        values = values or {}
        hints = self.hints_of(cls)
        kwargs = {}
        late = {}
        for f in dataclasses.fields(cls):
            if f.name in values:
                if f.init:
                    kwargs[f.name] = values[f.name]
                else:
                    late[f.name] = values[f.name]
                continue
            if not f.init:
                continue
            if f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING:
                kwargs[f.name] = zero_value(derive_shape(hints.get(f.name, Any)), self)

        record = cls(**kwargs)
        for name, value in late.items():
            assign(record, name, value)
        return record


def assign(record: Any, name: str, value: Any) -> None:
    try:
        setattr(record, name, value)
    except dataclasses.FrozenInstanceError as e:
        raise UnaddressableTargetError(
            f"cannot assign field {name!r} of frozen {type(record).__name__}"
        ) from e


def zero_value(shape: Shape, builder: SchemaBuilder) -> Any:
    """Zero value of a shape: what a freshly allocated slot holds."""
    kind = shape.kind
    if kind is Kind.TEXT:
        return ""
    if kind is Kind.BOOLEAN:
        return False
    if kind in (Kind.SIGNED_INTEGER, Kind.UNSIGNED_INTEGER):
        return 0
    if kind is Kind.FLOATING_POINT:
        return 0.0
    if kind is Kind.COMPLEX_NUMBER:
        return 0j
    if kind is Kind.FIXED_SEQUENCE:
        return tuple(zero_value(s, builder) for s in shape.items)
    if kind is Kind.GROWABLE_SEQUENCE:
        return shape.tp()
    if kind is Kind.COMPOSITE:
        if shape.timestamp:
            return datetime.min
        if shape.record:
            return builder.new_record(shape.tp)
        return {}
    return None


def is_zero_timestamp(value: datetime) -> bool:
    """Wall-clock comparison with datetime.min, ignoring tzinfo rather than the UTC instant."""
    return value.replace(tzinfo=None) == datetime.min


def is_empty(value: Any, shape: Shape) -> bool:
    """
    Whether a field is omitted on encode.

    Empty: None, zero-length text/sequences/mappings, False, numeric zero,
    unrepresentable values and the zero timestamp. Nested records and
    non-None dynamic values are never empty.
    """
    if value is None:
        return True

    kind = shape.kind
    if kind is Kind.UNREPRESENTABLE:
        return True
    if kind in (Kind.TEXT, Kind.FIXED_SEQUENCE, Kind.GROWABLE_SEQUENCE):
        return len(value) == 0
    if kind is Kind.BOOLEAN:
        return not value
    if kind in (
        Kind.SIGNED_INTEGER,
        Kind.UNSIGNED_INTEGER,
        Kind.FLOATING_POINT,
        Kind.COMPLEX_NUMBER,
    ):
        return value == 0
    if kind is Kind.COMPOSITE:
        if shape.timestamp:
            return isinstance(value, datetime) and is_zero_timestamp(value)
        if shape.record:
            return False
        return len(value) == 0
    return False
