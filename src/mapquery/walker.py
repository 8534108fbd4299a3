"""
Field traversal for encode and decode.

Walks a record's exported fields in declaration order. Embedded fields are
flattened: their own fields are walked in place, sharing the container's
key namespace, before the next sibling field.

An embedded field is additionally coded as a single leaf value (under its
own key) only when it carries an explicit primary or secondary tag. The
rule is the same in both directions.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from mapquery.coders import decode_field, encode_field
from mapquery.errors import FieldError, MapQueryError
from mapquery.schema import (
    FieldDescriptor,
    SchemaBuilder,
    assign,
    is_empty,
    is_record_instance,
    unwrap_pointer,
)

logger = logging.getLogger(__name__)


def _lookup(query: Mapping[str, Sequence[str]], fd: FieldDescriptor) -> Optional[str]:
    """First candidate key with at least one value in the multimap."""
    for key in fd.keys:
        if query.get(key):
            return key
    return None


def encode_fields(record: Any, result: Dict[str, List[str]], builder: SchemaBuilder) -> None:
    """
    Encode the exported, non-empty fields of a record into result.

    Errors propagate unwrapped; the first one aborts the walk.
    """
    for fd in builder.fields_of(type(record)):
        value = getattr(record, fd.name)
        if is_empty(value, fd.shape):
            continue

        if fd.embedded:
            if is_record_instance(value):
                encode_fields(value, result, builder)
            if not fd.tagged:
                continue

        strings = encode_field(value, fd.shape, builder)
        if not strings:
            continue
        if fd.canonical_key in result:
            logger.debug("Key %r written by more than one field, keeping %r", fd.canonical_key, fd.name)
        result[fd.canonical_key] = strings


def _decode_embedded(
    query: Mapping[str, Sequence[str]],
    record: Any,
    fd: FieldDescriptor,
    builder: SchemaBuilder,
) -> None:
    shape = unwrap_pointer(fd.shape)
    if not shape.record:
        return
    inner = getattr(record, fd.name)
    if inner is None:
        inner = builder.new_record(shape.tp)
        assign(record, fd.name, inner)
    decode_fields(query, inner, builder)


def decode_fields(query: Mapping[str, Sequence[str]], record: Any, builder: SchemaBuilder) -> None:
    """
    Populate a record's exported fields from the multimap.

    Fields whose keys are all absent keep their current value. A failure on
    a keyed field is wrapped in FieldError; failures inside an embedded
    record propagate as they are.
    """
    for fd in builder.fields_of(type(record)):
        if fd.embedded:
            _decode_embedded(query, record, fd, builder)
            if not fd.tagged:
                continue

        key = _lookup(query, fd)
        if key is None:
            continue

        try:
            value = decode_field(query[key], fd.shape, getattr(record, fd.name), builder)
        except MapQueryError as e:
            raise FieldError(key, e) from e
        assign(record, fd.name, value)
