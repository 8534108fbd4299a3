"""
Public entry points: encode a record into a string multimap, decode a
multimap back into a record.

    params = encode(Search(query="cats", page=2))
    # {"q": ["cats"], "page": ["2"]}

    search = Search()
    decode({"query": ["dogs"]}, search)
    # search.query == "dogs"

    search = decode_as({"q": ["dogs"]}, Search)

Every call derives field layouts afresh; no state is kept between calls.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Sequence, Type, TypeVar

from mapquery.config import CodecConfig, DEFAULT_CONFIG
from mapquery.errors import InvalidTargetError, UnaddressableTargetError
from mapquery.schema import SchemaBuilder, is_record_instance, is_record_type
from mapquery.walker import decode_fields, encode_fields

logger = logging.getLogger(__name__)

Multimap = Dict[str, List[str]]
T = TypeVar("T")


def _is_frozen(record: Any) -> bool:
    params = getattr(type(record), "__dataclass_params__", None)
    return bool(params and params.frozen)


class Codec:
    """
    Encoder/decoder bound to one CodecConfig.

    The module-level encode/decode/decode_as functions use a Codec with the
    default configuration.
    """

    def __init__(self, config: CodecConfig = DEFAULT_CONFIG):
        self.config = config

    def encode(self, value: Any) -> Multimap:
        """
        Encode a record as a string multimap.

        Args:
            value: Dataclass instance, or None

        Returns:
            Mapping from key to list of strings; empty fields are omitted

        Raises:
            InvalidTargetError: If value is not a dataclass instance
            MapQueryError: If a field cannot be encoded
        """
        if value is None:
            return {}
        if not is_record_instance(value):
            raise InvalidTargetError(f"unable to encode non-record value of type {type(value).__name__}")

        result: Multimap = {}
        encode_fields(value, result, SchemaBuilder(self.config))
        logger.debug("Encoded %s into %d keys", type(value).__name__, len(result))
        return result

    def decode(self, query: Mapping[str, Sequence[str]], target: Any) -> None:
        """
        Decode a string multimap into an existing record, in place.

        Fields without a matching key keep their current value. On error the
        target may be partially updated.

        Raises:
            InvalidTargetError: If target is not a dataclass instance
            UnaddressableTargetError: If target is a frozen dataclass
            FieldError: If a field's value cannot be decoded
        """
        if isinstance(target, type):
            raise InvalidTargetError(
                f"cannot decode into class {target.__name__}, pass an instance or use decode_as"
            )
        if not is_record_instance(target):
            raise InvalidTargetError(f"cannot decode into value of type {type(target).__name__}")
        if _is_frozen(target):
            raise UnaddressableTargetError(f"cannot decode into frozen {type(target).__name__}")

        decode_fields(query, target, SchemaBuilder(self.config))

    def decode_as(self, query: Mapping[str, Sequence[str]], cls: Type[T]) -> T:
        """Allocate a zero-valued record of type cls and decode into it."""
        if not is_record_type(cls):
            raise InvalidTargetError(f"cannot decode into non-record type {cls!r}")
        if cls.__dataclass_params__.frozen:
            raise UnaddressableTargetError(f"cannot decode into frozen {cls.__name__}")

        builder = SchemaBuilder(self.config)
        target = builder.new_record(cls)
        decode_fields(query, target, builder)
        return target


_default = Codec()


def encode(value: Any) -> Multimap:
    return _default.encode(value)


def decode(query: Mapping[str, Sequence[str]], target: Any) -> None:
    _default.decode(query, target)


def decode_as(query: Mapping[str, Sequence[str]], cls: Type[T]) -> T:
    return _default.decode_as(query, cls)


# Aliases matching the url.Values-flavoured names of other implementations
encode_values = encode
decode_values = decode
