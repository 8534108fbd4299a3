"""
mapquery: record <-> string multimap codec

Marshals dataclass records into the flat `key -> [values]` shape of a
decoded URL query string, and unmarshals such multimaps back into records.

    from mapquery import encode, decode_as, param

    @dataclass
    class Search:
        query: str = param("q", "query", default="")
        page: int = 0

    encode(Search(query="cats", page=2))   # {"q": ["cats"], "page": ["2"]}
    decode_as({"query": ["dogs"]}, Search)  # Search(query="dogs", page=0)

This package does no transport work: escaping, unescaping and splitting of
the wire form are left to the caller (e.g. urllib.parse.parse_qs).
"""

from mapquery.codec import Codec, decode, decode_as, decode_values, encode, encode_values
from mapquery.config import CodecConfig, load_config
from mapquery.errors import (
    CompositeError,
    ConfigError,
    FieldError,
    InvalidTargetError,
    MapQueryError,
    ParseError,
    UnaddressableTargetError,
    UnsupportedKindError,
)
from mapquery.tags import param

__version__ = "0.1.0"

__all__ = [
    "Codec",
    "CodecConfig",
    "CompositeError",
    "ConfigError",
    "FieldError",
    "InvalidTargetError",
    "MapQueryError",
    "ParseError",
    "UnaddressableTargetError",
    "UnsupportedKindError",
    "decode",
    "decode_as",
    "decode_values",
    "encode",
    "encode_values",
    "load_config",
    "param",
]
