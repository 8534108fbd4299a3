"""
Tag resolution: which multimap key(s) a record field is read from and
written to.

Tags live in dataclass field metadata. Precedence:

    1. primary tag ("mqp" by default): comma-separated aliases.
       The first alias is the encode key, every alias is accepted on decode.
       A primary tag fully overrides everything below it.
    2. secondary tag ("json" by default): only its first comma segment.
    3. the field's declared name.

Example:
    @dataclass
    class Search:
        query: str = param("q", "query", json="search_query", default="")
        page: int = param(json="page,omitempty", default=0)
        limit: int = 0

    query -> encoded as "q", decoded from "q" or "query"
    page  -> "page"
    limit -> "limit"
"""

import dataclasses
from typing import Any, List, Mapping, Optional, Tuple

from mapquery.config import CodecConfig, DEFAULT_CONFIG


def param(
    *aliases: str,
    json: Optional[str] = None,
    embedded: bool = False,
    config: CodecConfig = DEFAULT_CONFIG,
    **kwargs: Any,
) -> Any:
    """
    Declare a dataclass field with mapquery tags.

    Args:
        aliases: Primary tag aliases, first one is the canonical key
        json: Secondary (JSON-style) tag, e.g. "name,omitempty"
        embedded: Flatten this field's own fields into the container
        config: Configuration naming the metadata keys
        kwargs: Passed through to dataclasses.field()

    Returns:
        A dataclasses.Field
    """
    metadata = dict(kwargs.pop("metadata", None) or {})
    if aliases:
        metadata[config.primary_tag] = ",".join(aliases)
    if json is not None:
        metadata[config.secondary_tag] = json
    if embedded:
        metadata[config.embedded_key] = True
    return dataclasses.field(metadata=metadata, **kwargs)


def _primary_aliases(metadata: Mapping[str, Any], config: CodecConfig) -> List[str]:
    tag = metadata.get(config.primary_tag)
    if not tag:
        return []
    return [s for s in str(tag).split(",") if s]


def _secondary_name(metadata: Mapping[str, Any], config: CodecConfig) -> Optional[str]:
    tag = metadata.get(config.secondary_tag)
    if not tag:
        return None
    first = str(tag).split(",")[0]
    return first or None


def resolve_keys(
    name: str,
    metadata: Mapping[str, Any],
    config: CodecConfig = DEFAULT_CONFIG,
) -> Tuple[List[str], str]:
    """Return (candidate keys, canonical key) for one field."""
    aliases = _primary_aliases(metadata, config)
    if aliases:
        return aliases, aliases[0]

    secondary = _secondary_name(metadata, config)
    if secondary:
        return [secondary], secondary

    return [name], name


def has_explicit_tag(metadata: Mapping[str, Any], config: CodecConfig = DEFAULT_CONFIG) -> bool:
    return bool(_primary_aliases(metadata, config)) or _secondary_name(metadata, config) is not None


def is_embedded(metadata: Mapping[str, Any], config: CodecConfig = DEFAULT_CONFIG) -> bool:
    return bool(metadata.get(config.embedded_key, False))
