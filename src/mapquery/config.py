"""
Codec configuration.

A CodecConfig names the dataclass field metadata keys that the codec reads:

    primary_tag:    comma-separated alias list, first alias is the encode key
    secondary_tag:  general-purpose (JSON-style) tag, first segment only
    embedded_key:   boolean flag marking a field as embedded (flattened)

Configurations round-trip through plain dicts and YAML.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Union

import yaml

from mapquery.errors import ConfigError


@dataclass(frozen=True)
class CodecConfig:
    primary_tag: str = "mqp"
    secondary_tag: str = "json"
    embedded_key: str = "embedded"


DEFAULT_CONFIG = CodecConfig()


def config_to_dict(config: CodecConfig) -> Dict[str, Any]:
    return {f.name: getattr(config, f.name) for f in fields(config)}


def config_from_dict(d: Dict[str, Any] | None) -> CodecConfig:
    if d is None:
        return CodecConfig()
    if not isinstance(d, dict):
        raise ConfigError(f"Expected a mapping, got {type(d).__name__}")

    known = {f.name for f in fields(CodecConfig)}
    unknown = sorted(set(d) - known)
    if unknown:
        raise ConfigError(f"Unknown configuration keys: {unknown}")

    for key, value in d.items():
        if not isinstance(value, str) or not value:
            raise ConfigError(f"Configuration key {key!r} must be a non-empty string")

    return CodecConfig(**d)


def config_to_yaml(config: CodecConfig) -> str:
    return yaml.safe_dump(config_to_dict(config), sort_keys=True)


def config_from_yaml(s: str) -> CodecConfig:
    try:
        d = yaml.safe_load(s)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML configuration: {e}") from e
    return config_from_dict(d)


def load_config(path: Union[str, Path]) -> CodecConfig:
    """
    Load a CodecConfig from a YAML file.

    Args:
        path: Path to the YAML file

    Returns:
        The parsed configuration

    Raises:
        FileNotFoundError: If the file does not exist
        ConfigError: If the file content is not a valid configuration
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    return config_from_yaml(path.read_text(encoding="utf-8"))
