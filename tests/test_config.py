"""
Tests for codec configuration loading.
"""

from dataclasses import dataclass, field

import pytest

from mapquery import Codec, ConfigError, load_config
from mapquery.config import (
    DEFAULT_CONFIG,
    CodecConfig,
    config_from_dict,
    config_from_yaml,
    config_to_dict,
    config_to_yaml,
)


class TestConfigDict:
    """Test dict conversion and validation."""

    def test_defaults(self):
        assert config_to_dict(DEFAULT_CONFIG) == {
            "primary_tag": "mqp",
            "secondary_tag": "json",
            "embedded_key": "embedded",
        }

    def test_none_is_default(self):
        assert config_from_dict(None) == DEFAULT_CONFIG

    def test_partial(self):
        config = config_from_dict({"primary_tag": "query"})
        assert config == CodecConfig(primary_tag="query")

    def test_not_a_mapping(self):
        with pytest.raises(ConfigError):
            config_from_dict(["mqp"])

    def test_unknown_key(self):
        with pytest.raises(ConfigError) as exc_info:
            config_from_dict({"primary": "x"})
        assert "primary" in str(exc_info.value)

    @pytest.mark.parametrize("value", ["", 3, None])
    def test_invalid_value(self, value):
        with pytest.raises(ConfigError):
            config_from_dict({"secondary_tag": value})


class TestConfigYaml:
    """Test YAML loading."""

    def test_round_trip(self):
        config = CodecConfig(primary_tag="q", secondary_tag="js", embedded_key="inline")
        assert config_from_yaml(config_to_yaml(config)) == config

    def test_empty_document(self):
        assert config_from_yaml("") == DEFAULT_CONFIG

    def test_invalid_yaml(self):
        with pytest.raises(ConfigError):
            config_from_yaml("primary_tag: [unclosed")

    def test_load_file(self, tmp_path):
        path = tmp_path / "mapquery.yaml"
        path.write_text("primary_tag: query\nembedded_key: inline\n", encoding="utf-8")
        config = load_config(path)
        assert config.primary_tag == "query"
        assert config.secondary_tag == "json"
        assert config.embedded_key == "inline"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")


def test_loaded_config_drives_codec(tmp_path):
    @dataclass
    class Record:
        value: str = field(default="", metadata={"query": "v"})

    path = tmp_path / "mapquery.yaml"
    path.write_text("primary_tag: query\n", encoding="utf-8")
    codec = Codec(load_config(path))
    assert codec.encode(Record("x")) == {"v": ["x"]}
    assert codec.decode_as({"v": ["y"]}, Record) == Record("y")
