"""Tests for cria.config: schema, JSON loading and validation."""

import json
from pathlib import Path

import pytest

from cria.config.load_utils import load_json_file
from cria.config.loader import load_config, validate_config
from cria.config.schema import OverheadConfig, RenderConfig
from cria.core.errors import ConfigError, CriaError, LoadError
from cria.core.types import WireProtocol


class TestLoadJsonFile:
    """Tests for load_json_file()."""

    def test_valid_object(self, tmp_path: Path) -> None:
        """A JSON object file loads as a dict."""
        path = tmp_path / "cria.json"
        path.write_text('{"budget": 100}', encoding="utf-8")
        assert load_json_file(path) == {"budget": 100}

    def test_blank_file(self, tmp_path: Path) -> None:
        """Whitespace-only files load as an empty dict."""
        path = tmp_path / "blank.json"
        path.write_text("  \n", encoding="utf-8")
        assert load_json_file(path) == {}

    def test_utf8_bom(self, tmp_path: Path) -> None:
        """A leading byte order mark is tolerated."""
        path = tmp_path / "bom.json"
        path.write_bytes(b'\xef\xbb\xbf{"model": "m"}')
        assert load_json_file(path) == {"model": "m"}

    def test_missing_file(self, tmp_path: Path) -> None:
        """Missing files raise LoadError with the context prefix."""
        with pytest.raises(LoadError) as exc_info:
            load_json_file(tmp_path / "missing.json", error_context="config")
        assert "config: File not found" in str(exc_info.value)

    def test_invalid_json(self, tmp_path: Path) -> None:
        """Malformed JSON raises LoadError naming the file."""
        path = tmp_path / "bad.json"
        path.write_text('{"budget": ', encoding="utf-8")
        with pytest.raises(LoadError) as exc_info:
            load_json_file(path)
        assert "Invalid JSON" in str(exc_info.value)
        assert str(path) in str(exc_info.value)

    def test_non_object(self, tmp_path: Path) -> None:
        """Top-level arrays are rejected."""
        path = tmp_path / "list.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(LoadError, match="Expected object"):
            load_json_file(path)

    def test_load_error_is_cria_error(self, tmp_path: Path) -> None:
        """LoadError shares the library's base exception."""
        with pytest.raises(CriaError):
            load_json_file(tmp_path / "missing.json")


class TestRenderConfig:
    """Tests for the RenderConfig model."""

    def test_defaults(self) -> None:
        """Defaults render chat payloads with no budget."""
        config = RenderConfig()
        assert config.protocol == WireProtocol.OPENAI_CHAT
        assert config.budget is None
        assert config.tokenizer == "simple"
        assert config.max_fit_iterations == 1000
        assert config.overheads == {}

    def test_overheads_keyed_by_protocol(self) -> None:
        """Overhead keys are parsed as protocols."""
        config = RenderConfig.model_validate(
            {"overheads": {"anthropic": {"per_message": 5}}}
        )
        assert config.overheads == {WireProtocol.ANTHROPIC: OverheadConfig(per_message=5)}


class TestValidateConfig:
    """Tests for validate_config()."""

    def test_valid(self) -> None:
        """A complete mapping validates."""
        config = validate_config(
            {
                "protocol": "anthropic",
                "budget": 8000,
                "model": "claude",
                "tokenizer": "tiktoken",
                "resolution_timeout": 30,
            }
        )
        assert config.protocol == WireProtocol.ANTHROPIC
        assert config.resolution_timeout == 30

    @pytest.mark.parametrize(
        "data,field",
        [
            ({"budget": -1}, "budget"),
            ({"protocol": "gemini"}, "protocol"),
            ({"tokenizer": "bpe"}, "tokenizer"),
            ({"resolution_timeout": 0}, "resolution_timeout"),
            ({"max_fit_iterations": 0}, "max_fit_iterations"),
            ({"overheads": {"anthropic": {"per_message": -3}}}, "per_message"),
            ({"colour": "blue"}, "colour"),
        ],
    )
    def test_invalid_field_named(self, data, field) -> None:
        """Validation errors name the offending field."""
        with pytest.raises(ConfigError) as exc_info:
            validate_config(data, source="test.json")
        assert field in str(exc_info.value)
        assert "test.json" in str(exc_info.value)


class TestLoadConfig:
    """Tests for load_config()."""

    def test_load(self, tmp_path: Path) -> None:
        """A config file on disk loads into RenderConfig."""
        path = tmp_path / "cria.json"
        path.write_text(json.dumps({"budget": 512, "model": "gpt-4o"}), encoding="utf-8")
        config = load_config(path)
        assert config.budget == 512
        assert config.model == "gpt-4o"

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        """An empty file is a default config."""
        path = tmp_path / "cria.json"
        path.write_text("", encoding="utf-8")
        assert load_config(path) == RenderConfig()

    def test_missing_file(self, tmp_path: Path) -> None:
        """Load failures surface as ConfigError."""
        with pytest.raises(ConfigError) as exc_info:
            load_config(tmp_path / "nope.json")
        assert isinstance(exc_info.value.__cause__, LoadError)

    def test_invalid_file(self, tmp_path: Path) -> None:
        """Validation failures in files surface as ConfigError."""
        path = tmp_path / "cria.json"
        path.write_text('{"budget": "lots"}', encoding="utf-8")
        with pytest.raises(ConfigError, match="budget"):
            load_config(str(path))
