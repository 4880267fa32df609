"""Tests for configuration loading and validation."""

from __future__ import annotations

import pickle
from pathlib import Path

import pytest

from marketing_mcp.config import (
    DEFAULT_BRAND_PAGE_ID,
    DEFAULT_SODAX_API_URL,
    Config,
    SecretStr,
    _load_token_file,
    _load_token_from_env_file,
)
from marketing_mcp.errors import ConfigurationError

CONFIG_ENV = (
    "NOTION_TOKEN",
    "NOTION_API_URL",
    "BRAND_PAGE_ID",
    "GLOSSARY_CONCEPTS_SOURCE_ID",
    "GLOSSARY_COMPONENTS_SOURCE_ID",
    "SODAX_API_URL",
    "MARKETING_BRAND_TTL",
    "MARKETING_MAX_RETRIES",
    "MARKETING_TRANSPORT",
    "MARKETING_PORT",
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """No config env vars; home and cwd point at an empty directory."""
    for name in CONFIG_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))
    monkeypatch.chdir(tmp_path)
    return tmp_path


class TestSecretStr:
    def test_hidden_in_repr_and_str(self):
        secret = SecretStr("secret_abc")

        assert "secret_abc" not in repr(secret)
        assert str(secret) == "***"
        assert secret.get_secret_value() == "secret_abc"

    def test_truthiness(self):
        assert not SecretStr("")
        assert SecretStr("x")


class TestConfig:
    def test_defaults(self):
        config = Config()

        assert config.notion_configured is False
        assert config.brand_page_id == DEFAULT_BRAND_PAGE_ID
        assert config.sodax_api_url == DEFAULT_SODAX_API_URL
        assert config.brand_cache_ttl == 300
        assert config.transport == "stdio"

    def test_repr_never_shows_token(self, test_config):
        assert "secret_test_token" not in repr(test_config)
        assert "notion_token=***" in repr(test_config)

    def test_cannot_be_pickled(self, test_config):
        with pytest.raises(TypeError, match="cannot be pickled"):
            pickle.dumps(test_config)

    def test_trailing_slash_stripped(self):
        assert Config(sodax_api_url="https://api.example.com/v1/be/").sodax_api_url == (
            "https://api.example.com/v1/be"
        )

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"sodax_api_url": "ftp://api.example.com"},
            {"notion_api_url": "https://"},
            {"brand_cache_ttl": 0},
            {"api_timeout_seconds": 0.5},
            {"max_retries": 11},
            {"transport": "websocket"},
            {"port": 70000},
        ],
    )
    def test_invalid_values(self, kwargs):
        with pytest.raises(ConfigurationError):
            Config(**kwargs)


class TestLoad:
    def test_load_from_env(self, clean_env, monkeypatch):
        monkeypatch.setenv("NOTION_TOKEN", "  secret_env  ")
        monkeypatch.setenv("GLOSSARY_CONCEPTS_SOURCE_ID", " concepts ")
        monkeypatch.setenv("MARKETING_BRAND_TTL", "120")
        monkeypatch.setenv("MARKETING_TRANSPORT", "HTTP")
        monkeypatch.setenv("MARKETING_PORT", "8080")

        config = Config.load()

        assert config.notion_token.get_secret_value() == "secret_env"
        assert config.glossary_concepts_source_id == "concepts"
        assert config.brand_cache_ttl == 120
        assert config.transport == "http"
        assert config.port == 8080

    def test_invalid_number_uses_default(self, clean_env, monkeypatch):
        monkeypatch.setenv("MARKETING_MAX_RETRIES", "lots")
        assert Config.load().max_retries == 2

    def test_no_token_is_allowed(self, clean_env):
        config = Config.load()
        assert config.notion_configured is False

    def test_whitespace_token_treated_as_unset(self, clean_env, monkeypatch):
        monkeypatch.setenv("NOTION_TOKEN", "   ")
        assert Config.load().notion_configured is False

    def test_token_from_env_file(self, clean_env):
        (clean_env / ".env").write_text("# local\nNOTION_TOKEN='secret_dotenv'\n")
        config = Config.load()
        assert config.notion_token.get_secret_value() == "secret_dotenv"


class TestTokenFiles:
    def test_secure_file_read(self, tmp_path):
        path = tmp_path / "notion_token"
        path.write_text("secret_file\n")
        path.chmod(0o600)

        assert _load_token_file(path) == "secret_file"

    def test_insecure_file_rejected(self, tmp_path):
        path = tmp_path / "notion_token"
        path.write_text("secret_file")
        path.chmod(0o644)

        with pytest.raises(ConfigurationError, match="insecure permissions"):
            _load_token_file(path)

    def test_missing_file(self, tmp_path):
        assert _load_token_file(tmp_path / "absent") is None

    def test_env_file_without_token(self, tmp_path):
        path = tmp_path / ".env"
        path.write_text("OTHER=1\n")
        assert _load_token_from_env_file(path) is None
