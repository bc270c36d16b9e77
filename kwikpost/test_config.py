"""Unit tests for environment-driven settings."""

from pathlib import Path
from unittest.mock import patch

import pytest

from kwikpost.config import DEFAULT_MISSING_TOKEN_MESSAGE, Settings, get_settings
from shared.exceptions import ConfigError

ENV_VARS = [
    "KWIKPOST_API_BASE_URL",
    "KWIKPOST_AUTH_SCHEME",
    "KWIKPOST_REQUEST_TIMEOUT",
    "KWIKPOST_STORE_BACKEND",
    "KWIKPOST_STORE_PATH",
    "KWIKPOST_REDIS_URL",
    "KWIKPOST_LOG_LEVEL",
    "KWIKPOST_LOG_JSON",
    "KWIKPOST_MISSING_TOKEN_MESSAGE",
    "KWIKPOST_LOGIN_ERROR_MESSAGE",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch):
    """Start every test from an empty KWIKPOST_* environment, ignoring any .env file."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    with patch("kwikpost.config.load_dotenv"):
        yield


def test_defaults() -> None:
    settings = get_settings()

    assert settings.api_base_url == "http://localhost:3000"
    assert settings.auth_scheme == ""
    assert settings.request_timeout == 10.0
    assert settings.store_backend == "file"
    assert settings.store_path == Path.home() / ".kwikpost" / "session.json"
    assert settings.log_json is False
    assert settings.missing_token_message == DEFAULT_MISSING_TOKEN_MESSAGE


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("KWIKPOST_API_BASE_URL", "https://api.kwikpost.dev/")
    monkeypatch.setenv("KWIKPOST_AUTH_SCHEME", "Bearer")
    monkeypatch.setenv("KWIKPOST_REQUEST_TIMEOUT", "2.5")
    monkeypatch.setenv("KWIKPOST_STORE_BACKEND", "Redis")
    monkeypatch.setenv("KWIKPOST_STORE_PATH", str(tmp_path / "s.json"))
    monkeypatch.setenv("KWIKPOST_LOG_JSON", "yes")
    monkeypatch.setenv("KWIKPOST_LOG_LEVEL", "debug")

    settings = get_settings()

    assert settings.api_base_url == "https://api.kwikpost.dev"
    assert settings.auth_scheme == "Bearer"
    assert settings.request_timeout == 2.5
    assert settings.store_backend == "redis"
    assert settings.store_path == tmp_path / "s.json"
    assert settings.log_json is True
    assert settings.log_level == "DEBUG"


def test_unknown_backend(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("KWIKPOST_STORE_BACKEND", "sqlite")
    with pytest.raises(ConfigError):
        get_settings()


@pytest.mark.parametrize("value", ["soon", "0", "-1"])
def test_invalid_timeout(monkeypatch: pytest.MonkeyPatch, value: str) -> None:
    monkeypatch.setenv("KWIKPOST_REQUEST_TIMEOUT", value)
    with pytest.raises(ConfigError):
        get_settings()


def test_settings_validation() -> None:
    with pytest.raises(ConfigError):
        Settings(request_timeout=0)
