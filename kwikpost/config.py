"""Environment-driven configuration for the KwikPost client."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from shared.exceptions import ConfigError

DEFAULT_API_BASE_URL = "http://localhost:3000"
DEFAULT_STORE_PATH = Path.home() / ".kwikpost" / "session.json"
DEFAULT_REDIS_URL = "redis://localhost:6379/0"
DEFAULT_MISSING_TOKEN_MESSAGE = "No se pudo obtener el token de autenticación"
DEFAULT_LOGIN_ERROR_MESSAGE = "Error de autenticación"

STORE_BACKENDS = ("file", "redis", "memory")


def _str_to_bool(value: Optional[str]) -> bool:
    if value is None:
        return False
    return value.lower() in ("1", "true", "yes", "y", "on")


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the gateway, the session store and logging.

    Attributes:
        api_base_url: Base URL of the KwikPost backend
        auth_scheme: Prefix placed before the token in the Authorization
            header; empty means the raw token is sent
        request_timeout: Total timeout of a single request in seconds
        store_backend: One of "file", "redis" or "memory"
        store_path: JSON file used by the file store
        redis_url: Connection URL used by the redis store
        log_level: Root log level name
        log_json: Render logs as JSON lines instead of console output
        missing_token_message: Login failure message when no token is issued
        login_error_message: Login failure message when nothing better is known
    """

    api_base_url: str = DEFAULT_API_BASE_URL
    auth_scheme: str = ""
    request_timeout: float = 10.0
    store_backend: str = "file"
    store_path: Path = DEFAULT_STORE_PATH
    redis_url: str = DEFAULT_REDIS_URL
    log_level: str = "INFO"
    log_json: bool = False
    missing_token_message: str = DEFAULT_MISSING_TOKEN_MESSAGE
    login_error_message: str = DEFAULT_LOGIN_ERROR_MESSAGE

    def __post_init__(self) -> None:
        if self.store_backend not in STORE_BACKENDS:
            raise ConfigError(
                f"Unknown store backend '{self.store_backend}', expected one of {', '.join(STORE_BACKENDS)}",
                config_key="KWIKPOST_STORE_BACKEND",
            )
        if self.request_timeout <= 0:
            raise ConfigError("Request timeout must be positive", config_key="KWIKPOST_REQUEST_TIMEOUT")


def _parse_timeout(raw: Optional[str]) -> float:
    if raw is None or raw == "":
        return 10.0
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigError(f"Invalid request timeout: {raw}", config_key="KWIKPOST_REQUEST_TIMEOUT") from e


def get_settings() -> Settings:
    """Load settings from the environment (and a .env file when present)."""
    load_dotenv()

    return Settings(
        api_base_url=(os.getenv("KWIKPOST_API_BASE_URL") or DEFAULT_API_BASE_URL).rstrip("/"),
        auth_scheme=os.getenv("KWIKPOST_AUTH_SCHEME", "").strip(),
        request_timeout=_parse_timeout(os.getenv("KWIKPOST_REQUEST_TIMEOUT")),
        store_backend=os.getenv("KWIKPOST_STORE_BACKEND", "file").strip().lower(),
        store_path=Path(os.getenv("KWIKPOST_STORE_PATH") or DEFAULT_STORE_PATH).expanduser(),
        redis_url=os.getenv("KWIKPOST_REDIS_URL", DEFAULT_REDIS_URL),
        log_level=os.getenv("KWIKPOST_LOG_LEVEL", "INFO").upper(),
        log_json=_str_to_bool(os.getenv("KWIKPOST_LOG_JSON")),
        missing_token_message=os.getenv("KWIKPOST_MISSING_TOKEN_MESSAGE", DEFAULT_MISSING_TOKEN_MESSAGE),
        login_error_message=os.getenv("KWIKPOST_LOGIN_ERROR_MESSAGE", DEFAULT_LOGIN_ERROR_MESSAGE),
    )
