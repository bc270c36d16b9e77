"""Error taxonomy for the KwikPost client.

Every error carries a human-readable message, a stable error code and a
details mapping, so callers can log or display them uniformly.
"""

from typing import Any, Dict, Optional


class KwikPostError(Exception):
    """Base class for all KwikPost client errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code or "UNKNOWN_ERROR"
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details
        }


class ConfigError(KwikPostError):
    """Invalid configuration value."""
    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs) -> None:
        super().__init__(message, "CONFIG_ERROR", {"config_key": config_key, **kwargs})


class ValidationError(KwikPostError):
    """Malformed persisted state or invalid route parameter."""
    def __init__(self, message: str, field: Optional[str] = None, value: Any = None, **kwargs) -> None:
        super().__init__(message, "VALIDATION_ERROR", {"field": field, "value": value, **kwargs})


class TransportError(KwikPostError):
    """The backend could not be reached (connection failure or timeout)."""
    def __init__(self, message: str, url: Optional[str] = None, **kwargs) -> None:
        super().__init__(message, "TRANSPORT_ERROR", {"url": url, **kwargs})


class HttpError(KwikPostError):
    """The backend answered with a non-2xx status.

    Attributes:
        status: HTTP status code of the response
        backend_message: The ``message`` field of the response body, if any
        payload: Decoded response body
    """

    def __init__(
        self,
        status: int,
        message: str,
        url: Optional[str] = None,
        backend_message: Optional[str] = None,
        payload: Any = None,
    ) -> None:
        super().__init__(message, "HTTP_ERROR", {"status": status, "url": url})
        self.status = status
        self.backend_message = backend_message
        self.payload = payload

    @property
    def is_unauthorized(self) -> bool:
        return self.status == 401


class AuthenticationError(KwikPostError):
    """Login succeeded at transport level but no usable token was issued."""
    def __init__(self, message: str, **kwargs) -> None:
        super().__init__(message, "AUTHENTICATION_ERROR", kwargs)


class PersistentStoreError(KwikPostError):
    """The persistent store backend failed."""
    def __init__(self, message: str, key: Optional[str] = None, **kwargs) -> None:
        super().__init__(message, "STORE_ERROR", {"key": key, **kwargs})
