"""Shared models and errors for the KwikPost client."""

from .exceptions import (
    AuthenticationError,
    ConfigError,
    HttpError,
    KwikPostError,
    PersistentStoreError,
    TransportError,
    ValidationError,
)
from .models import (
    Credentials,
    LoginResult,
    PaginatedCollection,
    Post,
    SessionState,
    UserProfile,
    clean_token,
)

__all__ = [
    "AuthenticationError",
    "ConfigError",
    "Credentials",
    "HttpError",
    "KwikPostError",
    "LoginResult",
    "PaginatedCollection",
    "PersistentStoreError",
    "Post",
    "SessionState",
    "TransportError",
    "UserProfile",
    "ValidationError",
    "clean_token",
]
