"""KwikPost client: session management, API gateway and navigation guard."""

from .gateway import GatewayClient
from .navigation import GuardDecision, NavigationGuard, Navigator, Route, Router
from .normalizer import PayloadKind, classify_payload, normalize_post, normalize_user
from .session import SessionManager, SessionStatus
from .store import FileStore, MemoryStore, PersistentStore, RedisStore

__all__ = [
    "FileStore",
    "GatewayClient",
    "GuardDecision",
    "MemoryStore",
    "NavigationGuard",
    "Navigator",
    "PayloadKind",
    "PersistentStore",
    "RedisStore",
    "Route",
    "Router",
    "SessionManager",
    "SessionStatus",
    "classify_payload",
    "normalize_post",
    "normalize_user",
]
