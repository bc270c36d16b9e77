"""Session lifecycle: login, logout, restore and the authentication predicate.

The SessionManager is the only writer of the ``token`` and ``user`` keys in
the persistent store. It supplies the current token to the gateway and
subscribes to the gateway's unauthorized signal.
"""

import asyncio
import json
from enum import Enum
from typing import Any, Optional, Tuple

import structlog
from prometheus_client import Counter

from kwikpost.config import DEFAULT_LOGIN_ERROR_MESSAGE, DEFAULT_MISSING_TOKEN_MESSAGE
from kwikpost.gateway import GatewayClient
from kwikpost.normalizer import normalize_user
from kwikpost.store import PersistentStore
from shared.exceptions import AuthenticationError, PersistentStoreError, ValidationError
from shared.models import Credentials, LoginResult, SessionState, UserProfile, clean_token

TOKEN_KEY = "token"
USER_KEY = "user"

LOGIN_ATTEMPTS = Counter("kwikpost_login_attempts_total", "Login attempts by outcome", ["outcome"])


class SessionStatus(Enum):
    UNAUTHENTICATED = "unauthenticated"
    RESTORING = "restoring"
    AUTHENTICATED = "authenticated"


class SessionManager:
    """Owns the authentication state of the client.

    Concurrent ``login`` calls are serialized by a single-flight lock: each
    attempt completes, persistence included, before the next one starts, so
    the last completed attempt wins. A ``logout`` that lands while a login is
    in flight takes precedence: the login undoes its store writes and fails.
    """

    def __init__(
        self,
        store: PersistentStore,
        gateway: GatewayClient,
        missing_token_message: str = DEFAULT_MISSING_TOKEN_MESSAGE,
        login_error_message: str = DEFAULT_LOGIN_ERROR_MESSAGE,
    ) -> None:
        self._store = store
        self._gateway = gateway
        self.missing_token_message = missing_token_message
        self.login_error_message = login_error_message

        self._token: Optional[str] = None
        self._user: Optional[UserProfile] = None
        self._restoring = False
        self._login_lock = asyncio.Lock()
        self._store_lock = asyncio.Lock()
        self._logout_generation = 0
        self.logger = structlog.get_logger(__name__)

        gateway.set_token_provider(lambda: self._token)
        gateway.add_unauthorized_listener(self._on_unauthorized)

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def user(self) -> Optional[UserProfile]:
        return self._user

    @property
    def is_authenticated(self) -> bool:
        return self.state.is_authenticated

    @property
    def state(self) -> SessionState:
        return SessionState(token=self._token, user=self._user)

    @property
    def status(self) -> SessionStatus:
        if self._restoring:
            return SessionStatus.RESTORING
        if self.is_authenticated:
            return SessionStatus.AUTHENTICATED
        return SessionStatus.UNAUTHENTICATED

    async def restore_session(self) -> SessionState:
        """Load the session persisted by a previous run.

        A corrupt ``user`` entry is removed and the session stays
        unauthenticated. Store failures are logged and treated as absence.
        """
        self._restoring = True
        try:
            try:
                token = clean_token(await self._store.get(TOKEN_KEY))
                raw_user = await self._store.get(USER_KEY)
            except PersistentStoreError as e:
                self.logger.error("Could not read persisted session", error=str(e))
                return self.state

            if token is None or raw_user is None:
                self.logger.info("No persisted session found")
                return self.state

            try:
                user = UserProfile.from_dict(json.loads(raw_user))
            except (ValueError, ValidationError) as e:
                # json.JSONDecodeError is a ValueError
                self.logger.warning("Discarding corrupt persisted user", error=str(e))
                await self._discard_corrupt_user()
                return self.state

            self._token, self._user = token, user
            self.logger.info("Session restored", username=user.username, is_authenticated=self.is_authenticated)
            return self.state
        finally:
            self._restoring = False

    async def _discard_corrupt_user(self) -> None:
        try:
            await self._store.remove(USER_KEY)
        except PersistentStoreError as e:
            self.logger.error("Could not remove corrupt persisted user", error=str(e))

    async def login(self, credentials: Credentials) -> LoginResult:
        """Authenticate against the backend and start a new session.

        Never raises: every failure is returned as ``LoginResult(success=False)``
        with a message taken from the backend, the error itself, or the
        configured fallback, in that order.
        """
        async with self._login_lock:
            log = self.logger.bind(username=credentials.username)
            generation = self._logout_generation
            try:
                body = await self._gateway.login(credentials)
                token, user = self._read_login_body(body)
                async with self._store_lock:
                    await self._store.set(TOKEN_KEY, token)
                    await self._store.set(USER_KEY, json.dumps(user.to_dict()))
                    if generation != self._logout_generation:
                        await self._clear_store()
                        raise AuthenticationError(self.login_error_message)
                    self._token, self._user = token, user
            except Exception as e:
                message = self._failure_message(e)
                LOGIN_ATTEMPTS.labels(outcome="failure").inc()
                log.warning("Login failed", error=message)
                return LoginResult(success=False, error=message)

            LOGIN_ATTEMPTS.labels(outcome="success").inc()
            log.info("Session updated", token=True, is_authenticated=self.is_authenticated)
            return LoginResult(success=True)

    def _read_login_body(self, body: Any) -> Tuple[str, UserProfile]:
        if not isinstance(body, dict):
            raise AuthenticationError(self.missing_token_message)

        token = clean_token(body.get("token"))
        if token is None:
            raise AuthenticationError(self.missing_token_message)

        raw_user = body.get("user")
        if not isinstance(raw_user, dict):
            raise ValidationError("Login response has no user record", field="user", value=raw_user)

        user = normalize_user(raw_user)
        if user is None or not user.username:
            raise ValidationError("Login response user has no username", field="username")
        return token, user

    def _failure_message(self, error: Exception) -> str:
        backend_message = getattr(error, "backend_message", None)
        if backend_message:
            return backend_message
        return str(error) or self.login_error_message

    async def logout(self) -> None:
        """Clear the session in memory and in the store. Safe to call repeatedly."""
        was_authenticated = self._token is not None or self._user is not None
        self._token, self._user = None, None
        self._logout_generation += 1

        async with self._store_lock:
            await self._clear_store()

        if was_authenticated:
            self.logger.info("Session cleared")

    async def _clear_store(self) -> None:
        await self._store.remove(TOKEN_KEY)
        await self._store.remove(USER_KEY)

    async def _on_unauthorized(self) -> None:
        await self.logout()
