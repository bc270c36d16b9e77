"""
KwikPost API gateway

Wraps every HTTP call to the KwikPost backend: attaches the session token,
normalizes response bodies into the frontend schema and turns failures into
TransportError / HttpError. A 401 response is announced to the registered
"unauthorized" listeners before the error is raised; the gateway itself never
navigates.
"""

import asyncio
import json
import re
from typing import Any, Awaitable, Callable, Dict, List, Optional
from urllib.parse import quote, unquote

import aiohttp
import structlog
from prometheus_client import Counter

from kwikpost.normalizer import (
    PayloadKind,
    classify_payload,
    normalize_paginated_posts,
    normalize_post,
    normalize_user,
)
from shared.exceptions import HttpError, TransportError
from shared.models import Credentials, clean_token

LOGIN_PATH = "/login"
UNAUTHORIZED_STATUS = 401
DEFAULT_PAGE_LIMIT = 10

_USER_POSTS_PATH = re.compile(r"^/user/([^/]+)/posts/?$")

GATEWAY_REQUESTS = Counter(
    "kwikpost_gateway_requests_total", "Backend requests by method and status", ["method", "status"]
)
GATEWAY_UNAUTHORIZED = Counter("kwikpost_gateway_unauthorized_total", "Backend responses with status 401")

TokenProvider = Callable[[], Optional[str]]
UnauthorizedListener = Callable[[], Awaitable[None]]


def user_posts_username(path: str) -> Optional[str]:
    """Return the username embedded in a ``/user/<username>/posts`` path."""
    match = _USER_POSTS_PATH.match(path)
    if not match:
        return None
    return unquote(match.group(1))


class GatewayClient:
    """Async client for the KwikPost backend.

    Attributes:
        base_url: Backend base URL without a trailing slash
        auth_scheme: Prefix placed before the token in the Authorization header
        timeout: Total timeout of each request
    """

    def __init__(
        self,
        base_url: str = "http://localhost:3000",
        auth_scheme: str = "",
        timeout: float = 10.0,
        session: Optional[aiohttp.ClientSession] = None,
        token_provider: Optional[TokenProvider] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.auth_scheme = auth_scheme.strip()
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.session = session
        self._owns_session = session is None
        self._token_provider = token_provider
        self._unauthorized_listeners: List[UnauthorizedListener] = []
        self.logger = structlog.get_logger(__name__)

    async def __aenter__(self) -> "GatewayClient":
        self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self.session is None:
            self.session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self.session

    async def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self.session is not None and self._owns_session:
            await self.session.close()
            self.session = None

    def set_token_provider(self, provider: Optional[TokenProvider]) -> None:
        self._token_provider = provider

    def add_unauthorized_listener(self, listener: UnauthorizedListener) -> None:
        """Register a coroutine function awaited whenever the backend answers 401."""
        self._unauthorized_listeners.append(listener)

    def remove_unauthorized_listener(self, listener: UnauthorizedListener) -> None:
        if listener in self._unauthorized_listeners:
            self._unauthorized_listeners.remove(listener)

    def _auth_header(self) -> Dict[str, str]:
        token = clean_token(self._token_provider() if self._token_provider else None)
        if token is None:
            return {}
        value = f"{self.auth_scheme} {token}" if self.auth_scheme else token
        return {"Authorization": value}

    async def _emit_unauthorized(self) -> None:
        GATEWAY_UNAUTHORIZED.inc()
        for listener in list(self._unauthorized_listeners):
            try:
                await listener()
            except Exception as e:
                self.logger.error("Unauthorized listener failed", error=str(e))

    @staticmethod
    def _decode_body(raw: bytes) -> Any:
        if not raw:
            return None
        text = raw.decode("utf-8", errors="replace")
        try:
            return json.loads(text)
        except ValueError:
            return text

    async def request(
        self,
        method: str,
        path: str,
        *,
        json_body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        authenticated: bool = True,
    ) -> Any:
        """Send one request and return the normalized response body.

        Args:
            method: HTTP method
            path: Path relative to the base URL, starting with "/"
            json_body: JSON request body
            params: Query string parameters
            authenticated: Attach the session token when one is available

        Returns:
            The raw body for the login endpoint, otherwise the body mapped
            through the normalizer

        Raises:
            TransportError: If the backend cannot be reached
            HttpError: If the backend answers with a non-2xx status
            ValidationError: If a paginated body carries an invalid total
        """
        url = f"{self.base_url}{path}"
        headers = self._auth_header() if authenticated else {}
        log = self.logger.bind(method=method, path=path, authenticated=bool(headers))

        session = self._ensure_session()
        try:
            async with session.request(
                method, url, json=json_body, params=params, headers=headers, timeout=self.timeout
            ) as response:
                status = response.status
                body = self._decode_body(await response.read())
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            GATEWAY_REQUESTS.labels(method=method, status="error").inc()
            log.error("Backend unreachable", error=str(e) or type(e).__name__)
            raise TransportError(str(e) or f"Request to {url} failed", url=url) from e

        GATEWAY_REQUESTS.labels(method=method, status=str(status)).inc()

        if status >= 400:
            backend_message = body.get("message") if isinstance(body, dict) else None
            error = HttpError(
                status,
                f"Request failed with status code {status}",
                url=url,
                backend_message=backend_message if isinstance(backend_message, str) else None,
                payload=body,
            )
            if status == UNAUTHORIZED_STATUS:
                log.warning("Unauthorized response, clearing session")
                await self._emit_unauthorized()
            else:
                log.warning("Backend returned an error", status=status)
            raise error

        log.debug("Backend request succeeded", status=status)
        return self._transform(path, body)

    def _transform(self, path: str, body: Any) -> Any:
        if path == LOGIN_PATH:
            return body

        kind = classify_payload(body)
        if kind is PayloadKind.PAGINATED_POST_LIST:
            return normalize_paginated_posts(body, fallback_username=user_posts_username(path))
        if kind is PayloadKind.SINGLE_POST:
            return normalize_post(body)
        if kind is PayloadKind.SINGLE_USER:
            return normalize_user(body)
        return body

    # ------------------------------------------------------------ operations -
    async def login(self, credentials: Credentials) -> Any:
        """POST /login without credentials attached. Returns the raw body."""
        return await self.request("POST", LOGIN_PATH, json_body=credentials.to_dict(), authenticated=False)

    async def get_posts(self, limit: int = DEFAULT_PAGE_LIMIT, offset: int = 0) -> Any:
        return await self.request("GET", "/post", params={"limit": limit, "offset": offset})

    async def create_post(self, content: str) -> Any:
        return await self.request("POST", "/post", json_body={"content": content})

    async def get_post(self, post_id: Any) -> Any:
        return await self.request("GET", f"/post/{quote(str(post_id), safe='')}")

    async def update_post(self, post_id: Any, content: str) -> Any:
        return await self.request("PUT", f"/post/{quote(str(post_id), safe='')}", json_body={"content": content})

    async def delete_post(self, post_id: Any) -> Any:
        return await self.request("DELETE", f"/post/{quote(str(post_id), safe='')}")

    async def create_reply(self, post_id: Any, content: str) -> Any:
        return await self.request(
            "POST", f"/post/{quote(str(post_id), safe='')}/reply", json_body={"content": content}
        )

    async def get_user(self, username: str) -> Any:
        return await self.request("GET", f"/user/{quote(username, safe='')}")

    async def get_user_posts(self, username: str, limit: int = DEFAULT_PAGE_LIMIT, offset: int = 0) -> Any:
        """Fetch one page of a user's posts; posts lacking an author get a placeholder one."""
        return await self.request(
            "GET", f"/user/{quote(username, safe='')}/posts", params={"limit": limit, "offset": offset}
        )
