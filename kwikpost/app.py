"""Composition root: wires one store, gateway, session manager and guard."""

from typing import Optional

import aiohttp
import structlog

from kwikpost.config import Settings, get_settings
from kwikpost.gateway import GatewayClient
from kwikpost.navigation import NavigationGuard, Navigator, Router
from kwikpost.session import SessionManager
from kwikpost.store import PersistentStore, create_store

logger = structlog.get_logger(__name__)


class KwikPostClient:
    """Owns every component of the client for the lifetime of the process.

    Use as an async context manager; entering restores the persisted session.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        store: Optional[PersistentStore] = None,
        http_session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.store = store or create_store(self.settings)
        self.gateway = GatewayClient(
            base_url=self.settings.api_base_url,
            auth_scheme=self.settings.auth_scheme,
            timeout=self.settings.request_timeout,
            session=http_session,
        )
        self.session = SessionManager(
            self.store,
            self.gateway,
            missing_token_message=self.settings.missing_token_message,
            login_error_message=self.settings.login_error_message,
        )
        self.router = Router()
        self.guard = NavigationGuard(self.session)
        self.navigator = Navigator(self.router, self.guard)

    async def start(self) -> "KwikPostClient":
        await self.session.restore_session()
        logger.info(
            "KwikPost client ready",
            api_base_url=self.settings.api_base_url,
            store_backend=self.settings.store_backend,
            is_authenticated=self.session.is_authenticated,
        )
        return self

    async def close(self) -> None:
        await self.gateway.close()
        await self.store.close()

    async def __aenter__(self) -> "KwikPostClient":
        return await self.start()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
