"""Tests for the composition root and the command-line entry point."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from kwikpost.app import KwikPostClient
from kwikpost.config import Settings
from kwikpost.main import build_parser, main
from kwikpost.session import TOKEN_KEY, USER_KEY
from kwikpost.store import MemoryStore
from shared.exceptions import TransportError
from shared.models import UserProfile


@pytest.fixture
def settings() -> Settings:
    return Settings(api_base_url="http://api.test", auth_scheme="Bearer", store_backend="memory")


@pytest.fixture
def http_session() -> MagicMock:
    session = MagicMock()
    session.close = AsyncMock()
    return session


class TestKwikPostClient:
    """Test wiring and startup."""

    @pytest.mark.asyncio
    async def test_start_restores_session(self, settings: Settings, http_session: MagicMock) -> None:
        user = UserProfile(id=1, username="johndoe")
        store = MemoryStore({TOKEN_KEY: "tok123", USER_KEY: json.dumps(user.to_dict())})

        async with KwikPostClient(settings, store=store, http_session=http_session) as client:
            assert client.session.is_authenticated is True
            assert client.gateway.base_url == "http://api.test"
            assert client.gateway.auth_scheme == "Bearer"
            assert client.navigator.navigate("/login").name == "home"

        http_session.close.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_start_without_session(self, settings: Settings, http_session: MagicMock) -> None:
        async with KwikPostClient(settings, http_session=http_session) as client:
            assert isinstance(client.store, MemoryStore)
            assert client.session.is_authenticated is False
            assert client.navigator.navigate("/").name == "login"


class TestCommandLine:
    """Test the CLI surface."""

    def test_parser_defaults(self) -> None:
        args = build_parser().parse_args(["user-posts", "alice"])
        assert args.command == "user-posts"
        assert args.limit == 10
        assert args.offset == 0

    def test_failure_exit_code(self) -> None:
        with patch("kwikpost.main.configure_logging"), \
                patch("kwikpost.main.get_settings", return_value=Settings(store_backend="memory")), \
                patch("kwikpost.main.run", AsyncMock(side_effect=TransportError("Cannot connect"))):
            assert main(["whoami"]) == 1

    def test_success_exit_code(self) -> None:
        with patch("kwikpost.main.configure_logging"), \
                patch("kwikpost.main.get_settings", return_value=Settings(store_backend="memory")), \
                patch("kwikpost.main.run", AsyncMock(return_value=0)):
            assert main(["logout"]) == 0
