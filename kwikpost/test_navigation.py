"""Unit tests for route resolution, the navigation guard and the navigator."""

from unittest.mock import MagicMock

import pytest

from kwikpost.navigation import (
    GuardDecision,
    NavigationGuard,
    Navigator,
    Route,
    RouteRecord,
    Router,
)
from shared.exceptions import ValidationError
from shared.models import SessionState, UserProfile

AUTHENTICATED = SessionState(token="tok123", user=UserProfile(id=1, username="johndoe"))
ANONYMOUS = SessionState()


@pytest.fixture
def router() -> Router:
    return Router()


@pytest.fixture
def guard() -> NavigationGuard:
    return NavigationGuard()


class TestRouter:
    """Test suite for Router.resolve."""

    @pytest.mark.parametrize(
        "path, name, params",
        [
            ("/", "home", {}),
            ("/login", "login", {}),
            ("/profile/johndoe", "profile", {"username": "johndoe"}),
            ("/post/form", "post-form", {}),
            ("/post/form/12", "post-form", {"id": "12"}),
            ("/post/12", "post-detail", {"id": "12"}),
            ("/post/12?tab=replies", "post-detail", {"id": "12"}),
        ],
    )
    def test_resolve(self, router: Router, path: str, name: str, params: dict) -> None:
        route = router.resolve(path)
        assert route.name == name
        assert dict(route.params) == params

    def test_auth_metadata(self, router: Router) -> None:
        assert router.resolve("/").requires_auth is True
        assert router.resolve("/login").requires_auth is False
        assert router.resolve("/profile/alice").requires_auth is True

    def test_unknown_path(self, router: Router) -> None:
        route = router.resolve("/nowhere/at/all")
        assert route.name is None
        assert route.requires_auth is False


class TestNavigationGuard:
    """Test suite for NavigationGuard.evaluate."""

    def test_auth_required_redirects_to_login(self, guard: NavigationGuard, router: Router) -> None:
        decision = guard.evaluate(router.resolve("/"), None, ANONYMOUS)
        assert decision == GuardDecision.redirect("/login", "auth_required")
        assert decision.allowed is False

    def test_login_while_authenticated_redirects_home(self, guard: NavigationGuard, router: Router) -> None:
        decision = guard.evaluate(router.resolve("/login"), router.resolve("/"), AUTHENTICATED)
        assert decision.redirect_to == "/"

    @pytest.mark.parametrize("username", ["undefined", "null"])
    def test_invalid_username_redirects_home(
        self, guard: NavigationGuard, router: Router, username: str
    ) -> None:
        decision = guard.evaluate(router.resolve(f"/profile/{username}"), None, AUTHENTICATED)
        assert decision.redirect_to == "/"
        assert decision.rule == "invalid_username"

    def test_invalid_username_on_public_route(self, guard: NavigationGuard) -> None:
        target = Route(path="/u/undefined", name="public", params={"username": "undefined"})
        assert guard.evaluate(target, None, ANONYMOUS).redirect_to == "/"

    def test_rule_order_auth_first(self, guard: NavigationGuard, router: Router) -> None:
        decision = guard.evaluate(router.resolve("/profile/undefined"), None, ANONYMOUS)
        assert decision.redirect_to == "/login"
        assert decision.rule == "auth_required"

    def test_allowed(self, guard: NavigationGuard, router: Router) -> None:
        assert guard.evaluate(router.resolve("/profile/alice"), None, AUTHENTICATED).allowed
        assert guard.evaluate(router.resolve("/login"), None, ANONYMOUS).allowed
        assert guard.evaluate(router.resolve("/nowhere"), None, ANONYMOUS).allowed

    def test_token_without_user_is_not_authenticated(self, guard: NavigationGuard, router: Router) -> None:
        decision = guard.evaluate(router.resolve("/"), None, SessionState(token="tok123"))
        assert decision.redirect_to == "/login"

    def test_check_uses_live_session(self, router: Router) -> None:
        session = MagicMock()
        session.state = ANONYMOUS
        guard = NavigationGuard(session)

        assert guard.check(router.resolve("/")).redirect_to == "/login"

        session.state = AUTHENTICATED
        assert guard.check(router.resolve("/")).allowed


class TestNavigator:
    """Test suite for Navigator.navigate."""

    def _navigator(self, state: SessionState) -> Navigator:
        session = MagicMock()
        session.state = state
        return Navigator(Router(), NavigationGuard(session))

    def test_unauthenticated_lands_on_login(self) -> None:
        navigator = self._navigator(ANONYMOUS)
        route = navigator.navigate("/post/3")
        assert route.name == "login"
        assert navigator.current == route

    def test_authenticated_login_lands_home(self) -> None:
        assert self._navigator(AUTHENTICATED).navigate("/login").name == "home"

    def test_invalid_profile_lands_home(self) -> None:
        assert self._navigator(AUTHENTICATED).navigate("/profile/undefined").path == "/"

    def test_invalid_profile_while_anonymous_lands_on_login(self) -> None:
        assert self._navigator(ANONYMOUS).navigate("/profile/null").name == "login"

    def test_redirect_loop_detected(self) -> None:
        session = MagicMock()
        session.state = ANONYMOUS
        router = Router([RouteRecord(name="home", path="/", requires_auth=True)])
        navigator = Navigator(router, NavigationGuard(session, login_path="/"), max_redirects=3)

        with pytest.raises(ValidationError):
            navigator.navigate("/")
        assert navigator.current is None
