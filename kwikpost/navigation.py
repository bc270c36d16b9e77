"""
Route resolution and the navigation guard.

The guard is a pure function of (target route, current route, session state)
evaluated before every transition. Redirects after a 401 are not pushed by
the gateway: the session is cleared there, and the next guard evaluation
sends the user to the login route.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Pattern, Sequence, Tuple

import structlog
from prometheus_client import Counter

from kwikpost.session import SessionManager
from shared.exceptions import ValidationError
from shared.models import SessionState

LOGIN_ROUTE = "login"
LOGIN_PATH = "/login"
LANDING_PATH = "/"
INVALID_USERNAME_PARAMS = frozenset({"undefined", "null"})
MAX_REDIRECTS = 5

NAVIGATION_REDIRECTS = Counter("kwikpost_navigation_redirects_total", "Guard redirects by rule", ["rule"])

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RouteRecord:
    """Declarative route: a name, a path pattern and whether auth is required.

    Path patterns use ``:param`` segments; a trailing ``?`` makes the
    segment optional (``/post/form/:id?``).
    """

    name: str
    path: str
    requires_auth: bool = False

    def compile(self) -> Pattern[str]:
        parts = []
        for segment in self.path.strip("/").split("/"):
            if not segment:
                continue
            if segment.startswith(":"):
                param = segment[1:]
                if param.endswith("?"):
                    parts.append(f"(?:/(?P<{param[:-1]}>[^/]+))?")
                else:
                    parts.append(f"/(?P<{param}>[^/]+)")
            else:
                parts.append("/" + re.escape(segment))
        return re.compile("^" + ("".join(parts) or "/") + "/?$")


ROUTES: Tuple[RouteRecord, ...] = (
    RouteRecord(name="home", path="/", requires_auth=True),
    RouteRecord(name=LOGIN_ROUTE, path=LOGIN_PATH),
    RouteRecord(name="profile", path="/profile/:username", requires_auth=True),
    RouteRecord(name="post-form", path="/post/form/:id?", requires_auth=True),
    RouteRecord(name="post-detail", path="/post/:id", requires_auth=True),
)


@dataclass(frozen=True)
class Route:
    """A resolved location."""

    path: str
    name: Optional[str] = None
    params: Mapping[str, str] = field(default_factory=dict)
    requires_auth: bool = False


class Router:
    """Matches paths against the route table, first record wins."""

    def __init__(self, routes: Sequence[RouteRecord] = ROUTES) -> None:
        self._compiled: List[Tuple[RouteRecord, Pattern[str]]] = [(r, r.compile()) for r in routes]

    def resolve(self, path: str) -> Route:
        """Resolve a path. Unknown paths give an anonymous route that needs no auth."""
        path = path.split("?", 1)[0].split("#", 1)[0] or "/"
        for record, pattern in self._compiled:
            match = pattern.match(path)
            if match:
                params: Dict[str, str] = {k: v for k, v in match.groupdict().items() if v is not None}
                return Route(path=path, name=record.name, params=params, requires_auth=record.requires_auth)
        return Route(path=path)


@dataclass(frozen=True)
class GuardDecision:
    """Allow the transition, or redirect it to another path."""

    redirect_to: Optional[str] = None
    rule: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.redirect_to is None

    @classmethod
    def allow(cls) -> "GuardDecision":
        return cls()

    @classmethod
    def redirect(cls, path: str, rule: str) -> "GuardDecision":
        return cls(redirect_to=path, rule=rule)


class NavigationGuard:
    """Enforces the auth invariants on every route transition."""

    def __init__(
        self,
        session: Optional[SessionManager] = None,
        login_path: str = LOGIN_PATH,
        landing_path: str = LANDING_PATH,
    ) -> None:
        self._session = session
        self.login_path = login_path
        self.landing_path = landing_path

    def evaluate(self, target: Route, current: Optional[Route], state: SessionState) -> GuardDecision:
        """Apply the rules in order; the first one that matches wins.

        1. auth-only target while unauthenticated -> login
        2. login target while authenticated -> landing
        3. ``username`` param literally "undefined" or "null" -> landing
        4. allow
        """
        authenticated = state.is_authenticated

        if target.requires_auth and not authenticated:
            return GuardDecision.redirect(self.login_path, "auth_required")

        if target.name == LOGIN_ROUTE and authenticated:
            return GuardDecision.redirect(self.landing_path, "already_authenticated")

        if target.params.get("username") in INVALID_USERNAME_PARAMS:
            return GuardDecision.redirect(self.landing_path, "invalid_username")

        return GuardDecision.allow()

    def check(self, target: Route, current: Optional[Route] = None) -> GuardDecision:
        """Evaluate against the live session state."""
        state = self._session.state if self._session is not None else SessionState()
        decision = self.evaluate(target, current, state)

        logger.debug(
            "Router guard",
            to=target.path,
            from_=current.path if current else None,
            is_authenticated=state.is_authenticated,
            redirect_to=decision.redirect_to,
        )
        if not decision.allowed:
            NAVIGATION_REDIRECTS.labels(rule=decision.rule).inc()
        return decision


class Navigator:
    """Tracks the current route and follows guard redirects."""

    def __init__(self, router: Router, guard: NavigationGuard, max_redirects: int = MAX_REDIRECTS) -> None:
        self.router = router
        self.guard = guard
        self.max_redirects = max_redirects
        self.current: Optional[Route] = None

    def navigate(self, path: str) -> Route:
        """Go to path, following redirects, and return the route finally reached.

        Raises:
            ValidationError: If redirects loop beyond the allowed number of hops
        """
        target = self.router.resolve(path)
        for _ in range(self.max_redirects + 1):
            decision = self.guard.check(target, self.current)
            if decision.allowed:
                self.current = target
                return target
            logger.info("Navigation redirected", to=target.path, redirect_to=decision.redirect_to, rule=decision.rule)
            target = self.router.resolve(decision.redirect_to)

        raise ValidationError(f"Too many redirects while navigating to {path}", field="path", value=path)
