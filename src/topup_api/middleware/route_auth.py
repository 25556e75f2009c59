"""Route authorization middleware for server-rendered pages.

Every page request is classified and checked in a fixed order:

1. protected route without a session   -> redirect to /auth/signin
2. sign-in/sign-up page with a session -> redirect to /
3. admin route without the admin role  -> redirect to /
4. anything else                        -> allowed

API routes, static assets and the favicon bypass the check entirely; API
endpoints authenticate on their own (session dependency, admin key or
webhook signature). The decision itself is the pure function authorize() so
it can be tested without HTTP.
"""

from dataclasses import dataclass
from typing import Literal

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response
from starlette.status import HTTP_307_TEMPORARY_REDIRECT

from topup_shared.config import DEFAULT_PROTECTED_ROUTE_PREFIXES, AppConfig
from topup_shared.models.session import SessionPayload
from topup_shared.utils.logging import get_logger

from topup_api.dependencies import get_config, get_session_codec
from topup_api.session import get_session

logger = get_logger(__name__)

SIGNIN_PATH = "/auth/signin"
HOME_PATH = "/"


@dataclass(frozen=True)
class RouteRules:
    """Path classification used by authorize()."""

    protected_prefixes: tuple[str, ...] = DEFAULT_PROTECTED_ROUTE_PREFIXES
    auth_routes: tuple[str, ...] = ("/auth/signin", "/auth/signup")
    admin_prefix: str = "/admin"
    excluded_prefixes: tuple[str, ...] = ("/api", "/static", "/_image", "/favicon.ico")

    @classmethod
    def from_config(cls, config: AppConfig) -> "RouteRules":
        return cls(protected_prefixes=config.protected_route_prefixes)

    def is_excluded(self, path: str) -> bool:
        return path.startswith(self.excluded_prefixes)

    def is_protected(self, path: str) -> bool:
        # "/" protects the home page only, not every path
        for prefix in self.protected_prefixes:
            if prefix == "/":
                if path == "/":
                    return True
            elif path.startswith(prefix):
                return True
        return False

    def is_auth_route(self, path: str) -> bool:
        return path.startswith(self.auth_routes)

    def is_admin_route(self, path: str) -> bool:
        return path.startswith(self.admin_prefix)


@dataclass(frozen=True)
class RouteDecision:
    """Allow the request, or redirect it to `location`."""

    action: Literal["allow", "redirect"]
    location: str | None = None
    reason: str | None = None

    @classmethod
    def allow(cls) -> "RouteDecision":
        return cls(action="allow")

    @classmethod
    def redirect(cls, location: str, reason: str) -> "RouteDecision":
        return cls(action="redirect", location=location, reason=reason)

    @property
    def allowed(self) -> bool:
        return self.action == "allow"


def authorize(
    path: str,
    session: SessionPayload | None,
    rules: RouteRules | None = None,
) -> RouteDecision:
    """Decide whether a page request may proceed.

    Args:
        path: Request path
        session: Verified session payload, or None if not logged in
        rules: Path classification (defaults to RouteRules())

    Returns:
        RouteDecision
    """
    rules = rules or RouteRules()
    logged_in = session is not None and bool(session.uid)

    if rules.is_protected(path) and not logged_in:
        return RouteDecision.redirect(SIGNIN_PATH, "authentication_required")

    if rules.is_auth_route(path) and logged_in:
        return RouteDecision.redirect(HOME_PATH, "already_signed_in")

    if rules.is_admin_route(path) and (session is None or not session.is_admin):
        return RouteDecision.redirect(HOME_PATH, "admin_required")

    return RouteDecision.allow()


class RouteAuthorizationMiddleware(BaseHTTPMiddleware):
    """Apply authorize() to every non-excluded request.

    The decoded session (or None) is stored on request.state.session for
    page handlers.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        config = get_config()
        rules = RouteRules.from_config(config)
        path = request.url.path

        if rules.is_excluded(path):
            return await call_next(request)

        session = get_session(request, get_session_codec())
        decision = authorize(path, session, rules)

        if not decision.allowed:
            logger.info(
                "Redirecting %s to %s (%s)", path, decision.location, decision.reason
            )
            return RedirectResponse(
                decision.location or HOME_PATH,
                status_code=HTTP_307_TEMPORARY_REDIRECT,
            )

        request.state.session = session
        return await call_next(request)
