"""Placeholder server-rendered pages.

Access control happens in RouteAuthorizationMiddleware before these handlers
run; they only render. The real UI is a separate frontend.
"""

from html import escape

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse

from topup_shared.models.session import SessionPayload

router = APIRouter(tags=["pages"], include_in_schema=False)


def _session(request: Request) -> SessionPayload | None:
    return getattr(request.state, "session", None)


def _page(title: str, body: str) -> HTMLResponse:
    return HTMLResponse(
        "<!doctype html>"
        f"<html><head><title>{escape(title)}</title></head>"
        f"<body><h1>{escape(title)}</h1>{body}</body></html>"
    )


def _greeting(session: SessionPayload | None) -> str:
    if session is None:
        return ""
    return f"<p>Signed in as {escape(session.email)} ({session.role.value})</p>"


@router.get("/", response_class=HTMLResponse)
async def home(request: Request) -> HTMLResponse:
    return _page("Home", _greeting(_session(request)))


@router.get("/dashboard", response_class=HTMLResponse)
async def dashboard(request: Request) -> HTMLResponse:
    return _page("Dashboard", _greeting(_session(request)))


@router.get("/auth/signin", response_class=HTMLResponse)
async def signin_page() -> HTMLResponse:
    return _page("Sign in", '<form method="post" action="/api/auth/signin"></form>')


@router.get("/auth/signup", response_class=HTMLResponse)
async def signup_page() -> HTMLResponse:
    return _page("Sign up", '<form method="post" action="/api/auth/signup"></form>')


@router.get("/admin", response_class=HTMLResponse)
async def admin_home(request: Request) -> HTMLResponse:
    return _page("Admin", _greeting(_session(request)))


@router.get("/admin/{section}", response_class=HTMLResponse)
async def admin_section(section: str, request: Request) -> HTMLResponse:
    return _page(f"Admin: {section}", _greeting(_session(request)))
