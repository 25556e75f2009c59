"""Session cookie helpers.

The session lives in one HTTP-only cookie named `session` holding a signed
token; see topup_shared.services.session_codec for the token itself.
"""

from starlette.requests import Request
from starlette.responses import Response

from topup_shared.config import AppConfig
from topup_shared.models.enums import Role
from topup_shared.models.session import SessionPayload
from topup_shared.services.session_codec import SESSION_TTL, SessionCodec

SESSION_COOKIE = "session"


def create_session(
    response: Response,
    codec: SessionCodec,
    config: AppConfig,
    uid: str,
    email: str,
    role: Role | str = Role.USER,
) -> SessionPayload:
    """Sign a session for the subject and set it as an HTTP-only cookie.

    Returns:
        The payload that was signed.
    """
    token, expires = codec.issue(uid, email, role)
    response.set_cookie(
        SESSION_COOKIE,
        token,
        max_age=int(SESSION_TTL.total_seconds()),
        expires=expires,
        path="/",
        httponly=True,
        secure=config.cookie_secure,
        samesite="lax",
    )
    return SessionPayload(uid=uid, email=email, role=Role(role), expires=expires)


def get_session(request: Request, codec: SessionCodec) -> SessionPayload | None:
    """Read and verify the session cookie; None means "not logged in"."""
    return codec.decrypt(request.cookies.get(SESSION_COOKIE))


def delete_session(response: Response) -> None:
    """Remove the session cookie."""
    response.delete_cookie(SESSION_COOKIE, path="/")
