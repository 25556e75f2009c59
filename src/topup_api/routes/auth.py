"""Authentication endpoints.

Provides REST endpoints for:
- Sign-up and sign-in against Firebase Authentication
- Sign-out (clears the session cookie)
- Reading the current session

Successful sign-up/sign-in set the `session` cookie and tell the client
where to go next; the frontend follows `redirect`.
"""

from botocore.exceptions import ClientError
from fastapi import APIRouter, Depends, Response

from topup_shared.config import AppConfig
from topup_shared.models.enums import Role
from topup_shared.models.errors import ErrorCode, TopupError
from topup_shared.models.session import SessionPayload
from topup_shared.services.dynamodb import DynamoDBService
from topup_shared.services.identity_client import IdentityClient, IdentityError
from topup_shared.services.provider_client import ProviderError
from topup_shared.services.session_codec import SessionCodec
from topup_shared.utils.logging import get_logger

from topup_api.dependencies import (
    get_config,
    get_current_session,
    get_dynamodb,
    get_identity_client,
    get_session_codec,
)
from topup_api.models.auth import AuthResponse, SessionResponse, SignInRequest, SignUpRequest
from topup_api.session import create_session, delete_session

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _role_for(email: str, db: DynamoDBService) -> Role:
    """Admin if the email is on the admin roster; any lookup failure means user."""
    try:
        admins = {e.strip().lower() for e in db.get_admin_emails()}
    except ClientError as e:
        logger.error("Admin roster lookup failed: %s", e)
        return Role.USER
    return Role.ADMIN if email.strip().lower() in admins else Role.USER


@router.post(
    "/signup",
    summary="Create an account",
    response_model=AuthResponse,
    responses={
        400: {"description": "Invalid fields"},
        409: {"description": "Email already registered"},
        502: {"description": "Identity provider unavailable"},
    },
)
async def sign_up(
    body: SignUpRequest,
    response: Response,
    identity: IdentityClient = Depends(get_identity_client),
    codec: SessionCodec = Depends(get_session_codec),
    config: AppConfig = Depends(get_config),
) -> AuthResponse:
    """Register with Firebase and start a session with role `user`."""
    try:
        user = await identity.sign_up(body.email, body.password)
    except IdentityError as e:
        if e.email_in_use:
            raise TopupError(ErrorCode.EMAIL_IN_USE) from e
        logger.error("Sign-up failed: %s", e)
        raise TopupError(ErrorCode.UPSTREAM_FAILURE) from e
    except ProviderError as e:
        logger.error("Sign-up failed: %s", e)
        raise TopupError(ErrorCode.UPSTREAM_FAILURE) from e

    create_session(response, codec, config, user.uid, user.email, Role.USER)
    logger.info("Account created for uid=%s", user.uid)
    return AuthResponse(redirect="/")


@router.post(
    "/signin",
    summary="Sign in",
    response_model=AuthResponse,
    responses={
        400: {"description": "Invalid fields"},
        401: {"description": "Invalid email or password"},
        502: {"description": "Identity provider unavailable"},
    },
)
async def sign_in(
    body: SignInRequest,
    response: Response,
    identity: IdentityClient = Depends(get_identity_client),
    codec: SessionCodec = Depends(get_session_codec),
    config: AppConfig = Depends(get_config),
    db: DynamoDBService = Depends(get_dynamodb),
) -> AuthResponse:
    """Verify credentials with Firebase; role comes from the admin roster."""
    try:
        user = await identity.sign_in(body.email, body.password)
    except IdentityError as e:
        if e.invalid_credentials:
            raise TopupError(ErrorCode.INVALID_CREDENTIALS) from e
        logger.error("Sign-in failed: %s", e)
        raise TopupError(ErrorCode.UPSTREAM_FAILURE) from e
    except ProviderError as e:
        logger.error("Sign-in failed: %s", e)
        raise TopupError(ErrorCode.UPSTREAM_FAILURE) from e

    role = _role_for(user.email, db)
    create_session(response, codec, config, user.uid, user.email, role)
    logger.info("Signed in uid=%s role=%s", user.uid, role.value)
    return AuthResponse(redirect="/")


@router.post("/signout", summary="Sign out", response_model=AuthResponse)
async def sign_out(response: Response) -> AuthResponse:
    delete_session(response)
    return AuthResponse(redirect="/auth/signin")


@router.get(
    "/session",
    summary="Current session",
    response_model=SessionResponse,
    responses={401: {"description": "No valid session"}},
)
async def current_session(
    session: SessionPayload | None = Depends(get_current_session),
) -> SessionResponse:
    if session is None:
        raise TopupError(ErrorCode.AUTH_REQUIRED)
    return SessionResponse(
        uid=session.uid,
        email=session.email,
        role=session.role,
        expires=session.expires,
    )
