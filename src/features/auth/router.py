"""Authentication router (session lifecycle endpoints)."""

import logging

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.dependencies import get_db_session
from src.features.user.models import User
from src.features.user.schemas import UserResponse

from .cookies import (
    clear_refresh_token_cookie,
    get_refresh_token_cookie,
    request_settings,
    set_refresh_token_cookie,
)
from .dependencies import RefreshContext, get_current_user, require_refresh_token
from .schemas import (
    MessageResponse,
    RefreshData,
    RefreshEnvelope,
    SessionData,
    SessionEnvelope,
    UserLoginRequest,
    UserRegisterRequest,
)
from .service import AuthService, ClientInfo, IssuedTokens

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["Authentication"])


def session_envelope(message: str, user: User, tokens: IssuedTokens) -> SessionEnvelope:
    return SessionEnvelope(
        message=message,
        data=SessionData(
            user=UserResponse.model_validate(user),
            access_token=tokens.access_token,
            expires_in=tokens.expires_in,
        ),
    )


@router.post("/register", response_model=SessionEnvelope, status_code=status.HTTP_201_CREATED)
async def register(
    data: UserRegisterRequest,
    request: Request,
    response: Response,
    session: AsyncSession = Depends(get_db_session),
):
    """Register a new user and open a session.

    - **email**: Email address
    - **password**: At least 8 characters with upper, lower, digit and special character
    - **firstName** / **lastName**: Optional, up to 50 characters

    Returns the access token in the body; the refresh token is set as an
    httpOnly cookie.
    """
    user, tokens = await AuthService.register(session, data, ClientInfo.from_request(request))
    await session.commit()

    set_refresh_token_cookie(response, tokens.refresh_token, request_settings(request))
    return session_envelope("User registered successfully", user, tokens)


@router.post("/login", response_model=SessionEnvelope)
async def login(
    data: UserLoginRequest,
    request: Request,
    response: Response,
    session: AsyncSession = Depends(get_db_session),
):
    """Login with email and password.

    Unknown email and wrong password both yield ``401 INVALID_CREDENTIALS``.
    """
    user, tokens = await AuthService.login(session, data, ClientInfo.from_request(request))
    await session.commit()

    set_refresh_token_cookie(response, tokens.refresh_token, request_settings(request))
    return session_envelope("Login successful", user, tokens)


@router.post("/refresh", response_model=RefreshEnvelope)
async def refresh_token(
    request: Request,
    response: Response,
    context: RefreshContext = Depends(require_refresh_token),
    session: AsyncSession = Depends(get_db_session),
):
    """Exchange the refresh cookie for a new access token.

    The presented refresh token is revoked and replaced; the replacement is
    only ever sent back as a cookie.
    """
    tokens = await AuthService.refresh(session, context, ClientInfo.from_request(request))
    await session.commit()

    set_refresh_token_cookie(response, tokens.refresh_token, request_settings(request))
    return RefreshEnvelope(
        message="Token refreshed successfully",
        data=RefreshData(access_token=tokens.access_token, expires_in=tokens.expires_in),
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Logout from the current device. Succeeds even without a refresh cookie."""
    await AuthService.logout(session, current_user, get_refresh_token_cookie(request))
    await session.commit()

    clear_refresh_token_cookie(response, request_settings(request))
    return MessageResponse(message="Logout successful")


@router.post("/logout-all", response_model=MessageResponse)
async def logout_all(
    request: Request,
    response: Response,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Revoke every refresh token of the current user."""
    await AuthService.logout_all(session, current_user)
    await session.commit()

    clear_refresh_token_cookie(response, request_settings(request))
    return MessageResponse(message="Logged out from all devices successfully")
