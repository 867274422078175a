"""Refresh token cookie transport.

Setting and clearing must use the same path and flags, otherwise browsers
keep the old cookie.
"""

import logging

from starlette.requests import Request
from starlette.responses import Response

from src.config.settings import Settings, settings

from .jwt_utils import TokenKind, get_token_expiration_seconds

logger = logging.getLogger(__name__)

REFRESH_COOKIE_NAME = "refreshToken"


def request_settings(request: Request) -> Settings:
    """Settings of the app serving ``request``, or the process-wide ones outside ``create_app``."""
    return getattr(request.app.state, "settings", settings)


def _cookie_options(app_settings: Settings) -> dict:
    return {
        "path": app_settings.auth_cookie_path,
        "domain": app_settings.cookie_domain,
        "secure": app_settings.is_production,
        "httponly": True,
        "samesite": "strict",
    }


def get_refresh_token_cookie(request: Request) -> str | None:
    return request.cookies.get(REFRESH_COOKIE_NAME) or None


def set_refresh_token_cookie(response: Response, refresh_token: str, app_settings: Settings = settings) -> None:
    """Attach the refresh token as an httpOnly cookie living as long as the token."""
    response.set_cookie(
        key=REFRESH_COOKIE_NAME,
        value=refresh_token,
        max_age=get_token_expiration_seconds(TokenKind.REFRESH),
        **_cookie_options(app_settings),
    )
    logger.debug(f"Refresh token cookie set (secure={app_settings.is_production}, samesite=strict)")


def clear_refresh_token_cookie(response: Response, app_settings: Settings = settings) -> None:
    response.delete_cookie(key=REFRESH_COOKIE_NAME, **_cookie_options(app_settings))
    logger.debug("Refresh token cookie cleared")
