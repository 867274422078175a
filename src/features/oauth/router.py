"""Demo Google login endpoints.

Mounted only outside production and only when DEMO_OAUTH_ENABLED is set.
"""

import logging

from email_validator import EmailNotValidError, validate_email
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from src.config.settings import settings
from src.database.dependencies import get_db_session
from src.features.auth.cookies import request_settings, set_refresh_token_cookie
from src.features.auth.service import AuthService, ClientInfo
from src.features.user.schemas import UserResponse
from src.shared.errors.exceptions import ValidationException

from .identity import DEMO_EMAIL, IdentityResolver, get_identity_resolver
from .schemas import DemoLoginRequest, ProviderSessionData, ProviderSessionEnvelope

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth/google", tags=["Demo OAuth"])


def _endpoint(path: str) -> str:
    return f"{settings.api_prefix}/auth/google{path}"


@router.get("")
async def google_instructions():
    """Explain how to use the simulated provider."""
    return {
        "success": True,
        "message": "Demo Google OAuth - use the demo login endpoint with an email",
        "demo": True,
        "instructions": {
            "demoLogin": f'POST {_endpoint("/demo")} with {{ "email": "{DEMO_EMAIL}" }}',
            "testLogin": f'POST {_endpoint("/demo")} with {{ "email": "test@example.com" }}',
            "note": "This simulates Google OAuth without real Google integration",
        },
    }


@router.post("/demo", response_model=ProviderSessionEnvelope)
async def demo_login(
    data: DemoLoginRequest,
    request: Request,
    response: Response,
    session: AsyncSession = Depends(get_db_session),
    resolver: IdentityResolver = Depends(get_identity_resolver),
):
    """Log in (creating the account if needed) as the given email."""
    if not data.email:
        raise ValidationException(detail="Email is required for demo Google OAuth", code="EMAIL_REQUIRED")

    try:
        email = validate_email(data.email, check_deliverability=False).normalized
    except EmailNotValidError as err:
        raise ValidationException(detail="Invalid email format", code="INVALID_EMAIL") from err

    identity = await resolver.resolve(session, email)
    tokens = await AuthService.issue_session(session, identity.user, ClientInfo.from_request(request))
    await session.commit()
    logger.info(f"[DEMO OAUTH] Session issued for user {identity.user.id} via {resolver.provider}")

    set_refresh_token_cookie(response, tokens.refresh_token, request_settings(request))
    message = "Account created and logged in via Google" if identity.is_new_user else "Logged in via Google"
    return ProviderSessionEnvelope(
        message=message,
        data=ProviderSessionData(
            user=UserResponse.model_validate(identity.user),
            access_token=tokens.access_token,
            expires_in=tokens.expires_in,
            provider=resolver.provider,
            is_new_user=identity.is_new_user,
        ),
    )


@router.get("/callback")
async def google_callback():
    """Placeholder for the provider redirect; the demo has no real callback."""
    return {
        "success": False,
        "error": "Demo mode only. No real keys needed!",
        "message": f"This is a demo callback. Use POST {_endpoint('/demo')} instead.",
        "demo": True,
    }


@router.get("/status")
async def google_status():
    """Describe the demo provider configuration."""
    return {
        "success": True,
        "message": "Google OAuth Demo Configuration",
        "demo": True,
        "configuration": {
            "provider": "google",
            "demoUser": DEMO_EMAIL,
            "environment": settings.environment,
            "warning": "THIS IS FOR DEMO ONLY - NEVER USE IN PRODUCTION",
        },
    }
