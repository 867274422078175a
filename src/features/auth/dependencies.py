"""Authentication dependencies for FastAPI.

Two credential channels exist: the bearer access token (checked by
``get_current_user``) and the httpOnly refresh cookie (checked by
``require_refresh_token``). Each guard classifies the request as
NO_CREDENTIAL, CREDENTIAL_PRESENT_INVALID or CREDENTIAL_PRESENT_VALID and
only the last one reaches the route handler.
"""

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from fastapi import Depends, Request
from jwt.exceptions import InvalidTokenError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.dependencies import get_db_session
from src.features.user.models import User
from src.features.user.service import UserService
from src.shared.audit.security import log_security_event
from src.shared.errors.exceptions import APIException

from .cookies import get_refresh_token_cookie
from .exceptions import (
    EmailNotVerifiedException,
    InvalidTokenException,
    RefreshTokenInvalidException,
    RefreshTokenMissingException,
    RefreshTokenNotFoundException,
    TokenMissingException,
    UserNotFoundException,
    XSSAttackDetectedException,
)
from .jwt_utils import extract_bearer_token, hash_token, verify_access_token, verify_refresh_token
from .ledger import RefreshTokenLedger
from .models import RefreshToken

logger = logging.getLogger(__name__)


class CredentialState(StrEnum):
    NO_CREDENTIAL = "no_credential"
    CREDENTIAL_PRESENT_INVALID = "credential_present_invalid"
    CREDENTIAL_PRESENT_VALID = "credential_present_valid"


@dataclass(frozen=True)
class RefreshContext:
    """What the refresh guard hands to the route once the cookie checks out."""

    user: User
    record: RefreshToken
    token: str
    token_hash: str
    claims: dict[str, Any]


def classify_bearer(request: Request) -> tuple[CredentialState, dict[str, Any] | None]:
    """Classify the bearer channel without touching the database."""
    token = extract_bearer_token(request.headers.get("authorization"))
    if token is None:
        return CredentialState.NO_CREDENTIAL, None

    try:
        payload = verify_access_token(token)
    except InvalidTokenError:
        return CredentialState.CREDENTIAL_PRESENT_INVALID, None

    return CredentialState.CREDENTIAL_PRESENT_VALID, payload


async def get_current_user(request: Request, session: AsyncSession = Depends(get_db_session)) -> User:
    """Resolve the user behind the bearer access token.

    Raises:
        TokenMissingException: No ``Bearer`` token in the Authorization header
        InvalidTokenException: Token invalid, expired or not an access token
        UserNotFoundException: Subject is not an active user

    """
    state, payload = classify_bearer(request)

    if state is CredentialState.NO_CREDENTIAL:
        raise TokenMissingException()

    if state is CredentialState.CREDENTIAL_PRESENT_INVALID or payload is None:
        raise InvalidTokenException()

    try:
        user_id = int(payload["sub"])
    except (KeyError, TypeError, ValueError) as err:
        raise InvalidTokenException(detail="Invalid token payload") from err

    user = await UserService.get_user(session, user_id)
    if user is None:
        raise UserNotFoundException()

    request.state.user = user
    request.state.token_payload = payload
    return user


async def get_optional_user(request: Request, session: AsyncSession = Depends(get_db_session)) -> User | None:
    """Get the current user if a valid bearer token is provided, otherwise None.

    Useful for endpoints that personalize but do not require login. Never
    raises: authentication problems and store failures both yield None.
    """
    if extract_bearer_token(request.headers.get("authorization")) is None:
        return None

    try:
        return await get_current_user(request, session)
    except APIException as exc:
        logger.debug(f"Optional auth failed: {exc.code}")
    except SQLAlchemyError as exc:
        logger.warning(f"Optional auth skipped, user lookup failed: {exc.__class__.__name__}")
    return None


async def require_verified_user(current_user: User = Depends(get_current_user)) -> User:
    """Like ``get_current_user`` but also requires a verified email.

    Raises:
        EmailNotVerifiedException: The user has not verified their email

    """
    if not current_user.is_verified:
        raise EmailNotVerifiedException()
    return current_user


async def require_refresh_token(
    request: Request, session: AsyncSession = Depends(get_db_session)
) -> RefreshContext:
    """Validate the refresh cookie against the codec and the ledger.

    Raises:
        RefreshTokenMissingException: No cookie
        XSSAttackDetectedException: Cookie fails verification (cookie cleared)
        RefreshTokenNotFoundException: Token verified but not valid in the
            ledger, i.e. already rotated, revoked or expired (cookie cleared)
        RefreshTokenInvalidException: Token subject differs from the ledger
            record owner (cookie cleared)

    """
    token = get_refresh_token_cookie(request)
    if token is None:
        raise RefreshTokenMissingException()

    try:
        claims = verify_refresh_token(token)
    except InvalidTokenError as err:
        log_security_event(
            "refresh_token_invalid",
            request,
            "Refresh token failed verification, possible theft via XSS",
            level=logging.ERROR,
            error=str(err),
        )
        raise XSSAttackDetectedException() from err

    token_hash = hash_token(token)
    entry = await RefreshTokenLedger.find_valid(session, token_hash)
    if entry is None:
        log_security_event(
            "refresh_token_not_found",
            request,
            "Refresh token not found in ledger, possible token replay",
            token_hash_prefix=token_hash[:12],
        )
        raise RefreshTokenNotFoundException()

    if claims.get("sub") != str(entry.user.id):
        log_security_event(
            "refresh_token_owner_mismatch",
            request,
            "Refresh token subject does not match its ledger record",
            level=logging.ERROR,
            token_hash_prefix=token_hash[:12],
        )
        raise RefreshTokenInvalidException()

    request.state.user = entry.user
    return RefreshContext(user=entry.user, record=entry.record, token=token, token_hash=token_hash, claims=claims)
