"""JWT utilities for authentication.

Access and refresh tokens are signed with different keys and carry a
``type`` claim; a token is only accepted where its kind is expected.
"""

import hashlib
import logging
import re
import uuid
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import TYPE_CHECKING, Any

import jwt
from jwt.exceptions import InvalidTokenError

from src.config.settings import settings

if TYPE_CHECKING:
    from src.features.user.models import User

logger = logging.getLogger(__name__)

DURATION_PATTERN = re.compile(r"^(\d+)([smhd])$")
DURATION_MULTIPLIERS = {"s": 1, "m": 60, "h": 3600, "d": 86400}

# Longest access-token lifetime the startup check accepts silently
MAX_RECOMMENDED_ACCESS_SECONDS = 1800


class TokenKind(StrEnum):
    """Discriminant stored in the ``type`` claim."""

    ACCESS = "access"
    REFRESH = "refresh"


DEFAULT_EXPIRATION_SECONDS = {
    TokenKind.ACCESS: 900,
    TokenKind.REFRESH: 604800,
}


def parse_duration(expression: str) -> int | None:
    """Parse a duration such as ``15m`` or ``7d`` into seconds.

    Returns None when the expression does not match ``<digits><s|m|h|d>``.
    """
    match = DURATION_PATTERN.match(expression.strip()) if expression else None
    if not match:
        return None
    value, unit = match.groups()
    return int(value) * DURATION_MULTIPLIERS[unit]


def _duration_expression(kind: TokenKind) -> str:
    return settings.jwt_expires_in if kind is TokenKind.ACCESS else settings.jwt_refresh_expires_in


def _signing_key(kind: TokenKind) -> str:
    return settings.jwt_secret if kind is TokenKind.ACCESS else settings.jwt_refresh_secret


def get_token_expiration_seconds(kind: TokenKind = TokenKind.ACCESS) -> int:
    """Lifetime of a token kind in seconds.

    An unparseable configuration falls back to the default lifetime instead
    of failing; ``log_token_configuration`` reports it at startup.
    """
    seconds = parse_duration(_duration_expression(kind))
    if seconds is None:
        return DEFAULT_EXPIRATION_SECONDS[kind]
    return seconds


def is_token_expiration_too_long(kind: TokenKind = TokenKind.ACCESS) -> bool:
    """True when the configured lifetime exceeds 30 minutes."""
    return get_token_expiration_seconds(kind) > MAX_RECOMMENDED_ACCESS_SECONDS


def log_token_configuration() -> None:
    """Warn about token lifetime settings that need attention."""
    for kind in TokenKind:
        expression = _duration_expression(kind)
        if parse_duration(expression) is None:
            logger.warning(
                f"Unrecognized {kind.value} token lifetime {expression!r}; "
                f"falling back to {DEFAULT_EXPIRATION_SECONDS[kind]}s"
            )

    if is_token_expiration_too_long(TokenKind.ACCESS):
        logger.warning(
            f"Access token lifetime is {get_token_expiration_seconds(TokenKind.ACCESS)}s; "
            f"keep it at or below {MAX_RECOMMENDED_ACCESS_SECONDS}s"
        )


def _encode(claims: dict[str, Any], kind: TokenKind) -> str:
    now = datetime.now(UTC)
    to_encode = claims.copy()
    to_encode.update(
        {
            "type": kind.value,
            "iat": now,
            "exp": now + timedelta(seconds=get_token_expiration_seconds(kind)),
            "iss": settings.jwt_issuer,
            "aud": settings.jwt_audience,
        }
    )
    return jwt.encode(to_encode, _signing_key(kind), algorithm=settings.jwt_algorithm)


def create_access_token(user: "User") -> str:
    """Create a short-lived access token for ``user``."""
    return _encode({"sub": str(user.id), "email": user.email}, TokenKind.ACCESS)


def create_refresh_token(user: "User") -> str:
    """Create a refresh token for ``user``.

    The random ``jti`` makes every token (and therefore its hash) unique,
    even for two tokens issued to the same user within the same second.
    """
    return _encode({"sub": str(user.id), "email": user.email, "jti": str(uuid.uuid4())}, TokenKind.REFRESH)


def decode_token(token: str, kind: TokenKind) -> dict[str, Any]:
    """Decode and verify a token of the given kind.

    Args:
        token: JWT token string
        kind: Kind the caller expects

    Returns:
        Decoded token payload

    Raises:
        InvalidTokenError: If the signature, expiry, issuer or audience is
            invalid, or the token is of another kind

    """
    payload = jwt.decode(
        token,
        _signing_key(kind),
        algorithms=[settings.jwt_algorithm],
        audience=settings.jwt_audience,
        issuer=settings.jwt_issuer,
        options={"require": ["exp", "iat", "sub", "type"]},
    )

    if not verify_token_type(payload, kind):
        raise InvalidTokenError(f"Invalid token type, expected {kind.value}")

    return payload


def verify_access_token(token: str) -> dict[str, Any]:
    return decode_token(token, TokenKind.ACCESS)


def verify_refresh_token(token: str) -> dict[str, Any]:
    return decode_token(token, TokenKind.REFRESH)


def verify_token_type(payload: dict[str, Any], expected: TokenKind) -> bool:
    """Verify the token type matches expected."""
    return payload.get("type") == expected.value


def hash_token(token: str) -> str:
    """SHA-256 hex digest used as the ledger lookup key."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def extract_bearer_token(auth_header: str | None) -> str | None:
    """Return the token of an ``Authorization: Bearer <token>`` header.

    The scheme is case-sensitive; any other shape means no token.
    """
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header[len("Bearer ") :]
    return token or None
