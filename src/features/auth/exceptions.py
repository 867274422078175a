"""Authentication exceptions."""

from fastapi import status

from src.shared.errors.exceptions import APIException


class AuthenticationException(APIException):
    """Base authentication exception (401)."""

    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"

    def __init__(self, detail: str = "Authentication failed", code: str | None = None, clear_refresh_cookie=False):
        super().__init__(
            detail=detail,
            code=code,
            headers={"WWW-Authenticate": "Bearer"},
            clear_refresh_cookie=clear_refresh_cookie,
        )


class InvalidCredentialsException(AuthenticationException):
    """Raised when the email is unknown or the password is wrong (never says which)."""

    def __init__(self):
        super().__init__(detail="Invalid email or password", code="INVALID_CREDENTIALS")


class TokenMissingException(AuthenticationException):
    """Raised when no bearer access token was presented."""

    def __init__(self):
        super().__init__(detail="Access token required", code="TOKEN_MISSING")


class InvalidTokenException(AuthenticationException):
    """Raised when the access token is invalid, expired or of the wrong kind."""

    def __init__(self, detail: str = "Invalid or expired access token"):
        super().__init__(detail=detail, code="TOKEN_INVALID")


class UserNotFoundException(AuthenticationException):
    """Raised when a valid token's subject is not an active user."""

    def __init__(self):
        super().__init__(detail="User not found or inactive", code="USER_NOT_FOUND")


class RefreshTokenMissingException(AuthenticationException):
    """Raised when the refresh cookie is absent."""

    def __init__(self):
        super().__init__(detail="Refresh token not found", code="REFRESH_TOKEN_MISSING")


class RefreshTokenInvalidException(AuthenticationException):
    """Raised when a verified refresh token disagrees with its ledger record."""

    def __init__(self):
        super().__init__(detail="Invalid refresh token", code="REFRESH_TOKEN_INVALID", clear_refresh_cookie=True)


class RefreshTokenNotFoundException(AuthenticationException):
    """Raised when a well-signed refresh token is revoked, rotated, expired or unknown."""

    def __init__(self):
        super().__init__(
            detail="Refresh token not found or expired",
            code="REFRESH_TOKEN_NOT_FOUND",
            clear_refresh_cookie=True,
        )


class XSSAttackDetectedException(AuthenticationException):
    """Raised when the refresh cookie fails cryptographic verification.

    A refresh token can only leave the httpOnly cookie jar through script
    injection, so a forged or foreign value on this channel is treated as
    presumptive token theft. This is a heuristic: a corrupted cookie or a
    rotated signing key produce the same signal.
    """

    def __init__(self):
        super().__init__(
            detail="Invalid refresh token detected - potential security breach",
            code="XSS_ATTACK_DETECTED",
            clear_refresh_cookie=True,
        )


class EmailNotVerifiedException(APIException):
    """Raised when an authenticated user has not verified their email."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "EMAIL_NOT_VERIFIED"

    def __init__(self):
        super().__init__(detail="Email verification required")
