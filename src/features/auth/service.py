"""Authentication service layer."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import Request

from src.features.user.models import User
from src.features.user.service import UserService

from .dependencies import RefreshContext
from .exceptions import InvalidCredentialsException
from .jwt_utils import TokenKind, create_access_token, create_refresh_token, get_token_expiration_seconds, hash_token
from .ledger import RefreshTokenLedger
from .schemas import UserLoginRequest, UserRegisterRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClientInfo:
    """Device metadata stored next to a refresh token (informational only)."""

    ip_address: str | None = None
    user_agent: str | None = None

    @classmethod
    def from_request(cls, request: Request) -> "ClientInfo":
        return cls(
            ip_address=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
        )


@dataclass(frozen=True)
class IssuedTokens:
    """Tokens minted for one session. The refresh token only ever goes into the cookie."""

    access_token: str
    refresh_token: str
    expires_in: int  # access token lifetime in seconds


def _refresh_expiry() -> datetime:
    return datetime.now(UTC) + timedelta(seconds=get_token_expiration_seconds(TokenKind.REFRESH))


class AuthService:
    """Use-cases for registering, logging in, refreshing and logging out."""

    @staticmethod
    async def issue_session(session: AsyncSession, user: User, client: ClientInfo | None = None) -> IssuedTokens:
        """Mint a token pair, record the refresh token and stamp the login time.

        Shared tail of register, login and identity-provider login.
        """
        client = client or ClientInfo()
        access_token = create_access_token(user)
        refresh_token = create_refresh_token(user)

        await RefreshTokenLedger.record(
            session,
            user.id,
            hash_token(refresh_token),
            _refresh_expiry(),
            user_agent=client.user_agent,
            ip_address=client.ip_address,
        )
        await UserService.update_last_login(session, user)

        return IssuedTokens(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=get_token_expiration_seconds(TokenKind.ACCESS),
        )

    @staticmethod
    async def register(
        session: AsyncSession, data: UserRegisterRequest, client: ClientInfo | None = None
    ) -> tuple[User, IssuedTokens]:
        """Create the account and open its first session.

        Raises:
            UserAlreadyExists: If the email is already registered

        """
        user = await UserService.create_user(
            session,
            email=data.email,
            password=data.password,
            first_name=data.first_name,
            last_name=data.last_name,
        )
        tokens = await AuthService.issue_session(session, user, client)
        return user, tokens

    @staticmethod
    async def login(
        session: AsyncSession, data: UserLoginRequest, client: ClientInfo | None = None
    ) -> tuple[User, IssuedTokens]:
        """Check credentials and open a session.

        Raises:
            InvalidCredentialsException: Unknown email or wrong password,
                indistinguishably

        """
        user = await UserService.authenticate(session, data.email, data.password)
        if user is None:
            raise InvalidCredentialsException()

        tokens = await AuthService.issue_session(session, user, client)
        logger.info(f"User logged in: {user.id}")
        return user, tokens

    @staticmethod
    async def refresh(session: AsyncSession, context: RefreshContext, client: ClientInfo | None = None) -> IssuedTokens:
        """Rotate the presented refresh token and mint a new access token.

        The old record is revoked and the new one inserted in the caller's
        transaction; a token that lost a concurrent rotation raises
        ``RefreshTokenNotFoundException``.
        """
        client = client or ClientInfo()
        user = context.user

        access_token = create_access_token(user)
        refresh_token = create_refresh_token(user)

        await RefreshTokenLedger.rotate(
            session,
            old_hash=context.token_hash,
            new_hash=hash_token(refresh_token),
            user_id=user.id,
            expires_at=_refresh_expiry(),
            user_agent=client.user_agent,
            ip_address=client.ip_address,
        )

        logger.info(f"Refresh token rotated for user {user.id}")
        return IssuedTokens(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=get_token_expiration_seconds(TokenKind.ACCESS),
        )

    @staticmethod
    async def logout(session: AsyncSession, user: User, refresh_token: str | None) -> bool:
        """Revoke the presented refresh token, if any. Returns whether a record was revoked."""
        if not refresh_token:
            return False

        revoked = await RefreshTokenLedger.revoke(session, hash_token(refresh_token))
        logger.info(f"User logged out: {user.id} (token revoked: {revoked})")
        return revoked

    @staticmethod
    async def logout_all(session: AsyncSession, user: User) -> int:
        """Revoke every refresh token of the user."""
        count = await RefreshTokenLedger.revoke_all(session, user.id)
        logger.info(f"User logged out from all devices: {user.id}")
        return count
