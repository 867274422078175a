"""User service layer (credential store)."""

import logging
from datetime import UTC, datetime
from functools import cache

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .exceptions import UserAlreadyExists
from .models import User, pwd_hasher

logger = logging.getLogger(__name__)


@cache
def placeholder_password_hash() -> str:
    """Hash checked against on unknown emails so both login failures cost one Argon2 verify."""
    return pwd_hasher.hash("placeholder-password-for-unknown-users")


class UserService:
    """Service for user persistence and credential checks."""

    @staticmethod
    async def create_user(
        session: AsyncSession,
        email: str,
        password: str,
        first_name: str | None = None,
        last_name: str | None = None,
        is_verified: bool = False,
    ) -> User:
        """Create a new active user.

        Args:
            session: Database session
            email: Email address, stored as given
            password: Plain text password, hashed before storage
            first_name: Optional given name
            last_name: Optional family name
            is_verified: Whether the email is already verified

        Returns:
            Created User object (flushed, so ``id`` is populated)

        Raises:
            UserAlreadyExists: If the email is already registered

        """
        existing = await session.execute(select(User.id).where(User.email == email))
        if existing.scalar_one_or_none() is not None:
            raise UserAlreadyExists()

        user = User(
            email=email,
            first_name=first_name,
            last_name=last_name,
            hashed_password=User.hash_password(password),
            is_verified=is_verified,
            is_active=True,
        )
        session.add(user)

        # A concurrent registration can still win between the check and the insert
        try:
            await session.flush()
        except IntegrityError as err:
            raise UserAlreadyExists() from err

        logger.info(f"New user registered: {user.id}")
        return user

    @staticmethod
    async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
        """Find an active user by email."""
        stmt = select(User).where(User.email == email, User.is_active.is_(True))
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_user(session: AsyncSession, user_id: int) -> User | None:
        """Find an active user by ID."""
        stmt = select(User).where(User.id == user_id, User.is_active.is_(True))
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def authenticate(session: AsyncSession, email: str, password: str) -> User | None:
        """Return the user when the email/password pair is valid, otherwise None.

        Unknown email and wrong password are deliberately indistinguishable
        to the caller.
        """
        user = await UserService.get_user_by_email(session, email)
        if user is None:
            pwd_hasher.verify(password, placeholder_password_hash())
            logger.info("Login failed: unknown email")
            return None

        if not user.verify_password(password):
            logger.info(f"Login failed: wrong password for user {user.id}")
            return None

        return user

    @staticmethod
    async def update_last_login(session: AsyncSession, user: User) -> User:
        user.last_login_at = datetime.now(UTC)
        await session.flush()
        return user
