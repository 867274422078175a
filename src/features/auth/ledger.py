"""Refresh token ledger: persisted state behind revocation and rotation."""

import logging
from datetime import UTC, datetime
from typing import NamedTuple

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.features.user.models import User

from .exceptions import RefreshTokenNotFoundException
from .models import RefreshToken

logger = logging.getLogger(__name__)

USER_AGENT_MAX_LENGTH = 500


class LedgerEntry(NamedTuple):
    """A valid ledger record together with its (active) owner."""

    record: RefreshToken
    user: User


def _short(token_hash: str) -> str:
    return token_hash[:12]


class RefreshTokenLedger:
    """Queries over the ``refresh_tokens`` table.

    Every method works inside the caller's session; nothing here commits.
    """

    @staticmethod
    async def record(
        session: AsyncSession,
        user_id: int,
        token_hash: str,
        expires_at: datetime,
        user_agent: str | None = None,
        ip_address: str | None = None,
    ) -> int:
        """Persist a newly issued refresh token and return the record id."""
        entry = RefreshToken(
            user_id=user_id,
            token_hash=token_hash,
            expires_at=expires_at,
            user_agent=user_agent[:USER_AGENT_MAX_LENGTH] if user_agent else None,
            ip_address=ip_address,
        )
        session.add(entry)
        await session.flush()
        logger.debug(f"Refresh token {_short(token_hash)} recorded for user {user_id}")
        return entry.id

    @staticmethod
    async def find_valid(session: AsyncSession, token_hash: str) -> LedgerEntry | None:
        """Return the record and owner if the token is unexpired, unrevoked and owned by an active user."""
        stmt = (
            select(RefreshToken, User)
            .join(User, User.id == RefreshToken.user_id)
            .where(
                RefreshToken.token_hash == token_hash,
                RefreshToken.expires_at > datetime.now(UTC),
                RefreshToken.revoked.is_(False),
                User.is_active.is_(True),
            )
        )
        result = await session.execute(stmt)
        row = result.one_or_none()
        if row is None:
            return None
        return LedgerEntry(record=row[0], user=row[1])

    @staticmethod
    async def revoke(session: AsyncSession, token_hash: str) -> bool:
        """Revoke one token. Idempotent; returns whether a record changed."""
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.token_hash == token_hash, RefreshToken.revoked.is_(False))
            .values(revoked=True, revoked_at=datetime.now(UTC))
        )
        result = await session.execute(stmt)
        return result.rowcount > 0

    @staticmethod
    async def revoke_all(session: AsyncSession, user_id: int) -> int:
        """Revoke every outstanding token of a user. Idempotent; returns the count changed."""
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.user_id == user_id, RefreshToken.revoked.is_(False))
            .values(revoked=True, revoked_at=datetime.now(UTC))
        )
        result = await session.execute(stmt)
        logger.info(f"Revoked {result.rowcount} refresh token(s) for user {user_id}")
        return result.rowcount

    @staticmethod
    async def rotate(
        session: AsyncSession,
        old_hash: str,
        new_hash: str,
        user_id: int,
        expires_at: datetime,
        user_agent: str | None = None,
        ip_address: str | None = None,
    ) -> int:
        """Revoke ``old_hash`` and record ``new_hash`` in the same transaction.

        The revoke only matches a still-unrevoked record, so of two concurrent
        rotations of the same token exactly one succeeds.

        Raises:
            RefreshTokenNotFoundException: If the old token was already
                revoked (or never existed) when the update ran

        """
        if not await RefreshTokenLedger.revoke(session, old_hash):
            logger.warning(f"Rotation lost for refresh token {_short(old_hash)}: already revoked")
            raise RefreshTokenNotFoundException()

        return await RefreshTokenLedger.record(session, user_id, new_hash, expires_at, user_agent, ip_address)

    @staticmethod
    async def list_active(session: AsyncSession, user_id: int) -> list[RefreshToken]:
        """Valid records of a user, newest first."""
        stmt = (
            select(RefreshToken)
            .where(
                RefreshToken.user_id == user_id,
                RefreshToken.revoked.is_(False),
                RefreshToken.expires_at > datetime.now(UTC),
            )
            .order_by(RefreshToken.created_at.desc(), RefreshToken.id.desc())
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def sweep_expired(session: AsyncSession) -> int:
        """Delete records that are expired or revoked; returns how many were removed."""
        stmt = (
            delete(RefreshToken)
            .where(or_(RefreshToken.expires_at <= datetime.now(UTC), RefreshToken.revoked.is_(True)))
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        if result.rowcount:
            logger.info(f"Swept {result.rowcount} expired or revoked refresh token(s)")
        return result.rowcount
