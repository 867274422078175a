"""Tests for the refresh token ledger."""

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import func, select

from src.features.auth.exceptions import RefreshTokenNotFoundException
from src.features.auth.jwt_utils import hash_token
from src.features.auth.ledger import USER_AGENT_MAX_LENGTH, RefreshTokenLedger
from src.features.auth.maintenance import sweep_expired_tokens
from src.features.auth.models import RefreshToken


def in_days(days: float) -> datetime:
    return datetime.now(UTC) + timedelta(days=days)


async def total_tokens(session) -> int:
    return (await session.execute(select(func.count()).select_from(RefreshToken))).scalar_one()


class TestRecordAndFind:
    async def test_record_then_find_valid(self, session, make_user):
        user = await make_user()
        record_id = await RefreshTokenLedger.record(
            session, user.id, hash_token("token-a"), in_days(7), user_agent="Mozilla/5.0", ip_address="127.0.0.1"
        )
        await session.commit()

        entry = await RefreshTokenLedger.find_valid(session, hash_token("token-a"))
        assert entry is not None
        assert entry.record.id == record_id
        assert entry.record.revoked is False
        assert entry.user.id == user.id

    async def test_unknown_hash(self, session):
        assert await RefreshTokenLedger.find_valid(session, hash_token("never-issued")) is None

    async def test_expired_record_is_not_valid(self, session, make_user):
        user = await make_user()
        await RefreshTokenLedger.record(session, user.id, hash_token("old"), in_days(-1))
        await session.commit()

        assert await RefreshTokenLedger.find_valid(session, hash_token("old")) is None

    async def test_inactive_owner_invalidates_record(self, session, make_user):
        user = await make_user(is_active=False)
        await RefreshTokenLedger.record(session, user.id, hash_token("t"), in_days(7))
        await session.commit()

        assert await RefreshTokenLedger.find_valid(session, hash_token("t")) is None

    async def test_user_agent_is_truncated(self, session, make_user):
        user = await make_user()
        await RefreshTokenLedger.record(session, user.id, hash_token("ua"), in_days(7), user_agent="x" * 800)
        await session.commit()

        entry = await RefreshTokenLedger.find_valid(session, hash_token("ua"))
        assert len(entry.record.user_agent) == USER_AGENT_MAX_LENGTH


class TestRevoke:
    async def test_revoke_is_idempotent(self, session, make_user):
        user = await make_user()
        await RefreshTokenLedger.record(session, user.id, hash_token("r"), in_days(7))

        assert await RefreshTokenLedger.revoke(session, hash_token("r")) is True
        assert await RefreshTokenLedger.revoke(session, hash_token("r")) is False
        assert await RefreshTokenLedger.revoke(session, hash_token("missing")) is False
        await session.commit()

        assert await RefreshTokenLedger.find_valid(session, hash_token("r")) is None

    async def test_revoke_all_only_touches_the_owner(self, session, make_user):
        owner = await make_user()
        other = await make_user()
        for name in ("a", "b"):
            await RefreshTokenLedger.record(session, owner.id, hash_token(name), in_days(7))
        await RefreshTokenLedger.record(session, other.id, hash_token("c"), in_days(7))

        assert await RefreshTokenLedger.revoke_all(session, owner.id) == 2
        assert await RefreshTokenLedger.revoke_all(session, owner.id) == 0
        await session.commit()

        assert await RefreshTokenLedger.find_valid(session, hash_token("c")) is not None


class TestRotate:
    async def test_rotate_replaces_the_record(self, session, make_user):
        user = await make_user()
        await RefreshTokenLedger.record(session, user.id, hash_token("v1"), in_days(7))

        new_id = await RefreshTokenLedger.rotate(
            session, hash_token("v1"), hash_token("v2"), user.id, in_days(7), user_agent="agent"
        )
        await session.commit()

        assert await RefreshTokenLedger.find_valid(session, hash_token("v1")) is None
        entry = await RefreshTokenLedger.find_valid(session, hash_token("v2"))
        assert entry.record.id == new_id
        assert entry.record.user_agent == "agent"

    async def test_second_rotation_of_same_token_fails(self, session, make_user):
        user = await make_user()
        await RefreshTokenLedger.record(session, user.id, hash_token("v1"), in_days(7))
        await RefreshTokenLedger.rotate(session, hash_token("v1"), hash_token("v2"), user.id, in_days(7))
        await session.commit()

        with pytest.raises(RefreshTokenNotFoundException):
            await RefreshTokenLedger.rotate(session, hash_token("v1"), hash_token("v3"), user.id, in_days(7))
        await session.rollback()

        # The losing rotation inserted nothing
        assert await total_tokens(session) == 2


class TestListAndSweep:
    async def test_list_active_newest_first(self, session, make_user):
        user = await make_user()
        first = await RefreshTokenLedger.record(session, user.id, hash_token("1"), in_days(7))
        second = await RefreshTokenLedger.record(session, user.id, hash_token("2"), in_days(7))
        await RefreshTokenLedger.record(session, user.id, hash_token("expired"), in_days(-1))
        revoked = await RefreshTokenLedger.record(session, user.id, hash_token("revoked"), in_days(7))
        await RefreshTokenLedger.revoke(session, hash_token("revoked"))
        await session.commit()

        active = await RefreshTokenLedger.list_active(session, user.id)

        assert [record.id for record in active] == [second, first]
        assert revoked not in [record.id for record in active]

    async def test_sweep_removes_expired_and_revoked(self, session, make_user):
        user = await make_user()
        await RefreshTokenLedger.record(session, user.id, hash_token("live"), in_days(7))
        await RefreshTokenLedger.record(session, user.id, hash_token("expired"), in_days(-1))
        await RefreshTokenLedger.record(session, user.id, hash_token("revoked"), in_days(7))
        await RefreshTokenLedger.revoke(session, hash_token("revoked"))

        assert await RefreshTokenLedger.sweep_expired(session) == 2
        await session.commit()

        assert await total_tokens(session) == 1
        assert await RefreshTokenLedger.find_valid(session, hash_token("live")) is not None

    async def test_sweep_expired_tokens_uses_its_own_transaction(self, database, session, make_user):
        user = await make_user()
        await RefreshTokenLedger.record(session, user.id, hash_token("expired"), in_days(-1))
        await session.commit()

        assert await sweep_expired_tokens(database) == 1
        assert await total_tokens(session) == 0
