"""Periodic cleanup of the refresh token ledger."""

import asyncio
import logging

from src.database.client import Database

from .ledger import RefreshTokenLedger

logger = logging.getLogger(__name__)


async def sweep_expired_tokens(database: Database) -> int:
    """Delete expired and revoked refresh tokens in their own transaction."""
    async with database.session() as session:
        return await RefreshTokenLedger.sweep_expired(session)


async def run_token_sweeper(database: Database, interval_seconds: int) -> None:
    """Sweep the ledger every ``interval_seconds`` until cancelled.

    A failed sweep is logged and retried on the next tick.
    """
    logger.info(f"Refresh token sweeper started (interval={interval_seconds}s)")
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await sweep_expired_tokens(database)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Refresh token sweep failed: {e}")
