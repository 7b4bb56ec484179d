"""
Expired text sweeper.

Reads already hide expired rows; this task only reclaims their storage.
"""
import asyncio
import logging

from dropbin.core.config import settings
from dropbin.db.base import AsyncSessionLocal
from dropbin.repositories.text_repository import TextRepository

logger = logging.getLogger(__name__)


async def cleanup_expired_texts(session_factory=AsyncSessionLocal) -> int:
    """
    Delete expired texts, returning how many were removed.
    """
    async with session_factory() as db:
        try:
            deleted = await TextRepository(db).purge_expired()
        except Exception as e:
            logger.error(f"Error during cleanup: {e}")
            await db.rollback()
            raise

    if deleted:
        logger.info(f"Deleted {deleted} expired texts")
    else:
        logger.debug("No expired texts found")
    return deleted


async def start_cleanup_scheduler(interval: int = None, session_factory=AsyncSessionLocal):
    interval = interval if interval is not None else settings.CLEANUP_INTERVAL_SECONDS
    logger.info(f"Starting cleanup scheduler, interval {interval}s")

    while True:
        try:
            await cleanup_expired_texts(session_factory)
        except Exception as e:
            # keep the loop alive; the next tick retries
            logger.error(f"Cleanup scheduler error: {e}")
        await asyncio.sleep(interval)


def create_cleanup_task(interval: int = None, session_factory=AsyncSessionLocal):
    return asyncio.create_task(start_cleanup_scheduler(interval, session_factory))
