import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy import select, insert, update, delete, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from dropbin.core.clock import Clock, utcnow
from dropbin.core.config import settings
from dropbin.core.errors import Conflict, InvalidInput, NotFound, Unauthorized
from dropbin.core.security import hash_password, verify_password
from dropbin.models.text import TextRecord

logger = logging.getLogger(__name__)


class TextRepository:
    """
    Keyed storage of text records with time-based expiry.

    A record is live while ``expires_at > now``. Every query filters on
    that condition, so rows the sweeper has not purged yet are never
    observed.
    """

    def __init__(self, session: AsyncSession, ttl: timedelta = None, clock: Clock = utcnow):
        self.session = session
        self.ttl = ttl if ttl is not None else timedelta(seconds=settings.TEXT_TTL_SECONDS)
        self.clock = clock

    def _live(self, text_id: str, now):
        return select(TextRecord).where(TextRecord.id == text_id, TextRecord.expires_at > now)

    async def _get_live(self, text_id: str) -> TextRecord:
        result = await self.session.execute(self._live(text_id, self.clock()))
        record = result.scalar_one_or_none()
        if record is None:
            raise NotFound()
        return record

    async def exists(self, text_id: str) -> bool:
        now = self.clock()
        result = await self.session.execute(
            select(func.count()).select_from(TextRecord).where(
                TextRecord.id == text_id, TextRecord.expires_at > now
            )
        )
        return result.scalar() > 0

    async def create(self, content: str, text_id: str) -> TextRecord:
        if not content:
            raise InvalidInput("Content is required")

        now = self.clock()
        # an expired row may still hold this id until the sweeper runs
        await self.session.execute(
            delete(TextRecord)
            .where(TextRecord.id == text_id, TextRecord.expires_at <= now)
            .execution_options(synchronize_session=False)
        )

        try:
            # plain INSERT so the primary key constraint is the only arbiter
            await self.session.execute(
                insert(TextRecord).values(
                    id=text_id,
                    content=content,
                    created_at=now,
                    expires_at=now + self.ttl,
                )
            )
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            logger.warning(f"Text id collision on insert: {text_id}")
            raise Conflict(f"Text id '{text_id}' already in use") from exc

        return await self.session.get(TextRecord, text_id, populate_existing=True)

    async def get(self, text_id: str) -> TextRecord:
        return await self._get_live(text_id)

    async def update(self, text_id: str, content: str, password: Optional[str] = None) -> TextRecord:
        record = await self._get_live(text_id)

        if record.locked and not verify_password(password, record.lock_password_hash):
            raise Unauthorized()

        # created_at and expires_at stay as they are
        record.content = content
        await self.session.commit()
        return record

    async def delete(self, text_id: str, password: Optional[str] = None) -> None:
        record = await self._get_live(text_id)

        if record.locked and not verify_password(password, record.lock_password_hash):
            raise Unauthorized()

        await self.session.delete(record)
        await self.session.commit()

    async def lock(self, text_id: str, password: str) -> TextRecord:
        if not password:
            raise InvalidInput("Password is required")

        now = self.clock()
        # single conditional UPDATE: only one of several concurrent lockers wins
        result = await self.session.execute(
            update(TextRecord)
            .where(
                TextRecord.id == text_id,
                TextRecord.expires_at > now,
                TextRecord.lock_password_hash.is_(None),
            )
            .values(lock_password_hash=hash_password(password))
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()

        if not result.rowcount:
            # missing or expired raises NotFound, otherwise someone locked it first
            await self._get_live(text_id)
            raise Conflict("Text is already locked")

        return await self.session.get(TextRecord, text_id, populate_existing=True)

    async def purge_expired(self) -> int:
        """Delete every expired row and return how many were removed."""
        now = self.clock()
        result = await self.session.execute(
            delete(TextRecord)
            .where(TextRecord.expires_at <= now)
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        return result.rowcount or 0
