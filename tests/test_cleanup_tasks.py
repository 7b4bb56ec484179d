import asyncio
from datetime import timedelta

from sqlalchemy import select

from dropbin.core.cleanup_tasks import cleanup_expired_texts, create_cleanup_task
from dropbin.core.clock import utcnow
from dropbin.models.text import TextRecord


async def seed(session_factory):
    now = utcnow()
    async with session_factory() as db:
        db.add_all([
            TextRecord(id="stale1", content="old", created_at=now - timedelta(minutes=30),
                       expires_at=now - timedelta(minutes=10)),
            TextRecord(id="fresh1", content="new", created_at=now, expires_at=now + timedelta(minutes=20)),
        ])
        await db.commit()


async def remaining_ids(session_factory):
    async with session_factory() as db:
        result = await db.execute(select(TextRecord.id))
        return set(result.scalars().all())


async def test_cleanup_deletes_only_expired(session_factory):
    await seed(session_factory)

    assert await cleanup_expired_texts(session_factory) == 1
    assert await remaining_ids(session_factory) == {"fresh1"}


async def test_cleanup_task_runs_and_cancels(session_factory):
    await seed(session_factory)

    task = create_cleanup_task(interval=3600, session_factory=session_factory)
    # first sweep runs immediately, then the task sleeps for the interval
    await asyncio.sleep(0.2)

    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass

    assert await remaining_ids(session_factory) == {"fresh1"}
