"""
Short text id generation and allocation.

Ids are drawn at random from a case-sensitive alphanumeric alphabet. The
pre-insert existence check only cuts down on wasted inserts: the primary
key constraint on ``texts.id`` is what actually guarantees uniqueness, and
a ``Conflict`` from the insert sends the allocator back for a new id.
"""
import logging
import secrets
import string

from dropbin.core.config import settings
from dropbin.core.errors import Conflict, InvalidInput, ResourceExhausted

logger = logging.getLogger(__name__)

ALPHABET = string.ascii_letters + string.digits


def generate_text_id(length: int = 6, alphabet: str = ALPHABET) -> str:
    return "".join(secrets.choice(alphabet) for _ in range(length))


class IdentifierAllocator:
    def __init__(self, length: int = None, max_attempts: int = None, generator=generate_text_id):
        self.length = length if length is not None else settings.TEXT_ID_LENGTH
        self.max_attempts = max_attempts if max_attempts is not None else settings.TEXT_ID_MAX_ATTEMPTS
        self.generator = generator

    async def allocate(self, repo, attempts: int = 0) -> tuple:
        """
        Find an id no live record holds.

        Returns ``(text_id, attempts_used)`` so callers retrying on insert
        conflicts can share one attempt budget.

        Raises:
            ResourceExhausted: if every attempt collided
        """
        while attempts < self.max_attempts:
            attempts += 1
            candidate = self.generator(self.length)
            if not await repo.exists(candidate):
                return candidate, attempts
            logger.warning(f"Text id collision on pre-check: {candidate}")

        logger.error(f"Gave up allocating a text id after {attempts} attempts")
        raise ResourceExhausted()

    async def create_text(self, repo, content: str):
        """Allocate an id and insert ``content`` under it, retrying on conflicts."""
        if not content:
            raise InvalidInput("Content is required")

        attempts = 0
        while True:
            text_id, attempts = await self.allocate(repo, attempts)
            try:
                return await repo.create(content, text_id)
            except Conflict:
                # lost a race with a concurrent insert of the same id
                if attempts >= self.max_attempts:
                    logger.error(f"Gave up allocating a text id after {attempts} attempts")
                    raise ResourceExhausted()
