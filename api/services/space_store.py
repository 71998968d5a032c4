"""
Space record store: every space lives in one JSON array under the `spaces` key.

All writes are read-modify-write of that whole array with no lock or version check.
Two writers racing (two tabs, two processes) can lose one another's update; the
last write wins. That is accepted for the single guest user this service targets.
"""

from __future__ import annotations

from typing import Any, Dict, List, Sequence

from pydantic import ValidationError as PydanticValidationError

from api.models.models import QuizHistoryEntry, Space
from api.utils.common import utc_now_iso
from api.utils.errors import ValidationError
from api.utils.logger import configure_logging
from infra.kv.store import KeyValueStore

logger = configure_logging()

SPACES_KEY = "spaces"


def upsert_quiz(quizzes: List[QuizHistoryEntry], entry: QuizHistoryEntry) -> List[QuizHistoryEntry]:
    """Replace the entry with the same id in place, or append it."""
    for i, existing in enumerate(quizzes):
        if existing.id == entry.id:
            quizzes[i] = entry
            return quizzes
    quizzes.append(entry)
    return quizzes


class SpaceRecordStore:
    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    async def _read_raw(self) -> List[Dict[str, Any]]:
        raw = await self.kv.get(SPACES_KEY)
        if not isinstance(raw, list):
            return []
        return [s for s in raw if isinstance(s, dict)]

    async def _write(self, spaces: Sequence[Space]) -> None:
        await self.kv.set(SPACES_KEY, [s.to_json_dict() for s in spaces])

    async def list_all(self) -> List[Space]:
        """Spaces in stored order; callers sort for display."""
        spaces: List[Space] = []
        for raw in await self._read_raw():
            try:
                spaces.append(Space.model_validate(raw))
            except PydanticValidationError as e:
                logger.warning("skipping invalid space id=%s error=%s", raw.get("id"), e)
        return spaces

    async def create(self, space: Space) -> Space:
        spaces = await self.list_all()
        spaces.append(space)
        await self._write(spaces)
        logger.info("space created id=%s name=%s", space.id, space.name)
        return space

    async def update(self, space_id: str, fields: Dict[str, Any]) -> bool:
        """
        Shallow-merge `fields` (camelCase, as sent by clients) into the space and bump updatedAt.
        Unknown space ids are ignored; returns whether a space matched.
        """
        spaces = await self.list_all()
        matched = False
        for i, space in enumerate(spaces):
            if space.id != space_id:
                continue
            merged = {**space.to_json_dict(), **fields, "id": space.id, "updatedAt": utc_now_iso()}
            try:
                spaces[i] = Space.model_validate(merged)
            except PydanticValidationError as e:
                raise ValidationError(f"Invalid space update: {e.errors()[0]['msg']}") from e
            matched = True
        if matched:
            await self._write(spaces)
        return matched

    async def delete(self, space_id: str) -> bool:
        spaces = await self.list_all()
        remaining = [s for s in spaces if s.id != space_id]
        await self._write(remaining)
        logger.info("space deleted id=%s removed=%s", space_id, len(spaces) - len(remaining))
        return len(remaining) != len(spaces)

    async def sync(self, spaces: Sequence[Space]) -> None:
        """Overwrite the whole remote collection with the given local snapshot."""
        await self._write(spaces)
        logger.debug("spaces synced count=%s", len(spaces))

    async def append_quiz(self, space_id: str, entry: QuizHistoryEntry) -> QuizHistoryEntry:
        """Record a quiz result on a space, replacing any earlier entry with the same id."""
        spaces = await self.list_all()
        matched = False
        for space in spaces:
            if space.id == space_id:
                upsert_quiz(space.quizzes, entry)
                space.updated_at = utc_now_iso()
                matched = True
        if matched:
            await self._write(spaces)
        else:
            logger.info("quiz for unknown space ignored space=%s quiz=%s", space_id, entry.id)
        return entry
