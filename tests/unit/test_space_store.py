"""Unit tests for SpaceRecordStore (whole-collection read-modify-write)."""
import pytest

from api.models.models import QuizHistoryEntry, QuizQuestion, Space
from api.services.space_store import SPACES_KEY, upsert_quiz
from api.utils.errors import ValidationError

T0 = "2025-01-01T00:00:00.000Z"


def _space(space_id: str, name: str = "Biology") -> Space:
    return Space(id=space_id, name=name, created_at=T0, updated_at=T0)


def _entry(entry_id: str, score: int = 1) -> QuizHistoryEntry:
    question = QuizQuestion(question="Q?", options=["A", "B", "C", "D"], correct_answer=0, user_answer=0)
    return QuizHistoryEntry(id=entry_id, questions=[question], score=score, taken_at=T0)


@pytest.mark.unit
class TestUpsertQuiz:
    def test_appends_new(self):
        quizzes = [_entry("a")]
        upsert_quiz(quizzes, _entry("b"))
        assert [q.id for q in quizzes] == ["a", "b"]

    def test_replaces_same_id_in_place(self):
        quizzes = [_entry("a", score=0), _entry("b")]
        upsert_quiz(quizzes, _entry("a", score=1))
        assert [q.id for q in quizzes] == ["a", "b"]
        assert quizzes[0].score == 1


@pytest.mark.unit
class TestSpaceRecordStore:
    @pytest.mark.asyncio
    async def test_empty_collection(self, space_store):
        assert await space_store.list_all() == []

    @pytest.mark.asyncio
    async def test_create_appends_in_order(self, space_store, kv):
        await space_store.create(_space("s1"))
        await space_store.create(_space("s2", "Chemistry"))
        assert [s.id for s in await space_store.list_all()] == ["s1", "s2"]
        assert len(await kv.get(SPACES_KEY)) == 2

    @pytest.mark.asyncio
    async def test_update_merges_and_bumps(self, space_store):
        await space_store.create(_space("s1"))
        assert await space_store.update("s1", {"name": "Genetics", "description": "DNA"}) is True
        (space,) = await space_store.list_all()
        assert space.name == "Genetics"
        assert space.description == "DNA"
        assert space.updated_at > T0
        assert space.created_at == T0

    @pytest.mark.asyncio
    async def test_update_unknown_is_noop(self, space_store, kv):
        await space_store.create(_space("s1"))
        before = await kv.get(SPACES_KEY)
        assert await space_store.update("nope", {"name": "X"}) is False
        assert await kv.get(SPACES_KEY) == before

    @pytest.mark.asyncio
    async def test_update_cannot_change_id(self, space_store):
        await space_store.create(_space("s1"))
        await space_store.update("s1", {"id": "hijack"})
        assert [s.id for s in await space_store.list_all()] == ["s1"]

    @pytest.mark.asyncio
    async def test_invalid_update_raises(self, space_store):
        await space_store.create(_space("s1"))
        with pytest.raises(ValidationError):
            await space_store.update("s1", {"chats": "not a list"})

    @pytest.mark.asyncio
    async def test_delete(self, space_store):
        await space_store.create(_space("s1"))
        await space_store.create(_space("s2"))
        assert await space_store.delete("s1") is True
        assert await space_store.delete("s1") is False
        assert [s.id for s in await space_store.list_all()] == ["s2"]

    @pytest.mark.asyncio
    async def test_sync_overwrites(self, space_store):
        await space_store.create(_space("s1"))
        await space_store.sync([_space("s9")])
        assert [s.id for s in await space_store.list_all()] == ["s9"]

    @pytest.mark.asyncio
    async def test_append_quiz_dedups(self, space_store):
        await space_store.create(_space("s1"))
        await space_store.append_quiz("s1", _entry("q1", score=0))
        await space_store.append_quiz("s1", _entry("q1", score=1))
        (space,) = await space_store.list_all()
        assert len(space.quizzes) == 1
        assert space.quizzes[0].score == 1
        assert space.updated_at > T0

    @pytest.mark.asyncio
    async def test_append_quiz_unknown_space_is_noop(self, space_store):
        entry = await space_store.append_quiz("nope", _entry("q1"))
        assert entry.id == "q1"
        assert await space_store.list_all() == []

    @pytest.mark.asyncio
    async def test_invalid_entries_skipped_on_read(self, space_store, kv):
        await kv.set(SPACES_KEY, [{"id": "broken"}, _space("s1").to_json_dict(), "junk"])
        assert [s.id for s in await space_store.list_all()] == ["s1"]

    @pytest.mark.asyncio
    async def test_concurrent_writers_last_write_wins(self, space_store):
        # Two stale snapshots: the second sync silently drops the first writer's space.
        await space_store.sync([_space("a")])
        await space_store.sync([_space("b")])
        assert [s.id for s in await space_store.list_all()] == ["b"]
