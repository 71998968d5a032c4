"""Unit tests for common utils (pure functions only)."""
from datetime import datetime, timezone

import pytest

from api.models.models import Message
from api.utils.common import (
    DEFAULT_TITLE,
    TITLE_LENGTH,
    derive_title,
    iso_format,
    latest_iso,
    new_message_id,
    parse_iso,
    welcome_message,
    word_count,
)


def _msg(role: str, content: str) -> Message:
    return Message(id=new_message_id(), role=role, content=content)


@pytest.mark.unit
class TestIsoFormat:
    def test_appends_z_with_millis(self):
        dt = datetime(2025, 1, 15, 12, 30, 0)
        assert iso_format(dt) == "2025-01-15T12:30:00.000Z"

    def test_aware_datetime_converted_to_utc(self):
        dt = datetime(2025, 1, 15, 12, 30, 0, tzinfo=timezone.utc)
        assert iso_format(dt) == "2025-01-15T12:30:00.000Z"


@pytest.mark.unit
class TestParseIso:
    def test_round_trips_iso_format(self):
        parsed = parse_iso("2025-01-15T12:30:00.000Z")
        assert parsed == datetime(2025, 1, 15, 12, 30, tzinfo=timezone.utc)

    def test_garbage_sorts_oldest(self):
        assert parse_iso("not a date") < parse_iso("1970-01-01T00:00:00.000Z")
        assert parse_iso(None) == parse_iso("")


@pytest.mark.unit
class TestLatestIso:
    def test_picks_most_recent(self):
        older = "2025-01-01T00:00:00.000Z"
        newer = "2025-06-01T00:00:00.000Z"
        assert latest_iso(older, newer) == newer
        assert latest_iso(newer, older) == newer

    def test_ignores_missing(self):
        stamp = "2025-01-01T00:00:00.000Z"
        assert latest_iso(None, stamp) == stamp


@pytest.mark.unit
class TestNewMessageId:
    def test_prefix_and_uniqueness(self):
        a = new_message_id("quiz-")
        b = new_message_id("quiz-")
        assert a.startswith("quiz-")
        assert a != b


@pytest.mark.unit
class TestDeriveTitle:
    def test_first_user_message_prefix(self):
        messages = [_msg("assistant", "Welcome!"), _msg("user", "Explain photosynthesis in plants please")]
        title = derive_title(messages)
        assert title == "Explain photosynthesis in plants please"[:TITLE_LENGTH]
        assert len(title) == TITLE_LENGTH

    def test_falls_back_to_first_message(self):
        assert derive_title([_msg("assistant", "Hello there")]) == "Hello there"

    def test_empty_is_placeholder(self):
        assert derive_title([]) == DEFAULT_TITLE


@pytest.mark.unit
class TestWelcomeMessage:
    def test_plain(self):
        assert "study assistant" in welcome_message()

    def test_with_context(self):
        assert "Biology" in welcome_message(context="Biology")


@pytest.mark.unit
def test_word_count():
    assert word_count("one two  three\nfour") == 4
    assert word_count("") == 0
