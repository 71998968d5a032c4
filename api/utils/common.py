"""
Common utility functions used across stores, services and routes.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Sequence
from uuid import uuid4

if TYPE_CHECKING:
    from api.models.models import Message

TITLE_LENGTH = 30
DEFAULT_TITLE = "New Chat"


def iso_format(dt: datetime) -> str:
    """Format a datetime like JavaScript's Date.toISOString() (UTC, millis, Z)."""
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.isoformat(timespec="milliseconds") + "Z"


def utc_now_iso() -> str:
    return iso_format(datetime.now(timezone.utc))


def parse_iso(value: str | None) -> datetime:
    """Parse an ISO timestamp; anything unparseable sorts as the oldest possible time."""
    if not value:
        return datetime.min.replace(tzinfo=timezone.utc)
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return datetime.min.replace(tzinfo=timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def latest_iso(*values: str | None) -> str:
    """Return the most recent of the given timestamps (as given)."""
    present = [v for v in values if v]
    return max(present, key=parse_iso) if present else utc_now_iso()


def new_id() -> str:
    return str(uuid4())


def new_message_id(prefix: str = "") -> str:
    """Millisecond timestamp plus a short random suffix: sortable, collision-free enough."""
    return f"{prefix}{int(time.time() * 1000)}-{uuid4().hex[:6]}"


def word_count(text: str) -> int:
    return len((text or "").split())


def derive_title(messages: Sequence["Message"]) -> str:
    """Chat title: first user message prefix, else first message prefix, else a placeholder."""
    if not messages:
        return DEFAULT_TITLE
    source = next((m for m in messages if m.role == "user"), messages[0])
    title = (source.content or "")[:TITLE_LENGTH]
    return title or DEFAULT_TITLE


def welcome_message(*, context: str | None = None) -> str:
    """Greeting seeded into every new chat or space."""
    if context:
        return (
            f"Welcome to {context}! Ask me anything about this topic and "
            "I can quiz you on what we cover."
        )
    return "Hi! I'm your study assistant. Ask me a question to get started."
