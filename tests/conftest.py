"""
Pytest configuration and shared fixtures for the test suite.
Ensures proper Python path and provides common fixtures for unit and integration tests.
"""
import sys
from pathlib import Path
from typing import List, Sequence

import pytest

# Add project root to Python path for imports
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from infra.kv.memory_store import InMemoryStore  # noqa: E402
from infra.llm.base import LLM, Turn  # noqa: E402


class ScriptedLLM(LLM):
    """Replays queued replies in order; an Exception in the queue is raised instead."""

    def __init__(self, replies: Sequence[object] = ()):
        self.replies: List[object] = list(replies)
        self.calls: List[List[Turn]] = []

    async def generate(self, turns: Sequence[Turn]) -> str:
        self.calls.append(list(turns))
        if not self.replies:
            return "No response"
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return str(reply)


@pytest.fixture
def kv() -> InMemoryStore:
    """Fresh in-memory key-value store."""
    return InMemoryStore()


@pytest.fixture
def fake_llm() -> ScriptedLLM:
    """Scripted LLM; push replies onto `fake_llm.replies` before the call under test."""
    return ScriptedLLM()


@pytest.fixture
def quiz_json():
    """Builds a model-style quiz reply with `n` four-option questions (answer index 1)."""
    import json

    def _build(n: int = 2) -> str:
        return json.dumps(
            [
                {
                    "question": f"Question {i + 1}?",
                    "options": ["A", "B", "C", "D"],
                    "correctAnswer": 1,
                    "explanation": f"Because {i + 1}.",
                }
                for i in range(n)
            ]
        )

    return _build
