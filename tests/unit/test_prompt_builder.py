"""Unit tests for prompt builders (template filling and the quiz prompt)."""
import pytest

from api.prompt_builders import build_from_template, build_quiz_prompt
from api.prompt_builders.quiz import CHALLENGE_LINE, SCOPE_MESSAGE, SCOPE_SESSION
from infra.llm.base import Turn


@pytest.mark.unit
class TestBuildFromTemplate:
    def test_fills_placeholders(self):
        assert build_from_template("Hi {name}, {n} left", name="Ada", n=3) == "Hi Ada, 3 left"

    def test_missing_and_none_become_empty(self):
        assert build_from_template("[{a}][{b}]", a=None) == "[][]"

    def test_empty_template(self):
        assert build_from_template("", a=1) == ""

    def test_values_with_braces_are_not_reformatted(self):
        assert build_from_template("{x}", x="{not a field}") == "{not a field}"


@pytest.mark.unit
class TestBuildQuizPrompt:
    def test_message_scope_includes_material_and_count(self):
        prompt = build_quiz_prompt(
            count=3,
            context=[Turn(role="user", text="What is DNA?"), Turn(role="assistant", text="DNA is ...")],
            material="DNA is a molecule.",
        )
        assert SCOPE_MESSAGE in prompt
        assert "MATERIAL:\nDNA is a molecule." in prompt
        assert "exactly 3 questions" in prompt
        assert "user: What is DNA?" in prompt
        assert "JSON array" in prompt

    def test_session_scope_without_material(self):
        prompt = build_quiz_prompt(count=4, context=[])
        assert SCOPE_SESSION in prompt
        assert "MATERIAL" not in prompt
        assert "(no conversation yet)" in prompt

    def test_missed_questions_listed(self):
        prompt = build_quiz_prompt(
            count=2,
            context=[],
            missed=[{"question": "2+2?", "correct": "4", "explanation": "Arithmetic."}],
        )
        assert '"2+2?" (correct answer: 4) Arithmetic.' in prompt

    def test_challenge_line_only_when_requested(self):
        assert CHALLENGE_LINE.strip() in build_quiz_prompt(count=2, context=[], challenging=True)
        assert CHALLENGE_LINE.strip() not in build_quiz_prompt(count=2, context=[])
