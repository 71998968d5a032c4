"""Quiz generation prompt builder."""

from __future__ import annotations

from typing import Optional, Sequence

from api.prompt_builders.template import build_from_template
from infra.llm.base import Turn

TEMPLATE_QUIZ = """You are a study assistant writing a multiple-choice quiz for a learner.
{scope_line}

Recent conversation (oldest first):
{context_block}
{material_block}{missed_block}{difficulty_line}
Write exactly {count} questions. Each question is a JSON object with these keys:
- "question": the question text
- "options": an array of exactly 4 answer strings
- "correctAnswer": the 0-based index of the correct option
- "explanation": one or two sentences explaining the correct answer
- "difficulty": one of "easy", "medium", "hard"
- "topic": a short topic label

Respond with ONLY a JSON array of {count} such objects. No markdown, no code fences, no text before or after the array."""

SCOPE_MESSAGE = "Quiz the learner on the assistant answer marked MATERIAL below."
SCOPE_SESSION = "Quiz the learner on the whole conversation below."

CHALLENGE_LINE = (
    "\nThe learner has been scoring above 80% on earlier quizzes: make these questions more challenging.\n"
)


def _format_context(turns: Sequence[Turn]) -> str:
    if not turns:
        return "(no conversation yet)"
    return "\n".join(f"{t.role}: {t.text}" for t in turns)


def _format_missed(missed: Sequence[dict]) -> str:
    if not missed:
        return ""
    lines = ["\nThe learner previously missed these questions; revisit the same ideas from a new angle:"]
    for item in missed:
        line = f'- "{item["question"]}" (correct answer: {item["correct"]})'
        if item.get("explanation"):
            line += f" {item['explanation']}"
        lines.append(line)
    return "\n".join(lines) + "\n"


def build_quiz_prompt(
    *,
    count: int,
    context: Sequence[Turn],
    material: Optional[str] = None,
    missed: Sequence[dict] = (),
    challenging: bool = False,
) -> str:
    """Build the quiz-generation prompt. `material` is set for message-scope quizzes."""
    material_block = f"\nMATERIAL:\n{material}\n" if material else ""
    return build_from_template(
        TEMPLATE_QUIZ,
        scope_line=SCOPE_MESSAGE if material else SCOPE_SESSION,
        context_block=_format_context(context),
        material_block=material_block,
        missed_block=_format_missed(missed),
        difficulty_line=CHALLENGE_LINE if challenging else "",
        count=count,
    ).strip()
