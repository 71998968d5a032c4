"""
Quiz generation and lifecycle.

Lifecycle of one quiz:

    Generating -> InProgress(currentQuestion) -> Complete
    Complete --retake--> InProgress(0), answers and score cleared

Generation sizes the quiz from the content (word count for one message, assistant-turn
count for a whole session), asks the model for a bare JSON array, and parses it in two
stages (direct parse, then the bracketed substring). Anything unusable raises
QuizParseError and no quiz is created.
"""

from __future__ import annotations

import json
import re
from typing import Iterable, List, Optional, Sequence, Tuple

from pydantic import ValidationError as PydanticValidationError

from api.models.models import Message, QuizHistoryEntry, QuizQuestion, QuizScope, QuizState
from api.prompt_builders.quiz import build_quiz_prompt
from api.utils.common import new_id, utc_now_iso, word_count
from api.utils.errors import QuizParseError, QuizStateError, ValidationError
from api.utils.logger import configure_logging
from infra.llm.base import LLM, Turn

logger = configure_logging()

CONTEXT_TURNS = 10
OPTIONS_PER_QUESTION = 4
CHALLENGE_THRESHOLD = 0.8

# (exclusive word-count upper bound, questions); longer messages get the default
MESSAGE_QUIZ_SIZES = ((100, 2), (200, 3), (300, 4))
MESSAGE_QUIZ_DEFAULT = 5
# (inclusive assistant-turn upper bound, questions)
SESSION_QUIZ_SIZES = ((5, 4), (10, 6))
SESSION_QUIZ_DEFAULT = 8

SESSION_QUIZ_MIN_NEW_TURNS = 3
SESSION_QUIZ_MIN_SUBSTANTIAL = 2
SUBSTANTIAL_WORDS = 50

QUIZ_MESSAGE_PREFIX = "quiz-"

_BRACKETED = re.compile(r"\[.*\]", re.DOTALL)


# ---- Sizing ----

def message_quiz_size(content: str) -> int:
    words = word_count(content)
    for bound, size in MESSAGE_QUIZ_SIZES:
        if words < bound:
            return size
    return MESSAGE_QUIZ_DEFAULT


def session_quiz_size(assistant_turns: int) -> int:
    for bound, size in SESSION_QUIZ_SIZES:
        if assistant_turns <= bound:
            return size
    return SESSION_QUIZ_DEFAULT


# ---- Conversation views ----

def is_quiz_message(message: Message) -> bool:
    """Messages injected only to carry a session quiz or a retake."""
    return message.id.startswith(QUIZ_MESSAGE_PREFIX)


def conversation_turns(messages: Sequence[Message]) -> List[Message]:
    return [m for m in messages if not is_quiz_message(m)]


def assistant_turns(messages: Sequence[Message]) -> List[Message]:
    return [m for m in conversation_turns(messages) if m.role == "assistant"]


def context_turns(messages: Sequence[Message], limit: int = CONTEXT_TURNS) -> List[Turn]:
    """The last `limit` conversation turns, oldest first, role and content only."""
    recent = conversation_turns(messages)[-limit:] if limit else []
    return [Turn(role=m.role, text=m.content) for m in recent]


def completed_quizzes(
    messages: Sequence[Message],
    history: Iterable[QuizHistoryEntry] = (),
) -> List[Tuple[List[QuizQuestion], int]]:
    """(questions, score) for every completed quiz in the chat and its space history, by id."""
    seen: set = set()
    results: List[Tuple[List[QuizQuestion], int]] = []
    for m in messages:
        quiz = m.quiz
        if quiz is None or not quiz.is_complete or quiz.score is None:
            continue
        if quiz.id:
            if quiz.id in seen:
                continue
            seen.add(quiz.id)
        results.append((quiz.questions, quiz.score))
    for entry in history:
        if entry.score is None or entry.id in seen:
            continue
        seen.add(entry.id)
        results.append((entry.questions, entry.score))
    return results


def missed_questions(quizzes: Sequence[Tuple[List[QuizQuestion], int]]) -> List[dict]:
    missed: List[dict] = []
    for questions, _ in quizzes:
        for q in questions:
            if q.user_answer is None or q.is_correct:
                continue
            missed.append(
                {
                    "question": q.question,
                    "correct": q.options[q.correct_answer],
                    "explanation": q.explanation,
                }
            )
    return missed


def average_score(quizzes: Sequence[Tuple[List[QuizQuestion], int]]) -> Optional[float]:
    ratios = [score / len(questions) for questions, score in quizzes if questions]
    if not ratios:
        return None
    return sum(ratios) / len(ratios)


# ---- Session quiz gate ----

def session_quiz_eligible(messages: Sequence[Message], marker: Optional[int]) -> bool:
    """
    `marker` is the assistant-turn count when the last session quiz was generated
    (None if there has not been one in this chat).
    """
    if marker is None:
        return True
    since = assistant_turns(messages)[marker:]
    substantial = [m for m in since if word_count(m.content) > SUBSTANTIAL_WORDS]
    return len(since) >= SESSION_QUIZ_MIN_NEW_TURNS and len(substantial) >= SESSION_QUIZ_MIN_SUBSTANTIAL


# ---- Parsing ----

def _load_array(text: str):
    stripped = (text or "").strip()
    try:
        return json.loads(stripped)
    except json.JSONDecodeError:
        pass
    match = _BRACKETED.search(stripped)
    if match is None:
        raise QuizParseError("Quiz response did not contain a JSON array")
    try:
        return json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise QuizParseError(f"Quiz response was not valid JSON: {e.msg}") from e


def parse_quiz_response(text: str) -> List[QuizQuestion]:
    data = _load_array(text)
    if not isinstance(data, list) or not data:
        raise QuizParseError("Quiz response was not a non-empty JSON array")

    questions: List[QuizQuestion] = []
    for i, item in enumerate(data):
        try:
            question = QuizQuestion.model_validate(item)
        except PydanticValidationError as e:
            raise QuizParseError(f"Question {i + 1} is malformed: {e.errors()[0]['msg']}") from e
        if len(question.options) != OPTIONS_PER_QUESTION:
            raise QuizParseError(
                f"Question {i + 1} has {len(question.options)} options, expected {OPTIONS_PER_QUESTION}"
            )
        # A freshly generated quiz never carries answers.
        question.user_answer = None
        questions.append(question)
    return questions


# ---- Lifecycle ----

def score_questions(questions: Sequence[QuizQuestion]) -> int:
    return sum(1 for q in questions if q.is_correct)


def submit_answer(quiz: QuizState, question_index: int, option_index: int) -> bool:
    """
    Record an answer on the current question. Returns True when this answer completed the quiz.
    """
    if quiz.is_complete:
        raise QuizStateError("Quiz is already complete")
    if question_index != quiz.current_question:
        raise QuizStateError(
            f"Question {question_index} is not the current question ({quiz.current_question})"
        )
    question = quiz.questions[question_index]
    if question.user_answer is not None:
        raise QuizStateError("Question has already been answered")
    if not 0 <= option_index < len(question.options):
        raise QuizStateError(f"Option {option_index} is out of range")

    question.user_answer = option_index
    if question_index < len(quiz.questions) - 1:
        quiz.current_question += 1
        return False

    quiz.score = score_questions(quiz.questions)
    quiz.is_complete = True
    return True


def to_history_entry(quiz: QuizState, taken_at: Optional[str] = None) -> QuizHistoryEntry:
    if not quiz.is_complete:
        raise QuizStateError("Only completed quizzes are recorded")
    return QuizHistoryEntry(
        id=quiz.id or new_id(),
        questions=[q.model_copy() for q in quiz.questions],
        score=quiz.score,
        taken_at=taken_at or utc_now_iso(),
        type=quiz.type or "message",
    )


def reset_for_retake(entry: QuizHistoryEntry) -> QuizState:
    """Clear answers and score on the history entry (in place) and return a fresh live quiz."""
    for q in entry.questions:
        q.user_answer = None
    entry.score = None
    return QuizState(
        id=entry.id,
        questions=[q.model_copy() for q in entry.questions],
        current_question=0,
        is_complete=False,
        type=entry.type,
    )


class QuizEngine:
    """Builds quiz requests, calls the model and parses the result into a live QuizState."""

    def __init__(self, llm: LLM):
        self.llm = llm

    def build_prompt(
        self,
        scope: QuizScope,
        messages: Sequence[Message],
        *,
        history: Iterable[QuizHistoryEntry] = (),
        target: Optional[Message] = None,
    ) -> Tuple[str, int]:
        if scope == "message":
            if target is None:
                raise ValidationError("A message quiz needs a target message")
            count = message_quiz_size(target.content)
        else:
            count = session_quiz_size(len(assistant_turns(messages)))

        done = completed_quizzes(messages, history)
        average = average_score(done)
        prompt = build_quiz_prompt(
            count=count,
            context=context_turns(messages),
            material=target.content if scope == "message" else None,
            missed=missed_questions(done),
            challenging=average is not None and average > CHALLENGE_THRESHOLD,
        )
        return prompt, count

    async def generate(
        self,
        scope: QuizScope,
        messages: Sequence[Message],
        *,
        history: Iterable[QuizHistoryEntry] = (),
        target: Optional[Message] = None,
    ) -> QuizState:
        """Generate a quiz. Raises UpstreamError or QuizParseError; nothing is mutated."""
        prompt, count = self.build_prompt(scope, messages, history=history, target=target)
        logger.info("quiz generation scope=%s requested=%s", scope, count)
        text = await self.llm.generate_text(prompt)
        questions = parse_quiz_response(text)
        if len(questions) != count:
            logger.warning("quiz size mismatch requested=%s received=%s", count, len(questions))
        return QuizState(id=new_id(), questions=questions, type=scope)
