"""
Application error taxonomy.

Routes let these propagate; the app-level handler in api.api logs them and renders
`{"error": message}` with the class's status code. The workspace controller catches
them at the boundary where they occur and turns them into notifications instead.
"""

from __future__ import annotations

from typing import Optional


class AppError(Exception):
    """Base class for errors that map onto an HTTP status and a user-facing message."""

    status_code: int = 500

    def __init__(self, message: str, *, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    """Missing identifiers or an illegal request (HTTP 400)."""

    status_code = 400


class QuizStateError(ValidationError):
    """An answer or retake that the quiz state machine does not allow."""


class NotFoundError(AppError):
    """A workspace operation named a chat, space or quiz that does not exist."""

    status_code = 404


class UpstreamError(AppError):
    """The inference API or the key-value store returned a failure."""

    status_code = 500


class QuizParseError(AppError):
    """The model's quiz output was not a usable JSON array of questions."""

    status_code = 500
