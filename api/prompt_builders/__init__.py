"""
App prompt builders. All prompt content and templates live here; services receive built prompts.
"""

from api.prompt_builders.quiz import build_quiz_prompt
from api.prompt_builders.template import build_from_template

__all__ = [
    "build_from_template",
    "build_quiz_prompt",
]
