from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Literal, Sequence


@dataclass(frozen=True)
class Turn:
    """One role-tagged text turn sent to the model."""
    role: Literal["user", "assistant"]
    text: str


class LLM(ABC):
    """
    Defines the contract for all LLMs: role-tagged turns in, one generated text turn out.
    Failures surface as api.utils.errors.UpstreamError.
    """

    @abstractmethod
    async def generate(self, turns: Sequence[Turn]) -> str:
        raise NotImplementedError

    async def generate_text(self, prompt: str) -> str:
        return await self.generate([Turn(role="user", text=prompt)])

    async def close(self) -> None:
        return None
