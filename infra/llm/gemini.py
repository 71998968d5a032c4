from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import httpx

from api.config import GEMINI_BASE_URL
from api.utils.errors import UpstreamError
from api.utils.logger import configure_logging, log_request
from infra.llm.base import LLM, Turn

logger = configure_logging()

NO_RESPONSE_TEXT = "No response"

_ROLE_MAP = {"user": "user", "assistant": "model"}


def build_contents(turns: Sequence[Turn]) -> List[Dict[str, Any]]:
    """
    Convert turns to the generateContent `contents` array.

    The API wants a user-first conversation, so leading model turns are dropped and
    consecutive turns from the same role are merged into one.
    """
    contents: List[Dict[str, Any]] = []
    for turn in turns:
        role = _ROLE_MAP[turn.role]
        if not contents and role == "model":
            continue
        if contents and contents[-1]["role"] == role:
            contents[-1]["parts"][0]["text"] += "\n\n" + turn.text
            continue
        contents.append({"role": role, "parts": [{"text": turn.text}]})
    return contents


def extract_text(data: Dict[str, Any]) -> str:
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return NO_RESPONSE_TEXT
    return text or NO_RESPONSE_TEXT


class GeminiLLM(LLM):
    """Google generative-language REST client (models/{model}:generateContent)."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-1.5-flash",
        base_url: str = GEMINI_BASE_URL,
        timeout: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    async def generate(self, turns: Sequence[Turn]) -> str:
        contents = build_contents(turns)
        if not contents:
            raise UpstreamError("Nothing to send: the conversation has no user turn")
        if not self.api_key:
            raise UpstreamError("GEMINI_API_KEY is not configured")

        with log_request(logger, f"gemini.generate model={self.model} turns={len(contents)}"):
            try:
                response = await self._client.post(
                    self.endpoint,
                    params={"key": self.api_key},
                    json={"contents": contents},
                )
            except httpx.HTTPError as e:
                raise UpstreamError(f"Inference request failed: {e}") from e

            try:
                data = response.json()
            except ValueError:
                data = {}

            if not response.is_success:
                message = (data.get("error") or {}).get("message") if isinstance(data, dict) else None
                logger.error("gemini error status=%s message=%s", response.status_code, message)
                raise UpstreamError(message or f"Inference API returned HTTP {response.status_code}")

        return extract_text(data)

    async def close(self) -> None:
        await self._client.aclose()
