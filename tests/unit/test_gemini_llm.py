"""Unit tests for GeminiLLM (wire format and error mapping) against httpx.MockTransport."""
from __future__ import annotations

import json

import httpx
import pytest

from api.utils.errors import UpstreamError
from infra.llm.base import Turn
from infra.llm.gemini import NO_RESPONSE_TEXT, GeminiLLM, build_contents, extract_text


def _reply(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}], "role": "model"}}]}


def _llm(handler, api_key: str = "test-key") -> GeminiLLM:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GeminiLLM(api_key=api_key, model="gemini-test", base_url="https://gemini.test/v1beta", client=client)


@pytest.mark.unit
class TestBuildContents:
    def test_maps_assistant_to_model(self):
        contents = build_contents([Turn("user", "Hi"), Turn("assistant", "Hello"), Turn("user", "Bye")])
        assert [c["role"] for c in contents] == ["user", "model", "user"]
        assert contents[1]["parts"] == [{"text": "Hello"}]

    def test_drops_leading_model_turns(self):
        contents = build_contents([Turn("assistant", "Welcome!"), Turn("user", "Hello")])
        assert contents == [{"role": "user", "parts": [{"text": "Hello"}]}]

    def test_merges_consecutive_same_role(self):
        contents = build_contents([Turn("user", "one"), Turn("user", "two")])
        assert contents == [{"role": "user", "parts": [{"text": "one\n\ntwo"}]}]

    def test_only_model_turns_is_empty(self):
        assert build_contents([Turn("assistant", "Welcome!")]) == []


@pytest.mark.unit
class TestExtractText:
    def test_first_candidate_text(self):
        assert extract_text(_reply("Hi there!")) == "Hi there!"

    def test_missing_candidates_is_no_response(self):
        assert extract_text({}) == NO_RESPONSE_TEXT
        assert extract_text({"candidates": []}) == NO_RESPONSE_TEXT


@pytest.mark.unit
class TestGeminiGenerate:
    @pytest.mark.asyncio
    async def test_posts_contents_and_returns_text(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = request.url
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=_reply("Hi there!"))

        llm = _llm(handler)
        text = await llm.generate([Turn("user", "Hello")])
        await llm.close()

        assert text == "Hi there!"
        assert seen["url"].path == "/v1beta/models/gemini-test:generateContent"
        assert seen["url"].params["key"] == "test-key"
        assert seen["body"] == {"contents": [{"role": "user", "parts": [{"text": "Hello"}]}]}

    @pytest.mark.asyncio
    async def test_generate_text_sends_single_user_turn(self):
        bodies = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json=_reply("[]"))

        llm = _llm(handler)
        assert await llm.generate_text("Make a quiz") == "[]"
        assert bodies[0]["contents"] == [{"role": "user", "parts": [{"text": "Make a quiz"}]}]

    @pytest.mark.asyncio
    async def test_error_status_raises_upstream_with_message(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"error": {"code": 400, "message": "API key not valid"}})

        llm = _llm(handler)
        with pytest.raises(UpstreamError) as exc_info:
            await llm.generate([Turn("user", "Hello")])
        assert exc_info.value.message == "API key not valid"
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_error_status_without_body_message(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, text="unavailable")

        llm = _llm(handler)
        with pytest.raises(UpstreamError, match="HTTP 503"):
            await llm.generate([Turn("user", "Hello")])

    @pytest.mark.asyncio
    async def test_transport_error_raises_upstream(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        llm = _llm(handler)
        with pytest.raises(UpstreamError, match="Inference request failed"):
            await llm.generate([Turn("user", "Hello")])

    @pytest.mark.asyncio
    async def test_missing_api_key_fails_without_request(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json=_reply("unused"))

        llm = _llm(handler, api_key="")
        with pytest.raises(UpstreamError, match="GEMINI_API_KEY"):
            await llm.generate([Turn("user", "Hello")])
        assert calls == []

    @pytest.mark.asyncio
    async def test_no_user_turn_fails_without_request(self):
        llm = _llm(lambda request: httpx.Response(200, json=_reply("unused")))
        with pytest.raises(UpstreamError):
            await llm.generate([Turn("assistant", "Welcome!")])
