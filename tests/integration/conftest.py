"""
Integration test fixtures. The app runs its real lifespan with an in-memory store and
a scripted LLM swapped in for the Gemini client.
"""
import pytest


@pytest.fixture
def api_kv(kv, monkeypatch):
    """The in-memory store the app will be built with."""
    monkeypatch.setattr("api.api.build_kv_store", lambda settings: kv)
    return kv


@pytest.fixture
def api_client(api_kv, fake_llm, monkeypatch):
    """FastAPI TestClient; the lifespan runs inside the `with` block."""
    from fastapi.testclient import TestClient
    from api.api import app

    monkeypatch.setattr("api.api.build_llm", lambda settings: fake_llm)
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
