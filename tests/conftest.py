# =============================================================================
# Shared fixtures
# =============================================================================
#
# FakeBackend stands in for OpenRouter so the engine, API and policy tests run
# without network access or API keys.
# =============================================================================

from __future__ import annotations

import asyncio

import pytest

from concord.llm.openrouter import ModelResponse


class FakeBackend:
    """Answers per model: a string succeeds, None fails, an exception is raised."""

    def __init__(self, answers: dict, delays: dict | None = None):
        self.answers = answers
        self.delays = delays or {}
        self.calls: list[str] = []
        self.requests = []

    async def query(self, model, request, timeout_ms):
        self.calls.append(model)
        self.requests.append(request)
        delay = self.delays.get(model, 0)
        if delay:
            await asyncio.sleep(delay)
        outcome = self.answers.get(model)
        if isinstance(outcome, BaseException):
            raise outcome
        if outcome is None:
            return None
        return ModelResponse(
            model=model,
            answer=outcome,
            usage={"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15},
        )


@pytest.fixture
def make_backend():
    return FakeBackend


@pytest.fixture(autouse=True)
def _no_ambient_api_key(monkeypatch):
    monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
    monkeypatch.delenv("CONCORD_POLICY_PATH", raising=False)
