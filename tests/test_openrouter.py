# =============================================================================
# Unit Tests — OpenRouter backend client
# =============================================================================
#
# httpx.MockTransport replaces the network; every failure mode must come back
# as None rather than an exception.
# =============================================================================

from __future__ import annotations

import asyncio
import json

import httpx

from concord.llm.openrouter import OpenRouterClient
from concord.llm.usage import UsageTracker
from concord.models.output import ContextFragment, QueryRequest

MODEL = "openai/gpt-4o-mini"


def _run(coro):
    return asyncio.run(coro)


def _completion(content="Paris.", usage=None):
    return {
        "id": "gen-1",
        "model": MODEL,
        "choices": [{"message": {"role": "assistant", "content": content}}],
        "usage": usage or {"prompt_tokens": 12, "completion_tokens": 3, "total_tokens": 15},
    }


def _query(handler, request=None, timeout_ms=1000, tracker=None):
    async def go():
        transport = httpx.MockTransport(handler)
        async with OpenRouterClient(
            "test-key",
            usage_tracker=tracker,
            client=httpx.AsyncClient(transport=transport),
        ) as client:
            return await client.query(MODEL, request or QueryRequest(prompt="Capital of France?"), timeout_ms)

    return _run(go())


class TestSuccess:
    def test_returns_answer_and_usage(self):
        response = _query(lambda request: httpx.Response(200, json=_completion()))
        assert response.model == MODEL
        assert response.answer == "Paris."
        assert response.usage["total_tokens"] == 15

    def test_request_shape(self):
        captured = {}

        def handler(request):
            captured["headers"] = request.headers
            captured["body"] = json.loads(request.content)
            captured["url"] = str(request.url)
            return httpx.Response(200, json=_completion())

        _query(handler, QueryRequest(prompt="Capital of France?", system_instructions="Be brief."))

        assert captured["url"] == "https://openrouter.ai/api/v1/chat/completions"
        assert captured["headers"]["Authorization"] == "Bearer test-key"
        body = captured["body"]
        assert body["model"] == MODEL
        assert body["max_tokens"] == 1000
        assert body["temperature"] == 0.3
        assert body["messages"] == [
            {"role": "system", "content": "Be brief."},
            {"role": "user", "content": "Capital of France?"},
        ]

    def test_context_rendered_as_system_message(self):
        captured = {}

        def handler(request):
            captured["messages"] = json.loads(request.content)["messages"]
            return httpx.Response(200, json=_completion())

        request = QueryRequest(
            prompt="How long do refunds take?",
            context=[
                ContextFragment(source="Refund policy", content="Refunds within 30 days."),
                ContextFragment(source="FAQ", content="Keep your {receipt}."),
            ],
        )
        _query(handler, request)

        messages = captured["messages"]
        assert [m["role"] for m in messages] == ["system", "user"]
        context = messages[0]["content"]
        assert context.startswith("Use the following knowledge base context to answer:")
        assert "[Source: Refund policy]\nRefunds within 30 days.\n\n[Source: FAQ]\nKeep your {receipt}." in context

    def test_usage_recorded(self):
        tracker = UsageTracker(tenant_id="acme")
        _query(lambda request: httpx.Response(200, json=_completion()), tracker=tracker)

        assert tracker.call_count == 1
        record = tracker.records_list()[0]
        assert record["model"] == MODEL
        assert record["tenant_id"] == "acme"
        assert record["total_tokens"] == 15


class TestFailures:
    def test_server_error(self):
        assert _query(lambda request: httpx.Response(500, json={"error": "down"})) is None

    def test_rate_limited(self):
        assert _query(lambda request: httpx.Response(429)) is None

    def test_malformed_body(self):
        assert _query(lambda request: httpx.Response(200, text="<html>oops</html>")) is None

    def test_missing_choices(self):
        body = {"error": {"message": "model not found"}}
        assert _query(lambda request: httpx.Response(200, json=body)) is None

    def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        assert _query(handler) is None

    def test_deadline_exceeded(self):
        async def handler(request):
            await asyncio.sleep(1)
            return httpx.Response(200, json=_completion())

        assert _query(handler, timeout_ms=50) is None

    def test_failure_not_recorded(self):
        tracker = UsageTracker()
        _query(lambda request: httpx.Response(503), tracker=tracker)
        assert tracker.call_count == 0

    def test_content_parts_list(self):
        body = _completion(content=[{"type": "text", "text": "Paris."}])
        assert _query(lambda request: httpx.Response(200, json=body)) is None

    def test_numeric_content(self):
        body = _completion(content=42)
        assert _query(lambda request: httpx.Response(200, json=body)) is None
