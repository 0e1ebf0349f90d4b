"""OpenRouter Client - One request to one named model endpoint."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

import httpx

from concord.logging import get_logger
from concord.prompts import load_and_format

if TYPE_CHECKING:
    from concord.llm.usage import UsageTracker
    from concord.models.output import QueryRequest

logger = get_logger("concord.llm.openrouter")


@dataclass
class ModelResponse:
    """A successful answer from one model."""

    model: str
    answer: str
    usage: dict = field(default_factory=dict)  # {prompt_tokens, completion_tokens, total_tokens}


class OpenRouterClient:
    """
    OpenRouter API Client.

    Provides unified access to the providers behind each model tier
    (OpenAI, Anthropic, Google, Meta). `query()` never raises: a timeout,
    non-success status or malformed body is logged and reported as None.
    """

    BASE_URL = "https://openrouter.ai/api/v1"

    MAX_TOKENS = 1000
    TEMPERATURE = 0.3  # low temperature for more consistent answers across models

    def __init__(
        self,
        api_key: str,
        site_url: str = "https://concord.local",
        site_name: str = "Concord Consensus Engine",
        usage_tracker: Optional[UsageTracker] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.site_url = site_url
        self.site_name = site_name
        self.usage_tracker = usage_tracker
        self.client = client or httpx.AsyncClient()

    async def chat_with_usage(
        self,
        messages: list[dict],
        model: str,
        temperature: float = TEMPERATURE,
        max_tokens: int = MAX_TOKENS,
        timeout: float = 30.0,
    ) -> ModelResponse:
        """
        Send a chat completion request and return the answer with usage data.

        Args:
            messages: List of message dicts with 'role' and 'content'
            model: Full OpenRouter model ID
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate
            timeout: Transport timeout in seconds

        Returns:
            ModelResponse with answer text and usage counters

        Raises:
            httpx.HTTPError: Transport failure or non-success status
            ValueError: Body is not JSON or has no choices
        """
        response = await self.client.post(
            f"{self.BASE_URL}/chat/completions",
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "HTTP-Referer": self.site_url,
                "X-Title": self.site_name,
                "Content-Type": "application/json",
            },
            json={
                "model": model,
                "messages": messages,
                "temperature": temperature,
                "max_tokens": max_tokens,
            },
            timeout=timeout,
        )
        response.raise_for_status()

        data = response.json()
        if not isinstance(data, dict) or not data.get("choices"):
            error = data.get("error") if isinstance(data, dict) else None
            if isinstance(error, dict):
                error = error.get("message")
            raise ValueError(f"OpenRouter API error: {error or 'response has no choices'}")

        message = data["choices"][0].get("message") or {}
        content = message.get("content") or ""
        if not isinstance(content, str):
            raise ValueError(f"OpenRouter API error: unexpected content type {type(content).__name__}")
        usage = data.get("usage") or {}

        if self.usage_tracker and usage:
            from concord.llm.usage import LLMUsage
            self.usage_tracker.record(LLMUsage(
                prompt_tokens=usage.get("prompt_tokens", 0),
                completion_tokens=usage.get("completion_tokens", 0),
                total_tokens=usage.get("total_tokens", 0),
                model=model,
            ))

        logger.debug("llm_call", model=model, tokens=usage.get("total_tokens"))

        return ModelResponse(model=model, answer=content, usage=usage)

    async def query(
        self, model: str, request: QueryRequest, timeout_ms: int
    ) -> Optional[ModelResponse]:
        """
        Ask one model the request's question under a deadline.

        The deadline aborts only this call; cancelling the in-flight request
        closes its connection.

        Args:
            model: Full OpenRouter model ID
            request: Prompt, system instructions and context fragments
            timeout_ms: Deadline in milliseconds

        Returns:
            ModelResponse, or None if the call failed or timed out
        """
        preamble = None
        if request.context:
            preamble = load_and_format("consensus", "context", context=request.render_context())
        messages = request.to_messages(preamble)
        timeout = timeout_ms / 1000

        try:
            return await asyncio.wait_for(
                self.chat_with_usage(messages, model=model, timeout=timeout),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("model_query_timeout", model=model, timeout_ms=timeout_ms)
        except httpx.HTTPStatusError as e:
            logger.warning("model_query_failed", model=model, status=e.response.status_code)
        except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError, AttributeError) as e:
            logger.warning("model_query_failed", model=model, error=str(e))
        return None

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
