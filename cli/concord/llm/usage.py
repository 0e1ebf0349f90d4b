"""Usage Tracker - Accumulates token usage and estimates cost of model calls."""

from dataclasses import dataclass, asdict
from datetime import datetime, timezone


@dataclass
class LLMUsage:
    """A single LLM call's token usage."""

    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    model: str
    tenant_id: str = ""
    timestamp: str = ""        # ISO 8601


# USD per 1K tokens
DEFAULT_PRICING = {
    "anthropic/claude-3.5-sonnet": {"prompt": 0.003, "completion": 0.015},
    "openai/gpt-4o": {"prompt": 0.005, "completion": 0.015},
    "openai/gpt-4o-mini": {"prompt": 0.00015, "completion": 0.0006},
    "google/gemini-pro-1.5": {"prompt": 0.00125, "completion": 0.005},
    "default": {"prompt": 0.001, "completion": 0.002},
}


class UsageTracker:
    """
    Accumulates token usage across consensus requests.

    Records usage from each successful OpenRouter call so that quota
    consumption can be attributed to a tenant.
    """

    def __init__(self, tenant_id: str = "", pricing: dict | None = None):
        self.tenant_id = tenant_id
        self._records: list[LLMUsage] = []
        self._pricing = pricing if pricing is not None else DEFAULT_PRICING

    def record(self, usage: LLMUsage):
        """Record a single LLM call's usage, labelling it with the tracker's tenant."""
        if not usage.tenant_id and self.tenant_id:
            usage.tenant_id = self.tenant_id
        if not usage.timestamp:
            usage.timestamp = datetime.now(timezone.utc).isoformat()
        self._records.append(usage)

    def records_list(self) -> list[dict]:
        """Return all records as serializable dicts."""
        return [asdict(r) for r in self._records]

    @property
    def total_prompt_tokens(self) -> int:
        return sum(r.prompt_tokens for r in self._records)

    @property
    def total_completion_tokens(self) -> int:
        return sum(r.completion_tokens for r in self._records)

    @property
    def total_tokens(self) -> int:
        """Total tokens (prompt + completion) across all recorded calls."""
        return self.total_prompt_tokens + self.total_completion_tokens

    @property
    def call_count(self) -> int:
        return len(self._records)

    def _price_for(self, model: str) -> dict:
        return self._pricing.get(model) or self._pricing.get("default", {})

    def compute_cost(self) -> dict:
        """
        Compute estimated cost based on recorded usage and the pricing table.

        Returns:
            Dict with total_cost_usd, total_tokens, total_calls and a by_model breakdown.
        """
        by_model: dict[str, dict] = {}
        total_cost = 0.0

        for record in self._records:
            pricing = self._price_for(record.model)
            call_cost = (
                record.prompt_tokens / 1000 * pricing.get("prompt", 0.0)
                + record.completion_tokens / 1000 * pricing.get("completion", 0.0)
            )

            entry = by_model.setdefault(record.model, {
                "prompt_tokens": 0,
                "completion_tokens": 0,
                "total_tokens": 0,
                "cost_usd": 0.0,
                "calls": 0,
            })
            entry["prompt_tokens"] += record.prompt_tokens
            entry["completion_tokens"] += record.completion_tokens
            entry["total_tokens"] += record.prompt_tokens + record.completion_tokens
            entry["cost_usd"] += call_cost
            entry["calls"] += 1
            total_cost += call_cost

        return {
            "total_cost_usd": total_cost,
            "total_tokens": self.total_tokens,
            "total_calls": self.call_count,
            "by_model": by_model,
        }
