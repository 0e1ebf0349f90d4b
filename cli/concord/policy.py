"""Policy Store - Per-tenant engine configuration and engine construction."""

import json
import threading
from pathlib import Path
from typing import Optional, Protocol

from concord.config_loader import get_openrouter_api_key
from concord.consensus.engine import ConsensusEngine
from concord.errors import ConsensusDisabledError, MissingCredentialsError
from concord.logging import get_logger
from concord.models.config import EnginePolicy, ModelTier, PolicyUpdate

logger = get_logger("concord.policy")

# Popular OpenRouter models for consensus
DEFAULT_MODELS = [
    "openai/gpt-4-turbo",
    "anthropic/claude-3-sonnet",
    "google/gemini-pro",
    "meta-llama/llama-3.1-70b-instruct",
]

# Faster/cheaper models for quick consensus
FAST_MODELS = [
    "openai/gpt-4o-mini",
    "anthropic/claude-3-haiku",
    "google/gemini-flash-1.5",
    "meta-llama/llama-3.1-8b-instruct",
]

MODEL_TIERS = {
    "default": DEFAULT_MODELS,
    "fast": FAST_MODELS,
}


def get_available_models(tier: ModelTier = "default") -> list[str]:
    """Model IDs for a tier."""
    return list(FAST_MODELS if tier == "fast" else DEFAULT_MODELS)


def resolve_models(policy: EnginePolicy) -> list[str]:
    """Active model list: the explicit override, else the tier list, cut to model_count."""
    models = policy.models or get_available_models(policy.tier)
    return list(models)[: policy.model_count]


class PolicyStore(Protocol):
    """Key/value store of engine policies keyed by tenant."""

    def get(self, tenant_id: str) -> EnginePolicy:
        ...

    def set(self, tenant_id: str, update: PolicyUpdate) -> EnginePolicy:
        ...


class InMemoryPolicyStore:
    """Process-local policy store. Unknown tenants get the default policy."""

    def __init__(self, policies: Optional[dict[str, EnginePolicy]] = None):
        self._policies: dict[str, EnginePolicy] = dict(policies or {})
        self._lock = threading.Lock()

    def get(self, tenant_id: str) -> EnginePolicy:
        return self._policies.get(tenant_id) or EnginePolicy()

    def set(self, tenant_id: str, update: PolicyUpdate) -> EnginePolicy:
        with self._lock:
            policy = self.get(tenant_id).merged(update)
            self._policies[tenant_id] = policy
        logger.info("policy_updated", tenant_id=tenant_id, fields=sorted(update.model_fields_set))
        return policy


class JsonFilePolicyStore(InMemoryPolicyStore):
    """Policy store persisted to a JSON file ({tenant_id: policy})."""

    def __init__(self, path: Path):
        super().__init__()
        self.path = Path(path)
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        with open(self.path, encoding="utf-8") as f:
            data = json.load(f)
        self._policies = {
            tenant_id: EnginePolicy.model_validate(stored) for tenant_id, stored in data.items()
        }

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {tenant_id: policy.model_dump() for tenant_id, policy in self._policies.items()}
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)

    def set(self, tenant_id: str, update: PolicyUpdate) -> EnginePolicy:
        policy = super().set(tenant_id, update)
        with self._lock:
            self.save()
        return policy


def create_engine(
    tenant_id: str,
    api_key: Optional[str],
    store: PolicyStore,
    require_enabled: bool = False,
    **engine_options,
) -> ConsensusEngine:
    """
    Create a ConsensusEngine bound to the tenant's current policy.

    Args:
        tenant_id: Tenant whose policy applies
        api_key: OpenRouter API key (falls back to OPENROUTER_API_KEY)
        store: Policy store to read the snapshot from
        require_enabled: Refuse to build an engine for a disabled tenant
        **engine_options: Passed through to ConsensusEngine (backend, debug, ...)

    Raises:
        ConsensusDisabledError: require_enabled and the policy is disabled
        ConfigurationError: No credentials or no models to query
    """
    policy = store.get(tenant_id)
    if require_enabled and not policy.enabled:
        raise ConsensusDisabledError(tenant_id)

    api_key = get_openrouter_api_key(api_key)
    if not api_key and engine_options.get("backend") is None:
        raise MissingCredentialsError()

    return ConsensusEngine(
        api_key=api_key,
        models=resolve_models(policy),
        model_count=policy.model_count,
        agreement_threshold=policy.agreement_threshold,
        timeout_ms=policy.timeout_ms,
        **engine_options,
    )
