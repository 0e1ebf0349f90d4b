"""Concord FastAPI Server - HTTP API for the consensus engine."""

from datetime import datetime, timezone
from typing import Optional
import time

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ValidationError

from concord import __version__
from concord.config_loader import get_openrouter_api_key, get_policy_path
from concord.consensus.engine import ModelBackend
from concord.errors import ConfigurationError, ConsensusDisabledError, MissingCredentialsError
from concord.logging import bind_tenant, get_logger
from concord.models.config import PolicyUpdate
from concord.models.output import ContextFragment
from concord.policy import (
    DEFAULT_MODELS,
    FAST_MODELS,
    InMemoryPolicyStore,
    JsonFilePolicyStore,
    PolicyStore,
    create_engine,
)

logger = get_logger("concord.api")

app = FastAPI(
    title="Concord API",
    description="Multi-model consensus answering - API Server",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, restrict to specific origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

SYSTEM_PROMPT = (
    "You are a knowledgeable assistant. Answer accurately and concisely, "
    "using the provided knowledge base context when it is relevant."
)
TEST_SYSTEM_PROMPT = "You are a helpful assistant. Give a brief, direct answer."

_policy_store: Optional[PolicyStore] = None


def get_policy_store() -> PolicyStore:
    """Shared policy store: JSON file when CONCORD_POLICY_PATH is set, else in-memory."""
    global _policy_store
    if _policy_store is None:
        path = get_policy_path()
        _policy_store = JsonFilePolicyStore(path) if path else InMemoryPolicyStore()
    return _policy_store


def get_api_key() -> Optional[str]:
    return get_openrouter_api_key()


def get_backend() -> Optional[ModelBackend]:
    """Model backend override (None = OpenRouter)."""
    return None


class ChatMessage(BaseModel):
    role: str
    content: str


class ConsensusChatRequest(BaseModel):
    messages: list[ChatMessage]
    system_prompt: Optional[str] = None
    context: list[ContextFragment] = []


class ConsensusTestRequest(BaseModel):
    query: str = "What is 2 + 2?"


def _build_engine(tenant_id: str, api_key, store, backend, **options):
    try:
        return create_engine(tenant_id, api_key, store, backend=backend, **options)
    except ConsensusDisabledError:
        raise HTTPException(
            status_code=400,
            detail={"error": "Consensus mode is not enabled", "hint": "Enable consensus in settings first"},
        )
    except ConfigurationError as e:
        logger.error("consensus_not_configured", tenant_id=tenant_id, error=str(e))
        if isinstance(e, MissingCredentialsError):
            hint = "Set OPENROUTER_API_KEY environment variable"
        else:
            hint = "Set a model tier or explicit models in consensus settings"
        raise HTTPException(status_code=500, detail={"error": str(e), "hint": hint})


@app.get("/")
async def root():
    """Service information."""
    return {
        "name": "Concord API",
        "version": __version__,
        "status": "running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/api/consensus/{tenant_id}/settings")
async def get_settings(tenant_id: str, store: PolicyStore = Depends(get_policy_store)):
    """Current consensus settings for a tenant plus the tier model lists."""
    return {
        "success": True,
        "settings": store.get(tenant_id).model_dump(),
        "availableModels": {
            "default": DEFAULT_MODELS,
            "fast": FAST_MODELS,
        },
    }


@app.patch("/api/consensus/{tenant_id}/settings")
def update_settings(
    tenant_id: str,
    update: PolicyUpdate,
    store: PolicyStore = Depends(get_policy_store),
):
    """Merge a partial update into the tenant's settings."""
    try:
        policy = store.set(tenant_id, update)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))
    return {
        "success": True,
        "settings": policy.model_dump(),
        "message": "Consensus settings updated",
    }


@app.post("/api/consensus/{tenant_id}")
async def consensus_chat(
    tenant_id: str,
    request: ConsensusChatRequest,
    store: PolicyStore = Depends(get_policy_store),
    api_key: Optional[str] = Depends(get_api_key),
    backend: Optional[ModelBackend] = Depends(get_backend),
):
    """Chat completion answered by multi-model consensus."""
    if not request.messages:
        raise HTTPException(status_code=400, detail={"error": "Messages array is required"})

    bind_tenant(tenant_id)
    engine = _build_engine(tenant_id, api_key, store, backend, require_enabled=True)
    prompt = request.messages[-1].content

    try:
        result = await engine.get_consensus_answer(
            prompt,
            request.system_prompt or SYSTEM_PROMPT,
            request.context,
        )
    except Exception as e:
        logger.error("consensus_chat_failed", tenant_id=tenant_id, error=repr(e))
        raise HTTPException(status_code=500, detail={"error": "Failed to generate consensus response"})

    return {
        "id": f"chatcmpl-consensus-{int(time.time() * 1000)}",
        "choices": [{
            "message": {"role": "assistant", "content": result.answer},
            "finish_reason": "stop",
        }],
        "consensus": {
            "method": result.method,
            "confidence": result.confidence,
            "modelsQueried": result.models_queried,
            "responsesReceived": result.responses_received,
            "agreementScore": result.agreement_score,
            "outliers": result.outliers,
            "meetsThreshold": result.meets_threshold,
            "duration": result.duration_ms,
        },
        "sources": [{"title": fragment.source} for fragment in request.context],
    }


@app.post("/api/consensus/{tenant_id}/test")
async def consensus_test(
    tenant_id: str,
    request: ConsensusTestRequest,
    store: PolicyStore = Depends(get_policy_store),
    api_key: Optional[str] = Depends(get_api_key),
    backend: Optional[ModelBackend] = Depends(get_backend),
):
    """Run the engine in debug mode on a sample query."""
    engine = _build_engine(tenant_id, api_key, store, backend, debug=True)
    result = await engine.get_consensus_answer(request.query, TEST_SYSTEM_PROMPT)
    return {
        "success": True,
        "query": request.query,
        "result": result.model_dump(),
    }
