"""Concord Models - Pydantic schemas and data models."""

from .config import EnginePolicy, PolicyUpdate
from .output import ContextFragment, QueryRequest, ModelScore, ConsensusResult

__all__ = [
    "EnginePolicy",
    "PolicyUpdate",
    "ContextFragment",
    "QueryRequest",
    "ModelScore",
    "ConsensusResult",
]
