"""Output Models - Request and result structures for consensus queries."""

from typing import Literal, Optional

from pydantic import BaseModel, Field

from concord.llm.openrouter import ModelResponse


ConsensusMethod = Literal["single_model", "consensus", "none"]


class ContextFragment(BaseModel):
    """A retrieved knowledge-base passage supplied alongside the prompt."""

    source: str = Field(..., description="Document title or origin")
    content: str = Field(..., description="Passage text")


class QueryRequest(BaseModel):
    """One question sent identically to every model."""

    prompt: str
    system_instructions: Optional[str] = None
    context: list[ContextFragment] = Field(default_factory=list)

    def to_messages(self, context_preamble: Optional[str] = None) -> list[dict]:
        """Build the ordered chat message list for a backend call."""
        messages = []
        if self.system_instructions:
            messages.append({"role": "system", "content": self.system_instructions})
        if context_preamble:
            messages.append({"role": "system", "content": context_preamble})
        messages.append({"role": "user", "content": self.prompt})
        return messages

    def render_context(self) -> str:
        """Render context fragments as tagged blocks separated by blank lines."""
        return "\n\n".join(
            f"[Source: {fragment.source}]\n{fragment.content}" for fragment in self.context
        )


class ModelScore(BaseModel):
    """A respondent's average agreement with the group."""

    model: str
    index: int = Field(..., description="Position in dispatch order")
    avg_similarity: float = Field(..., ge=0, le=1)


class ConsensusResult(BaseModel):
    """Final reconciled answer with confidence metadata."""

    answer: str
    confidence: float = Field(..., ge=0, le=1)
    method: ConsensusMethod
    agreement_score: Optional[float] = None
    outliers: list[str] = Field(default_factory=list)
    ranking: list[ModelScore] = Field(default_factory=list)
    duration_ms: int = 0
    models_queried: int = 0
    responses_received: int = 0
    meets_threshold: bool = False
    responses: Optional[list[ModelResponse]] = Field(
        default=None, description="Raw model responses (debug mode only)"
    )
