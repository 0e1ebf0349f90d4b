"""Consensus Engine - Fans a question out to several models and reconciles the answers.

Flow per request:
1. Dispatch one call per active model concurrently
2. Wait for every call to settle (success, timeout or error)
3. With fewer than two answers, fall back to the single-model path
4. Otherwise extract key points, build the similarity matrix and select a leader
"""

import asyncio
import time
from typing import Optional, Protocol, Sequence

from concord.consensus.keypoints import extract_key_points
from concord.consensus.selector import ConsensusSelector
from concord.consensus.similarity import (
    LexicalOverlapSimilarity,
    SimilarityScorer,
    build_similarity_matrix,
)
from concord.errors import ConfigurationError, MissingCredentialsError
from concord.llm.openrouter import ModelResponse, OpenRouterClient
from concord.llm.usage import UsageTracker
from concord.logging import get_logger
from concord.models.output import ConsensusResult, ContextFragment, QueryRequest

logger = get_logger("concord.consensus.engine")

FALLBACK_ANSWER = "I'm sorry, I couldn't get a reliable answer at this time."

# Successful responses needed before voting makes sense
QUORUM = 2


class ModelBackend(Protocol):
    """Anything that can ask one model one question under a deadline."""

    async def query(
        self, model: str, request: QueryRequest, timeout_ms: int
    ) -> Optional[ModelResponse]:
        ...


class ConsensusEngine:
    """
    Multi-model consensus engine.

    Queries the active models in parallel and returns the answer that agrees
    most with its peers. Calls are never raced or cancelled against each
    other: each one settles under its own deadline before aggregation.
    """

    def __init__(
        self,
        api_key: Optional[str],
        models: Sequence[str],
        model_count: int = 3,
        agreement_threshold: float = 0.6,
        timeout_ms: int = 30000,
        backend: Optional[ModelBackend] = None,
        scorer: Optional[SimilarityScorer] = None,
        selector: Optional[ConsensusSelector] = None,
        usage_tracker: Optional[UsageTracker] = None,
        debug: bool = False,
    ):
        if not api_key and backend is None:
            raise MissingCredentialsError()

        self.api_key = api_key
        self.models = list(models)[:model_count]
        if not self.models:
            raise ConfigurationError("No models configured for consensus")

        self.agreement_threshold = agreement_threshold
        self.timeout_ms = timeout_ms
        self.backend = backend
        self.scorer = scorer or LexicalOverlapSimilarity()
        self.selector = selector or ConsensusSelector()
        self.usage_tracker = usage_tracker
        self.debug = debug

    async def get_consensus_answer(
        self,
        prompt: str,
        system_instructions: str = "",
        context: Optional[Sequence[ContextFragment]] = None,
    ) -> ConsensusResult:
        """
        Query every active model and return the reconciled answer.

        Args:
            prompt: The user's question
            system_instructions: Optional system prompt
            context: Retrieved knowledge-base fragments, in relevance order

        Returns:
            ConsensusResult; never raises for backend failures
        """
        request = QueryRequest(
            prompt=prompt,
            system_instructions=system_instructions or None,
            context=list(context or []),
        )

        if self.backend is not None:
            return await self._run(self.backend, request)

        async with OpenRouterClient(self.api_key, usage_tracker=self.usage_tracker) as client:
            return await self._run(client, request)

    async def _run(self, backend: ModelBackend, request: QueryRequest) -> ConsensusResult:
        start = time.perf_counter()

        responses = await self._dispatch(backend, request)

        if len(responses) < QUORUM:
            result = ConsensusResult(
                answer=responses[0].answer if responses else FALLBACK_ANSWER,
                confidence=0.5 if responses else 0.0,
                method="single_model",
                models_queried=len(self.models),
                responses_received=len(responses),
            )
        else:
            try:
                result = self._aggregate(responses)
            except Exception as e:
                logger.error("consensus_aggregation_failed", error=repr(e))
                result = self._degraded(len(responses))

        result.duration_ms = int((time.perf_counter() - start) * 1000)
        if self.debug:
            result.responses = responses

        logger.info(
            "consensus_complete",
            method=result.method,
            confidence=round(result.confidence, 3),
            models_queried=result.models_queried,
            responses_received=result.responses_received,
            outliers=result.outliers,
            duration_ms=result.duration_ms,
        )
        return result

    async def _dispatch(self, backend: ModelBackend, request: QueryRequest) -> list[ModelResponse]:
        """Run all calls concurrently and keep the successes, in dispatch order."""
        tasks = [backend.query(model, request, self.timeout_ms) for model in self.models]
        settled = await asyncio.gather(*tasks, return_exceptions=True)

        responses = []
        for model, outcome in zip(self.models, settled):
            if isinstance(outcome, BaseException):
                logger.error("model_backend_error", model=model, error=repr(outcome))
            elif outcome is not None:
                responses.append(outcome)
        return responses

    def _aggregate(self, responses: list[ModelResponse]) -> ConsensusResult:
        fingerprints = [extract_key_points(r.answer) for r in responses]
        matrix = build_similarity_matrix(fingerprints, self.scorer)
        selection = self.selector.select(responses, matrix)
        if not selection.ranking:
            return self._degraded(len(responses))

        if self.debug:
            logger.debug(
                "consensus_analysis",
                answers={r.model: r.answer[:100] for r in responses},
                matrix=matrix,
            )

        return ConsensusResult(
            answer=selection.answer,
            confidence=selection.confidence,
            method="consensus",
            agreement_score=selection.agreement_score,
            outliers=selection.outliers,
            ranking=selection.ranking,
            models_queried=len(self.models),
            responses_received=len(responses),
            meets_threshold=selection.agreement_score >= self.agreement_threshold,
        )

    def _degraded(self, responses_received: int) -> ConsensusResult:
        """Zero-confidence result when aggregation could not produce a leader."""
        return ConsensusResult(
            answer=FALLBACK_ANSWER,
            confidence=0.0,
            method="none",
            models_queried=len(self.models),
            responses_received=responses_received,
        )
