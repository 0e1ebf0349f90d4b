"""Consensus Selector - Picks the representative answer and scores confidence."""

from dataclasses import dataclass, field
from typing import Sequence

from concord.llm.openrouter import ModelResponse
from concord.logging import get_logger
from concord.models.output import ModelScore

logger = get_logger("concord.consensus.selector")

# Respondents whose mean agreement falls below this are outliers
OUTLIER_THRESHOLD = 0.5


@dataclass
class Selection:
    """Leader, outliers and confidence for one set of responses."""

    answer: str
    agreement_score: float
    confidence: float
    outliers: list[str] = field(default_factory=list)
    ranking: list[ModelScore] = field(default_factory=list)


def _empty_selection() -> Selection:
    return Selection(answer="", agreement_score=0.0, confidence=0.0)


def calculate_confidence(agreement_score: float, total_models: int, outlier_count: int) -> float:
    """
    Confidence from the leader's agreement, adjusted for group size and outliers.

    +0.10 with 4+ models and no outliers, +0.05 with 3+ models and at most one
    outlier, -0.10 per outlier; clamped to [0, 1].
    """
    confidence = agreement_score

    if total_models >= 4 and outlier_count == 0:
        confidence += 0.1
    if total_models >= 3 and outlier_count <= 1:
        confidence += 0.05

    confidence -= outlier_count * 0.1

    return max(0.0, min(1.0, confidence))


class ConsensusSelector:
    """
    Selects the answer most similar to its peers.

    The respondent with the highest row mean in the similarity matrix
    (self-similarity included) leads; equal means keep dispatch order.
    """

    def __init__(self, outlier_threshold: float = OUTLIER_THRESHOLD):
        self.outlier_threshold = outlier_threshold

    def select(
        self, responses: Sequence[ModelResponse], matrix: Sequence[Sequence[float]]
    ) -> Selection:
        """
        Choose the leader and compute agreement metadata.

        Args:
            responses: Successful responses in dispatch order
            matrix: Square similarity matrix aligned with responses

        Returns:
            Selection; a zero-confidence empty selection when the input is
            empty or the matrix does not match the responses
        """
        n = len(responses)
        if n == 0:
            return _empty_selection()
        if len(matrix) != n or any(len(row) != n for row in matrix):
            logger.warning("similarity_matrix_mismatch", responses=n, rows=len(matrix))
            return _empty_selection()
        if n == 1:
            return Selection(
                answer=responses[0].answer,
                agreement_score=1.0,
                confidence=0.5,
                ranking=[ModelScore(model=responses[0].model, index=0, avg_similarity=1.0)],
            )

        scores = [
            ModelScore(model=response.model, index=i, avg_similarity=sum(matrix[i]) / n)
            for i, response in enumerate(responses)
        ]
        # sorted() is stable: ties keep dispatch order
        ranking = sorted(scores, key=lambda s: s.avg_similarity, reverse=True)

        leader = ranking[0]
        outliers = [s.model for s in ranking if s.avg_similarity < self.outlier_threshold]
        confidence = calculate_confidence(leader.avg_similarity, n, len(outliers))

        return Selection(
            answer=responses[leader.index].answer,
            agreement_score=leader.avg_similarity,
            confidence=confidence,
            outliers=outliers,
            ranking=ranking,
        )
