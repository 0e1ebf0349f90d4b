"""Consensus Module - Key points, similarity, selection and fan-out."""

from .keypoints import extract_key_points
from .similarity import LexicalOverlapSimilarity, SimilarityScorer, build_similarity_matrix
from .selector import ConsensusSelector, Selection, calculate_confidence
from .engine import ConsensusEngine, ModelBackend, FALLBACK_ANSWER

__all__ = [
    "extract_key_points",
    "LexicalOverlapSimilarity",
    "SimilarityScorer",
    "build_similarity_matrix",
    "ConsensusSelector",
    "Selection",
    "calculate_confidence",
    "ConsensusEngine",
    "ModelBackend",
    "FALLBACK_ANSWER",
]
