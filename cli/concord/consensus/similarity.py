"""Similarity Engine - Pairwise agreement between key-point fingerprints."""

import re
from typing import Protocol, Sequence

_PUNCTUATION = re.compile(r"[^\w\s]")

# Tokens this short ("the", "and", "is") are ignored by word overlap
MIN_WORD_LENGTH = 3
WORD_OVERLAP_THRESHOLD = 0.5


class SimilarityScorer(Protocol):
    """Scores agreement between two fingerprints in [0, 1]."""

    def score(self, a: Sequence[str], b: Sequence[str]) -> float:
        ...


def normalize_fragment(fragment: str) -> str:
    """Lower-case, strip punctuation and trim a fragment."""
    return _PUNCTUATION.sub("", str(fragment).lower()).strip()


def word_overlap(text1: str, text2: str) -> float:
    """
    Word overlap between two strings.

    Shared words longer than MIN_WORD_LENGTH divided by the larger of the
    two word sets.
    """
    words1 = {w for w in text1.split() if len(w) > MIN_WORD_LENGTH}
    words2 = {w for w in text2.split() if len(w) > MIN_WORD_LENGTH}

    if not words1 or not words2:
        return 0.0

    return len(words1 & words2) / max(len(words1), len(words2))


class LexicalOverlapSimilarity:
    """
    Tolerant Jaccard-like overlap of key points.

    A fragment of A matches when some fragment of B contains it, is
    contained by it, or shares more than half of its significant words.
    Each fragment of A counts at most once; the score is matches divided by
    the larger fingerprint. Fingerprints are compared as sets of normalized
    fragments, so the measure is not symmetric in general.
    """

    def score(self, a: Sequence[str], b: Sequence[str]) -> float:
        if not a and not b:
            return 1.0
        if not a or not b:
            return 0.0

        set_a = _normalized_set(a)
        set_b = _normalized_set(b)

        matches = 0
        for item in set_a:
            for other in set_b:
                if (
                    other in item
                    or item in other
                    or word_overlap(item, other) > WORD_OVERLAP_THRESHOLD
                ):
                    matches += 1
                    break

        larger = max(len(set_a), len(set_b))
        return matches / larger if larger else 0.0


def _normalized_set(fragments: Sequence[str]) -> list[str]:
    """Normalized, non-empty, de-duplicated fragments in first-seen order."""
    normalized = (normalize_fragment(f) for f in fragments)
    return list(dict.fromkeys(f for f in normalized if f))


def build_similarity_matrix(
    fingerprints: Sequence[Sequence[str]],
    scorer: SimilarityScorer,
) -> list[list[float]]:
    """
    Build the N x N agreement matrix across all respondents.

    The diagonal is fixed at 1.0. Off-diagonal cells hold the mean of both
    scoring directions so the matrix is symmetric whatever the scorer.

    Args:
        fingerprints: One key-point list per respondent, in dispatch order
        scorer: Pairwise similarity implementation

    Returns:
        Square matrix of scores in [0, 1]
    """
    n = len(fingerprints)
    matrix = [[0.0] * n for _ in range(n)]

    for i in range(n):
        matrix[i][i] = 1.0
        for j in range(i + 1, n):
            forward = scorer.score(fingerprints[i], fingerprints[j])
            backward = scorer.score(fingerprints[j], fingerprints[i])
            value = min(1.0, max(0.0, (forward + backward) / 2))
            matrix[i][j] = value
            matrix[j][i] = value

    return matrix
