"""Key-Point Extractor - Reduces a free-text answer to a comparable fingerprint."""

import re

SENTENCE_SPLIT = re.compile(r"[.!?]+")
NUMBER_PATTERN = re.compile(r"\d+(?:\.\d+)?%?")
QUOTED_PATTERN = re.compile(r'"[^"]+"')

# Fragments this short carry too little content to compare
MIN_SENTENCE_LENGTH = 10


def extract_key_points(answer: str) -> list[str]:
    """
    Extract key points from an answer for comparison.

    Three groups are concatenated in order: sentence fragments (trimmed,
    lower-cased, longer than MIN_SENTENCE_LENGTH), numeric tokens verbatim
    (a trailing % is kept), and double-quoted substrings lower-cased.
    Duplicates are kept.

    Args:
        answer: Model answer text

    Returns:
        List of key-point fragments
    """
    sentences = [
        s.strip().lower()
        for s in SENTENCE_SPLIT.split(answer)
        if len(s.strip()) > MIN_SENTENCE_LENGTH
    ]
    numbers = NUMBER_PATTERN.findall(answer)
    quoted = [q.lower() for q in QUOTED_PATTERN.findall(answer)]

    return sentences + numbers + quoted
