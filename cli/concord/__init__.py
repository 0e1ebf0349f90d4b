"""Concord - Multi-model consensus answering.

Queries several independent LLM backends in parallel and reconciles their
free-text answers into one answer with a confidence score, so that a single
model's hallucination is less likely to reach the end user.
"""

__version__ = "0.1.0"
