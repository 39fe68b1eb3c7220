"""Lexical-overlap retrieval.

A chunk scores one point for every question term that occurs anywhere in its
lower-cased text. Containment is a plain substring test, so ``capital`` also
matches ``capitalism``. Repeated occurrences inside a chunk do not add to the
score, but a term repeated in the question counts once per repetition.
"""

from __future__ import annotations

from collections.abc import Sequence

from docqa.services.qa.types import Chunk, ScoredChunk

DEFAULT_TOP_K = 5
MIN_TERM_LENGTH = 3


def tokenize_question(question: str) -> list[str]:
    return [token for token in question.lower().split() if len(token) >= MIN_TERM_LENGTH]


def score_chunks(chunks: Sequence[Chunk], question: str) -> list[ScoredChunk]:
    terms = tokenize_question(question)

    scored: list[ScoredChunk] = []
    for chunk in chunks:
        lowered = chunk.text.lower()
        score = sum(1 for term in terms if term in lowered)
        scored.append(ScoredChunk(chunk=chunk, score=score))
    return scored


def select_top(scored_chunks: Sequence[ScoredChunk], k: int = DEFAULT_TOP_K) -> list[ScoredChunk]:
    if k <= 0:
        raise ValueError("k must be > 0")

    relevant = [item for item in scored_chunks if item.score > 0]
    # sorted() is stable, so equal scores keep their pool order.
    relevant = sorted(relevant, key=lambda item: item.score, reverse=True)
    return relevant[:k]
