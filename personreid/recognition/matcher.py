"""Cosine similarity top-1 matcher against a static query."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

LOGGER = logging.getLogger("personreid.recognition.matcher")

# Lower than any cosine similarity of unit vectors.
_NO_SIMILARITY = -1e9


@dataclass(frozen=True)
class Match:
    index: int
    similarity: float


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    if a.shape != b.shape:
        raise ValueError("Embedding shapes do not match")
    return float(np.dot(a, b))


def find_best(
    query: Sequence[np.ndarray],
    candidates: Sequence[np.ndarray],
) -> Optional[Match]:
    """Return the candidate most similar to the first query vector.

    Ties keep the lowest index. No threshold is applied, so any non-empty
    candidate list produces a match unless every similarity is NaN.
    """
    if len(query) == 0 or len(candidates) == 0:
        return None
    reference = query[0]
    best: Optional[Match] = None
    best_score = _NO_SIMILARITY
    for index, candidate in enumerate(candidates):
        score = cosine_similarity(reference, candidate)
        if score > best_score:
            best_score = score
            best = Match(index=index, similarity=score)
    return best


def best_match(query: Sequence[np.ndarray], candidates: Sequence[np.ndarray]) -> Optional[int]:
    """Index of the best candidate, or None when there is nothing to compare."""
    result = find_best(query, candidates)
    return None if result is None else result.index


class QueryMatcher:
    """Holds the query features computed once before tracking starts."""

    def __init__(self, query_features: Sequence[np.ndarray]) -> None:
        self._query: Tuple[np.ndarray, ...] = tuple(
            np.array(vec, dtype=np.float32, copy=True) for vec in query_features
        )
        for vec in self._query:
            vec.setflags(write=False)
        LOGGER.info("Query set holds %d feature vector(s)", len(self._query))

    @property
    def query(self) -> Tuple[np.ndarray, ...]:
        return self._query

    def match(self, candidates: Sequence[np.ndarray]) -> Optional[Match]:
        result = find_best(self._query, candidates)
        if result is not None:
            LOGGER.debug(
                "Best of %d candidates: index=%d similarity=%.3f",
                len(candidates),
                result.index,
                result.similarity,
            )
        return result
