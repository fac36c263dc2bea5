"""Cosine similarity and full-scan ranking over stored embeddings.

The scan is linear in the number of stored vectors (O(n·d) per query),
which is the intended design up to ``SIMILARITY_SCALE_LIMIT`` entries.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import AsyncIterable, Collection, List, Sequence, Tuple

import numpy as np

from catalog.errors import DimensionMismatchError
from codegen import settings

logger = logging.getLogger("codegen.matching.similarity")


@dataclass
class SimilarityCandidate:
    component_id: str
    score: float
    position: int  # insertion order within the scan


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between *a* and *b*, in [-1, 1].

    Returns 0.0 when either vector has zero magnitude.

    Raises:
        DimensionMismatchError: If the vectors differ in length
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise DimensionMismatchError(va.size, vb.size)

    norm_a = np.linalg.norm(va)
    norm_b = np.linalg.norm(vb)
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0

    similarity = float(np.dot(va, vb) / (norm_a * norm_b))
    return max(-1.0, min(1.0, similarity))


async def rank_candidates(
    query: Sequence[float],
    scan: AsyncIterable[Tuple[str, Sequence[float]]],
    exclude_ids: Collection[str] = (),
) -> List[SimilarityCandidate]:
    """Score every vector in *scan* against *query*, best first.

    Ties keep scan (insertion) order.

    Raises:
        DimensionMismatchError: If a stored vector's length differs from the query's
    """
    query_vec = np.asarray(query, dtype=np.float64)
    candidates: List[SimilarityCandidate] = []
    position = 0

    async for component_id, vector in scan:
        if component_id in exclude_ids:
            continue
        score = cosine_similarity(query_vec, vector)
        candidates.append(SimilarityCandidate(component_id, score, position))
        position += 1

    if position > settings.SIMILARITY_SCALE_LIMIT:
        logger.warning(
            "Similarity scan covered %d vectors (designed for up to %d); "
            "consider an approximate index",
            position, settings.SIMILARITY_SCALE_LIMIT,
        )

    # sorted() is stable, so equal scores stay in insertion order
    return sorted(candidates, key=lambda c: c.score, reverse=True)
