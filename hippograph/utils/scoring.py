"""
Scoring Helpers
===============

Vector similarity and score normalisation used by the vector stores and the
fused retrieval strategy.
"""

from typing import List, Sequence

import numpy as np


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity between two vectors.

    Returns 0.0 for empty vectors, mismatched dimensions or zero-norm vectors.
    """
    if len(a) == 0 or len(a) != len(b):
        return 0.0

    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    norm = np.linalg.norm(va) * np.linalg.norm(vb)
    if norm == 0:
        return 0.0
    return float(np.dot(va, vb) / norm)


def cosine_similarity_matrix(query: Sequence[float], matrix: np.ndarray) -> np.ndarray:
    """
    Cosine similarity of ``query`` against every row of ``matrix``.

    Rows with zero norm (or a zero query) score 0.0.
    """
    q = np.asarray(query, dtype=np.float64)
    if matrix.size == 0:
        return np.zeros(0, dtype=np.float64)

    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(q)
    dots = matrix @ q
    with np.errstate(divide="ignore", invalid="ignore"):
        scores = np.where(norms > 0, dots / norms, 0.0)
    return scores


def min_max_normalize(scores: Sequence[float]) -> List[float]:
    """
    Min-max normalise scores into [0, 1].

    A uniform list (max == min) normalises to 1.0 for every entry.

    Example:
        >>> min_max_normalize([0.0, 1.0, 2.0])
        [0.0, 0.5, 1.0]
        >>> min_max_normalize([0.3, 0.3, 0.3])
        [1.0, 1.0, 1.0]
    """
    if len(scores) == 0:
        return []

    values = np.asarray(scores, dtype=np.float64)
    low = values.min()
    high = values.max()
    if high == low:
        return [1.0] * len(values)
    return ((values - low) / (high - low)).tolist()
