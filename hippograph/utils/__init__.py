"""
HippoGraph Utilities
====================

- hashing: content-addressed ids (chunk-, entity-, fact- namespaces)
- scoring: cosine similarity and min-max normalisation
"""

from hippograph.utils.hashing import (
    compute_hash,
    CHUNK_PREFIX,
    ENTITY_PREFIX,
    FACT_PREFIX,
)
from hippograph.utils.scoring import (
    cosine_similarity,
    cosine_similarity_matrix,
    min_max_normalize,
)

__all__ = [
    "compute_hash",
    "CHUNK_PREFIX",
    "ENTITY_PREFIX",
    "FACT_PREFIX",
    "cosine_similarity",
    "cosine_similarity_matrix",
    "min_max_normalize",
]
