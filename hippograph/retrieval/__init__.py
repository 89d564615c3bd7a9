"""
HippoGraph Retrieval
====================

Query-time strategies over an indexed knowledge graph.

Components:
- HippoRetriever: entity-seeded, fused and dense retrieval
- FactReranker: best-effort LLM reordering of retrieved facts
- QuerySolution: ranked passages for one query
"""

from hippograph.retrieval.models import QuerySolution, build_solution, rank_chunks
from hippograph.retrieval.orchestrator import (
    HippoRetriever,
    fact_seed_weights,
    passage_seed_weights,
)
from hippograph.retrieval.rerank import (
    FactReranker,
    RerankResult,
    build_rerank_prompt,
    parse_rerank_response,
)

__all__ = [
    "QuerySolution",
    "build_solution",
    "rank_chunks",
    "HippoRetriever",
    "fact_seed_weights",
    "passage_seed_weights",
    "FactReranker",
    "RerankResult",
    "build_rerank_prompt",
    "parse_rerank_response",
]
