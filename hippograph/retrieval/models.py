"""
Retrieval Models
================

Result types of the retrieval strategies and the chunk ranking step shared
by all of them.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Tuple

from hippograph.storage.graph import GraphSnapshot, NodeKind


@dataclass
class QuerySolution:
    """
    Ranked passages for one query.

    ``chunk_ids``, ``chunk_texts`` and ``scores`` are aligned by index and
    sorted by descending score.
    """
    query: str
    chunk_ids: List[str] = field(default_factory=list)
    chunk_texts: List[str] = field(default_factory=list)
    scores: List[float] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.chunk_ids)

    def top(self) -> Tuple[str, str, float]:
        """Best (chunk_id, chunk_text, score); raises IndexError when empty."""
        return self.chunk_ids[0], self.chunk_texts[0], self.scores[0]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "query": self.query,
            "chunks": [
                {"chunk_id": chunk_id, "text": text, "score": score}
                for chunk_id, text, score in zip(self.chunk_ids, self.chunk_texts, self.scores)
            ],
        }

    def __repr__(self) -> str:
        best = f"{self.scores[0]:.4f}" if self.scores else "-"
        return f"<QuerySolution(query={self.query[:40]!r}, chunks={len(self)}, best={best})>"


def rank_chunks(
    snapshot: GraphSnapshot,
    scores: Mapping[str, float],
    top_k: int,
) -> List[Tuple[str, float]]:
    """
    Keep chunk nodes only, sort by descending score, truncate to ``top_k``.

    Ties are broken by node id so the order is deterministic.
    """
    chunks = []
    for node_id, score in scores.items():
        node = snapshot.get_node(node_id)
        if node is not None and node.kind == NodeKind.CHUNK:
            chunks.append((node_id, score))

    chunks.sort(key=lambda item: (-item[1], item[0]))
    return chunks[:max(top_k, 0)]


def build_solution(
    query: str,
    snapshot: GraphSnapshot,
    ranked: List[Tuple[str, float]],
) -> QuerySolution:
    """Turn ranked (chunk_id, score) pairs into a ``QuerySolution``."""
    solution = QuerySolution(query=query)
    for chunk_id, score in ranked:
        node = snapshot.get_node(chunk_id)
        solution.chunk_ids.append(chunk_id)
        solution.chunk_texts.append(node.content if node is not None else "")
        solution.scores.append(score)
    return solution
