"""
Personalized PageRank
=====================

Seed-biased random walk with restart over the knowledge graph.

Algorithm (per iteration):
    1. Every node holding score pushes it along its adjacency list, split
       equally over all entries (edge weights are ignored, repeated entries
       receive repeated shares).
    2. Dangling nodes (no neighbours) send their whole score back to the
       seeds, proportionally to the normalised seed weights.
    3. Teleport mixing:
           new[id] = (1 - damping) * seed[id] + damping * propagated[id]
    4. Stop when max |new - previous| <= tolerance, or after max_iter rounds.

Only ids reachable from the seeds ever appear in the score map; absent ids
have an implicit score of 0.

Usage:
    scores = personalized_pagerank(
        snapshot,
        {"entity-abc": 0.82, "entity-def": 0.40},
        damping=0.5,
        max_iter=100,
        tolerance=1e-6,
    )
"""

from typing import Dict, Mapping, Protocol, Sequence

import structlog

from hippograph.exceptions import EmptySeedSetError

log = structlog.get_logger()


class NeighborSource(Protocol):
    """Anything that can answer adjacency lookups (KnowledgeGraph, GraphSnapshot)."""

    def get_neighbors(self, node_id: str) -> Sequence[str]:
        ...


def personalized_pagerank(
    graph: NeighborSource,
    seed_weights: Mapping[str, float],
    damping: float = 0.5,
    max_iter: int = 100,
    tolerance: float = 1e-6,
) -> Dict[str, float]:
    """
    Run Personalized PageRank from ``seed_weights``.

    Args:
        graph: Graph exposing ``get_neighbors``
        seed_weights: Node id -> initial (unnormalised) weight
        damping: Probability of following an edge instead of teleporting [0, 1]
        max_iter: Maximum number of iterations (>= 1)
        tolerance: Convergence threshold on the max absolute score change

    Returns:
        Node id -> score for every node touched by propagation

    Raises:
        EmptySeedSetError: If the seed weights sum to a non-positive total
        ValueError: If a parameter is out of range
    """
    if not 0.0 <= damping <= 1.0:
        raise ValueError(f"damping must be in [0, 1], got {damping}")
    if max_iter < 1:
        raise ValueError(f"max_iter must be >= 1, got {max_iter}")
    if tolerance < 0:
        raise ValueError(f"tolerance must be >= 0, got {tolerance}")

    if not seed_weights:
        return {}

    total = sum(seed_weights.values())
    if total <= 0:
        raise EmptySeedSetError(
            f"seed weights must have a positive total, got {total}"
        )

    seeds = {node_id: weight / total for node_id, weight in seed_weights.items()}
    scores: Dict[str, float] = dict(seeds)

    iterations = 0
    max_diff = 0.0
    for iterations in range(1, max_iter + 1):
        propagated: Dict[str, float] = dict.fromkeys(scores, 0.0)

        for node_id, score in scores.items():
            if score == 0.0:
                continue

            neighbors = graph.get_neighbors(node_id)
            if not neighbors:
                # Dangling node: restart at the seeds
                for seed_id, seed_weight in seeds.items():
                    propagated[seed_id] = propagated.get(seed_id, 0.0) + score * seed_weight
            else:
                share = score / len(neighbors)
                for neighbor_id in neighbors:
                    propagated[neighbor_id] = propagated.get(neighbor_id, 0.0) + share

        new_scores = {
            node_id: (1.0 - damping) * seeds.get(node_id, 0.0) + damping * value
            for node_id, value in propagated.items()
        }

        max_diff = max(
            abs(value - scores.get(node_id, 0.0))
            for node_id, value in new_scores.items()
        )
        scores = new_scores

        if max_diff <= tolerance:
            break

    log.debug(
        "PPR finished",
        seeds=len(seeds),
        iterations=iterations,
        max_diff=max_diff,
        scored_nodes=len(scores),
    )
    return scores
