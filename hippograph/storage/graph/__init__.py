"""
HippoGraph Graph Storage
========================

In-memory knowledge graph and Personalized PageRank.

Components:
- KnowledgeGraph: mutable graph used during indexing (writer-locked)
- GraphSnapshot: read-only view shared by concurrent retrievals
- personalized_pagerank: seed-biased score propagation

Example:
    from hippograph.storage.graph import KnowledgeGraph, NodeKind, personalized_pagerank

    graph = KnowledgeGraph()
    graph.add_node("entity-paris", "Paris", NodeKind.ENTITY)
    scores = personalized_pagerank(graph.freeze(), {"entity-paris": 1.0})
"""

from hippograph.storage.graph.models import Edge, EdgeKind, Node, NodeKind
from hippograph.storage.graph.store import GraphSnapshot, KnowledgeGraph
from hippograph.storage.graph.ppr import personalized_pagerank

__all__ = [
    "Edge",
    "EdgeKind",
    "Node",
    "NodeKind",
    "GraphSnapshot",
    "KnowledgeGraph",
    "personalized_pagerank",
]
