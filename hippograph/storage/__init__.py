"""
Storage Layer
=============

Graph and vector storage for HippoGraph.

Components:
- graph/: in-memory knowledge graph, read-only snapshots, Personalized PageRank
- vectors/: embedders and content-addressed vector stores

Architecture:
    Query -> Embedder -> query vector
                            |
            +---------------+---------------+
            |               |               |
            v               v               v
       [entities]        [facts]        [chunks]
       VectorStore     VectorStore     VectorStore
            |               |               |
            +-------+-------+-------+-------+
                    |
                    v
              seed weights
                    |
                    v
        PPR over GraphSnapshot -> ranked chunks
"""

from hippograph.storage.graph import (
    Edge,
    EdgeKind,
    GraphSnapshot,
    KnowledgeGraph,
    Node,
    NodeKind,
    personalized_pagerank,
)
from hippograph.storage.vectors import (
    Embedder,
    InMemoryVectorStore,
    OpenAIEmbeddingClient,
    VectorStore,
)

__all__ = [
    # Graph
    "Edge",
    "EdgeKind",
    "GraphSnapshot",
    "KnowledgeGraph",
    "Node",
    "NodeKind",
    "personalized_pagerank",
    # Vectors
    "Embedder",
    "InMemoryVectorStore",
    "OpenAIEmbeddingClient",
    "VectorStore",
]
