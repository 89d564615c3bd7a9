"""
HippoGraph Vector Storage
=========================

Embedders and content-addressed vector stores.

Components:
- Embedder, VectorStore: capability interfaces
- InMemoryVectorStore: numpy-backed store (default)
- OpenAIEmbeddingClient: OpenAI-compatible embeddings over aiohttp

Optional backends (import explicitly, extra dependencies):
- hippograph.storage.vectors.qdrant.QdrantVectorStore  (pip install hippograph[qdrant])
- hippograph.storage.vectors.local.SentenceTransformerEmbedder  (pip install hippograph[local])

Example:
    from hippograph.storage.vectors import InMemoryVectorStore, OpenAIEmbeddingClient

    embedder = OpenAIEmbeddingClient()
    store = InMemoryVectorStore(embedder, namespace="chunk-")
    ids = await store.insert(["Paris is the capital of France."])
"""

from hippograph.storage.vectors.base import Embedder, VectorStore
from hippograph.storage.vectors.memory import InMemoryVectorStore
from hippograph.storage.vectors.embeddings import OpenAIEmbeddingClient

__all__ = [
    "Embedder",
    "VectorStore",
    "InMemoryVectorStore",
    "OpenAIEmbeddingClient",
]
