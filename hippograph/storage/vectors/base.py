"""
Collaborator Interfaces
=======================

Capability interfaces for embedding generation and vector-similarity storage.

The retrieval core only talks to these contracts, so in-memory and
externally-backed implementations are interchangeable:

    Embedder                     VectorStore
    ├── OpenAIEmbeddingClient    ├── InMemoryVectorStore
    └── SentenceTransformerEmbedder └── QdrantVectorStore

All methods are coroutines. Cancellation of the awaiting task aborts the
in-flight call.
"""

from abc import ABC, abstractmethod
from typing import List, Tuple


class Embedder(ABC):
    """Turns text into dense vectors."""

    @abstractmethod
    async def embed(self, texts: List[str]) -> List[List[float]]:
        """
        Embed a batch of texts.

        Order preserving, one vector per input text. Fails atomically: either
        every text gets a vector or an exception is raised.
        """

    async def embed_single(self, text: str) -> List[float]:
        """Embed a single text."""
        vectors = await self.embed([text])
        if not vectors:
            raise ValueError("embedder returned no vector")
        return vectors[0]


class VectorStore(ABC):
    """
    Content-addressed store of texts and their embeddings.

    ``insert`` is idempotent: identical text always maps to the same id and is
    never embedded twice.
    """

    @abstractmethod
    async def insert(self, texts: List[str]) -> List[str]:
        """Store texts (embedding new ones) and return one id per input text."""

    @abstractmethod
    async def search(
        self,
        query_vector: List[float],
        top_k: int
    ) -> Tuple[List[str], List[float]]:
        """Return ids and cosine scores of the ``top_k`` nearest texts, best first."""

    @abstractmethod
    async def get_content(self, item_id: str) -> str:
        """Original text for ``item_id``."""

    @abstractmethod
    async def get(self, item_id: str) -> List[float]:
        """Stored vector for ``item_id``."""

    @abstractmethod
    async def size(self) -> int:
        """Number of stored items."""
