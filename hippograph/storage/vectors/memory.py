"""
In-Memory Vector Store
======================

Content-addressed vector store backed by a numpy matrix.

Ids are ``compute_hash(text, namespace)``, so the chunk, entity and fact stores
never collide and the graph can recompute an entity id from its text.

Usage:
    store = InMemoryVectorStore(embedder, namespace=ENTITY_PREFIX)
    ids = await store.insert(["Paris", "France"])
    ids, scores = await store.search(query_vector, top_k=5)
"""

import asyncio
from typing import Dict, List, Tuple

import numpy as np
import structlog

from hippograph.exceptions import CollaboratorError
from hippograph.storage.vectors.base import Embedder, VectorStore
from hippograph.utils.hashing import compute_hash
from hippograph.utils.scoring import cosine_similarity_matrix

log = structlog.get_logger()


class InMemoryVectorStore(VectorStore):
    """
    Vector store kept entirely in process memory.

    Attributes:
        namespace: Prefix applied to every id (e.g. "entity-")
    """

    def __init__(self, embedder: Embedder, namespace: str = ""):
        self.embedder = embedder
        self.namespace = namespace
        self._contents: Dict[str, str] = {}
        self._vectors: Dict[str, np.ndarray] = {}
        self._ids: List[str] = []
        self._matrix: np.ndarray = np.zeros((0, 0), dtype=np.float64)
        self._lock = asyncio.Lock()

    async def insert(self, texts: List[str]) -> List[str]:
        if not texts:
            return []

        async with self._lock:
            ids = [compute_hash(text, self.namespace) for text in texts]

            pending: Dict[str, str] = {}
            for item_id, text in zip(ids, texts):
                if item_id not in self._contents and item_id not in pending:
                    pending[item_id] = text

            if pending:
                new_texts = list(pending.values())
                try:
                    vectors = await self.embedder.embed(new_texts)
                except CollaboratorError:
                    raise
                except Exception as e:
                    raise CollaboratorError(f"embed texts: {e}", collaborator="embedder") from e

                if len(vectors) != len(new_texts):
                    raise CollaboratorError(
                        f"embedder returned {len(vectors)} vectors for {len(new_texts)} texts",
                        collaborator="embedder",
                    )

                for (item_id, text), vector in zip(pending.items(), vectors):
                    self._contents[item_id] = text
                    self._vectors[item_id] = np.asarray(vector, dtype=np.float64)
                    self._ids.append(item_id)
                self._rebuild_matrix()

            log.debug(
                "Vector store insert",
                namespace=self.namespace,
                requested=len(texts),
                embedded=len(pending),
                size=len(self._ids),
            )
            return ids

    def _rebuild_matrix(self) -> None:
        self._matrix = np.vstack([self._vectors[item_id] for item_id in self._ids])

    async def search(
        self,
        query_vector: List[float],
        top_k: int
    ) -> Tuple[List[str], List[float]]:
        if not self._ids or top_k <= 0:
            return [], []

        scores = cosine_similarity_matrix(query_vector, self._matrix)
        limit = min(top_k, len(self._ids))
        # Stable sort keeps insertion order among equal scores
        order = np.argsort(-scores, kind="stable")[:limit]
        return [self._ids[i] for i in order], [float(scores[i]) for i in order]

    async def get_content(self, item_id: str) -> str:
        try:
            return self._contents[item_id]
        except KeyError:
            raise KeyError(f"content not found: {item_id}") from None

    async def get(self, item_id: str) -> List[float]:
        try:
            return self._vectors[item_id].tolist()
        except KeyError:
            raise KeyError(f"embedding not found: {item_id}") from None

    async def size(self) -> int:
        return len(self._ids)

    def __repr__(self) -> str:
        return f"InMemoryVectorStore(namespace={self.namespace!r}, size={len(self._ids)})"
