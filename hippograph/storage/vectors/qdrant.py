"""
Qdrant Vector Store
===================

``VectorStore`` backed by a Qdrant collection.

Each text becomes one point:
    id:      UUID5 derived from the content-addressed HippoGraph id
    vector:  embedding of the text
    payload: {"hippo_id": <content hash id>, "text": <original text>}

qdrant-client is synchronous here, so every call runs in the default executor
instead of blocking the event loop.

Usage:
    from qdrant_client import QdrantClient

    store = QdrantVectorStore(
        client=QdrantClient(host="localhost", port=6333),
        collection_name="hippograph_entities",
        embedder=embedder,
        namespace=ENTITY_PREFIX,
        vector_size=1536,
    )
    await store.ensure_collection()
"""

import asyncio
import functools
import uuid
from typing import Any, Dict, List, Optional, Tuple

import structlog

try:
    from qdrant_client.models import Distance, PointStruct, VectorParams
except ImportError:
    raise ImportError(
        "qdrant-client is required for QdrantVectorStore. "
        "Install with: pip install hippograph[qdrant]"
    )

from hippograph.exceptions import CollaboratorError
from hippograph.storage.vectors.base import Embedder, VectorStore
from hippograph.utils.hashing import compute_hash

log = structlog.get_logger()


def point_id_for(item_id: str) -> str:
    """Deterministic Qdrant point id for a HippoGraph id."""
    return str(uuid.uuid5(uuid.NAMESPACE_URL, item_id))


class QdrantVectorStore(VectorStore):
    """
    Vector store persisted in Qdrant.

    Args:
        client: ``qdrant_client.QdrantClient`` instance
        collection_name: Target collection
        embedder: Embedder used for inserted texts
        namespace: Prefix applied to every id
        vector_size: Embedding dimension (needed to create the collection)
    """

    def __init__(
        self,
        client: Any,
        collection_name: str,
        embedder: Embedder,
        namespace: str = "",
        vector_size: Optional[int] = None,
    ):
        self.client = client
        self.collection_name = collection_name
        self.embedder = embedder
        self.namespace = namespace
        self.vector_size = vector_size

        log.info(
            f"QdrantVectorStore initialized - "
            f"collection={collection_name}, namespace={namespace!r}"
        )

    async def _run(self, method: str, **kwargs) -> Any:
        loop = asyncio.get_event_loop()
        call = functools.partial(getattr(self.client, method), **kwargs)
        try:
            return await loop.run_in_executor(None, call)
        except Exception as e:
            log.error(f"Qdrant {method} failed: {e}")
            raise CollaboratorError(f"qdrant {method}: {e}", collaborator="vector_store") from e

    async def ensure_collection(self) -> None:
        """Create the collection (cosine distance) if it does not exist yet."""
        exists = await self._run("collection_exists", collection_name=self.collection_name)
        if exists:
            return
        if self.vector_size is None:
            raise ValueError("vector_size is required to create a Qdrant collection")

        await self._run(
            "create_collection",
            collection_name=self.collection_name,
            vectors_config=VectorParams(size=self.vector_size, distance=Distance.COSINE),
        )
        log.info(f"Created Qdrant collection {self.collection_name}")

    async def insert(self, texts: List[str]) -> List[str]:
        if not texts:
            return []

        ids = [compute_hash(text, self.namespace) for text in texts]
        unique: Dict[str, str] = dict(zip(ids, texts))

        existing = await self._run(
            "retrieve",
            collection_name=self.collection_name,
            ids=[point_id_for(item_id) for item_id in unique],
            with_payload=True,
            with_vectors=False,
        )
        known = {record.payload.get("hippo_id") for record in existing if record.payload}
        pending = {item_id: text for item_id, text in unique.items() if item_id not in known}

        if pending:
            try:
                vectors = await self.embedder.embed(list(pending.values()))
            except CollaboratorError:
                raise
            except Exception as e:
                raise CollaboratorError(f"embed texts: {e}", collaborator="embedder") from e

            if len(vectors) != len(pending):
                raise CollaboratorError(
                    f"embedder returned {len(vectors)} vectors for {len(pending)} texts",
                    collaborator="embedder",
                )

            points = [
                PointStruct(
                    id=point_id_for(item_id),
                    vector=list(vector),
                    payload={"hippo_id": item_id, "text": text},
                )
                for (item_id, text), vector in zip(pending.items(), vectors)
            ]
            await self._run("upsert", collection_name=self.collection_name, points=points)

        log.debug(
            "Qdrant insert",
            collection=self.collection_name,
            requested=len(texts),
            embedded=len(pending),
        )
        return ids

    async def search(
        self,
        query_vector: List[float],
        top_k: int
    ) -> Tuple[List[str], List[float]]:
        if top_k <= 0:
            return [], []

        response = await self._run(
            "query_points",
            collection_name=self.collection_name,
            query=list(query_vector),
            limit=top_k,
            with_payload=True,
        )

        ids: List[str] = []
        scores: List[float] = []
        for point in response.points:
            payload = point.payload or {}
            item_id = payload.get("hippo_id")
            if not item_id:
                log.warning(f"Qdrant point {point.id} has no hippo_id payload, skipping")
                continue
            ids.append(item_id)
            scores.append(float(point.score))
        return ids, scores

    async def _retrieve_one(self, item_id: str, with_vectors: bool) -> Any:
        records = await self._run(
            "retrieve",
            collection_name=self.collection_name,
            ids=[point_id_for(item_id)],
            with_payload=True,
            with_vectors=with_vectors,
        )
        if not records:
            raise KeyError(f"item not found: {item_id}")
        return records[0]

    async def get_content(self, item_id: str) -> str:
        record = await self._retrieve_one(item_id, with_vectors=False)
        return (record.payload or {}).get("text", "")

    async def get(self, item_id: str) -> List[float]:
        record = await self._retrieve_one(item_id, with_vectors=True)
        return list(record.vector)

    async def size(self) -> int:
        result = await self._run("count", collection_name=self.collection_name, exact=True)
        return int(result.count)
