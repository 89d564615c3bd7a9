"""
Local Sentence-Transformers Embedder
====================================

``Embedder`` running a sentence-transformers model in process.

Key Features:
- Lazy loading (model loaded on first use, not on import)
- Thread-safe initialization
- Encoding runs in the default executor so the event loop is never blocked
- Optional query / passage prefixes for models that need them (E5 family)

Environment Variables:
    EMBEDDING_MODEL: model name (default: sentence-transformers/all-MiniLM-L6-v2)
    EMBEDDING_DEVICE: "cpu" or "cuda" (default: auto-detect)
    EMBEDDING_BATCH_SIZE: batch size (default: 32)
"""

import asyncio
import logging
import os
from threading import Lock
from typing import List, Optional

try:
    from sentence_transformers import SentenceTransformer
    import torch
except ImportError:
    raise ImportError(
        "sentence-transformers and torch are required for SentenceTransformerEmbedder. "
        "Install with: pip install hippograph[local]"
    )

from hippograph.storage.vectors.base import Embedder

logger = logging.getLogger(__name__)


class SentenceTransformerEmbedder(Embedder):
    """
    Embedder backed by a local sentence-transformers model.

    Usage:
        embedder = SentenceTransformerEmbedder()
        vectors = await embedder.embed(["Paris is the capital of France"])

        # E5 models
        embedder = SentenceTransformerEmbedder(
            model_name="intfloat/multilingual-e5-large",
            passage_prefix="passage: ",
            query_prefix="query: ",
        )
    """

    def __init__(
        self,
        model_name: Optional[str] = None,
        device: Optional[str] = None,
        batch_size: int = 32,
        normalize_embeddings: bool = True,
        passage_prefix: str = "",
        query_prefix: str = "",
    ):
        """
        Args:
            model_name: Sentence-transformers model name
            device: Device to use ('cpu', 'cuda', or None for auto-detect)
            batch_size: Batch size for encoding
            normalize_embeddings: Whether to L2-normalise embeddings
            passage_prefix: Prefix prepended to texts passed to ``embed``
            query_prefix: Prefix prepended to the text passed to ``embed_single``
        """
        self.model_name = (
            model_name or
            os.getenv("EMBEDDING_MODEL", "sentence-transformers/all-MiniLM-L6-v2")
        )
        self.device = (
            device or
            os.getenv("EMBEDDING_DEVICE", "cuda" if torch.cuda.is_available() else "cpu")
        )
        self.batch_size = int(os.getenv("EMBEDDING_BATCH_SIZE", str(batch_size)))
        self.normalize_embeddings = normalize_embeddings
        self.passage_prefix = passage_prefix
        self.query_prefix = query_prefix

        self._model: Optional[SentenceTransformer] = None
        self._lock = Lock()

        logger.info(
            "SentenceTransformerEmbedder configured",
            extra={"model": self.model_name, "device": self.device, "batch_size": self.batch_size},
        )

    def _load_model(self) -> SentenceTransformer:
        """Load the model on first use."""
        if self._model is None:
            with self._lock:
                if self._model is None:
                    logger.info(f"Loading embedding model: {self.model_name} on device: {self.device}")
                    try:
                        self._model = SentenceTransformer(self.model_name, device=self.device)
                    except Exception as e:
                        logger.error(f"Failed to load model: {e}", exc_info=True)
                        raise RuntimeError(f"Failed to load embedding model: {e}") from e
        return self._model

    @property
    def is_loaded(self) -> bool:
        return self._model is not None

    def _encode(self, texts: List[str], prefix: str) -> List[List[float]]:
        model = self._load_model()
        embeddings = model.encode(
            [f"{prefix}{text}" for text in texts],
            batch_size=self.batch_size,
            normalize_embeddings=self.normalize_embeddings,
            convert_to_numpy=True,
        )
        return embeddings.tolist()

    async def embed(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, self._encode, texts, self.passage_prefix)

    async def embed_single(self, text: str) -> List[float]:
        loop = asyncio.get_event_loop()
        vectors = await loop.run_in_executor(None, self._encode, [text], self.query_prefix)
        return vectors[0]

    def __repr__(self) -> str:
        return (
            f"SentenceTransformerEmbedder("
            f"model={self.model_name}, "
            f"device={self.device}, "
            f"loaded={self.is_loaded})"
        )
