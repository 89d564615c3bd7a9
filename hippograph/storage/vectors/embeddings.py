"""
OpenAI-compatible Embedding Client
==================================

``Embedder`` that calls an OpenAI-style ``/embeddings`` endpoint with aiohttp.

Works with OpenAI and any server exposing the same API (vLLM, LiteLLM, ...).

Environment Variables:
    OPENAI_API_KEY: API key (used when ``api_key`` is not passed)
    OPENAI_BASE_URL: Base URL (default: https://api.openai.com/v1)

Usage:
    client = OpenAIEmbeddingClient(model="text-embedding-3-small")
    vectors = await client.embed(["Paris", "France"])
    await client.close()
"""

import os
from typing import Any, Dict, List, Optional

import aiohttp
import structlog

from hippograph.exceptions import CollaboratorError
from hippograph.storage.vectors.base import Embedder

log = structlog.get_logger()

DEFAULT_BASE_URL = "https://api.openai.com/v1"


class OpenAIEmbeddingClient(Embedder):
    """
    Embedding client for OpenAI-compatible APIs.

    Attributes:
        model: Embedding model name
        base_url: API base URL (without trailing slash)
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "text-embedding-3-small",
        base_url: Optional[str] = None,
        timeout: float = 60.0,
    ):
        self.api_key = api_key or os.getenv("OPENAI_API_KEY", "")
        self.model = model
        self.base_url = (base_url or os.getenv("OPENAI_BASE_URL") or DEFAULT_BASE_URL).rstrip("/")
        self.timeout = timeout
        self.session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
        return self.session

    async def close(self):
        """Close the aiohttp session."""
        if self.session and not self.session.closed:
            await self.session.close()

    async def embed(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []

        session = await self._get_session()
        payload = {"input": texts, "model": self.model}
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            async with session.post(
                f"{self.base_url}/embeddings",
                json=payload,
                headers=headers
            ) as response:
                if response.status != 200:
                    error_text = await response.text()
                    log.error(f"Embedding API error {response.status}: {error_text}")
                    raise CollaboratorError(
                        f"embedding API error: {response.status} - {error_text}",
                        collaborator="embedder",
                    )
                data = await response.json()
        except aiohttp.ClientError as e:
            raise CollaboratorError(f"embedding request failed: {e}", collaborator="embedder") from e

        return self._parse_response(data, len(texts))

    def _parse_response(self, data: Dict[str, Any], expected: int) -> List[List[float]]:
        """Order embeddings by their ``index`` field and check completeness."""
        if data.get("error"):
            message = data["error"].get("message", "unknown error")
            raise CollaboratorError(f"embedding API error: {message}", collaborator="embedder")

        result: List[Optional[List[float]]] = [None] * expected
        for item in data.get("data") or []:
            index = item.get("index", -1)
            if 0 <= index < expected:
                result[index] = item.get("embedding")

        if any(vector is None for vector in result):
            raise CollaboratorError(
                f"embedding API returned {sum(v is not None for v in result)} of {expected} vectors",
                collaborator="embedder",
            )
        return result

    def __repr__(self) -> str:
        return f"OpenAIEmbeddingClient(model={self.model}, base_url={self.base_url})"
