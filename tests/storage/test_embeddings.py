"""
Tests for OpenAIEmbeddingClient

HTTP is mocked at the aiohttp session level.
"""

from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from hippograph.exceptions import CollaboratorError
from hippograph.storage.vectors import OpenAIEmbeddingClient


def mock_session(status=200, payload=None, text="", error=None):
    """aiohttp session whose ``post`` yields a canned response."""
    response = MagicMock()
    response.status = status
    response.json = AsyncMock(return_value=payload)
    response.text = AsyncMock(return_value=text)

    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=response)
    context.__aexit__ = AsyncMock(return_value=False)

    session = MagicMock()
    session.closed = False
    if error is not None:
        session.post = MagicMock(side_effect=error)
    else:
        session.post = MagicMock(return_value=context)
    return session


@pytest.fixture
def client():
    return OpenAIEmbeddingClient(api_key="test-key", base_url="http://embeddings.local/v1/")


class TestEmbed:

    @pytest.mark.asyncio
    async def test_orders_by_index(self, client):
        client.session = mock_session(payload={
            "data": [
                {"index": 1, "embedding": [0.0, 1.0]},
                {"index": 0, "embedding": [1.0, 0.0]},
            ]
        })

        vectors = await client.embed(["Paris", "France"])

        assert vectors == [[1.0, 0.0], [0.0, 1.0]]
        args, kwargs = client.session.post.call_args
        assert args[0] == "http://embeddings.local/v1/embeddings"
        assert kwargs["json"] == {"input": ["Paris", "France"], "model": "text-embedding-3-small"}
        assert kwargs["headers"]["Authorization"] == "Bearer test-key"

    @pytest.mark.asyncio
    async def test_empty_input_skips_request(self, client):
        client.session = mock_session()
        assert await client.embed([]) == []
        client.session.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_embed_single(self, client):
        client.session = mock_session(payload={"data": [{"index": 0, "embedding": [0.5]}]})
        assert await client.embed_single("Paris") == [0.5]

    @pytest.mark.asyncio
    async def test_http_error(self, client):
        client.session = mock_session(status=429, text="rate limited")
        with pytest.raises(CollaboratorError, match="429"):
            await client.embed(["Paris"])

    @pytest.mark.asyncio
    async def test_transport_error(self, client):
        client.session = mock_session(error=aiohttp.ClientConnectionError("refused"))
        with pytest.raises(CollaboratorError) as exc_info:
            await client.embed(["Paris"])
        assert exc_info.value.collaborator == "embedder"

    @pytest.mark.asyncio
    async def test_missing_vector(self, client):
        client.session = mock_session(payload={"data": [{"index": 0, "embedding": [1.0]}]})
        with pytest.raises(CollaboratorError, match="1 of 2"):
            await client.embed(["Paris", "France"])

    @pytest.mark.asyncio
    async def test_api_error_payload(self, client):
        client.session = mock_session(payload={"error": {"message": "bad model"}})
        with pytest.raises(CollaboratorError, match="bad model"):
            await client.embed(["Paris"])


class TestSession:

    @pytest.mark.asyncio
    async def test_close(self, client):
        session = mock_session()
        session.close = AsyncMock()
        client.session = session

        await client.close()

        session.close.assert_awaited_once()
