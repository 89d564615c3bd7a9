"""
HippoGraph Test Configuration
=============================

Shared fixtures and deterministic collaborators for all tests.

- KeywordEmbedder: bag-of-words vectors, one dimension per distinct token
- StaticExtractor: extraction results looked up by chunk text
- StubCompletion: fixed reply or fixed error
"""

import re
from typing import Dict, List, Optional

import pytest

from hippograph.config import HippoConfig
from hippograph.llm.completion import CompletionService
from hippograph.pipeline.openie import ExtractionResult, Extractor, Triple
from hippograph.storage.graph import EdgeKind, KnowledgeGraph, NodeKind
from hippograph.storage.vectors.base import Embedder


class KeywordEmbedder(Embedder):
    """
    Deterministic embedder for tests.

    Every distinct lowercase token gets its own dimension the first time it is
    seen, so vectors of already embedded texts never change and unrelated
    words never collide.
    """

    def __init__(self, dim: int = 512):
        self.dim = dim
        self.vocab: Dict[str, int] = {}
        self.embedded: List[str] = []

    def vector(self, text: str) -> List[float]:
        values = [0.0] * self.dim
        for token in re.findall(r"\w+", text.lower()):
            index = self.vocab.setdefault(token, len(self.vocab))
            values[index] += 1.0
        return values

    async def embed(self, texts: List[str]) -> List[List[float]]:
        self.embedded.extend(texts)
        return [self.vector(text) for text in texts]


class FailingEmbedder(Embedder):
    """Embedder whose every call fails."""

    async def embed(self, texts: List[str]) -> List[List[float]]:
        raise RuntimeError("embedding backend down")


class StaticExtractor(Extractor):
    """Returns pre-defined extractions; raises for texts containing ``fail_on``."""

    max_concurrency = 2

    def __init__(
        self,
        results: Dict[str, ExtractionResult],
        fail_on: Optional[str] = None,
    ):
        self.results = results
        self.fail_on = fail_on
        self.seen: List[str] = []

    async def extract(self, text: str) -> ExtractionResult:
        self.seen.append(text)
        if self.fail_on is not None and self.fail_on in text:
            raise RuntimeError(f"extraction failed for {text!r}")
        return self.results.get(text, ExtractionResult())


class StubCompletion(CompletionService):
    """Completion service with a canned reply (or error)."""

    def __init__(self, reply: str = "", error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.prompts: List[str] = []

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


# ============================================================================
# Sample corpus
# ============================================================================

PARIS_DOC = "Paris is the capital of France."
EIFFEL_DOC = "The Eiffel Tower is located in Paris."
BERLIN_DOC = "Berlin is the capital of Germany."


@pytest.fixture
def corpus() -> List[str]:
    return [PARIS_DOC, EIFFEL_DOC, BERLIN_DOC]


@pytest.fixture
def extractions() -> Dict[str, ExtractionResult]:
    return {
        PARIS_DOC: ExtractionResult(
            entities=["Paris", "France"],
            triples=[Triple("Paris", "is capital of", "France")],
        ),
        EIFFEL_DOC: ExtractionResult(
            entities=["Eiffel Tower", "Paris"],
            triples=[Triple("Eiffel Tower", "located in", "Paris")],
        ),
        BERLIN_DOC: ExtractionResult(
            entities=["Berlin", "Germany"],
            triples=[Triple("Berlin", "is capital of", "Germany")],
        ),
    }


@pytest.fixture
def embedder() -> KeywordEmbedder:
    return KeywordEmbedder()


@pytest.fixture
def extractor(extractions) -> StaticExtractor:
    return StaticExtractor(extractions)


@pytest.fixture
def config() -> HippoConfig:
    """Default configuration without a query deadline."""
    return HippoConfig(query_timeout=None, enable_fact_rerank=True)


@pytest.fixture
def paris_france_graph() -> KnowledgeGraph:
    """
    Two chunks: A mentions Paris, B mentions France and holds the fact
    (Paris, capital of, France).
    """
    graph = KnowledgeGraph()
    graph.add_node("chunk-a", "Paris is lovely.", NodeKind.CHUNK)
    graph.add_node("chunk-b", "Paris is the capital of France.", NodeKind.CHUNK)
    graph.add_node("entity-paris", "Paris", NodeKind.ENTITY)
    graph.add_node("entity-france", "France", NodeKind.ENTITY)

    graph.add_edge("chunk-a", "entity-paris", 1.0, EdgeKind.PASSAGE)
    graph.add_edge("entity-paris", "chunk-a", 1.0, EdgeKind.PASSAGE_BACK)
    graph.add_edge("chunk-b", "entity-france", 1.0, EdgeKind.PASSAGE)
    graph.add_edge("entity-france", "chunk-b", 1.0, EdgeKind.PASSAGE_BACK)
    graph.add_edge("entity-paris", "entity-france", 1.0, EdgeKind.FACT)
    graph.add_edge("entity-france", "entity-paris", 0.5, EdgeKind.FACT_BACK)
    return graph
