"""
HippoRAG
========

Facade that wires chunking, extraction, vector stores, graph building and
retrieval into one object.

Lifecycle:
    1. ``index(docs)`` builds a complete index (chunks, entities, facts,
       knowledge graph). The new graph is published only when every step
       succeeded; a failed pass leaves the previous index in place.
    2. ``retrieve`` / ``retrieve_full`` / ``retrieve_dense`` query it.
    3. ``answer`` generates a response from the best passages.

Usage:
    from hippograph import HippoConfig, HippoRAG, OpenAICompatibleClient
    from hippograph.storage.vectors import OpenAIEmbeddingClient

    rag = HippoRAG(
        config=HippoConfig(),
        embedder=OpenAIEmbeddingClient(),
        completion_service=OpenAICompatibleClient(),
    )
    await rag.index(["Paris is the capital of France.", "..."])

    solutions = await rag.retrieve_full(["What is the capital of France?"], top_k=5)
    reply = await rag.answer("What is the capital of France?")

    # Or build both clients from the settings
    rag = HippoRAG.from_config(HippoConfig.from_yaml("hippograph.yaml"))
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import structlog

from hippograph.config import HippoConfig
from hippograph.exceptions import CollaboratorError
from hippograph.llm.completion import CompletionService, OpenAICompatibleClient
from hippograph.pipeline.chunking import chunk_text
from hippograph.pipeline.graph_builder import (
    FactIndex,
    GraphBuilder,
    IndexArtifacts,
    collect_entities,
    collect_facts,
)
from hippograph.pipeline.openie import Extractor, OpenIEExtractor
from hippograph.retrieval import FactReranker, HippoRetriever, QuerySolution
from hippograph.storage.vectors.base import Embedder, VectorStore
from hippograph.storage.vectors.embeddings import OpenAIEmbeddingClient
from hippograph.storage.vectors.memory import InMemoryVectorStore
from hippograph.utils.hashing import CHUNK_PREFIX, ENTITY_PREFIX, FACT_PREFIX

log = structlog.get_logger()

ANSWER_PROMPT = """Answer the question based on the following documents. If the documents do not contain enough information, say so.

Documents:
{context}

Question: {question}

Answer:"""


@dataclass
class Answer:
    """
    Generated answer with the passages it was based on.

    Attributes:
        question: Original question
        answer: Model output
        solution: Retrieved passages used as context
    """
    question: str
    answer: str
    solution: QuerySolution

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "question": self.question,
            "answer": self.answer,
            "sources": self.solution.to_dict()["chunks"],
        }


class HippoRAG:
    """
    Graph-augmented retrieval over a document collection.

    External vector stores and extractors can be injected; by default the
    three stores live in memory and extraction prompts the completion service.

    Example:
        >>> rag = HippoRAG(config, embedder, completion_service)
        >>> artifacts = await rag.index(documents)
        >>> artifacts.summary()
        {'generation': 1, 'chunks': 12, 'entities': 40, 'facts': 35, ...}
    """

    def __init__(
        self,
        config: Optional[HippoConfig] = None,
        embedder: Optional[Embedder] = None,
        completion_service: Optional[CompletionService] = None,
        chunk_store: Optional[VectorStore] = None,
        entity_store: Optional[VectorStore] = None,
        fact_store: Optional[VectorStore] = None,
        extractor: Optional[Extractor] = None,
    ):
        if embedder is None:
            raise ValueError("an embedder is required")
        if extractor is None and completion_service is None:
            raise ValueError("either an extractor or a completion_service is required")

        self.config = config or HippoConfig()
        self.embedder = embedder
        self.completion_service = completion_service

        self.chunk_store = chunk_store or InMemoryVectorStore(embedder, namespace=CHUNK_PREFIX)
        self.entity_store = entity_store or InMemoryVectorStore(embedder, namespace=ENTITY_PREFIX)
        self.fact_store = fact_store or InMemoryVectorStore(embedder, namespace=FACT_PREFIX)

        self.extractor = extractor or OpenIEExtractor(
            completion_service,
            max_concurrency=self.config.extraction_concurrency,
        )
        self.builder = GraphBuilder()

        reranker = FactReranker(completion_service) if completion_service is not None else None
        self.retriever = HippoRetriever(
            embedder=embedder,
            chunk_store=self.chunk_store,
            entity_store=self.entity_store,
            fact_store=self.fact_store,
            config=self.config,
            reranker=reranker,
        )

        self._index_lock = asyncio.Lock()

    @classmethod
    def from_config(cls, config: Optional[HippoConfig] = None, **components: Any) -> "HippoRAG":
        """
        Build a HippoRAG whose embedder and completion service come from ``config``.

        Uses ``embedding_model``, ``llm_model``, ``openai_base_url`` and
        ``api_key``. Stores and extractor can still be passed as keywords.

        Example:
            >>> rag = HippoRAG.from_config(HippoConfig.from_yaml("hippograph.yaml"))
            >>> await rag.index(documents)
            >>> await rag.close()
        """
        config = config or HippoConfig()
        embedder = OpenAIEmbeddingClient(
            api_key=config.api_key,
            model=config.embedding_model,
            base_url=config.openai_base_url,
        )
        completion_service = OpenAICompatibleClient(
            api_key=config.api_key,
            model=config.llm_model,
            base_url=config.openai_base_url,
        )
        log.info(
            "Building HippoRAG from config",
            embedding_model=config.embedding_model,
            llm_model=config.llm_model,
        )
        return cls(
            config=config,
            embedder=embedder,
            completion_service=completion_service,
            **components,
        )

    async def close(self):
        """Close collaborators that hold connections (HTTP sessions, clients)."""
        for component in (self.embedder, self.completion_service):
            close = getattr(component, "close", None)
            if close is not None:
                await close()
        log.info("HippoRAG collaborators closed")

    @property
    def is_ready(self) -> bool:
        return self.retriever.is_ready

    # ------------------------------------------------------------------
    # Indexing
    # ------------------------------------------------------------------

    async def index(self, docs: List[str]) -> IndexArtifacts:
        """
        Build and publish a new index from ``docs``.

        Args:
            docs: Raw documents

        Returns:
            The published ``IndexArtifacts``

        Raises:
            ValueError: If ``docs`` is empty or contains no text
            ExtractionError: If extraction fails for any chunk
            CollaboratorError: If embedding or storage fails
        """
        if not docs:
            raise ValueError("no documents to index")

        async with self._index_lock:
            log.info(f"Indexing {len(docs)} documents")

            chunks: List[str] = []
            for doc in docs:
                chunks.extend(
                    chunk
                    for chunk in chunk_text(doc, self.config.chunk_size, self.config.chunk_overlap)
                    if chunk.strip()
                )
            # Identical chunks share one id; extract them once
            chunks = list(dict.fromkeys(chunks))
            if not chunks:
                raise ValueError("documents contain no text to index")

            chunk_ids = await self.chunk_store.insert(chunks)
            log.info("Chunks stored", chunks=len(chunk_ids))

            extractions = await self.extractor.extract_batch(chunks)

            entities = collect_entities(extractions)
            entity_ids = await self.entity_store.insert(entities)
            entity_map = dict(zip(entities, entity_ids))
            log.info("Entities stored", entities=len(entity_ids))

            triples = collect_facts(extractions)
            fact_ids = await self.fact_store.insert([triple.to_text() for triple in triples])
            fact_index = FactIndex.from_facts(fact_ids, triples, entity_map)
            log.info("Facts stored", facts=len(fact_ids), distinct=len(fact_index))

            graph = self.builder.build(
                chunk_ids,
                chunks,
                extractions,
                entity_map,
            )
            artifacts = IndexArtifacts(
                snapshot=graph.freeze(),
                fact_index=fact_index,
                chunk_count=len(chunk_ids),
                entity_count=len(entity_ids),
                fact_count=len(fact_index),
            )

            self.retriever.attach(artifacts)
            log.info(f"Indexing complete: {artifacts.summary()}")
            return artifacts

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------

    async def retrieve(self, queries: List[str], top_k: Optional[int] = None) -> List[QuerySolution]:
        """Entity-seeded graph retrieval."""
        return await self.retriever.retrieve(queries, top_k)

    async def retrieve_full(self, queries: List[str], top_k: Optional[int] = None) -> List[QuerySolution]:
        """Fact and passage seeded graph retrieval."""
        return await self.retriever.retrieve_full(queries, top_k)

    async def retrieve_dense(self, queries: List[str], top_k: Optional[int] = None) -> List[QuerySolution]:
        """Dense passage retrieval without the graph."""
        return await self.retriever.retrieve_dense(queries, top_k)

    async def answer(self, question: str, full: bool = True) -> Answer:
        """
        Retrieve ``top_k_chunks`` passages and ask the completion service.

        Args:
            question: User question
            full: Use fused retrieval (True) or entity-seeded retrieval (False)
        """
        if self.completion_service is None:
            raise CollaboratorError("no completion service configured", collaborator="llm")

        retrieve = self.retrieve_full if full else self.retrieve
        solution = (await retrieve([question], self.config.top_k_chunks))[0]

        prompt = ANSWER_PROMPT.format(
            context="\n".join(solution.chunk_texts),
            question=question,
        )
        try:
            text = await self.completion_service.complete(prompt)
        except CollaboratorError:
            raise
        except Exception as e:
            raise CollaboratorError(f"generate answer: {e}", collaborator="llm") from e

        log.info("Answer generated", passages=len(solution), chars=len(text))
        return Answer(question=question, answer=text.strip(), solution=solution)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def stats(self) -> Dict[str, int]:
        """Counts of the published index (all zero before the first ``index``)."""
        artifacts = self.retriever.artifacts
        if artifacts is None:
            return {"chunks": 0, "entities": 0, "facts": 0, "nodes": 0, "edges": 0}
        return {
            "chunks": artifacts.chunk_count,
            "entities": artifacts.entity_count,
            "facts": artifacts.fact_count,
            "nodes": artifacts.snapshot.node_count(),
            "edges": artifacts.snapshot.edge_count(),
        }

    def __repr__(self) -> str:
        return f"HippoRAG(ready={self.is_ready}, stats={self.stats()})"
