"""
HippoRetriever
==============

Query-time orchestration over an indexed knowledge graph.

Strategies:
    retrieve       entity similarity -> seeds -> PPR -> chunks
    retrieve_full  fact similarity (+ optional LLM rerank) and dense passage
                   similarity fused into one seed map -> PPR -> chunks
    retrieve_dense passage similarity only, no graph

Flow of ``retrieve_full`` for one query:

    query ──embed──► vector ──┬──► fact store ──► (rerank) ──► entity seeds
                              │                                     │
                              └──► chunk store ──► min-max × 0.05 ──┤
                                                                    ▼
                                                          PPR over snapshot
                                                                    │
                                                                    ▼
                                                       chunk nodes, top_k

Queries of one batch run concurrently (bounded by ``max_concurrent_queries``),
each with its own seed map over the shared read-only snapshot. The first
failing query cancels the rest of the batch and its error propagates.

Example:
    >>> retriever = HippoRetriever(embedder, chunks, entities, facts, config)
    >>> retriever.attach(artifacts)
    >>> solutions = await retriever.retrieve_full(["capital of France?"], top_k=5)
    >>> solutions[0].chunk_texts[0]
"""

import asyncio
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

import structlog

from hippograph.config import HippoConfig
from hippograph.exceptions import CollaboratorError, NotReadyError, QueryTimeoutError
from hippograph.pipeline.graph_builder import FactIndex, IndexArtifacts
from hippograph.retrieval.models import QuerySolution, build_solution, rank_chunks
from hippograph.retrieval.rerank import FactReranker, RerankResult
from hippograph.storage.graph import GraphSnapshot, NodeKind, personalized_pagerank
from hippograph.storage.vectors.base import Embedder, VectorStore
from hippograph.utils.scoring import min_max_normalize

log = structlog.get_logger()

QueryHandler = Callable[[str, IndexArtifacts, int], Awaitable[QuerySolution]]


def fact_seed_weights(
    fact_ids: Sequence[str],
    fact_scores: Sequence[float],
    order: Sequence[int],
    fact_index: FactIndex,
    snapshot: GraphSnapshot,
) -> Dict[str, float]:
    """
    Spread fact scores over the entities of each fact.

    The fact at rank ``r`` of ``order`` receives ``fact_scores[r]`` (the score
    at that rank position, not its own similarity), split evenly over its
    entities. Contributions to the same entity add up. Entity ids are the
    ones recorded in ``fact_index`` at index time; ids without a node in
    ``snapshot`` are ignored.
    """
    seeds: Dict[str, float] = {}
    for rank in range(min(len(order), len(fact_scores))):
        fact_id = fact_ids[order[rank]]
        entities = fact_index.entities_for(fact_id)
        if not entities:
            continue
        share = fact_scores[rank] / len(entities)
        for entity_id in fact_index.entity_ids_for(fact_id):
            node = snapshot.get_node(entity_id)
            if node is None or node.kind != NodeKind.ENTITY:
                continue
            seeds[entity_id] = seeds.get(entity_id, 0.0) + share
    return seeds


def passage_seed_weights(
    chunk_ids: Sequence[str],
    chunk_scores: Sequence[float],
    snapshot: GraphSnapshot,
    coefficient: float,
) -> Dict[str, float]:
    """Min-max normalised passage scores scaled by ``coefficient``, graph chunks only."""
    seeds: Dict[str, float] = {}
    for chunk_id, score in zip(chunk_ids, min_max_normalize(chunk_scores)):
        node = snapshot.get_node(chunk_id)
        if node is None or node.kind != NodeKind.CHUNK:
            continue
        seeds[chunk_id] = score * coefficient
    return seeds


class HippoRetriever:
    """
    Retrieval over a frozen graph snapshot and three vector stores.

    Attributes:
        config: Retrieval parameters (top-k sizes, PPR, concurrency)
        reranker: Optional fact reranker used by ``retrieve_full``
    """

    def __init__(
        self,
        embedder: Embedder,
        chunk_store: VectorStore,
        entity_store: VectorStore,
        fact_store: VectorStore,
        config: Optional[HippoConfig] = None,
        reranker: Optional[FactReranker] = None,
    ):
        self.embedder = embedder
        self.chunk_store = chunk_store
        self.entity_store = entity_store
        self.fact_store = fact_store
        self.config = config or HippoConfig()
        self.reranker = reranker
        self._artifacts: Optional[IndexArtifacts] = None

        log.info(
            "HippoRetriever initialized",
            rerank=self.reranker is not None and self.config.enable_fact_rerank,
            max_concurrent_queries=self.config.max_concurrent_queries,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def attach(self, artifacts: IndexArtifacts) -> None:
        """Publish the result of an indexing pass. In-flight queries keep their snapshot."""
        self._artifacts = artifacts
        log.info("Retriever attached to index", **artifacts.summary())

    @property
    def is_ready(self) -> bool:
        return self._artifacts is not None

    @property
    def artifacts(self) -> Optional[IndexArtifacts]:
        return self._artifacts

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def retrieve(self, queries: List[str], top_k: Optional[int] = None) -> List[QuerySolution]:
        """Entity-seeded retrieval for each query."""
        return await self._run_batch("entity", queries, top_k, self._retrieve_one)

    async def retrieve_full(self, queries: List[str], top_k: Optional[int] = None) -> List[QuerySolution]:
        """Fused fact + passage seeded retrieval for each query."""
        return await self._run_batch("fused", queries, top_k, self._retrieve_full_one)

    async def retrieve_dense(self, queries: List[str], top_k: Optional[int] = None) -> List[QuerySolution]:
        """Plain dense passage retrieval (no graph propagation)."""
        return await self._run_batch("dense", queries, top_k, self._retrieve_dense_one)

    # ------------------------------------------------------------------
    # Batch scheduling
    # ------------------------------------------------------------------

    async def _run_batch(
        self,
        mode: str,
        queries: List[str],
        top_k: Optional[int],
        handler: QueryHandler,
    ) -> List[QuerySolution]:
        artifacts = self._artifacts
        if artifacts is None:
            raise NotReadyError()

        if not queries:
            return []

        k = self.config.top_k_chunks if top_k is None else top_k
        semaphore = asyncio.Semaphore(self.config.max_concurrent_queries)
        timeout = self.config.query_timeout

        async def run(index: int, query: str) -> QuerySolution:
            async with semaphore:
                if timeout is None:
                    return await handler(query, artifacts, k)
                try:
                    return await asyncio.wait_for(handler(query, artifacts, k), timeout)
                except asyncio.TimeoutError as e:
                    raise QueryTimeoutError(
                        f"query {index} exceeded {timeout}s: {query[:50]!r}"
                    ) from e

        tasks = [asyncio.ensure_future(run(i, q)) for i, q in enumerate(queries)]
        try:
            solutions = list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            # Let cancelled siblings unwind before the error leaves the batch
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        log.info(
            "Retrieval complete",
            mode=mode,
            queries=len(queries),
            top_k=k,
            generation=artifacts.snapshot.generation,
        )
        return solutions

    # ------------------------------------------------------------------
    # Per-query pipelines
    # ------------------------------------------------------------------

    async def _retrieve_one(self, query: str, artifacts: IndexArtifacts, top_k: int) -> QuerySolution:
        vector = await self._embed_query(query)
        entity_ids, entity_scores = await self._search(
            self.entity_store, "entity_store", vector, self.config.top_k_entities
        )

        seeds = {
            entity_id: score
            for entity_id, score in zip(entity_ids, entity_scores)
            if entity_id in artifacts.snapshot
        }
        return self._propagate(query, artifacts.snapshot, seeds, top_k)

    async def _retrieve_full_one(self, query: str, artifacts: IndexArtifacts, top_k: int) -> QuerySolution:
        vector = await self._embed_query(query)

        fact_ids, fact_scores = await self._search(
            self.fact_store, "fact_store", vector, self.config.top_k_facts
        )
        rerank = await self._rerank_facts(query, fact_ids)

        seeds = fact_seed_weights(
            fact_ids, fact_scores, rerank.order, artifacts.fact_index, artifacts.snapshot
        )

        chunk_ids, chunk_scores = await self._search(
            self.chunk_store, "chunk_store", vector, top_k
        )
        # Passage seeds overwrite; chunk and entity ids never collide in practice
        seeds.update(
            passage_seed_weights(
                chunk_ids, chunk_scores, artifacts.snapshot, self.config.passage_node_weight
            )
        )

        log.debug(
            "Fused seeds",
            facts=len(fact_ids),
            rerank_fallback=rerank.fallback,
            seeds=len(seeds),
        )
        return self._propagate(query, artifacts.snapshot, seeds, top_k)

    async def _retrieve_dense_one(self, query: str, artifacts: IndexArtifacts, top_k: int) -> QuerySolution:
        vector = await self._embed_query(query)
        chunk_ids, chunk_scores = await self._search(
            self.chunk_store, "chunk_store", vector, top_k
        )

        # Chunks left in the store by a failed indexing pass are not part of the snapshot
        ranked = [
            (chunk_id, score)
            for chunk_id, score in zip(chunk_ids, chunk_scores)
            if chunk_id in artifacts.snapshot
        ]
        return build_solution(query, artifacts.snapshot, ranked)

    def _propagate(
        self,
        query: str,
        snapshot: GraphSnapshot,
        seeds: Dict[str, float],
        top_k: int,
    ) -> QuerySolution:
        seeds = {node_id: weight for node_id, weight in seeds.items() if weight > 0}
        if not seeds:
            log.warning(f"No positive seeds for query, returning empty result: {query[:50]!r}")
            return QuerySolution(query=query)

        scores = personalized_pagerank(snapshot, seeds, **self.config.ppr_params())
        ranked = rank_chunks(snapshot, scores, top_k)
        return build_solution(query, snapshot, ranked)

    # ------------------------------------------------------------------
    # Collaborator calls
    # ------------------------------------------------------------------

    async def _rerank_facts(self, query: str, fact_ids: List[str]) -> RerankResult:
        if self.reranker is None or not self.config.enable_fact_rerank:
            return RerankResult.identity(len(fact_ids), reason="disabled")
        if not fact_ids:
            return RerankResult.identity(0, reason="empty")

        facts = [
            await self._get_content(self.fact_store, "fact_store", fact_id)
            for fact_id in fact_ids
        ]
        return await self.reranker.rerank(query, facts)

    async def _embed_query(self, query: str) -> List[float]:
        try:
            return await self.embedder.embed_single(query)
        except CollaboratorError:
            raise
        except Exception as e:
            raise CollaboratorError(f"embed query: {e}", collaborator="embedder") from e

    async def _search(
        self,
        store: VectorStore,
        name: str,
        vector: List[float],
        top_k: int,
    ):
        try:
            return await store.search(vector, top_k)
        except CollaboratorError:
            raise
        except Exception as e:
            raise CollaboratorError(f"search: {e}", collaborator=name) from e

    async def _get_content(self, store: VectorStore, name: str, item_id: str) -> str:
        try:
            return await store.get_content(item_id)
        except CollaboratorError:
            raise
        except Exception as e:
            raise CollaboratorError(f"get content {item_id}: {e}", collaborator=name) from e
