"""
Tests for HippoRetriever

Vector stores are mocked so seeds are fully controlled; the graph is real.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import FailingEmbedder, KeywordEmbedder, StubCompletion
from hippograph.config import HippoConfig
from hippograph.exceptions import CollaboratorError, NotReadyError, QueryTimeoutError
from hippograph.pipeline import ExtractionResult, FactIndex, GraphBuilder, IndexArtifacts, Triple
from hippograph.retrieval import (
    FactReranker,
    HippoRetriever,
    QuerySolution,
    fact_seed_weights,
    passage_seed_weights,
)
from hippograph.utils.hashing import ENTITY_PREFIX, compute_hash


def make_store(ids=(), scores=(), contents=None):
    store = MagicMock()
    store.search = AsyncMock(return_value=(list(ids), list(scores)))
    contents = contents or {}
    store.get_content = AsyncMock(side_effect=lambda item_id: contents[item_id])
    return store


def eid(entity):
    return compute_hash(entity, ENTITY_PREFIX)


def eids(*entities):
    return {entity: eid(entity) for entity in entities}


@pytest.fixture
def paris_artifacts(paris_france_graph):
    return IndexArtifacts(snapshot=paris_france_graph.freeze(), fact_index=FactIndex())


@pytest.fixture
def capitals_artifacts():
    """Two chunks, each holding one capital-of fact, with content-hashed entity ids."""
    extractions = [
        ExtractionResult(["Paris", "France"], [Triple("Paris", "is capital of", "France")]),
        ExtractionResult(["Berlin", "Germany"], [Triple("Berlin", "is capital of", "Germany")]),
    ]
    entities = ["Paris", "France", "Berlin", "Germany"]
    graph = GraphBuilder().build(
        ["c-paris", "c-berlin"],
        ["Paris is the capital of France.", "Berlin is the capital of Germany."],
        extractions,
        {entity: eid(entity) for entity in entities},
    )
    fact_index = FactIndex.from_facts(
        ["fact-1", "fact-2"],
        [extractions[0].triples[0], extractions[1].triples[0]],
        eids(*entities),
    )
    return IndexArtifacts(snapshot=graph.freeze(), fact_index=fact_index)


def fused_retriever(artifacts, config, reranker=None):
    retriever = HippoRetriever(
        embedder=KeywordEmbedder(),
        chunk_store=make_store(["c-paris", "c-berlin"], [0.8, 0.2]),
        entity_store=make_store(),
        fact_store=make_store(
            ["fact-1", "fact-2"],
            [0.9, 0.1],
            contents={
                "fact-1": "Paris is capital of France",
                "fact-2": "Berlin is capital of Germany",
            },
        ),
        config=config,
        reranker=reranker,
    )
    retriever.attach(artifacts)
    return retriever


class TestReadiness:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method", ["retrieve", "retrieve_full", "retrieve_dense"])
    async def test_not_ready(self, method, config):
        retriever = HippoRetriever(KeywordEmbedder(), make_store(), make_store(), make_store(), config)

        assert not retriever.is_ready
        with pytest.raises(NotReadyError):
            await getattr(retriever, method)(["query"], top_k=3)

    def test_attach_marks_ready(self, paris_artifacts, config):
        retriever = HippoRetriever(KeywordEmbedder(), make_store(), make_store(), make_store(), config)
        retriever.attach(paris_artifacts)
        assert retriever.is_ready
        assert retriever.artifacts is paris_artifacts

    @pytest.mark.asyncio
    async def test_empty_batch(self, paris_artifacts, config):
        retriever = HippoRetriever(KeywordEmbedder(), make_store(), make_store(), make_store(), config)
        retriever.attach(paris_artifacts)
        assert await retriever.retrieve([]) == []


class TestEntitySeededRetrieval:

    @pytest.fixture
    def retriever(self, paris_artifacts):
        config = HippoConfig(ppr_max_iter=2, ppr_tolerance=0.0)
        retriever = HippoRetriever(
            embedder=KeywordEmbedder(),
            chunk_store=make_store(),
            entity_store=make_store(["entity-paris"], [1.0]),
            fact_store=make_store(),
            config=config,
        )
        retriever.attach(paris_artifacts)
        return retriever

    @pytest.mark.asyncio
    async def test_paris_france_scores(self, retriever):
        [solution] = await retriever.retrieve(["Paris"], top_k=5)

        assert solution.query == "Paris"
        assert solution.chunk_ids == ["chunk-a", "chunk-b"]
        assert solution.chunk_texts == ["Paris is lovely.", "Paris is the capital of France."]
        assert solution.scores == [pytest.approx(0.125), pytest.approx(0.0625)]

    @pytest.mark.asyncio
    async def test_top_k_truncates(self, retriever):
        [solution] = await retriever.retrieve(["Paris"], top_k=1)
        assert solution.chunk_ids == ["chunk-a"]

    @pytest.mark.asyncio
    async def test_default_top_k(self, retriever):
        [solution] = await retriever.retrieve(["Paris"])
        assert len(solution) == 2

    @pytest.mark.asyncio
    async def test_only_chunks_returned(self, retriever):
        [solution] = await retriever.retrieve(["Paris"], top_k=10)
        assert all(chunk_id.startswith("chunk-") for chunk_id in solution.chunk_ids)

    @pytest.mark.asyncio
    async def test_results_unique_and_sorted(self, retriever):
        solutions = await retriever.retrieve(["Paris", "France", "Paris"], top_k=10)

        assert len(solutions) == 3
        for solution in solutions:
            assert len(set(solution.chunk_ids)) == len(solution.chunk_ids)
            assert solution.scores == sorted(solution.scores, reverse=True)

    @pytest.mark.asyncio
    async def test_unknown_and_non_positive_seeds_give_empty_result(self, paris_artifacts, config):
        retriever = HippoRetriever(
            KeywordEmbedder(),
            make_store(),
            make_store(["entity-atlantis", "entity-paris"], [0.9, -0.2]),
            make_store(),
            config,
        )
        retriever.attach(paris_artifacts)

        [solution] = await retriever.retrieve(["Atlantis"], top_k=5)

        assert solution == QuerySolution(query="Atlantis")

    @pytest.mark.asyncio
    async def test_no_search_results_give_empty_result(self, paris_artifacts, config):
        retriever = HippoRetriever(KeywordEmbedder(), make_store(), make_store(), make_store(), config)
        retriever.attach(paris_artifacts)

        [solution] = await retriever.retrieve(["anything"], top_k=5)
        assert len(solution) == 0


class TestSeedHelpers:

    def test_fact_scores_split_over_entities(self, capitals_artifacts):
        seeds = fact_seed_weights(
            ["fact-1", "fact-2"], [0.9, 0.1], [0, 1],
            capitals_artifacts.fact_index, capitals_artifacts.snapshot,
        )
        assert seeds == {
            eid("Paris"): pytest.approx(0.45),
            eid("France"): pytest.approx(0.45),
            eid("Berlin"): pytest.approx(0.05),
            eid("Germany"): pytest.approx(0.05),
        }

    def test_rank_position_score_follows_rerank_order(self, capitals_artifacts):
        seeds = fact_seed_weights(
            ["fact-1", "fact-2"], [0.9, 0.1], [1, 0],
            capitals_artifacts.fact_index, capitals_artifacts.snapshot,
        )
        assert seeds[eid("Berlin")] == pytest.approx(0.45)
        assert seeds[eid("Paris")] == pytest.approx(0.05)

    def test_bounded_by_order_length(self, capitals_artifacts):
        seeds = fact_seed_weights(
            ["fact-1", "fact-2"], [0.9, 0.1], [1],
            capitals_artifacts.fact_index, capitals_artifacts.snapshot,
        )
        assert set(seeds) == {eid("Berlin"), eid("Germany")}

    def test_contributions_accumulate(self, capitals_artifacts):
        fact_index = FactIndex.from_facts(
            ["fact-a", "fact-b"],
            [Triple("Paris", "is capital of", "France"), Triple("Paris", "is in", "France")],
            eids("Paris", "France"),
        )
        seeds = fact_seed_weights(
            ["fact-a", "fact-b"], [0.6, 0.4], [0, 1], fact_index, capitals_artifacts.snapshot
        )
        assert seeds[eid("Paris")] == pytest.approx(0.5)

    def test_entities_missing_from_graph_ignored(self, capitals_artifacts):
        fact_index = FactIndex.from_facts(
            ["fact-x"], [Triple("Paris", "twinned with", "Rome")], eids("Paris", "Rome")
        )
        seeds = fact_seed_weights(
            ["fact-x", "fact-unknown"], [0.8, 0.5], [0, 1], fact_index, capitals_artifacts.snapshot
        )
        assert seeds == {eid("Paris"): pytest.approx(0.4)}

    def test_uses_ids_recorded_at_index_time(self):
        ids = {"Paris": "ent:1", "France": "ent:2"}
        extraction = ExtractionResult(["Paris", "France"], [Triple("Paris", "is capital of", "France")])
        graph = GraphBuilder().build(["c-paris"], ["Paris is the capital of France."], [extraction], ids)
        fact_index = FactIndex.from_facts(["fact-1"], extraction.triples, ids)

        seeds = fact_seed_weights(["fact-1"], [0.8], [0], fact_index, graph.freeze())

        assert seeds == {"ent:1": pytest.approx(0.4), "ent:2": pytest.approx(0.4)}

    def test_passage_seeds(self, capitals_artifacts):
        seeds = passage_seed_weights(
            ["c-paris", "c-berlin", "c-unknown"], [0.8, 0.4, 0.6],
            capitals_artifacts.snapshot, 0.05,
        )
        assert seeds == {"c-paris": pytest.approx(0.05), "c-berlin": pytest.approx(0.0)}

    def test_uniform_passage_scores(self, capitals_artifacts):
        seeds = passage_seed_weights(
            ["c-paris", "c-berlin"], [0.3, 0.3], capitals_artifacts.snapshot, 0.05
        )
        assert seeds == {"c-paris": pytest.approx(0.05), "c-berlin": pytest.approx(0.05)}


class TestFusedRetrieval:

    @pytest.mark.asyncio
    async def test_similarity_order(self, capitals_artifacts, config):
        retriever = fused_retriever(capitals_artifacts, config)

        [solution] = await retriever.retrieve_full(["capital of France"], top_k=2)

        assert solution.chunk_ids[0] == "c-paris"
        assert solution.scores == sorted(solution.scores, reverse=True)

    @pytest.mark.asyncio
    async def test_query_embedded_once(self, capitals_artifacts, config):
        retriever = fused_retriever(capitals_artifacts, config)
        await retriever.retrieve_full(["capital of France"], top_k=2)

        assert retriever.embedder.embedded == ["capital of France"]
        fact_vector = retriever.fact_store.search.call_args.args[0]
        chunk_vector = retriever.chunk_store.search.call_args.args[0]
        assert fact_vector == chunk_vector

    @pytest.mark.asyncio
    async def test_rerank_changes_seeds(self, capitals_artifacts, config):
        llm = StubCompletion(reply="2,1")
        retriever = fused_retriever(capitals_artifacts, config, FactReranker(llm))

        [solution] = await retriever.retrieve_full(["capital of Germany"], top_k=2)

        assert solution.chunk_ids[0] == "c-berlin"
        assert "1. Paris is capital of France" in llm.prompts[0]

    @pytest.mark.asyncio
    async def test_failing_rerank_matches_unranked(self, capitals_artifacts, config):
        failing = fused_retriever(
            capitals_artifacts, config,
            FactReranker(StubCompletion(error=CollaboratorError("down", "llm"))),
        )
        unranked = fused_retriever(capitals_artifacts, config, reranker=None)

        [with_failure] = await failing.retrieve_full(["capital"], top_k=2)
        [without] = await unranked.retrieve_full(["capital"], top_k=2)

        assert with_failure.chunk_ids == without.chunk_ids
        assert with_failure.scores == without.scores

    @pytest.mark.asyncio
    async def test_rerank_disabled_by_config(self, capitals_artifacts):
        llm = StubCompletion(reply="2,1")
        config = HippoConfig(enable_fact_rerank=False)
        retriever = fused_retriever(capitals_artifacts, config, FactReranker(llm))

        await retriever.retrieve_full(["capital"], top_k=2)

        assert llm.prompts == []

    @pytest.mark.asyncio
    async def test_passage_search_uses_top_k(self, capitals_artifacts, config):
        retriever = fused_retriever(capitals_artifacts, config)
        await retriever.retrieve_full(["capital"], top_k=7)

        assert retriever.chunk_store.search.call_args.args[1] == 7
        assert retriever.fact_store.search.call_args.args[1] == config.top_k_facts


class TestDenseRetrieval:

    @pytest.mark.asyncio
    async def test_passage_order(self, capitals_artifacts, config):
        retriever = fused_retriever(capitals_artifacts, config)
        retriever.chunk_store.search.return_value = (["c-berlin", "c-gone", "c-paris"], [0.7, 0.6, 0.5])

        [solution] = await retriever.retrieve_dense(["capital"], top_k=3)

        assert solution.chunk_ids == ["c-berlin", "c-paris"]
        assert solution.scores == [0.7, 0.5]
        assert solution.chunk_texts[0] == "Berlin is the capital of Germany."


class TestFailures:

    @pytest.mark.asyncio
    async def test_embedding_failure(self, paris_artifacts, config):
        retriever = HippoRetriever(FailingEmbedder(), make_store(), make_store(), make_store(), config)
        retriever.attach(paris_artifacts)

        with pytest.raises(CollaboratorError) as exc_info:
            await retriever.retrieve(["Paris"])
        assert exc_info.value.collaborator == "embedder"

    @pytest.mark.asyncio
    async def test_search_failure(self, paris_artifacts, config):
        entity_store = make_store()
        entity_store.search.side_effect = ConnectionError("qdrant down")
        retriever = HippoRetriever(KeywordEmbedder(), make_store(), entity_store, make_store(), config)
        retriever.attach(paris_artifacts)

        with pytest.raises(CollaboratorError) as exc_info:
            await retriever.retrieve(["Paris"])
        assert exc_info.value.collaborator == "entity_store"
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    @pytest.mark.asyncio
    async def test_one_failing_query_fails_batch(self, paris_artifacts, config):
        finished = []
        cancelled = []

        class PickyEmbedder(KeywordEmbedder):
            async def embed(self, texts):
                if any("bad" in text for text in texts):
                    raise RuntimeError("cannot embed")
                try:
                    await asyncio.sleep(1.0)
                except asyncio.CancelledError:
                    cancelled.extend(texts)
                    raise
                finished.extend(texts)
                return await super().embed(texts)

        retriever = HippoRetriever(
            PickyEmbedder(), make_store(), make_store(["entity-paris"], [1.0]), make_store(), config
        )
        retriever.attach(paris_artifacts)

        with pytest.raises(CollaboratorError):
            await retriever.retrieve(["Paris", "bad query", "France"])

        # Siblings were cancelled and unwound before the error reached the caller
        assert sorted(cancelled) == ["France", "Paris"]
        assert finished == []

    @pytest.mark.asyncio
    async def test_caller_cancellation_aborts_query(self, capitals_artifacts, config):
        started = asyncio.Event()
        finished = []

        class SlowSearchStore:
            async def search(self, vector, top_k):
                started.set()
                await asyncio.sleep(1.0)
                finished.append(top_k)
                return [], []

        retriever = HippoRetriever(
            KeywordEmbedder(), make_store(), make_store(), SlowSearchStore(), config
        )
        retriever.attach(capitals_artifacts)

        task = asyncio.ensure_future(retriever.retrieve_full(["capital of France"], top_k=2))
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert task.cancelled()
        assert finished == []

    @pytest.mark.asyncio
    async def test_query_timeout(self, paris_artifacts):
        class SlowEmbedder(KeywordEmbedder):
            async def embed(self, texts):
                await asyncio.sleep(1.0)
                return await super().embed(texts)

        config = HippoConfig(query_timeout=0.05)
        retriever = HippoRetriever(SlowEmbedder(), make_store(), make_store(), make_store(), config)
        retriever.attach(paris_artifacts)

        with pytest.raises(QueryTimeoutError):
            await retriever.retrieve(["Paris"])

    @pytest.mark.asyncio
    async def test_concurrency_bounded(self, paris_artifacts):
        active = 0
        peak = 0

        class CountingEmbedder(KeywordEmbedder):
            async def embed(self, texts):
                nonlocal active, peak
                active += 1
                peak = max(peak, active)
                await asyncio.sleep(0.01)
                active -= 1
                return await super().embed(texts)

        config = HippoConfig(max_concurrent_queries=2)
        retriever = HippoRetriever(
            CountingEmbedder(), make_store(), make_store(["entity-paris"], [1.0]), make_store(), config
        )
        retriever.attach(paris_artifacts)

        solutions = await retriever.retrieve([f"query {i}" for i in range(6)])

        assert len(solutions) == 6
        assert peak == 2
