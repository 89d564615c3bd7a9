"""
Tests for KnowledgeGraph and GraphSnapshot
"""

import pytest

from hippograph.storage.graph import Edge, EdgeKind, GraphSnapshot, KnowledgeGraph, NodeKind


@pytest.fixture
def graph():
    graph = KnowledgeGraph()
    graph.add_node("a", "Paris", NodeKind.ENTITY)
    graph.add_node("b", "France", NodeKind.ENTITY)
    graph.add_node("c", "Paris is the capital of France.", NodeKind.CHUNK)
    return graph


class TestNodes:
    """Node insertion and lookup."""

    def test_add_and_get(self, graph):
        node = graph.get_node("a")
        assert node.id == "a"
        assert node.content == "Paris"
        assert node.kind == NodeKind.ENTITY

    def test_missing_node_is_none(self, graph):
        assert graph.get_node("zzz") is None
        assert "zzz" not in graph

    def test_upsert_overwrites_content_and_kind(self, graph):
        graph.add_node("a", "Paris, France", NodeKind.CHUNK)

        assert graph.node_count() == 3
        assert graph.get_node("a").content == "Paris, France"
        assert graph.get_node("a").kind == NodeKind.CHUNK

    def test_upsert_keeps_adjacency(self, graph):
        graph.add_edge("a", "b", 1.0, EdgeKind.FACT)
        graph.add_node("a", "Paris", NodeKind.ENTITY)
        assert graph.get_neighbors("a") == ("b",)

    def test_new_node_has_no_neighbors(self, graph):
        assert graph.get_neighbors("a") == ()
        assert graph.get_neighbors("unknown") == ()

    def test_kind_accepts_string_value(self):
        graph = KnowledgeGraph()
        graph.add_node("x", "X", "entity")
        assert graph.get_node("x").kind == NodeKind.ENTITY


class TestEdges:
    """Edge insertion semantics."""

    def test_add_edge(self, graph):
        graph.add_edge("a", "b", 1.0, EdgeKind.FACT)

        assert graph.edge_count() == 1
        assert graph.get_neighbors("a") == ("b",)
        assert graph.get_edge("a", "b") == Edge("a", "b", 1.0, EdgeKind.FACT)
        assert graph.get_edge("b", "a") is None

    @pytest.mark.parametrize("source,target", [("a", "missing"), ("missing", "a"), ("x", "y")])
    def test_missing_endpoint_is_noop(self, graph, source, target):
        graph.add_edge("a", "b", 1.0, EdgeKind.FACT)

        graph.add_edge(source, target, 1.0, EdgeKind.FACT)

        assert graph.edge_count() == 1
        assert graph.node_count() == 3
        assert graph.get_neighbors("a") == ("b",)
        assert graph.get_neighbors(source) == (("b",) if source == "a" else ())

    def test_duplicate_edge_keeps_multiplicity(self, graph):
        graph.add_edge("a", "b", 1.0, EdgeKind.FACT)
        graph.add_edge("a", "b", 1.0, EdgeKind.FACT)

        assert graph.edge_count() == 1
        assert graph.get_neighbors("a") == ("b", "b")

    def test_duplicate_edge_overwrites_weight(self, graph):
        graph.add_edge("a", "b", 1.0, EdgeKind.FACT)
        graph.add_edge("a", "b", 0.5, EdgeKind.FACT_BACK)

        edge = graph.get_edge("a", "b")
        assert edge.weight == 0.5
        assert edge.kind == EdgeKind.FACT_BACK

    def test_edge_count_counts_distinct_pairs(self, graph):
        graph.add_edge("a", "b", 1.0, EdgeKind.FACT)
        graph.add_edge("b", "a", 0.5, EdgeKind.FACT_BACK)
        graph.add_edge("c", "a", 1.0, EdgeKind.PASSAGE)
        graph.add_edge("a", "c", 1.0, EdgeKind.PASSAGE_BACK)

        assert graph.edge_count() == 4
        assert graph.get_neighbors("a") == ("b", "c")


class TestSnapshot:
    """Frozen, read-only view of the graph."""

    def test_freeze_copies_state(self, graph):
        graph.add_edge("a", "b", 1.0, EdgeKind.FACT)
        snapshot = graph.freeze()

        assert isinstance(snapshot, GraphSnapshot)
        assert snapshot.node_count() == 3
        assert snapshot.edge_count() == 1
        assert snapshot.get_neighbors("a") == ("b",)
        assert snapshot.get_edge("a", "b").weight == 1.0
        assert "a" in snapshot

    def test_later_writes_do_not_leak(self, graph):
        snapshot = graph.freeze()

        graph.add_node("d", "Berlin", NodeKind.ENTITY)
        graph.add_edge("a", "d", 1.0, EdgeKind.FACT)

        assert snapshot.get_node("d") is None
        assert snapshot.get_neighbors("a") == ()
        assert snapshot.edge_count() == 0

    def test_generation_increases(self, graph):
        first = graph.freeze()
        second = graph.freeze()
        assert second.generation > first.generation

    def test_nodes_of_kind(self, graph):
        snapshot = graph.freeze()
        chunk_ids = [node.id for node in snapshot.nodes_of_kind(NodeKind.CHUNK)]
        entity_ids = sorted(node.id for node in snapshot.nodes_of_kind(NodeKind.ENTITY))

        assert chunk_ids == ["c"]
        assert entity_ids == ["a", "b"]

    def test_snapshot_is_read_only(self, graph):
        snapshot = graph.freeze()
        assert not hasattr(snapshot, "add_node")
        with pytest.raises(TypeError):
            snapshot._nodes["x"] = None

    def test_missing_lookups(self, graph):
        snapshot = graph.freeze()
        assert snapshot.get_node("missing") is None
        assert snapshot.get_edge("missing", "a") is None
        assert snapshot.get_edge("a", "missing") is None
        assert snapshot.get_neighbors("missing") == ()
