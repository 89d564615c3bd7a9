"""
Knowledge Graph Store
=====================

In-memory directed multigraph of typed nodes and weighted, typed edges.

Lifecycle:
    1. Build phase: a ``KnowledgeGraph`` is populated by the GraphBuilder.
       Every operation takes the graph's lock, so writers never interleave.
    2. Retrieval phase: ``freeze()`` copies the graph into a ``GraphSnapshot``,
       a read-only view with a generation tag. Snapshots are shared by any
       number of concurrent PPR runs without locking.

Adjacency multiplicity:
    The weighted-edge table holds one entry per ordered (source, target) pair;
    a second ``add_edge`` for the same pair overwrites weight and kind. The
    adjacency list used by PPR is append-only and records one entry per
    ``add_edge`` call, so a neighbour inserted k times receives k shares of
    the propagated mass. ``edge_count()`` counts distinct pairs only.

Usage:
    graph = KnowledgeGraph()
    graph.add_node("entity-a", "Paris", NodeKind.ENTITY)
    graph.add_node("chunk-1", "Paris is ...", NodeKind.CHUNK)
    graph.add_edge("chunk-1", "entity-a", 1.0, EdgeKind.PASSAGE)

    snapshot = graph.freeze()
    snapshot.get_neighbors("chunk-1")  # ("entity-a",)
"""

import itertools
import threading
from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

import structlog

from hippograph.storage.graph.models import Edge, EdgeKind, Node, NodeKind

log = structlog.get_logger()

_generation_counter = itertools.count(1)


class KnowledgeGraph:
    """
    Mutable graph used while indexing.

    Example:
        >>> graph = KnowledgeGraph()
        >>> graph.add_node("a", "Paris", NodeKind.ENTITY)
        >>> graph.add_edge("a", "missing", 1.0, EdgeKind.FACT)  # silently dropped
        >>> graph.edge_count()
        0
    """

    def __init__(self):
        self._nodes: Dict[str, Node] = {}
        self._edges: Dict[str, Dict[str, Edge]] = {}
        self._adjacency: Dict[str, List[str]] = {}
        self._lock = threading.RLock()

    def add_node(self, node_id: str, content: str, kind: NodeKind) -> None:
        """Insert or overwrite a node and make sure it has an adjacency entry."""
        with self._lock:
            self._nodes[node_id] = Node(id=node_id, content=content, kind=NodeKind(kind))
            self._adjacency.setdefault(node_id, [])

    def add_edge(
        self,
        source: str,
        target: str,
        weight: float,
        kind: EdgeKind
    ) -> None:
        """
        Add a directed edge.

        No-op when either endpoint is not a node. Otherwise the weighted edge
        for (source, target) is stored or overwritten and ``target`` is
        appended to the adjacency list of ``source``.
        """
        with self._lock:
            if source not in self._nodes or target not in self._nodes:
                return

            self._edges.setdefault(source, {})[target] = Edge(
                source=source,
                target=target,
                weight=float(weight),
                kind=EdgeKind(kind),
            )
            self._adjacency[source].append(target)

    def get_node(self, node_id: str) -> Optional[Node]:
        with self._lock:
            return self._nodes.get(node_id)

    def get_neighbors(self, node_id: str) -> Tuple[str, ...]:
        """Neighbour ids of ``node_id`` (may be empty, may repeat)."""
        with self._lock:
            return tuple(self._adjacency.get(node_id, ()))

    def get_edge(self, source: str, target: str) -> Optional[Edge]:
        with self._lock:
            return self._edges.get(source, {}).get(target)

    def node_count(self) -> int:
        with self._lock:
            return len(self._nodes)

    def edge_count(self) -> int:
        with self._lock:
            return sum(len(targets) for targets in self._edges.values())

    def __contains__(self, node_id: object) -> bool:
        with self._lock:
            return node_id in self._nodes

    def freeze(self) -> "GraphSnapshot":
        """
        Copy the current state into a read-only ``GraphSnapshot``.

        Later writes to this graph do not affect the snapshot.
        """
        with self._lock:
            snapshot = GraphSnapshot(
                nodes=dict(self._nodes),
                edges={src: dict(targets) for src, targets in self._edges.items()},
                adjacency={src: tuple(targets) for src, targets in self._adjacency.items()},
                generation=next(_generation_counter),
            )

        log.debug(
            "Graph frozen",
            generation=snapshot.generation,
            nodes=snapshot.node_count(),
            edges=snapshot.edge_count(),
        )
        return snapshot

    def __repr__(self) -> str:
        return f"KnowledgeGraph(nodes={self.node_count()}, edges={self.edge_count()})"


class GraphSnapshot:
    """
    Immutable view of a built graph, handed to retrieval.

    Attributes:
        generation: Tag that identifies the indexing pass that produced it
    """

    def __init__(
        self,
        nodes: Dict[str, Node],
        edges: Dict[str, Dict[str, Edge]],
        adjacency: Dict[str, Tuple[str, ...]],
        generation: int,
    ):
        self._nodes: Mapping[str, Node] = MappingProxyType(nodes)
        self._edges: Mapping[str, Mapping[str, Edge]] = MappingProxyType(
            {src: MappingProxyType(targets) for src, targets in edges.items()}
        )
        self._adjacency: Mapping[str, Tuple[str, ...]] = MappingProxyType(adjacency)
        self._edge_count = sum(len(targets) for targets in edges.values())
        self.generation = generation

    def get_node(self, node_id: str) -> Optional[Node]:
        return self._nodes.get(node_id)

    def get_neighbors(self, node_id: str) -> Tuple[str, ...]:
        return self._adjacency.get(node_id, ())

    def get_edge(self, source: str, target: str) -> Optional[Edge]:
        targets = self._edges.get(source)
        if targets is None:
            return None
        return targets.get(target)

    def node_count(self) -> int:
        return len(self._nodes)

    def edge_count(self) -> int:
        return self._edge_count

    def nodes_of_kind(self, kind: NodeKind) -> Iterator[Node]:
        return (node for node in self._nodes.values() if node.kind == kind)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __repr__(self) -> str:
        return (
            f"GraphSnapshot(generation={self.generation}, "
            f"nodes={self.node_count()}, edges={self.edge_count()})"
        )
