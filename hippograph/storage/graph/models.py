"""
Graph Models
============

Typed nodes and edges of the knowledge graph.

Nodes are either entities (extracted mentions) or chunks (passages).
Edges carry a kind and a weight; the weight is stored for inspection but PPR
propagation only looks at topology.
"""

from dataclasses import dataclass
from enum import Enum


class NodeKind(str, Enum):
    """Kinds of graph nodes."""
    ENTITY = "entity"
    CHUNK = "chunk"


class EdgeKind(str, Enum):
    """Kinds of graph edges."""
    FACT = "fact"
    FACT_BACK = "fact_back"
    PASSAGE = "passage"
    PASSAGE_BACK = "passage_back"


@dataclass(frozen=True)
class Node:
    """
    Graph node.

    Attributes:
        id: Content hash of the node text (stable across runs)
        content: Entity string or chunk text
        kind: NodeKind.ENTITY or NodeKind.CHUNK
    """
    id: str
    content: str
    kind: NodeKind

    def __repr__(self) -> str:
        preview = self.content if len(self.content) <= 40 else self.content[:37] + "..."
        return f"<Node({self.kind.value}, id={self.id[:16]}..., content={preview!r})>"


@dataclass(frozen=True)
class Edge:
    """Directed weighted edge between two existing nodes."""
    source: str
    target: str
    weight: float
    kind: EdgeKind
