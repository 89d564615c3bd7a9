"""
Graph Builder
=============

Materializes the knowledge graph from chunks and their extractions.

Nodes:
    chunk  - one per chunk id (content = chunk text)
    entity - one per distinct entity string, from the flat entity lists AND
             from every triple's subject / object

Edges (all built with the ids handed out by the vector stores):
    chunk  --passage(1.0)-->      entity   for each entity listed in the chunk
    entity --passage_back(1.0)--> chunk
    subj   --fact(1.0)-->         obj      for each triple with both ends known
    obj    --fact_back(0.5)-->    subj     (forward reasoning is favoured)

Facts:
    Each triple is stored in the fact store as "subject predicate object".
    Because that text cannot be split back reliably, the builder also keeps a
    ``FactIndex`` side table fact_id -> (subject, object) used at query time
    to recover the entities of a retrieved fact, together with the node ids
    the entity store assigned to them.

Usage:
    builder = GraphBuilder()
    graph = builder.build(chunk_ids, chunk_texts, extractions, entity_ids)
    fact_index = FactIndex.from_facts(fact_ids, fact_triples, entity_ids)
"""

from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import structlog

from hippograph.pipeline.openie import ExtractionResult, Triple
from hippograph.storage.graph import EdgeKind, GraphSnapshot, KnowledgeGraph, NodeKind

log = structlog.get_logger()

PASSAGE_WEIGHT = 1.0
FACT_WEIGHT = 1.0
FACT_BACK_WEIGHT = 0.5


def collect_entities(extractions: Sequence[ExtractionResult]) -> List[str]:
    """
    Union of all entity mentions, de-duplicated by literal string.

    Includes subjects and objects of triples, so entities that only appear
    inside a triple are captured. First-seen order is kept.
    """
    seen: Dict[str, None] = {}
    for extraction in extractions:
        for entity in extraction.entities:
            seen.setdefault(entity, None)
        for triple in extraction.triples:
            seen.setdefault(triple.subject, None)
            seen.setdefault(triple.object, None)
    return list(seen)


def collect_facts(extractions: Sequence[ExtractionResult]) -> List[Triple]:
    """All triples of all chunks, in chunk order (duplicates kept)."""
    return [triple for extraction in extractions for triple in extraction.triples]


class FactIndex:
    """
    Side table fact_id -> entities of the triple that produced it.

    Keeps both the entity strings and the node ids the entity store handed
    out for them, so query time never has to guess a store's id scheme.

    When several triples serialize to the same fact text (and therefore the
    same content-addressed id), the first one registered wins.
    """

    def __init__(self):
        self._entities: Dict[str, Tuple[str, ...]] = {}
        self._entity_ids: Dict[str, Tuple[str, ...]] = {}

    @classmethod
    def from_facts(
        cls,
        fact_ids: Sequence[str],
        triples: Sequence[Triple],
        entity_ids: Mapping[str, str],
    ) -> "FactIndex":
        """
        Build the index from aligned fact ids and triples.

        Args:
            fact_ids: Ids assigned by the fact store, aligned with ``triples``
            triples: Triples the facts were serialized from
            entity_ids: Entity string -> id assigned by the entity store
        """
        if len(fact_ids) != len(triples):
            raise ValueError(
                f"got {len(fact_ids)} fact ids for {len(triples)} triples"
            )
        index = cls()
        for fact_id, triple in zip(fact_ids, triples):
            index.add(fact_id, triple, entity_ids)
        return index

    def add(self, fact_id: str, triple: Triple, entity_ids: Mapping[str, str]) -> None:
        if fact_id in self._entities:
            if self._entities[fact_id] != (triple.subject, triple.object):
                log.debug(f"Fact text collision for {fact_id[:16]}..., keeping first triple")
            return
        self._entities[fact_id] = (triple.subject, triple.object)
        self._entity_ids[fact_id] = tuple(
            entity_ids[entity]
            for entity in (triple.subject, triple.object)
            if entity in entity_ids
        )

    def entities_for(self, fact_id: str) -> Tuple[str, ...]:
        """Entity strings of a fact (empty tuple if the fact is unknown)."""
        return self._entities.get(fact_id, ())

    def entity_ids_for(self, fact_id: str) -> Tuple[str, ...]:
        """Entity node ids of a fact; entities the store never assigned are left out."""
        return self._entity_ids.get(fact_id, ())

    def __len__(self) -> int:
        return len(self._entities)

    def __contains__(self, fact_id: object) -> bool:
        return fact_id in self._entities


@dataclass
class IndexArtifacts:
    """
    Everything one successful indexing pass hands to retrieval.

    Built completely before it is attached, so a failing pass never exposes
    a partial graph.
    """
    snapshot: GraphSnapshot
    fact_index: FactIndex
    chunk_count: int = 0
    entity_count: int = 0
    fact_count: int = 0

    def summary(self) -> Dict[str, int]:
        """Return summary for logging."""
        return {
            "generation": self.snapshot.generation,
            "chunks": self.chunk_count,
            "entities": self.entity_count,
            "facts": self.fact_count,
            "nodes": self.snapshot.node_count(),
            "edges": self.snapshot.edge_count(),
        }


class GraphBuilder:
    """Builds a ``KnowledgeGraph`` from chunk ids, texts and extractions."""

    def build(
        self,
        chunk_ids: Sequence[str],
        chunk_texts: Sequence[str],
        extractions: Sequence[ExtractionResult],
        entity_ids: Mapping[str, str],
        graph: Optional[KnowledgeGraph] = None,
    ) -> KnowledgeGraph:
        """
        Populate a graph.

        Args:
            chunk_ids: Ids assigned by the chunk store, aligned with ``chunk_texts``
            chunk_texts: Chunk contents
            extractions: One extraction per chunk, aligned with ``chunk_ids``
            entity_ids: Entity string -> id assigned by the entity store
            graph: Graph to fill (a new one by default)

        Returns:
            The populated graph
        """
        if not len(chunk_ids) == len(chunk_texts) == len(extractions):
            raise ValueError(
                f"misaligned inputs: {len(chunk_ids)} ids, "
                f"{len(chunk_texts)} texts, {len(extractions)} extractions"
            )

        graph = graph if graph is not None else KnowledgeGraph()

        for chunk_id, text in zip(chunk_ids, chunk_texts):
            graph.add_node(chunk_id, text, NodeKind.CHUNK)

        for entity in collect_entities(extractions):
            entity_id = entity_ids.get(entity)
            if entity_id is None:
                log.warning(f"No id for entity {entity!r}, skipping node")
                continue
            graph.add_node(entity_id, entity, NodeKind.ENTITY)

        for chunk_id, extraction in zip(chunk_ids, extractions):
            for entity in extraction.entities:
                entity_id = entity_ids.get(entity)
                if entity_id is None:
                    continue
                graph.add_edge(chunk_id, entity_id, PASSAGE_WEIGHT, EdgeKind.PASSAGE)
                graph.add_edge(entity_id, chunk_id, PASSAGE_WEIGHT, EdgeKind.PASSAGE_BACK)

            for triple in extraction.triples:
                subject_id = entity_ids.get(triple.subject)
                object_id = entity_ids.get(triple.object)
                if subject_id is None or object_id is None:
                    continue
                graph.add_edge(subject_id, object_id, FACT_WEIGHT, EdgeKind.FACT)
                graph.add_edge(object_id, subject_id, FACT_BACK_WEIGHT, EdgeKind.FACT_BACK)

        log.info(
            "Knowledge graph built",
            nodes=graph.node_count(),
            edges=graph.edge_count(),
        )
        return graph
