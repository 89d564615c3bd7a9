"""
HippoGraph Indexing Pipeline
============================

documents -> chunks -> extraction -> knowledge graph

Components:
- chunking: clean_text, chunk_text
- openie: Triple, ExtractionResult, Extractor, OpenIEExtractor
- graph_builder: GraphBuilder, FactIndex, IndexArtifacts
"""

from hippograph.pipeline.chunking import chunk_text, clean_text
from hippograph.pipeline.openie import (
    ExtractionResult,
    Extractor,
    OpenIEExtractor,
    Triple,
    parse_extraction_response,
)
from hippograph.pipeline.graph_builder import (
    FactIndex,
    GraphBuilder,
    IndexArtifacts,
    collect_entities,
    collect_facts,
)

__all__ = [
    # Chunking
    "chunk_text",
    "clean_text",
    # Extraction
    "ExtractionResult",
    "Extractor",
    "OpenIEExtractor",
    "Triple",
    "parse_extraction_response",
    # Graph
    "FactIndex",
    "GraphBuilder",
    "IndexArtifacts",
    "collect_entities",
    "collect_facts",
]
