"""
HippoGraph: Knowledge-Graph Retrieval for RAG
=============================================

Passage retrieval that combines dense vector similarity with Personalized
PageRank over a knowledge graph extracted from the documents.

Quick Start:
    from hippograph import HippoConfig, HippoRAG, OpenAICompatibleClient
    from hippograph.storage.vectors import OpenAIEmbeddingClient

    rag = HippoRAG(
        config=HippoConfig(),
        embedder=OpenAIEmbeddingClient(),
        completion_service=OpenAICompatibleClient(),
    )

    # Indexing
    await rag.index(documents)

    # Retrieval
    solutions = await rag.retrieve(["Where is the Eiffel Tower?"], top_k=5)
    solutions = await rag.retrieve_full(["Where is the Eiffel Tower?"], top_k=5)

    # Question answering
    reply = await rag.answer("Where is the Eiffel Tower?")
    print(reply.answer)

Components:
- core: HippoRAG, Answer
- config: HippoConfig
- storage: KnowledgeGraph, GraphSnapshot, personalized_pagerank, vector stores
- pipeline: chunking, OpenIEExtractor, GraphBuilder
- retrieval: HippoRetriever, FactReranker, QuerySolution
- llm: CompletionService, OpenAICompatibleClient
"""

__version__ = "0.1.0"
__author__ = "HippoGraph Team"

# Core API
from hippograph.core import Answer, HippoRAG
from hippograph.config import HippoConfig
from hippograph.exceptions import (
    CollaboratorError,
    EmptySeedSetError,
    ExtractionError,
    HippoGraphError,
    NotReadyError,
    QueryTimeoutError,
)

# Convenience exports
from hippograph.llm import CompletionService, OpenAICompatibleClient
from hippograph.retrieval import HippoRetriever, QuerySolution
from hippograph.storage import GraphSnapshot, KnowledgeGraph, personalized_pagerank

__all__ = [
    # Core
    "HippoRAG",
    "Answer",
    "HippoConfig",
    # Errors
    "HippoGraphError",
    "NotReadyError",
    "CollaboratorError",
    "ExtractionError",
    "EmptySeedSetError",
    "QueryTimeoutError",
    # Components
    "CompletionService",
    "OpenAICompatibleClient",
    "HippoRetriever",
    "QuerySolution",
    "GraphSnapshot",
    "KnowledgeGraph",
    "personalized_pagerank",
]
