"""
HippoGraph LLM
==============

Completion services used for extraction, fact reranking and answering.
"""

from hippograph.llm.completion import CompletionService, OpenAICompatibleClient

__all__ = [
    "CompletionService",
    "OpenAICompatibleClient",
]
