"""
HippoGraph Core
===============

HippoRAG facade: indexing, retrieval and question answering in one object.
"""

from hippograph.core.hippo_rag import Answer, HippoRAG

__all__ = ["Answer", "HippoRAG"]
