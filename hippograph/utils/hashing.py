"""
Content Hashing
===============

Stable, content-addressed identifiers for chunks, entities and facts.

The same text in the same namespace always yields the same id, so an entity
node id can be recomputed from the entity string at query time.

Usage:
    from hippograph.utils.hashing import compute_hash, ENTITY_PREFIX

    node_id = compute_hash("Paris", ENTITY_PREFIX)  # "entity-5dd2..."
"""

import hashlib

CHUNK_PREFIX = "chunk-"
ENTITY_PREFIX = "entity-"
FACT_PREFIX = "fact-"


def compute_hash(text: str, prefix: str = "") -> str:
    """SHA-256 hex digest of ``text``, prepended with ``prefix``."""
    digest = hashlib.sha256(text.encode("utf-8")).hexdigest()
    return f"{prefix}{digest}"
