"""
HippoGraph Configuration
========================

Single settings object for indexing and retrieval.

Values resolve in this order:
    1. Explicit keyword arguments (or YAML keys via ``from_yaml``)
    2. Environment variables prefixed with ``HIPPOGRAPH_``
    3. Defaults below

Usage:
    from hippograph.config import HippoConfig

    config = HippoConfig()                                # env + defaults
    config = HippoConfig(top_k_entities=20, ppr_damping=0.5)
    config = HippoConfig.from_yaml("hippograph.yaml")

Environment Variables (examples):
    HIPPOGRAPH_PPR_DAMPING=0.5
    HIPPOGRAPH_TOP_K_ENTITIES=20
    HIPPOGRAPH_ENABLE_FACT_RERANK=false
"""

from pathlib import Path
from typing import Any, Dict, Optional, Union

import structlog
import yaml
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

log = structlog.get_logger()


class HippoConfig(BaseSettings):
    """
    Configuration for HippoRAG indexing and retrieval.

    Attributes:
        chunk_size: Characters per chunk
        chunk_overlap: Characters shared by consecutive chunks
        ppr_damping: Probability of following an edge in PPR
        ppr_max_iter: Maximum PPR iterations
        ppr_tolerance: PPR convergence threshold
        top_k_entities: Entities retrieved to seed entity-seeded retrieval
        top_k_facts: Facts retrieved to seed fused retrieval
        top_k_chunks: Passages returned by ``answer``
        passage_node_weight: Coefficient applied to dense passage seeds
        enable_fact_rerank: Ask the LLM to reorder retrieved facts
        max_concurrent_queries: Queries of a batch processed at once
        query_timeout: Per-query deadline in seconds (None = no deadline)
        extraction_concurrency: Parallel extraction calls while indexing
    """

    model_config = SettingsConfigDict(env_prefix="HIPPOGRAPH_", extra="ignore")

    # Chunking
    chunk_size: int = Field(default=512, ge=0)
    chunk_overlap: int = Field(default=50, ge=0)

    # PPR
    ppr_damping: float = Field(default=0.5, ge=0.0, le=1.0)
    ppr_max_iter: int = Field(default=100, ge=1)
    ppr_tolerance: float = Field(default=1e-6, ge=0.0)

    # Retrieval
    top_k_entities: int = Field(default=10, ge=1)
    top_k_facts: int = Field(default=10, ge=1)
    top_k_chunks: int = Field(default=5, ge=1)
    passage_node_weight: float = Field(default=0.05, ge=0.0)
    enable_fact_rerank: bool = True
    max_concurrent_queries: int = Field(default=4, ge=1)
    query_timeout: Optional[float] = Field(default=None, gt=0)

    # Indexing
    extraction_concurrency: int = Field(default=4, ge=1)

    # Collaborators
    llm_model: str = "gpt-4o-mini"
    embedding_model: str = "text-embedding-3-small"
    openai_base_url: Optional[str] = None
    api_key: Optional[str] = None

    @field_validator("llm_model", "embedding_model")
    @classmethod
    def model_name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("model name must not be blank")
        return v

    @model_validator(mode="after")
    def overlap_smaller_than_chunk(self) -> "HippoConfig":
        if self.chunk_size > 0 and self.chunk_overlap >= self.chunk_size:
            raise ValueError(
                f"chunk_overlap ({self.chunk_overlap}) must be smaller than "
                f"chunk_size ({self.chunk_size})"
            )
        return self

    @classmethod
    def from_yaml(cls, path: Union[str, Path], **overrides: Any) -> "HippoConfig":
        """
        Load configuration from a YAML mapping.

        Keys absent from the file fall back to environment variables and
        defaults. ``overrides`` win over the file.
        """
        path = Path(path)
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"{path} must contain a YAML mapping, got {type(data).__name__}")

        # Allow the settings to sit under a top-level "hippograph" key
        if "hippograph" in data and isinstance(data["hippograph"], dict):
            data = data["hippograph"]

        values: Dict[str, Any] = {**data, **overrides}
        log.debug("Loaded config from YAML", path=str(path), keys=sorted(values))
        return cls(**values)

    def ppr_params(self) -> Dict[str, Any]:
        """PPR keyword arguments."""
        return {
            "damping": self.ppr_damping,
            "max_iter": self.ppr_max_iter,
            "tolerance": self.ppr_tolerance,
        }
