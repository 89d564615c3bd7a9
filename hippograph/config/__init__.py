"""
Configuration module for HippoGraph.
"""

from .settings import HippoConfig

__all__ = [
    "HippoConfig",
]
