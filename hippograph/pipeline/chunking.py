"""
Text Chunking
=============

Fixed-size character windows with overlap.

Design principles:
- Whitespace is normalised before splitting (runs collapse to one space)
- Windows advance by ``chunk_size - overlap`` characters
- Short texts produce a single chunk

Usage:
    chunks = chunk_text(document, chunk_size=512, overlap=50)
"""

import re
from typing import List

_WHITESPACE = re.compile(r"\s+")


def clean_text(text: str) -> str:
    """Replace every whitespace run with a single space and strip the ends."""
    return _WHITESPACE.sub(" ", text).strip()


def chunk_text(text: str, chunk_size: int = 512, overlap: int = 50) -> List[str]:
    """
    Split ``text`` into overlapping character windows.

    Args:
        text: Input document
        chunk_size: Characters per chunk; <= 0 disables chunking
        overlap: Characters shared by consecutive chunks

    Returns:
        List of chunks (empty list for blank input)

    Example:
        >>> chunk_text("abcdefghij", chunk_size=4, overlap=1)
        ['abcd', 'defg', 'ghij']
    """
    if chunk_size <= 0:
        return [text]
    if overlap < 0 or overlap >= chunk_size:
        raise ValueError(f"overlap must be in [0, chunk_size), got {overlap}")

    text = clean_text(text)
    if not text:
        return []
    if len(text) <= chunk_size:
        return [text]

    chunks = []
    start = 0
    step = chunk_size - overlap
    while start < len(text):
        end = min(start + chunk_size, len(text))
        chunks.append(text[start:end])
        if end == len(text):
            break
        start += step

    return chunks
