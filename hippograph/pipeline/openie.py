"""
Open Information Extraction
===========================

LLM-based extraction of entities and (subject, predicate, object) triples.

The extraction service is a collaborator: HippoGraph does not validate what
it extracts beyond basic shape checks (non-empty strings, complete triples).

Example:
    extractor = OpenIEExtractor(llm)
    result = await extractor.extract("Paris is the capital of France.")
    result.entities   # ["Paris", "France"]
    result.triples    # [Triple("Paris", "is capital of", "France")]
"""

import asyncio
import json
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import structlog

from hippograph.exceptions import ExtractionError
from hippograph.llm.completion import CompletionService

log = structlog.get_logger()


@dataclass(frozen=True)
class Triple:
    """Relational fact extracted from a chunk."""
    subject: str
    predicate: str
    object: str

    def to_text(self) -> str:
        """Canonical fact serialization: space-joined subject, predicate, object."""
        return f"{self.subject} {self.predicate} {self.object}"


@dataclass
class ExtractionResult:
    """
    Entities and triples extracted from one chunk.

    Attributes:
        entities: Distinct entity strings in first-seen order
        triples: Relational facts (may mention entities absent from ``entities``)
    """
    entities: List[str] = field(default_factory=list)
    triples: List[Triple] = field(default_factory=list)

    def __post_init__(self):
        self.entities = list(dict.fromkeys(self.entities))


class Extractor(ABC):
    """Extraction collaborator contract."""

    max_concurrency: int = 1

    @abstractmethod
    async def extract(self, text: str) -> ExtractionResult:
        """Extract entities and triples from ``text``."""

    async def extract_batch(self, texts: List[str]) -> List[ExtractionResult]:
        """
        Extract every text, preserving order.

        Runs up to ``max_concurrency`` extractions at once. The first failure
        cancels the remaining ones and raises ``ExtractionError``.
        """
        semaphore = asyncio.Semaphore(max(1, self.max_concurrency))

        async def run(index: int, text: str) -> ExtractionResult:
            async with semaphore:
                try:
                    return await self.extract(text)
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    raise ExtractionError(f"extract text {index}: {e}") from e

        tasks = [asyncio.ensure_future(run(i, text)) for i, text in enumerate(texts)]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            # Let cancelled siblings unwind before the error leaves the batch
            await asyncio.gather(*tasks, return_exceptions=True)
            raise


EXTRACTION_PROMPT = """Extract entities and relationships from the following text.
Return the result in JSON format with two fields:
1. "entities": a list of all entities (nouns, proper nouns)
2. "triples": a list of relationship triples, each with "subject", "predicate", "object"

Text: {text}

Return only valid JSON, no additional text."""

_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)
_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


def parse_extraction_response(response: str) -> ExtractionResult:
    """
    Parse the model's JSON answer into an ``ExtractionResult``.

    Accepts Markdown code fences and surrounding chatter, triples given as
    objects or as 3-element lists. Blank entities and incomplete triples are
    dropped.

    Raises:
        ExtractionError: If no JSON object can be decoded
    """
    cleaned = _FENCE.sub("", response.strip()).strip()

    data: Optional[Dict[str, Any]] = None
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        match = _JSON_OBJECT.search(cleaned)
        if match:
            try:
                data = json.loads(match.group(0))
            except json.JSONDecodeError:
                data = None

    if not isinstance(data, dict):
        raise ExtractionError(f"unparseable extraction response: {response[:200]!r}")

    entities = [
        entity.strip()
        for entity in data.get("entities") or []
        if isinstance(entity, str) and entity.strip()
    ]

    triples = []
    for raw in data.get("triples") or []:
        if isinstance(raw, dict):
            parts = [raw.get("subject"), raw.get("predicate"), raw.get("object")]
        elif isinstance(raw, (list, tuple)) and len(raw) == 3:
            parts = list(raw)
        else:
            log.debug(f"Skipping malformed triple: {raw!r}")
            continue

        if not all(isinstance(p, str) and p.strip() for p in parts):
            log.debug(f"Skipping incomplete triple: {raw!r}")
            continue
        triples.append(Triple(*(p.strip() for p in parts)))

    return ExtractionResult(entities=entities, triples=triples)


class OpenIEExtractor(Extractor):
    """
    Extractor that prompts a completion service for JSON output.

    Attributes:
        llm: Completion service
        max_concurrency: Parallel extractions in ``extract_batch``
    """

    def __init__(self, llm: CompletionService, max_concurrency: int = 4):
        self.llm = llm
        self.max_concurrency = max_concurrency

    async def extract(self, text: str) -> ExtractionResult:
        response = await self.llm.complete(EXTRACTION_PROMPT.format(text=text))
        result = parse_extraction_response(response)
        log.debug(
            "Extracted",
            entities=len(result.entities),
            triples=len(result.triples),
        )
        return result
