"""
Fact Reranking
==============

Best-effort LLM reordering of retrieved facts ("recognition memory").

The model receives the query and the numbered fact list and is asked for a
comma-separated list of 1-based indices, most relevant first. The reply is
parsed permissively: tokens that are not a number, out of range or repeated
are skipped. If the call fails or nothing usable comes back, the original
similarity order is kept and ``RerankResult.fallback`` is set. Reranking
never raises to the caller (cancellation excepted).
"""

import re
from dataclasses import dataclass
from typing import List, Optional

import structlog

from hippograph.llm.completion import CompletionService

log = structlog.get_logger()

RERANK_PROMPT = """Given the query: "{query}"

Rank the following facts by relevance to the query (most relevant first):
{facts}
Return only the ranked fact numbers, comma-separated. For example: 3,1,4,2,5

Ranking:"""

_LEADING_INT = re.compile(r"^[\s\[\(\"']*(\d+)")


@dataclass
class RerankResult:
    """
    Outcome of a rerank attempt.

    Attributes:
        order: 0-based positions into the candidate list, best first
        fallback: True when ``order`` is the unmodified similarity order
        reason: Why the fallback was used ("disabled", "llm_error",
                "malformed", "empty")
    """
    order: List[int]
    fallback: bool = False
    reason: Optional[str] = None

    @classmethod
    def identity(cls, size: int, reason: str) -> "RerankResult":
        return cls(order=list(range(size)), fallback=True, reason=reason)


def build_rerank_prompt(query: str, facts: List[str]) -> str:
    numbered = "".join(f"{i}. {fact}\n" for i, fact in enumerate(facts, start=1))
    return RERANK_PROMPT.format(query=query, facts=numbered)


def parse_rerank_response(response: str, size: int) -> List[int]:
    """
    Parse a comma-separated list of 1-based indices into 0-based positions.

    Example:
        >>> parse_rerank_response("3, 1, x, 9, 1, 2", size=3)
        [2, 0, 1]
    """
    order: List[int] = []
    seen = set()
    for token in response.strip().split(","):
        match = _LEADING_INT.match(token)
        if not match:
            continue
        index = int(match.group(1))
        if not 1 <= index <= size or index in seen:
            continue
        seen.add(index)
        order.append(index - 1)
    return order


class FactReranker:
    """
    Reorders facts with a completion service.

    Example:
        >>> reranker = FactReranker(llm)
        >>> result = await reranker.rerank("capital of France?", facts)
        >>> [facts[i] for i in result.order]
    """

    def __init__(self, llm: CompletionService):
        self.llm = llm

    async def rerank(self, query: str, facts: List[str]) -> RerankResult:
        if not facts:
            return RerankResult.identity(0, reason="empty")

        try:
            response = await self.llm.complete(build_rerank_prompt(query, facts))
        except Exception as e:
            log.warning(f"LLM rerank failed, keeping similarity order: {e}")
            return RerankResult.identity(len(facts), reason="llm_error")

        response = response or ""
        order = parse_rerank_response(response, len(facts))
        if not order:
            log.warning(f"Unusable rerank response, keeping similarity order: {response[:100]!r}")
            return RerankResult.identity(len(facts), reason="malformed")

        log.debug("Facts reranked", candidates=len(facts), kept=len(order))
        return RerankResult(order=order)
