"""
Completion Service
==================

Language-model completion used for open information extraction, fact
reranking and answer generation.

``OpenAICompatibleClient`` talks to any OpenAI-style ``/chat/completions``
endpoint (OpenAI, OpenRouter, vLLM, ...) through aiohttp.

Environment Variables:
    OPENAI_API_KEY / OPENROUTER_API_KEY: API key (first one found)
    OPENAI_BASE_URL: Base URL (default: https://api.openai.com/v1)

Usage:
    llm = OpenAICompatibleClient(model="gpt-4o-mini")
    text = await llm.complete("Say hello")
    await llm.close()
"""

import os
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import aiohttp
import structlog

from hippograph.exceptions import CollaboratorError

log = structlog.get_logger()

DEFAULT_BASE_URL = "https://api.openai.com/v1"


class CompletionService(ABC):
    """Anything that turns a prompt into text."""

    @abstractmethod
    async def complete(self, prompt: str) -> str:
        """Return the model's completion for ``prompt``."""


class OpenAICompatibleClient(CompletionService):
    """
    Chat-completions client for OpenAI-compatible APIs.

    Each ``complete`` call sends a single user message. Temperature defaults to
    0.0 for deterministic extraction and reranking.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        base_url: Optional[str] = None,
        temperature: float = 0.0,
        max_tokens: Optional[int] = None,
        timeout: float = 120.0,
        system_prompt: Optional[str] = None,
    ):
        self.api_key = api_key or os.getenv("OPENAI_API_KEY") or os.getenv("OPENROUTER_API_KEY", "")
        self.model = model
        self.base_url = (base_url or os.getenv("OPENAI_BASE_URL") or DEFAULT_BASE_URL).rstrip("/")
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.system_prompt = system_prompt
        self.session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
        return self.session

    async def close(self):
        """Close the aiohttp session."""
        if self.session and not self.session.closed:
            await self.session.close()

    def _build_payload(self, prompt: str) -> Dict[str, Any]:
        messages = []
        if self.system_prompt:
            messages.append({"role": "system", "content": self.system_prompt})
        messages.append({"role": "user", "content": prompt})

        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
        }
        if self.max_tokens is not None:
            payload["max_tokens"] = self.max_tokens
        return payload

    async def complete(self, prompt: str) -> str:
        """
        Generate a completion.

        Raises:
            CollaboratorError: On transport errors, non-200 status or an
                empty choices list
        """
        session = await self._get_session()
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            async with session.post(
                f"{self.base_url}/chat/completions",
                json=self._build_payload(prompt),
                headers=headers
            ) as response:
                if response.status != 200:
                    error_text = await response.text()
                    log.error(f"Completion API error {response.status}: {error_text}")
                    raise CollaboratorError(
                        f"completion API error: {response.status} - {error_text}",
                        collaborator="llm",
                    )
                data = await response.json()
        except aiohttp.ClientError as e:
            raise CollaboratorError(f"completion request failed: {e}", collaborator="llm") from e

        if data.get("error"):
            raise CollaboratorError(
                f"completion API error: {data['error'].get('message', 'unknown error')}",
                collaborator="llm",
            )
        if not data.get("choices"):
            log.error(f"Invalid completion response: {data}")
            raise CollaboratorError("no completion returned", collaborator="llm")

        completion = data["choices"][0]["message"]["content"] or ""

        usage = data.get("usage") or {}
        log.debug(
            f"Generated completion ({len(completion)} chars)",
            total_tokens=usage.get("total_tokens", 0),
        )
        return completion

    def __repr__(self) -> str:
        return f"OpenAICompatibleClient(model={self.model}, base_url={self.base_url})"
