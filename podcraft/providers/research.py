"""Research/search capability.

The research capability is expected to browse or reason over current
information, unlike plain chat completion. ``PerplexityResearchProvider``
talks to an OpenAI-compatible search model over httpx; when no search API key
is configured ``ChatResearchProvider`` falls back to the chat model.
"""
import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from podcraft.config import (
    RESEARCH_API_KEY, RESEARCH_BASE_URL, RESEARCH_MODEL, RESEARCH_QUERY_TIMEOUT,
)
from podcraft.providers.chat import ChatProvider
from podcraft.utils import strip_think_blocks

logger = logging.getLogger(__name__)

RESEARCH_SYSTEM_PROMPT = (
    "You are an expert research analyst. Provide comprehensive, well-sourced "
    "information with specific details, statistics, and credible citations."
)


class ResearchProvider(ABC):

    @abstractmethod
    async def query(self, prompt: str) -> str:
        ...


class PerplexityResearchProvider(ResearchProvider):

    def __init__(self, api_key: str = RESEARCH_API_KEY, base_url: str = RESEARCH_BASE_URL,
                 model: str = RESEARCH_MODEL, timeout: float = RESEARCH_QUERY_TIMEOUT,
                 client: Optional[httpx.AsyncClient] = None):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self._client = client

    async def query(self, prompt: str) -> str:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": RESEARCH_SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "temperature": 0.2,
            "max_tokens": 4000,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}
        if self._client is not None:
            resp = await self._client.post(f"{self.base_url}/chat/completions",
                                           json=payload, headers=headers, timeout=self.timeout)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(f"{self.base_url}/chat/completions",
                                         json=payload, headers=headers)
        resp.raise_for_status()
        data = resp.json()
        text = strip_think_blocks(data["choices"][0]["message"]["content"] or "")
        citations = data.get("citations") or []
        if citations:
            text += "\n\nSources:\n" + "\n".join(f"- {url}" for url in citations)
        return text


class ChatResearchProvider(ResearchProvider):
    """Research via the general chat model when no search API is available."""

    def __init__(self, chat: ChatProvider):
        self.chat = chat

    async def query(self, prompt: str) -> str:
        return await self.chat.complete(prompt, RESEARCH_SYSTEM_PROMPT,
                                        temperature=0.2, max_tokens=3000)


def default_research_provider(chat: ChatProvider) -> ResearchProvider:
    if RESEARCH_API_KEY:
        return PerplexityResearchProvider()
    logger.info("RESEARCH_API_KEY not set, research queries will use the chat model")
    return ChatResearchProvider(chat)
