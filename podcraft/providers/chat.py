"""Chat-completion capability and its OpenAI-compatible adapter."""
import asyncio
import logging
import random
from abc import ABC, abstractmethod
from typing import Optional

import openai
from openai import AsyncOpenAI

from podcraft.config import CHAT_MODEL, LLM_API_KEY, LLM_BASE_URL, LLM_TIMEOUT
from podcraft.utils import strip_think_blocks

logger = logging.getLogger(__name__)


class ChatProvider(ABC):
    """Anything that turns a prompt into model text."""

    @abstractmethod
    async def complete(self, user_prompt: str, system_prompt: Optional[str] = None, *,
                       temperature: float = 0.7, max_tokens: int = 2000,
                       json_mode: bool = False) -> str:
        ...


class OpenAIChatProvider(ChatProvider):
    """Chat completion against any OpenAI-compatible endpoint.

    Retries up to 3 times (4 total attempts) with exponential backoff + jitter.
    Fast-fails on non-transient errors (BadRequestError, AuthenticationError).
    """

    max_retries = 3

    def __init__(self, client: Optional[AsyncOpenAI] = None, model: str = CHAT_MODEL,
                 timeout: float = LLM_TIMEOUT):
        self.client = client or AsyncOpenAI(base_url=LLM_BASE_URL, api_key=LLM_API_KEY)
        self.model = model
        self.timeout = timeout

    async def complete(self, user_prompt, system_prompt=None, *, temperature=0.7,
                       max_tokens=2000, json_mode=False):
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_prompt})
        create_kwargs = dict(
            model=self.model,
            messages=messages,
            max_tokens=max_tokens,
            temperature=temperature,
            timeout=self.timeout,
        )
        if json_mode:
            create_kwargs["response_format"] = {"type": "json_object"}

        for attempt in range(self.max_retries + 1):
            try:
                resp = await self.client.chat.completions.create(**create_kwargs)
                return strip_think_blocks(resp.choices[0].message.content or "")
            except (openai.BadRequestError, openai.AuthenticationError):
                raise
            except (ConnectionError, TimeoutError, OSError,
                    openai.APIConnectionError, openai.APITimeoutError,
                    openai.RateLimitError, openai.InternalServerError) as e:
                if attempt >= self.max_retries:
                    logger.error(f"Chat completion failed after {attempt + 1} attempts: {e}")
                    raise
                base_wait = 5 * (2 ** attempt)  # 5, 10, 20
                wait = base_wait + random.uniform(-base_wait * 0.3, base_wait * 0.3)
                logger.warning(
                    f"Chat completion attempt {attempt + 1}/{self.max_retries + 1} "
                    f"failed ({type(e).__name__}), retrying in {wait:.1f}s..."
                )
                await asyncio.sleep(wait)
        return ""
