"""Text-to-speech capability and its OpenAI adapter."""
import logging
from abc import ABC, abstractmethod
from typing import Optional

from openai import AsyncOpenAI

from podcraft.config import LLM_API_KEY, TTS_BASE_URL, TTS_MODEL

logger = logging.getLogger(__name__)


class SpeechProvider(ABC):

    @abstractmethod
    async def synthesize(self, text: str, voice: str, speed: float = 1.0) -> bytes:
        """Return MP3 bytes for ``text``."""


class OpenAISpeechProvider(SpeechProvider):

    def __init__(self, client: Optional[AsyncOpenAI] = None, model: str = TTS_MODEL):
        self.client = client or AsyncOpenAI(base_url=TTS_BASE_URL, api_key=LLM_API_KEY)
        self.model = model

    async def synthesize(self, text, voice, speed=1.0):
        resp = await self.client.audio.speech.create(
            model=self.model,
            voice=voice,
            input=text,
            speed=speed,
            response_format="mp3",
        )
        return resp.content
