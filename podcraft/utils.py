"""Shared utility functions for the podcraft pipeline."""
import asyncio
import json
import logging
import re
from typing import Any, Awaitable, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)
_PAUSE_RE = re.compile(r"\[[^\]]*pause[^\]]*\]", re.IGNORECASE)


def strip_think_blocks(text: str) -> str:
    """Remove <think>...</think> blocks from LLM output (reasoning-model safety net)."""
    return re.sub(r"<think>.*?</think>", "", text, flags=re.DOTALL).strip()


def strip_code_fences(text: str) -> str:
    """Return the body of the first markdown code fence, or the text unchanged."""
    match = _FENCE_RE.search(text)
    if match:
        return match.group(1).strip()
    return text.strip()


def parse_json_response(text: str) -> Any:
    """Parse JSON from an LLM response, handling think blocks and markdown fences.

    Raises ValueError when no JSON document can be recovered.
    """
    cleaned = strip_code_fences(strip_think_blocks(text or ""))
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass
    # Models sometimes wrap the object in prose
    match = re.search(r"\{[\s\S]*\}", cleaned)
    if match:
        try:
            return json.loads(match.group())
        except json.JSONDecodeError:
            pass
    raise ValueError("Response is not valid JSON")


def count_words(text: str) -> int:
    return len(text.split())


def count_pauses(text: str) -> int:
    """Count pause markers such as [pause] or [short pause]."""
    return len(_PAUSE_RE.findall(text))


def estimate_speech_seconds(text: str, words_per_minute: int = 150) -> int:
    return round(count_words(text) / words_per_minute * 60)


async def with_fallback(
    coro: Awaitable[T],
    timeout: Optional[float],
    fallback: Callable[[], T],
    label: str,
) -> T:
    """Race ``coro`` against ``timeout`` and return ``fallback()`` on any failure.

    The timed-out call is cancelled. Errors are logged, never raised.
    """
    try:
        return await asyncio.wait_for(coro, timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"{label} timed out after {timeout}s, using fallback")
    except Exception as e:
        logger.warning(f"{label} failed ({type(e).__name__}: {e}), using fallback")
    return fallback()
