"""
Audio synthesis: script text -> stored MP3 + duration estimate.

Production markers ([pause], [emphasis], [transition]) and markdown are
stripped, the text is split at sentence boundaries into chunks the TTS
capability accepts, and the MP3 chunks are concatenated in order. Duration
is estimated from the spoken word count at 150 words per minute. Synthesis
cannot be faked, so any failure raises PipelineError.
"""

import logging
import re
from typing import List, Optional

from podcraft.config import TTS_MAX_CHARS, WORDS_PER_MINUTE
from podcraft.errors import PipelineError, PipelineValidationError
from podcraft.pipeline_types import AudioResult, VoiceSettings
from podcraft.providers.tts import SpeechProvider
from podcraft.storage import AudioStore, unique_audio_name
from podcraft.utils import count_words, estimate_speech_seconds, strip_think_blocks

logger = logging.getLogger(__name__)

_MARKER_RE = re.compile(r"\[[^\]\n]{1,40}\]")


def clean_script_for_tts(script_text: str) -> str:
    """Remove production markers, markdown and LLM artifacts from script text."""
    clean = strip_think_blocks(script_text)
    clean = _MARKER_RE.sub(" ", clean)
    clean = re.sub(r"^#+\s*", "", clean, flags=re.MULTILINE)
    clean = re.sub(r"\*\*|__|[*`]", "", clean)

    unicode_map = {
        "\u2018": "'", "\u2019": "'",  # Smart quotes
        "\u201c": '"', "\u201d": '"',  # Smart double quotes
        "\u2026": "...",  # Ellipsis
    }
    for old, new in unicode_map.items():
        clean = clean.replace(old, new)
    # A spaced dash is a pause; an unspaced one joins a compound word
    clean = re.sub(r"[^\S\n]+[\u2013\u2014][^\S\n]+", " - ", clean)
    clean = re.sub(r"[\u2013\u2014]", "-", clean)

    clean = re.sub(r"[^\S\n]+", " ", clean)
    clean = re.sub(r" *\n *", "\n", clean)
    clean = re.sub(r"\n{3,}", "\n\n", clean)
    return clean.strip()


def chunk_text(text: str, max_chars: int = TTS_MAX_CHARS) -> List[str]:
    """Split text at sentence ends so each TTS call stays under max_chars."""
    sentences = re.split(r"(?<=[.!?])\s+|\n+", text)
    chunks, current = [], ""
    for s in sentences:
        if not s:
            continue
        while len(s) > max_chars:
            # One oversized sentence: hard-split on the last space before the limit
            cut = s.rfind(" ", 0, max_chars)
            cut = cut if cut > 0 else max_chars
            if current:
                chunks.append(current.strip())
                current = ""
            chunks.append(s[:cut].strip())
            s = s[cut:].strip()
        if current and len(current) + len(s) + 1 > max_chars:
            chunks.append(current.strip())
            current = s
        else:
            current = f"{current} {s}" if current else s
    if current.strip():
        chunks.append(current.strip())
    return [c for c in chunks if c]


class AudioSynthesizer:

    def __init__(self, speech: SpeechProvider, store: AudioStore, max_chars: int = TTS_MAX_CHARS):
        self.speech = speech
        self.store = store
        self.max_chars = max_chars

    async def _render(self, text: str, voice: VoiceSettings, filename: str) -> AudioResult:
        spoken = clean_script_for_tts(text)
        if not spoken:
            raise PipelineValidationError("Script content is required")
        chunks = chunk_text(spoken, self.max_chars)
        logger.info(f"Synthesizing {count_words(spoken)} words in {len(chunks)} chunk(s), "
                    f"voice={voice.model} speed={voice.speed}")
        try:
            parts = []
            for i, chunk in enumerate(chunks, 1):
                parts.append(await self.speech.synthesize(chunk, voice.model, voice.speed))
                logger.debug(f"  chunk {i}/{len(chunks)} done")
            url = self.store.save(b"".join(parts), filename)
        except Exception as e:
            logger.error(f"Audio generation failed: {type(e).__name__}: {e}")
            raise PipelineError("Failed to generate audio") from e
        return AudioResult(audio_url=url,
                           duration=estimate_speech_seconds(spoken, WORDS_PER_MINUTE))

    async def synthesize(self, script_text: str,
                         voice_settings: Optional[VoiceSettings] = None) -> AudioResult:
        if not script_text or not script_text.strip():
            raise PipelineValidationError("Script content is required")
        result = await self._render(script_text, voice_settings or VoiceSettings(),
                                    unique_audio_name("podcast"))
        logger.info(f"Audio ready: {result.audio_url} (~{result.duration}s)")
        return result

    async def synthesize_segment(self, segment_text: str, voice_settings: Optional[VoiceSettings],
                                 segment_index: int) -> AudioResult:
        """Regenerate audio for one paragraph without touching the rest of the script."""
        if not segment_text or not segment_text.strip():
            raise PipelineValidationError("Segment text is required")
        if segment_index < 0:
            raise PipelineValidationError("Segment index must be non-negative")
        result = await self._render(segment_text, voice_settings or VoiceSettings(),
                                    unique_audio_name(f"segment_{segment_index}"))
        return result.model_copy(update={"segment_index": segment_index})
