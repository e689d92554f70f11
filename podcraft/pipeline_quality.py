"""Quality assessment: scores a script against its source research on five dimensions."""
import logging
from statistics import mean
from typing import List, Optional, Union

from pydantic.alias_generators import to_camel

from podcraft.config import QUALITY_TIMEOUT
from podcraft.pipeline_types import ContentQuality, EnhancedResearchResult, ResearchResult, ScriptResult
from podcraft.providers.chat import ChatProvider
from podcraft.research.integrator import research_digest
from podcraft.utils import parse_json_response, with_fallback

logger = logging.getLogger(__name__)

FALLBACK_SCORE = 7


def fallback_quality() -> ContentQuality:
    """Neutral, non-blocking default; ``origin`` marks it as unknown quality."""
    return ContentQuality(
        **{dimension: FALLBACK_SCORE for dimension in ContentQuality.DIMENSIONS},
        overall_score=FALLBACK_SCORE,
        improvements=["Could not assess quality automatically"],
        strengths=["Script generated successfully"],
        origin="fallback",
    )


def _clamp(value) -> float:
    return max(1.0, min(10.0, float(value)))


def _notes(value) -> List[str]:
    """Feedback list from the model; a bare string counts as one note."""
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, list):
        return [str(v) for v in value if str(v).strip()]
    return []


class QualityAssessor:

    def __init__(self, chat: ChatProvider, timeout: Optional[float] = QUALITY_TIMEOUT):
        self.chat = chat
        self.timeout = timeout

    async def _assess_with_model(self, script: ScriptResult, research) -> ContentQuality:
        user = f"""Analyze this podcast script for quality and research utilization:

SCRIPT CONTENT:
{script.content}

AVAILABLE RESEARCH:
{research_digest(research)}

Rate each dimension on a 1-10 scale and provide specific feedback:

1. **Research Depth** (1-10): How well does the script utilize the research provided?
2. **Script Flow** (1-10): How well does the content flow and maintain narrative engagement?
3. **Audience Match** (1-10): How appropriate is the complexity and style for the target audience?
4. **Engagement Potential** (1-10): How likely is this content to keep listeners engaged throughout?
5. **Factual Accuracy** (1-10): How accurate and well-sourced is the information presented?

Return JSON:
{{
  "researchDepth": 8,
  "scriptFlow": 9,
  "audienceMatch": 7,
  "engagementPotential": 8,
  "factualAccuracy": 9,
  "improvements": ["specific, actionable improvement"],
  "strengths": ["specific strength"]
}}"""
        raw = await self.chat.complete(user, temperature=0.3, max_tokens=1200, json_mode=True)
        data = parse_json_response(raw)
        scores = {field: _clamp(data[to_camel(field)]) for field in ContentQuality.DIMENSIONS}
        return ContentQuality(
            **scores,
            overall_score=round(mean(scores.values()), 1),
            improvements=_notes(data.get("improvements")),
            strengths=_notes(data.get("strengths")),
        )

    async def assess(self, script: ScriptResult,
                     research: Union[ResearchResult, EnhancedResearchResult]) -> ContentQuality:
        """Score ``script``. Never raises; degrades to a flat 7/10."""
        quality = await with_fallback(
            self._assess_with_model(script, research),
            self.timeout,
            fallback_quality,
            "Quality assessment",
        )
        logger.info(f"Quality assessment ({quality.origin}): overall {quality.overall_score}/10")
        return quality
