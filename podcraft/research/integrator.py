"""
Research integrator: turns raw research into podcast-ready structured material.

The chat model extracts nine typed categories from the concatenated research
text. If extraction fails for any reason the already-available key points and
statistics are sliced into the same categories by position. Both paths then
share the deterministic utilization plan (which element goes in the intro,
body, conclusion or hooks) and the content-richness scores.
"""

import logging
from typing import Optional

from pydantic import ValidationError

from podcraft.config import INTEGRATION_TIMEOUT
from podcraft.pipeline_types import (
    ContentRichness, CriticalStat, DomainExpertise, EnhancedResearchResult,
    ResearchResult, StructuredResearch, TechnicalConcept, TopicAnalysis, UtilizationPlan,
)
from podcraft.providers.chat import ChatProvider
from podcraft.utils import parse_json_response, with_fallback

logger = logging.getLogger(__name__)

MAX_RESEARCH_CHARS = 24000


def extract_research_text(research: ResearchResult) -> str:
    parts = [" ".join(s.full_content or s.summary or "" for s in research.sources)]
    parts.append(" ".join(research.key_points))
    parts.append(" ".join(f"{s.fact} ({s.source})" for s in research.statistics))
    parts.append(" ".join(research.outline))
    return " ".join(p for p in parts if p).strip()


def _truncate_at_boundary(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    cut = text[:limit]
    boundary = max(cut.rfind(". "), cut.rfind("\n"))
    return cut[:boundary + 1] if boundary > limit // 2 else cut


def build_utilization_plan(data: StructuredResearch) -> UtilizationPlan:
    """Place structured elements into intro/body/conclusion/hook buckets."""
    return UtilizationPlan(
        intro_elements=[
            *(f.fact for f in data.surprising_facts[:2]),
            *data.key_narratives[:1],
            *(s.stat for s in data.critical_stats[:1]),
        ],
        body_elements=[
            *(f"{c.concept}: {c.explanation}" for c in data.technical_concepts),
            *(s.story for s in data.human_impact_stories),
            *(f"{e.date}: {e.event}" for e in data.timeline_events),
            *(f'"{i.insight}" - {i.expert}' for i in data.expert_insights),
        ],
        conclusion_elements=[
            *data.future_implications,
            *data.key_narratives[1:],
            *(i.insight for i in data.expert_insights[-1:]),
        ],
        engagement_hooks=[
            *(f'"{q.quote}"' for q in data.compelling_quotes),
            *(f.fact for f in data.surprising_facts),
            *(s.impact for s in data.human_impact_stories),
        ],
    )


def assess_content_richness(data: StructuredResearch) -> ContentRichness:
    """Capped weighted sums over category lengths; every score stays within [0, 10]."""
    narratives = len(data.key_narratives)
    stories = len(data.human_impact_stories)
    quotes = len(data.compelling_quotes)
    return ContentRichness(
        total_data_points=data.total_elements(),
        narrative_strength=min(10, narratives * 2 + stories * 2 + quotes),
        evidence_quality=min(10, len(data.critical_stats) * 2
                             + len(data.expert_insights) * 2
                             + len(data.technical_concepts)),
        engagement_potential=min(10, len(data.surprising_facts) * 2 + quotes * 1.5 + stories),
    )


def fallback_structure(research: ResearchResult) -> StructuredResearch:
    """Positional extraction from key points and statistics."""
    points = research.key_points
    return StructuredResearch(
        key_narratives=points[:3],
        critical_stats=[CriticalStat(stat=s.fact, source=s.source, context="Supporting data point")
                        for s in research.statistics],
        technical_concepts=[TechnicalConcept(concept=p.split(":")[0].strip() or p, explanation=p,
                                             importance="Core concept for understanding")
                            for p in points[3:6]],
        future_implications=points[-2:],
    )


def _assemble(research: ResearchResult, data: StructuredResearch, origin: str) -> EnhancedResearchResult:
    return EnhancedResearchResult(
        original_research=research,
        structured_data=data,
        utilization_plan=build_utilization_plan(data),
        content_richness=assess_content_richness(data),
        origin=origin,
    )


def fallback_enhancement(research: ResearchResult) -> EnhancedResearchResult:
    result = _assemble(research, fallback_structure(research), "fallback")
    # Positional categories overlap on key points; count each source element once
    richness = result.content_richness.model_copy(
        update={"total_data_points": len(research.key_points) + len(research.statistics)})
    return result.model_copy(update={"content_richness": richness})


def _build_extraction_prompt(research_text: str, analysis: TopicAnalysis,
                             expertise: DomainExpertise) -> str:
    requirements = "\n".join(f"• {r}" for r in expertise.requirements)
    return f"""You are a {expertise.expert_title} analyzing research data for a {analysis.domain} podcast.

Research Data: {research_text}

Domain Context:
- Field: {analysis.domain}
- Audience: {analysis.audience}
- Complexity: {analysis.complexity}
- Content Angle: {analysis.angle}

Expert Requirements:
{requirements}

Extract and structure this research data for maximum podcast impact. Focus on elements that will create engaging, authoritative content for {analysis.audience} audience.

Return ONLY valid JSON in this exact format:
{{
  "keyNarratives": ["narrative1", "narrative2", "narrative3"],
  "criticalStats": [{{"stat": "specific statistic", "source": "source", "context": "why important"}}],
  "compellingQuotes": [{{"quote": "actual quote", "speaker": "who said it", "context": "why significant"}}],
  "technicalConcepts": [{{"concept": "concept name", "explanation": "clear explanation", "importance": "why it matters"}}],
  "humanImpactStories": [{{"story": "brief story", "impact": "what changed", "relevance": "why it matters"}}],
  "timelineEvents": [{{"date": "when", "event": "what happened", "significance": "why important"}}],
  "futureImplications": ["implication1", "implication2", "implication3"],
  "surprisingFacts": [{{"fact": "unexpected fact", "why_surprising": "why unexpected", "source": "where from"}}],
  "expertInsights": [{{"insight": "expert opinion", "expert": "expert name/title", "credibility": "why credible"}}]
}}

Prioritize quality over quantity. Each element should be podcast-ready and compelling for the target audience."""


class ResearchIntegrator:

    def __init__(self, chat: ChatProvider, timeout: Optional[float] = INTEGRATION_TIMEOUT):
        self.chat = chat
        self.timeout = timeout

    async def _extract(self, research: ResearchResult, analysis: TopicAnalysis,
                       expertise: DomainExpertise) -> EnhancedResearchResult:
        text = _truncate_at_boundary(extract_research_text(research), MAX_RESEARCH_CHARS)
        raw = await self.chat.complete(_build_extraction_prompt(text, analysis, expertise),
                                       temperature=0.3, max_tokens=2000, json_mode=True)
        if not raw:
            raise ValueError("No extraction content received")
        try:
            data = StructuredResearch.model_validate(parse_json_response(raw))
        except ValidationError as e:
            raise ValueError(f"Extraction out of schema: {e.error_count()} errors") from e
        return _assemble(research, data, "model")

    async def enhance(self, research: ResearchResult, analysis: TopicAnalysis,
                      expertise: DomainExpertise) -> EnhancedResearchResult:
        """Structure ``research``. Never raises; degrades to positional extraction."""
        logger.info("Analyzing research for structured extraction...")
        result = await with_fallback(
            self._extract(research, analysis, expertise),
            self.timeout,
            lambda: fallback_enhancement(research),
            "Research enhancement",
        )
        richness = result.content_richness
        logger.info(f"Research enhancement ({result.origin}): {richness.total_data_points} data points, "
                    f"narrative={richness.narrative_strength} evidence={richness.evidence_quality} "
                    f"engagement={richness.engagement_potential}")
        return result


def research_digest(research, limit: int = 12000) -> str:
    """Compact plain-text view of raw or enhanced research for downstream prompts."""
    if isinstance(research, EnhancedResearchResult):
        raw = research.original_research
        plan = research.utilization_plan
        data = research.structured_data
        lines = ["KEY NARRATIVES:", *(f"- {n}" for n in data.key_narratives)]
        lines += ["CRITICAL STATISTICS:",
                  *(f"- {s.stat} ({s.source})" if s.source else f"- {s.stat}" for s in data.critical_stats)]
        lines += ["INTRO MATERIAL:", *(f"- {e}" for e in plan.intro_elements)]
        lines += ["BODY MATERIAL:", *(f"- {e}" for e in plan.body_elements)]
        lines += ["CONCLUSION MATERIAL:", *(f"- {e}" for e in plan.conclusion_elements)]
        lines += ["ENGAGEMENT HOOKS:", *(f"- {e}" for e in plan.engagement_hooks)]
    else:
        raw = research
        lines = []
    lines += ["KEY POINTS:", *(f"- {p}" for p in raw.key_points)]
    lines += ["STATISTICS:", *(f"- {s.fact} ({s.source})" for s in raw.statistics)]
    lines += ["OUTLINE:", *(f"- {o}" for o in raw.outline)]
    if raw.sources:
        lines += ["SOURCES:", *(f"- {s.title}" + (f" <{s.url}>" if s.url else "") for s in raw.sources)]
    return _truncate_at_boundary("\n".join(lines), limit)
