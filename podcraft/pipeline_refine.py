"""Prompt refinement stage: raw idea + topic analysis + domain expertise -> content brief."""
import logging
from typing import List, Optional

from podcraft.config import DEFAULT_EPISODE_MINUTES, QUICK_REFINE_TIMEOUT, REFINE_TIMEOUT
from podcraft.pipeline_types import DomainExpertise, PromptRefinementResult, TopicAnalysis
from podcraft.providers.chat import ChatProvider
from podcraft.research.fallbacks import DEFAULT_FALLBACKS, FallbackContent
from podcraft.research.topic_analyzer import analyze_keywords
from podcraft.utils import parse_json_response, with_fallback

logger = logging.getLogger(__name__)

SCOPE_DURATIONS = {
    "single-concept": 15,
    "multi-faceted": 18,
    "comparative": 20,
}

OPENING_STRATEGIES = {
    "historical": "Start with a pivotal moment or transformation that sets the stage for the entire story",
    "technical": "Begin with a relatable problem that the technology solves, then reveal the elegant solution",
    "human-impact": "Open with a personal story that illustrates the real-world significance of the topic",
    "market-analysis": "Start with a surprising statistic or market shift that captures attention",
    "comparative": "Begin with a contrast that highlights what makes this topic unique or important",
}

CONTENT_ARCHITECTURES = {
    "single-concept": "Deep dive structure: Introduction → Core concept exploration → Applications → Implications → Conclusion",
    "multi-faceted": "Comprehensive structure: Overview → Multiple perspectives → Interconnections → Synthesis → Future outlook",
    "comparative": "Comparative structure: Setup → Option A analysis → Option B analysis → Comparison → Recommendations",
}

AUDIENCE_ADAPTATIONS = {
    ("general", "beginner"): "Use simple language, avoid jargon, include basic explanations",
    ("general", "intermediate"): "Balance accessibility with depth, define technical terms",
    ("general", "expert"): "Use appropriate terminology while maintaining clarity",
    ("technical", "beginner"): "Focus on practical applications, use many analogies",
    ("technical", "intermediate"): "Include technical details with clear explanations",
    ("technical", "expert"): "Dive deep into technical aspects and implementation details",
    ("business", "beginner"): "Frame every idea in terms of customers, costs and revenue",
    ("business", "intermediate"): "Connect mechanisms to strategy, competition and unit economics",
    ("business", "expert"): "Focus on strategic trade-offs, market structure and execution risk",
}

FALLBACK_FOCUS_AREAS = ["Introduction and Context", "Key Concepts", "Practical Examples", "Audience Insights"]
FALLBACK_TARGET_AUDIENCE = "General audience interested in the topic"


def calculate_duration(scope: str) -> int:
    """Suggested episode length in minutes; a pure function of scope."""
    return SCOPE_DURATIONS.get(scope, DEFAULT_EPISODE_MINUTES)


def audience_guidelines(audience: str, complexity: str) -> str:
    return AUDIENCE_ADAPTATIONS.get((audience, complexity), "Adapt content appropriately for audience")


def research_requirements(analysis: TopicAnalysis) -> List[str]:
    return [
        f"Historical timeline of {analysis.domain} developments",
        "Current market statistics and adoption data",
        "Real-world case studies and user stories",
        "Technical architecture and implementation details",
        "Future trends and expert predictions",
        "Regulatory landscape and policy implications",
        "Competitive analysis and market positioning",
    ]


def _build_refinement_prompt(raw_prompt: str, analysis: TopicAnalysis,
                             expertise: DomainExpertise) -> str:
    requirements = "\n".join(f"   - {r}" for r in expertise.requirements)
    questions = "\n".join(f"   - {q}" for q in expertise.key_questions)
    return f"""You are a {expertise.expert_title} and experienced podcast creator specializing in making {analysis.domain} content accessible and engaging.

Original request: "{raw_prompt}"

CONTENT ANALYSIS:
- Domain: {analysis.domain} ({expertise.description})
- Complexity Level: {analysis.complexity}
- Target Audience: {analysis.audience}
- Narrative Angle: {analysis.angle}
- Content Scope: {analysis.scope}

REFINEMENT REQUIREMENTS:
Create a compelling 15-20 minute podcast episode that:

1. **Opening Strategy** (based on {analysis.angle} angle):
   {OPENING_STRATEGIES.get(analysis.angle, "Create an engaging opening that immediately captures listener attention")}

2. **Content Architecture**:
   {CONTENT_ARCHITECTURES.get(analysis.scope, "Logical progression from introduction through exploration to conclusion")}
   Domain structure: {expertise.structure_template}

3. **Audience Adaptation** ({analysis.complexity} level):
   {audience_guidelines(analysis.audience, analysis.complexity)}
   {expertise.audience_guidance}

4. **Domain-Specific Elements** ({analysis.domain}):
{requirements}

5. **Questions the episode must answer**:
{questions}

6. **Research Specifications**:
   - Historical context and timeline
   - Current statistics and market data
   - Real-world case studies and human stories
   - Technical concepts requiring explanation
   - Future trends and expert predictions
   - Surprising facts and lesser-known insights

7. **Engagement Framework**:
   - Hook moments every 2-3 minutes
   - 3-4 compelling statistics to highlight
   - 2-3 relatable analogies for complex concepts
   - 1-2 human interest stories
   - Thought-provoking questions for reflection

Return ONLY valid JSON in this exact format:
{{
  "refinedPrompt": "a detailed podcast concept: engaging title and description, content structure with timing, key messages and takeaways, audience engagement strategies",
  "focusAreas": ["area1", "area2", "area3", "area4", "area5"]
}}"""


_QUICK_SYSTEM_PROMPT = (
    "You are a podcast creation expert. Refine user prompts to create engaging 15-20 minute "
    "podcast episodes. Focus on making topics accessible, engaging, and well-structured. "
    "Respond with JSON."
)


class PromptRefiner:
    """Builds the content brief for a project.

    ``refine`` is the domain-aware path; ``refine_quick`` is the simple path
    raced against a hard few-second budget. Both degrade to the same
    fallback shape and never raise.
    """

    def __init__(self, chat: ChatProvider, fallbacks: FallbackContent = DEFAULT_FALLBACKS,
                 timeout: Optional[float] = REFINE_TIMEOUT,
                 quick_timeout: Optional[float] = QUICK_REFINE_TIMEOUT):
        self.chat = chat
        self.fallbacks = fallbacks
        self.timeout = timeout
        self.quick_timeout = quick_timeout

    def fallback(self, raw_prompt: str) -> PromptRefinementResult:
        refined = (f"Enhanced podcast episode: {raw_prompt}. This episode will explore the key "
                   "concepts, practical applications, and insights that make this topic "
                   "engaging for listeners.")
        context = self.fallbacks.context_for(raw_prompt)
        if context:
            refined += f" {context}"
        return PromptRefinementResult(
            refined_prompt=refined,
            focus_areas=list(FALLBACK_FOCUS_AREAS),
            suggested_duration=DEFAULT_EPISODE_MINUTES,
            target_audience=FALLBACK_TARGET_AUDIENCE,
            origin="fallback",
        )

    async def _refine_with_model(self, raw_prompt: str, analysis: TopicAnalysis,
                                 expertise: DomainExpertise) -> PromptRefinementResult:
        raw = await self.chat.complete(_build_refinement_prompt(raw_prompt, analysis, expertise),
                                       temperature=0.4, max_tokens=2000, json_mode=True)
        data = parse_json_response(raw)
        refined = data.get("refinedPrompt") if isinstance(data, dict) else None
        if not isinstance(refined, str) or not refined.strip():
            raise ValueError("Refinement response missing refinedPrompt")
        focus_areas = data.get("focusAreas")
        if not isinstance(focus_areas, list) or not focus_areas:
            focus_areas = list(analysis.key_elements)
        return PromptRefinementResult(
            refined_prompt=refined.strip(),
            focus_areas=[str(a) for a in focus_areas],
            suggested_duration=calculate_duration(analysis.scope),
            target_audience=f"{analysis.audience} ({analysis.complexity} level)",
            content_strategy=analysis.angle,
            research_requirements=research_requirements(analysis),
        )

    async def refine(self, raw_prompt: str, analysis: TopicAnalysis,
                     expertise: DomainExpertise) -> PromptRefinementResult:
        logger.info(f"Refining prompt with {expertise.expert_title} persona")
        result = await with_fallback(
            self._refine_with_model(raw_prompt, analysis, expertise),
            self.timeout,
            lambda: self.fallback(raw_prompt),
            "Prompt refinement",
        )
        logger.info(f"Prompt refinement ({result.origin}): {result.suggested_duration} min, "
                    f"{len(result.focus_areas)} focus areas")
        return result

    async def _refine_quick_with_model(self, raw_prompt: str,
                                       analysis: TopicAnalysis) -> PromptRefinementResult:
        user = (f'Refine this podcast idea and provide structure: "{raw_prompt}". Include refined '
                'prompt, focus areas and target audience in JSON format: '
                '{ "refinedPrompt": string, "focusAreas": string[], "targetAudience": string }')
        raw = await self.chat.complete(user, _QUICK_SYSTEM_PROMPT, temperature=0.7,
                                       max_tokens=800, json_mode=True)
        data = parse_json_response(raw)
        return PromptRefinementResult(
            refined_prompt=data["refinedPrompt"],
            focus_areas=data.get("focusAreas") or FALLBACK_FOCUS_AREAS,
            suggested_duration=calculate_duration(analysis.scope),
            target_audience=data.get("targetAudience") or FALLBACK_TARGET_AUDIENCE,
        )

    async def refine_quick(self, raw_prompt: str,
                           analysis: Optional[TopicAnalysis] = None) -> PromptRefinementResult:
        analysis = analysis or analyze_keywords(raw_prompt)
        return await with_fallback(
            self._refine_quick_with_model(raw_prompt, analysis),
            self.quick_timeout,
            lambda: self.fallback(raw_prompt),
            "Quick prompt refinement",
        )
