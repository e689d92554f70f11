"""Script generation stage.

Turns prompt + research (+ episode context for a series) into a narrated
script with timed sections. The structural template is chosen by the topic's
narrative angle, and its section budgets are scaled to the target duration.
Analytics are recomputed from the returned text rather than trusting the
model's arithmetic. There is no fallback: a failed generation raises
PipelineError so the workflow halts instead of delivering filler.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from pydantic import ValidationError

from podcraft.config import DEFAULT_EPISODE_MINUTES, READING_WORDS_PER_MINUTE, WORDS_PER_MINUTE
from podcraft.errors import PipelineError, PipelineValidationError
from podcraft.pipeline_episodes import EpisodePlanner
from podcraft.pipeline_types import (
    EnhancedResearchResult, Episode, EpisodePlanResult, ResearchResult, ResearchUtilization,
    ScriptAnalytics, ScriptResult, ScriptSection, ScriptSuggestion, TopicAnalysis,
)
from podcraft.providers.chat import ChatProvider
from podcraft.research.integrator import research_digest
from podcraft.utils import count_pauses, count_words, parse_json_response

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TemplateSection:
    type: str
    title: str
    seconds: int
    guidance: str


@dataclass(frozen=True)
class ScriptTemplate:
    name: str
    sections: Tuple[TemplateSection, ...]

    @property
    def base_seconds(self) -> int:
        return sum(s.seconds for s in self.sections)


SCRIPT_TEMPLATES = {
    "historical": ScriptTemplate("Chronological Narrative", (
        TemplateSection("opening", "Hook Opening", 60, "Pivotal moment that changed everything"),
        TemplateSection("context", "Context Setting", 120, "The world before this development"),
        TemplateSection("exploration", "Timeline Exploration", 600, "Key milestones and turning points"),
        TemplateSection("analysis", "Current Impact Analysis", 300, "How it transformed the landscape"),
        TemplateSection("conclusion", "Future Implications", 120, "What's next and lessons learned"),
    )),
    "technical": ScriptTemplate("Problem-Solution Framework", (
        TemplateSection("opening", "Problem Introduction", 60, "The challenge that needed solving"),
        TemplateSection("context", "Background Context", 120, "Previous attempts and limitations"),
        TemplateSection("exploration", "Solution Deep-Dive", 600, "How it works and why it's innovative"),
        TemplateSection("analysis", "Impact Assessment", 300, "Real-world applications and benefits"),
        TemplateSection("conclusion", "Future Evolution", 120, "Next-generation developments"),
    )),
    "human-impact": ScriptTemplate("Story-Driven Journey", (
        TemplateSection("opening", "Personal Story Opening", 90, "One person whose life this changed"),
        TemplateSection("context", "The Human Context", 150, "Who is affected and what was at stake"),
        TemplateSection("exploration", "Stories of Change", 540, "Several lives, before and after"),
        TemplateSection("analysis", "Broader Ripple Effects", 300, "Communities, businesses and institutions"),
        TemplateSection("conclusion", "Reflection and Call to Action", 120, "What listeners can take away"),
    )),
    "market-analysis": ScriptTemplate("Market Landscape Briefing", (
        TemplateSection("opening", "Market Shock Opening", 60, "A surprising number or market shift"),
        TemplateSection("context", "Market Context", 150, "Size, growth and how we got here"),
        TemplateSection("exploration", "Players and Dynamics", 540, "Who competes, who wins and why"),
        TemplateSection("analysis", "Numbers and Impact", 330, "The data behind the story"),
        TemplateSection("conclusion", "Outlook and Bets", 120, "Where the market goes next"),
    )),
    "comparative": ScriptTemplate("Side-by-Side Comparison", (
        TemplateSection("opening", "Contrast Hook", 60, "The difference that makes this matter"),
        TemplateSection("context", "Setting the Criteria", 120, "How the options will be judged"),
        TemplateSection("exploration", "First Option Analysis", 330, "Strengths, weaknesses, evidence"),
        TemplateSection("exploration", "Second Option Analysis", 330, "Strengths, weaknesses, evidence"),
        TemplateSection("analysis", "Head-to-Head Comparison", 240, "Where each one wins"),
        TemplateSection("conclusion", "Recommendations", 120, "Which to choose, and when"),
    )),
    "explanatory": ScriptTemplate("Guided Explainer", (
        TemplateSection("opening", "Curiosity Hook", 60, "A question the listener didn't know they had"),
        TemplateSection("context", "The Basics", 180, "Definitions and background"),
        TemplateSection("exploration", "How It Works", 540, "Mechanisms explained with analogies"),
        TemplateSection("analysis", "Why It Matters", 300, "Applications and consequences"),
        TemplateSection("conclusion", "Key Takeaways", 120, "What to remember"),
    )),
}

DEFAULT_TEMPLATE = "historical"


def select_template(angle: Optional[str]) -> ScriptTemplate:
    return SCRIPT_TEMPLATES.get(angle or "", SCRIPT_TEMPLATES[DEFAULT_TEMPLATE])


def section_budgets(template: ScriptTemplate, target_seconds: int) -> List[int]:
    """Scale template budgets to ``target_seconds``; the result sums to it exactly."""
    base = template.base_seconds
    budgets = [round(s.seconds * target_seconds / base) for s in template.sections]
    drift = target_seconds - sum(budgets)
    largest = max(range(len(budgets)), key=lambda i: budgets[i])
    budgets[largest] += drift
    return budgets


def compute_analytics(content: str, model_analytics: Optional[dict] = None) -> ScriptAnalytics:
    """Word/time/pause analytics from the script text itself.

    Research-usage counters can only come from the model and are kept when
    they are plain integers.
    """
    words = count_words(content)
    extras = {}
    for key, field in (("statisticsUsed", "statistics_used"), ("storiesIncluded", "stories_included"),
                       ("conceptsExplained", "concepts_explained"), ("engagementHooks", "engagement_hooks")):
        value = (model_analytics or {}).get(key)
        if isinstance(value, int) and not isinstance(value, bool):
            extras[field] = value
    return ScriptAnalytics(
        word_count=words,
        reading_time=round(words / READING_WORDS_PER_MINUTE, 1),
        speech_time=round(words / WORDS_PER_MINUTE * 60),
        pause_count=count_pauses(content),
        **extras,
    )


def _structure_block(template: ScriptTemplate, budgets: List[int]) -> str:
    return "\n".join(f"{i}. {s.title} ({secs}s): {s.guidance}"
                     for i, (s, secs) in enumerate(zip(template.sections, budgets), 1))


def _sections_example(template: ScriptTemplate, budgets: List[int]) -> str:
    return ",\n".join(f'    {{"type": "{s.type}", "content": "section content", "duration": {secs}, '
                      f'"keyElements": ["element"]}}'
                      for s, secs in zip(template.sections, budgets))


class ScriptGenerator:

    def __init__(self, chat: ChatProvider, max_tokens: int = 8000):
        self.chat = chat
        self.max_tokens = max_tokens

    def build_prompt(self, prompt: str, research, template: ScriptTemplate, budgets: List[int],
                     minutes: int, analysis: Optional[TopicAnalysis] = None,
                     episode: Optional[Episode] = None,
                     plan: Optional[EpisodePlanResult] = None) -> str:
        audience = analysis.audience if analysis else "general"
        complexity = analysis.complexity if analysis else "intermediate"
        angle = analysis.angle if analysis else DEFAULT_TEMPLATE
        if episode is not None:
            header = f"""Create a podcast script for Episode {episode.episode_number} of {plan.total_episodes}:

Series Topic: "{prompt}"
Episode Title: "{episode.title}"
Episode Focus: "{episode.description}"
Key Topics: {", ".join(episode.key_topics)}

This episode is part of a series. Reference earlier episodes when building on them and tease the next episode where natural."""
        else:
            header = f'Create a compelling, professionally-structured podcast script for: "{prompt}"'

        return f"""{header}

RESEARCH DATA:
{research_digest(research)}

SCRIPT STRUCTURE ({template.name}):
{_structure_block(template, budgets)}

INTEGRATION REQUIREMENTS:
1. **Natural Research Weaving**: Integrate statistics, quotes, and facts naturally into the narrative
2. **Story Arc**: Use human stories to create emotional connection
3. **Concept Clarity**: Explain technical concepts with relatable analogies
4. **Engagement Hooks**: Place surprising facts at strategic moments
5. **Source Attribution**: Reference research sources naturally

STYLE GUIDELINES:
- Conversational, accessible tone for {audience} audience
- [pause] markers every 15-20 seconds for natural speech rhythm
- [emphasis] tags for key statistics and quotes
- [transition] markers between major sections
- Rhetorical questions to maintain engagement

TARGET SPECIFICATIONS:
- Duration: {minutes} minutes ({minutes * 120:,}-{minutes * WORDS_PER_MINUTE:,} words)
- Complexity: {complexity} level
- Angle: {angle} approach

Return JSON format:
{{
  "content": "Full script with formatting markers",
  "sections": [
{_sections_example(template, budgets)}
  ],
  "analytics": {{"statisticsUsed": 0, "storiesIncluded": 0, "conceptsExplained": 0, "engagementHooks": 0}},
  "researchUtilization": {{"timelineEvents": 0, "statisticsUsed": 0, "storiesIncluded": 0, "quotesUsed": 0, "conceptsExplained": 0, "trendsDiscussed": 0, "surprisingFactsUsed": 0}}
}}"""

    async def generate(self, prompt: str, research: Union[ResearchResult, EnhancedResearchResult, None],
                       episode_number: Optional[int] = None,
                       episode_plan: Optional[EpisodePlanResult] = None,
                       analysis: Optional[TopicAnalysis] = None,
                       target_minutes: Optional[int] = None) -> ScriptResult:
        if not prompt or not prompt.strip() or research is None:
            raise PipelineValidationError("Prompt and research data are required")
        episode = None
        if episode_number is not None:
            episode = EpisodePlanner.find_episode(episode_plan, episode_number)

        minutes = (episode.estimated_duration if episode else None) or target_minutes or DEFAULT_EPISODE_MINUTES
        template = select_template(analysis.angle if analysis else None)
        budgets = section_budgets(template, minutes * 60)
        label = f"episode {episode_number}" if episode else "project"
        logger.info(f"Generating {label} script: {template.name}, {minutes} min")

        try:
            raw = await self.chat.complete(
                self.build_prompt(prompt, research, template, budgets, minutes, analysis, episode, episode_plan),
                temperature=0.6, max_tokens=self.max_tokens, json_mode=True,
            )
            result = self._parse(raw, template, budgets, episode_number)
        except PipelineError:
            raise
        except Exception as e:
            logger.error(f"Script generation failed ({label}): {type(e).__name__}: {e}")
            raise PipelineError("Script generation failed") from e

        logger.info(f"Script ready ({label}): {result.analytics.word_count} words, "
                    f"{result.analytics.pause_count} pauses, {result.total_duration}s")
        return result

    @staticmethod
    def _parse(raw: str, template: ScriptTemplate, budgets: List[int],
               episode_number: Optional[int]) -> ScriptResult:
        data = parse_json_response(raw)
        if not isinstance(data, dict):
            raise ValueError("Script response is not a JSON object")
        content = data.get("content")
        if not isinstance(content, str) or not content.strip():
            raise ValueError("Script response has no content")

        sections = [ScriptSection.model_validate(s) for s in data.get("sections") or []
                    if isinstance(s, dict)]
        if len(sections) == len(budgets):
            sections = [s.model_copy(update={"duration": secs}) for s, secs in zip(sections, budgets)]

        model_analytics = data.get("analytics")
        analytics = compute_analytics(content, model_analytics if isinstance(model_analytics, dict) else None)
        utilization = None
        if isinstance(data.get("researchUtilization"), dict):
            try:
                utilization = ResearchUtilization.model_validate(data["researchUtilization"])
            except ValidationError:
                logger.warning("Ignoring malformed researchUtilization block")

        total = sum(s.duration for s in sections) if sections else analytics.speech_time
        return ScriptResult(
            content=content.strip(),
            sections=sections,
            total_duration=total,
            analytics=analytics,
            research_utilization=utilization,
            episode_number=episode_number,
        )

    async def suggest_improvements(self, content: str) -> List[ScriptSuggestion]:
        """Editing suggestions for an existing script. Errors propagate."""
        if not content or not content.strip():
            raise PipelineValidationError("Script content is required")
        user = (f'Analyze this podcast script and provide improvement suggestions: "{content}". '
                'Format as JSON: { "suggestions": [{"type": string, "suggestion": string, '
                '"targetSection": string}] }')
        try:
            raw = await self.chat.complete(
                user,
                "You are a podcast editing expert. Analyze scripts and provide specific improvement "
                "suggestions for flow, engagement, and clarity.",
                temperature=0.5, max_tokens=1500, json_mode=True,
            )
            data = parse_json_response(raw)
            items = (data.get("suggestions") or []) if isinstance(data, dict) else []
            return [ScriptSuggestion.model_validate(item) for item in items]
        except Exception as e:
            logger.error(f"Script suggestions failed: {type(e).__name__}: {e}")
            raise PipelineError("Failed to generate suggestions") from e
