"""Type definitions for the podcraft pipeline.

Pydantic models for every stage output. JSON field names are camelCase, the
shape exchanged with the UI and requested from the model; Python attributes
are snake_case. Parsing model output through these classes is what turns a
malformed upstream response into a parse error at the stage boundary instead
of undefined fields further down the pipeline.
"""

import re
from typing import Any, ClassVar, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

Origin = Literal["model", "fallback"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Topic analysis & domain expertise
# ---------------------------------------------------------------------------
class TopicAnalysis(CamelModel):
    """Domain/audience/complexity profile of a raw topic. Immutable."""
    model_config = ConfigDict(frozen=True)

    domain: str
    complexity: Literal["beginner", "intermediate", "expert"]
    audience: Literal["general", "technical", "business", "academic", "student"]
    angle: Literal["historical", "technical", "human-impact", "market-analysis",
                   "comparative", "explanatory"]
    scope: Literal["single-concept", "multi-faceted", "comparative"]
    key_elements: List[str] = Field(default_factory=list)
    content_goals: List[str] = Field(default_factory=list)
    expertise_level: str = "intermediate"
    origin: Origin = "model"

    @field_validator("domain", "complexity", "audience", "angle", "scope", mode="before")
    @classmethod
    def _normalize_tag(cls, v):
        if isinstance(v, str):
            return v.strip().lower().replace(" ", "-") if v.strip() else v
        return v


class DomainExpertise(CamelModel):
    model_config = ConfigDict(frozen=True)

    expert_title: str
    description: str
    requirements: List[str]
    audience_guidance: str
    structure_template: str
    key_questions: List[str]


class PromptRefinementResult(CamelModel):
    refined_prompt: str
    focus_areas: List[str]
    suggested_duration: int
    target_audience: str
    content_strategy: Optional[str] = None
    research_requirements: Optional[List[str]] = None
    origin: Origin = "model"


# ---------------------------------------------------------------------------
# Research
# ---------------------------------------------------------------------------
class ResearchSource(CamelModel):
    title: str
    url: str = ""
    summary: str = ""
    full_content: Optional[str] = None


class Statistic(CamelModel):
    fact: str
    source: str = ""


class ResearchResult(CamelModel):
    sources: List[ResearchSource] = Field(default_factory=list)
    key_points: List[str] = Field(default_factory=list)
    statistics: List[Statistic] = Field(default_factory=list)
    outline: List[str] = Field(default_factory=list)
    raw_findings: Dict[str, str] = Field(default_factory=dict)
    origin: Origin = "model"


class _ResearchItem(CamelModel):
    """Structured research entry; a bare string fills the primary field."""
    primary_field: ClassVar[str] = ""

    @model_validator(mode="before")
    @classmethod
    def _from_text(cls, data):
        if isinstance(data, str):
            return {cls.primary_field: data}
        return data


class CriticalStat(_ResearchItem):
    primary_field: ClassVar[str] = "stat"
    stat: str
    source: str = ""
    context: str = ""


class CompellingQuote(_ResearchItem):
    primary_field: ClassVar[str] = "quote"
    quote: str
    speaker: str = ""
    context: str = ""


class TechnicalConcept(_ResearchItem):
    primary_field: ClassVar[str] = "concept"
    concept: str
    explanation: str = ""
    importance: str = ""


class HumanImpactStory(_ResearchItem):
    primary_field: ClassVar[str] = "story"
    story: str
    impact: str = ""
    relevance: str = ""


class TimelineEvent(_ResearchItem):
    primary_field: ClassVar[str] = "event"
    date: str = ""
    event: str
    significance: str = ""


class SurprisingFact(_ResearchItem):
    primary_field: ClassVar[str] = "fact"
    fact: str
    why_surprising: str = Field("", alias="why_surprising")
    source: str = ""


class ExpertInsight(_ResearchItem):
    primary_field: ClassVar[str] = "insight"
    insight: str
    expert: str = ""
    credibility: str = ""


class StructuredResearch(CamelModel):
    """The nine typed categories extracted from raw research text."""
    key_narratives: List[str] = Field(default_factory=list)
    critical_stats: List[CriticalStat] = Field(default_factory=list)
    compelling_quotes: List[CompellingQuote] = Field(default_factory=list)
    technical_concepts: List[TechnicalConcept] = Field(default_factory=list)
    human_impact_stories: List[HumanImpactStory] = Field(default_factory=list)
    timeline_events: List[TimelineEvent] = Field(default_factory=list)
    future_implications: List[str] = Field(default_factory=list)
    surprising_facts: List[SurprisingFact] = Field(default_factory=list)
    expert_insights: List[ExpertInsight] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data):
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data

    def total_elements(self) -> int:
        return sum(len(getattr(self, name)) for name in type(self).model_fields)


class UtilizationPlan(CamelModel):
    intro_elements: List[str] = Field(default_factory=list)
    body_elements: List[str] = Field(default_factory=list)
    conclusion_elements: List[str] = Field(default_factory=list)
    engagement_hooks: List[str] = Field(default_factory=list)


class ContentRichness(CamelModel):
    total_data_points: int = Field(ge=0)
    narrative_strength: float = Field(ge=0, le=10)
    evidence_quality: float = Field(ge=0, le=10)
    engagement_potential: float = Field(ge=0, le=10)


class EnhancedResearchResult(CamelModel):
    original_research: ResearchResult
    structured_data: StructuredResearch
    utilization_plan: UtilizationPlan
    content_richness: ContentRichness
    origin: Origin = "model"


# ---------------------------------------------------------------------------
# Episode planning
# ---------------------------------------------------------------------------
def _leading_int(v):
    """Accept "15 minutes" / "15" / 15.0 from model output."""
    if isinstance(v, str):
        match = re.search(r"\d+", v)
        if match:
            return int(match.group())
    if isinstance(v, float):
        return round(v)
    return v


class Episode(CamelModel):
    episode_number: int = Field(ge=1)
    title: str
    description: str = ""
    key_topics: List[str] = Field(default_factory=list)
    estimated_duration: int = 18
    status: Literal["planned", "completed"] = "planned"

    @field_validator("estimated_duration", mode="before")
    @classmethod
    def _coerce_duration(cls, v):
        return _leading_int(v)


class EpisodePlanResult(CamelModel):
    is_multi_episode: bool
    total_episodes: int = Field(ge=1)
    episodes: List[Episode] = Field(min_length=1)
    reasoning: str = ""

    @model_validator(mode="after")
    def _check_numbering(self):
        numbers = sorted(e.episode_number for e in self.episodes)
        if numbers != list(range(1, len(self.episodes) + 1)):
            raise ValueError(
                f"episode numbers must be unique and contiguous from 1, got {numbers}")
        if self.total_episodes != len(self.episodes):
            raise ValueError(
                f"totalEpisodes={self.total_episodes} but {len(self.episodes)} episodes listed")
        self.episodes.sort(key=lambda e: e.episode_number)
        return self

    def get_episode(self, episode_number: int) -> Optional[Episode]:
        for episode in self.episodes:
            if episode.episode_number == episode_number:
                return episode
        return None


# ---------------------------------------------------------------------------
# Scripts & quality
# ---------------------------------------------------------------------------
class ScriptSection(CamelModel):
    type: str
    content: str = ""
    duration: int = 0
    key_elements: List[str] = Field(default_factory=list)

    @field_validator("duration", mode="before")
    @classmethod
    def _coerce_duration(cls, v):
        return _leading_int(v)


class ScriptAnalytics(CamelModel):
    word_count: int
    reading_time: float
    speech_time: int
    pause_count: int
    statistics_used: Optional[int] = None
    stories_included: Optional[int] = None
    concepts_explained: Optional[int] = None
    engagement_hooks: Optional[int] = None


class ResearchUtilization(CamelModel):
    timeline_events: int = 0
    statistics_used: int = 0
    stories_included: int = 0
    quotes_used: int = 0
    concepts_explained: int = 0
    trends_discussed: int = 0
    surprising_facts_used: int = 0


class ContentQuality(CamelModel):
    research_depth: float = Field(ge=1, le=10)
    script_flow: float = Field(ge=1, le=10)
    audience_match: float = Field(ge=1, le=10)
    engagement_potential: float = Field(ge=1, le=10)
    factual_accuracy: float = Field(ge=1, le=10)
    overall_score: float = Field(ge=1, le=10)
    improvements: List[str] = Field(default_factory=list)
    strengths: List[str] = Field(default_factory=list)
    origin: Origin = "model"

    DIMENSIONS: ClassVar[tuple] = ("research_depth", "script_flow", "audience_match",
                                   "engagement_potential", "factual_accuracy")


class ScriptResult(CamelModel):
    content: str
    sections: List[ScriptSection] = Field(default_factory=list)
    total_duration: int
    analytics: ScriptAnalytics
    research_utilization: Optional[ResearchUtilization] = None
    quality_score: Optional[float] = None
    quality_assessment: Optional[ContentQuality] = None
    episode_number: Optional[int] = None


class ScriptSuggestion(CamelModel):
    type: str
    suggestion: str
    target_section: str = ""


# ---------------------------------------------------------------------------
# Audio
# ---------------------------------------------------------------------------
class VoiceSettings(CamelModel):
    model_config = ConfigDict(protected_namespaces=())

    model: str = "nova"    # voice name
    speed: float = Field(1.0, ge=0.25, le=4.0)


class AudioResult(CamelModel):
    audio_url: str
    duration: int
    segment_index: Optional[int] = None


# ---------------------------------------------------------------------------
# Project record (owned by the surrounding application)
# ---------------------------------------------------------------------------
class Project(CamelModel):
    id: str
    title: str = ""
    description: str = ""
    original_prompt: str = ""
    topic_analysis: Optional[TopicAnalysis] = None
    refined_prompt: Optional[str] = None
    refinement: Optional[PromptRefinementResult] = None
    research_data: Optional[EnhancedResearchResult] = None
    episode_plan: Optional[EpisodePlanResult] = None
    current_episode: int = 1
    script_content: Optional[str] = None
    script_analytics: Optional[ScriptAnalytics] = None
    episode_scripts: Dict[str, ScriptResult] = Field(default_factory=dict)
    audio_url: Optional[str] = None
    episode_audio_urls: Dict[str, str] = Field(default_factory=dict)
    voice_settings: VoiceSettings = Field(default_factory=VoiceSettings)
    created_at: str = ""
    updated_at: str = ""

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")
