"""
Topic analyzer: classifies a raw podcast topic into a domain/audience/complexity profile.

Asks the chat model for a structured analysis first. Any failure (provider
error, timeout, malformed or out-of-schema JSON) degrades to deterministic
keyword rules, so analysis always succeeds.
"""

import logging
import re
from typing import Optional

from pydantic import ValidationError

from podcraft.config import TOPIC_ANALYSIS_TIMEOUT
from podcraft.pipeline_types import TopicAnalysis
from podcraft.providers.chat import ChatProvider
from podcraft.utils import parse_json_response, with_fallback

logger = logging.getLogger(__name__)


# --- Deterministic keyword rules (first match wins) ---

_DOMAIN_RULES = [
    ("fintech", re.compile(r"\b(?:payment|fintech|banking|upi)", re.IGNORECASE)),
    ("healthcare", re.compile(r"\b(?:health|medical|clinical)", re.IGNORECASE)),
    ("technology", re.compile(r"\b(?:tech|software|digital)|\bai\b", re.IGNORECASE)),
    ("education", re.compile(r"\b(?:education|learning|school)", re.IGNORECASE)),
]

_COMPLEXITY_RULES = [
    ("beginner", re.compile(r"\b(?:basic|introduction|beginner)", re.IGNORECASE)),
    ("expert", re.compile(r"\b(?:advanced|technical|expert)", re.IGNORECASE)),
]

_AUDIENCE_RULES = [
    ("business", re.compile(r"\b(?:business|enterprise|market)", re.IGNORECASE)),
    ("technical", re.compile(r"\b(?:technical|developer|engineering)", re.IGNORECASE)),
]

FALLBACK_KEY_ELEMENTS = [
    "Background and context",
    "Key concepts and principles",
    "Current applications and use cases",
    "Impact and implications",
    "Future developments",
]

FALLBACK_CONTENT_GOALS = [
    "Educate listeners on the topic",
    "Provide practical insights",
    "Inspire further exploration",
]


def _first_match(text: str, rules: list, default: str) -> str:
    for label, pattern in rules:
        if pattern.search(text):
            return label
    return default


def analyze_keywords(raw_prompt: str) -> TopicAnalysis:
    """Best-effort analysis from keyword rules alone."""
    return TopicAnalysis(
        domain=_first_match(raw_prompt, _DOMAIN_RULES, "business"),
        complexity=_first_match(raw_prompt, _COMPLEXITY_RULES, "intermediate"),
        audience=_first_match(raw_prompt, _AUDIENCE_RULES, "general"),
        angle="explanatory",
        scope="multi-faceted",
        key_elements=list(FALLBACK_KEY_ELEMENTS),
        content_goals=list(FALLBACK_CONTENT_GOALS),
        expertise_level="intermediate",
        origin="fallback",
    )


def _build_analysis_prompt(raw_prompt: str) -> str:
    return f"""Analyze this podcast topic request and categorize it for optimal content creation:

Topic: "{raw_prompt}"

You are an expert content strategist. Analyze this topic across multiple dimensions to ensure the best possible podcast content creation.

Return ONLY valid JSON in this exact format:
{{
  "domain": "fintech|healthcare|education|business|technology|science|arts|history|politics|social|entertainment|sports|lifestyle",
  "complexity": "beginner|intermediate|expert",
  "audience": "general|technical|business|academic|student",
  "angle": "historical|technical|human-impact|market-analysis|comparative|explanatory",
  "scope": "single-concept|multi-faceted|comparative",
  "keyElements": ["element1", "element2", "element3", "element4", "element5"],
  "contentGoals": ["goal1", "goal2", "goal3"],
  "expertiseLevel": "basic|intermediate|advanced"
}}

Analysis Guidelines:
- Domain: What field of expertise is most relevant?
- Complexity: What level of prior knowledge does this topic require?
- Audience: Who would be most interested and benefit from this content?
- Angle: What's the most compelling narrative approach?
- Scope: How broad is the topic coverage?
- Key Elements: What are the 5 most important aspects to cover?
- Content Goals: What should listeners gain from this episode?
- Expertise Level: How much domain expertise is needed to create quality content?"""


class TopicAnalyzer:

    def __init__(self, chat: ChatProvider, timeout: Optional[float] = TOPIC_ANALYSIS_TIMEOUT):
        self.chat = chat
        self.timeout = timeout

    async def _analyze_with_model(self, raw_prompt: str) -> TopicAnalysis:
        raw = await self.chat.complete(_build_analysis_prompt(raw_prompt),
                                       temperature=0.3, max_tokens=1000, json_mode=True)
        if not raw:
            raise ValueError("No analysis content received")
        data = parse_json_response(raw)
        try:
            analysis = TopicAnalysis.model_validate({**data, "origin": "model"})
        except ValidationError as e:
            raise ValueError(f"Topic analysis out of schema: {e.error_count()} errors") from e
        logger.info(f"Topic analysis: domain={analysis.domain} angle={analysis.angle} "
                    f"scope={analysis.scope} audience={analysis.audience}")
        return analysis

    async def analyze(self, raw_prompt: str) -> TopicAnalysis:
        """Classify ``raw_prompt``. Never raises."""
        logger.info("Analyzing topic domain and characteristics...")
        return await with_fallback(
            self._analyze_with_model(raw_prompt),
            self.timeout,
            lambda: analyze_keywords(raw_prompt),
            "Topic analysis",
        )
