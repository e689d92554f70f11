"""
Topic-keyed fallback content shared by the prompt refiner and the research orchestrator.

When an upstream call times out or errors, both stages degrade to content
from this one table so the same topic always gets the same statistics and
context line, regardless of which stage fell back.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Pattern, Tuple

from podcraft.pipeline_types import ResearchResult, ResearchSource, Statistic


@dataclass(frozen=True)
class FallbackTopic:
    name: str
    pattern: Pattern
    context: str
    statistics: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)


DEFAULT_TOPICS = (
    FallbackTopic(
        name="upi",
        pattern=re.compile(r"\bupi\b|unified payments interface", re.IGNORECASE),
        context=("Unified Payments Interface (UPI), launched by NPCI in 2016, is India's "
                 "real-time account-to-account payment system."),
        statistics=(
            ("UPI processed over 10 billion transactions in a single month for the first time in August 2023",
             "NPCI monthly statistics"),
            ("More than 500 banks are live on the UPI network", "NPCI ecosystem report"),
            ("UPI accounts for the majority of India's retail digital payment volume",
             "Reserve Bank of India payment systems data"),
        ),
    ),
    FallbackTopic(
        name="digital-payments",
        pattern=re.compile(r"\b(?:payment|fintech|wallet|banking)", re.IGNORECASE),
        context="Digital payments have moved from card networks to real-time and mobile-first rails.",
        statistics=(
            ("Global digital payment transaction value continues to grow at double-digit rates annually",
             "Industry Analysis 2024"),
            ("Mobile wallets are the most used online checkout method worldwide", "Market Research Report"),
        ),
    ),
    FallbackTopic(
        name="healthcare",
        pattern=re.compile(r"\b(?:health|medical|clinical|patient)", re.IGNORECASE),
        context="Healthcare topics should separate clinical evidence from early or anecdotal findings.",
        statistics=(
            ("Adoption of digital health tools accelerated sharply after 2020", "Industry Analysis 2024"),
        ),
    ),
)

FALLBACK_KEY_POINT_TEMPLATES = (
    "Core concepts and fundamentals of {topic}",
    "Historical development and evolution",
    "Current trends and recent developments",
    "Real-world applications and use cases",
    "Future outlook and implications",
    "Best practices and expert recommendations",
)

FALLBACK_OUTLINE_TEMPLATES = (
    "Introduction: What is {topic}?",
    "Background and historical context",
    "Current landscape and key players",
    "Practical applications and examples",
    "Future trends and predictions",
    "Conclusion and key takeaways",
)


def topic_label(prompt: str, limit: int = 100) -> str:
    """Shorten a (possibly refined, multi-sentence) prompt for interpolation."""
    text = " ".join((prompt or "").split()).rstrip(".")
    if len(text) <= limit:
        return text
    cut = text[:limit].rsplit(" ", 1)[0]
    return cut + "..."


class FallbackContent:
    """Lookup over fallback topics; the first topic whose pattern matches wins."""

    def __init__(self, topics=DEFAULT_TOPICS):
        self.topics = tuple(topics)

    def match(self, prompt: str) -> Optional[FallbackTopic]:
        for topic in self.topics:
            if topic.pattern.search(prompt or ""):
                return topic
        return None

    def context_for(self, prompt: str) -> Optional[str]:
        topic = self.match(prompt)
        return topic.context if topic else None

    def statistics_for(self, prompt: str) -> List[Statistic]:
        topic = self.match(prompt)
        if topic and topic.statistics:
            return [Statistic(fact=fact, source=source) for fact, source in topic.statistics]
        label = topic_label(prompt)
        return [
            Statistic(fact=f"Key statistic relevant to {label}", source="Industry Analysis 2024"),
            Statistic(fact=f"Growth trends related to {label}", source="Market Research Report"),
        ]

    def key_points(self, prompt: str) -> List[str]:
        label = topic_label(prompt)
        return [t.format(topic=label) for t in FALLBACK_KEY_POINT_TEMPLATES]

    def research_result(self, prompt: str) -> ResearchResult:
        """Topic-generic research used when every research query failed or timed out."""
        label = topic_label(prompt)
        return ResearchResult(
            sources=[
                ResearchSource(
                    title=f"{label} - Key Research Source",
                    url="https://example.com/research",
                    summary=(f"Comprehensive analysis and insights about {label} including "
                             "background, current state, and key developments."),
                ),
                ResearchSource(
                    title=f"{label} - Industry Report",
                    url="https://example.com/industry-report",
                    summary=(f"Industry perspectives and expert opinions on {label} with "
                             "practical applications and case studies."),
                ),
            ],
            key_points=self.key_points(prompt),
            statistics=self.statistics_for(prompt),
            outline=[t.format(topic=label) for t in FALLBACK_OUTLINE_TEMPLATES],
            origin="fallback",
        )


DEFAULT_FALLBACKS = FallbackContent()
