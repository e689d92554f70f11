"""
Research orchestrator: multi-query research against the research capability.

Five category queries (timeline, statistics, stories, concepts, trends) are
dispatched concurrently with a staggered start to stay under provider rate
limits. They are awaited with all-settled semantics: a failed query leaves an
empty finding for its category and never cancels its siblings. The whole
batch is raced against a long budget (deep-research models are slow); on
timeout, or when every query came back empty, the topic-keyed fallback from
``podcraft.research.fallbacks`` is returned instead.
"""

import asyncio
import logging
import re
from typing import Dict, List, Optional

from podcraft.config import MAX_RESEARCH_QUERIES, RESEARCH_STAGGER_SECONDS, RESEARCH_TIMEOUT
from podcraft.pipeline_types import ResearchResult, ResearchSource, Statistic, TopicAnalysis
from podcraft.providers.research import ResearchProvider
from podcraft.research.fallbacks import DEFAULT_FALLBACKS, FallbackContent, topic_label

logger = logging.getLogger(__name__)

RESEARCH_QUERIES = (
    ("timeline",
     "Comprehensive historical timeline and key milestones for: {prompt}. Include founding "
     "dates, major developments, breakthrough moments, and transformative events with "
     "specific years and significance."),
    ("statistics",
     "Current statistics, market data, usage numbers, and quantitative analysis for: {prompt}. "
     "Include growth rates, adoption statistics, market size, user numbers, and performance "
     "metrics with sources."),
    ("stories",
     "Real-world human impact stories, case studies, and personal experiences related to: "
     "{prompt}. Include specific examples of how this affects individuals, businesses, and "
     "communities."),
    ("concepts",
     "Technical concepts, how it works, and system architecture for: {prompt}. Explain the "
     "underlying technology, processes, and mechanisms in clear, understandable terms."),
    ("trends",
     "Future trends, expert predictions, and emerging developments for: {prompt}. Include "
     "industry forecasts, upcoming innovations, and potential challenges or opportunities."),
)

CATEGORY_HEADINGS = {
    "timeline": ("Historical Timeline", "Historical timeline and key milestones"),
    "statistics": ("Market Data and Statistics", "By the numbers: adoption and market data"),
    "stories": ("Human Impact Stories", "Human impact stories and case studies"),
    "concepts": ("How It Works", "How it works: core concepts explained"),
    "trends": ("Future Trends", "Future trends and expert predictions"),
}

MAX_KEY_POINTS = 12
MAX_STATISTICS = 8

_URL_RE = re.compile(r"https?://[^\s)\]>\"']+")
_BULLET_RE = re.compile(r"^\s*(?:•|\*|-|\d+[.)])\s+(.+)$", re.MULTILINE)
_BULLET_PREFIX_RE = re.compile(r"^\s*(?:•|\*|-|\d+[.)])\s+")
_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")
_STAT_PATTERNS = (
    re.compile(r"\d+(?:\.\d+)?\s?%"),
    re.compile(r"\d+(?:\.\d+)?\s*(?:million|billion|trillion|crore|lakh)\b", re.IGNORECASE),
    re.compile(r"\$\d+(?:\.\d+)?\s*(?:million|billion|trillion)?", re.IGNORECASE),
)
_CITATION_RE = re.compile(r"\[(\d+)\]")
_ATTRIBUTION_RE = re.compile(r"according to ([^,.;]+)", re.IGNORECASE)
_MARKDOWN_RE = re.compile(r"\*\*|__|`|^#+\s*", re.MULTILINE)


def build_queries(refined_prompt: str, max_queries: int = len(RESEARCH_QUERIES)) -> List[tuple]:
    return [(category, template.format(prompt=refined_prompt))
            for category, template in RESEARCH_QUERIES[:max_queries]]


# ---------------------------------------------------------------------------
# Aggregation of raw findings
# ---------------------------------------------------------------------------

def _clean(text: str) -> str:
    return " ".join(_MARKDOWN_RE.sub("", text).split()).strip()


def _strip_sources_block(text: str) -> str:
    return re.split(r"\n\s*Sources:\s*\n", text, maxsplit=1)[0]


def extract_urls(text: str) -> List[str]:
    seen = []
    for url in _URL_RE.findall(text):
        url = url.rstrip(".,;")
        if url not in seen:
            seen.append(url)
    return seen


def extract_key_points(text: str) -> List[str]:
    """Bullet and numbered-list lines, falling back to leading sentences of paragraphs."""
    body = _strip_sources_block(text)
    points = []
    for match in _BULLET_RE.finditer(body):
        point = _clean(match.group(1))
        if len(point) >= 15 and not _URL_RE.fullmatch(point):
            points.append(point)
    if not points:
        for paragraph in re.split(r"\n\s*\n", body):
            sentence = _SENTENCE_SPLIT_RE.split(_clean(paragraph), maxsplit=1)[0]
            if len(sentence) >= 15:
                points.append(sentence)
    return points


def _stat_source(sentence: str, citations: List[str], default: str) -> str:
    match = _CITATION_RE.search(sentence)
    if match:
        idx = int(match.group(1)) - 1
        if 0 <= idx < len(citations):
            return citations[idx]
    match = _ATTRIBUTION_RE.search(sentence)
    if match:
        return match.group(1).strip()
    return default


def _sentences(text: str) -> List[str]:
    """Sentences of ``text``; list items and lines never run together."""
    sentences = []
    for line in _strip_sources_block(text).splitlines():
        line = _clean(_BULLET_PREFIX_RE.sub("", line))
        sentences.extend(s for s in _SENTENCE_SPLIT_RE.split(line) if s)
    return sentences


def extract_statistics(text: str, default_source: str = "Research Analysis") -> List[Statistic]:
    """Sentences carrying a percentage, a large count or a currency amount."""
    citations = extract_urls(text)
    stats = []
    for sentence in _sentences(text):
        if len(sentence) < 20 or len(sentence) > 300:
            continue
        if any(p.search(sentence) for p in _STAT_PATTERNS):
            fact = re.sub(r"\s+([.!?])$", r"\1", _CITATION_RE.sub("", sentence)).strip()
            stats.append(Statistic(fact=fact, source=_stat_source(sentence, citations, default_source)))
    return stats


def _summary(text: str, limit: int = 300) -> str:
    cleaned = _clean(_strip_sources_block(text))
    if len(cleaned) <= limit:
        return cleaned
    return cleaned[:limit].rsplit(" ", 1)[0] + "..."


def aggregate_findings(refined_prompt: str, findings: Dict[str, str]) -> ResearchResult:
    """Turn per-category raw texts into one ResearchResult."""
    label = topic_label(refined_prompt, limit=60)
    sources, key_points, statistics = [], [], []
    outline = [f"Introduction: What is {label}?"]

    for category, text in findings.items():
        if not text.strip():
            continue
        source_title, outline_item = CATEGORY_HEADINGS.get(
            category, (category.title(), category.title()))
        urls = extract_urls(text)
        sources.append(ResearchSource(
            title=f"{source_title}: {label}",
            url=urls[0] if urls else "",
            summary=_summary(text),
            full_content=text,
        ))
        for url in urls[1:4]:
            sources.append(ResearchSource(title=f"{source_title} reference", url=url))
        key_points.extend(p for p in extract_key_points(text) if p not in key_points)
        statistics.extend(s for s in extract_statistics(text, source_title)
                          if s.fact not in {x.fact for x in statistics})
        outline.append(outline_item)

    outline.append("Conclusion and key takeaways")
    return ResearchResult(
        sources=sources,
        key_points=key_points[:MAX_KEY_POINTS],
        statistics=statistics[:MAX_STATISTICS],
        outline=outline,
        raw_findings=dict(findings),
        origin="model",
    )


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------

class ResearchOrchestrator:

    def __init__(self, provider: ResearchProvider,
                 fallbacks: FallbackContent = DEFAULT_FALLBACKS,
                 timeout: Optional[float] = RESEARCH_TIMEOUT,
                 stagger: float = RESEARCH_STAGGER_SECONDS,
                 max_queries: int = MAX_RESEARCH_QUERIES):
        self.provider = provider
        self.fallbacks = fallbacks
        self.timeout = timeout
        self.stagger = stagger
        self.max_queries = max_queries

    async def _staggered_query(self, index: int, category: str, prompt: str) -> str:
        if index and self.stagger:
            await asyncio.sleep(index * self.stagger)
        logger.info(f"Research query [{category}] dispatched")
        return await self.provider.query(prompt)

    async def gather_findings(self, refined_prompt: str) -> Dict[str, str]:
        """Run every category query; failed queries yield an empty string."""
        queries = build_queries(refined_prompt, self.max_queries)
        results = await asyncio.gather(
            *(self._staggered_query(i, category, prompt)
              for i, (category, prompt) in enumerate(queries)),
            return_exceptions=True,
        )
        findings = {}
        for (category, _), result in zip(queries, results):
            if isinstance(result, BaseException):
                logger.warning(f"Research query [{category}] failed: {type(result).__name__}: {result}")
                findings[category] = ""
            else:
                findings[category] = result or ""
                logger.info(f"Research query [{category}] returned {len(findings[category])} chars")
        return findings

    async def research(self, refined_prompt: str,
                       analysis: Optional[TopicAnalysis] = None) -> ResearchResult:
        """Research ``refined_prompt``. Never raises; degrades to topic fallback content."""
        if analysis is not None:
            logger.info(f"Conducting research (domain={analysis.domain}, angle={analysis.angle})")
        try:
            findings = await asyncio.wait_for(self.gather_findings(refined_prompt), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Research timed out after {self.timeout}s, using fallback research")
            return self.fallbacks.research_result(refined_prompt)

        if not any(text.strip() for text in findings.values()):
            logger.warning("Every research query failed, using fallback research")
            return self.fallbacks.research_result(refined_prompt)

        result = aggregate_findings(refined_prompt, findings)
        logger.info(f"Research complete: {len(result.sources)} sources, "
                    f"{len(result.key_points)} key points, {len(result.statistics)} statistics")
        return result
