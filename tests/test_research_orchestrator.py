"""Tests for podcraft/research/orchestrator.py and fallbacks.py."""

import asyncio
from unittest.mock import patch

from podcraft.research.fallbacks import DEFAULT_FALLBACKS, FallbackContent, topic_label
from podcraft.research.orchestrator import (
    RESEARCH_QUERIES,
    ResearchOrchestrator,
    aggregate_findings,
    build_queries,
    extract_key_points,
    extract_statistics,
    extract_urls,
)

UPI_TOPIC = "How UPI transformed digital payments in India"


# ---------------------------------------------------------------------------
# Extraction helpers
# ---------------------------------------------------------------------------

class TestExtraction:

    def test_urls_deduplicated_in_order(self):
        text = "see https://a.org/x, then https://b.org and https://a.org/x."
        assert extract_urls(text) == ["https://a.org/x", "https://b.org"]

    def test_key_points_from_bullets(self, research_text):
        points = extract_key_points(research_text)
        assert points[0] == "UPI was launched by NPCI in April 2016 with 21 member banks"
        # The Sources block is not a key point
        assert not any("npci.org.in" in p for p in points)

    def test_key_points_from_paragraphs(self):
        text = "UPI is a real-time payment system. It was built by NPCI.\n\nQR codes drove merchant adoption. Fees are zero."
        assert extract_key_points(text) == [
            "UPI is a real-time payment system.",
            "QR codes drove merchant adoption.",
        ]

    def test_statistics_with_attribution_and_citation(self, research_text):
        stats = extract_statistics(research_text)
        by_fact = {s.fact.split()[0] + " " + s.fact.split()[1]: s.source for s in stats}
        assert by_fact["Adoption grew"] == "NPCI"
        assert by_fact["UPI volume"] == "https://www.npci.org.in/stats"

    def test_statistics_default_source(self):
        stats = extract_statistics("Merchants saved 30% on fees last year.", "Market Data")
        assert stats[0].source == "Market Data"

    def test_topic_label_truncates(self):
        label = topic_label("word " * 50, limit=20)
        assert label.endswith("...")
        assert len(label) <= 23


class TestAggregate:

    def test_aggregate(self, research_text):
        result = aggregate_findings(UPI_TOPIC, {"timeline": research_text, "statistics": "", "trends": ""})
        assert result.origin == "model"
        assert len(result.sources) == 2  # category source + one extra reference
        assert result.sources[0].url == "https://www.npci.org.in/stats"
        assert result.sources[0].full_content == research_text
        assert result.outline[0] == f"Introduction: What is {UPI_TOPIC}?"
        assert result.outline[-1] == "Conclusion and key takeaways"
        assert len(result.outline) == 3
        assert result.raw_findings["statistics"] == ""

    def test_build_queries(self):
        queries = build_queries("UPI")
        assert [c for c, _ in queries] == ["timeline", "statistics", "stories", "concepts", "trends"]
        assert all("UPI" in q for _, q in queries)
        assert len(build_queries("UPI", max_queries=2)) == 2


# ---------------------------------------------------------------------------
# ResearchOrchestrator
# ---------------------------------------------------------------------------

class TestOrchestrator:

    def test_staggered_dispatch(self, make_research):
        provider = make_research(default="finding")
        orchestrator = ResearchOrchestrator(provider, stagger=1.0)
        delays = []

        async def fake_sleep(seconds):
            delays.append(seconds)

        async def run():
            with patch("podcraft.research.orchestrator.asyncio.sleep", side_effect=fake_sleep):
                return await orchestrator.gather_findings(UPI_TOPIC)

        findings = asyncio.run(run())
        assert sorted(delays) == [1.0, 2.0, 3.0, 4.0]
        assert len(provider.queries) == len(RESEARCH_QUERIES)
        assert set(findings) == {"timeline", "statistics", "stories", "concepts", "trends"}

    def test_failed_query_does_not_cancel_siblings(self, make_research, research_text):
        provider = make_research(answers={"Future trends": RuntimeError("rate limited")},
                                 default=research_text)
        orchestrator = ResearchOrchestrator(provider, stagger=0)
        findings = asyncio.run(orchestrator.gather_findings(UPI_TOPIC))
        assert findings["trends"] == ""
        assert findings["timeline"] == research_text
        assert len(provider.queries) == 5

        result = asyncio.run(orchestrator.research(UPI_TOPIC))
        assert result.origin == "model"
        assert "Future trends and expert predictions" not in result.outline

    def test_timeout_returns_topic_fallback(self, make_research):
        provider = make_research(default="late", delay=5.0)
        orchestrator = ResearchOrchestrator(provider, timeout=0.05, stagger=0)
        result = asyncio.run(orchestrator.research(UPI_TOPIC))
        assert result.origin == "fallback"
        assert result.statistics[0].fact.startswith("UPI processed over 10 billion transactions")
        assert result.statistics[0].source == "NPCI monthly statistics"
        assert len(result.sources) == 2
        assert len(result.key_points) == 6

    def test_all_failed_returns_fallback(self, make_research):
        provider = make_research(default=ConnectionError("down"))
        orchestrator = ResearchOrchestrator(provider, stagger=0)
        result = asyncio.run(orchestrator.research("The history of jazz"))
        assert result.origin == "fallback"
        assert result.statistics[0].fact == "Key statistic relevant to The history of jazz"


class TestFallbackContent:

    def test_first_match_wins(self):
        # UPI text also matches the broader payments entry
        assert DEFAULT_FALLBACKS.match(UPI_TOPIC).name == "upi"
        assert DEFAULT_FALLBACKS.match("mobile wallet wars").name == "digital-payments"
        assert DEFAULT_FALLBACKS.match("jazz") is None

    def test_custom_table(self):
        fallbacks = FallbackContent(topics=())
        assert fallbacks.context_for(UPI_TOPIC) is None
        assert fallbacks.statistics_for(UPI_TOPIC)[1].fact.startswith("Growth trends related to")

    def test_key_points_interpolate_topic(self):
        points = DEFAULT_FALLBACKS.key_points("jazz.")
        assert points[0] == "Core concepts and fundamentals of jazz"
