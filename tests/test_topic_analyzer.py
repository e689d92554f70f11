"""
Unit tests for topic_analyzer.py and domain_expertise.py.
"""

import asyncio

import pytest

from podcraft.research import domain_expertise
from podcraft.research.topic_analyzer import (
    FALLBACK_KEY_ELEMENTS,
    TopicAnalyzer,
    analyze_keywords,
)


class TestKeywordRules:

    def test_upi_is_fintech(self):
        result = analyze_keywords("How UPI transformed digital payments in India")
        assert result.domain == "fintech"
        assert result.complexity == "intermediate"
        assert result.audience == "general"
        assert result.angle == "explanatory"
        assert result.scope == "multi-faceted"
        assert result.origin == "fallback"

    def test_first_domain_rule_wins(self):
        # "payment" (fintech) is checked before "digital" (technology)
        assert analyze_keywords("digital payment rails").domain == "fintech"

    def test_healthcare(self):
        assert analyze_keywords("Clinical trials explained").domain == "healthcare"

    def test_ai_needs_word_boundary(self):
        assert analyze_keywords("The AI boom").domain == "technology"
        # "explain" contains "ai" but is not the word AI
        assert analyze_keywords("Explain the history of jazz").domain == "business"

    def test_education(self):
        assert analyze_keywords("Why school starts so early").domain == "education"

    def test_complexity_and_audience(self):
        result = analyze_keywords("An advanced guide for enterprise developers")
        assert result.complexity == "expert"
        assert result.audience == "business"

    def test_beginner(self):
        assert analyze_keywords("A basic introduction to bonds").complexity == "beginner"

    def test_fallback_lists_are_copies(self):
        result = analyze_keywords("anything")
        assert result.key_elements == FALLBACK_KEY_ELEMENTS
        assert result.key_elements is not FALLBACK_KEY_ELEMENTS
        assert len(result.content_goals) == 3


class TestTopicAnalyzer:

    def test_model_analysis(self, make_chat, analysis_json):
        chat = make_chat(default=analysis_json)
        result = asyncio.run(TopicAnalyzer(chat).analyze("How UPI transformed digital payments in India"))
        assert result.domain == "fintech"
        assert result.angle == "historical"
        assert result.origin == "model"
        assert chat.calls[0]["json_mode"] is True
        assert chat.calls[0]["temperature"] == 0.3

    def test_model_tags_are_normalized(self, make_chat, analysis_json):
        chat = make_chat(default={**analysis_json, "domain": "FinTech", "angle": "Human Impact"})
        result = asyncio.run(TopicAnalyzer(chat).analyze("topic"))
        assert result.domain == "fintech"
        assert result.angle == "human-impact"

    def test_provider_error_falls_back(self, make_chat):
        chat = make_chat(default=ConnectionError("down"))
        result = asyncio.run(TopicAnalyzer(chat).analyze("How UPI transformed digital payments in India"))
        assert result.origin == "fallback"
        assert result.domain == "fintech"

    def test_malformed_json_falls_back(self, make_chat):
        chat = make_chat(default="not json at all")
        result = asyncio.run(TopicAnalyzer(chat).analyze("clinical trials"))
        assert result.origin == "fallback"
        assert result.domain == "healthcare"

    def test_out_of_schema_falls_back(self, make_chat, analysis_json):
        chat = make_chat(default={**analysis_json, "complexity": "galaxy-brain"})
        result = asyncio.run(TopicAnalyzer(chat).analyze("clinical trials"))
        assert result.origin == "fallback"

    def test_empty_response_falls_back(self, make_chat):
        chat = make_chat(default="")
        result = asyncio.run(TopicAnalyzer(chat).analyze("clinical trials"))
        assert result.origin == "fallback"

    def test_timeout_falls_back(self, make_chat):
        chat = make_chat(default=5.0)
        result = asyncio.run(TopicAnalyzer(chat, timeout=0.05).analyze("The AI boom"))
        assert result.origin == "fallback"
        assert result.domain == "technology"

    def test_analysis_is_immutable(self):
        result = analyze_keywords("anything")
        with pytest.raises(Exception):
            result.domain = "healthcare"


class TestDomainExpertise:

    def test_known_domains(self):
        assert set(domain_expertise.KNOWN_DOMAINS) == {
            "fintech", "healthcare", "technology", "business", "education"}

    def test_fintech_persona(self):
        expertise = domain_expertise.resolve("fintech")
        assert expertise.expert_title == "Financial Technology Analyst and Digital Payments Expert"
        assert len(expertise.requirements) == 6
        assert len(expertise.key_questions) == 6

    def test_case_insensitive(self):
        assert domain_expertise.resolve("  FinTech ") is domain_expertise.resolve("fintech")

    def test_unknown_domain_gets_generic(self):
        assert domain_expertise.resolve("sports") is domain_expertise.GENERIC_EXPERTISE
        assert domain_expertise.resolve("") is domain_expertise.GENERIC_EXPERTISE
