"""Tests for podcraft/pipeline_script.py -- templates, budgets, analytics, generation."""

import asyncio

import pytest

from podcraft.errors import PipelineError, PipelineValidationError
from podcraft.pipeline_script import (
    SCRIPT_TEMPLATES,
    ScriptGenerator,
    compute_analytics,
    section_budgets,
    select_template,
)
from podcraft.pipeline_types import EpisodePlanResult, ResearchResult, TopicAnalysis


@pytest.fixture
def research():
    return ResearchResult(key_points=["UPI launched in 2016"], outline=["Intro"])


@pytest.fixture
def analysis(analysis_json):
    return TopicAnalysis.model_validate(analysis_json)


# ---------------------------------------------------------------------------
# Templates and budgets
# ---------------------------------------------------------------------------

class TestTemplates:

    def test_every_template_is_twenty_minutes(self):
        for name, template in SCRIPT_TEMPLATES.items():
            assert template.base_seconds == 1200, name

    def test_angle_selects_template(self):
        assert select_template("technical").name == "Problem-Solution Framework"
        assert select_template("comparative").name == "Side-by-Side Comparison"

    def test_unknown_angle_defaults_to_historical(self):
        assert select_template("interpretive-dance").name == "Chronological Narrative"
        assert select_template(None).name == "Chronological Narrative"

    @pytest.mark.parametrize("minutes", [15, 17, 18, 20, 23])
    def test_budgets_sum_to_target(self, minutes):
        for template in SCRIPT_TEMPLATES.values():
            budgets = section_budgets(template, minutes * 60)
            assert sum(budgets) == minutes * 60
            assert len(budgets) == len(template.sections)

    def test_budgets_scale(self):
        budgets = section_budgets(select_template("historical"), 600)
        assert budgets == [30, 60, 300, 150, 60]


class TestAnalytics:

    def test_recomputed_from_text(self):
        content = " ".join(["word"] * 300) + " [pause] [Long Pause]"
        analytics = compute_analytics(content, {"wordCount": 5, "statisticsUsed": 3})
        assert analytics.word_count == 303
        assert analytics.speech_time == round(303 / 150 * 60)
        assert analytics.reading_time == round(303 / 200, 1)
        assert analytics.pause_count == 2
        assert analytics.statistics_used == 3

    def test_non_integer_counters_dropped(self):
        analytics = compute_analytics("a b c", {"storiesIncluded": "two", "engagementHooks": True})
        assert analytics.stories_included is None
        assert analytics.engagement_hooks is None


# ---------------------------------------------------------------------------
# ScriptGenerator.generate
# ---------------------------------------------------------------------------

class TestGenerate:

    def test_single_script(self, make_chat, script_json, research, analysis):
        chat = make_chat(default=script_json)
        result = asyncio.run(ScriptGenerator(chat).generate(
            "UPI story", research, analysis=analysis, target_minutes=18))
        budgets = section_budgets(select_template("historical"), 18 * 60)
        assert [s.duration for s in result.sections] == budgets
        assert result.total_duration == 18 * 60
        assert result.analytics.word_count == 303
        assert result.analytics.pause_count == 2
        assert result.analytics.statistics_used == 3
        assert result.research_utilization.quotes_used == 1
        assert result.episode_number is None
        assert "Chronological Narrative" in chat.calls[0]["user"]

    def test_section_count_mismatch_keeps_model_durations(self, make_chat, script_json, research):
        script_json["sections"] = script_json["sections"][:2]
        chat = make_chat(default=script_json)
        result = asyncio.run(ScriptGenerator(chat).generate("UPI story", research))
        assert [s.duration for s in result.sections] == [90, 90]
        assert result.total_duration == 180

    def test_episode_script(self, make_chat, script_json, plan_json, research):
        chat = make_chat(default=script_json)
        plan = EpisodePlanResult.model_validate(plan_json)
        result = asyncio.run(ScriptGenerator(chat).generate(
            "UPI story", research, episode_number=2, episode_plan=plan))
        assert result.episode_number == 2
        assert result.total_duration == 18 * 60
        prompt = chat.calls[0]["user"]
        assert "Episode 2 of 2" in prompt
        assert 'Episode Title: "Scale"' in prompt

    def test_unknown_episode(self, make_chat, plan_json, research):
        chat = make_chat()
        plan = EpisodePlanResult.model_validate(plan_json)
        with pytest.raises(PipelineValidationError) as ctx:
            asyncio.run(ScriptGenerator(chat).generate("UPI", research, episode_number=7, episode_plan=plan))
        assert ctx.value.message == "Episode 7 not found in plan"
        assert chat.calls == []

    def test_episode_without_plan(self, make_chat, research):
        with pytest.raises(PipelineValidationError) as ctx:
            asyncio.run(ScriptGenerator(make_chat()).generate("UPI", research, episode_number=1))
        assert ctx.value.message == "All episode data is required"

    def test_missing_research(self, make_chat):
        with pytest.raises(PipelineValidationError) as ctx:
            asyncio.run(ScriptGenerator(make_chat()).generate("UPI", None))
        assert ctx.value.message == "Prompt and research data are required"

    def test_provider_failure_raises(self, make_chat, research):
        chat = make_chat(default=ConnectionError("down"))
        with pytest.raises(PipelineError) as ctx:
            asyncio.run(ScriptGenerator(chat).generate("UPI story", research))
        assert ctx.value.message == "Script generation failed"
        assert ctx.value.status_code == 500

    def test_empty_content_raises(self, make_chat, script_json, research):
        script_json["content"] = "   "
        chat = make_chat(default=script_json)
        with pytest.raises(PipelineError):
            asyncio.run(ScriptGenerator(chat).generate("UPI story", research))

    def test_fenced_json_accepted(self, make_chat, research):
        raw = '```json\n{"content": "Hello there listeners", "sections": []}\n```'
        chat = make_chat(default=raw)
        result = asyncio.run(ScriptGenerator(chat).generate("UPI story", research))
        assert result.content == "Hello there listeners"
        assert result.total_duration == result.analytics.speech_time


class TestSuggestions:

    def test_suggestions(self, make_chat):
        chat = make_chat(default={"suggestions": [
            {"type": "flow", "suggestion": "Shorten the intro", "targetSection": "opening"}]})
        suggestions = asyncio.run(ScriptGenerator(chat).suggest_improvements("Some script"))
        assert suggestions[0].target_section == "opening"

    def test_failure_raises(self, make_chat):
        chat = make_chat(default="nope")
        with pytest.raises(PipelineError) as ctx:
            asyncio.run(ScriptGenerator(chat).suggest_improvements("Some script"))
        assert ctx.value.message == "Failed to generate suggestions"

    def test_empty_script(self, make_chat):
        with pytest.raises(PipelineValidationError):
            asyncio.run(ScriptGenerator(make_chat()).suggest_improvements(""))
