"""Tests for podcraft/pipeline_episodes.py -- plan validation, single-episode override, status tracking."""

import asyncio

import pytest
from pydantic import ValidationError

from podcraft.errors import PipelineError, PipelineValidationError
from podcraft.pipeline_episodes import (
    EpisodePlanner,
    mark_episode_complete,
    next_episode_number,
    remaining_episodes,
    single_episode_plan,
)
from podcraft.pipeline_types import EpisodePlanResult, ResearchResult


@pytest.fixture
def plan(plan_json):
    return EpisodePlanResult.model_validate(plan_json)


@pytest.fixture
def research():
    return ResearchResult(key_points=["UPI launched in 2016"])


# ---------------------------------------------------------------------------
# Plan model validation
# ---------------------------------------------------------------------------

class TestPlanValidation:

    def test_valid_plan(self, plan):
        assert plan.total_episodes == 2
        assert plan.episodes[1].estimated_duration == 18
        assert all(e.status == "planned" for e in plan.episodes)

    def test_episodes_sorted(self, plan_json):
        plan_json["episodes"].reverse()
        plan = EpisodePlanResult.model_validate(plan_json)
        assert [e.episode_number for e in plan.episodes] == [1, 2]

    def test_gap_rejected(self, plan_json):
        plan_json["episodes"][1]["episodeNumber"] = 3
        with pytest.raises(ValidationError):
            EpisodePlanResult.model_validate(plan_json)

    def test_duplicate_rejected(self, plan_json):
        plan_json["episodes"][1]["episodeNumber"] = 1
        with pytest.raises(ValidationError):
            EpisodePlanResult.model_validate(plan_json)

    def test_total_mismatch_rejected(self, plan_json):
        plan_json["totalEpisodes"] = 3
        with pytest.raises(ValidationError):
            EpisodePlanResult.model_validate(plan_json)

    def test_empty_rejected(self):
        with pytest.raises(ValidationError):
            EpisodePlanResult(is_multi_episode=False, total_episodes=1, episodes=[])


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

class TestSingleEpisode:

    def test_override(self):
        plan = single_episode_plan("UPI", "The UPI story", 15)
        assert plan.is_multi_episode is False
        assert plan.total_episodes == 1
        assert plan.episodes[0].episode_number == 1
        assert plan.episodes[0].estimated_duration == 15
        assert plan.reasoning == "Single episode format selected by user"

    def test_blank_title(self):
        assert single_episode_plan("").episodes[0].title == "Episode 1"


class TestStatusTracking:

    def test_mark_complete_returns_copy(self, plan):
        updated = mark_episode_complete(plan, 1)
        assert updated.episodes[0].status == "completed"
        assert updated.episodes[1].status == "planned"
        assert plan.episodes[0].status == "planned"

    def test_mark_complete_is_idempotent(self, plan):
        once = mark_episode_complete(plan, 2)
        assert mark_episode_complete(once, 2) == once

    def test_mark_unknown_episode(self, plan):
        with pytest.raises(PipelineValidationError):
            mark_episode_complete(plan, 5)

    def test_remaining(self, plan):
        assert [e.episode_number for e in remaining_episodes(plan, 0)] == [1, 2]
        assert [e.episode_number for e in remaining_episodes(plan, 1)] == [2]
        done = mark_episode_complete(plan, 2)
        assert remaining_episodes(done, 1) == []

    def test_next_episode_is_capped(self, plan):
        assert next_episode_number(plan, 1) == 2
        assert next_episode_number(plan, 2) == 2


# ---------------------------------------------------------------------------
# EpisodePlanner
# ---------------------------------------------------------------------------

class TestPlanner:

    def test_model_plan(self, make_chat, plan_json, research):
        plan_json["episodes"][0]["status"] = "completed"
        chat = make_chat(default=plan_json)
        plan = asyncio.run(EpisodePlanner(chat).analyze_for_episodes("UPI story", research))
        assert plan.is_multi_episode is True
        # Model-supplied statuses are ignored
        assert plan.episodes[0].status == "planned"
        assert "UPI launched in 2016" in chat.calls[0]["user"]

    def test_bad_numbering_raises(self, make_chat, plan_json, research):
        plan_json["episodes"][1]["episodeNumber"] = 4
        chat = make_chat(default=plan_json)
        with pytest.raises(PipelineError) as ctx:
            asyncio.run(EpisodePlanner(chat).analyze_for_episodes("UPI story", research))
        assert ctx.value.message == "Failed to analyze episode breakdown"

    def test_provider_error_propagates(self, make_chat, research):
        chat = make_chat(default=ConnectionError("down"))
        with pytest.raises(PipelineError) as ctx:
            asyncio.run(EpisodePlanner(chat).analyze_for_episodes("UPI story", research))
        assert isinstance(ctx.value.__cause__, ConnectionError)

    def test_missing_prompt(self, make_chat, research):
        chat = make_chat()
        with pytest.raises(PipelineValidationError):
            asyncio.run(EpisodePlanner(chat).analyze_for_episodes("  ", research))
        assert chat.calls == []

    def test_find_episode(self, plan):
        assert EpisodePlanner.find_episode(plan, 2).title == "Scale"
        with pytest.raises(PipelineValidationError):
            EpisodePlanner.find_episode(plan, 9)
        with pytest.raises(PipelineValidationError):
            EpisodePlanner.find_episode(None, 1)
