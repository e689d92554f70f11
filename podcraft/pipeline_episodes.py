"""Episode planning: single vs multi-episode breakdown and episode status tracking.

Planning has no fallback. A provider error, unparseable response or a plan
that violates the numbering rules raises PipelineError; a wrong plan is worse
than no plan.
"""
import logging
from typing import List, Optional, Union

from podcraft.config import DEFAULT_EPISODE_MINUTES
from podcraft.errors import PipelineError, PipelineValidationError
from podcraft.pipeline_types import Episode, EpisodePlanResult, EnhancedResearchResult, ResearchResult
from podcraft.providers.chat import ChatProvider
from podcraft.research.integrator import research_digest
from podcraft.utils import parse_json_response

logger = logging.getLogger(__name__)

_PLANNER_SYSTEM_PROMPT = (
    "You are a podcast series planning expert. Analyze research content and determine if it "
    "would benefit from being split into multiple 15-20 minute episodes. Consider content "
    "depth, natural topic divisions, and audience engagement."
)


def single_episode_plan(title: str, description: str = "",
                        duration: int = DEFAULT_EPISODE_MINUTES) -> EpisodePlanResult:
    """The user override: one episode, built locally without a model call."""
    return EpisodePlanResult(
        is_multi_episode=False,
        total_episodes=1,
        episodes=[Episode(episode_number=1, title=title or "Episode 1", description=description,
                          key_topics=[], estimated_duration=duration, status="planned")],
        reasoning="Single episode format selected by user",
    )


def mark_episode_complete(plan: EpisodePlanResult, episode_number: int) -> EpisodePlanResult:
    """Return a copy of ``plan`` with ``episode_number`` completed. Completion is one-way."""
    if plan.get_episode(episode_number) is None:
        raise PipelineValidationError(f"Episode {episode_number} not found in plan")
    episodes = [e.model_copy(update={"status": "completed"}) if e.episode_number == episode_number else e
                for e in plan.episodes]
    return plan.model_copy(update={"episodes": episodes})


def remaining_episodes(plan: EpisodePlanResult, current_episode: int) -> List[Episode]:
    """Episodes after ``current_episode`` not yet completed, in increasing order."""
    return [e for e in plan.episodes
            if e.episode_number > current_episode and e.status != "completed"]


def next_episode_number(plan: EpisodePlanResult, episode_number: int) -> int:
    return min(episode_number + 1, plan.total_episodes)


class EpisodePlanner:

    def __init__(self, chat: ChatProvider):
        self.chat = chat

    async def analyze_for_episodes(self, refined_prompt: str,
                                   research: Union[ResearchResult, EnhancedResearchResult]) -> EpisodePlanResult:
        if not refined_prompt or not refined_prompt.strip():
            raise PipelineValidationError("Prompt and research data are required")
        user = f"""Analyze this podcast topic and research to determine if it should be a single episode or multiple episodes:

Topic: "{refined_prompt}"

Research:
{research_digest(research)}

Each episode should run 15-20 minutes. Number episodes from 1 with no gaps, and make totalEpisodes equal the number of episodes listed.

Provide analysis in JSON format: {{ "isMultiEpisode": boolean, "totalEpisodes": number, "episodes": [{{"episodeNumber": number, "title": string, "description": string, "keyTopics": string[], "estimatedDuration": number}}], "reasoning": string }}"""
        try:
            raw = await self.chat.complete(user, _PLANNER_SYSTEM_PROMPT, temperature=0.5,
                                           max_tokens=2000, json_mode=True)
            data = parse_json_response(raw)
            if isinstance(data, dict):
                for episode in data.get("episodes") or []:
                    if isinstance(episode, dict):
                        episode["status"] = "planned"
            plan = EpisodePlanResult.model_validate(data)
        except Exception as e:
            logger.error(f"Episode planning failed: {type(e).__name__}: {e}")
            raise PipelineError("Failed to analyze episode breakdown") from e
        logger.info(f"Episode plan: {plan.total_episodes} episode(s), multi={plan.is_multi_episode}")
        return plan

    @staticmethod
    def find_episode(plan: Optional[EpisodePlanResult], episode_number: int) -> Episode:
        if plan is None:
            raise PipelineValidationError("All episode data is required")
        episode = plan.get_episode(episode_number)
        if episode is None:
            raise PipelineValidationError(f"Episode {episode_number} not found in plan")
        return episode
