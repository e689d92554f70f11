#!/usr/bin/env python3
"""
podcraft content pipeline.

topic analysis -> domain-aware prompt refinement -> multi-query research ->
research integration -> episode planning -> script generation -> quality
assessment -> audio synthesis

``PodcastPipeline`` composes the stages with a project store and exposes one
coroutine per user action. Each action reads the project, runs its stage and
writes back only the fields it owns, and only on success. Run as a script it
drives a new topic through every stage and writes the artifacts to a
timestamped output directory.
"""
import argparse
import asyncio
import json
import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from podcraft.config import DEFAULT_EPISODE_MINUTES, OUTPUT_DIR, PROJECTS_FILE, TTS_DEFAULT_VOICE
from podcraft.errors import PipelineError, PipelineValidationError, ProjectNotFoundError
from podcraft.pipeline_episodes import (
    EpisodePlanner, mark_episode_complete as mark_complete, next_episode_number, remaining_episodes, single_episode_plan,
)
from podcraft.pipeline_quality import QualityAssessor
from podcraft.pipeline_refine import PromptRefiner
from podcraft.pipeline_script import ScriptGenerator
from podcraft.pipeline_types import (
    AudioResult, ContentQuality, EnhancedResearchResult, EpisodePlanResult, Project,
    PromptRefinementResult, ScriptResult, ScriptSuggestion, TopicAnalysis, VoiceSettings,
)
from podcraft.audio.synthesizer import AudioSynthesizer
from podcraft.providers.chat import ChatProvider, OpenAIChatProvider
from podcraft.providers.research import ResearchProvider, default_research_provider
from podcraft.providers.tts import OpenAISpeechProvider, SpeechProvider
from podcraft.research import domain_expertise
from podcraft.research.fallbacks import DEFAULT_FALLBACKS, FallbackContent
from podcraft.research.integrator import ResearchIntegrator
from podcraft.research.orchestrator import ResearchOrchestrator
from podcraft.research.topic_analyzer import TopicAnalyzer, analyze_keywords
from podcraft.storage import (
    AudioStore, InMemoryProjectStore, JsonFileProjectStore, LocalAudioStore, ProjectStore,
)

logger = logging.getLogger(__name__)


def _dump(value: Any) -> Any:
    """JSON-ready form of stage outputs for the project store."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, dict):
        return {k: _dump(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_dump(v) for v in value]
    return value


class PodcastPipeline:

    def __init__(self, chat: Optional[ChatProvider] = None,
                 research_provider: Optional[ResearchProvider] = None,
                 speech: Optional[SpeechProvider] = None,
                 store: Optional[ProjectStore] = None,
                 audio_store: Optional[AudioStore] = None,
                 fallbacks: FallbackContent = DEFAULT_FALLBACKS):
        self.chat = chat or OpenAIChatProvider()
        self.store = store or InMemoryProjectStore()
        self.topic_analyzer = TopicAnalyzer(self.chat)
        self.refiner = PromptRefiner(self.chat, fallbacks)
        self.orchestrator = ResearchOrchestrator(research_provider or default_research_provider(self.chat),
                                                 fallbacks)
        self.integrator = ResearchIntegrator(self.chat)
        self.planner = EpisodePlanner(self.chat)
        self.script_generator = ScriptGenerator(self.chat)
        self.quality_assessor = QualityAssessor(self.chat)
        self.synthesizer = AudioSynthesizer(speech or OpenAISpeechProvider(),
                                            audio_store or LocalAudioStore())

    # ------------------------------------------------------------------
    # Project access
    # ------------------------------------------------------------------
    def create_project(self, prompt: str, title: str = "", description: str = "") -> Project:
        if not prompt or not prompt.strip():
            raise PipelineValidationError("Prompt is required")
        record = self.store.create_project({
            "original_prompt": prompt.strip(),
            "title": title or prompt.strip()[:80],
            "description": description,
        })
        return Project.model_validate(record)

    def get_project(self, project_id: str) -> Project:
        record = self.store.get_project(project_id)
        if record is None:
            raise ProjectNotFoundError(project_id)
        return Project.model_validate(record)

    def _save(self, project_id: str, fields: Dict[str, Any],
              expected_updated_at: Optional[str] = None) -> Project:
        record = self.store.update_project(project_id, _dump(fields), expected_updated_at)
        return Project.model_validate(record)

    # ------------------------------------------------------------------
    # Stateless stage entry points
    # ------------------------------------------------------------------
    async def analyze_and_refine(self, prompt: str, quick: bool = False):
        """Topic analysis + prompt refinement. Returns (TopicAnalysis, PromptRefinementResult)."""
        if not prompt or not prompt.strip():
            raise PipelineValidationError("Prompt is required")
        if quick:
            analysis = analyze_keywords(prompt)
            return analysis, await self.refiner.refine_quick(prompt, analysis)
        analysis = await self.topic_analyzer.analyze(prompt)
        expertise = domain_expertise.resolve(analysis.domain)
        return analysis, await self.refiner.refine(prompt, analysis, expertise)

    async def conduct_research(self, refined_prompt: str,
                               analysis: Optional[TopicAnalysis] = None) -> EnhancedResearchResult:
        if not refined_prompt or not refined_prompt.strip():
            raise PipelineValidationError("Prompt is required")
        analysis = analysis or analyze_keywords(refined_prompt)
        raw = await self.orchestrator.research(refined_prompt, analysis)
        return await self.integrator.enhance(raw, analysis, domain_expertise.resolve(analysis.domain))

    async def assess_script(self, script: ScriptResult, research) -> ScriptResult:
        quality: ContentQuality = await self.quality_assessor.assess(script, research)
        return script.model_copy(update={"quality_score": quality.overall_score,
                                         "quality_assessment": quality})

    async def suggest_script_improvements(self, content: str) -> List[ScriptSuggestion]:
        return await self.script_generator.suggest_improvements(content)

    async def generate_audio_segment(self, segment_text: str, voice_settings: Optional[VoiceSettings],
                                     segment_index: int) -> AudioResult:
        return await self.synthesizer.synthesize_segment(segment_text, voice_settings, segment_index)

    # ------------------------------------------------------------------
    # Project actions
    # ------------------------------------------------------------------
    async def refine_project(self, project_id: str, prompt: Optional[str] = None, quick: bool = False,
                             expected_updated_at: Optional[str] = None) -> PromptRefinementResult:
        project = self.get_project(project_id)
        prompt = (prompt or project.original_prompt).strip()
        analysis, refinement = await self.analyze_and_refine(prompt, quick=quick)
        self._save(project_id, {
            "original_prompt": prompt,
            "topic_analysis": analysis,
            "refinement": refinement,
            "refined_prompt": refinement.refined_prompt,
        }, expected_updated_at)
        return refinement

    async def research_project(self, project_id: str,
                               expected_updated_at: Optional[str] = None) -> EnhancedResearchResult:
        project = self.get_project(project_id)
        prompt = project.refined_prompt or project.original_prompt
        research = await self.conduct_research(prompt, project.topic_analysis)
        self._save(project_id, {"research_data": research}, expected_updated_at)
        return research

    async def plan_episodes(self, project_id: str, force_single: bool = False,
                            expected_updated_at: Optional[str] = None) -> EpisodePlanResult:
        project = self.get_project(project_id)
        if force_single:
            duration = project.refinement.suggested_duration if project.refinement else DEFAULT_EPISODE_MINUTES
            plan = single_episode_plan(project.title or project.original_prompt, project.description, duration)
        else:
            if project.research_data is None:
                raise PipelineValidationError("Prompt and research data are required")
            plan = await self.planner.analyze_for_episodes(
                project.refined_prompt or project.original_prompt, project.research_data)
        self._save(project_id, {"episode_plan": plan, "current_episode": 1}, expected_updated_at)
        return plan

    async def generate_script(self, project_id: str, episode_number: Optional[int] = None,
                              expected_updated_at: Optional[str] = None) -> ScriptResult:
        """Generate, assess and persist one script. Nothing is written if generation fails."""
        project = self.get_project(project_id)
        if project.research_data is None:
            raise PipelineValidationError("Prompt and research data are required")
        target = project.refinement.suggested_duration if project.refinement else None
        script = await self.script_generator.generate(
            project.refined_prompt or project.original_prompt,
            project.research_data,
            episode_number=episode_number,
            episode_plan=project.episode_plan if episode_number is not None else None,
            analysis=project.topic_analysis,
            target_minutes=target,
        )
        script = await self.assess_script(script, project.research_data)

        fields: Dict[str, Any] = {"script_content": script.content, "script_analytics": script.analytics}
        if episode_number is not None:
            fields["episode_scripts"] = {**project.episode_scripts, str(episode_number): script}
            fields["current_episode"] = episode_number
        self._save(project_id, fields, expected_updated_at)
        return script

    async def mark_episode_complete(self, project_id: str, episode_number: int) -> EpisodePlanResult:
        project = self.get_project(project_id)
        if project.episode_plan is None:
            raise PipelineValidationError("Project has no episode plan")
        plan = mark_complete(project.episode_plan, episode_number)
        self._save(project_id, {"episode_plan": plan,
                                "current_episode": next_episode_number(plan, episode_number)})
        return plan

    async def generate_remaining_episodes(self, project_id: str) -> List[ScriptResult]:
        """Generate every remaining episode, strictly one after another.

        Each episode is persisted and marked complete before the next starts;
        a failure stops the batch and leaves earlier episodes in place.
        """
        project = self.get_project(project_id)
        if project.episode_plan is None:
            raise PipelineValidationError("Project has no episode plan")
        pending = remaining_episodes(project.episode_plan, project.current_episode)
        logger.info(f"Generating {len(pending)} remaining episode(s) sequentially")
        scripts = []
        for episode in pending:
            self._save(project_id, {"current_episode": episode.episode_number})
            scripts.append(await self.generate_script(project_id, episode.episode_number))
            plan = mark_complete(self.get_project(project_id).episode_plan, episode.episode_number)
            self._save(project_id, {"episode_plan": plan})
        return scripts

    async def generate_audio(self, project_id: str, episode_number: Optional[int] = None,
                             voice_settings: Optional[VoiceSettings] = None,
                             expected_updated_at: Optional[str] = None) -> AudioResult:
        project = self.get_project(project_id)
        if episode_number is not None:
            script = project.episode_scripts.get(str(episode_number))
            text = script.content if script else None
        else:
            text = project.script_content
        if not text:
            raise PipelineValidationError("Script content is required")
        voice = voice_settings or project.voice_settings
        audio = await self.synthesizer.synthesize(text, voice)

        fields: Dict[str, Any] = {"voice_settings": voice}
        if episode_number is not None:
            fields["episode_audio_urls"] = {**project.episode_audio_urls, str(episode_number): audio.audio_url}
        else:
            fields["audio_url"] = audio.audio_url
        self._save(project_id, fields, expected_updated_at)
        return audio

    async def run(self, topic: str, single_episode: bool = False, with_audio: bool = True,
                  voice_settings: Optional[VoiceSettings] = None) -> Project:
        """Drive a new topic through every stage."""
        project = self.create_project(topic)
        pid = project.id
        await self.refine_project(pid)
        await self.research_project(pid)
        plan = await self.plan_episodes(pid, force_single=single_episode)
        for episode in plan.episodes:
            await self.generate_script(pid, episode.episode_number)
            if with_audio:
                await self.generate_audio(pid, episode.episode_number, voice_settings)
            await self.mark_episode_complete(pid, episode.episode_number)
        return self.get_project(pid)


# ================================================================
# CLI
# ================================================================

def setup_logging(output_dir: Path):
    """Configure logging to the run directory and stdout."""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(output_dir / 'podcraft.log'),
            logging.StreamHandler(sys.stdout)
        ],
        force=True
    )


def create_timestamped_output_dir(base_dir: Path) -> Path:
    """Create podcast_outputs/YYYY-MM-DD_HH-MM-SS/."""
    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    out = base_dir / timestamp
    out.mkdir(parents=True, exist_ok=True)
    return out


def write_artifacts(project: Project, output_dir: Path):
    """Write each stage output of ``project`` to ``output_dir``."""
    artifacts = {
        "topic_analysis.json": project.topic_analysis,
        "refinement.json": project.refinement,
        "research.json": project.research_data,
        "episode_plan.json": project.episode_plan,
    }
    for filename, value in artifacts.items():
        if value is not None:
            (output_dir / filename).write_text(value.model_dump_json(by_alias=True, indent=2))
    for number, script in project.episode_scripts.items():
        (output_dir / f"script_episode_{number}.md").write_text(script.content)
    (output_dir / "project.json").write_text(json.dumps(project.to_record(), indent=2))


def parse_arguments(argv=None):
    parser = argparse.ArgumentParser(
        description='Generate a researched, scripted and narrated podcast on any topic.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m podcraft "How UPI transformed digital payments in India"
  python -m podcraft "history of the transistor" --single-episode --voice onyx --speed 1.1

Environment variables:
  export PODCAST_TOPIC="your topic here"
  python -m podcraft
        """
    )
    parser.add_argument('topic', nargs='?', help='Podcast topic or idea')
    parser.add_argument('--output-dir', type=Path, help='Directory for run artifacts')
    parser.add_argument('--voice', default=TTS_DEFAULT_VOICE, help='TTS voice name')
    parser.add_argument('--speed', type=float, default=1.0, help='TTS speed multiplier (0.25-4.0)')
    parser.add_argument('--single-episode', action='store_true',
                        help='Skip episode planning and produce one episode')
    parser.add_argument('--no-audio', action='store_true', help='Stop after script generation')
    parser.add_argument('--projects-file', default=PROJECTS_FILE,
                        help='Persist projects to this JSON file instead of memory')
    return parser.parse_args(argv)


def get_topic(args) -> str:
    """Topic from the command line, then PODCAST_TOPIC."""
    if args.topic:
        logger.info(f"Using topic from command-line: {args.topic}")
        return args.topic
    if os.getenv("PODCAST_TOPIC"):
        topic = os.getenv("PODCAST_TOPIC")
        logger.info(f"Using topic from environment: {topic}")
        return topic
    raise SystemExit("No topic given (pass TOPIC or set PODCAST_TOPIC)")


def main(argv=None):
    args = parse_arguments(argv)
    output_dir = args.output_dir or create_timestamped_output_dir(OUTPUT_DIR)
    output_dir.mkdir(parents=True, exist_ok=True)
    setup_logging(output_dir)
    topic = get_topic(args)

    store = JsonFileProjectStore(args.projects_file) if args.projects_file else InMemoryProjectStore()
    pipeline = PodcastPipeline(store=store, audio_store=LocalAudioStore(output_dir / "audio", "audio"))
    voice = VoiceSettings(model=args.voice, speed=args.speed)

    try:
        project = asyncio.run(pipeline.run(topic, single_episode=args.single_episode,
                                           with_audio=not args.no_audio, voice_settings=voice))
    except PipelineError as e:
        logger.error(f"Pipeline stopped: {e.message}")
        sys.exit(1)
    write_artifacts(project, output_dir)
    logger.info(f"Project {project.id} complete: {len(project.episode_scripts)} episode script(s), "
                f"{len(project.episode_audio_urls)} audio file(s) in {output_dir}")
    return project


if __name__ == "__main__":
    main()
