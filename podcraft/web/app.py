#!/usr/bin/env python3
"""
HTTP API for the podcraft pipeline.

`/api/ai/*` endpoints run one stage on the request body and return that
stage's output; `/api/projects/*` endpoints run the same stages against a
stored project and persist the results. Errors always come back as
``{"message": str}``.
"""
import logging
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import Field, ValidationError

from podcraft.config import AUDIO_DIR, AUDIO_URL_PREFIX, PROJECTS_FILE, WEB_HOST, WEB_PORT
from podcraft.errors import PipelineError, PipelineValidationError
from podcraft.pipeline import PodcastPipeline
from podcraft.pipeline_types import (
    AudioResult, CamelModel, EnhancedResearchResult, EpisodePlanResult, Project,
    PromptRefinementResult, ResearchResult, ScriptResult, ScriptSuggestion, TopicAnalysis, VoiceSettings,
)
from podcraft.storage import InMemoryProjectStore, JsonFileProjectStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------
class RefinePromptRequest(CamelModel):
    prompt: str = ""
    quick: bool = False


class ResearchRequest(CamelModel):
    prompt: str = ""
    topic_analysis: Optional[TopicAnalysis] = None


class GenerateScriptRequest(CamelModel):
    prompt: str = ""
    research: Optional[Dict[str, Any]] = None
    topic_analysis: Optional[TopicAnalysis] = None
    target_minutes: Optional[int] = Field(None, ge=1, le=120)


class GenerateEpisodeScriptRequest(GenerateScriptRequest):
    episode_number: Optional[int] = None
    episode_plan: Optional[EpisodePlanResult] = None


class AnalyzeEpisodesRequest(CamelModel):
    prompt: str = ""
    research: Optional[Dict[str, Any]] = None


class GenerateAudioRequest(CamelModel):
    script_content: str = ""
    voice_settings: Optional[VoiceSettings] = None


class GenerateAudioSegmentRequest(CamelModel):
    segment_text: str = ""
    voice_settings: Optional[VoiceSettings] = None
    segment_index: int = 0


class ScriptSuggestionsRequest(CamelModel):
    script_content: str = ""


class CreateProjectRequest(CamelModel):
    prompt: str = ""
    title: str = ""
    description: str = ""


class UpdateProjectRequest(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    refined_prompt: Optional[str] = None
    script_content: Optional[str] = None
    voice_settings: Optional[VoiceSettings] = None
    expected_updated_at: Optional[str] = None


class PlanEpisodesRequest(CamelModel):
    force_single: bool = False


class ProjectScriptRequest(CamelModel):
    episode_number: Optional[int] = None


class ProjectAudioRequest(CamelModel):
    episode_number: Optional[int] = None
    voice_settings: Optional[VoiceSettings] = None


def parse_research(data: Optional[Dict[str, Any]]):
    """Raw or enhanced research from a request body."""
    if not data:
        return None
    try:
        if "originalResearch" in data or "original_research" in data:
            return EnhancedResearchResult.model_validate(data)
        return ResearchResult.model_validate(data)
    except ValidationError as e:
        raise PipelineValidationError("Research data is malformed") from e


def get_pipeline(request: Request) -> PodcastPipeline:
    return request.app.state.pipeline


# ---------------------------------------------------------------------------
# /api/ai: one stage per request
# ---------------------------------------------------------------------------
ai = APIRouter(prefix="/api/ai")


@ai.post("/refine-prompt", response_model=PromptRefinementResult)
async def refine_prompt(body: RefinePromptRequest, pipeline: PodcastPipeline = Depends(get_pipeline)):
    _, refinement = await pipeline.analyze_and_refine(body.prompt, quick=body.quick)
    return refinement


@ai.post("/research", response_model=EnhancedResearchResult)
async def research(body: ResearchRequest, pipeline: PodcastPipeline = Depends(get_pipeline)):
    logger.info(f"Research requested: {body.prompt[:100]}")
    return await pipeline.conduct_research(body.prompt, body.topic_analysis)


@ai.post("/generate-script", response_model=ScriptResult)
async def generate_script(body: GenerateScriptRequest, pipeline: PodcastPipeline = Depends(get_pipeline)):
    research_data = parse_research(body.research)
    script = await pipeline.script_generator.generate(
        body.prompt, research_data, analysis=body.topic_analysis, target_minutes=body.target_minutes)
    return await pipeline.assess_script(script, research_data)


@ai.post("/generate-episode-script", response_model=ScriptResult)
async def generate_episode_script(body: GenerateEpisodeScriptRequest,
                                  pipeline: PodcastPipeline = Depends(get_pipeline)):
    if body.episode_number is None or body.episode_plan is None:
        raise PipelineValidationError("All episode data is required")
    research_data = parse_research(body.research)
    script = await pipeline.script_generator.generate(
        body.prompt, research_data, episode_number=body.episode_number,
        episode_plan=body.episode_plan, analysis=body.topic_analysis)
    return await pipeline.assess_script(script, research_data)


@ai.post("/analyze-episodes", response_model=EpisodePlanResult)
async def analyze_episodes(body: AnalyzeEpisodesRequest, pipeline: PodcastPipeline = Depends(get_pipeline)):
    research_data = parse_research(body.research)
    if not body.prompt or research_data is None:
        raise PipelineValidationError("Prompt and research data are required")
    return await pipeline.planner.analyze_for_episodes(body.prompt, research_data)


@ai.post("/generate-audio", response_model=AudioResult)
async def generate_audio(body: GenerateAudioRequest, pipeline: PodcastPipeline = Depends(get_pipeline)):
    return await pipeline.synthesizer.synthesize(body.script_content, body.voice_settings)


@ai.post("/generate-audio-segment", response_model=AudioResult)
async def generate_audio_segment(body: GenerateAudioSegmentRequest,
                                 pipeline: PodcastPipeline = Depends(get_pipeline)):
    return await pipeline.generate_audio_segment(body.segment_text, body.voice_settings, body.segment_index)


@ai.post("/script-suggestions", response_model=List[ScriptSuggestion])
async def script_suggestions(body: ScriptSuggestionsRequest, pipeline: PodcastPipeline = Depends(get_pipeline)):
    return await pipeline.suggest_script_improvements(body.script_content)


# ---------------------------------------------------------------------------
# /api/projects: stages run against a stored project
# ---------------------------------------------------------------------------
projects = APIRouter(prefix="/api/projects")


@projects.post("", response_model=Project, status_code=201)
async def create_project(body: CreateProjectRequest, pipeline: PodcastPipeline = Depends(get_pipeline)):
    return pipeline.create_project(body.prompt, body.title, body.description)


@projects.get("/{project_id}", response_model=Project)
async def get_project(project_id: str, pipeline: PodcastPipeline = Depends(get_pipeline)):
    return pipeline.get_project(project_id)


@projects.patch("/{project_id}", response_model=Project)
async def update_project(project_id: str, body: UpdateProjectRequest,
                         pipeline: PodcastPipeline = Depends(get_pipeline)):
    pipeline.get_project(project_id)
    fields = body.model_dump(exclude_none=True, exclude={"expected_updated_at"}, mode="json")
    record = pipeline.store.update_project(project_id, fields, body.expected_updated_at)
    return Project.model_validate(record)


@projects.post("/{project_id}/refine", response_model=PromptRefinementResult)
async def refine_project(project_id: str, body: RefinePromptRequest,
                         pipeline: PodcastPipeline = Depends(get_pipeline)):
    return await pipeline.refine_project(project_id, body.prompt or None, quick=body.quick)


@projects.post("/{project_id}/research", response_model=EnhancedResearchResult)
async def research_project(project_id: str, pipeline: PodcastPipeline = Depends(get_pipeline)):
    return await pipeline.research_project(project_id)


@projects.post("/{project_id}/episodes/plan", response_model=EpisodePlanResult)
async def plan_episodes(project_id: str, body: PlanEpisodesRequest,
                        pipeline: PodcastPipeline = Depends(get_pipeline)):
    return await pipeline.plan_episodes(project_id, force_single=body.force_single)


@projects.post("/{project_id}/script", response_model=ScriptResult)
async def project_script(project_id: str, body: ProjectScriptRequest,
                         pipeline: PodcastPipeline = Depends(get_pipeline)):
    return await pipeline.generate_script(project_id, body.episode_number)


@projects.post("/{project_id}/audio", response_model=AudioResult)
async def project_audio(project_id: str, body: ProjectAudioRequest,
                        pipeline: PodcastPipeline = Depends(get_pipeline)):
    return await pipeline.generate_audio(project_id, body.episode_number, body.voice_settings)


@projects.post("/{project_id}/episodes/{episode_number}/complete", response_model=EpisodePlanResult)
async def complete_episode(project_id: str, episode_number: int,
                           pipeline: PodcastPipeline = Depends(get_pipeline)):
    return await pipeline.mark_episode_complete(project_id, episode_number)


@projects.post("/{project_id}/episodes/generate-remaining", response_model=List[ScriptResult])
async def generate_remaining(project_id: str, pipeline: PodcastPipeline = Depends(get_pipeline)):
    return await pipeline.generate_remaining_episodes(project_id)


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------
async def _pipeline_error(request: Request, exc: PipelineError):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


async def _request_validation_error(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    where = ".".join(str(p) for p in first.get("loc", ())[1:])
    message = f"Invalid request: {where} {first.get('msg', '')}".strip() if where else "Invalid request"
    return JSONResponse(status_code=400, content={"message": message})


def create_app(pipeline: Optional[PodcastPipeline] = None) -> FastAPI:
    if pipeline is None:
        store = JsonFileProjectStore(PROJECTS_FILE) if PROJECTS_FILE else InMemoryProjectStore()
        pipeline = PodcastPipeline(store=store)
    app = FastAPI(title="podcraft", description="AI podcast content-generation pipeline")
    app.state.pipeline = pipeline
    app.include_router(ai)
    app.include_router(projects)
    app.add_exception_handler(PipelineError, _pipeline_error)
    app.add_exception_handler(RequestValidationError, _request_validation_error)
    app.mount(AUDIO_URL_PREFIX, StaticFiles(directory=str(AUDIO_DIR), check_dir=False), name="audio")
    return app


def main():
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
    uvicorn.run("podcraft.web.app:create_app", factory=True, host=WEB_HOST, port=WEB_PORT)


if __name__ == "__main__":
    main()
