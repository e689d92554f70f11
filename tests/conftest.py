"""Shared pytest fixtures for the podcraft test suite."""

import asyncio
import json

import pytest

from podcraft.providers.chat import ChatProvider
from podcraft.providers.research import ResearchProvider
from podcraft.providers.tts import SpeechProvider
from podcraft.storage import InMemoryProjectStore, LocalAudioStore


@pytest.fixture(autouse=True)
def mock_env_vars(monkeypatch):
    """Set minimum env vars so modules can be imported without real services."""
    monkeypatch.setenv("MODEL_NAME", "test-model")
    monkeypatch.setenv("LLM_BASE_URL", "http://localhost:9999/v1")
    monkeypatch.setenv("LLM_API_KEY", "NA")
    monkeypatch.setenv("RESEARCH_API_KEY", "")


class FakeChat(ChatProvider):
    """Chat provider that answers from a routing table.

    ``routes`` is a list of (substring, response) pairs; the first substring
    found in the user prompt wins. A response may be a string, a dict (sent
    as JSON), an exception instance (raised) or a float (sleep that long,
    for timeout tests).
    """

    def __init__(self, routes=None, default=None):
        self.routes = list(routes or [])
        self.default = default
        self.calls = []

    async def complete(self, user_prompt, system_prompt=None, *, temperature=0.7,
                       max_tokens=2000, json_mode=False):
        self.calls.append({"user": user_prompt, "system": system_prompt,
                           "temperature": temperature, "json_mode": json_mode})
        response = self.default
        for needle, candidate in self.routes:
            if needle in user_prompt:
                response = candidate
                break
        if response is None:
            raise ConnectionError("no scripted response")
        if isinstance(response, BaseException):
            raise response
        if isinstance(response, float):
            await asyncio.sleep(response)
            return "{}"
        if isinstance(response, (dict, list)):
            return json.dumps(response)
        return response


class FakeResearch(ResearchProvider):
    """Research provider keyed on query text; records the order of queries."""

    def __init__(self, answers=None, default="", delay=0.0):
        self.answers = dict(answers or {})
        self.default = default
        self.delay = delay
        self.queries = []

    async def query(self, prompt):
        self.queries.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        answer = self.default
        for needle, candidate in self.answers.items():
            if needle in prompt:
                answer = candidate
                break
        if isinstance(answer, BaseException):
            raise answer
        return answer


class FakeSpeech(SpeechProvider):

    def __init__(self, error=None):
        self.error = error
        self.calls = []

    async def synthesize(self, text, voice, speed=1.0):
        self.calls.append({"text": text, "voice": voice, "speed": speed})
        if self.error is not None:
            raise self.error
        return b"MP3:" + text.encode()


@pytest.fixture
def make_chat():
    return FakeChat


@pytest.fixture
def make_research():
    return FakeResearch


@pytest.fixture
def fake_speech():
    return FakeSpeech()


@pytest.fixture
def audio_store(tmp_path):
    return LocalAudioStore(tmp_path / "audio", "/audio")


@pytest.fixture
def project_store():
    return InMemoryProjectStore()


@pytest.fixture
def analysis_json():
    """Model response for topic analysis of the UPI topic."""
    return {
        "domain": "fintech",
        "complexity": "intermediate",
        "audience": "general",
        "angle": "historical",
        "scope": "multi-faceted",
        "keyElements": ["NPCI", "real-time rails", "QR payments", "adoption", "regulation"],
        "contentGoals": ["Explain UPI", "Show its impact", "Look ahead"],
        "expertiseLevel": "intermediate",
    }


@pytest.fixture
def structured_json():
    """Model response for research extraction."""
    return {
        "keyNarratives": ["Cash to QR in a decade", "Banks became platforms"],
        "criticalStats": [{"stat": "10 billion monthly transactions", "source": "NPCI", "context": "scale"}],
        "compellingQuotes": [{"quote": "Payments should be like email", "speaker": "A founder", "context": ""}],
        "technicalConcepts": [{"concept": "VPA", "explanation": "An address for a bank account",
                               "importance": "Hides account numbers"}],
        "humanImpactStories": [{"story": "A street vendor takes QR payments", "impact": "No more change",
                                "relevance": "Inclusion"}],
        "timelineEvents": [{"date": "2016", "event": "UPI launched", "significance": "Start"}],
        "futureImplications": ["Cross-border UPI", "Credit on UPI"],
        "surprisingFacts": [{"fact": "UPI is free for consumers", "why_surprising": "Cards charge fees",
                             "source": "RBI"}],
        "expertInsights": [{"insight": "Interoperability won", "expert": "Payments analyst",
                            "credibility": "20 years"}],
    }


@pytest.fixture
def plan_json():
    return {
        "isMultiEpisode": True,
        "totalEpisodes": 2,
        "episodes": [
            {"episodeNumber": 1, "title": "Origins", "description": "How UPI began",
             "keyTopics": ["NPCI", "2016"], "estimatedDuration": 15},
            {"episodeNumber": 2, "title": "Scale", "description": "How UPI grew",
             "keyTopics": ["QR", "merchants"], "estimatedDuration": "18 minutes"},
        ],
        "reasoning": "Two natural halves",
    }


def script_body(words=300):
    """Script text of ``words`` spoken words plus two pause markers."""
    sentence = "UPI changed how India pays for everyday things today. "  # 9 words
    text = sentence * (words // 9)
    text += " ".join(["word"] * (words - 9 * (words // 9)))
    return "[pause] " + text.strip() + " [short pause]"


@pytest.fixture
def script_json():
    return {
        "content": script_body(300),
        "sections": [
            {"type": "opening", "content": "hook", "duration": 90, "keyElements": ["hook"]},
            {"type": "context", "content": "ctx", "duration": 90, "keyElements": []},
            {"type": "exploration", "content": "body", "duration": 600, "keyElements": []},
            {"type": "analysis", "content": "impact", "duration": 300, "keyElements": []},
            {"type": "conclusion", "content": "end", "duration": 120, "keyElements": []},
        ],
        "analytics": {"wordCount": 9999, "statisticsUsed": 3, "storiesIncluded": 1,
                      "conceptsExplained": 2, "engagementHooks": 4},
        "researchUtilization": {"timelineEvents": 1, "statisticsUsed": 3, "storiesIncluded": 1,
                                "quotesUsed": 1, "conceptsExplained": 2, "trendsDiscussed": 2,
                                "surprisingFactsUsed": 1},
    }


@pytest.fixture
def quality_json():
    return {
        "researchDepth": 8, "scriptFlow": 9, "audienceMatch": 7,
        "engagementPotential": 8, "factualAccuracy": 9,
        "improvements": ["Add one more story"], "strengths": ["Clear structure"],
    }


@pytest.fixture
def research_text():
    return (
        "- UPI was launched by NPCI in April 2016 with 21 member banks\n"
        "- Adoption grew 45% year over year according to NPCI, driven by QR codes\n"
        "- UPI volume reached 12 billion transactions in a single month [1].\n"
        "\n\nSources:\n- https://www.npci.org.in/stats\n- https://rbi.org.in/report\n"
    )


@pytest.fixture
def pipeline_chat(make_chat, analysis_json, structured_json, plan_json, script_json, quality_json):
    """Chat that answers every pipeline stage for the UPI topic."""
    return make_chat([
        ("Analyze this podcast topic request", analysis_json),
        ("Original request:", {"refinedPrompt": "How UPI rewired Indian payments, from NPCI to QR codes",
                               "focusAreas": ["Origins", "Architecture", "Adoption"]}),
        ("Extract and structure this research data", structured_json),
        ("should be a single episode or multiple", plan_json),
        ("Analyze this podcast script for quality", quality_json),
        ("podcast script", script_json),
    ])
