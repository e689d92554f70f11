"""Centralized configuration for the podcraft pipeline."""
import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# --- Model Configuration ---
CHAT_MODEL = os.environ.get("MODEL_NAME", "gpt-4o")
LLM_BASE_URL = os.environ.get("LLM_BASE_URL", "https://api.openai.com/v1")
LLM_API_KEY = os.environ.get("LLM_API_KEY", "NA")

RESEARCH_MODEL = os.environ.get("RESEARCH_MODEL", "sonar-deep-research")
RESEARCH_BASE_URL = os.environ.get("RESEARCH_BASE_URL", "https://api.perplexity.ai")
RESEARCH_API_KEY = os.environ.get("RESEARCH_API_KEY", "")

TTS_MODEL = os.environ.get("TTS_MODEL", "tts-1")
TTS_DEFAULT_VOICE = os.environ.get("TTS_DEFAULT_VOICE", "nova")
TTS_BASE_URL = os.environ.get("TTS_BASE_URL", LLM_BASE_URL)

# --- Storage ---
PROJECT_ROOT = Path(__file__).resolve().parent.parent
AUDIO_DIR = Path(os.environ.get("AUDIO_DIR", str(PROJECT_ROOT / "public" / "audio")))
AUDIO_URL_PREFIX = os.environ.get("AUDIO_URL_PREFIX", "/audio")
PROJECTS_FILE = os.environ.get("PROJECTS_FILE", "")
OUTPUT_DIR = Path(os.environ.get("PODCRAFT_OUTPUT_DIR", str(PROJECT_ROOT / "podcast_outputs")))

# --- Timeouts (seconds) ---
LLM_TIMEOUT = 120
QUICK_REFINE_TIMEOUT = float(os.environ.get("QUICK_REFINE_TIMEOUT", "3"))
REFINE_TIMEOUT = float(os.environ.get("REFINE_TIMEOUT", "60"))
TOPIC_ANALYSIS_TIMEOUT = float(os.environ.get("TOPIC_ANALYSIS_TIMEOUT", "30"))
RESEARCH_TIMEOUT = float(os.environ.get("RESEARCH_TIMEOUT", "360"))
RESEARCH_QUERY_TIMEOUT = 300.0
INTEGRATION_TIMEOUT = float(os.environ.get("INTEGRATION_TIMEOUT", "60"))
QUALITY_TIMEOUT = float(os.environ.get("QUALITY_TIMEOUT", "60"))

# --- Research dispatch ---
RESEARCH_STAGGER_SECONDS = 1.0
MAX_RESEARCH_QUERIES = 5

# --- Script & Audio ---
WORDS_PER_MINUTE = 150          # speech rate used for duration estimates
READING_WORDS_PER_MINUTE = 200
DEFAULT_EPISODE_MINUTES = 18
TTS_MAX_CHARS = 4000            # per-request input limit with headroom below the API's 4096

# --- Web ---
WEB_HOST = os.environ.get("PODCRAFT_WEB_HOST", "0.0.0.0")
WEB_PORT = int(os.environ.get("PODCRAFT_WEB_PORT", "8500"))
