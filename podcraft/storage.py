"""Persistence seams used by the pipeline.

Projects are plain JSON-ready dicts keyed by project id. The pipeline only
reads projects and partially updates the fields it owns; creation and
deletion belong to the surrounding CRUD layer. Updates are read-then-replace
and last-write-wins unless the caller passes ``expected_updated_at``.
"""
import json
import logging
import threading
import time
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from podcraft.config import AUDIO_DIR, AUDIO_URL_PREFIX
from podcraft.errors import ProjectNotFoundError, StaleProjectError

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ProjectStore(ABC):

    @abstractmethod
    def get_project(self, project_id: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    def update_project(self, project_id: str, fields: Dict[str, Any],
                       expected_updated_at: Optional[str] = None) -> Dict[str, Any]:
        """Merge ``fields`` into the project and bump ``updated_at``.

        Raises ProjectNotFoundError for unknown ids and StaleProjectError when
        ``expected_updated_at`` is given and no longer matches.
        """

    @abstractmethod
    def create_project(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        ...


class InMemoryProjectStore(ProjectStore):

    def __init__(self):
        self._projects: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.RLock()

    def get_project(self, project_id):
        with self._lock:
            project = self._projects.get(project_id)
            return dict(project) if project is not None else None

    def update_project(self, project_id, fields, expected_updated_at=None):
        with self._lock:
            current = self._projects.get(project_id)
            if current is None:
                raise ProjectNotFoundError(project_id)
            if expected_updated_at is not None and current.get("updated_at") != expected_updated_at:
                raise StaleProjectError(project_id)
            updated = {**current, **fields, "id": project_id, "updated_at": _now_iso()}
            self._projects[project_id] = updated
            self._persist()
            return dict(updated)

    def create_project(self, fields):
        with self._lock:
            project_id = fields.get("id") or uuid.uuid4().hex
            now = _now_iso()
            project = {**fields, "id": project_id, "created_at": now, "updated_at": now}
            self._projects[project_id] = project
            self._persist()
            return dict(project)

    def _persist(self):
        pass


class JsonFileProjectStore(InMemoryProjectStore):
    """Projects kept in one JSON file, rewritten on every change."""

    def __init__(self, path):
        super().__init__()
        self.path = Path(path)
        if self.path.exists():
            with open(self.path, "r") as f:
                self._projects = json.load(f)
            logger.info(f"Loaded {len(self._projects)} projects from {self.path}")

    def _persist(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w") as f:
            json.dump(self._projects, f, indent=2)
        tmp.replace(self.path)


class AudioStore(ABC):

    @abstractmethod
    def save(self, data: bytes, filename: str) -> str:
        """Persist ``data`` and return a retrievable URL."""


class LocalAudioStore(AudioStore):
    """Audio files on the local filesystem, served under ``url_prefix``."""

    def __init__(self, directory=AUDIO_DIR, url_prefix: str = AUDIO_URL_PREFIX):
        self.directory = Path(directory)
        self.url_prefix = url_prefix.rstrip("/")

    def save(self, data, filename):
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.directory / filename
        path.write_bytes(data)
        logger.info(f"Saved audio: {path} ({len(data) / 1024:.1f} KB)")
        return f"{self.url_prefix}/{filename}"


def unique_audio_name(prefix: str = "podcast", ext: str = ".mp3") -> str:
    """``podcast_<millis>_<hex>.mp3``; unique across concurrent requests."""
    return f"{prefix}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}{ext}"
