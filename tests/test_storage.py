"""Tests for podcraft/storage.py -- project stores and the local audio store."""

import json

import pytest

from podcraft.errors import ProjectNotFoundError, StaleProjectError
from podcraft.storage import InMemoryProjectStore, JsonFileProjectStore, LocalAudioStore


class TestInMemoryProjectStore:

    def test_create_and_get(self, project_store):
        record = project_store.create_project({"original_prompt": "UPI"})
        assert record["id"]
        assert record["created_at"] == record["updated_at"]
        assert project_store.get_project(record["id"])["original_prompt"] == "UPI"

    def test_unknown_project(self, project_store):
        assert project_store.get_project("nope") is None
        with pytest.raises(ProjectNotFoundError):
            project_store.update_project("nope", {"title": "x"})

    def test_partial_update_merges(self, project_store):
        record = project_store.create_project({"title": "A", "description": "keep me"})
        updated = project_store.update_project(record["id"], {"title": "B"})
        assert updated["title"] == "B"
        assert updated["description"] == "keep me"
        assert updated["id"] == record["id"]

    def test_returned_records_are_copies(self, project_store):
        record = project_store.create_project({"title": "A"})
        fetched = project_store.get_project(record["id"])
        fetched["title"] = "mutated"
        assert project_store.get_project(record["id"])["title"] == "A"

    def test_stale_token_rejected(self, project_store):
        record = project_store.create_project({"title": "A"})
        first = project_store.update_project(record["id"], {"title": "B"}, record["updated_at"])
        with pytest.raises(StaleProjectError) as ctx:
            project_store.update_project(record["id"], {"title": "C"}, "1999-01-01T00:00:00+00:00")
        assert ctx.value.status_code == 409
        assert project_store.get_project(record["id"])["title"] == "B"
        project_store.update_project(record["id"], {"title": "C"}, first["updated_at"])

    def test_last_write_wins_without_token(self, project_store):
        record = project_store.create_project({"title": "A"})
        project_store.update_project(record["id"], {"title": "B"})
        project_store.update_project(record["id"], {"title": "C"})
        assert project_store.get_project(record["id"])["title"] == "C"


class TestJsonFileProjectStore:

    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "data" / "projects.json"
        store = JsonFileProjectStore(path)
        record = store.create_project({"title": "UPI"})
        store.update_project(record["id"], {"refined_prompt": "Refined"})

        reloaded = JsonFileProjectStore(path)
        assert reloaded.get_project(record["id"])["refined_prompt"] == "Refined"
        assert record["id"] in json.loads(path.read_text())
        assert not path.with_suffix(".json.tmp").exists()

    def test_missing_file_starts_empty(self, tmp_path):
        store = JsonFileProjectStore(tmp_path / "none.json")
        assert store.get_project("x") is None


class TestLocalAudioStore:

    def test_save(self, tmp_path):
        store = LocalAudioStore(tmp_path / "audio", "/audio/")
        url = store.save(b"ID3data", "podcast_1.mp3")
        assert url == "/audio/podcast_1.mp3"
        assert (tmp_path / "audio" / "podcast_1.mp3").read_bytes() == b"ID3data"
