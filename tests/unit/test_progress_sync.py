"""
Unit tests for loading and saving progress through storage.
"""

import json

import pytest

from topicdrill.scheduling.progress_store import LoadOutcome, ProgressFormatError, ProgressStore
from topicdrill.sync.progress_sync import load_progress, save_progress
from topicdrill.sync.storage import UnauthorizedError

PATH = "progress.json"


class TestLoadProgress:
    """Tests for load_progress."""

    @pytest.mark.asyncio
    async def test_missing_file_starts_fresh(self, memory_storage):
        result = await load_progress(memory_storage, PATH)

        assert result.outcome == LoadOutcome.FRESH
        assert result.version_token is None
        assert result.progress == ProgressStore.fresh()
        assert result.message == "No progress file found. Starting fresh."

    @pytest.mark.asyncio
    async def test_loads_v2(self, memory_storage):
        token = memory_storage.put(PATH, json.dumps({"version": 2, "history": ["a", "b"]}))

        result = await load_progress(memory_storage, PATH)

        assert result.outcome == LoadOutcome.LOADED
        assert result.version_token == token
        assert result.message == "Loaded progress. History: 2"

    @pytest.mark.asyncio
    async def test_migrates_legacy(self, memory_storage):
        memory_storage.put(PATH, '["M_T_Q1"]')

        result = await load_progress(memory_storage, PATH)

        assert result.outcome == LoadOutcome.MIGRATED
        assert result.progress.history == ["M_T_Q1"]
        assert result.message == "Loaded & migrated old progress."

    @pytest.mark.asyncio
    async def test_unknown_version(self, memory_storage):
        memory_storage.put(PATH, '{"version": 7, "history": []}')

        result = await load_progress(memory_storage, PATH)

        assert result.outcome == LoadOutcome.UNKNOWN_VERSION
        assert result.message == "Loaded progress (unknown version)."

    @pytest.mark.asyncio
    async def test_corrupt_file(self, memory_storage):
        memory_storage.put(PATH, "not json")

        with pytest.raises(ProgressFormatError):
            await load_progress(memory_storage, PATH)

    @pytest.mark.asyncio
    async def test_storage_errors_propagate(self, memory_storage, monkeypatch):
        async def fail(path):
            raise UnauthorizedError("bad token")

        monkeypatch.setattr(memory_storage, "fetch_file", fail)

        with pytest.raises(UnauthorizedError):
            await load_progress(memory_storage, PATH)


class TestSaveProgress:
    """Tests for save_progress."""

    @pytest.mark.asyncio
    async def test_creates_file(self, memory_storage):
        progress = ProgressStore(history=["a"])

        result = await save_progress(memory_storage, PATH, progress, None)

        assert not result.remote_changed
        assert memory_storage.writes[0][2] is None
        assert json.loads(memory_storage.files[PATH])["history"] == ["a"]

    @pytest.mark.asyncio
    async def test_updates_with_current_token(self, memory_storage):
        token = memory_storage.put(PATH, "[]")

        result = await save_progress(memory_storage, PATH, ProgressStore.fresh(), token)

        assert not result.remote_changed
        assert memory_storage.writes[-1][2] == token
        assert result.version_token == memory_storage.versions[PATH]

    @pytest.mark.asyncio
    async def test_remote_change_is_flagged_and_overwritten(self, memory_storage):
        loaded_token = memory_storage.put(PATH, "[]")
        memory_storage.put(PATH, '["from another device"]')

        result = await save_progress(memory_storage, PATH, ProgressStore(history=["mine"]), loaded_token)

        assert result.remote_changed
        assert json.loads(memory_storage.files[PATH])["history"] == ["mine"]

    @pytest.mark.asyncio
    async def test_round_trip_preserves_unknown_fields(self, memory_storage):
        original = {"version": 2, "history": [], "topics": {}, "custom_associations": {}, "theme": "dark"}
        memory_storage.put(PATH, json.dumps(original))

        loaded = await load_progress(memory_storage, PATH)
        await save_progress(memory_storage, PATH, loaded.progress, loaded.version_token)

        assert json.loads(memory_storage.files[PATH]) == original
