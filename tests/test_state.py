"""Tests for the sync state store."""

from __future__ import annotations

import json
import threading
from pathlib import Path

from agentsync.core.types import ResourceType
from agentsync.state import HashUpdate, SyncStateStore


class TestLoad:
    """Tests for SyncStateStore.load()."""

    def test_missing_file_is_empty_state(self, tmp_path: Path) -> None:
        state = SyncStateStore(tmp_path / "sync-state.json").load()
        assert state.version == 1
        assert state.resources == {}

    def test_corrupt_file_is_empty_state(self, tmp_path: Path) -> None:
        """Corruption means "nothing synced yet", never an exception."""
        path = tmp_path / "sync-state.json"
        path.write_text("{{{ not json")
        assert SyncStateStore(path).load().resources == {}

    def test_wrong_shape_is_empty_state(self, tmp_path: Path) -> None:
        path = tmp_path / "sync-state.json"
        path.write_text(json.dumps({"version": 1, "resources": {"sessions": ["a"]}}))
        assert SyncStateStore(path).load().resources == {}


class TestUpdates:
    """Tests for update_one() / update_batch()."""

    def test_update_one_then_get_hash(self, tmp_path: Path) -> None:
        store = SyncStateStore(tmp_path / "cfg" / "sync-state.json")
        store.update_one(ResourceType.SESSIONS, "s1", "abc")

        assert store.get_hash(ResourceType.SESSIONS, "s1") == "abc"
        assert store.get_hash(ResourceType.SESSIONS, "other") is None
        assert store.get_hash(ResourceType.AGENTS, "s1") is None

    def test_persisted_layout(self, tmp_path: Path) -> None:
        """The file maps type -> id -> {hash, syncedAt} under a version."""
        path = tmp_path / "sync-state.json"
        SyncStateStore(path).update_one(ResourceType.AGENTS, "reviewer", "h1")

        data = json.loads(path.read_text())

        assert data["version"] == 1
        record = data["resources"]["agents"]["reviewer"]
        assert record["hash"] == "h1"
        assert record["syncedAt"]

    def test_update_batch_saves_once(self, tmp_path: Path, monkeypatch) -> None:
        """A batch of updates should produce a single save."""
        store = SyncStateStore(tmp_path / "sync-state.json")
        saves = []
        original_save = store.save
        monkeypatch.setattr(store, "save", lambda s: (saves.append(1), original_save(s)))

        store.update_batch(
            HashUpdate(ResourceType.SESSIONS, f"s{i}", f"h{i}") for i in range(10)
        )

        assert len(saves) == 1
        assert store.get_hash(ResourceType.SESSIONS, "s7") == "h7"

    def test_update_batch_empty_does_not_write(self, tmp_path: Path) -> None:
        path = tmp_path / "sync-state.json"
        SyncStateStore(path).update_batch([])
        assert not path.exists()

    def test_updates_merge_with_existing(self, tmp_path: Path) -> None:
        store = SyncStateStore(tmp_path / "sync-state.json")
        store.update_one(ResourceType.SESSIONS, "a", "1")
        store.update_one(ResourceType.SESSIONS, "b", "2")
        store.update_one(ResourceType.SESSIONS, "a", "3")

        assert store.get_hash(ResourceType.SESSIONS, "a") == "3"
        assert store.get_hash(ResourceType.SESSIONS, "b") == "2"

    def test_concurrent_updates_are_not_lost(self, tmp_path: Path) -> None:
        """Threads of one process never interleave load and save."""
        store = SyncStateStore(tmp_path / "sync-state.json")

        def worker(n: int) -> None:
            for i in range(20):
                store.update_one(ResourceType.SESSIONS, f"t{n}-{i}", "h")

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(store.load().resources["sessions"]) == 80

    def test_no_temp_files_left_behind(self, tmp_path: Path) -> None:
        store = SyncStateStore(tmp_path / "sync-state.json")
        store.update_one(ResourceType.SESSIONS, "a", "1")
        assert [p.name for p in tmp_path.iterdir()] == ["sync-state.json"]
