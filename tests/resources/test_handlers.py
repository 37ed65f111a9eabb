"""Tests for resource handlers."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from conftest import write_session

from agentsync.core.config import SyncPaths
from agentsync.core.crypto import hash_content
from agentsync.core.errors import NotFoundError, SecurityViolationError
from agentsync.core.types import ResourceType
from agentsync.resources import (
    AgentsHandler,
    ResourceItem,
    ResourceMetadata,
    SessionsHandler,
    SettingsHandler,
    conflict_location_for,
    get_resource_handler,
)
from agentsync.state import SyncStateStore


class TestRegistry:
    """Tests for get_resource_handler()."""

    @pytest.mark.parametrize(
        ("resource_type", "handler_cls"),
        [
            (ResourceType.SESSIONS, SessionsHandler),
            (ResourceType.AGENTS, AgentsHandler),
            (ResourceType.SETTINGS, SettingsHandler),
        ],
    )
    def test_builds_handler(
        self, resource_type: ResourceType, handler_cls: type, paths: SyncPaths, state: SyncStateStore
    ) -> None:
        handler = get_resource_handler(resource_type, paths, state)
        assert isinstance(handler, handler_cls)
        assert handler.resource_type is resource_type


class TestSessionsHandler:
    """Tests for transcript discovery and placement."""

    def test_enumerate_finds_nested_transcripts(self, paths: SyncPaths, state: SyncStateStore) -> None:
        write_session(paths, "s1", b'{"a":1}\n', project="-home-me-app")
        write_session(paths, "s2", b'{"b":2}\n', project="-home-me-lib")

        items = SessionsHandler(paths, state).enumerate_local()

        assert {item.id: item.metadata.project for item in items} == {
            "s1": "-home-me-app",
            "s2": "-home-me-lib",
        }
        assert all(item.last_modified is not None for item in items)

    def test_enumerate_missing_directory(self, paths: SyncPaths, state: SyncStateStore) -> None:
        assert SessionsHandler(paths, state).enumerate_local() == []

    def test_zero_byte_files_are_skipped(self, paths: SyncPaths, state: SyncStateStore) -> None:
        """Empty files are excluded from both full and filtered enumeration."""
        write_session(paths, "empty", b"")
        write_session(paths, "full", b"content")
        handler = SessionsHandler(paths, state)

        assert [i.id for i in handler.enumerate_local()] == ["full"]
        assert [i.id for i in handler.enumerate_local(modified_since_last_sync=True)] == ["full"]

    def test_filter_uses_content_hash(self, paths: SyncPaths, state: SyncStateStore) -> None:
        """Only never-synced or changed items pass the filter."""
        write_session(paths, "synced", b"same")
        write_session(paths, "changed", b"new content")
        write_session(paths, "fresh", b"never synced")
        state.update_one(ResourceType.SESSIONS, "synced", hash_content(b"same"))
        state.update_one(ResourceType.SESSIONS, "changed", hash_content(b"old content"))

        items = SessionsHandler(paths, state).enumerate_local(modified_since_last_sync=True)

        assert sorted(i.id for i in items) == ["changed", "fresh"]

    def test_write_creates_project_directory(self, paths: SyncPaths, state: SyncStateStore) -> None:
        handler = SessionsHandler(paths, state)
        location = handler.write_local("s9", b"data", ResourceMetadata(project="p"))
        assert location == paths.projects_dir / "p" / "s9.jsonl"
        assert location.read_bytes() == b"data"

    def test_write_without_project_uses_unknown(self, paths: SyncPaths, state: SyncStateStore) -> None:
        location = SessionsHandler(paths, state).write_local("s9", b"data")
        assert location == paths.projects_dir / "unknown" / "s9.jsonl"

    def test_read_missing_raises_not_found(self, paths: SyncPaths, state: SyncStateStore) -> None:
        item = ResourceItem(id="gone", storage_location=paths.projects_dir / "p" / "gone.jsonl")
        with pytest.raises(NotFoundError):
            SessionsHandler(paths, state).read_local(item)

    def test_find_local(self, paths: SyncPaths, state: SyncStateStore) -> None:
        write_session(paths, "abc", b"x")
        handler = SessionsHandler(paths, state)
        found = handler.find_local("abc")
        assert found is not None and found.metadata.project == "proj"
        assert handler.find_local("nope") is None

    def test_no_merge_support(self, paths: SyncPaths, state: SyncStateStore) -> None:
        handler = SessionsHandler(paths, state)
        assert not handler.supports_merge
        with pytest.raises(NotImplementedError):
            handler.merge(b"{}", b"{}")


class TestAgentsHandler:
    """Tests for agent definitions."""

    def test_enumerate_and_resolve(self, paths: SyncPaths, state: SyncStateStore) -> None:
        paths.agents_dir.mkdir(parents=True)
        (paths.agents_dir / "reviewer.md").write_text("# Reviewer")
        (paths.agents_dir / "notes.txt").write_text("ignored")
        handler = AgentsHandler(paths, state)

        items = handler.enumerate_local()

        assert [i.id for i in items] == ["reviewer"]
        assert handler.resolve_storage_location("reviewer") == paths.agents_dir / "reviewer.md"

    @pytest.mark.parametrize("resource_id", ["../escaped", "../../escaped", "team/../../x", "/tmp/abs"])
    def test_write_refuses_ids_outside_agents_dir(
        self, paths: SyncPaths, state: SyncStateStore, resource_id: str
    ) -> None:
        with pytest.raises(SecurityViolationError):
            AgentsHandler(paths, state).write_local(resource_id, b"payload")
        assert not (paths.claude_dir / "escaped.md").exists()

    def test_write_allows_nested_id(self, paths: SyncPaths, state: SyncStateStore) -> None:
        location = AgentsHandler(paths, state).write_local("team/reviewer", b"# Reviewer")
        assert location == paths.agents_dir / "team" / "reviewer.md"


class TestSettingsMerge:
    """Tests for the settings merge strategy."""

    @pytest.fixture
    def handler(self, paths: SyncPaths, state: SyncStateStore) -> SettingsHandler:
        return SettingsHandler(paths, state)

    @staticmethod
    def _merge(handler: SettingsHandler, local: dict, remote: dict) -> dict:
        return json.loads(handler.merge(json.dumps(local).encode(), json.dumps(remote).encode()))

    def test_lists_union_and_local_scalars_win(self, handler: SettingsHandler) -> None:
        merged = self._merge(handler, {"tags": ["a"], "mode": "x"}, {"tags": ["b"], "mode": "y"})
        assert sorted(merged["tags"]) == ["a", "b"]
        assert merged["mode"] == "x"

    def test_list_union_deduplicates(self, handler: SettingsHandler) -> None:
        merged = self._merge(
            handler,
            {"allow": ["Bash", {"tool": "Read"}]},
            {"allow": [{"tool": "Read"}, "Bash", "Edit"]},
        )
        assert len(merged["allow"]) == 3

    def test_objects_merge_recursively(self, handler: SettingsHandler) -> None:
        merged = self._merge(
            handler,
            {"enabledPlugins": {"a": True}, "env": {"X": "local"}},
            {"enabledPlugins": {"b": True}, "env": {"X": "remote", "Y": "remote"}},
        )
        assert merged["enabledPlugins"] == {"a": True, "b": True}
        assert merged["env"] == {"X": "local", "Y": "remote"}

    def test_remote_only_keys_are_kept(self, handler: SettingsHandler) -> None:
        assert self._merge(handler, {}, {"theme": "dark"}) == {"theme": "dark"}

    def test_malformed_side_is_empty_object(self, handler: SettingsHandler) -> None:
        merged = json.loads(handler.merge(b"{broken", b'{"theme": "dark"}'))
        assert merged == {"theme": "dark"}
        merged = json.loads(handler.merge(b'{"theme": "light"}', b"[1, 2]"))
        assert merged == {"theme": "light"}

    def test_output_is_indented_json(self, handler: SettingsHandler) -> None:
        assert handler.merge(b'{"a": 1}', b"{}") == b'{\n  "a": 1\n}'

    def test_single_settings_resource(self, handler: SettingsHandler, paths: SyncPaths) -> None:
        paths.claude_dir.mkdir(parents=True)
        paths.settings_file.write_text("{}")
        items = handler.enumerate_local()
        assert [i.id for i in items] == ["settings"]
        assert handler.resolve_storage_location("settings") == paths.settings_file


class TestConflictLocation:
    """Tests for the derived keep-both location."""

    def test_marker_before_extension(self) -> None:
        assert conflict_location_for(Path("/x/abc.jsonl")) == Path("/x/abc.conflict.jsonl")

    def test_no_extension(self) -> None:
        assert conflict_location_for(Path("/x/notes")) == Path("/x/notes.conflict")

    def test_conflict_copies_are_not_enumerated(self, paths: SyncPaths, state: SyncStateStore) -> None:
        write_session(paths, "abc", b"local")
        write_session(paths, "abc.conflict", b"remote")
        assert [i.id for i in SessionsHandler(paths, state).enumerate_local()] == ["abc"]
