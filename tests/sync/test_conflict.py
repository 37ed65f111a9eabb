"""Tests for conflict detection helpers."""

from __future__ import annotations

from pathlib import Path

from conftest import FakeBackend, write_session

from agentsync.backends import RemoteResourceDescriptor
from agentsync.core.config import SyncPaths
from agentsync.core.crypto import ResourceCipher, generate_key, hash_content
from agentsync.core.types import ResourceType
from agentsync.resources import SessionsHandler
from agentsync.resources.base import ResourceItem
from agentsync.state import SyncStateStore
from agentsync.sync.conflict import LocalIndex, detect_conflict, resolve_keep_both_location


class TestLocalIndex:
    """Tests for LocalIndex lookups."""

    def test_exact_match_wins(self) -> None:
        exact = ResourceItem("abc")
        nested = ResourceItem("proj/abc")
        index = LocalIndex([nested, exact])
        assert index.find("abc") is exact

    def test_remote_id_with_prefix_matches_basename(self) -> None:
        local = ResourceItem("abc")
        assert LocalIndex([local]).find("other/abc") is local

    def test_plain_remote_id_matches_nested_local(self) -> None:
        local = ResourceItem("team/reviewer")
        assert LocalIndex([local]).find("reviewer") is local

    def test_no_match(self) -> None:
        assert LocalIndex([ResourceItem("abc")]).find("xyz") is None


class TestDetectConflict:
    """Tests for detect_conflict()."""

    def _setup(
        self, paths: SyncPaths, state: SyncStateStore, backend: FakeBackend,
        cipher: ResourceCipher, local: bytes, remote: bytes,
    ) -> tuple[SessionsHandler, ResourceItem, RemoteResourceDescriptor]:
        write_session(paths, "abc", local)
        backend.objects[(ResourceType.SESSIONS, "abc")] = cipher.encrypt(remote)
        handler = SessionsHandler(paths, state)
        item = handler.find_local("abc")
        assert item is not None
        return handler, item, RemoteResourceDescriptor("abc", ResourceType.SESSIONS)

    def test_identical_content_is_not_a_conflict(
        self, paths: SyncPaths, state: SyncStateStore, backend: FakeBackend, cipher: ResourceCipher
    ) -> None:
        handler, item, remote = self._setup(paths, state, backend, cipher, b"same", b"same")
        assert detect_conflict(handler, backend, cipher, remote, item) is None

    def test_different_content_is_a_conflict(
        self, paths: SyncPaths, state: SyncStateStore, backend: FakeBackend, cipher: ResourceCipher
    ) -> None:
        handler, item, remote = self._setup(paths, state, backend, cipher, b"mine", b"theirs")

        conflict = detect_conflict(handler, backend, cipher, remote, item)

        assert conflict is not None
        assert conflict.id == "abc"
        assert conflict.local_hash == hash_content(b"mine")
        assert conflict.remote_hash == hash_content(b"theirs")
        assert conflict.remote_content == b"theirs"

    def test_undecryptable_remote_is_not_a_conflict(
        self, paths: SyncPaths, state: SyncStateStore, backend: FakeBackend, cipher: ResourceCipher
    ) -> None:
        """A payload sealed with another key is left alone."""
        other = ResourceCipher(generate_key())
        handler, item, remote = self._setup(paths, state, backend, other, b"mine", b"theirs")

        assert detect_conflict(handler, backend, cipher, remote, item) is None


class TestKeepBothLocation:
    """Tests for resolve_keep_both_location()."""

    def test_sibling_with_conflict_marker(self, paths: SyncPaths, state: SyncStateStore) -> None:
        path = write_session(paths, "abc", b"x")
        handler = SessionsHandler(paths, state)
        item = handler.find_local("abc")
        assert item is not None

        location = resolve_keep_both_location(handler, item)

        assert location == path.parent / "abc.conflict.jsonl"

    def test_falls_back_to_storage_location(self, paths: SyncPaths, state: SyncStateStore) -> None:
        handler = SessionsHandler(paths, state)
        item = ResourceItem("abc", storage_location=None)

        location = resolve_keep_both_location(handler, item)

        assert location == Path(paths.projects_dir / "unknown" / "abc.conflict.jsonl")
