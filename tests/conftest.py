"""Shared fixtures for agentsync tests."""

from __future__ import annotations

from collections.abc import Generator, Sequence
from pathlib import Path
from unittest.mock import patch

import pytest

from agentsync.backends.base import (
    Backend,
    ProgressCallback,
    PushManyResult,
    PushRequest,
    RemoteResourceDescriptor,
)
from agentsync.core.config import SyncPaths
from agentsync.core.crypto import ResourceCipher, assert_encrypted, generate_key
from agentsync.core.errors import NotFoundError, TransportError
from agentsync.core.types import ItemError, ResourceType
from agentsync.resources.base import ResourceMetadata
from agentsync.state import SyncStateStore


class InMemoryKeyring:
    """Stand-in for the OS keyring used by agentsync.keystore."""

    def __init__(self) -> None:
        self.passwords: dict[tuple[str, str], str] = {}

    def get_password(self, service: str, username: str) -> str | None:
        return self.passwords.get((service, username))

    def set_password(self, service: str, username: str, password: str) -> None:
        self.passwords[(service, username)] = password


class FakeBackend(Backend):
    """In-memory backend recording every call.

    Ids listed in fail_ids are reported as failed by push_many and
    raise TransportError from push_one.
    """

    def __init__(self) -> None:
        self.objects: dict[tuple[ResourceType, str], bytes] = {}
        self.fail_ids: set[str] = set()
        self.push_one_calls: list[str] = []
        self.push_many_calls: list[list[str]] = []
        self.pull_calls: list[str] = []

    @property
    def location(self) -> str:
        return "memory"

    def push_one(
        self,
        resource_type: ResourceType,
        resource_id: str,
        ciphertext: bytes,
        metadata: ResourceMetadata | None = None,
    ) -> None:
        self.push_one_calls.append(resource_id)
        assert_encrypted(ciphertext, resource_id)
        if resource_id in self.fail_ids:
            raise TransportError(f"simulated failure for {resource_id}")
        self.objects[(resource_type, resource_id)] = ciphertext

    def push_many(
        self,
        resource_type: ResourceType,
        items: Sequence[PushRequest],
        on_progress: ProgressCallback | None = None,
    ) -> PushManyResult:
        self.push_many_calls.append([item.id for item in items])
        result = PushManyResult()
        for item in items:
            if item.id in self.fail_ids:
                result.errors.append(ItemError(item.id, "simulated failure"))
                continue
            self.objects[(resource_type, item.id)] = item.ciphertext
            result.pushed.append(item.id)
        if on_progress:
            on_progress(len(items), len(items))
        return result

    def pull_one(self, resource_type: ResourceType, resource_id: str) -> bytes:
        self.pull_calls.append(resource_id)
        try:
            return self.objects[(resource_type, resource_id)]
        except KeyError:
            raise NotFoundError(f"{resource_id} not found") from None

    def list_all(self, resource_type: ResourceType) -> list[RemoteResourceDescriptor]:
        return [
            RemoteResourceDescriptor(rid, rtype)
            for (rtype, rid) in sorted(self.objects)
            if rtype is resource_type
        ]

    def delete_one(self, resource_type: ResourceType, resource_id: str) -> bool:
        return self.objects.pop((resource_type, resource_id), None) is not None


@pytest.fixture(autouse=True)
def memory_keyring() -> Generator[InMemoryKeyring, None, None]:
    """Keep tests away from the real OS keyring."""
    fake = InMemoryKeyring()
    with patch("agentsync.keystore.keyring", fake):
        yield fake


@pytest.fixture
def paths(tmp_path: Path) -> SyncPaths:
    """Filesystem roots inside a temporary directory."""
    return SyncPaths(claude_dir=tmp_path / ".claude", config_dir=tmp_path / ".agentsync")


@pytest.fixture
def state(paths: SyncPaths) -> SyncStateStore:
    return SyncStateStore(paths.state_file)


@pytest.fixture
def cipher() -> ResourceCipher:
    return ResourceCipher(generate_key())


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


def write_session(paths: SyncPaths, session_id: str, content: bytes, project: str = "proj") -> Path:
    """Create a transcript file the way the editor lays them out."""
    path = paths.projects_dir / project / f"{session_id}.jsonl"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return path
