"""Data types shared by the push and pull orchestrators."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from agentsync.backends.base import RemoteResourceDescriptor
from agentsync.core.types import ItemError, ResourceType
from agentsync.resources.base import ResourceItem


class ConflictResolution(str, Enum):
    """Outcome chosen for a conflicted resource."""

    KEEP_LOCAL = "keep-local"
    KEEP_REMOTE = "keep-remote"
    KEEP_BOTH = "keep-both"


@dataclass(frozen=True)
class Conflict:
    """A resource present on both sides with different content.

    Attributes:
        type: Resource type.
        local: The matching local item.
        remote: The remote descriptor.
        local_hash: Hash of the local content.
        remote_hash: Hash of the decrypted remote content.
        remote_content: Decrypted remote payload, reused when resolving.
    """

    type: ResourceType
    local: ResourceItem
    remote: RemoteResourceDescriptor
    local_hash: str
    remote_hash: str
    remote_content: bytes = field(repr=False)

    @property
    def id(self) -> str:
        return self.remote.id


ConflictResolver = Callable[[Conflict], ConflictResolution]


def keep_local(conflict: Conflict) -> ConflictResolution:
    """Non-interactive default: never touch local data."""
    return ConflictResolution.KEEP_LOCAL


@dataclass(frozen=True)
class PullTarget:
    """A remote resource selected for writing locally.

    Attributes:
        remote: What to pull.
        local: Matching local item when overwriting or merging.
        content: Already decrypted payload, if conflict detection fetched it.
    """

    remote: RemoteResourceDescriptor
    local: ResourceItem | None = None
    content: bytes | None = field(default=None, repr=False)


@dataclass
class PullPlan:
    """What a pull would do, computed without writing anything.

    Attributes:
        type: Resource type.
        remote_count: Number of resources listed remotely.
        to_pull: Remote resources with no local counterpart.
        conflicts: Resources whose content differs on both sides.
        in_sync: Ids present on both sides and treated as synced.
        errors: Failures while planning (e.g. a requested id not on remote).
    """

    type: ResourceType
    remote_count: int = 0
    to_pull: list[PullTarget] = field(default_factory=list)
    conflicts: list[Conflict] = field(default_factory=list)
    in_sync: list[str] = field(default_factory=list)
    errors: list[ItemError] = field(default_factory=list)


@dataclass
class PushSummary:
    """Result of pushing one resource type."""

    type: ResourceType
    candidates: int = 0
    pushed: int = 0
    failed: int = 0
    errors: list[ItemError] = field(default_factory=list)

    def fail(self, resource_id: str, error: Exception | str) -> None:
        self.failed += 1
        self.errors.append(ItemError(resource_id, str(error)))


@dataclass
class PullSummary:
    """Result of pulling one resource type."""

    type: ResourceType
    remote_count: int = 0
    pulled: int = 0
    failed: int = 0
    errors: list[ItemError] = field(default_factory=list)
    kept_local: int = 0
    overwritten: int = 0
    saved_as_conflict: int = 0
    conflict_paths: list[Path] = field(default_factory=list)

    def fail(self, resource_id: str, error: Exception | str) -> None:
        self.failed += 1
        self.errors.append(ItemError(resource_id, str(error)))
