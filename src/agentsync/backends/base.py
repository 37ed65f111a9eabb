"""Backend abstraction for encrypted resource storage.

This module provides:
- Backend: Abstract interface implemented by the git and S3 backends
- PushRequest / PushManyResult / RemoteResourceDescriptor
- escape_id / unescape_id / object_key: Remote key layout shared by all backends

Remote layout:
    Every resource is stored under "{storage_prefix}{escaped-id}.enc". The
    escaping is percent-style ("%" -> "%25", "/" -> "%2F") so ids derived
    from nested paths map to a single flat key and back without loss.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from agentsync.core.types import RESOURCE_CONFIGS, ItemError, ResourceType
from agentsync.resources.base import ResourceMetadata

ENC_SUFFIX = ".enc"

# Parallel uploads/writes per batch
WRITE_BATCH_SIZE = 50

ProgressCallback = Callable[[int, int], None]


def escape_id(resource_id: str) -> str:
    """Escape an id so it contains no path separator."""
    return resource_id.replace("%", "%25").replace("/", "%2F")


def unescape_id(escaped: str) -> str:
    """Exact inverse of escape_id().

    Unescaped separators (keys written by older layouts) are kept as-is.
    """
    return escaped.replace("%2F", "/").replace("%2f", "/").replace("%25", "%")


def object_key(resource_type: ResourceType, resource_id: str) -> str:
    """Remote key of a resource, relative to the backend root."""
    prefix = RESOURCE_CONFIGS[resource_type].storage_prefix
    return f"{prefix}{escape_id(resource_id)}{ENC_SUFFIX}"


def id_from_key(relative_key: str) -> str | None:
    """Recover a resource id from a key relative to the type's prefix.

    Returns:
        The id, or None if the key is not an encrypted resource.
    """
    if not relative_key.endswith(ENC_SUFFIX) or relative_key == ENC_SUFFIX:
        return None
    return unescape_id(relative_key[: -len(ENC_SUFFIX)])


@dataclass(frozen=True)
class PushRequest:
    """One encrypted payload queued for Backend.push_many()."""

    id: str
    ciphertext: bytes
    metadata: ResourceMetadata = ResourceMetadata()


@dataclass(frozen=True)
class RemoteResourceDescriptor:
    """A resource as seen in a remote listing."""

    id: str
    type: ResourceType
    metadata: ResourceMetadata = ResourceMetadata()


@dataclass
class PushManyResult:
    """Outcome of a bulk push; every requested item is either pushed or failed.

    Attributes:
        pushed: Ids stored remotely, in request order.
        errors: One ItemError per failed id.
    """

    pushed: list[str] = field(default_factory=list)
    errors: list[ItemError] = field(default_factory=list)

    @property
    def pushed_count(self) -> int:
        return len(self.pushed)

    @property
    def failed_count(self) -> int:
        return len(self.errors)


class Backend(ABC):
    """Abstract interface for remote storage of encrypted resources.

    Implementations must call assert_encrypted() on every payload before
    it is written anywhere.
    """

    @property
    @abstractmethod
    def location(self) -> str:
        """Return a human-readable description of where resources are stored."""

    def init(self) -> None:
        """Prepare the remote for first use (clone, verify access...)."""

    @abstractmethod
    def push_one(
        self,
        resource_type: ResourceType,
        resource_id: str,
        ciphertext: bytes,
        metadata: ResourceMetadata | None = None,
    ) -> None:
        """Store a single encrypted resource.

        Raises:
            SecurityViolationError: If the payload does not look encrypted.
            TransportError: If the remote write fails.
        """

    @abstractmethod
    def push_many(
        self,
        resource_type: ResourceType,
        items: Sequence[PushRequest],
        on_progress: ProgressCallback | None = None,
    ) -> PushManyResult:
        """Store several encrypted resources of one type.

        Per-item failures (including security violations) are reported in
        the result and never abort the other items.

        Args:
            resource_type: Type shared by all items.
            items: Payloads to store.
            on_progress: Called with (done, total) after each batch.

        Returns:
            PushManyResult accounting for every item.
        """

    @abstractmethod
    def pull_one(self, resource_type: ResourceType, resource_id: str) -> bytes:
        """Fetch a single encrypted resource.

        Raises:
            NotFoundError: If the resource does not exist remotely.
            TransportError: If the remote read fails.
        """

    @abstractmethod
    def list_all(self, resource_type: ResourceType) -> list[RemoteResourceDescriptor]:
        """List every resource of a type stored remotely."""

    @abstractmethod
    def delete_one(self, resource_type: ResourceType, resource_id: str) -> bool:
        """Delete a resource.

        Returns:
            True if it was deleted, False if it didn't exist.
        """


def batched(items: Sequence[PushRequest], size: int = WRITE_BATCH_SIZE) -> list[Sequence[PushRequest]]:
    """Split items into consecutive slices of at most size elements."""
    return [items[i : i + size] for i in range(0, len(items), size)]
