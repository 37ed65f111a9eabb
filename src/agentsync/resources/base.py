"""Resource handler contract shared by all resource types.

This module provides:
- ResourceMetadata: Type-specific metadata (the project label)
- ResourceItem: A locally discovered artifact
- ResourceHandler: Base class mapping logical ids to local files
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

from agentsync.core.crypto import compute_file_hash
from agentsync.core.errors import NotFoundError, SecurityViolationError
from agentsync.core.types import RESOURCE_CONFIGS, ResourceType, ResourceTypeConfig, SyncStrategy

if TYPE_CHECKING:
    from agentsync.core.config import SyncPaths
    from agentsync.state import SyncStateStore

logger = logging.getLogger(__name__)

CONFLICT_MARKER = ".conflict"


@dataclass(frozen=True)
class ResourceMetadata:
    """Metadata attached to a resource.

    Attributes:
        project: Project/namespace label (sessions only).
    """

    project: str | None = None

    def describe(self) -> str:
        """Render as "key=value" pairs for previews (empty if nothing set)."""
        return f"project={self.project}" if self.project else ""


@dataclass(frozen=True)
class ResourceItem:
    """A local instance of a resource.

    Attributes:
        id: Logical identifier, unique within its resource type.
        storage_location: Local file holding the content.
        last_modified: Modification time of the file when discovered.
        metadata: Type-specific metadata.
    """

    id: str
    storage_location: Path | None = None
    last_modified: datetime | None = None
    metadata: ResourceMetadata = ResourceMetadata()


class ResourceHandler(ABC):
    """Local side of one resource type.

    Subclasses declare their resource_type and implement _discover()
    and resolve_storage_location(). Merge and conflict-location support
    are optional capabilities with safe defaults.
    """

    resource_type: ResourceType

    def __init__(self, paths: SyncPaths, state: SyncStateStore) -> None:
        self._paths = paths
        self._state = state

    @property
    def config(self) -> ResourceTypeConfig:
        return RESOURCE_CONFIGS[self.resource_type]

    @property
    def storage_root(self) -> Path:
        """Directory every local copy of this type must stay inside."""
        return self._paths.claude_dir

    @abstractmethod
    def _discover(self) -> Iterator[tuple[str, Path, ResourceMetadata]]:
        """Yield (id, path, metadata) for every candidate file on disk."""

    @abstractmethod
    def resolve_storage_location(
        self, resource_id: str, metadata: ResourceMetadata | None = None
    ) -> Path:
        """Map a logical id back to the local file that holds it."""

    def enumerate_local(self, modified_since_last_sync: bool = False) -> list[ResourceItem]:
        """List local resources of this type.

        Zero-byte files and keep-both conflict copies are skipped. With
        modified_since_last_sync, only resources that were never synced or
        whose content hash differs from the recorded one are returned.

        Args:
            modified_since_last_sync: Filter against the sync state.

        Returns:
            List of ResourceItem.
        """
        items: list[ResourceItem] = []
        for resource_id, path, metadata in self._discover():
            if path.stem.endswith(CONFLICT_MARKER):
                # Keep-both copies are never synced themselves
                continue
            try:
                stat = path.stat()
            except OSError:
                # File disappeared between listing and stat
                continue
            if stat.st_size == 0:
                logger.debug(f"Skipping empty {self.resource_type.value} {resource_id}")
                continue
            items.append(ResourceItem(
                id=resource_id,
                storage_location=path,
                last_modified=datetime.fromtimestamp(stat.st_mtime, tz=UTC),
                metadata=metadata,
            ))

        if not modified_since_last_sync:
            return items

        state = self._state.load()
        changed: list[ResourceItem] = []
        for item in items:
            record = state.get(self.resource_type, item.id)
            if record is None:
                changed.append(item)
                continue
            try:
                current_hash = compute_file_hash(item.storage_location)  # type: ignore[arg-type]
            except OSError as e:
                logger.debug(f"Cannot hash {item.storage_location}: {e}")
                continue
            if current_hash != record.content_hash:
                changed.append(item)
        return changed

    def find_local(self, resource_id: str) -> ResourceItem | None:
        """Return the local item with this id, or None."""
        for item in self.enumerate_local():
            if item.id == resource_id:
                return item
        return None

    def read_local(self, item: ResourceItem) -> bytes:
        """Read the content of a local resource.

        Raises:
            NotFoundError: If the item has no valid storage location.
        """
        path = item.storage_location
        if path is None:
            raise NotFoundError(f"{self.config.display_name} {item.id} has no local path")
        try:
            return path.read_bytes()
        except FileNotFoundError as e:
            raise NotFoundError(f"{self.config.display_name} {item.id} not found at {path}") from e

    def write_local(
        self,
        resource_id: str,
        content: bytes,
        metadata: ResourceMetadata | None = None,
    ) -> Path:
        """Write content to the resource's location, replacing any existing file.

        Returns:
            Path the content was written to.

        Raises:
            SecurityViolationError: If the id would place the file outside
                storage_root (ids of pulled resources come from the remote).
        """
        path = self.resolve_storage_location(resource_id, metadata)
        self._check_contained(resource_id, path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return path

    def _check_contained(self, resource_id: str, path: Path) -> None:
        pure = PurePosixPath(resource_id)
        if pure.is_absolute() or ".." in pure.parts or "\\" in resource_id:
            raise SecurityViolationError(
                f"Refusing {self.resource_type.value} id {resource_id!r}: not a relative name"
            )
        if not path.resolve().is_relative_to(self.storage_root.resolve()):
            raise SecurityViolationError(
                f"Refusing to write {self.resource_type.value} {resource_id} outside {self.storage_root}"
            )

    def resolve_conflict_location(
        self, resource_id: str, metadata: ResourceMetadata | None = None
    ) -> Path | None:
        """Where to save the remote copy when keeping both versions.

        Returns None when the handler has no preference; the caller then
        derives one from the local path (see conflict_location_for()).
        """
        return None

    @property
    def supports_merge(self) -> bool:
        return self.config.strategy is SyncStrategy.MERGE

    def merge(self, local: bytes, remote: bytes) -> bytes:
        """Combine local and remote content (merge strategy only)."""
        raise NotImplementedError(f"{self.resource_type.value} does not support merging")


def conflict_location_for(local_path: Path) -> Path:
    """Insert a ".conflict" marker before the file extension.

    "abc.jsonl" becomes "abc.conflict.jsonl"; "notes" becomes "notes.conflict".
    """
    return local_path.with_name(f"{local_path.stem}{CONFLICT_MARKER}{local_path.suffix}")
