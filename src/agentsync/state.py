"""Local sync state for change detection.

This module provides:
- SyncRecord: Hash of a resource at its last successful transfer
- SyncState: Versioned container of SyncRecords keyed by type and id
- SyncStateStore: JSON-file persistence with load-merge-save updates

Architecture:
    A record exists for (type, id) only once that resource was pushed or
    pulled successfully; its hash is the content as transferred. Change
    detection compares current content hashes against these records, so
    modification times are never trusted across machines.

Persisted layout (sync-state.json):
    {"version": 1, "resources": {"sessions": {"<id>": {"hash": ..., "syncedAt": ...}}}}
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from agentsync.core.errors import CorruptStateError
from agentsync.core.types import ResourceType

logger = logging.getLogger(__name__)

STATE_VERSION = 1


@dataclass(frozen=True)
class SyncRecord:
    """State of a resource at its last successful transfer.

    Attributes:
        content_hash: SHA-256 of the payload as transferred.
        synced_at: ISO timestamp of the transfer.
    """

    content_hash: str
    synced_at: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SyncRecord:
        content_hash = data["hash"]
        synced_at = data.get("syncedAt", "")
        if not isinstance(content_hash, str) or not isinstance(synced_at, str):
            raise TypeError("hash and syncedAt must be strings")
        return cls(content_hash=content_hash, synced_at=synced_at)

    def to_dict(self) -> dict[str, str]:
        return {"hash": self.content_hash, "syncedAt": self.synced_at}


@dataclass(frozen=True)
class HashUpdate:
    """A single (type, id, hash) entry for SyncStateStore.update_batch()."""

    type: ResourceType
    id: str
    content_hash: str


@dataclass
class SyncState:
    """Versioned mapping of resource type -> id -> SyncRecord."""

    version: int = STATE_VERSION
    resources: dict[str, dict[str, SyncRecord]] = field(default_factory=dict)

    def get(self, resource_type: ResourceType, resource_id: str) -> SyncRecord | None:
        return self.resources.get(resource_type.value, {}).get(resource_id)

    def set(self, resource_type: ResourceType, resource_id: str, record: SyncRecord) -> None:
        self.resources.setdefault(resource_type.value, {})[resource_id] = record

    @classmethod
    def from_dict(cls, data: Any) -> SyncState:
        """Parse the persisted document.

        Raises:
            CorruptStateError: If the document is not a valid state.
        """
        try:
            version = data["version"]
            raw_resources = data["resources"]
            if not isinstance(version, int) or not isinstance(raw_resources, dict):
                raise TypeError("version must be int and resources an object")
            resources = {
                type_name: {
                    resource_id: SyncRecord.from_dict(record)
                    for resource_id, record in records.items()
                }
                for type_name, records in raw_resources.items()
            }
        except (KeyError, TypeError, AttributeError) as e:
            raise CorruptStateError(f"Invalid sync state: {e}") from e
        return cls(version=version, resources=resources)

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "resources": {
                type_name: {rid: record.to_dict() for rid, record in records.items()}
                for type_name, records in self.resources.items()
            },
        }


class SyncStateStore:
    """Durable store for SyncState backed by a JSON file.

    Every update is a load-merge-save under a lock, so calls from
    several threads of one process never interleave. Multiple processes
    writing the same file are not supported.
    """

    def __init__(self, state_file: Path) -> None:
        """Initialize the store.

        Args:
            state_file: Path to sync-state.json (created on first save).
        """
        self._state_file = Path(state_file)
        self._lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._state_file

    def load(self) -> SyncState:
        """Load the state from disk.

        Never raises: a missing or corrupt file yields an empty state.
        """
        with self._lock:
            try:
                return self._read()
            except FileNotFoundError:
                return SyncState()
            except (OSError, ValueError, CorruptStateError) as e:
                logger.warning(
                    f"Sync state at {self._state_file} is unreadable, "
                    f"treating as empty: {e}"
                )
                return SyncState()

    def _read(self) -> SyncState:
        raw = self._state_file.read_text(encoding="utf-8")
        return SyncState.from_dict(json.loads(raw))

    def save(self, state: SyncState) -> None:
        """Atomically persist the full state.

        Writes to a temporary file in the same directory and renames it
        over the target, so readers never observe a partial document.
        """
        with self._lock:
            self._state_file.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=".sync-state-", suffix=".tmp", dir=self._state_file.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(state.to_dict(), f, indent=2)
                os.replace(tmp_name, self._state_file)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise

    def get_record(self, resource_type: ResourceType, resource_id: str) -> SyncRecord | None:
        """Get the full sync record for a resource."""
        return self.load().get(resource_type, resource_id)

    def get_hash(self, resource_type: ResourceType, resource_id: str) -> str | None:
        """Get the stored hash for a resource, or None if never synced."""
        record = self.get_record(resource_type, resource_id)
        return record.content_hash if record else None

    def update_one(self, resource_type: ResourceType, resource_id: str, content_hash: str) -> None:
        """Record a successful transfer of one resource."""
        self.update_batch([HashUpdate(resource_type, resource_id, content_hash)])

    def update_batch(self, updates: Iterable[HashUpdate]) -> None:
        """Record several successful transfers with a single save."""
        updates = list(updates)
        if not updates:
            return
        now = datetime.now(UTC).isoformat()
        with self._lock:
            state = self.load()
            for update in updates:
                state.set(update.type, update.id, SyncRecord(update.content_hash, now))
            self.save(state)
        logger.debug(f"Recorded {len(updates)} synced resource(s)")
