"""Conflict detection between local and remote copies.

Conflicts are content-based: a resource present on both sides is in
conflict only when the hash of the decrypted remote payload differs from
the hash of the local file. Modification times are never compared.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING

from agentsync.core.crypto import hash_content
from agentsync.core.errors import AgentSyncError
from agentsync.resources.base import ResourceItem, conflict_location_for
from agentsync.sync.types import Conflict

if TYPE_CHECKING:
    from agentsync.backends.base import Backend, RemoteResourceDescriptor
    from agentsync.core.crypto import ResourceCipher
    from agentsync.resources.base import ResourceHandler

logger = logging.getLogger(__name__)


class LocalIndex:
    """Lookup of local items by remote id.

    Matches by exact id first. Ids that differ only by a directory prefix
    ("proj/abc" vs "abc") also match through their basename; this tolerates
    id formats that drifted between machines and is a heuristic, not an
    identity guarantee.
    """

    def __init__(self, items: Iterable[ResourceItem]) -> None:
        self._by_id: dict[str, ResourceItem] = {}
        self._by_basename: dict[str, ResourceItem] = {}
        for item in items:
            self._by_id[item.id] = item
            if "/" in item.id:
                self._by_basename.setdefault(_basename(item.id), item)

    def __len__(self) -> int:
        return len(self._by_id)

    def find(self, resource_id: str) -> ResourceItem | None:
        item = self._by_id.get(resource_id)
        if item is not None:
            return item
        if "/" in resource_id:
            item = self._by_id.get(_basename(resource_id))
            if item is not None:
                return item
        return self._by_basename.get(resource_id)


def _basename(resource_id: str) -> str:
    return resource_id.rsplit("/", 1)[-1]


def select_remote(
    remote: list[RemoteResourceDescriptor], resource_id: str
) -> list[RemoteResourceDescriptor]:
    """Remote descriptors naming resource_id.

    An exact id match wins; otherwise ids that agree by basename match,
    with the same leniency as LocalIndex.
    """
    exact = [r for r in remote if r.id == resource_id]
    if exact:
        return exact
    wanted = _basename(resource_id)
    return [r for r in remote if _basename(r.id) == wanted]


def detect_conflict(
    handler: ResourceHandler,
    backend: Backend,
    cipher: ResourceCipher,
    remote: RemoteResourceDescriptor,
    local: ResourceItem,
) -> Conflict | None:
    """Compare the remote and local copies of a resource.

    Returns:
        A Conflict if the contents differ, None if they are equal or the
        comparison could not be completed (the pull then leaves the
        resource alone rather than failing).
    """
    try:
        remote_content = cipher.decrypt(backend.pull_one(handler.resource_type, remote.id))
        local_content = handler.read_local(local)
    except (AgentSyncError, OSError) as e:
        logger.warning(
            f"Could not compare {handler.resource_type.value} {remote.id}, "
            f"assuming no conflict: {e}"
        )
        return None

    remote_hash = hash_content(remote_content)
    local_hash = hash_content(local_content)
    if remote_hash == local_hash:
        return None
    return Conflict(
        type=handler.resource_type,
        local=local,
        remote=remote,
        local_hash=local_hash,
        remote_hash=remote_hash,
        remote_content=remote_content,
    )


def resolve_keep_both_location(handler: ResourceHandler, local: ResourceItem) -> Path:
    """Where the remote copy goes when both versions are kept."""
    location = handler.resolve_conflict_location(local.id, local.metadata)
    if location is not None:
        return location
    canonical = local.storage_location or handler.resolve_storage_location(
        local.id, local.metadata
    )
    return conflict_location_for(canonical)
