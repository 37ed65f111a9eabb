"""Push orchestration: local changes -> encrypted remote copies.

Flow per resource type:
1. Candidates: every local item (push all) or only changed ones
2. One candidate: read, hash, encrypt, push_one, record
3. Several: encrypt concurrently in batches, one push_many for the whole
   set, then record only what the backend confirmed
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING

from agentsync.backends.base import PushRequest
from agentsync.core.crypto import hash_content
from agentsync.core.errors import AgentSyncError
from agentsync.state import HashUpdate
from agentsync.sync.types import PushSummary

if TYPE_CHECKING:
    from agentsync.backends.base import Backend, ProgressCallback
    from agentsync.core.crypto import ResourceCipher
    from agentsync.core.types import ResourceType
    from agentsync.resources.base import ResourceHandler, ResourceItem
    from agentsync.state import SyncStateStore

logger = logging.getLogger(__name__)

# Items read and encrypted in parallel
ENCRYPT_BATCH_SIZE = 20


class PushOrchestrator:
    """Pushes the resources of one type to a backend."""

    def __init__(
        self,
        handler: ResourceHandler,
        backend: Backend,
        cipher: ResourceCipher,
        state: SyncStateStore,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            handler: Local side of the resource type.
            backend: Remote storage.
            cipher: Cipher bound to the data key.
            state: Sync state store updated after confirmed transfers.
            on_progress: Optional (done, total) callback for bulk uploads.
        """
        self._handler = handler
        self._backend = backend
        self._cipher = cipher
        self._state = state
        self._on_progress = on_progress

    @property
    def resource_type(self) -> ResourceType:
        return self._handler.resource_type

    def plan(self, push_all: bool = False) -> list[ResourceItem]:
        """Return the candidates a push would transfer."""
        return self._handler.enumerate_local(modified_since_last_sync=not push_all)

    def run(self, push_all: bool = False) -> PushSummary:
        """Push changed (or all) local resources.

        Item failures are counted in the summary and never raised.
        """
        candidates = self.plan(push_all)
        if len(candidates) == 1:
            return self.push_item(candidates[0])

        summary = PushSummary(type=self.resource_type, candidates=len(candidates))
        if not candidates:
            return summary

        requests, hashes = self._encrypt_all(candidates, summary)
        if not requests:
            return summary

        try:
            result = self._backend.push_many(self.resource_type, requests, self._on_progress)
        except AgentSyncError as e:
            logger.error(f"Bulk push of {len(requests)} {self.resource_type.value} failed: {e}")
            for request in requests:
                summary.fail(request.id, e)
            return summary
        for error in result.errors:
            summary.fail(error.id, error.message)
        self._state.update_batch(
            HashUpdate(self.resource_type, rid, hashes[rid]) for rid in result.pushed
        )
        summary.pushed = result.pushed_count
        logger.info(
            f"Pushed {summary.pushed}/{summary.candidates} {self.resource_type.value}"
        )
        return summary

    def push_item(self, item: ResourceItem) -> PushSummary:
        """Push a single resource and record it on success."""
        summary = PushSummary(type=self.resource_type, candidates=1)
        try:
            request, content_hash = self._prepare(item)
            self._backend.push_one(self.resource_type, item.id, request.ciphertext, item.metadata)
        except (AgentSyncError, OSError) as e:
            logger.error(f"Failed to push {self.resource_type.value} {item.id}: {e}")
            summary.fail(item.id, e)
            return summary

        self._state.update_one(self.resource_type, item.id, content_hash)
        summary.pushed = 1
        return summary

    def _prepare(self, item: ResourceItem) -> tuple[PushRequest, str]:
        content = self._handler.read_local(item)
        return (
            PushRequest(item.id, self._cipher.encrypt(content), item.metadata),
            hash_content(content),
        )

    def _encrypt_all(
        self, candidates: list[ResourceItem], summary: PushSummary
    ) -> tuple[list[PushRequest], dict[str, str]]:
        requests: list[PushRequest] = []
        hashes: dict[str, str] = {}
        for start in range(0, len(candidates), ENCRYPT_BATCH_SIZE):
            batch = candidates[start : start + ENCRYPT_BATCH_SIZE]
            with ThreadPoolExecutor(max_workers=len(batch)) as pool:
                futures = [(item, pool.submit(self._prepare, item)) for item in batch]
                for item, future in futures:
                    try:
                        request, content_hash = future.result()
                    except Exception as e:
                        logger.error(f"Failed to encrypt {self.resource_type.value} {item.id}: {e}")
                        summary.fail(item.id, e)
                        continue
                    requests.append(request)
                    hashes[item.id] = content_hash
        return requests, hashes
