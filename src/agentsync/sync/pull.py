"""Pull orchestration and conflict resolution.

Flow per resource type:
1. List remote resources and index local ones
2. Remote ids with no local match are pulled
3. With a full pass, ids present on both sides are compared by content;
   differing ones become Conflicts resolved as keep-local, keep-remote
   or keep-both
4. Selected resources are decrypted, merged when the type merges, written
   and recorded in one state update
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING

from agentsync.core.crypto import hash_content
from agentsync.core.errors import AgentSyncError
from agentsync.core.types import ItemError
from agentsync.state import HashUpdate
from agentsync.sync.conflict import (
    LocalIndex,
    detect_conflict,
    resolve_keep_both_location,
    select_remote,
)
from agentsync.sync.types import (
    Conflict,
    ConflictResolution,
    ConflictResolver,
    PullPlan,
    PullSummary,
    PullTarget,
    keep_local,
)

if TYPE_CHECKING:
    from agentsync.backends.base import Backend, RemoteResourceDescriptor
    from agentsync.core.crypto import ResourceCipher
    from agentsync.core.types import ResourceType
    from agentsync.resources.base import ResourceHandler, ResourceItem
    from agentsync.state import SyncStateStore

logger = logging.getLogger(__name__)

# Remote copies fetched and decrypted in parallel during conflict detection
COMPARE_BATCH_SIZE = 20


class PullOrchestrator:
    """Pulls the resources of one type from a backend."""

    def __init__(
        self,
        handler: ResourceHandler,
        backend: Backend,
        cipher: ResourceCipher,
        state: SyncStateStore,
        resolver: ConflictResolver | None = None,
        force: bool = False,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            handler: Local side of the resource type.
            backend: Remote storage.
            cipher: Cipher bound to the data key.
            state: Sync state store updated after writes.
            resolver: Chooses an outcome per conflict (default: keep local).
            force: Resolve every conflict as keep-remote without asking.
        """
        self._handler = handler
        self._backend = backend
        self._cipher = cipher
        self._state = state
        self._resolver = resolver or keep_local
        self._force = force

    @property
    def resource_type(self) -> ResourceType:
        return self._handler.resource_type

    def plan(self, full: bool = False, only_id: str | None = None) -> PullPlan:
        """Compute what a pull would do without writing anything.

        Args:
            full: Compare resources present on both sides; otherwise they
                are treated as already synced.
            only_id: Restrict the plan to a single remote id.

        Returns:
            PullPlan with new resources, conflicts and in-sync ids.
        """
        remote = self._backend.list_all(self.resource_type)
        if only_id is not None:
            remote = select_remote(remote, only_id)
        plan = PullPlan(type=self.resource_type, remote_count=len(remote))
        if not remote:
            if only_id is not None:
                plan.errors.append(ItemError(only_id, "not found on remote"))
            return plan

        index = LocalIndex(self._handler.enumerate_local())
        matched: list[tuple[RemoteResourceDescriptor, ResourceItem]] = []
        for descriptor in remote:
            local = index.find(descriptor.id)
            if local is None:
                plan.to_pull.append(PullTarget(descriptor))
            elif full:
                matched.append((descriptor, local))
            else:
                plan.in_sync.append(descriptor.id)

        for descriptor, conflict in self._compare(matched):
            if conflict is None:
                plan.in_sync.append(descriptor.id)
            else:
                plan.conflicts.append(conflict)
        return plan

    def _compare(
        self, matched: list[tuple[RemoteResourceDescriptor, ResourceItem]]
    ) -> list[tuple[RemoteResourceDescriptor, Conflict | None]]:
        results: list[tuple[RemoteResourceDescriptor, Conflict | None]] = []
        for start in range(0, len(matched), COMPARE_BATCH_SIZE):
            batch = matched[start : start + COMPARE_BATCH_SIZE]
            with ThreadPoolExecutor(max_workers=len(batch)) as pool:
                futures = [
                    (
                        descriptor,
                        pool.submit(
                            detect_conflict,
                            self._handler, self._backend, self._cipher, descriptor, local,
                        ),
                    )
                    for descriptor, local in batch
                ]
                results.extend((descriptor, future.result()) for descriptor, future in futures)
        return results

    def run(self, full: bool = False) -> PullSummary:
        """Pull new (and, with full, conflicting) remote resources.

        Item failures are counted in the summary and never raised.
        """
        return self._execute(self.plan(full))

    def pull_item(self, resource_id: str) -> PullSummary:
        """Pull one named resource, comparing it with any local copy."""
        return self._execute(self.plan(full=True, only_id=resource_id))

    def _execute(self, plan: PullPlan) -> PullSummary:
        summary = PullSummary(type=self.resource_type, remote_count=plan.remote_count)
        for error in plan.errors:
            summary.fail(error.id, error.message)

        targets = list(plan.to_pull)
        for conflict in plan.conflicts:
            resolution = self._resolve(conflict)
            if resolution is ConflictResolution.KEEP_REMOTE:
                targets.append(PullTarget(conflict.remote, conflict.local, conflict.remote_content))
                summary.overwritten += 1
            elif resolution is ConflictResolution.KEEP_BOTH:
                self._keep_both(conflict, summary)
            else:
                summary.kept_local += 1

        updates: list[HashUpdate] = []
        for target in targets:
            try:
                updates.append(self._apply(target))
            except (AgentSyncError, OSError) as e:
                logger.error(f"Failed to pull {self.resource_type.value} {target.remote.id}: {e}")
                summary.fail(target.remote.id, e)
        self._state.update_batch(updates)
        summary.pulled = len(updates)
        if summary.pulled:
            logger.info(f"Pulled {summary.pulled} {self.resource_type.value}")
        return summary

    def _resolve(self, conflict: Conflict) -> ConflictResolution:
        if self._force:
            return ConflictResolution.KEEP_REMOTE
        return self._resolver(conflict)

    def _keep_both(self, conflict: Conflict, summary: PullSummary) -> None:
        try:
            location = resolve_keep_both_location(self._handler, conflict.local)
            location.parent.mkdir(parents=True, exist_ok=True)
            location.write_bytes(conflict.remote_content)
        except OSError as e:
            logger.error(f"Failed to save conflict copy of {conflict.id}: {e}")
            summary.fail(conflict.id, e)
            return
        summary.saved_as_conflict += 1
        summary.conflict_paths.append(location)

    def _apply(self, target: PullTarget) -> HashUpdate:
        """Decrypt, merge if needed, write, and return the state update."""
        remote = target.remote
        content = target.content
        if content is None:
            content = self._cipher.decrypt(self._backend.pull_one(self.resource_type, remote.id))

        local = target.local
        if local is not None and self._handler.supports_merge:
            content = self._handler.merge(self._handler.read_local(local), content)

        if local is not None:
            resource_id, metadata = local.id, local.metadata
        else:
            resource_id, metadata = remote.id, remote.metadata
        self._handler.write_local(resource_id, content, metadata)
        return HashUpdate(self.resource_type, resource_id, hash_content(content))
