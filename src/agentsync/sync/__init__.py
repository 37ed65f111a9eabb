"""Push and pull orchestration with content-based conflict detection."""

from agentsync.sync.conflict import LocalIndex, detect_conflict
from agentsync.sync.pull import PullOrchestrator
from agentsync.sync.push import PushOrchestrator
from agentsync.sync.types import (
    Conflict,
    ConflictResolution,
    ConflictResolver,
    PullPlan,
    PullSummary,
    PullTarget,
    PushSummary,
    keep_local,
)

__all__ = [
    "Conflict",
    "ConflictResolution",
    "ConflictResolver",
    "LocalIndex",
    "PullOrchestrator",
    "PullPlan",
    "PullSummary",
    "PullTarget",
    "PushOrchestrator",
    "PushSummary",
    "detect_conflict",
    "keep_local",
]
