"""Shared types for agentsync.

This module defines the resource types that can be synchronized and the
static configuration attached to each of them.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ResourceType(str, Enum):
    """Kind of local artifact that can be synchronized."""

    SESSIONS = "sessions"
    AGENTS = "agents"
    SETTINGS = "settings"


class SyncStrategy(str, Enum):
    """How a pulled payload is applied locally.

    FULL replaces the local copy, MERGE combines it with the local copy.
    """

    FULL = "full"
    MERGE = "merge"


@dataclass(frozen=True)
class ResourceTypeConfig:
    """Static configuration for one resource type.

    Attributes:
        type: The resource type.
        display_name: Human-readable plural name.
        description: One-line description for `agentsync types`.
        strategy: Whether pulls replace or merge local content.
        storage_prefix: Prefix of remote keys (e.g. "sessions/").
    """

    type: ResourceType
    display_name: str
    description: str
    strategy: SyncStrategy
    storage_prefix: str


RESOURCE_CONFIGS: dict[ResourceType, ResourceTypeConfig] = {
    ResourceType.SESSIONS: ResourceTypeConfig(
        type=ResourceType.SESSIONS,
        display_name="Sessions",
        description="Conversation transcripts",
        strategy=SyncStrategy.FULL,
        storage_prefix="sessions/",
    ),
    ResourceType.AGENTS: ResourceTypeConfig(
        type=ResourceType.AGENTS,
        display_name="Agents",
        description="Custom agent definitions",
        strategy=SyncStrategy.FULL,
        storage_prefix="agents/",
    ),
    ResourceType.SETTINGS: ResourceTypeConfig(
        type=ResourceType.SETTINGS,
        display_name="Settings",
        description="Editor settings including enabled plugins (merged)",
        strategy=SyncStrategy.MERGE,
        storage_prefix="settings/",
    ),
}

ALL_RESOURCE_TYPES: list[ResourceType] = list(ResourceType)


def parse_resource_type(value: str) -> ResourceType:
    """Parse and validate a resource type name.

    Args:
        value: Name such as "sessions".

    Returns:
        The matching ResourceType.

    Raises:
        ValueError: If the name is not a known resource type.
    """
    try:
        return ResourceType(value)
    except ValueError:
        valid = ", ".join(t.value for t in ALL_RESOURCE_TYPES)
        raise ValueError(
            f"Invalid resource type: {value}. Valid types: {valid}"
        ) from None


@dataclass(frozen=True)
class ItemError:
    """Failure of one item within a batch operation.

    Attributes:
        id: Resource id.
        message: Error text shown in verbose summaries.
    """

    id: str
    message: str
