"""Resource handlers and the registry that builds them.

Handlers:
- SessionsHandler: conversation transcripts (full replace)
- AgentsHandler: custom agent definitions (full replace)
- SettingsHandler: editor settings (merged)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from agentsync.core.types import ResourceType
from agentsync.resources.agents import AgentsHandler
from agentsync.resources.base import (
    ResourceHandler,
    ResourceItem,
    ResourceMetadata,
    conflict_location_for,
)
from agentsync.resources.sessions import SessionsHandler
from agentsync.resources.settings import SettingsHandler, deep_merge

if TYPE_CHECKING:
    from agentsync.core.config import SyncPaths
    from agentsync.state import SyncStateStore

_HANDLERS: dict[ResourceType, type[ResourceHandler]] = {
    ResourceType.SESSIONS: SessionsHandler,
    ResourceType.AGENTS: AgentsHandler,
    ResourceType.SETTINGS: SettingsHandler,
}


def get_resource_handler(
    resource_type: ResourceType,
    paths: SyncPaths,
    state: SyncStateStore,
) -> ResourceHandler:
    """Build the handler for a resource type.

    Raises:
        ValueError: If the resource type has no handler.
    """
    handler_cls = _HANDLERS.get(resource_type)
    if handler_cls is None:
        raise ValueError(f"Unknown resource type: {resource_type}")
    return handler_cls(paths, state)


__all__ = [
    "AgentsHandler",
    "ResourceHandler",
    "ResourceItem",
    "ResourceMetadata",
    "SessionsHandler",
    "SettingsHandler",
    "conflict_location_for",
    "deep_merge",
    "get_resource_handler",
]
