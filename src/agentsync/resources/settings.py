"""Handler for editor settings.

Settings use a merge strategy: on pull, local and remote settings are
merged rather than replaced, so machine-specific values survive while
shared preferences (enabled plugins, permission lists) accumulate.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from agentsync.core.types import ResourceType
from agentsync.resources.base import ResourceHandler, ResourceMetadata

logger = logging.getLogger(__name__)

SETTINGS_ID = "settings"


class SettingsHandler(ResourceHandler):
    """Merge handler for the single settings.json resource."""

    resource_type = ResourceType.SETTINGS

    def _discover(self) -> Iterator[tuple[str, Path, ResourceMetadata]]:
        settings_file = self._paths.settings_file
        if settings_file.is_file():
            yield SETTINGS_ID, settings_file, ResourceMetadata()

    def resolve_storage_location(
        self, resource_id: str, metadata: ResourceMetadata | None = None
    ) -> Path:
        return self._paths.settings_file

    def merge(self, local: bytes, remote: bytes) -> bytes:
        """Merge local and remote settings.

        Strategy:
        - Lists: union of both, duplicates removed
        - Objects: merged recursively
        - Anything else: local wins

        Malformed JSON on either side is treated as an empty object.
        """
        merged = deep_merge(_parse_object(remote, "remote"), _parse_object(local, "local"))
        return json.dumps(merged, indent=2).encode("utf-8")


def _parse_object(content: bytes, side: str) -> dict[str, Any]:
    try:
        value = json.loads(content.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning(f"Ignoring malformed {side} settings: {e}")
        return {}
    if not isinstance(value, dict):
        logger.warning(f"Ignoring {side} settings: top level is not an object")
        return {}
    return value


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two objects, override taking precedence on scalar conflicts.

    Args:
        base: Lower-precedence object (remote settings).
        override: Higher-precedence object (local settings).

    Returns:
        New merged dictionary; inputs are not modified.
    """
    result = dict(base)
    for key, value in override.items():
        existing = base.get(key)
        if isinstance(value, list) and isinstance(existing, list):
            result[key] = _union(existing, value)
        elif isinstance(value, dict) and isinstance(existing, dict):
            result[key] = deep_merge(existing, value)
        else:
            result[key] = value
    return result


def _union(first: list[Any], second: list[Any]) -> list[Any]:
    seen: set[str] = set()
    items: list[Any] = []
    for item in [*first, *second]:
        marker = json.dumps(item, sort_keys=True)
        if marker not in seen:
            seen.add(marker)
            items.append(item)
    return items
