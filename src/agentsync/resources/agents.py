"""Handler for custom agent definitions (<claude_dir>/agents/*.md)."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

from agentsync.core.types import ResourceType
from agentsync.resources.base import ResourceHandler, ResourceMetadata


class AgentsHandler(ResourceHandler):
    """Full-replace handler for agent definitions."""

    resource_type = ResourceType.AGENTS

    def _discover(self) -> Iterator[tuple[str, Path, ResourceMetadata]]:
        agents_dir = self._paths.agents_dir
        if not agents_dir.is_dir():
            return
        for path in sorted(agents_dir.glob("*.md")):
            if path.is_file():
                yield path.stem, path, ResourceMetadata()

    @property
    def storage_root(self) -> Path:
        return self._paths.agents_dir

    def resolve_storage_location(
        self, resource_id: str, metadata: ResourceMetadata | None = None
    ) -> Path:
        return self._paths.agents_dir / f"{resource_id}.md"
