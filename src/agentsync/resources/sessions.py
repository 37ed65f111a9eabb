"""Handler for conversation transcripts.

Transcripts live under <claude_dir>/projects/<project>/<session-id>.jsonl.
The session id is the file stem and the project directory is carried as
metadata so a pulled transcript lands back in the same project.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

from agentsync.core.types import ResourceType
from agentsync.resources.base import ResourceHandler, ResourceMetadata

UNKNOWN_PROJECT = "unknown"
SESSION_SUFFIX = ".jsonl"


class SessionsHandler(ResourceHandler):
    """Full-replace handler for session transcripts."""

    resource_type = ResourceType.SESSIONS

    def _discover(self) -> Iterator[tuple[str, Path, ResourceMetadata]]:
        projects_dir = self._paths.projects_dir
        if not projects_dir.is_dir():
            return
        for path in sorted(projects_dir.rglob(f"*{SESSION_SUFFIX}")):
            if not path.is_file():
                continue
            project = path.parent.relative_to(projects_dir).as_posix()
            yield (
                path.stem,
                path,
                ResourceMetadata(project=None if project == "." else project),
            )

    @property
    def storage_root(self) -> Path:
        return self._paths.projects_dir

    def resolve_storage_location(
        self, resource_id: str, metadata: ResourceMetadata | None = None
    ) -> Path:
        project = (metadata.project if metadata else None) or UNKNOWN_PROJECT
        return self._paths.projects_dir / project / f"{resource_id}{SESSION_SUFFIX}"
