"""Configuration classes for agentsync.

This module defines:
- SyncPaths: Filesystem roots, built once at startup and passed down
- AppConfig: The persisted config.json (backend choice and settings)
- load_config / save_config: Read and write AppConfig
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from agentsync.core.errors import NotInitializedError

logger = logging.getLogger(__name__)

HOME_ENV_VAR = "AGENTSYNC_HOME"
CLAUDE_DIR_ENV_VAR = "AGENTSYNC_CLAUDE_DIR"

BACKEND_GIT = "git"
BACKEND_S3 = "s3"
BACKEND_TYPES = (BACKEND_GIT, BACKEND_S3)

# S3-compatible endpoints for providers that are not AWS
GCS_ENDPOINT = "https://storage.googleapis.com"
R2_ENDPOINT_TEMPLATE = "https://{account_id}.r2.cloudflarestorage.com"


@dataclass(frozen=True)
class SyncPaths:
    """Filesystem locations used by agentsync.

    Attributes:
        claude_dir: Root of the editor's local data (~/.claude).
        config_dir: agentsync's own config and state directory (~/.agentsync).
    """

    claude_dir: Path
    config_dir: Path

    @classmethod
    def default(cls) -> SyncPaths:
        """Build paths from the environment, falling back to the home directory."""
        home = Path.home()
        claude_dir = os.environ.get(CLAUDE_DIR_ENV_VAR) or home / ".claude"
        config_dir = os.environ.get(HOME_ENV_VAR) or home / ".agentsync"
        return cls(
            claude_dir=Path(claude_dir).expanduser(),
            config_dir=Path(config_dir).expanduser(),
        )

    @property
    def projects_dir(self) -> Path:
        return self.claude_dir / "projects"

    @property
    def agents_dir(self) -> Path:
        return self.claude_dir / "agents"

    @property
    def settings_file(self) -> Path:
        return self.claude_dir / "settings.json"

    @property
    def config_file(self) -> Path:
        return self.config_dir / "config.json"

    @property
    def state_file(self) -> Path:
        return self.config_dir / "sync-state.json"

    @property
    def keyfile(self) -> Path:
        return self.config_dir / "keyfile.json"

    @property
    def repo_dir(self) -> Path:
        """Local clone used by the git backend."""
        return self.config_dir / "repo"


@dataclass
class AppConfig:
    """Persisted agentsync configuration.

    Attributes:
        backend: Backend type ("git" or "s3").
        backend_config: Backend-specific settings (url/branch for git,
            bucket/region/endpoint_url/... for s3).
        initialized: Whether `agentsync init` completed.
        created_at: ISO timestamp of initialization.
    """

    backend: str
    backend_config: dict[str, str] = field(default_factory=dict)
    initialized: bool = False
    created_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())

    def __post_init__(self) -> None:
        if self.backend not in BACKEND_TYPES:
            raise ValueError(f"Unknown backend: {self.backend}")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AppConfig:
        """Create from the config.json dictionary."""
        return cls(
            backend=data["backend"],
            backend_config={
                k: str(v) for k, v in (data.get("backend_config") or {}).items()
            },
            initialized=bool(data.get("initialized", False)),
            created_at=data.get("created_at") or datetime.now(UTC).isoformat(),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "backend": self.backend,
            "backend_config": dict(self.backend_config),
            "initialized": self.initialized,
            "created_at": self.created_at,
        }


def load_config(paths: SyncPaths) -> AppConfig | None:
    """Load configuration from config.json.

    Returns:
        AppConfig, or None if the file is missing or unreadable.
    """
    config_file = paths.config_file
    if not config_file.exists():
        return None
    try:
        return AppConfig.from_dict(json.loads(config_file.read_text(encoding="utf-8")))
    except (OSError, ValueError, KeyError, TypeError) as e:
        logger.warning(f"Ignoring unreadable config file {config_file}: {e}")
        return None


def save_config(paths: SyncPaths, config: AppConfig) -> None:
    """Save configuration to config.json."""
    config_file = paths.config_file
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config.to_dict(), indent=2), encoding="utf-8")


def require_initialized(paths: SyncPaths) -> AppConfig:
    """Load configuration that `agentsync init` has completed.

    Raises:
        NotInitializedError: If there is no usable, initialized config.
    """
    config = load_config(paths)
    if config is None or not config.initialized:
        raise NotInitializedError("agentsync not initialized. Run 'agentsync init' first.")
    return config
