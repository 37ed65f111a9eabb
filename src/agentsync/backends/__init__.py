"""Remote storage backends for encrypted resources.

Backends:
- GitBackend: files in a private git repository
- S3Backend: objects in an S3-compatible bucket
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from agentsync.backends.base import (
    Backend,
    PushManyResult,
    PushRequest,
    RemoteResourceDescriptor,
    escape_id,
    object_key,
    unescape_id,
)
from agentsync.backends.git import DEFAULT_BRANCH, GitBackend
from agentsync.backends.s3 import DEFAULT_REGION, S3Backend
from agentsync.core.config import BACKEND_GIT, BACKEND_S3

if TYPE_CHECKING:
    from agentsync.core.config import AppConfig, SyncPaths


def create_backend(config: AppConfig, paths: SyncPaths) -> Backend:
    """Factory function to create a backend from configuration.

    Args:
        config: Loaded configuration. backend_config keys:
            - git: url, branch
            - s3: bucket, region, endpoint_url, access_key, secret_key, prefix
        paths: Filesystem locations (the git clone lives in paths.repo_dir).

    Returns:
        Configured Backend instance.

    Raises:
        ValueError: If the backend type is unknown or misconfigured.
    """
    settings = config.backend_config

    if config.backend == BACKEND_GIT:
        url = settings.get("url")
        if not url:
            raise ValueError("Git backend requires 'url' configuration")
        return GitBackend(url, paths.repo_dir, branch=settings.get("branch") or DEFAULT_BRANCH)

    if config.backend == BACKEND_S3:
        bucket = settings.get("bucket")
        if not bucket:
            raise ValueError("S3 backend requires 'bucket' configuration")
        return S3Backend(
            bucket=bucket,
            endpoint_url=settings.get("endpoint_url") or None,
            access_key=settings.get("access_key") or None,
            secret_key=settings.get("secret_key") or None,
            region=settings.get("region") or DEFAULT_REGION,
            prefix=settings.get("prefix") or "",
        )

    raise ValueError(f"Unknown backend type: {config.backend}")


__all__ = [
    "Backend",
    "GitBackend",
    "PushManyResult",
    "PushRequest",
    "RemoteResourceDescriptor",
    "S3Backend",
    "create_backend",
    "escape_id",
    "object_key",
    "unescape_id",
]
