"""Git repository backend.

Encrypted resources are files in a local clone (~/.agentsync/repo) that
is committed and pushed to a private remote. Pushing many resources
produces exactly one commit and one push.
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from agentsync.backends.base import (
    ENC_SUFFIX,
    WRITE_BATCH_SIZE,
    Backend,
    ProgressCallback,
    PushManyResult,
    PushRequest,
    RemoteResourceDescriptor,
    batched,
    id_from_key,
    object_key,
)
from agentsync.core.crypto import assert_encrypted
from agentsync.core.errors import NotFoundError, TransportError
from agentsync.core.types import ALL_RESOURCE_TYPES, RESOURCE_CONFIGS, ItemError, ResourceType
from agentsync.resources.base import ResourceMetadata

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "main"
COMMIT_NAME = "agentsync"
COMMIT_EMAIL = "agentsync@localhost"


class GitBackend(Backend):
    """Backend storing resources in a git repository."""

    def __init__(self, url: str, repo_dir: Path, branch: str = DEFAULT_BRANCH) -> None:
        """Initialize the git backend.

        Args:
            url: Remote repository URL (should be private).
            repo_dir: Local clone directory.
            branch: Branch to commit to.
        """
        self._url = url
        self._repo_dir = Path(repo_dir)
        self._branch = branch

    @property
    def location(self) -> str:
        return f"Git: {self._url} ({self._branch})"

    @property
    def repo_dir(self) -> Path:
        return self._repo_dir

    def _git(self, *args: str, check: bool = True) -> subprocess.CompletedProcess[str]:
        """Run a git command inside the clone.

        Raises:
            TransportError: If git is missing, or the command fails and check is set.
        """
        cmd = ["git", *args]
        try:
            result = subprocess.run(
                cmd, capture_output=True, text=True, check=False, cwd=str(self._repo_dir),
            )
        except OSError as e:
            raise TransportError(f"Cannot run git: {e}") from e
        if check and result.returncode != 0:
            raise TransportError(
                f"git {args[0]} failed: {(result.stderr or result.stdout).strip()}"
            )
        return result

    def init(self) -> None:
        """Clone the remote, or set up an empty repository pointing at it."""
        if (self._repo_dir / ".git").exists():
            remote = self._git("remote", "get-url", "origin", check=False)
            if remote.returncode != 0:
                self._git("remote", "add", "origin", self._url)
            elif remote.stdout.strip() != self._url:
                self._git("remote", "set-url", "origin", self._url)
            self._sync_from_remote()
        else:
            self._repo_dir.parent.mkdir(parents=True, exist_ok=True)
            try:
                result = subprocess.run(
                    ["git", "clone", self._url, str(self._repo_dir)],
                    capture_output=True, text=True, check=False,
                )
            except OSError as e:
                raise TransportError(f"Cannot run git: {e}") from e
            if result.returncode != 0:
                logger.info(f"Clone of {self._url} failed, initializing empty repository")
                self._repo_dir.mkdir(parents=True, exist_ok=True)
                self._git("init")
                self._git("remote", "add", "origin", self._url)

        self._checkout_branch()
        self._ensure_identity()
        for resource_type in ALL_RESOURCE_TYPES:
            (self._repo_dir / RESOURCE_CONFIGS[resource_type].storage_prefix).mkdir(
                parents=True, exist_ok=True
            )

    def _checkout_branch(self) -> None:
        has_commits = self._git("rev-parse", "--verify", "HEAD", check=False).returncode == 0
        if not has_commits:
            # Unborn HEAD: just name the branch the first commit will create
            self._git("symbolic-ref", "HEAD", f"refs/heads/{self._branch}")
            return
        current = self._git("rev-parse", "--abbrev-ref", "HEAD").stdout.strip()
        if current == self._branch:
            return
        if self._git("checkout", self._branch, check=False).returncode != 0:
            self._git("checkout", "-b", self._branch)

    def _ensure_identity(self) -> None:
        if self._git("config", "user.email", check=False).returncode != 0:
            self._git("config", "user.email", COMMIT_EMAIL)
        if self._git("config", "user.name", check=False).returncode != 0:
            self._git("config", "user.name", COMMIT_NAME)

    def _sync_from_remote(self) -> None:
        # Fails on an empty remote or when offline; local files stay usable
        result = self._git("pull", "--rebase", "origin", self._branch, check=False)
        if result.returncode != 0:
            logger.debug(f"git pull skipped: {result.stderr.strip()}")

    def _commit_and_push(self, message: str, *pathspecs: str) -> None:
        self._git("add", "-A", "--", *pathspecs)
        self._git("commit", "--allow-empty", "-m", message)
        try:
            self._git("push", "origin", self._branch)
        except TransportError as e:
            logger.warning(f"Push failed, retrying with upstream setup: {e}")
            self._git("push", "--set-upstream", "origin", self._branch)

    def _path_for(self, resource_type: ResourceType, resource_id: str) -> Path:
        return self._repo_dir / object_key(resource_type, resource_id)

    def _write(self, resource_type: ResourceType, request: PushRequest) -> Path:
        assert_encrypted(request.ciphertext, f"{resource_type.value} {request.id}")
        path = self._path_for(resource_type, request.id)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(request.ciphertext)
        return path

    def push_one(
        self,
        resource_type: ResourceType,
        resource_id: str,
        ciphertext: bytes,
        metadata: ResourceMetadata | None = None,
    ) -> None:
        self._sync_from_remote()
        path = self._write(resource_type, PushRequest(resource_id, ciphertext))
        self._commit_and_push(
            f"sync {resource_type.value}: {resource_id}",
            str(path.relative_to(self._repo_dir)),
        )
        logger.info(f"Pushed {resource_type.value} {resource_id} to git")

    def push_many(
        self,
        resource_type: ResourceType,
        items: Sequence[PushRequest],
        on_progress: ProgressCallback | None = None,
    ) -> PushManyResult:
        result = PushManyResult()
        if not items:
            return result

        self._sync_from_remote()
        written: list[str] = []
        done = 0
        for batch in batched(items, WRITE_BATCH_SIZE):
            with ThreadPoolExecutor(max_workers=len(batch)) as pool:
                futures = [(req, pool.submit(self._write, resource_type, req)) for req in batch]
                for request, future in futures:
                    try:
                        future.result()
                    except Exception as e:
                        logger.error(f"Failed to write {resource_type.value} {request.id}: {e}")
                        result.errors.append(ItemError(request.id, str(e)))
                    else:
                        written.append(request.id)
            done += len(batch)
            if on_progress:
                on_progress(done, len(items))

        if not written:
            return result

        prefix = RESOURCE_CONFIGS[resource_type].storage_prefix
        try:
            self._commit_and_push(f"sync: {len(written)} {resource_type.value}", prefix)
        except TransportError as e:
            logger.error(f"Commit/push of {len(written)} {resource_type.value} failed: {e}")
            result.errors.extend(ItemError(rid, str(e)) for rid in written)
            return result

        result.pushed.extend(written)
        logger.info(f"Pushed {len(written)} {resource_type.value} to git in one commit")
        return result

    def pull_one(self, resource_type: ResourceType, resource_id: str) -> bytes:
        self._sync_from_remote()
        path = self._path_for(resource_type, resource_id)
        try:
            return path.read_bytes()
        except FileNotFoundError as e:
            raise NotFoundError(f"{resource_type.value} {resource_id} not found in repository") from e
        except OSError as e:
            raise TransportError(f"Cannot read {path}: {e}") from e

    def list_all(self, resource_type: ResourceType) -> list[RemoteResourceDescriptor]:
        self._sync_from_remote()
        type_dir = self._repo_dir / RESOURCE_CONFIGS[resource_type].storage_prefix
        if not type_dir.is_dir():
            return []
        descriptors = []
        for path in sorted(type_dir.rglob(f"*{ENC_SUFFIX}")):
            resource_id = id_from_key(path.relative_to(type_dir).as_posix())
            if resource_id is not None and path.is_file():
                descriptors.append(RemoteResourceDescriptor(resource_id, resource_type))
        return descriptors

    def delete_one(self, resource_type: ResourceType, resource_id: str) -> bool:
        path = self._path_for(resource_type, resource_id)
        if not path.exists():
            return False
        path.unlink()
        self._commit_and_push(
            f"delete {resource_type.value}: {resource_id}",
            RESOURCE_CONFIGS[resource_type].storage_prefix,
        )
        return True
