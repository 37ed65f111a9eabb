"""Shared helpers for agentsync CLI commands.

Commands resolve paths, configuration and the data key through these
functions so setup errors are reported the same way everywhere.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Sequence
from typing import NoReturn

import click

from agentsync.backends import Backend, create_backend
from agentsync.core.config import AppConfig, SyncPaths, require_initialized
from agentsync.core.crypto import ResourceCipher
from agentsync.core.errors import NotInitializedError
from agentsync.core.types import ALL_RESOURCE_TYPES, ItemError, ResourceType, parse_resource_type
from agentsync.keystore import KeyStoreError, open_keystore

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def setup_logging(verbose: bool) -> None:
    """Send agentsync log records to stderr.

    Args:
        verbose: Show DEBUG records instead of warnings and errors only.
    """
    package_logger = logging.getLogger("agentsync")
    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    package_logger.propagate = False


def get_paths() -> SyncPaths:
    """Get filesystem locations (honours AGENTSYNC_HOME / AGENTSYNC_CLAUDE_DIR)."""
    return SyncPaths.default()


def fail(message: str) -> NoReturn:
    """Print an error and exit with status 1."""
    click.echo(click.style(f"Error: {message}", fg="red"), err=True)
    sys.exit(1)


def require_config(paths: SyncPaths) -> AppConfig:
    """Load the configuration, exiting if agentsync is not initialized."""
    try:
        return require_initialized(paths)
    except NotInitializedError as e:
        fail(str(e))


def require_backend(config: AppConfig, paths: SyncPaths) -> Backend:
    try:
        return create_backend(config, paths)
    except ValueError as e:
        fail(str(e))


def require_cipher(paths: SyncPaths) -> ResourceCipher:
    """Return a cipher for the data key, prompting for the password if needed.

    The key is served from the OS keyring when it was cached by a previous
    init/unlock, so hooks run without a prompt.
    """
    try:
        keystore = open_keystore(paths.config_dir)
        if not keystore.is_unlocked:
            password = click.prompt("Enter master password", hide_input=True, err=True)
            keystore.unlock(password)
        return keystore.cipher()
    except KeyStoreError as e:
        fail(str(e))


def resolve_types(type_name: str | None, all_types: bool) -> list[ResourceType]:
    """Resource types selected by a TYPE argument and/or --all.

    Without either, only sessions are selected.
    """
    if type_name:
        try:
            return [parse_resource_type(type_name)]
        except ValueError as e:
            fail(str(e))
    if all_types:
        return list(ALL_RESOURCE_TYPES)
    return [ResourceType.SESSIONS]


def echo_errors(errors: Sequence[ItemError]) -> None:
    """List per-item failures (verbose mode)."""
    if not errors:
        return
    click.echo(click.style("\nErrors:", fg="red"))
    for error in errors:
        click.echo(f"  ✗ {error.id}: {error.message}")
