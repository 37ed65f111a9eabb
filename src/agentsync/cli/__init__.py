"""Command-line interface for agentsync.

This module provides the main CLI entry point and assembles all commands.

Commands:
- init: Configure a backend and create the encryption key
- reset: Reset agentsync configuration
- unlock: Unlock the keystore with password
- export-key: Export the encryption key
- import-key: Import an encryption key
- push: Push local resources
- pull: Pull remote resources
- status: Show configuration and pending changes
- types: List resource types
- install: Install editor hooks
"""

from __future__ import annotations

import click

from agentsync.cli.config import get_paths, setup_logging
from agentsync.cli.install import install
from agentsync.cli.keystore import export_key, import_key, init, reset, unlock
from agentsync.cli.pull import pull
from agentsync.cli.push import push
from agentsync.cli.status import list_types, status


@click.group()
@click.version_option(package_name="agentsync")
@click.option("--debug", is_flag=True, help="Show debug logging.")
def cli(debug: bool) -> None:
    """agentsync - End-to-end encrypted sync of editor sessions, agents and settings."""
    setup_logging(debug)


# Setup commands
cli.add_command(init)
cli.add_command(reset)
cli.add_command(unlock)
cli.add_command(export_key)
cli.add_command(import_key)

# Sync commands
cli.add_command(push)
cli.add_command(pull)

# Information commands
cli.add_command(status)
cli.add_command(list_types)
cli.add_command(install)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    "cli",
    "get_paths",
    "main",
]
