"""Informational commands for agentsync CLI.

Commands:
- status: Show configuration and pending changes
- types: List resource types
"""

from __future__ import annotations

from datetime import datetime

import click

from agentsync.cli.config import get_paths
from agentsync.core.config import BACKEND_GIT, load_config
from agentsync.core.types import ALL_RESOURCE_TYPES, RESOURCE_CONFIGS
from agentsync.keystore import KeyStoreError, open_keystore
from agentsync.resources import get_resource_handler
from agentsync.state import SyncStateStore


@click.command()
def status() -> None:
    """Show agentsync status."""
    paths = get_paths()
    click.echo(click.style("\nagentsync status\n", bold=True))

    config = load_config(paths)
    if config is None or not config.initialized:
        click.echo(click.style("Status: Not initialized", fg="red"))
        click.echo("Run 'agentsync init' to get started\n")
        return

    click.echo(click.style("Status: Initialized", fg="green"))

    click.echo(click.style("\nBackend:", bold=True))
    click.echo(f"  Type: {config.backend}")
    if config.backend == BACKEND_GIT:
        click.echo(f"  URL: {config.backend_config.get('url', '')}")
    else:
        click.echo(f"  Bucket: {config.backend_config.get('bucket', '')}")
        if config.backend_config.get("endpoint_url"):
            click.echo(f"  Endpoint: {config.backend_config['endpoint_url']}")

    click.echo(click.style("\nEncryption:", bold=True))
    try:
        keystore = open_keystore(paths.config_dir)
    except KeyStoreError as e:
        click.echo(click.style(f"  No usable key: {e}", fg="red"))
    else:
        click.echo(f"  Key ID: {keystore.key_id}")
        click.echo(f"  {'Unlocked' if keystore.is_unlocked else 'Locked'}")

    click.echo(click.style("\nResources:", bold=True))
    state = SyncStateStore(paths.state_file)
    for rtype in ALL_RESOURCE_TYPES:
        handler = get_resource_handler(rtype, paths, state)
        click.echo(f"  {RESOURCE_CONFIGS[rtype].display_name}:")
        try:
            local = handler.enumerate_local()
            pending = handler.enumerate_local(modified_since_last_sync=True)
        except OSError:
            click.echo("    Unable to read")
            continue
        click.echo(f"    Local: {len(local)}")
        click.echo(f"    Pending sync: {len(pending)}")

    try:
        created = datetime.fromisoformat(config.created_at).date().isoformat()
    except ValueError:
        created = config.created_at
    click.echo(f"\nInitialized: {created}\n")


@click.command("types")
def list_types() -> None:
    """List the resource types that can be synced."""
    click.echo(click.style("\nAvailable resource types\n", bold=True))
    for rtype in ALL_RESOURCE_TYPES:
        config = RESOURCE_CONFIGS[rtype]
        click.echo(click.style(rtype.value, fg="cyan"))
        click.echo(f"  {config.description}")
        click.echo(f"  Strategy: {config.strategy.value}\n")

    click.echo(click.style("Usage:", bold=True))
    click.echo("  agentsync push [TYPE]    Push resources of one type")
    click.echo("  agentsync pull [TYPE]    Pull resources of one type")
    click.echo("  agentsync push --all     Push all resource types")
    click.echo("  agentsync pull --all     Pull all resource types")
