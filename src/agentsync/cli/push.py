"""Push command for agentsync CLI.

Commands:
- push: Encrypt and upload local resources
"""

from __future__ import annotations

from pathlib import Path

import click

from agentsync.cli.config import (
    echo_errors,
    fail,
    get_paths,
    require_backend,
    require_cipher,
    require_config,
    resolve_types,
)
from agentsync.core.config import SyncPaths
from agentsync.core.types import RESOURCE_CONFIGS, ResourceType
from agentsync.resources import ResourceItem, ResourceMetadata, get_resource_handler
from agentsync.state import SyncStateStore
from agentsync.sync import PushOrchestrator, PushSummary


def _session_from_file(paths: SyncPaths, session_id: str | None, file_path: Path) -> ResourceItem:
    """Build the item for an explicit transcript path (session-end hook)."""
    file_path = file_path.expanduser()
    try:
        project: str | None = file_path.parent.resolve().relative_to(
            paths.projects_dir.resolve()
        ).as_posix()
    except ValueError:
        project = file_path.parent.name or None
    return ResourceItem(
        id=session_id or file_path.stem,
        storage_location=file_path,
        metadata=ResourceMetadata(project=None if project == "." else project),
    )


def _print_plan(resource_type: ResourceType, items: list[ResourceItem]) -> None:
    click.echo(click.style(f"{RESOURCE_CONFIGS[resource_type].display_name}:", fg="cyan"))
    if not items:
        click.echo("  No resources to push\n")
        return
    click.echo(f"  {len(items)} resource(s) would be pushed:\n")
    for item in items:
        click.echo(f"  {click.style('+', fg='green')} {item.id}")
        if item.storage_location:
            click.echo(f"      {item.storage_location}")
        if item.metadata.describe():
            click.echo(f"      metadata: {item.metadata.describe()}")
    click.echo()


def _print_summary(summary: PushSummary, verbose: bool) -> None:
    name = RESOURCE_CONFIGS[summary.type].display_name.lower()
    if summary.candidates == 0:
        click.echo(f"No {name} to push")
        return
    if summary.failed:
        click.echo(click.style(f"Pushed {summary.pushed} {name}, {summary.failed} failed", fg="yellow"))
    else:
        click.echo(click.style(f"Pushed {summary.pushed} {name}", fg="green"))
    if verbose:
        echo_errors(summary.errors)


@click.command()
@click.argument("resource_type", metavar="[TYPE]", required=False)
@click.option("--session", "session_id", help="Push a single session by id.")
@click.option(
    "--file",
    "file_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Transcript file of the session to push.",
)
@click.option("--all", "push_all", is_flag=True, help="Push every resource of every type.")
@click.option("--dry-run", is_flag=True, help="Show what would be pushed.")
@click.option("--verbose", "-v", is_flag=True, help="List failed resources.")
def push(
    resource_type: str | None,
    session_id: str | None,
    file_path: Path | None,
    push_all: bool,
    dry_run: bool,
    verbose: bool,
) -> None:
    """Encrypt and push local resources.

    TYPE is one of sessions, agents, settings (default: sessions).
    Only resources changed since the last sync are pushed unless --all
    is given, which pushes everything of every type.
    """
    paths = get_paths()
    types = resolve_types(resource_type, push_all)
    state = SyncStateStore(paths.state_file)

    single = session_id is not None or file_path is not None
    if single and types != [ResourceType.SESSIONS] and not push_all:
        fail("--session and --file options are only valid for sessions type")

    if dry_run:
        click.echo(click.style("\nDry Run - Preview of resources to push:\n", bold=True))
    else:
        config = require_config(paths)
        backend = require_backend(config, paths)
        cipher = require_cipher(paths)

    if single:
        handler = get_resource_handler(ResourceType.SESSIONS, paths, state)
        if file_path is not None:
            item = _session_from_file(paths, session_id, file_path)
        else:
            found = handler.find_local(session_id)  # type: ignore[arg-type]
            if found is None:
                fail(f"Session {session_id} not found")
            item = found
        if dry_run:
            _print_plan(ResourceType.SESSIONS, [item])
            return
        orchestrator = PushOrchestrator(handler, backend, cipher, state)
        _print_summary(orchestrator.push_item(item), verbose)
        return

    def on_progress(done: int, total: int) -> None:
        if verbose:
            click.echo(f"  Writing... {done}/{total}")

    for rtype in types:
        handler = get_resource_handler(rtype, paths, state)
        if dry_run:
            _print_plan(rtype, handler.enumerate_local(modified_since_last_sync=not push_all))
            continue
        orchestrator = PushOrchestrator(handler, backend, cipher, state, on_progress)
        _print_summary(orchestrator.run(push_all), verbose)

    if dry_run:
        click.echo("Run without --dry-run to actually push these resources.")
