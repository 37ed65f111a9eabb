"""Pull command for agentsync CLI.

Commands:
- pull: Download and decrypt remote resources
"""

from __future__ import annotations

import sys

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
from agentsync.core.errors import TransportError
from agentsync.core.types import RESOURCE_CONFIGS, ResourceType
from agentsync.resources import get_resource_handler
from agentsync.state import SyncStateStore
from agentsync.sync import (
    Conflict,
    ConflictResolution,
    ConflictResolver,
    PullOrchestrator,
    PullPlan,
    PullSummary,
    keep_local,
)

_PROMPT_CHOICES = {
    "l": ConflictResolution.KEEP_LOCAL,
    "r": ConflictResolution.KEEP_REMOTE,
    "b": ConflictResolution.KEEP_BOTH,
}


def prompt_resolution(conflict: Conflict) -> ConflictResolution:
    """Ask the user how to resolve one conflict."""
    click.echo(f"\n{click.style('!', fg='red')} {conflict.type.value} {conflict.id} differs locally and remotely")
    if conflict.local.storage_location:
        click.echo(f"    Local: {conflict.local.storage_location}")
    if conflict.local.last_modified:
        click.echo(f"    Local modified: {conflict.local.last_modified.isoformat()}")
    choice = click.prompt(
        "Keep [l]ocal, use [r]emote, or keep [b]oth",
        type=click.Choice(list(_PROMPT_CHOICES)),
        default="l",
    )
    return _PROMPT_CHOICES[choice]


def _resolver() -> ConflictResolver:
    return prompt_resolution if sys.stdin.isatty() else keep_local


def _print_plan(plan: PullPlan) -> None:
    click.echo(click.style(f"{RESOURCE_CONFIGS[plan.type].display_name}:", fg="cyan"))
    if plan.remote_count == 0:
        click.echo("  No resources on remote\n")
        return
    if not plan.to_pull and not plan.conflicts:
        click.echo("  All resources are up to date\n")
        return
    if plan.to_pull:
        click.echo(f"  {len(plan.to_pull)} resource(s) would be pulled:\n")
        for target in plan.to_pull:
            click.echo(f"  {click.style('↓', fg='yellow')} {target.remote.id}")
    if plan.conflicts:
        click.echo(f"\n  {click.style('⚠', fg='yellow')} {len(plan.conflicts)} conflict(s) detected:\n")
        for conflict in plan.conflicts:
            click.echo(f"  {click.style('!', fg='red')} {conflict.id}")
    click.echo()


def _print_summary(summary: PullSummary, verbose: bool) -> None:
    name = RESOURCE_CONFIGS[summary.type].display_name.lower()
    if summary.remote_count == 0 and not summary.errors:
        click.echo(f"No {name} on remote")
        return

    line = f"Pulled {summary.pulled} {name}"
    if summary.failed:
        line += f", {summary.failed} failed"
    resolutions = []
    if summary.kept_local:
        resolutions.append(f"{summary.kept_local} kept local")
    if summary.overwritten:
        resolutions.append(f"{summary.overwritten} overwritten")
    if summary.saved_as_conflict:
        resolutions.append(f"{summary.saved_as_conflict} saved as .conflict")
    if resolutions:
        line += f" ({', '.join(resolutions)})"
    click.echo(click.style(line, fg="yellow" if summary.failed else "green"))

    for path in summary.conflict_paths:
        click.echo(f"  Remote copy saved to {path}")
    if verbose:
        echo_errors(summary.errors)


@click.command()
@click.argument("resource_type", metavar="[TYPE]", required=False)
@click.option("--session", "session_id", help="Pull a single session by id.")
@click.option("--all", "pull_all", is_flag=True, help="Pull every type and check for conflicts.")
@click.option("--dry-run", is_flag=True, help="Show what would be pulled.")
@click.option("--force", is_flag=True, help="Overwrite local copies on conflict.")
@click.option("--verbose", "-v", is_flag=True, help="List failed resources.")
def pull(
    resource_type: str | None,
    session_id: str | None,
    pull_all: bool,
    dry_run: bool,
    force: bool,
    verbose: bool,
) -> None:
    """Pull and decrypt remote resources.

    TYPE is one of sessions, agents, settings (default: sessions).
    By default only resources missing locally are pulled. With --all,
    resources present on both sides are compared and conflicts resolved
    interactively (keep local when not on a terminal, remote with --force).
    """
    paths = get_paths()
    types = resolve_types(resource_type, pull_all)
    if session_id is not None and types != [ResourceType.SESSIONS]:
        fail("--session option is only valid for sessions type")

    config = require_config(paths)
    backend = require_backend(config, paths)
    cipher = require_cipher(paths)
    state = SyncStateStore(paths.state_file)
    resolver = None if force else _resolver()

    if dry_run:
        click.echo(click.style("\nDry Run - Preview of resources to pull:\n", bold=True))

    for rtype in types:
        handler = get_resource_handler(rtype, paths, state)
        orchestrator = PullOrchestrator(handler, backend, cipher, state, resolver, force)
        try:
            if dry_run:
                _print_plan(orchestrator.plan(full=pull_all or session_id is not None, only_id=session_id))
            elif session_id is not None:
                _print_summary(orchestrator.pull_item(session_id), verbose)
            else:
                _print_summary(orchestrator.run(full=pull_all), verbose)
        except TransportError as e:
            click.echo(click.style(f"Failed to pull {rtype.value}: {e}", fg="red"), err=True)

    if dry_run:
        click.echo("Run without --dry-run to actually pull these resources.")
