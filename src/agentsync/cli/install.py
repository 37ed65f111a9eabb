"""Hook installation for agentsync CLI.

Commands:
- install: Add session start/end hooks to the editor settings
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import click

from agentsync.cli.config import fail, get_paths

HOOK_MARKER = "agentsync"

HOOKS: dict[str, list[dict[str, Any]]] = {
    "SessionEnd": [
        {
            "hooks": [
                {
                    "type": "command",
                    "command": "agentsync push --session $CLAUDE_SESSION_ID --file $CLAUDE_TRANSCRIPT_PATH",
                }
            ]
        }
    ],
    "SessionStart": [
        {
            "hooks": [
                {"type": "command", "command": "agentsync pull"},
            ]
        }
    ],
}


def _has_agentsync_hook(entries: list[Any]) -> bool:
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        for hook in entry.get("hooks") or []:
            if isinstance(hook, dict) and HOOK_MARKER in str(hook.get("command", "")):
                return True
    return False


def install_hooks(settings: dict[str, Any]) -> dict[str, Any]:
    """Add agentsync hooks to a settings object, keeping existing hooks.

    An event that already runs an agentsync command is left unchanged.

    Returns:
        The updated settings (the argument is modified in place).
    """
    hooks = settings.get("hooks")
    if not isinstance(hooks, dict):
        hooks = {}
    for event, entries in HOOKS.items():
        existing = hooks.get(event)
        if not isinstance(existing, list):
            hooks[event] = json.loads(json.dumps(entries))
        elif not _has_agentsync_hook(existing):
            existing.extend(json.loads(json.dumps(entries)))
    settings["hooks"] = hooks
    return settings


@click.command()
@click.option("--global", "global_", is_flag=True, help="Install to the user settings (default).")
@click.option("--project", is_flag=True, help="Install to ./.claude/settings.json.")
def install(global_: bool, project: bool) -> None:
    """Install hooks that sync sessions automatically.

    SessionEnd pushes the finished session, SessionStart pulls new ones.
    """
    is_global = global_ or not project
    settings_path = get_paths().settings_file if is_global else Path.cwd() / ".claude" / "settings.json"

    settings: dict[str, Any] = {}
    if settings_path.exists():
        try:
            loaded = json.loads(settings_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            fail(f"Cannot read {settings_path}: {e}")
        if isinstance(loaded, dict):
            settings = loaded

    install_hooks(settings)
    try:
        settings_path.parent.mkdir(parents=True, exist_ok=True)
        settings_path.write_text(json.dumps(settings, indent=2), encoding="utf-8")
    except OSError as e:
        fail(f"Failed to install hooks: {e}")

    click.echo(click.style(f"Hooks installed to {settings_path}", fg="green"))
    click.echo("  SessionEnd -> push current session")
    click.echo("  SessionStart -> pull new sessions")
