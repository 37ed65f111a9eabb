"""Setup and key management commands for agentsync CLI.

Commands:
- init: Choose a backend and create a new keystore
- reset: Delete agentsync configuration
- unlock: Unlock the keystore and cache the key
- export-key: Export the encryption key
- import-key: Import an encryption key
"""

from __future__ import annotations

import shutil
import sys

import click

from agentsync.backends import create_backend
from agentsync.backends.git import DEFAULT_BRANCH
from agentsync.backends.s3 import DEFAULT_REGION
from agentsync.cli.config import fail, get_paths
from agentsync.core.config import (
    BACKEND_GIT,
    BACKEND_S3,
    GCS_ENDPOINT,
    R2_ENDPOINT_TEMPLATE,
    AppConfig,
    save_config,
)
from agentsync.core.errors import TransportError
from agentsync.keystore import KeyStoreError, create_keystore, load_keystore

_CHOICES = {
    "git": "Git repository (GitHub, GitLab, etc.)",
    "s3": "AWS S3",
    "gcs": "Google Cloud Storage",
    "r2": "Cloudflare R2",
    "s3-custom": "Other S3-compatible (MinIO, etc.)",
}


def _r2_endpoint(endpoint: str | None) -> str:
    if endpoint:
        return endpoint
    account_id = click.prompt("Cloudflare account ID")
    return R2_ENDPOINT_TEMPLATE.format(account_id=account_id)


def _prompt_backend() -> tuple[str, dict[str, str]]:
    """Interactive backend selection."""
    click.echo("Where do you want to store your synced data?")
    for key, label in _CHOICES.items():
        click.echo(f"  {key:<10} {label}")
    choice = click.prompt("Backend", type=click.Choice(list(_CHOICES)), default="git")

    if choice == "git":
        url = click.prompt("Git repository URL (use a private repo!)")
        return BACKEND_GIT, {"url": url, "branch": DEFAULT_BRANCH}

    bucket = click.prompt("Bucket name")
    if choice == "s3":
        region = click.prompt("AWS region", default=DEFAULT_REGION)
        return BACKEND_S3, {"bucket": bucket, "region": region}
    if choice == "gcs":
        click.echo("Note: use HMAC keys (AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY).")
        return BACKEND_S3, {"bucket": bucket, "endpoint_url": GCS_ENDPOINT, "region": "auto"}
    if choice == "r2":
        click.echo("Note: set AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY with R2 API tokens.")
        return BACKEND_S3, {"bucket": bucket, "endpoint_url": _r2_endpoint(None), "region": "auto"}

    endpoint = click.prompt("S3 endpoint URL")
    if not endpoint.startswith("http"):
        fail("Endpoint must be a URL")
    region = click.prompt("Region (if required)", default=DEFAULT_REGION)
    return BACKEND_S3, {"bucket": bucket, "endpoint_url": endpoint, "region": region}


@click.command()
@click.option("--git", "git_url", metavar="URL", help="Use a git repository.")
@click.option("--s3", "s3_bucket", metavar="BUCKET", help="Use an AWS S3 bucket.")
@click.option("--gcs", "gcs_bucket", metavar="BUCKET", help="Use a Google Cloud Storage bucket.")
@click.option("--r2", "r2_bucket", metavar="BUCKET", help="Use a Cloudflare R2 bucket.")
@click.option("--region", help="Bucket region (S3).")
@click.option("--endpoint", help="Custom S3-compatible endpoint URL.")
def init(
    git_url: str | None,
    s3_bucket: str | None,
    gcs_bucket: str | None,
    r2_bucket: str | None,
    region: str | None,
    endpoint: str | None,
) -> None:
    """Initialize agentsync on this machine.

    Configures the remote backend and creates the encryption key. You will
    be prompted for a master password protecting the key.
    """
    paths = get_paths()

    if paths.keyfile.exists():
        click.echo("Error: agentsync already initialized.", err=True)
        click.echo(f"Keystore exists at: {paths.keyfile}", err=True)
        click.echo("\nTo start over, run:")
        click.echo("  agentsync reset")
        sys.exit(1)

    if git_url:
        backend, backend_config = BACKEND_GIT, {"url": git_url, "branch": DEFAULT_BRANCH}
    elif s3_bucket:
        backend, backend_config = BACKEND_S3, {"bucket": s3_bucket, "region": region or DEFAULT_REGION}
        if endpoint:
            backend_config["endpoint_url"] = endpoint
    elif gcs_bucket:
        backend, backend_config = BACKEND_S3, {
            "bucket": gcs_bucket, "endpoint_url": GCS_ENDPOINT, "region": "auto",
        }
    elif r2_bucket:
        backend, backend_config = BACKEND_S3, {
            "bucket": r2_bucket, "endpoint_url": _r2_endpoint(endpoint), "region": "auto",
        }
    else:
        backend, backend_config = _prompt_backend()

    click.echo("\nCreate a master password to protect your encryption key.")
    password = click.prompt(
        "Create master password",
        hide_input=True,
        confirmation_prompt="Confirm master password",
    )

    config = AppConfig(backend=backend, backend_config=backend_config)
    try:
        create_backend(config, paths).init()
    except (ValueError, TransportError) as e:
        fail(f"Failed to set up {backend} backend: {e}")

    try:
        keystore = create_keystore(password, paths.config_dir)
    except KeyStoreError as e:
        fail(str(e))

    config.initialized = True
    save_config(paths, config)

    click.echo(click.style("\nagentsync initialized successfully!", fg="green"))
    click.echo(f"Key ID: {keystore.key_id}")
    click.echo(f"Config directory: {paths.config_dir}")
    click.echo("\nNext steps:")
    click.echo("  agentsync push --all     Push everything")
    click.echo("  agentsync install        Sync sessions automatically")
    click.echo("\nOn another machine, run 'agentsync init' with the same backend,")
    click.echo("then 'agentsync import-key' with the output of 'agentsync export-key'.")


@click.command()
@click.option("--force", is_flag=True, help="Skip confirmation prompt.")
def reset(force: bool) -> None:
    """Reset agentsync configuration.

    Deletes the config directory (~/.agentsync) to allow re-initialization.
    Local sessions, agents and settings are NOT deleted.

    WARNING: This will delete your encryption key! Make sure you have
    exported it first if you need to read your remote data again.
    """
    paths = get_paths()
    config_dir = paths.config_dir

    if not config_dir.exists():
        click.echo("Nothing to reset. agentsync is not initialized.")
        return

    if not force:
        click.echo("WARNING: This will delete your agentsync configuration, including:")
        click.echo("  - Encryption key (keyfile.json)")
        click.echo("  - Backend configuration (config.json)")
        click.echo("  - Sync state (sync-state.json)")
        click.echo(f"\nConfig directory: {config_dir}")
        click.echo("\nMake sure you have exported your encryption key if needed:")
        click.echo("  agentsync export-key\n")

        if not click.confirm("Are you sure you want to reset?"):
            click.echo("Aborted.")
            return

    try:
        shutil.rmtree(config_dir)
    except OSError as e:
        fail(f"Error deleting config directory: {e}")
    click.echo("agentsync configuration has been reset.")
    click.echo("Run 'agentsync init' to set up again.")


def _require_keyfile() -> None:
    if not get_paths().keyfile.exists():
        fail("agentsync not initialized. Run 'agentsync init' first.")


@click.command()
def unlock() -> None:
    """Unlock the keystore.

    Decrypts the encryption key and caches it in the OS keyring so that
    hooks can push and pull without a password prompt.
    """
    _require_keyfile()
    password = click.prompt("Enter master password", hide_input=True)

    try:
        keystore = load_keystore(password, get_paths().config_dir)
    except KeyStoreError as e:
        fail(str(e))
    click.echo("Keystore unlocked successfully!")
    click.echo(f"Key ID: {keystore.key_id}")


@click.command("export-key")
def export_key() -> None:
    """Export the encryption key.

    Outputs the base64-encoded encryption key.
    Use this to set up agentsync on another machine.

    WARNING: Keep this key secret! Anyone with this key and access to
    your backend can read your sessions.
    """
    _require_keyfile()
    password = click.prompt("Enter master password", hide_input=True)

    try:
        keystore = load_keystore(password, get_paths().config_dir)
        key_b64 = keystore.export_key()
    except KeyStoreError as e:
        fail(str(e))
    click.echo("\nEncryption key (keep secret!):")
    click.echo(key_b64)


@click.command("import-key")
@click.argument("key")
def import_key(key: str) -> None:
    """Import an encryption key.

    KEY is the base64-encoded encryption key from another machine.

    This replaces the current encryption key. Every machine syncing
    the same backend must use the same key.
    """
    _require_keyfile()
    password = click.prompt("Enter master password", hide_input=True)

    try:
        keystore = load_keystore(password, get_paths().config_dir)
        keystore.import_key(key, password)
    except KeyStoreError as e:
        fail(str(e))
    click.echo("Encryption key imported successfully!")
    click.echo(f"New Key ID: {keystore.key_id}")
