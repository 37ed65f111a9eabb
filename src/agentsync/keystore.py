"""Secure key storage and management for agentsync.

This module provides:
- Key generation and password-based wrapping
- Encrypted storage of the data key in keyfile.json
- OS keyring integration for caching (lets editor hooks run unattended)
- Key export/import for multi-machine setup
"""

from __future__ import annotations

import base64
import binascii
import contextlib
import json
import logging
import uuid
from datetime import UTC, datetime
from pathlib import Path

import keyring
from keyring.errors import KeyringError

from agentsync.core.crypto import (
    KEY_SIZE,
    ResourceCipher,
    decrypt,
    derive_key,
    encrypt,
    generate_key,
    generate_salt,
)
from agentsync.core.errors import AgentSyncError, DecryptError

logger = logging.getLogger(__name__)

KEYFILE_NAME = "keyfile.json"
KEYRING_SERVICE = "agentsync"


class KeyStoreError(AgentSyncError):
    """Exception raised for keystore-related errors."""


class KeyStore:
    """Manages the data key with secure storage.

    The keystore uses a two-key system:
    - master_key: derived from user password using Argon2id
    - encryption_key: random 256-bit key used for resource encryption

    The encryption_key is encrypted with master_key and stored in keyfile.json.
    """

    def __init__(
        self,
        config_dir: Path,
        salt: bytes,
        encrypted_master_key: bytes,
        key_id: str,
        created_at: str,
        encryption_key: bytes | None = None,
    ) -> None:
        """Initialize keystore (use create_keystore, load_keystore or open_keystore)."""
        self._config_dir = config_dir
        self._salt = salt
        self._encrypted_master_key = encrypted_master_key
        self._key_id = key_id
        self._created_at = created_at
        self._encryption_key = encryption_key

    @property
    def encryption_key(self) -> bytes:
        """Get the encryption key (must be unlocked first)."""
        if self._encryption_key is None:
            cached = None
            with contextlib.suppress(KeyringError):
                cached = keyring.get_password(KEYRING_SERVICE, self._key_id)
            if cached:
                self._encryption_key = base64.b64decode(cached)
            else:
                raise KeyStoreError("Keystore is locked. Run 'agentsync unlock' first.")
        return self._encryption_key

    @property
    def is_unlocked(self) -> bool:
        """Whether the key is available without a password."""
        try:
            self.encryption_key
        except KeyStoreError:
            return False
        return True

    @property
    def key_id(self) -> str:
        """Get the unique key identifier."""
        return self._key_id

    @property
    def created_at(self) -> str:
        return self._created_at

    def cipher(self) -> ResourceCipher:
        """Return a cipher bound to the encryption key."""
        return ResourceCipher(self.encryption_key)

    def unlock(self, password: str) -> None:
        """Unlock the keystore with the master password.

        Args:
            password: The master password.

        Raises:
            KeyStoreError: If the password is incorrect.
        """
        master_key = derive_key(password, self._salt)
        try:
            self._encryption_key = decrypt(self._encrypted_master_key, master_key)
        except DecryptError as e:
            raise KeyStoreError("Invalid password or corrupted keyfile") from e

        _cache_key(self._key_id, self._encryption_key)

    def export_key(self) -> str:
        """Export the encryption key as base64.

        Returns:
            Base64-encoded encryption key.
        """
        return base64.b64encode(self.encryption_key).decode()

    def import_key(self, key_b64: str, password: str) -> None:
        """Import an encryption key from base64.

        Args:
            key_b64: Base64-encoded encryption key.
            password: Master password to re-encrypt the new key.

        Raises:
            KeyStoreError: If the key is invalid.
        """
        try:
            key = base64.b64decode(key_b64, validate=True)
        except (binascii.Error, ValueError) as e:
            raise KeyStoreError("Invalid key format: not valid base64") from e

        if len(key) != KEY_SIZE:
            raise KeyStoreError(f"Invalid key: must be {KEY_SIZE} bytes, got {len(key)}")

        # Re-wrap the imported key under a fresh salt
        new_salt = generate_salt()
        master_key = derive_key(password, new_salt)

        self._encryption_key = key
        self._salt = new_salt
        self._encrypted_master_key = encrypt(key, master_key)
        self._key_id = str(uuid.uuid4())

        self._save_keyfile()
        _cache_key(self._key_id, key)

    def _save_keyfile(self) -> None:
        """Save the keyfile with current state."""
        _write_keyfile(
            self._config_dir,
            salt=self._salt,
            encrypted_master_key=self._encrypted_master_key,
            key_id=self._key_id,
            created_at=self._created_at,
        )


def _cache_key(key_id: str, key: bytes) -> None:
    """Cache the key in the OS keyring (silently ignored if unavailable)."""
    try:
        keyring.set_password(KEYRING_SERVICE, key_id, base64.b64encode(key).decode())
    except KeyringError as e:
        logger.debug(f"Keyring unavailable, key not cached: {e}")


def _write_keyfile(
    config_dir: Path,
    *,
    salt: bytes,
    encrypted_master_key: bytes,
    key_id: str,
    created_at: str,
) -> None:
    data = {
        "salt": base64.b64encode(salt).decode(),
        "encrypted_master_key": base64.b64encode(encrypted_master_key).decode(),
        "key_id": key_id,
        "created_at": created_at,
    }
    (config_dir / KEYFILE_NAME).write_text(json.dumps(data, indent=2))


def create_keystore(password: str, config_dir: Path) -> KeyStore:
    """Create a new keystore with a random encryption key.

    Args:
        password: Master password for the keystore.
        config_dir: Directory to store the keyfile.

    Returns:
        Unlocked KeyStore instance.

    Raises:
        KeyStoreError: If keystore already exists.
    """
    config_dir = Path(config_dir)
    config_dir.mkdir(parents=True, exist_ok=True)

    keyfile = config_dir / KEYFILE_NAME
    if keyfile.exists():
        raise KeyStoreError(f"Keystore already exists at {keyfile}")

    encryption_key = generate_key()

    salt = generate_salt()
    master_key = derive_key(password, salt)
    encrypted_master_key = encrypt(encryption_key, master_key)

    key_id = str(uuid.uuid4())
    created_at = datetime.now(UTC).isoformat()

    _write_keyfile(
        config_dir,
        salt=salt,
        encrypted_master_key=encrypted_master_key,
        key_id=key_id,
        created_at=created_at,
    )
    _cache_key(key_id, encryption_key)

    return KeyStore(
        config_dir=config_dir,
        salt=salt,
        encrypted_master_key=encrypted_master_key,
        key_id=key_id,
        created_at=created_at,
        encryption_key=encryption_key,
    )


def open_keystore(config_dir: Path) -> KeyStore:
    """Open an existing keystore without unlocking it.

    The returned keystore serves the key from the OS keyring cache when
    available; otherwise call unlock() with the master password.

    Args:
        config_dir: Directory containing the keyfile.

    Returns:
        KeyStore instance (possibly locked).

    Raises:
        KeyStoreError: If keystore not found or keyfile is invalid.
    """
    config_dir = Path(config_dir)
    keyfile = config_dir / KEYFILE_NAME

    if not keyfile.exists():
        raise KeyStoreError(f"Keystore not found at {keyfile}")

    try:
        data = json.loads(keyfile.read_text())
    except json.JSONDecodeError as e:
        raise KeyStoreError(f"Corrupted keyfile: {e}") from e

    try:
        return KeyStore(
            config_dir=config_dir,
            salt=base64.b64decode(data["salt"]),
            encrypted_master_key=base64.b64decode(data["encrypted_master_key"]),
            key_id=data["key_id"],
            created_at=data["created_at"],
        )
    except (KeyError, ValueError, TypeError) as e:
        raise KeyStoreError(f"Invalid keyfile format: {e}") from e


def load_keystore(password: str, config_dir: Path) -> KeyStore:
    """Load and unlock an existing keystore.

    Args:
        password: Master password for the keystore.
        config_dir: Directory containing the keyfile.

    Returns:
        Unlocked KeyStore instance.

    Raises:
        KeyStoreError: If keystore not found or password is wrong.
    """
    keystore = open_keystore(config_dir)
    keystore.unlock(password)
    return keystore
