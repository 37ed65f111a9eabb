"""Cryptographic functions for agentsync.

This module provides:
- Key derivation using Argon2id
- Authenticated encryption using AES-256-GCM
- Content hashing with SHA-256
- A heuristic gate that refuses to push plaintext
"""

from __future__ import annotations

import codecs
import hashlib
import os
from pathlib import Path

from argon2.low_level import Type, hash_secret_raw
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from agentsync.core.errors import DecryptError, SecurityViolationError

# Argon2id parameters (OWASP recommendations for password hashing)
ARGON2_TIME_COST = 3
ARGON2_MEMORY_COST = 65536  # 64 MiB
ARGON2_PARALLELISM = 4
ARGON2_HASH_LEN = 32  # 256 bits

# AES-GCM constants
KEY_SIZE = 32
NONCE_SIZE = 12  # 96 bits (recommended for AES-GCM)
TAG_SIZE = 16
SALT_SIZE = 16  # 128 bits

# Smallest blob we produce for a non-empty payload
MIN_ENCRYPTED_SIZE = NONCE_SIZE + TAG_SIZE + 1

# Bytes inspected by looks_encrypted()
_PREVIEW_SIZE = 100

# Control characters that never appear in clean text
_BINARY_CODEPOINTS = frozenset([*range(0, 9), 11, 12, *range(14, 32)])


def generate_salt() -> bytes:
    """Generate a cryptographically secure random salt.

    Returns:
        16 bytes of random data for use as salt in key derivation.
    """
    return os.urandom(SALT_SIZE)


def generate_key() -> bytes:
    """Generate a random 256-bit data key."""
    return os.urandom(KEY_SIZE)


def derive_key(password: str, salt: bytes) -> bytes:
    """Derive a 256-bit encryption key from a password using Argon2id.

    Args:
        password: The user's master password.
        salt: A 16-byte random salt (use generate_salt()).

    Returns:
        32 bytes (256 bits) derived key suitable for AES-256.
    """
    return hash_secret_raw(
        secret=password.encode("utf-8"),
        salt=salt,
        time_cost=ARGON2_TIME_COST,
        memory_cost=ARGON2_MEMORY_COST,
        parallelism=ARGON2_PARALLELISM,
        hash_len=ARGON2_HASH_LEN,
        type=Type.ID,
    )


def encrypt(data: bytes, key: bytes) -> bytes:
    """Encrypt data using AES-256-GCM with a random nonce.

    Args:
        data: Plaintext data to encrypt (may be empty).
        key: 32-byte encryption key.

    Returns:
        Encrypted data in format: nonce (12 bytes) || auth_tag (16 bytes) || ciphertext
    """
    nonce = os.urandom(NONCE_SIZE)
    sealed = AESGCM(key).encrypt(nonce, data, None)
    ciphertext, tag = sealed[:-TAG_SIZE], sealed[-TAG_SIZE:]
    return nonce + tag + ciphertext


def decrypt(encrypted: bytes, key: bytes) -> bytes:
    """Decrypt data encrypted with encrypt().

    Args:
        encrypted: Data in format: nonce (12 bytes) || auth_tag (16 bytes) || ciphertext
        key: 32-byte encryption key.

    Returns:
        Decrypted plaintext data.

    Raises:
        DecryptError: If the blob is truncated or authentication fails
            (wrong key or tampered data).
    """
    if len(encrypted) < NONCE_SIZE + TAG_SIZE:
        raise DecryptError(
            f"Encrypted data too short: {len(encrypted)} bytes"
        )
    nonce = encrypted[:NONCE_SIZE]
    tag = encrypted[NONCE_SIZE:NONCE_SIZE + TAG_SIZE]
    ciphertext = encrypted[NONCE_SIZE + TAG_SIZE:]
    try:
        return AESGCM(key).decrypt(nonce, ciphertext + tag, None)
    except InvalidTag as e:
        raise DecryptError("Decryption failed: wrong key or tampered data") from e


class ResourceCipher:
    """Encrypts and decrypts resource payloads with a fixed data key."""

    def __init__(self, key: bytes) -> None:
        if len(key) != KEY_SIZE:
            raise ValueError(f"Invalid key: must be {KEY_SIZE} bytes, got {len(key)}")
        self._key = key

    def encrypt(self, data: bytes) -> bytes:
        return encrypt(data, self._key)

    def decrypt(self, encrypted: bytes) -> bytes:
        return decrypt(encrypted, self._key)


def hash_content(data: bytes) -> str:
    """Compute the SHA-256 hex digest of a payload.

    Used for change detection against the sync state and for
    conflict detection between local and remote copies.
    """
    return hashlib.sha256(data).hexdigest()


def compute_file_hash(path: Path) -> str:
    """Compute SHA-256 hash of a file.

    Reads the file in chunks to handle large files efficiently.

    Args:
        path: Path to the file to hash.

    Returns:
        Hexadecimal SHA-256 hash string.
    """
    hasher = hashlib.sha256()
    with open(path, "rb") as f:
        for block in iter(lambda: f.read(8192), b""):
            hasher.update(block)
    return hasher.hexdigest()


def looks_encrypted(data: bytes) -> bool:
    """Heuristically check that data was produced by encrypt().

    Random ciphertext is almost never valid UTF-8, so anything that decodes
    cleanly and looks like JSON, JSONL or other structured text is rejected.

    Args:
        data: Bytes about to be pushed.

    Returns:
        False if the data is too short or looks like plaintext.
    """
    if len(data) < MIN_ENCRYPTED_SIZE:
        return False

    try:
        # final=False tolerates a multi-byte character cut by the preview window
        preview = codecs.getincrementaldecoder("utf-8")().decode(data[:_PREVIEW_SIZE], final=False)
    except UnicodeDecodeError:
        return True

    if preview.startswith(("{", "[")) and '"' in preview and (
        ":" in preview or "," in preview
    ):
        return False

    if preview.startswith("{") and "}\n{" in preview:
        return False

    has_binary_chars = any(ord(c) in _BINARY_CODEPOINTS for c in preview)
    if not has_binary_chars and len(preview) > 20:
        if '"' in preview or "=" in preview or "<" in preview:
            return False

    return True


def assert_encrypted(data: bytes, context: str | None = None) -> None:
    """Refuse to continue if data does not look encrypted.

    Args:
        data: Bytes about to be pushed.
        context: Optional description of the item (e.g. "sessions abc").

    Raises:
        SecurityViolationError: If the data looks like plaintext.
    """
    if not looks_encrypted(data):
        ctx = f" ({context})" if context else ""
        raise SecurityViolationError(
            f"Attempted to push unencrypted data{ctx}. "
            "Refusing to expose plaintext to remote storage."
        )
