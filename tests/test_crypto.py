"""Tests for crypto module - Key derivation, encryption, hashing, plaintext gate."""

import hashlib
import json
import os
from pathlib import Path

import pytest

from agentsync.core import (
    DecryptError,
    ResourceCipher,
    SecurityViolationError,
    assert_encrypted,
    compute_file_hash,
    decrypt,
    derive_key,
    encrypt,
    generate_key,
    generate_salt,
    hash_content,
    looks_encrypted,
)
from agentsync.core.crypto import NONCE_SIZE, TAG_SIZE


class TestKeyDerivation:
    """Tests for Argon2id key derivation."""

    def test_derive_key_returns_32_bytes(self) -> None:
        """Key derivation should return exactly 32 bytes (256 bits)."""
        key = derive_key("test_password", generate_salt())
        assert len(key) == 32

    def test_derive_key_deterministic(self) -> None:
        """Same password and salt should produce same key."""
        salt = generate_salt()
        assert derive_key("test_password", salt) == derive_key("test_password", salt)

    def test_derive_key_different_salts(self) -> None:
        """Different salts should produce different keys."""
        assert derive_key("pw", generate_salt()) != derive_key("pw", generate_salt())


class TestEncryption:
    """Tests for AES-256-GCM encryption."""

    def test_round_trip(self) -> None:
        """decrypt(encrypt(x)) should return x."""
        key = generate_key()
        data = b'{"type":"user","message":"hello"}\n'
        assert decrypt(encrypt(data, key), key) == data

    def test_round_trip_empty(self) -> None:
        """Empty payloads should round-trip too."""
        key = generate_key()
        assert decrypt(encrypt(b"", key), key) == b""

    def test_round_trip_binary(self) -> None:
        """Arbitrary bytes should round-trip."""
        key = generate_key()
        data = os.urandom(4096)
        assert decrypt(encrypt(data, key), key) == data

    def test_wire_layout(self) -> None:
        """Output is nonce || tag || ciphertext, same length as plaintext plus 28."""
        key = generate_key()
        data = b"x" * 50
        blob = encrypt(data, key)
        assert len(blob) == NONCE_SIZE + TAG_SIZE + len(data)

    def test_random_nonce(self) -> None:
        """Encrypting twice should produce different output."""
        key = generate_key()
        assert encrypt(b"same data", key) != encrypt(b"same data", key)

    def test_wrong_key_fails(self) -> None:
        """Decrypting with another key should raise DecryptError."""
        blob = encrypt(b"secret", generate_key())
        with pytest.raises(DecryptError, match="wrong key or tampered"):
            decrypt(blob, generate_key())

    def test_tampered_data_fails(self) -> None:
        """Any modified byte should fail authentication."""
        key = generate_key()
        blob = bytearray(encrypt(b"secret data", key))
        blob[-1] ^= 0x01
        with pytest.raises(DecryptError):
            decrypt(bytes(blob), key)

    def test_truncated_data_fails(self) -> None:
        """Blobs shorter than nonce + tag should be rejected."""
        with pytest.raises(DecryptError, match="too short"):
            decrypt(b"short", generate_key())


class TestResourceCipher:
    """Tests for ResourceCipher."""

    def test_round_trip(self) -> None:
        cipher = ResourceCipher(generate_key())
        assert cipher.decrypt(cipher.encrypt(b"payload")) == b"payload"

    def test_rejects_bad_key_length(self) -> None:
        with pytest.raises(ValueError, match="must be 32 bytes"):
            ResourceCipher(b"short")


class TestHashing:
    """Tests for content hashing."""

    def test_hash_content_is_sha256_hex(self) -> None:
        assert hash_content(b"") == hashlib.sha256(b"").hexdigest()
        assert len(hash_content(b"abc")) == 64

    def test_hash_content_deterministic(self) -> None:
        assert hash_content(b"X") == hash_content(b"X")
        assert hash_content(b"X") != hash_content(b"Y")

    def test_compute_file_hash_matches_hash_content(self, tmp_path: Path) -> None:
        """Streaming file hash should equal the in-memory hash."""
        data = os.urandom(20000)
        path = tmp_path / "file.bin"
        path.write_bytes(data)
        assert compute_file_hash(path) == hash_content(data)


class TestLooksEncrypted:
    """Tests for the plaintext gate applied before every push."""

    def test_ciphertext_passes(self) -> None:
        key = generate_key()
        assert looks_encrypted(encrypt(b'{"a": 1, "b": "text"}', key))

    def test_too_short_is_rejected(self) -> None:
        """Anything shorter than nonce + tag + 1 byte is not our ciphertext."""
        assert not looks_encrypted(os.urandom(28))

    def test_json_object_is_rejected(self) -> None:
        data = json.dumps({"permissions": {"allow": ["Bash"]}, "model": "x"}).encode()
        assert not looks_encrypted(data)

    def test_json_array_is_rejected(self) -> None:
        data = json.dumps(["one", "two", "three", "four", "five"]).encode()
        assert not looks_encrypted(data)

    def test_jsonl_is_rejected(self) -> None:
        data = b'{"type":"user"}\n{"type":"assistant"}\n{"type":"user"}\n'
        assert not looks_encrypted(data)

    def test_markdown_with_frontmatter_is_rejected(self) -> None:
        data = b'---\nname: reviewer\ndescription: "Reviews code"\n---\nYou review code.\n'
        assert not looks_encrypted(data)

    def test_json_cut_inside_multibyte_character_is_rejected(self) -> None:
        """A preview window ending mid-character still counts as text."""
        data = ('{"k": "' + "a" * 92 + "é" * 10 + '"}').encode()
        assert not looks_encrypted(data)

    def test_assert_encrypted_raises_with_context(self) -> None:
        data = b'{"secret": "value", "other": "value"}'
        with pytest.raises(SecurityViolationError, match="sessions abc"):
            assert_encrypted(data, "sessions abc")

    def test_assert_encrypted_accepts_ciphertext(self) -> None:
        assert_encrypted(encrypt(b"hello world", generate_key()))
