"""Core module - Shared crypto, errors, types and configuration."""

from agentsync.core.config import (
    AppConfig,
    SyncPaths,
    load_config,
    require_initialized,
    save_config,
)
from agentsync.core.crypto import (
    ResourceCipher,
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
from agentsync.core.errors import (
    AgentSyncError,
    CorruptStateError,
    DecryptError,
    NotFoundError,
    NotInitializedError,
    SecurityViolationError,
    TransportError,
)
from agentsync.core.types import (
    ALL_RESOURCE_TYPES,
    RESOURCE_CONFIGS,
    ItemError,
    ResourceType,
    ResourceTypeConfig,
    SyncStrategy,
    parse_resource_type,
)

__all__ = [
    # Config
    "AppConfig",
    "SyncPaths",
    "load_config",
    "require_initialized",
    "save_config",
    # Crypto
    "ResourceCipher",
    "assert_encrypted",
    "compute_file_hash",
    "decrypt",
    "derive_key",
    "encrypt",
    "generate_key",
    "generate_salt",
    "hash_content",
    "looks_encrypted",
    # Errors
    "AgentSyncError",
    "CorruptStateError",
    "DecryptError",
    "NotFoundError",
    "NotInitializedError",
    "SecurityViolationError",
    "TransportError",
    # Types
    "ALL_RESOURCE_TYPES",
    "RESOURCE_CONFIGS",
    "ItemError",
    "ResourceType",
    "ResourceTypeConfig",
    "SyncStrategy",
    "parse_resource_type",
]
