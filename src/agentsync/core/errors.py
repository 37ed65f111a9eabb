"""Exception hierarchy for agentsync.

This module provides:
- AgentSyncError: Base class for every error raised by agentsync
- NotFoundError, SecurityViolationError, TransportError, DecryptError
- CorruptStateError: Raised internally by the state store, always recovered
- NotInitializedError: Configuration-level error, fatal for a command
"""

from __future__ import annotations


class AgentSyncError(Exception):
    """Base exception for agentsync errors."""


class NotFoundError(AgentSyncError):
    """A local or remote artifact does not exist."""


class SecurityViolationError(AgentSyncError):
    """Attempted to push data that does not look encrypted.

    Never retried: the transfer of the offending item is aborted.
    """


class TransportError(AgentSyncError):
    """Backend I/O failed (git command, object store request)."""


class DecryptError(AgentSyncError):
    """Ciphertext could not be decrypted (wrong key or tampered data)."""


class CorruptStateError(AgentSyncError):
    """Persisted sync state is unreadable or structurally invalid."""


class NotInitializedError(AgentSyncError):
    """agentsync has not been initialized on this machine."""
