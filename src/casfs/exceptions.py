# SPDX-License-Identifier: MIT
"""Exception types raised by the casfs storage layer."""


class StorageError(Exception):
    """Base exception for casfs storage errors."""


class MalformedKeyError(StorageError, ValueError):
    """Key does not split into a non-empty owner and file name."""


class KeyNotFoundError(StorageError, FileNotFoundError):
    """No stored file exists for the key."""


class StorageIOError(StorageError):
    """Underlying filesystem operation failed (permissions, disk, path depth)."""
