# SPDX-License-Identifier: MIT
"""Configuration management for the casfs file server.

This module handles:
- Logging setup
- Storage root resolution with security checks
- Path transform, key separator and streaming buffer settings
- HTTP bind address
"""

import logging
import os
import pathlib
import sys
from functools import lru_cache

# ---------- Logging configuration ----------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger("casfs")

DEFAULT_STORAGE_ROOT = "casfs_data"
DEFAULT_PATH_TRANSFORM = "cas"
DEFAULT_KEY_SEPARATOR = "^"
DEFAULT_CHUNK_SIZE = 32 * 1024  # 32 KiB
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 4000


def _env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


# ---------- Storage root (runtime) ----------
@lru_cache(maxsize=1)
def get_storage_root() -> pathlib.Path:
    """Get and validate the storage root from ``CASFS_STORAGE_ROOT``.

    The directory is created if it does not exist yet.

    Security: Rejects a symlinked root so pruning after deletes can never
    follow it out of the intended tree.

    Returns:
        Validated absolute path

    Raises:
        RuntimeError: If the path is malformed, a symlink, not a directory or cannot be created
    """
    path_str = _env("CASFS_STORAGE_ROOT", DEFAULT_STORAGE_ROOT)

    try:
        path = pathlib.Path(path_str).resolve()
    except (ValueError, OSError) as e:
        raise RuntimeError(f"Invalid CASFS_STORAGE_ROOT '{path_str}': {e}") from e

    # Check the original path before resolution to catch symlinks
    original_path = pathlib.Path(path_str)
    try:
        if original_path.is_symlink():
            raise RuntimeError(f"CASFS_STORAGE_ROOT cannot be a symbolic link: {path_str}")
    except PermissionError as e:
        raise RuntimeError(f"Cannot validate CASFS_STORAGE_ROOT: permission denied for {path_str}") from e

    if not path.exists():
        try:
            path.mkdir(parents=True, exist_ok=True)
            logger.info("Auto-created storage root: %s", path)
        except OSError as e:
            raise RuntimeError(f"Failed to create storage root at {path}: {e}") from e

    if not path.is_dir():
        raise RuntimeError(f"CASFS_STORAGE_ROOT is not a directory: {path}")

    return path


# ---------- Storage behaviour ----------
def get_path_transform_name() -> str:
    """Name of the configured path transform (``CASFS_PATH_TRANSFORM``)."""
    name = _env("CASFS_PATH_TRANSFORM", DEFAULT_PATH_TRANSFORM).lower()
    if name not in ("cas", "default"):
        raise RuntimeError(f"CASFS_PATH_TRANSFORM must be 'cas' or 'default', got {name!r}")
    return name


def get_key_separator() -> str:
    """Owner/file-name separator for keys (``CASFS_KEY_SEPARATOR``)."""
    separator = _env("CASFS_KEY_SEPARATOR", DEFAULT_KEY_SEPARATOR)
    if len(separator) != 1 or separator in ("/", "\\"):
        raise RuntimeError(f"CASFS_KEY_SEPARATOR must be a single non-path character, got {separator!r}")
    return separator


def _positive_int(name: str, default: int) -> int:
    raw = _env(name, str(default))
    try:
        value = int(raw)
    except ValueError as e:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from e
    if value <= 0:
        raise RuntimeError(f"{name} must be positive, got {value}")
    return value


def get_chunk_size() -> int:
    """Streaming copy buffer size in bytes (``CASFS_CHUNK_SIZE``)."""
    return _positive_int("CASFS_CHUNK_SIZE", DEFAULT_CHUNK_SIZE)


# ---------- HTTP server ----------
def get_bind_address() -> tuple[str, int]:
    """Host and port for the HTTP server (``CASFS_HOST`` / ``CASFS_PORT``)."""
    return _env("CASFS_HOST", DEFAULT_HOST), _positive_int("CASFS_PORT", DEFAULT_PORT)
