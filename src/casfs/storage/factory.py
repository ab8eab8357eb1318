# SPDX-License-Identifier: MIT
"""Storage backend factory.

Reads the ``CASFS_*`` environment variables and returns the process-wide
backend instance.
"""

from __future__ import annotations

from functools import lru_cache

from ..config import get_chunk_size, get_key_separator, get_path_transform_name, get_storage_root, logger
from .local import LocalStorageBackend, StorageOptions
from .protocol import StorageBackend
from .transforms import get_path_transform


@lru_cache(maxsize=1)
def get_storage() -> StorageBackend:
    """Return the configured :class:`StorageBackend` (cached singleton).

    Configuration
    -------------
    ``CASFS_STORAGE_ROOT``
        Directory all files are stored under (created if missing).
    ``CASFS_PATH_TRANSFORM``
        ``"cas"`` (default) – hash-sharded layout.
        ``"default"`` – ``<root>/<owner>/<file name>``.
    ``CASFS_KEY_SEPARATOR``
        Character between owner and file name in keys (default ``^``).
    ``CASFS_CHUNK_SIZE``
        Streaming buffer size in bytes.
    """
    transform = get_path_transform(get_path_transform_name(), get_key_separator())
    options = StorageOptions(
        storage_root=str(get_storage_root()),
        path_transform=transform,
        logger=logger,
        chunk_size=get_chunk_size(),
    )
    logger.info("Using %r under %s", transform, options.storage_root)
    return LocalStorageBackend(options)
