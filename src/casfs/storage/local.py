# SPDX-License-Identifier: MIT
"""Local filesystem storage backend.

Files live under a single storage root at the location chosen by the
configured :class:`~casfs.storage.protocol.PathTransform`.  The backend keeps
no state besides its :class:`StorageOptions`: every call derives the
:class:`~casfs.storage.protocol.PathKey` afresh and the filesystem is the only
source of truth.

Writes are not transactional.  A failed ``write_stream`` can leave a
truncated or empty file at the target path; it is not rolled back.
"""

from __future__ import annotations

import errno
import inspect
import logging
import os
import posixpath
import re
from collections.abc import AsyncIterator
from dataclasses import dataclass, field

import aiofiles
import aiofiles.os
from aiofiles.threadpool.binary import AsyncBufferedReader

from ..config import DEFAULT_CHUNK_SIZE
from ..exceptions import KeyNotFoundError, StorageIOError
from .protocol import ByteSource, FileInfo, PathKey, PathTransform
from .transforms import BLOCK_COUNT, BLOCK_SIZE, CASPathTransform

logger = logging.getLogger("casfs")

_HEX_BLOCK = re.compile(rf"[0-9a-f]{{{BLOCK_SIZE}}}")


@dataclass(frozen=True)
class StorageOptions:
    """Immutable configuration for :class:`LocalStorageBackend`.

    Args:
        storage_root: Base directory every derived path starts with.
        path_transform: Strategy mapping keys to locations.
        logger: Logger for storage events.
        chunk_size: Buffer size used when streaming into a file.
    """

    storage_root: str
    path_transform: PathTransform = field(default_factory=CASPathTransform)
    logger: logging.Logger = field(default=logger)
    chunk_size: int = DEFAULT_CHUNK_SIZE

    def __post_init__(self) -> None:
        root = os.fspath(self.storage_root)
        if not root:
            raise ValueError("storage_root must not be empty")
        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")
        # Derived paths are built with "/" joins; keep the root free of a trailing slash
        object.__setattr__(self, "storage_root", root.rstrip("/") or "/")


async def _iter_chunks(source: ByteSource, chunk_size: int) -> AsyncIterator[bytes]:
    """Yield byte chunks from a reader or a (sync/async) iterable."""
    read = getattr(source, "read", None)
    if callable(read):
        while True:
            chunk = read(chunk_size)
            if inspect.isawaitable(chunk):
                chunk = await chunk
            if not chunk:
                return
            yield chunk
    elif hasattr(source, "__aiter__"):
        async for chunk in source:  # type: ignore[union-attr]
            yield chunk
    else:
        for chunk in source:  # type: ignore[union-attr]
            yield chunk


class LocalStorageBackend:
    """Streaming key/value file storage on local disk.

    Safe to share between concurrent tasks: there is no mutable state.
    Concurrent writes to the same key race and the last one to finish wins.
    """

    def __init__(self, options: StorageOptions) -> None:
        self.options = options

    @property
    def storage_root(self) -> str:
        return self.options.storage_root

    @property
    def logger(self) -> logging.Logger:
        return self.options.logger

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def path_key(self, key: str) -> PathKey:
        return self.options.path_transform.transform(self.storage_root, key)

    def clean_path(self, path: str) -> bool:
        """Check that *path* is a hash-sharded directory under the storage root.

        The path, relative to the root, must be exactly ``BLOCK_COUNT``
        segments of ``BLOCK_SIZE`` lowercase hex characters, which is the shape
        :class:`~casfs.storage.transforms.CASPathTransform` produces.
        """
        prefix = self.storage_root.rstrip("/") + "/"
        if not path.startswith(prefix):
            return False
        segments = path[len(prefix) :].split("/")
        return len(segments) == BLOCK_COUNT and all(_HEX_BLOCK.fullmatch(s) for s in segments)

    # ------------------------------------------------------------------
    # Streaming I/O
    # ------------------------------------------------------------------

    async def write_stream(self, key: str, source: ByteSource) -> str:
        path_key = self.path_key(key)
        file_path = path_key.full_path

        try:
            await aiofiles.os.makedirs(path_key.directory_path, exist_ok=True)
        except OSError as e:
            raise StorageIOError(f"Failed to create directory {path_key.directory_path}: {e}") from e

        written = 0
        try:
            async with aiofiles.open(file_path, "wb") as f:
                async for chunk in _iter_chunks(source, self.options.chunk_size):
                    await f.write(chunk)
                    written += len(chunk)
        except OSError as e:
            raise StorageIOError(f"Failed to write {key!r} to {file_path}: {e}") from e

        self.logger.info("Stored %s (%d bytes) at %s", key, written, file_path)
        return file_path

    async def read_stream(self, key: str) -> AsyncBufferedReader:
        file_path = self.path_key(key).full_path
        try:
            return await aiofiles.open(file_path, "rb")
        except FileNotFoundError as e:
            raise KeyNotFoundError(f"File not found for key {key!r}") from e
        except OSError as e:
            raise StorageIOError(f"Failed to open {file_path} for key {key!r}: {e}") from e

    async def delete(self, key: str) -> None:
        path_key = self.path_key(key)
        file_path = path_key.full_path

        if not await aiofiles.os.path.isfile(file_path):
            raise KeyNotFoundError(f"File not found for key {key!r}")
        try:
            await aiofiles.os.remove(file_path)
        except FileNotFoundError as e:
            raise KeyNotFoundError(f"File not found for key {key!r}") from e
        except OSError as e:
            raise StorageIOError(f"Failed to delete {file_path} for key {key!r}: {e}") from e

        self.logger.info("Deleted %s from %s", key, file_path)
        await self._prune(path_key)

    async def _prune(self, path_key: PathKey) -> None:
        """Remove directories emptied by a delete, deepest first.

        Stops at the first non-empty directory and never goes above the first
        segment below the storage root.
        """
        directory = path_key.directory_path
        if not self.clean_path(directory):
            self.logger.warning("Not pruning %s: not a hash-sharded directory under %s", directory, self.storage_root)
            return

        top = path_key.first_segment(self.storage_root)
        current = directory
        while current.startswith(top):
            try:
                if await aiofiles.os.listdir(current):
                    break
                await aiofiles.os.rmdir(current)
            except FileNotFoundError:
                break
            except OSError as e:
                # Another writer got there first
                if e.errno in (errno.ENOTEMPTY, errno.EEXIST):
                    break
                raise StorageIOError(f"Failed to prune directory {current}: {e}") from e
            self.logger.debug("Pruned empty directory %s", current)
            if current == top:
                break
            current = posixpath.dirname(current)

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    async def exists(self, key: str) -> bool:
        return await aiofiles.os.path.isfile(self.path_key(key).full_path)

    async def stat(self, key: str) -> FileInfo:
        file_path = self.path_key(key).full_path
        try:
            st = await aiofiles.os.stat(file_path)
        except FileNotFoundError as e:
            raise KeyNotFoundError(f"File not found for key {key!r}") from e
        except OSError as e:
            raise StorageIOError(f"Cannot stat {file_path}: {e}") from e
        return FileInfo(name=posixpath.basename(file_path), size_bytes=st.st_size, modified_timestamp=st.st_mtime)
