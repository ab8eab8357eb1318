# SPDX-License-Identifier: MIT
"""Path transform protocol and shared storage types.

A path transform maps ``(storage_root, key)`` to the directory and file name
a key is stored under.  Transforms are pure: the same inputs always give the
same :class:`PathKey` and nothing touches the filesystem.
"""

from __future__ import annotations

from collections.abc import AsyncIterable, Iterable
from dataclasses import dataclass
from typing import IO, NamedTuple, Protocol, Union, runtime_checkable

from aiofiles.threadpool.binary import AsyncBufferedReader

ByteSource = Union[IO[bytes], AsyncIterable[bytes], Iterable[bytes]]
"""Input accepted by ``write_stream``.

A binary reader with a sync or async ``read(size)`` (``io.BytesIO``, an open
file, FastAPI's ``UploadFile``), or a sync/async iterable of byte chunks.
"""


class PathKey(NamedTuple):
    """Location of a stored key.

    Unpacks as ``(directory_path, file_name)``.  ``directory_path`` always
    starts with the storage root and uses ``/`` between segments.
    """

    directory_path: str
    file_name: str

    @property
    def full_path(self) -> str:
        return f"{self.directory_path}/{self.file_name}"

    def first_segment(self, storage_root: str) -> str:
        """Storage root plus the first directory below it.

        This is the highest directory that pruning after a delete may remove.
        """
        relative = self.directory_path[len(storage_root) :].lstrip("/")
        head = relative.split("/", 1)[0]
        return f"{storage_root}/{head}"


@dataclass(frozen=True)
class FileInfo:
    """Metadata about a stored file."""

    name: str
    size_bytes: int
    modified_timestamp: float


@runtime_checkable
class PathTransform(Protocol):
    """Strategy deriving the on-disk location of a key."""

    separator: str

    def transform(self, storage_root: str, key: str) -> PathKey:
        """Return the :class:`PathKey` for *key* under *storage_root*.

        Raises:
            MalformedKeyError: If *key* is not ``<owner><separator><file name>``.
        """
        ...


@runtime_checkable
class StorageBackend(Protocol):
    """Protocol for key-addressed streaming file storage.

    Keys are ``<owner><separator><file name>`` strings; the backend derives
    the on-disk location through its configured :class:`PathTransform`.
    """

    # ------------------------------------------------------------------
    # Streaming I/O
    # ------------------------------------------------------------------

    async def write_stream(self, key: str, source: ByteSource) -> str:
        """Create or truncate the file for *key* and copy *source* into it.

        Returns:
            Full path of the written file.

        Raises:
            MalformedKeyError: If *key* is malformed.
            StorageIOError: If a directory, the file, or the copy fails.
        """
        ...

    async def read_stream(self, key: str) -> AsyncBufferedReader:
        """Open the file for *key* for reading.

        The caller owns the returned handle and must close it.

        Raises:
            MalformedKeyError: If *key* is malformed.
            KeyNotFoundError: If no file is stored for *key*.
            StorageIOError: If opening fails for any other reason.
        """
        ...

    async def delete(self, key: str) -> None:
        """Remove the file for *key* and prune emptied parent directories.

        Raises:
            MalformedKeyError: If *key* is malformed.
            KeyNotFoundError: If no file is stored for *key*.
            StorageIOError: If removal fails.
        """
        ...

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    async def exists(self, key: str) -> bool:
        """Check whether a file is stored for *key*."""
        ...

    async def stat(self, key: str) -> FileInfo:
        """Get file metadata.

        Raises:
            KeyNotFoundError: If no file is stored for *key*.
        """
        ...

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def path_key(self, key: str) -> PathKey:
        """Derive the :class:`PathKey` for *key* without touching the filesystem."""
        ...

    def clean_path(self, path: str) -> bool:
        """Check that *path* has the exact shape of a hash-sharded directory."""
        ...
