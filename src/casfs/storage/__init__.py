# SPDX-License-Identifier: MIT
"""Content-addressable storage backend for casfs.

Keys of the form ``<owner>^<file name>`` are mapped to a location under the
storage root by a pluggable path transform, then written, read and deleted as
streams.

Usage::

    from casfs.storage import get_storage

    storage = get_storage()
    await storage.write_stream("user1^report.pdf", upload)
    handle = await storage.read_stream("user1^report.pdf")
    try:
        data = await handle.read()
    finally:
        await handle.close()
    await storage.delete("user1^report.pdf")
"""

from .factory import get_storage
from .local import LocalStorageBackend, StorageOptions
from .protocol import FileInfo, PathKey, PathTransform, StorageBackend
from .transforms import CASPathTransform, DefaultPathTransform, get_path_transform, split_key

__all__ = [
    "CASPathTransform",
    "DefaultPathTransform",
    "FileInfo",
    "LocalStorageBackend",
    "PathKey",
    "PathTransform",
    "StorageBackend",
    "StorageOptions",
    "get_path_transform",
    "get_storage",
    "split_key",
]
