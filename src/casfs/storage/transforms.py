# SPDX-License-Identifier: MIT
"""Path transform strategies.

Two interchangeable strategies turn a ``<owner><separator><file name>`` key
into a :class:`~casfs.storage.protocol.PathKey`:

- :class:`DefaultPathTransform` keeps the key readable:
  ``root/<owner>/<file name>``.
- :class:`CASPathTransform` shards by digest:
  ``root/<sha1(owner) in 5 blocks of 8>/<md5(file name)><extension>``.
"""

from __future__ import annotations

import hashlib

from ..exceptions import MalformedKeyError
from .protocol import PathKey, PathTransform

DEFAULT_SEPARATOR = "^"

# sha1 hex digest (40 chars) split into 5 directory levels
BLOCK_SIZE = 8
BLOCK_COUNT = 5

_UNSAFE_SEGMENTS = {"", ".", ".."}


def split_key(key: str, separator: str = DEFAULT_SEPARATOR) -> tuple[str, str]:
    """Split *key* into ``(owner_id, file_name)``.

    Raises:
        MalformedKeyError: If the key does not split into exactly two parts,
            or either part is empty.
    """
    parts = key.split(separator)
    if len(parts) != 2:
        raise MalformedKeyError(f"Malformed key {key!r}: expected '<owner>{separator}<file name>'")
    owner_id, file_name = parts
    if not owner_id:
        raise MalformedKeyError(f"Malformed key {key!r}: owner is empty")
    if not file_name:
        raise MalformedKeyError(f"Malformed key {key!r}: file name is empty")
    return owner_id, file_name


def base_name(file_name: str) -> str:
    """Return the last ``/``-separated element of *file_name*.

    Trailing slashes are ignored; a name made only of slashes yields ``"/"``.
    """
    stripped = file_name.rstrip("/")
    if not stripped:
        return "/"
    return stripped.rsplit("/", 1)[-1]


def file_extension(file_name: str) -> str:
    """Return the extension of *file_name* including the dot, or ``""``.

    Only the text after the last ``/`` is considered.
    """
    tail = file_name.rsplit("/", 1)[-1]
    idx = tail.rfind(".")
    return tail[idx:] if idx != -1 else ""


class DefaultPathTransform:
    """Flat, human-readable layout: ``root/<owner>`` and the raw file name."""

    def __init__(self, separator: str = DEFAULT_SEPARATOR) -> None:
        self.separator = separator

    def transform(self, storage_root: str, key: str) -> PathKey:
        owner_id, file_name = split_key(key, self.separator)
        # Raw key text lands on disk here, so it must stay a single segment
        for part in (owner_id, file_name):
            if part in _UNSAFE_SEGMENTS or "/" in part or "\\" in part:
                raise MalformedKeyError(f"Malformed key {key!r}: {part!r} is not a valid path segment")
        return PathKey(f"{storage_root}/{owner_id}", file_name)

    def __repr__(self) -> str:
        return f"DefaultPathTransform(separator={self.separator!r})"


class CASPathTransform:
    """Hash-sharded layout.

    The directory depends only on the owner (all of an owner's files share one
    tree) and the stored name depends only on the original file name.
    """

    def __init__(self, separator: str = DEFAULT_SEPARATOR) -> None:
        self.separator = separator

    def transform(self, storage_root: str, key: str) -> PathKey:
        owner_id, file_name = split_key(key, self.separator)

        owner_hash = hashlib.sha1(owner_id.encode()).hexdigest()
        blocks = [owner_hash[i : i + BLOCK_SIZE] for i in range(0, BLOCK_SIZE * BLOCK_COUNT, BLOCK_SIZE)]

        # Only the last path element of the name is hashed, so the stored name is one segment
        name = base_name(file_name)
        name_hash = hashlib.md5(name.encode()).hexdigest()
        return PathKey(f"{storage_root}/{'/'.join(blocks)}", name_hash + file_extension(name))

    def __repr__(self) -> str:
        return f"CASPathTransform(separator={self.separator!r})"


_TRANSFORMS: dict[str, type[DefaultPathTransform] | type[CASPathTransform]] = {
    "default": DefaultPathTransform,
    "cas": CASPathTransform,
}


def get_path_transform(name: str, separator: str = DEFAULT_SEPARATOR) -> PathTransform:
    """Build the transform registered under *name* (``"cas"`` or ``"default"``).

    Raises:
        ValueError: If *name* is unknown.
    """
    transform_cls = _TRANSFORMS.get(name.strip().lower())
    if transform_cls is None:
        raise ValueError(f"Unknown path transform: {name!r}. Use 'cas' or 'default'.")
    return transform_cls(separator)
