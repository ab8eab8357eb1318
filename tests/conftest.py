# SPDX-License-Identifier: MIT
"""Shared pytest fixtures for casfs tests."""

import pathlib

import pytest

from casfs.storage.local import LocalStorageBackend, StorageOptions
from casfs.storage.transforms import CASPathTransform, DefaultPathTransform


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def storage_root(tmp_path: pathlib.Path) -> pathlib.Path:
    """Create a temporary storage root."""
    root = tmp_path / "store"
    root.mkdir()
    return root


@pytest.fixture
def cas_storage(storage_root: pathlib.Path) -> LocalStorageBackend:
    """Backend using the hash-sharded layout, built fresh for each test."""
    return LocalStorageBackend(StorageOptions(storage_root=str(storage_root), path_transform=CASPathTransform()))


@pytest.fixture
def default_storage(storage_root: pathlib.Path) -> LocalStorageBackend:
    """Backend using the flat ``<root>/<owner>/<file name>`` layout."""
    return LocalStorageBackend(StorageOptions(storage_root=str(storage_root), path_transform=DefaultPathTransform()))
