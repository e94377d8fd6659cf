"""Shared fixtures for the uploader test suite."""

from __future__ import annotations

import pytest

from fakes import GatedStore, RecordingObserver
from imghost.config import Settings


@pytest.fixture
def store() -> GatedStore:
    return GatedStore()


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        owner="octo",
        repo="pics",
        branch="main",
        token="t0ken",
        root_dir="images",
        target_dir="images",
    )


@pytest.fixture
def png_files(tmp_path):
    """Three small image files on disk."""
    paths = []
    for index in range(3):
        path = tmp_path / f"shot {index}.png"
        _ = path.write_bytes(b"\x89PNG" + bytes([index]) * 100)
        paths.append(path)
    return paths
