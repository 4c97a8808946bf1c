"""Shared fixtures for the test suite."""

import pytest

from .pfs_builder import SAMPLE_FILES, build_pfs


@pytest.fixture
def write_archive(tmp_path):
    """Return a function writing archive bytes to a temp file."""

    def _write(data: bytes, name: str = "test.s3d"):
        path = tmp_path / name
        path.write_bytes(data)
        return path

    return _write


@pytest.fixture
def sample_archive(write_archive):
    return write_archive(build_pfs(SAMPLE_FILES))
