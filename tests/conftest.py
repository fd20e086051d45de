"""Pytest configuration and fixtures."""

import os

import pytest

from dify_sync.models import LocalFile, RemoteDocument


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Keep tests away from the user's environment and settings file."""
    for name in [key for key in os.environ if key.startswith("DIFY_")]:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("DIFY_SYNC_SETTINGS_FILE", str(tmp_path / "settings" / "settings.json"))
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def sample_files():
    """Three local files selected for upload."""
    return [
        LocalFile(name="file1.txt", path="/path/file1.txt"),
        LocalFile(name="file2.txt", path="/path/file2.txt"),
        LocalFile(name="file3.txt", path="/path/file3.txt"),
    ]


@pytest.fixture
def sample_documents():
    """Three remote documents selected for download."""
    return [
        RemoteDocument(id="doc-1", name="notes.md"),
        RemoteDocument(id="doc-2", name="guides/setup.txt"),
        RemoteDocument(id="doc-3", name="README"),
    ]
