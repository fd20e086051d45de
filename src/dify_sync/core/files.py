"""Local file selection helpers for uploads."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path, PurePath

from dify_sync.models import LocalFile

# Plain-text formats the dataset accepts via create-by-text
SUPPORTED_EXTENSIONS = (".txt", ".md", ".csv", ".json")


def get_file_extension(file_name: str) -> str:
    """Lower-cased extension including the dot, or '' when there is none."""
    return PurePath(file_name).suffix.lower()


def is_supported_file(file_name: str, extensions: Iterable[str] = SUPPORTED_EXTENSIONS) -> bool:
    """Check whether a file name has an uploadable extension."""
    return get_file_extension(file_name) in tuple(extensions)


def filter_supported_files(file_names: Iterable[str]) -> list[str]:
    """Keep only uploadable file names, preserving order."""
    return [name for name in file_names if is_supported_file(name)]


def create_local_file(file_path: str | Path, base_path: str | Path) -> LocalFile:
    """
    Describe a file relative to the directory it was picked from.

    Args:
        file_path: Path of the file.
        base_path: Directory the selection started from.

    Returns:
        LocalFile whose name is the '/'-joined relative path.

    """
    path = Path(file_path)
    try:
        relative = path.relative_to(base_path).as_posix()
    except ValueError:
        relative = path.name
    return LocalFile(name=relative or path.name, path=str(path))
