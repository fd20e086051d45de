"""
Local filesystem access for uploads and downloads.

Async reads and writes go through aiofiles so the event loop stays free while
a conflict prompt is waiting on the user.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

import aiofiles
import aiofiles.os
import structlog

from dify_sync.core.files import SUPPORTED_EXTENSIONS, get_file_extension
from dify_sync.errors import FileAlreadyExistsError
from dify_sync.models import LocalFile

log = structlog.get_logger()

# Directories never scanned for uploads
IGNORED_DIRECTORIES = {
    "node_modules",
    "dist",
    "build",
    "__pycache__",
}


def _should_skip_dir(name: str) -> bool:
    return name.startswith(".") or name in IGNORED_DIRECTORIES


async def get_local_files(
    dir_path: str | Path,
    extensions: Iterable[str] = SUPPORTED_EXTENSIONS,
    recursive: bool = False,
) -> list[LocalFile]:
    """
    List uploadable files in a directory.

    Args:
        dir_path: Directory to scan.
        extensions: Accepted extensions (lower-case, with dot).
        recursive: Descend into subdirectories (hidden and build directories
            are skipped).

    Returns:
        Files sorted by name. When recursive, a nested file's name is its
        '/'-joined path relative to `dir_path`.

    """
    base = Path(dir_path)
    allowed = {ext.lower() for ext in extensions}
    files: list[LocalFile] = []

    async def scan(directory: Path) -> None:
        with await aiofiles.os.scandir(directory) as iterator:
            entries = list(iterator)
        for entry in entries:
            entry_path = Path(entry.path)
            if entry.is_file():
                if get_file_extension(entry.name) not in allowed:
                    continue
                stat = entry.stat()
                name = entry_path.relative_to(base).as_posix() if recursive else entry.name
                files.append(LocalFile(name=name, path=str(entry_path), size=stat.st_size))
            elif entry.is_dir() and recursive and not _should_skip_dir(entry.name):
                await scan(entry_path)

    try:
        await scan(base)
    except OSError as e:
        log.error("directory_read_failed", path=str(base), error=str(e))
        raise

    return sorted(files, key=lambda file: file.name)


async def get_directories(dir_path: str | Path) -> list[str]:
    """List visible, non-build subdirectory names of a directory."""
    try:
        with await aiofiles.os.scandir(dir_path) as iterator:
            entries = list(iterator)
    except OSError as e:
        log.error("directory_read_failed", path=str(dir_path), error=str(e))
        raise
    return sorted(
        entry.name for entry in entries if entry.is_dir() and not _should_skip_dir(entry.name)
    )


async def read_file_content(file_path: str) -> str:
    """Read a text file's full content."""
    try:
        async with aiofiles.open(file_path, encoding="utf-8") as f:
            return await f.read()
    except OSError as e:
        log.error("file_read_failed", path=file_path, error=str(e))
        raise


async def check_file_exists(file_path: str) -> bool:
    """
    Check whether a path exists.

    Only absence returns False; other I/O failures propagate.
    """
    try:
        await aiofiles.os.stat(file_path)
    except FileNotFoundError:
        return False
    return True


async def save_file(file_path: str, content: str, overwrite: bool) -> None:
    """
    Write text to a file, creating parent directories.

    Args:
        file_path: Destination path.
        content: Text to write.
        overwrite: Replace an existing file. When False the file is created
            exclusively.

    Raises:
        FileAlreadyExistsError: If the file exists and overwrite is False.

    """
    parent = Path(file_path).parent
    await aiofiles.os.makedirs(parent, exist_ok=True)

    mode = "w" if overwrite else "x"
    try:
        async with aiofiles.open(file_path, mode, encoding="utf-8") as f:
            await f.write(content)
    except FileExistsError as e:
        raise FileAlreadyExistsError(file_path) from e

    log.debug("file_written", path=file_path, chars=len(content), overwrite=overwrite)


def format_file_size(size: int) -> str:
    """Human-readable size, e.g. '1.5 KB'."""
    units = ["Bytes", "KB", "MB", "GB"]
    value = float(max(size, 0))
    index = 0
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    return f"{round(value, 2):g} {units[index]}"
