"""Shared exception types."""

from __future__ import annotations


class DifyError(Exception):
    """Error from the Dify API."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ConfigError(ValueError):
    """Required configuration is missing or invalid."""


class FileAlreadyExistsError(FileExistsError):
    """Target file exists and overwriting was not requested."""

    def __init__(self, path: str) -> None:
        super().__init__(f"File already exists: {path}")
        self.path = path


def error_message(exc: BaseException) -> str:
    """Message of an exception, falling back to its type name when empty."""
    return str(exc) or type(exc).__name__
