"""Document path and content helpers for downloads."""

from __future__ import annotations

import re
from collections.abc import Iterable

from dify_sync.models import DocumentSegment

# Characters that are unsafe inside a single path segment
_UNSAFE_CHARS = re.compile(r'[\\?%*:|"<>]')

SEGMENT_SEPARATOR = "\n\n"


def sanitize_file_name(name: str) -> str:
    """
    Turn a document name into a safe relative file path.

    Forward slashes are kept as directory separators. Empty and '.' segments
    are dropped and '..' never climbs above the root, so the result cannot
    escape the output directory. Extensions are left untouched.

    Args:
        name: Document name, possibly containing '/'.

    Returns:
        Sanitized relative path, or '' when nothing usable remains.

    """
    parts: list[str] = []
    for segment in name.strip().split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if parts:
                parts.pop()
            continue
        parts.append(_UNSAFE_CHARS.sub("-", segment))
    return "/".join(parts)


def generate_file_path(document_name: str, output_dir: str) -> str:
    """
    Build the local path a document downloads to.

    Raises:
        ValueError: If the name sanitizes to an empty path.

    """
    sanitized = sanitize_file_name(document_name)
    if not sanitized:
        raise ValueError(f"Invalid document name: {document_name!r}")
    return f"{output_dir.rstrip('/')}/{sanitized}"


def combine_segments(segments: Iterable[DocumentSegment]) -> str:
    """Join segment contents in position order (ties keep input order)."""
    ordered = sorted(segments, key=lambda segment: segment.position)
    return SEGMENT_SEPARATOR.join(segment.content for segment in ordered)
