"""Observability: structured logging."""

from dify_sync.observability.logging import configure_logging

__all__ = [
    "configure_logging",
]
