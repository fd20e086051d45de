"""
dify-sync - Sync local text files with a Dify knowledge base.

Uploads local files as dataset documents and downloads documents back to
local files, asking before overwriting anything that already exists.
"""

from dify_sync.config import DifyConfig, Settings, build_config, resolve_settings
from dify_sync.core import (
    ConflictResolver,
    calculate_download_stats,
    calculate_upload_stats,
    create_batch_download_processor,
    create_batch_upload_processor,
)
from dify_sync.dify_client import DifyClient
from dify_sync.observability.logging import configure_logging

__version__ = "0.1.0"

__all__ = [
    "ConflictResolver",
    "DifyClient",
    "DifyConfig",
    "Settings",
    "build_config",
    "calculate_download_stats",
    "calculate_upload_stats",
    "configure_logging",
    "create_batch_download_processor",
    "create_batch_upload_processor",
    "resolve_settings",
]
