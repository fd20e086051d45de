"""Upload/download processing engine."""

from dify_sync.core.conflicts import ConflictResolver
from dify_sync.core.document import combine_segments, generate_file_path, sanitize_file_name
from dify_sync.core.download import (
    DownloadDependencies,
    DownloadProcessor,
    OverwriteHandler,
    calculate_download_stats,
    create_batch_download_processor,
    create_download_processor,
)
from dify_sync.core.upload import (
    UploadDependencies,
    UploadProcessor,
    calculate_upload_stats,
    create_batch_upload_processor,
    create_upload_processor,
)

__all__ = [
    "ConflictResolver",
    "DownloadDependencies",
    "DownloadProcessor",
    "OverwriteHandler",
    "UploadDependencies",
    "UploadProcessor",
    "calculate_download_stats",
    "calculate_upload_stats",
    "combine_segments",
    "create_batch_download_processor",
    "create_batch_upload_processor",
    "create_download_processor",
    "create_upload_processor",
    "generate_file_path",
    "sanitize_file_name",
]
