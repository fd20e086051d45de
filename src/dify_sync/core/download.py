"""
Download engine: remote documents to local files.

Documents are processed strictly one at a time. When a target file already
exists the overwrite handler decides, and the download waits for that
decision before fetching anything.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

import structlog

from dify_sync.core.document import combine_segments, generate_file_path
from dify_sync.errors import error_message
from dify_sync.models import (
    ConflictDecision,
    DocumentSegment,
    DownloadResult,
    DownloadStats,
    DownloadStatus,
    FileConflict,
    RemoteDocument,
)

if TYPE_CHECKING:
    import asyncio

log = structlog.get_logger()

DownloadProgressCallback = Callable[[int, int, str], None]
DocumentCompleteCallback = Callable[[DownloadResult], None]

CANCELLED_MESSAGE = "Cancelled"


class OverwriteHandler(Protocol):
    """Decides whether an existing local file gets overwritten."""

    async def on_conflict(self, conflict: FileConflict) -> ConflictDecision | str: ...


@dataclass(frozen=True)
class DownloadDependencies:
    """I/O collaborators for the download engine."""

    fetch_document_segments: Callable[[str], Awaitable[list[DocumentSegment]]]
    check_file_exists: Callable[[str], Awaitable[bool]]
    save_file: Callable[[str, str, bool], Awaitable[None]]


class DownloadProcessor:
    """Writes remote documents to local files."""

    def __init__(self, deps: DownloadDependencies) -> None:
        self.deps = deps

    async def process_document(
        self,
        document: RemoteDocument,
        output_dir: str,
        overwrite_handler: OverwriteHandler,
    ) -> DownloadResult:
        """
        Download a single document.

        Args:
            document: Remote document to download.
            output_dir: Directory the document's path is resolved against.
            overwrite_handler: Asked when the target file already exists.

        Returns:
            DownloadResult; errors are reported in the result, never raised.

        """
        try:
            file_path = generate_file_path(document.name, output_dir)
            file_exists = await self.deps.check_file_exists(file_path)

            if file_exists:
                conflict = FileConflict(
                    document_id=document.id,
                    document_name=document.name,
                    file_path=file_path,
                )
                decision = ConflictDecision(await overwrite_handler.on_conflict(conflict))
                if decision == ConflictDecision.SKIP:
                    log.info("download_skipped", document_id=document.id, file_path=file_path)
                    return DownloadResult(
                        document_id=document.id,
                        document_name=document.name,
                        status=DownloadStatus.SKIPPED,
                    )

            segments = await self.deps.fetch_document_segments(document.id)
            content = combine_segments(segments)
            await self.deps.save_file(file_path, content, file_exists)

        except Exception as e:
            log.warning("download_failed", document_id=document.id, error=error_message(e))
            return DownloadResult(
                document_id=document.id,
                document_name=document.name,
                status=DownloadStatus.ERROR,
                error=error_message(e),
            )

        log.info(
            "download_succeeded",
            document_id=document.id,
            file_path=file_path,
            overwritten=file_exists,
        )
        return DownloadResult(
            document_id=document.id,
            document_name=document.name,
            status=DownloadStatus.SUCCESS,
        )

    async def process_batch(
        self,
        documents: Sequence[RemoteDocument],
        output_dir: str,
        overwrite_handler: OverwriteHandler,
        on_progress: DownloadProgressCallback | None = None,
        on_document_complete: DocumentCompleteCallback | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> list[DownloadResult]:
        """
        Download documents sequentially.

        `on_progress(index, total, name)` fires before each document with its
        0-based index. Returns one result per document, in input order.
        """
        results: list[DownloadResult] = []
        total = len(documents)
        log.info("batch_download_started", document_count=total, output_dir=output_dir)

        for index, document in enumerate(documents):
            if cancel_event is not None and cancel_event.is_set():
                result = DownloadResult(
                    document_id=document.id,
                    document_name=document.name,
                    status=DownloadStatus.ERROR,
                    error=CANCELLED_MESSAGE,
                )
            else:
                if on_progress is not None:
                    on_progress(index, total, document.name)
                result = await self.process_document(document, output_dir, overwrite_handler)

            results.append(result)
            if on_document_complete is not None:
                on_document_complete(result)

        stats = calculate_download_stats(results)
        log.info(
            "batch_download_finished",
            total=stats.total,
            successful=stats.successful,
            skipped=stats.skipped,
            failed=stats.failed,
        )
        return results


def create_download_processor(
    deps: DownloadDependencies,
) -> Callable[..., Awaitable[DownloadResult]]:
    """Return a coroutine function that downloads one document."""
    return DownloadProcessor(deps).process_document


def create_batch_download_processor(
    deps: DownloadDependencies,
) -> Callable[..., Awaitable[list[DownloadResult]]]:
    """Return a coroutine function that downloads a list of documents in order."""
    return DownloadProcessor(deps).process_batch


def calculate_download_stats(results: Sequence[DownloadResult]) -> DownloadStats:
    """Summarize a batch of download results."""
    stats = DownloadStats(total=len(results))
    for result in results:
        if result.status == DownloadStatus.SUCCESS:
            stats.successful += 1
        elif result.status == DownloadStatus.SKIPPED:
            stats.skipped += 1
        else:
            stats.failed += 1
            if result.error:
                stats.errors.append(f"{result.document_name}: {result.error}")
    return stats
