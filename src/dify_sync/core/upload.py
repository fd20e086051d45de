"""
Upload engine: local files to remote documents.

Files are processed strictly one at a time so remote load stays bounded and
progress reporting stays deterministic.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

import structlog

from dify_sync.errors import error_message
from dify_sync.models import LocalFile, UploadResult, UploadStats, UploadStatus

if TYPE_CHECKING:
    import asyncio

log = structlog.get_logger()

UploadProgressCallback = Callable[[str, int], None]
FileCompleteCallback = Callable[[UploadResult], None]

CANCELLED_MESSAGE = "Cancelled"


class CreatedDocument(Protocol):
    """Anything returned by a create call that carries the new document id."""

    @property
    def id(self) -> str: ...


def _document_id(created: CreatedDocument | Mapping[str, str]) -> str:
    """Id of a created document, whether returned as a model or a mapping."""
    if isinstance(created, Mapping):
        return created["id"]
    return created.id


@dataclass(frozen=True)
class UploadDependencies:
    """I/O collaborators for the upload engine."""

    read_file_content: Callable[[str], Awaitable[str]]
    create_document: Callable[[str, str], Awaitable[CreatedDocument | Mapping[str, str]]]


class UploadProcessor:
    """Uploads local files as new remote documents."""

    def __init__(self, deps: UploadDependencies) -> None:
        self.deps = deps

    async def process_file(
        self,
        file: LocalFile,
        on_progress: UploadProgressCallback | None = None,
    ) -> UploadResult:
        """
        Upload a single file.

        Progress is reported as 0 (started), 25 (reading), 50 (creating the
        remote document) and 100 (done). Failures never raise; they come back
        as an error result.

        Args:
            file: File to upload.
            on_progress: Optional callback receiving (file name, percent).

        Returns:
            UploadResult for this file.

        """

        def report(percent: int) -> None:
            if on_progress is not None:
                on_progress(file.name, percent)

        try:
            report(0)
            report(25)
            content = await self.deps.read_file_content(file.path)

            report(50)
            created = await self.deps.create_document(file.name, content)
            document_id = _document_id(created)

            report(100)
        except Exception as e:
            log.warning("upload_failed", file_name=file.name, error=error_message(e))
            return UploadResult(
                file_name=file.name,
                status=UploadStatus.ERROR,
                error=error_message(e),
            )

        log.info("upload_succeeded", file_name=file.name, document_id=document_id)
        return UploadResult(
            file_name=file.name,
            status=UploadStatus.SUCCESS,
            document_id=document_id,
        )

    async def process_batch(
        self,
        files: Sequence[LocalFile],
        on_progress: UploadProgressCallback | None = None,
        on_file_complete: FileCompleteCallback | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> list[UploadResult]:
        """
        Upload files sequentially.

        Returns exactly one result per input file, in input order. Once
        `cancel_event` is set, files not yet started are reported as cancelled.
        """
        results: list[UploadResult] = []
        log.info("batch_upload_started", file_count=len(files))

        for file in files:
            if cancel_event is not None and cancel_event.is_set():
                result = UploadResult(
                    file_name=file.name,
                    status=UploadStatus.ERROR,
                    error=CANCELLED_MESSAGE,
                )
            else:
                result = await self.process_file(file, on_progress)

            results.append(result)
            if on_file_complete is not None:
                on_file_complete(result)

        stats = calculate_upload_stats(results)
        log.info(
            "batch_upload_finished",
            total=stats.total,
            successful=stats.successful,
            failed=stats.failed,
        )
        return results


def create_upload_processor(
    deps: UploadDependencies,
) -> Callable[..., Awaitable[UploadResult]]:
    """Return a coroutine function that uploads one file."""
    return UploadProcessor(deps).process_file


def create_batch_upload_processor(
    deps: UploadDependencies,
) -> Callable[..., Awaitable[list[UploadResult]]]:
    """Return a coroutine function that uploads a list of files in order."""
    return UploadProcessor(deps).process_batch


def calculate_upload_stats(results: Sequence[UploadResult]) -> UploadStats:
    """Summarize a batch of upload results."""
    stats = UploadStats(total=len(results))
    for result in results:
        if result.status == UploadStatus.SUCCESS:
            stats.successful += 1
        else:
            stats.failed += 1
            if result.error:
                stats.errors.append(f"{result.file_name}: {result.error}")
    return stats
