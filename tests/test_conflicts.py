"""Tests for the overwrite-conflict handshake."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from dify_sync.core.conflicts import ConflictResolver
from dify_sync.core.download import DownloadDependencies, DownloadProcessor
from dify_sync.models import (
    ConflictDecision,
    DocumentSegment,
    DownloadStatus,
    FileConflict,
    RemoteDocument,
)


def make_conflict(document_id="doc-1"):
    return FileConflict(
        document_id=document_id,
        document_name=f"{document_id}.txt",
        file_path=f"/out/{document_id}.txt",
    )


class TestConflictResolver:
    """Tests for ConflictResolver."""

    @pytest.mark.asyncio
    async def test_resolve_pending_conflict(self):
        """The waiting download receives the decision given to resolve()."""
        resolver = ConflictResolver()
        task = asyncio.create_task(resolver.on_conflict(make_conflict()))

        conflict = await resolver.wait_for_conflict()
        assert conflict == make_conflict()
        assert resolver.pending == conflict

        assert resolver.resolve(ConflictDecision.OVERWRITE) is True
        assert await task == ConflictDecision.OVERWRITE
        assert resolver.pending is None

    @pytest.mark.asyncio
    async def test_one_off_decision_does_not_stick(self):
        """Without apply_to_all the next conflict asks again."""
        resolver = ConflictResolver()
        first = asyncio.create_task(resolver.on_conflict(make_conflict("doc-1")))
        await resolver.wait_for_conflict()
        resolver.resolve("skip")
        assert await first == ConflictDecision.SKIP

        second = asyncio.create_task(resolver.on_conflict(make_conflict("doc-2")))
        conflict = await resolver.wait_for_conflict()

        assert conflict.document_id == "doc-2"
        assert resolver.standing_decision is None
        resolver.resolve("overwrite")
        assert await second == ConflictDecision.OVERWRITE

    @pytest.mark.asyncio
    async def test_apply_to_all(self):
        """An apply-to-all answer resolves later conflicts without asking."""
        resolver = ConflictResolver()
        first = asyncio.create_task(resolver.on_conflict(make_conflict("doc-1")))
        await resolver.wait_for_conflict()
        resolver.resolve(ConflictDecision.OVERWRITE, apply_to_all=True)
        await first

        assert resolver.standing_decision == ConflictDecision.OVERWRITE
        assert await resolver.on_conflict(make_conflict("doc-2")) == ConflictDecision.OVERWRITE
        assert resolver.pending is None

    @pytest.mark.asyncio
    async def test_force_overwrite(self):
        """Force mode never publishes a conflict."""
        resolver = ConflictResolver(force_overwrite=True)

        assert await resolver.on_conflict(make_conflict()) == ConflictDecision.OVERWRITE
        assert resolver.pending is None

    @pytest.mark.asyncio
    async def test_timeout_skips(self):
        """An unanswered conflict is skipped once the timeout expires."""
        resolver = ConflictResolver(timeout=0.01)

        assert await resolver.on_conflict(make_conflict()) == ConflictDecision.SKIP
        assert resolver.pending is None
        assert resolver.resolve(ConflictDecision.OVERWRITE) is False

    @pytest.mark.asyncio
    async def test_resolve_without_pending(self):
        """Resolving with nothing pending is ignored."""
        resolver = ConflictResolver()

        assert resolver.resolve(ConflictDecision.OVERWRITE, apply_to_all=True) is False
        assert resolver.standing_decision is None

    @pytest.mark.asyncio
    async def test_second_resolve_is_ignored(self):
        """Only the first answer to a conflict counts."""
        resolver = ConflictResolver()
        task = asyncio.create_task(resolver.on_conflict(make_conflict()))
        await resolver.wait_for_conflict()

        assert resolver.resolve(ConflictDecision.SKIP) is True
        assert resolver.resolve(ConflictDecision.OVERWRITE) is False
        assert await task == ConflictDecision.SKIP

    @pytest.mark.asyncio
    async def test_cancel(self):
        """Cancel skips the pending conflict and all later ones."""
        resolver = ConflictResolver()
        task = asyncio.create_task(resolver.on_conflict(make_conflict("doc-1")))
        await resolver.wait_for_conflict()

        resolver.cancel()

        assert await task == ConflictDecision.SKIP
        assert await resolver.on_conflict(make_conflict("doc-2")) == ConflictDecision.SKIP

    @pytest.mark.asyncio
    async def test_resolve_matching_conflict(self):
        """Naming the pending conflict resolves it."""
        resolver = ConflictResolver()
        task = asyncio.create_task(resolver.on_conflict(make_conflict("doc-1")))
        conflict = await resolver.wait_for_conflict()

        assert resolver.resolve("overwrite", conflict=conflict) is True
        assert await task == ConflictDecision.OVERWRITE

    @pytest.mark.asyncio
    async def test_resolve_other_conflict_is_ignored(self):
        """An answer naming a different conflict leaves the pending one waiting."""
        resolver = ConflictResolver()
        task = asyncio.create_task(resolver.on_conflict(make_conflict("doc-2")))
        await resolver.wait_for_conflict()

        assert resolver.resolve("overwrite", conflict=make_conflict("doc-1")) is False
        assert not task.done()

        resolver.resolve("skip")
        assert await task == ConflictDecision.SKIP

    def test_invalid_decision(self):
        """Unknown decisions are rejected."""
        resolver = ConflictResolver()
        with pytest.raises(ValueError):
            resolver.resolve("maybe")


class TestConflictResolverWithDownloads:
    """The resolver driving a real batch download."""

    @pytest.mark.asyncio
    async def test_overwrite_all_answers_once(self):
        """After 'overwrite all' the rest of the batch runs without prompts."""
        deps = DownloadDependencies(
            fetch_document_segments=AsyncMock(
                return_value=[DocumentSegment(content="text", position=1)]
            ),
            check_file_exists=AsyncMock(return_value=True),
            save_file=AsyncMock(return_value=None),
        )
        documents = [RemoteDocument(id=f"doc-{i}", name=f"doc-{i}.txt") for i in range(3)]
        resolver = ConflictResolver()
        prompts = []

        batch = asyncio.create_task(
            DownloadProcessor(deps).process_batch(documents, "/out", resolver)
        )
        conflict = await resolver.wait_for_conflict()
        prompts.append(conflict.document_id)
        resolver.resolve(ConflictDecision.OVERWRITE, apply_to_all=True)

        results = await batch

        assert prompts == ["doc-0"]
        assert [r.status for r in results] == [DownloadStatus.SUCCESS] * 3
        assert all(c.args[2] is True for c in deps.save_file.await_args_list)

    @pytest.mark.asyncio
    async def test_late_answer_does_not_resolve_next_conflict(self):
        """An answer for a timed-out conflict is not applied to the one after it."""
        deps = DownloadDependencies(
            fetch_document_segments=AsyncMock(
                return_value=[DocumentSegment(content="text", position=1)]
            ),
            check_file_exists=AsyncMock(return_value=True),
            save_file=AsyncMock(return_value=None),
        )
        documents = [
            RemoteDocument(id="doc-1", name="a.txt"),
            RemoteDocument(id="doc-2", name="b.txt"),
        ]
        resolver = ConflictResolver(timeout=0.1)

        batch = asyncio.create_task(
            DownloadProcessor(deps).process_batch(documents, "/out", resolver)
        )
        first = await resolver.wait_for_conflict()
        await asyncio.sleep(0.15)

        assert resolver.pending is not None
        assert resolver.pending.document_id == "doc-2"
        assert resolver.resolve(ConflictDecision.OVERWRITE, conflict=first) is False

        second = await resolver.wait_for_conflict()
        assert resolver.resolve(ConflictDecision.SKIP, conflict=second) is True

        results = await batch

        assert [r.status for r in results] == [DownloadStatus.SKIPPED, DownloadStatus.SKIPPED]
        deps.save_file.assert_not_awaited()
