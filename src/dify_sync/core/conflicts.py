"""
Overwrite-conflict resolution between a running batch download and a person.

The batch download runs unattended, but an existing local file needs a human
decision. `ConflictResolver` holds at most one pending request: the download
suspends on an `asyncio.Future` while the interactive side reads the conflict
(`pending` or `wait_for_conflict()`) and answers it with `resolve()`. A single
slot is enough because batch downloads are strictly sequential.
"""

from __future__ import annotations

import asyncio

import structlog

from dify_sync.models import ConflictDecision, FileConflict

log = structlog.get_logger()


class ConflictResolver:
    """OverwriteHandler backed by a single pending decision slot."""

    def __init__(
        self,
        force_overwrite: bool = False,
        timeout: float | None = None,
    ) -> None:
        """
        Initialize resolver.

        Args:
            force_overwrite: Overwrite every conflict without asking.
            timeout: Seconds to wait for a decision before skipping the file.
                None waits indefinitely.

        """
        self.force_overwrite = force_overwrite
        self.timeout = timeout
        self._standing: ConflictDecision | None = None
        self._conflict: FileConflict | None = None
        self._future: asyncio.Future[ConflictDecision] | None = None
        self._requested = asyncio.Event()

    @property
    def standing_decision(self) -> ConflictDecision | None:
        """Decision applied to every further conflict, if one was set."""
        if self.force_overwrite:
            return ConflictDecision.OVERWRITE
        return self._standing

    @property
    def pending(self) -> FileConflict | None:
        """Conflict currently waiting for a decision."""
        if self._future is None or self._future.done():
            return None
        return self._conflict

    async def on_conflict(self, conflict: FileConflict) -> ConflictDecision:
        """
        Decide what to do with an existing file.

        Resolves immediately under a standing decision; otherwise publishes the
        conflict and waits for `resolve()`.
        """
        standing = self.standing_decision
        if standing is not None:
            log.debug(
                "conflict_auto_resolved",
                document_id=conflict.document_id,
                decision=standing.value,
            )
            return standing

        future: asyncio.Future[ConflictDecision] = asyncio.get_running_loop().create_future()
        self._conflict = conflict
        self._future = future
        self._requested.set()
        log.info("conflict_pending", document_id=conflict.document_id, file_path=conflict.file_path)

        try:
            if self.timeout is None:
                return await future
            return await asyncio.wait_for(future, self.timeout)
        except TimeoutError:
            log.warning(
                "conflict_timed_out",
                document_id=conflict.document_id,
                timeout=self.timeout,
            )
            return ConflictDecision.SKIP
        finally:
            self._requested.clear()
            self._conflict = None
            self._future = None

    async def wait_for_conflict(self) -> FileConflict:
        """Wait until a conflict is pending and return it."""
        while True:
            await self._requested.wait()
            conflict = self.pending
            if conflict is not None:
                return conflict
            # Slot was emptied between the signal and this wake-up
            self._requested.clear()

    def resolve(
        self,
        decision: ConflictDecision | str,
        apply_to_all: bool = False,
        conflict: FileConflict | None = None,
    ) -> bool:
        """
        Answer the pending conflict.

        Args:
            decision: 'overwrite' or 'skip'.
            apply_to_all: Also use this decision for every later conflict.
            conflict: The conflict being answered, as returned by
                `wait_for_conflict()`. An answer for a conflict that is no
                longer pending (e.g. one that timed out) is ignored.

        Returns:
            True if a pending conflict was resolved, False otherwise.

        """
        decision = ConflictDecision(decision)
        future = self._future
        if future is None or future.done():
            log.warning("conflict_resolve_ignored", decision=decision.value)
            return False
        if conflict is not None and conflict is not self._conflict:
            log.warning(
                "conflict_resolve_stale",
                document_id=conflict.document_id,
                decision=decision.value,
            )
            return False

        if apply_to_all:
            self._standing = decision
        future.set_result(decision)
        log.info(
            "conflict_resolved",
            document_id=self._conflict.document_id if self._conflict else None,
            decision=decision.value,
            apply_to_all=apply_to_all,
        )
        return True

    def cancel(self) -> None:
        """Skip the pending conflict and every later one."""
        self.force_overwrite = False
        self._standing = ConflictDecision.SKIP
        future = self._future
        if future is not None and not future.done():
            future.set_result(ConflictDecision.SKIP)
