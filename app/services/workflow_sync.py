"""
Workflow synchronization: fetch both sides, diff, apply.

Only one reconciliation runs at a time. A caller that asks for a sync while
one is already running waits for that run and receives its result.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Callable

from sqlalchemy.orm import Session

from app.core.exceptions import TransportError
from app.integrations.universal_loader import RemoteWorkflowClient
from app.schemas.workflow import RemoteWorkflow, SyncResult
from app.services import reconciliation
from app.services.workflows_service import WorkflowsService

logger = logging.getLogger(__name__)


class SyncState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    DIFFING = "diffing"
    APPLYING = "applying"
    FAILED = "failed"


class SyncOrchestrator:
    def __init__(
        self,
        client: RemoteWorkflowClient,
        session_factory: Callable[[], Session],
        remote_timeout: float = 30.0,
    ):
        self.client = client
        self.session_factory = session_factory
        self.remote_timeout = remote_timeout
        self.state = SyncState.IDLE
        self.last_result: SyncResult | None = None
        self.last_synced_at: datetime | None = None
        self.last_error: str | None = None
        self._inflight: asyncio.Task[SyncResult] | None = None

    @property
    def in_progress(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    async def sync_once(self) -> SyncResult:
        """Run one reconciliation, or join the one already running."""
        if self.in_progress:
            logger.info("Workflow sync already in progress; waiting for its result")
        else:
            self._inflight = asyncio.create_task(self._run())
            self._inflight.add_done_callback(self._on_done)
        # Shielded so a cancelled caller does not abort a run others are waiting on.
        return await asyncio.shield(self._inflight)

    def status(self) -> dict:
        return {
            "state": self.state.value,
            "in_progress": self.in_progress,
            "last_synced_at": self.last_synced_at.isoformat() if self.last_synced_at else None,
            "last_result": self.last_result.model_dump() if self.last_result else None,
            "last_error": self.last_error,
        }

    async def _run(self) -> SyncResult:
        db = self.session_factory()
        repository = WorkflowsService(db)
        try:
            self._set_state(SyncState.FETCHING)
            remote, local = await self._fetch(repository)

            self._set_state(SyncState.DIFFING)
            changes = reconciliation.diff(remote, local)

            self._set_state(SyncState.APPLYING)
            await asyncio.to_thread(reconciliation.apply, repository, changes)

            result = SyncResult(**changes.counts())
            self.last_result = result
            self.last_synced_at = datetime.now(timezone.utc)
            self.last_error = None
            return result
        except Exception as exc:
            self._set_state(SyncState.FAILED)
            self.last_error = str(exc)
            raise
        finally:
            db.close()
            self._set_state(SyncState.IDLE)

    async def _fetch(self, repository: WorkflowsService) -> tuple[list[RemoteWorkflow], list]:
        # Both fetches are awaited to completion before the session is released.
        remote, local = await asyncio.gather(
            self._fetch_remote(),
            asyncio.to_thread(repository.get_all_workflows),
            return_exceptions=True,
        )
        for outcome in (remote, local):
            if isinstance(outcome, BaseException):
                raise outcome
        return remote, local

    async def _fetch_remote(self) -> list[RemoteWorkflow]:
        try:
            return await asyncio.wait_for(self.client.get_workflows(), timeout=self.remote_timeout)
        except asyncio.TimeoutError as exc:
            logger.error("Fetching remote workflows timed out after %ss", self.remote_timeout)
            raise TransportError(f"Fetching remote workflows timed out after {self.remote_timeout}s") from exc

    def _set_state(self, state: SyncState) -> None:
        logger.debug("Workflow sync state %s -> %s", self.state.value, state.value)
        self.state = state

    def _on_done(self, task: asyncio.Task) -> None:
        if self._inflight is task:
            self._inflight = None
        # Mark the outcome as observed; callers still receive it through their await.
        if not task.cancelled():
            task.exception()


class WorkflowSyncScheduler:
    """Runs the orchestrator on a fixed delay after each completed sync."""

    def __init__(self, orchestrator: SyncOrchestrator, interval_seconds: float = 1800.0):
        self.orchestrator = orchestrator
        self.interval_seconds = interval_seconds
        self.iterations = 0
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start sync loop as background task."""
        if self.running:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run_loop())
        logger.info("WorkflowSyncScheduler started (interval %ss)", self.interval_seconds)

    async def stop(self) -> None:
        """Stop sync loop and wait for completion."""
        self._stop_event.set()
        if self._task:
            await self._task
        logger.info("WorkflowSyncScheduler stopped")

    async def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                result = await self.orchestrator.sync_once()
                logger.info(
                    "Workflow synchronization completed: inserted=%s deleted=%s updated=%s",
                    result.inserted,
                    result.deleted,
                    result.updated,
                )
            except Exception as exc:
                logger.exception("Error occurred during workflow synchronization: %s", exc)
            finally:
                self.iterations += 1
            await self._wait_for_next_run()

    async def _wait_for_next_run(self) -> None:
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
        except asyncio.TimeoutError:
            pass
