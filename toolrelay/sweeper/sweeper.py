"""Periodic eviction of stale pending calls."""

import asyncio
from collections import deque
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta

from pydantic import BaseModel, Field

from toolrelay.config.models import SweeperConfig
from toolrelay.correlation.outbox import ResultOutbox
from toolrelay.observability.logging import get_logger
from toolrelay.observability.metrics import SWEEP_EVICTIONS
from toolrelay.pending.models import PendingCall, PendingCallStatus
from toolrelay.pending.store import PendingCallStore

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SweepReport(BaseModel):
    """What one sweep removed."""

    evicted: list[str] = Field(default_factory=list, description="Expired call ids")
    archived: list[str] = Field(default_factory=list, description="Failed call ids archived")
    remaining: int = 0
    outbox_pruned: int = 0
    processed_pruned: int = 0
    swept_at: datetime = Field(default_factory=_utcnow)


class CleanupSweeper:
    """TTL sweep over the pending-call store.

    Any entry older than max_age is evicted. A failed entry older than
    failed_max_age is archived. Pending entries younger than max_age are
    never touched. Failed entries removed either way are kept in a bounded
    archive for inspection.
    """

    def __init__(
        self,
        store: PendingCallStore,
        outbox: ResultOutbox,
        config: SweeperConfig,
        clock: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._store = store
        self._outbox = outbox
        self._config = config
        self._clock = clock
        self._sleep = sleep
        self._archive: deque[PendingCall] = deque(maxlen=config.archive_size)
        self._running = False
        self._loop_task: asyncio.Task | None = None
        self.last_report: SweepReport | None = None

    @property
    def running(self) -> bool:
        return self._running

    @property
    def archived(self) -> list[PendingCall]:
        return list(self._archive)

    async def start(self) -> None:
        """Start the background sweep loop."""
        if self._running:
            logger.warning("sweeper_already_running")
            return

        self._running = True
        self._loop_task = asyncio.create_task(self._sweep_loop())
        logger.info(
            "sweeper_started",
            interval_seconds=self._config.interval_seconds,
            max_age_seconds=self._config.max_age_seconds,
            failed_max_age_seconds=self._config.failed_max_age_seconds,
        )

    async def stop(self) -> None:
        """Stop the background sweep loop."""
        if not self._running:
            return

        self._running = False

        if self._loop_task:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
            self._loop_task = None

        logger.info("sweeper_stopped")

    async def _sweep_loop(self) -> None:
        while self._running:
            await self._sleep(self._config.interval_seconds)
            try:
                await self.sweep()
            except Exception as e:
                logger.error("sweep_failed", error=str(e), error_type=type(e).__name__)

    async def sweep(self, now: datetime | None = None) -> SweepReport:
        """Remove stale entries once."""
        now = now or self._clock()
        max_age = timedelta(seconds=self._config.max_age_seconds)
        failed_max_age = timedelta(seconds=self._config.failed_max_age_seconds)

        def stale(call: PendingCall) -> bool:
            age = now - call.created_at
            if age > max_age:
                return True
            return call.status == PendingCallStatus.FAILED and age > failed_max_age

        removed = await self._store.remove_where(stale)

        report = SweepReport(swept_at=now)
        for call in removed:
            if now - call.created_at > max_age:
                report.evicted.append(call.id)
                SWEEP_EVICTIONS.labels(reason="expired").inc()
            else:
                report.archived.append(call.id)
                SWEEP_EVICTIONS.labels(reason="failed").inc()
            if call.status == PendingCallStatus.FAILED:
                self._archive.append(call)

        report.outbox_pruned = len(self._outbox.prune(now - max_age))
        report.processed_pruned = await self._store.prune_processed(now - max_age)
        report.remaining = len(await self._store.list_all())
        self.last_report = report

        if removed or report.outbox_pruned:
            logger.info(
                "sweep_completed",
                evicted=len(report.evicted),
                archived=len(report.archived),
                outbox_pruned=report.outbox_pruned,
                remaining=report.remaining,
            )
        else:
            logger.debug("sweep_completed", remaining=report.remaining)
        return report
