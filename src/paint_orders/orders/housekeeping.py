"""Periodic background sweeps: auto-archive stale completed orders, purge old rows.

Runs are not mutually excluded. An overlapping or repeated sweep is harmless
because each archive is a status-conditioned update and each purge is a
predicate-scoped delete.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from paint_orders.config import HousekeepingSettings
from paint_orders.orders.errors import ConflictError
from paint_orders.orders.models import ArchiveSweepResult, PurgeSweepResult
from paint_orders.orders.repository import OrderRepository
from paint_orders.orders.services import OrderService
from paint_orders.storage.common import utc_now

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _Sweep:
    name: str
    interval_seconds: float
    run: Callable[[], object]
    next_due: float = 0.0


class HousekeepingScheduler:
    """Drives the archive and purge sweeps on their own fixed periods."""

    def __init__(
        self,
        *,
        service: OrderService,
        repository: OrderRepository,
        settings: HousekeepingSettings | None = None,
        clock: Callable[[], datetime] = utc_now,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self.service = service
        self.repository = repository
        self.settings = settings or HousekeepingSettings()
        self._clock = clock
        self._monotonic = monotonic
        self._sweeps = [
            _Sweep("archive", self.settings.archive_interval_seconds, self.run_archive_sweep),
            _Sweep("purge", self.settings.purge_interval_seconds, self.run_purge_sweep),
        ]
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    # -- sweeps ----------------------------------------------------------------

    def run_archive_sweep(self, *, now: datetime | None = None) -> ArchiveSweepResult:
        """Archive completed orders older than the configured threshold."""

        cutoff = (now or self._clock()) - timedelta(hours=self.settings.archive_after_hours)
        result = ArchiveSweepResult(cutoff=cutoff)
        order_ids = self.repository.list_completed_before(cutoff=cutoff)
        result.candidates = len(order_ids)
        for order_id in order_ids:
            try:
                self.service.archive_as_system(order_id)
            except ConflictError:
                logger.debug("Order #%s left completed state before auto-archive", order_id)
                continue
            result.archived += 1
        if result.candidates:
            logger.info(
                "Auto-archive: archived=%d candidates=%d cutoff=%s",
                result.archived,
                result.candidates,
                cutoff.isoformat(),
            )
        return result

    def run_purge_sweep(self, *, now: datetime | None = None) -> PurgeSweepResult:
        """Delete long-archived orders and expired notification records."""

        current = now or self._clock()
        result = PurgeSweepResult(
            archived_cutoff=current - timedelta(days=self.settings.archived_retention_days),
            notification_cutoff=current
            - timedelta(days=self.settings.notification_retention_days),
        )
        result.orders_deleted, result.notifications_deleted = (
            self.repository.purge_archived_before(cutoff=result.archived_cutoff)
        )
        result.stale_notifications_deleted = self.repository.delete_notifications_before(
            cutoff=result.notification_cutoff,
        )
        logger.info(
            "Purge: orders=%d notifications=%d stale_notifications=%d",
            result.orders_deleted,
            result.notifications_deleted,
            result.stale_notifications_deleted,
        )
        return result

    # -- scheduling ------------------------------------------------------------

    def run_pending(self) -> list[str]:
        """Run every sweep whose period elapsed; a failing sweep waits for its next tick."""

        now = self._monotonic()
        ran: list[str] = []
        for sweep in self._sweeps:
            if now < sweep.next_due:
                continue
            sweep.next_due = now + sweep.interval_seconds
            ran.append(sweep.name)
            try:
                sweep.run()
            except Exception:
                logger.exception("Housekeeping %s sweep failed", sweep.name)
        return ran

    def seconds_until_next(self) -> float:
        next_due = min(sweep.next_due for sweep in self._sweeps)
        return max(0.0, next_due - self._monotonic())

    def start(self) -> None:
        """Run sweeps in a daemon thread until ``stop()``."""

        if self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._loop,
            daemon=True,
            name="orders-housekeeping",
        )
        self._thread.start()
        logger.info("Housekeeping thread started")

    def stop(self, timeout: float = 15.0) -> None:
        if self._thread is None:
            return
        self._stop.set()
        self._thread.join(timeout=timeout)
        self._thread = None
        logger.info("Housekeeping thread stopped")

    def run_forever(self) -> None:
        """Run sweeps in the calling thread until interrupted."""

        self._stop.clear()
        try:
            self._loop()
        except KeyboardInterrupt:
            logger.info("Housekeeping interrupted")

    def _loop(self) -> None:
        while not self._stop.is_set():
            self.run_pending()
            self._stop.wait(timeout=self.seconds_until_next())
