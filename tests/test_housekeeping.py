from __future__ import annotations

import logging
import time
from datetime import timedelta

import allure
import pytest
from conftest import CREATOR_ID, WORKER_IDS, paint_order

from paint_orders.config import HousekeepingSettings
from paint_orders.orders.housekeeping import HousekeepingScheduler
from paint_orders.orders.models import OrderAction, OrderStatus, OrderView
from paint_orders.orders.repository import OrderRepository
from paint_orders.orders.services import OrderService
from paint_orders.storage.common import utc_now

pytestmark = [
    allure.epic("Order Lifecycle"),
    allure.feature("Housekeeping"),
]


class _FakeMonotonic:
    def __init__(self) -> None:
        self.value = 1_000.0

    def __call__(self) -> float:
        return self.value


def _completed_order(service: OrderService) -> OrderView:
    order = service.create(paint_order())
    service.claim(order.order_id, WORKER_IDS[0])
    return service.complete(order.order_id, WORKER_IDS[0])


def _scheduler(
    service: OrderService,
    repository: OrderRepository,
    **kwargs,
) -> HousekeepingScheduler:
    return HousekeepingScheduler(
        service=service,
        repository=repository,
        settings=HousekeepingSettings(),
        **kwargs,
    )


def test_archive_sweep_respects_threshold(
    service: OrderService,
    repository: OrderRepository,
) -> None:
    order = _completed_order(service)
    assert order.completed_at is not None
    scheduler = _scheduler(service, repository)

    early = scheduler.run_archive_sweep(now=order.completed_at + timedelta(hours=11))
    assert (early.candidates, early.archived) == (0, 0)
    current = service.get(order.order_id)
    assert current is not None
    assert current.status == OrderStatus.COMPLETED

    late = scheduler.run_archive_sweep(now=order.completed_at + timedelta(hours=13))
    assert (late.candidates, late.archived) == (1, 1)

    details = service.details(order.order_id)
    assert details is not None
    assert details.order.status == OrderStatus.ARCHIVED
    auto_event = details.events[-1]
    assert auto_event.event_type == "archived"
    assert auto_event.actor_id is None
    assert auto_event.details == {"auto": True}


def test_archive_sweep_skips_orders_that_changed_meanwhile(
    service: OrderService,
    repository: OrderRepository,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    order = _completed_order(service)
    service.cancel(order.order_id, CREATOR_ID)
    monkeypatch.setattr(repository, "list_completed_before", lambda *, cutoff: [order.order_id])

    result = _scheduler(service, repository).run_archive_sweep()

    assert (result.candidates, result.archived) == (1, 0)
    current = service.get(order.order_id)
    assert current is not None
    assert current.status == OrderStatus.CANCELED


def test_purge_sweep_deletes_old_archived_orders_only(
    service: OrderService,
    repository: OrderRepository,
) -> None:
    archived = _completed_order(service)
    service.archive(archived.order_id, CREATOR_ID)
    canceled = service.create(paint_order())
    service.cancel(canceled.order_id, CREATOR_ID)
    fresh = service.create(paint_order())

    result = _scheduler(service, repository).run_purge_sweep(
        now=utc_now() + timedelta(days=31),
    )

    assert result.orders_deleted == 1
    assert service.get(archived.order_id) is None
    assert service.details(archived.order_id) is None
    assert service.get(canceled.order_id) is not None
    assert service.get(fresh.order_id) is not None
    # fresh order's available messages are older than the notification retention too
    assert result.stale_notifications_deleted == len(WORKER_IDS)
    assert repository.list_notifications(order_id=fresh.order_id) == []


def test_purge_sweep_keeps_recent_rows(
    service: OrderService,
    repository: OrderRepository,
) -> None:
    archived = _completed_order(service)
    service.archive(archived.order_id, CREATOR_ID)
    fresh = service.create(paint_order())

    result = _scheduler(service, repository).run_purge_sweep()

    assert (result.orders_deleted, result.stale_notifications_deleted) == (0, 0)
    assert service.get(archived.order_id) is not None
    assert len(repository.list_notifications(order_id=fresh.order_id)) == len(WORKER_IDS)


def test_run_pending_follows_each_sweep_period(
    service: OrderService,
    repository: OrderRepository,
) -> None:
    clock = _FakeMonotonic()
    scheduler = _scheduler(service, repository, monotonic=clock)

    assert scheduler.run_pending() == ["archive", "purge"]
    assert scheduler.run_pending() == []
    assert scheduler.seconds_until_next() == pytest.approx(600)

    clock.value += 600
    assert scheduler.run_pending() == ["archive"]

    clock.value += 86_400
    assert scheduler.run_pending() == ["archive", "purge"]


def test_failing_sweep_is_logged_and_does_not_stop_the_other(
    service: OrderService,
    repository: OrderRepository,
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    def _boom(*, cutoff):  # noqa: ARG001
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(repository, "list_completed_before", _boom)
    purged: list[bool] = []
    original_purge = repository.purge_archived_before

    def _tracking_purge(*, cutoff):
        purged.append(True)
        return original_purge(cutoff=cutoff)

    monkeypatch.setattr(repository, "purge_archived_before", _tracking_purge)
    scheduler = _scheduler(service, repository, monotonic=_FakeMonotonic())

    with caplog.at_level(logging.ERROR, logger="paint_orders.orders.housekeeping"):
        ran = scheduler.run_pending()

    assert ran == ["archive", "purge"]
    assert purged == [True]
    assert "Housekeeping archive sweep failed" in caplog.text


def test_background_thread_archives_stale_orders(
    service: OrderService,
    repository: OrderRepository,
) -> None:
    order = service.create(paint_order())
    service.claim(order.order_id, WORKER_IDS[0])
    repository.transition_order(
        order_id=order.order_id,
        action=OrderAction.COMPLETE,
        actor_id=WORKER_IDS[0],
        worker_id=WORKER_IDS[0],
        values={"completed_at": utc_now() - timedelta(hours=13)},
    )
    scheduler = _scheduler(service, repository)

    scheduler.start()
    try:
        deadline = time.monotonic() + 10
        status = None
        while time.monotonic() < deadline:
            current = service.get(order.order_id)
            status = current.status if current is not None else None
            if status == OrderStatus.ARCHIVED:
                break
            time.sleep(0.05)
    finally:
        scheduler.stop(timeout=5)

    assert status == OrderStatus.ARCHIVED
