from __future__ import annotations

import re
from pathlib import Path

import allure
import pytest
from click.testing import CliRunner

from paint_orders.main import paint_orders
from paint_orders.orders.models import NotificationClass, OrderStatus
from paint_orders.orders.repository import OrderRepository

pytestmark = [
    allure.epic("Order Lifecycle"),
    allure.feature("CLI"),
]


@pytest.fixture(autouse=True)
def _no_bot_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("PAINT_ORDERS_TELEGRAM_BOT_TOKEN", raising=False)
    monkeypatch.delenv("PAINT_ORDERS_ARCHIVE_POLICY", raising=False)


def _invoke(runner: CliRunner, db_path: Path, *args: str):
    group, command, *rest = args
    return runner.invoke(paint_orders, [group, command, "--db-path", str(db_path), *rest])


def _register_team(runner: CliRunner, db_path: Path) -> None:
    for user_id, role, name in (
        ("100", "creator", "Anna"),
        ("200", "worker", "Boris"),
        ("300", "worker", "Vera"),
    ):
        result = _invoke(
            runner,
            db_path,
            "users",
            "register",
            "--user-id",
            user_id,
            "--role",
            role,
            "--name",
            name,
        )
        assert result.exit_code == 0, result.output


def test_cli_order_flow(tmp_path: Path) -> None:
    db_path = tmp_path / "cli.db"
    runner = CliRunner()
    _register_team(runner, db_path)

    users = _invoke(runner, db_path, "users", "list", "--role", "worker")
    assert users.exit_code == 0, users.output
    assert "Users: 2" in users.output

    created = _invoke(
        runner,
        db_path,
        "orders",
        "create",
        "--creator",
        "100",
        "--item",
        "Facade paint|white|10",
        "--item",
        "Primer|grey|2,5",
        "--urgent",
        "--deadline",
        "2026-10-25",
    )
    assert created.exit_code == 0, created.output
    match = re.search(r"order_id=(\d+)", created.output)
    assert match is not None
    order_id = match.group(1)
    assert "Workers notified: 2" in created.output

    urgent_tab = _invoke(runner, db_path, "orders", "list", "--worker", "200", "--tab", "urgent")
    assert urgent_tab.exit_code == 0, urgent_tab.output
    assert f"#{order_id} status=new" in urgent_tab.output
    assert "Primer|grey|2.5" in urgent_tab.output

    claimed = _invoke(runner, db_path, "orders", "action", "--actor", "200", "--payload", f"take:{order_id}")
    assert claimed.exit_code == 0, claimed.output
    assert "status=in_progress worker=200" in claimed.output

    second = _invoke(runner, db_path, "orders", "claim", "--order-id", order_id, "--worker", "300")
    assert second.exit_code == 1

    completed = _invoke(runner, db_path, "orders", "complete", "--order-id", order_id, "--worker", "200")
    assert completed.exit_code == 0, completed.output
    assert "status=completed" in completed.output

    archived = _invoke(runner, db_path, "orders", "archive", "--order-id", order_id, "--actor", "100")
    assert archived.exit_code == 0, archived.output
    restored = _invoke(runner, db_path, "orders", "unarchive", "--order-id", order_id, "--actor", "100")
    assert restored.exit_code == 0, restored.output
    assert "status=completed" in restored.output

    inspected = _invoke(runner, db_path, "orders", "inspect", "--order-id", order_id)
    assert inspected.exit_code == 0, inspected.output
    assert "Status: completed" in inspected.output
    assert "Worker: 200" in inspected.output
    assert "Deadline: 2026-10-25T00:00:00+00:00" in inspected.output
    assert "Outstanding notifications: 0" in inspected.output
    assert "archived -> completed actor=100" in inspected.output

    done_tab = _invoke(runner, db_path, "orders", "list", "--worker", "200", "--tab", "done")
    assert f"#{order_id} status=completed" in done_tab.output

    repository = OrderRepository(db_path)
    order = repository.get_order(order_id=int(order_id))
    assert order is not None
    assert order.status == OrderStatus.COMPLETED
    assert order.worker_id == "200"
    assert repository.list_notifications(
        order_id=order.order_id,
        notification_class=NotificationClass.AVAILABLE,
    ) == []
    repository.close()


def test_cli_cancel_and_creator_listing(tmp_path: Path) -> None:
    db_path = tmp_path / "cli-cancel.db"
    runner = CliRunner()
    _register_team(runner, db_path)
    created = _invoke(runner, db_path, "orders", "create", "--creator", "100", "--item", "Stain|oak|1")
    order_id = re.search(r"order_id=(\d+)", created.output).group(1)

    canceled = _invoke(
        runner,
        db_path,
        "orders",
        "cancel",
        "--order-id",
        order_id,
        "--creator",
        "100",
        "--reason",
        "wrong shade",
    )
    assert canceled.exit_code == 0, canceled.output
    assert "status=canceled" in canceled.output

    listing = _invoke(runner, db_path, "orders", "list", "--creator", "100", "--status", "canceled")
    assert listing.exit_code == 0, listing.output
    assert "Orders: 1" in listing.output

    again = _invoke(runner, db_path, "orders", "cancel", "--order-id", order_id, "--creator", "100")
    assert again.exit_code == 1


def test_cli_rejects_invalid_input(tmp_path: Path) -> None:
    db_path = tmp_path / "cli-invalid.db"
    runner = CliRunner()
    _register_team(runner, db_path)

    bad_item = _invoke(runner, db_path, "orders", "create", "--creator", "100", "--item", "Paint-white-10")
    assert bad_item.exit_code == 1

    not_creator = _invoke(runner, db_path, "orders", "create", "--creator", "200", "--item", "Paint|white|1")
    assert not_creator.exit_code == 1

    bad_payload = _invoke(runner, db_path, "orders", "action", "--actor", "200", "--payload", "claim")
    assert bad_payload.exit_code == 1

    no_scope = _invoke(runner, db_path, "orders", "list")
    assert no_scope.exit_code == 2

    repository = OrderRepository(db_path)
    assert repository.list_orders() == []
    repository.close()


def test_cli_housekeeping_once(tmp_path: Path) -> None:
    db_path = tmp_path / "cli-housekeeping.db"
    runner = CliRunner()

    result = _invoke(runner, db_path, "housekeeping", "run", "--once")

    assert result.exit_code == 0, result.output
    assert "Housekeeping summary: archived=0/0 purged_orders=0" in result.output


def test_cli_version() -> None:
    result = CliRunner().invoke(paint_orders, ["--version"])

    assert result.exit_code == 0
    assert "paint-orders" in result.output
