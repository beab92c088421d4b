"""CLI entrypoint for paint-orders."""

import logging
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import TypeVar

import rich_click as click

from paint_orders import __version__
from paint_orders.config import Settings
from paint_orders.orders.controllers import (
    CallbackActionCommand,
    CancelOrderCommand,
    CreateOrderCommand,
    HousekeepingCommand,
    InspectOrderCommand,
    ListOrdersCommand,
    ListUsersCommand,
    OrdersCliController,
    OrderTransitionCommand,
    RegisterUserCommand,
)
from paint_orders.orders.errors import OrderError

click.rich_click.USE_MARKDOWN = True
ORDERS_CONTROLLER = OrdersCliController()

CommandT = TypeVar("CommandT")

_DB_PATH_OPTION = click.option(
    "--db-path",
    type=click.Path(path_type=Path),
    default=None,
    help="SQLite DB path.",
)
_ORDER_ID_OPTION = click.option(
    "--order-id",
    type=click.IntRange(min=1),
    required=True,
    help="Order id.",
)


@click.group()
@click.version_option(version=__version__, prog_name="paint-orders")
def paint_orders() -> None:
    """Paint work-order coordination CLI."""

    try:
        settings = Settings.from_env()
    except ValueError as error:
        raise click.ClickException(str(error)) from error
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@paint_orders.group()
def users() -> None:
    """User role commands."""


@users.command("register")
@_DB_PATH_OPTION
@click.option("--user-id", required=True, help="Messaging-platform user id.")
@click.option(
    "--role",
    type=click.Choice(["creator", "worker"], case_sensitive=False),
    required=True,
    help="Role to assign.",
)
@click.option("--name", "display_name", default="", help="Display name used in messages.")
def users_register(db_path: Path | None, user_id: str, role: str, display_name: str) -> None:
    """Register a user or change their role."""

    _run(
        ORDERS_CONTROLLER.register_user,
        RegisterUserCommand(
            db_path=db_path,
            user_id=user_id,
            role=role,
            display_name=display_name,
        ),
    )


@users.command("list")
@_DB_PATH_OPTION
@click.option(
    "--role",
    type=click.Choice(["creator", "worker"], case_sensitive=False),
    default=None,
    help="Optional role filter.",
)
def users_list(db_path: Path | None, role: str | None) -> None:
    """List registered users."""

    _run(ORDERS_CONTROLLER.list_users, ListUsersCommand(db_path=db_path, role=role))


@paint_orders.group()
def orders() -> None:
    """Order lifecycle commands."""


@orders.command("create")
@_DB_PATH_OPTION
@click.option("--creator", "creator_id", required=True, help="Creator user id.")
@click.option(
    "--item",
    "items",
    multiple=True,
    required=True,
    help="Line item as `PRODUCT|COLOR|QTY` (litres). Can be repeated.",
)
@click.option("--urgent", is_flag=True, default=False, help="Mark the order as urgent.")
@click.option(
    "--deadline",
    type=click.DateTime(formats=["%Y-%m-%d", "%Y-%m-%dT%H:%M", "%Y-%m-%d %H:%M"]),
    default=None,
    help="Optional deadline, interpreted as UTC.",
)
def orders_create(
    db_path: Path | None,
    creator_id: str,
    items: tuple[str, ...],
    urgent: bool,  # noqa: FBT001
    deadline: datetime | None,
) -> None:
    """Submit a new order and announce it to every worker."""

    _run(
        ORDERS_CONTROLLER.create_order,
        CreateOrderCommand(
            db_path=db_path,
            creator_id=creator_id,
            items=items,
            urgent=urgent,
            deadline=deadline,
        ),
    )


@orders.command("claim")
@_DB_PATH_OPTION
@_ORDER_ID_OPTION
@click.option("--worker", "worker_id", required=True, help="Worker user id.")
def orders_claim(db_path: Path | None, order_id: int, worker_id: str) -> None:
    """Take a new order."""

    _run(
        ORDERS_CONTROLLER.claim,
        OrderTransitionCommand(db_path=db_path, order_id=order_id, actor_id=worker_id),
    )


@orders.command("complete")
@_DB_PATH_OPTION
@_ORDER_ID_OPTION
@click.option("--worker", "worker_id", required=True, help="Assigned worker user id.")
def orders_complete(db_path: Path | None, order_id: int, worker_id: str) -> None:
    """Mark an in-progress order as done."""

    _run(
        ORDERS_CONTROLLER.complete,
        OrderTransitionCommand(db_path=db_path, order_id=order_id, actor_id=worker_id),
    )


@orders.command("archive")
@_DB_PATH_OPTION
@_ORDER_ID_OPTION
@click.option("--actor", "actor_id", required=True, help="Acting user id.")
def orders_archive(db_path: Path | None, order_id: int, actor_id: str) -> None:
    """Archive a completed order."""

    _run(
        ORDERS_CONTROLLER.archive,
        OrderTransitionCommand(db_path=db_path, order_id=order_id, actor_id=actor_id),
    )


@orders.command("unarchive")
@_DB_PATH_OPTION
@_ORDER_ID_OPTION
@click.option("--actor", "actor_id", required=True, help="Acting user id.")
def orders_unarchive(db_path: Path | None, order_id: int, actor_id: str) -> None:
    """Return an archived order to completed."""

    _run(
        ORDERS_CONTROLLER.unarchive,
        OrderTransitionCommand(db_path=db_path, order_id=order_id, actor_id=actor_id),
    )


@orders.command("cancel")
@_DB_PATH_OPTION
@_ORDER_ID_OPTION
@click.option("--creator", "creator_id", required=True, help="Creator user id.")
@click.option("--reason", default="", help="Optional cancellation reason.")
def orders_cancel(db_path: Path | None, order_id: int, creator_id: str, reason: str) -> None:
    """Cancel an order that is not archived or canceled yet."""

    _run(
        ORDERS_CONTROLLER.cancel,
        CancelOrderCommand(
            db_path=db_path,
            order_id=order_id,
            creator_id=creator_id,
            reason=reason,
        ),
    )


@orders.command("action")
@_DB_PATH_OPTION
@click.option("--actor", "actor_id", required=True, help="User who pressed the button.")
@click.option("--payload", required=True, help="Button payload, for example `claim:12`.")
def orders_action(db_path: Path | None, actor_id: str, payload: str) -> None:
    """Apply a push-message button payload."""

    _run(
        ORDERS_CONTROLLER.callback_action,
        CallbackActionCommand(db_path=db_path, actor_id=actor_id, payload=payload),
    )


@orders.command("list")
@_DB_PATH_OPTION
@click.option("--creator", "creator_id", default=None, help="List orders of this creator.")
@click.option("--worker", "worker_id", default=None, help="List a worker tab for this worker.")
@click.option(
    "--status",
    type=click.Choice(
        ["new", "in_progress", "completed", "archived", "canceled"],
        case_sensitive=False,
    ),
    default=None,
    help="Status filter for creator listings.",
)
@click.option("--urgent-only", is_flag=True, default=False, help="Only urgent orders.")
@click.option(
    "--tab",
    type=click.Choice(["urgent", "new", "mine", "done"], case_sensitive=False),
    default="urgent",
    show_default=True,
    help="Worker tab.",
)
@click.option(
    "--limit",
    type=click.IntRange(min=1, max=500),
    default=50,
    show_default=True,
    help="Max rows to show.",
)
def orders_list(  # noqa: PLR0913
    db_path: Path | None,
    creator_id: str | None,
    worker_id: str | None,
    status: str | None,
    urgent_only: bool,  # noqa: FBT001
    tab: str,
    limit: int,
) -> None:
    """List orders for a creator or a worker tab."""

    if (creator_id is None) == (worker_id is None):
        raise click.UsageError("Pass exactly one of --creator or --worker.")
    _run(
        ORDERS_CONTROLLER.list_orders,
        ListOrdersCommand(
            db_path=db_path,
            creator_id=creator_id,
            worker_id=worker_id,
            status=status,
            urgent_only=urgent_only,
            tab=tab,
            limit=limit,
        ),
    )


@orders.command("inspect")
@_DB_PATH_OPTION
@_ORDER_ID_OPTION
def orders_inspect(db_path: Path | None, order_id: int) -> None:
    """Inspect one order with items, notifications and event history."""

    _run(
        ORDERS_CONTROLLER.inspect_order,
        InspectOrderCommand(db_path=db_path, order_id=order_id),
    )


@paint_orders.group()
def housekeeping() -> None:
    """Background maintenance commands."""


@housekeeping.command("run")
@_DB_PATH_OPTION
@click.option(
    "--once/--loop",
    default=True,
    show_default=True,
    help="Run both sweeps once, or keep running them on their schedule.",
)
def housekeeping_run(db_path: Path | None, once: bool) -> None:  # noqa: FBT001
    """Auto-archive stale completed orders and purge old rows."""

    _run(ORDERS_CONTROLLER.housekeeping, HousekeepingCommand(db_path=db_path, once=once))


def _run(handler: Callable[[CommandT], list[str]], command: CommandT) -> None:
    try:
        lines = handler(command)
    except (OrderError, ValueError) as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(lines)


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    paint_orders()
