"""Controllers for order, user and housekeeping CLI commands."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from paint_orders.config import Settings
from paint_orders.orders.actions import apply_action
from paint_orders.orders.errors import ValidationError
from paint_orders.orders.housekeeping import HousekeepingScheduler
from paint_orders.orders.identity import IdentityResolver
from paint_orders.orders.models import OrderItem, OrderStatus, OrderView, Role, WorkerTab
from paint_orders.orders.notifier import FanoutNotifier
from paint_orders.orders.repository import OrderRepository
from paint_orders.orders.services import CreateOrder, OrderService
from paint_orders.orders.transport import LoggingTransport, PushTransport, TelegramTransport

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RegisterUserCommand:
    """CLI input for role registration."""

    db_path: Path | None
    user_id: str
    role: str
    display_name: str


@dataclass(slots=True)
class ListUsersCommand:
    """CLI input for user listing."""

    db_path: Path | None
    role: str | None


@dataclass(slots=True)
class CreateOrderCommand:
    """CLI input for order submission."""

    db_path: Path | None
    creator_id: str
    items: tuple[str, ...]
    urgent: bool
    deadline: datetime | None


@dataclass(slots=True)
class OrderTransitionCommand:
    """CLI input for claim/complete/archive/unarchive."""

    db_path: Path | None
    order_id: int
    actor_id: str


@dataclass(slots=True)
class CancelOrderCommand:
    """CLI input for order cancellation."""

    db_path: Path | None
    order_id: int
    creator_id: str
    reason: str


@dataclass(slots=True)
class CallbackActionCommand:
    """CLI input for a chat button payload."""

    db_path: Path | None
    actor_id: str
    payload: str


@dataclass(slots=True)
class ListOrdersCommand:
    """CLI input for creator or worker order listing."""

    db_path: Path | None
    creator_id: str | None
    worker_id: str | None
    status: str | None
    urgent_only: bool
    tab: str
    limit: int


@dataclass(slots=True)
class InspectOrderCommand:
    """CLI input for order inspection."""

    db_path: Path | None
    order_id: int


@dataclass(slots=True)
class HousekeepingCommand:
    """CLI input for housekeeping sweeps."""

    db_path: Path | None
    once: bool


class OrdersCliController:
    """Coordinates lifecycle, listing and housekeeping CLI operations."""

    def register_user(self, command: RegisterUserCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _repository(settings) as repository:
            user = IdentityResolver(repository).register(
                user_id=command.user_id,
                role=Role(command.role.strip().lower()),
                display_name=command.display_name,
            )
        return [f"User registered: user_id={user.user_id} role={user.role.value}"]

    def list_users(self, command: ListUsersCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        role = Role(command.role.strip().lower()) if command.role else None
        with _repository(settings) as repository:
            users = repository.list_users(role=role)
        lines = [f"Users: {len(users)}"]
        lines.extend(
            f"  {user.user_id} role={user.role.value} name={user.display_name or '-'}"
            for user in users
        )
        return lines

    def create_order(self, command: CreateOrderCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        items = [parse_item(raw) for raw in command.items]
        with _service(settings) as service:
            order = service.create(
                CreateOrder(
                    creator_id=command.creator_id,
                    items=items,
                    urgent=command.urgent,
                    deadline=command.deadline,
                ),
            )
            notified = len(
                service.repository.list_notifications(order_id=order.order_id),
            )
        return [
            f"Order created: order_id={order.order_id} status={order.status.value} "
            f"items={len(order.items)} urgent={order.urgent}",
            f"Workers notified: {notified}",
        ]

    def claim(self, command: OrderTransitionCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _service(settings) as service:
            order = service.claim(command.order_id, command.actor_id)
        return [_transition_line("claimed", order)]

    def complete(self, command: OrderTransitionCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _service(settings) as service:
            order = service.complete(command.order_id, command.actor_id)
        return [_transition_line("completed", order)]

    def archive(self, command: OrderTransitionCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _service(settings) as service:
            order = service.archive(command.order_id, command.actor_id)
        return [_transition_line("archived", order)]

    def unarchive(self, command: OrderTransitionCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _service(settings) as service:
            order = service.unarchive(command.order_id, command.actor_id)
        return [_transition_line("unarchived", order)]

    def cancel(self, command: CancelOrderCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _service(settings) as service:
            order = service.cancel(command.order_id, command.creator_id, command.reason)
        return [_transition_line("canceled", order)]

    def callback_action(self, command: CallbackActionCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _service(settings) as service:
            order = apply_action(service, command.actor_id, command.payload)
        return [_transition_line("updated", order)]

    def list_orders(self, command: ListOrdersCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _service(settings) as service:
            if command.worker_id is not None:
                orders = service.list_for_worker(
                    command.worker_id,
                    WorkerTab(command.tab.strip().lower()),
                    limit=command.limit,
                )
            elif command.creator_id is not None:
                orders = service.list_for_creator(
                    command.creator_id,
                    OrderStatus(command.status.strip().lower()) if command.status else None,
                    urgent_only=command.urgent_only,
                    limit=command.limit,
                )
            else:
                raise ValidationError("Pass either --creator or --worker.")

        lines = [f"Orders: {len(orders)}"]
        for order in orders:
            items = "; ".join(
                f"{item.product}|{item.color}|{item.quantity:g}" for item in order.items
            )
            lines.append(
                f"  #{order.order_id} status={order.status.value} "
                f"urgent={'yes' if order.urgent else 'no'} worker={order.worker_id or '-'} "
                f"created_at={order.created_at.isoformat()} items={items}",
            )
        return lines

    def inspect_order(self, command: InspectOrderCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _repository(settings) as repository:
            details = repository.get_order_details(order_id=command.order_id)
        if details is None:
            return [f"Order not found: {command.order_id}"]

        order = details.order
        lines = [
            f"Order: #{order.order_id}",
            f"Status: {order.status.value}",
            f"Creator: {order.creator_id}",
            f"Worker: {order.worker_id or '-'}",
            f"Urgent: {'yes' if order.urgent else 'no'}",
            f"Deadline: {order.deadline.isoformat() if order.deadline else '-'}",
            f"Completed at: {order.completed_at.isoformat() if order.completed_at else '-'}",
            f"Archived at: {order.archived_at.isoformat() if order.archived_at else '-'}",
            f"Canceled at: {order.canceled_at.isoformat() if order.canceled_at else '-'}",
            f"Cancel reason: {order.cancel_reason or '-'}",
            f"Items: {len(order.items)}",
        ]
        lines.extend(
            f"  {item.product} | {item.color} | {item.quantity:g}" for item in order.items
        )
        lines.append(f"Outstanding notifications: {len(details.notifications)}")
        lines.extend(
            f"  {record.notification_class.value} recipient={record.recipient_id} "
            f"handle={record.message_handle}"
            for record in details.notifications
        )
        lines.append(f"Events: {len(details.events)}")
        for event in details.events:
            lines.append(
                f"  {event.created_at.isoformat()} {event.event_type} "
                f"{event.status_from.value if event.status_from else '-'} -> "
                f"{event.status_to.value if event.status_to else '-'} "
                f"actor={event.actor_id or 'system'}",
            )
        return lines

    def housekeeping(self, command: HousekeepingCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        settings.validate()
        with _service(settings) as service:
            scheduler = HousekeepingScheduler(
                service=service,
                repository=service.repository,
                settings=settings.housekeeping,
            )
            if not command.once:
                scheduler.run_forever()
                return ["Housekeeping stopped."]
            archived = scheduler.run_archive_sweep()
            purged = scheduler.run_purge_sweep()
        return [
            "Housekeeping summary: "
            f"archived={archived.archived}/{archived.candidates} "
            f"purged_orders={purged.orders_deleted} "
            f"purged_notifications={purged.notifications_deleted} "
            f"expired_notifications={purged.stale_notifications_deleted}",
        ]


def parse_item(raw: str) -> OrderItem:
    """Parse ``PRODUCT|COLOR|QUANTITY``; the product itself may contain ``|``."""

    parts = raw.rsplit("|", 2)
    if len(parts) != 3:  # noqa: PLR2004
        raise ValidationError(f"Invalid item {raw!r}. Expected 'PRODUCT|COLOR|QUANTITY'.")
    product, color, quantity_raw = parts
    try:
        quantity = float(quantity_raw.strip().replace(",", "."))
    except ValueError as error:
        raise ValidationError(f"Invalid quantity in item {raw!r}.") from error
    return OrderItem(product=product, color=color, quantity=quantity)


def build_transport(settings: Settings) -> PushTransport:
    if not settings.telegram.bot_token:
        logger.info("No Telegram bot token configured; push messages are only logged")
        return LoggingTransport()
    return TelegramTransport(
        bot_token=settings.telegram.bot_token,
        api_base_url=settings.telegram.api_base_url,
        timeout_seconds=settings.telegram.request_timeout_seconds,
        max_retries=settings.telegram.max_retries,
    )


def _transition_line(verb: str, order: OrderView) -> str:
    return (
        f"Order {verb}: order_id={order.order_id} status={order.status.value} "
        f"worker={order.worker_id or '-'}"
    )


@contextmanager
def _repository(settings: Settings) -> Iterator[OrderRepository]:
    repository = OrderRepository(
        db_path=settings.db_path,
        sqlite_busy_timeout_ms=settings.sqlite_busy_timeout_ms,
    )
    repository.init_schema()
    try:
        yield repository
    finally:
        repository.close()


@contextmanager
def _service(settings: Settings) -> Iterator[OrderService]:
    transport = build_transport(settings)
    try:
        with _repository(settings) as repository:
            yield OrderService(
                repository=repository,
                notifier=FanoutNotifier(repository=repository, transport=transport),
                identity=IdentityResolver(repository),
                settings=settings.lifecycle,
            )
    finally:
        transport.close()
