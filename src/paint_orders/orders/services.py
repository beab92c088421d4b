"""Lifecycle engine: validated use-cases over the order store and notifier."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from paint_orders.config import ArchivePolicy, LifecycleSettings
from paint_orders.orders import messages
from paint_orders.orders.errors import AuthorizationError, ConflictError, ValidationError
from paint_orders.orders.identity import IdentityResolver
from paint_orders.orders.models import (
    NotificationClass,
    OrderAction,
    OrderCreate,
    OrderDetails,
    OrderItem,
    OrderStatus,
    OrderView,
    Role,
    WorkerTab,
)
from paint_orders.orders.notifier import FanoutNotifier
from paint_orders.orders.repository import OrderRepository
from paint_orders.storage.common import utc_now

logger = logging.getLogger(__name__)

_WORKER_TAB_STATUSES: dict[WorkerTab, tuple[OrderStatus, ...]] = {
    WorkerTab.URGENT: (OrderStatus.NEW,),
    WorkerTab.NEW: (OrderStatus.NEW,),
    WorkerTab.MINE: (OrderStatus.IN_PROGRESS,),
    WorkerTab.DONE: (OrderStatus.COMPLETED, OrderStatus.ARCHIVED),
}


@dataclass(slots=True)
class CreateOrder:
    """High-level command to submit a new order."""

    creator_id: str
    items: list[OrderItem]
    urgent: bool = False
    deadline: datetime | None = None


class OrderService:
    """Central engine for every order transition and its notification side effects.

    Each transition commits one conditional update first; notifications are sent
    only after that commit and never decide whether the transition happened.
    """

    def __init__(
        self,
        *,
        repository: OrderRepository,
        notifier: FanoutNotifier,
        identity: IdentityResolver,
        settings: LifecycleSettings | None = None,
    ) -> None:
        self.repository = repository
        self.notifier = notifier
        self.identity = identity
        self.settings = settings or LifecycleSettings()

    def create(self, command: CreateOrder) -> OrderView:
        """Validate and persist a new order, then announce it to every worker."""

        if self.identity.role_of(command.creator_id) != Role.CREATOR:
            raise AuthorizationError(f"{command.creator_id} is not allowed to create orders.")
        items = validate_items(command.items)
        order = self.repository.insert_order(
            OrderCreate(
                creator_id=command.creator_id,
                items=items,
                urgent=command.urgent,
                deadline=command.deadline,
            ),
        )
        logger.info("Order #%s created by %s", order.order_id, order.creator_id)

        self.notifier.broadcast(
            order,
            NotificationClass.AVAILABLE,
            self.identity.list_ids(Role.WORKER),
            text=messages.render_available(
                order,
                creator_name=self.identity.display_name_of(order.creator_id),
            ),
            actions=messages.worker_buttons(order),
        )
        # A claim may land while the broadcast is still running; its retraction
        # cannot see handles recorded afterwards.
        current = self.repository.get_order(order_id=order.order_id)
        if current is not None and current.status != OrderStatus.NEW:
            self.notifier.retract(order.order_id, NotificationClass.AVAILABLE)
        return order

    def claim(self, order_id: int, worker_id: str) -> OrderView:
        """Atomically take a ``new`` order; exactly one concurrent claimant wins."""

        if self.identity.role_of(worker_id) != Role.WORKER:
            raise AuthorizationError(f"{worker_id} is not registered as a worker.")
        try:
            result = self.repository.transition_order(
                order_id=order_id,
                action=OrderAction.CLAIM,
                actor_id=worker_id,
                values={"worker_id": worker_id},
            )
        except ConflictError as error:
            raise ConflictError(f"Order #{order_id} is already claimed or not found.") from error
        order = result.order
        logger.info("Order #%s claimed by %s", order_id, worker_id)

        self.notifier.retract(order_id, NotificationClass.AVAILABLE)
        self.notifier.notify_one(
            order,
            NotificationClass.CLAIMED,
            worker_id,
            text=messages.render_claimed(order),
            actions=messages.worker_buttons(order),
        )
        return order

    def complete(self, order_id: int, worker_id: str) -> OrderView:
        """Finish an order; only its assigned worker can do so."""

        result = self.repository.transition_order(
            order_id=order_id,
            action=OrderAction.COMPLETE,
            actor_id=worker_id,
            worker_id=worker_id,
            values={"completed_at": utc_now()},
        )
        order = result.order
        logger.info("Order #%s completed by %s", order_id, worker_id)

        self.notifier.retract(order_id, NotificationClass.CLAIMED)
        self.notifier.notify_one(
            order,
            None,
            order.creator_id,
            text=messages.render_completed(
                order,
                worker_name=self.identity.display_name_of(worker_id),
            ),
        )
        return order

    def archive(self, order_id: int, actor_id: str) -> OrderView:
        result = self.repository.transition_order(
            order_id=order_id,
            action=OrderAction.ARCHIVE,
            actor_id=actor_id,
            creator_id=self._archive_scope(actor_id),
            values={"archived_at": utc_now()},
        )
        logger.info("Order #%s archived by %s", order_id, actor_id)
        return result.order

    def unarchive(self, order_id: int, actor_id: str) -> OrderView:
        result = self.repository.transition_order(
            order_id=order_id,
            action=OrderAction.UNARCHIVE,
            actor_id=actor_id,
            creator_id=self._archive_scope(actor_id),
            values={"archived_at": None},
        )
        logger.info("Order #%s unarchived by %s", order_id, actor_id)
        return result.order

    def archive_as_system(self, order_id: int) -> OrderView:
        """Unscoped archive used by housekeeping."""

        result = self.repository.transition_order(
            order_id=order_id,
            action=OrderAction.ARCHIVE,
            actor_id=None,
            values={"archived_at": utc_now()},
            details={"auto": True},
        )
        return result.order

    def cancel(self, order_id: int, creator_id: str, reason: str = "") -> OrderView:
        """Cancel a non-terminal order owned by ``creator_id``."""

        reason = reason.strip()[: self.settings.cancel_reason_max_chars]
        result = self.repository.transition_order(
            order_id=order_id,
            action=OrderAction.CANCEL,
            actor_id=creator_id,
            creator_id=creator_id,
            values={"canceled_at": utc_now(), "cancel_reason": reason or None},
            details={"reason": reason} if reason else None,
        )
        logger.info("Order #%s canceled by %s", order_id, creator_id)

        if result.status_from == OrderStatus.NEW:
            self.notifier.retract(order_id, NotificationClass.AVAILABLE)
        elif result.status_from == OrderStatus.IN_PROGRESS:
            self.notifier.retract(order_id, NotificationClass.CLAIMED)
        return result.order

    def get(self, order_id: int) -> OrderView | None:
        return self.repository.get_order(order_id=order_id)

    def details(self, order_id: int) -> OrderDetails | None:
        return self.repository.get_order_details(order_id=order_id)

    def list_for_creator(
        self,
        creator_id: str,
        status_filter: OrderStatus | None = None,
        *,
        urgent_only: bool = False,
        limit: int = 100,
    ) -> list[OrderView]:
        return self.repository.list_orders(
            creator_id=creator_id,
            statuses=(status_filter,) if status_filter is not None else None,
            urgent_only=urgent_only,
            limit=limit,
        )

    def list_for_worker(
        self,
        worker_id: str,
        tab: WorkerTab = WorkerTab.URGENT,
        *,
        limit: int = 100,
    ) -> list[OrderView]:
        own = tab in {WorkerTab.MINE, WorkerTab.DONE}
        return self.repository.list_orders(
            worker_id=worker_id if own else None,
            statuses=_WORKER_TAB_STATUSES[tab],
            urgent_only=tab == WorkerTab.URGENT,
            limit=limit,
        )

    def _archive_scope(self, actor_id: str) -> str | None:
        """Creator predicate for archive/unarchive; ``None`` lifts it for allowed workers."""

        if (
            self.settings.archive_policy == ArchivePolicy.CREATOR_OR_WORKER
            and self.identity.role_of(actor_id) == Role.WORKER
        ):
            return None
        return actor_id


def validate_items(items: Iterable[OrderItem]) -> list[OrderItem]:
    """Normalize line items or raise ValidationError."""

    normalized: list[OrderItem] = []
    for index, item in enumerate(items, start=1):
        product = (item.product or "").strip()
        color = (item.color or "").strip()
        if not product:
            raise ValidationError(f"Item {index}: product must not be empty.")
        if not color:
            raise ValidationError(f"Item {index}: color must not be empty.")
        try:
            quantity = float(item.quantity)
        except (TypeError, ValueError) as error:
            raise ValidationError(f"Item {index}: quantity must be a number.") from error
        if not math.isfinite(quantity) or quantity <= 0:
            raise ValidationError(f"Item {index}: quantity must be positive, got {item.quantity!r}.")
        normalized.append(OrderItem(product=product, color=color, quantity=quantity))
    if not normalized:
        raise ValidationError("An order needs at least one item.")
    return normalized
