"""Order state machine: the single table of legal transitions."""

from __future__ import annotations

from paint_orders.orders.errors import ConflictError
from paint_orders.orders.models import OrderAction, OrderStatus

TRANSITIONS: dict[tuple[OrderStatus, OrderAction], OrderStatus] = {
    (OrderStatus.NEW, OrderAction.CLAIM): OrderStatus.IN_PROGRESS,
    (OrderStatus.IN_PROGRESS, OrderAction.COMPLETE): OrderStatus.COMPLETED,
    (OrderStatus.COMPLETED, OrderAction.ARCHIVE): OrderStatus.ARCHIVED,
    (OrderStatus.ARCHIVED, OrderAction.UNARCHIVE): OrderStatus.COMPLETED,
    (OrderStatus.NEW, OrderAction.CANCEL): OrderStatus.CANCELED,
    (OrderStatus.IN_PROGRESS, OrderAction.CANCEL): OrderStatus.CANCELED,
    (OrderStatus.COMPLETED, OrderAction.CANCEL): OrderStatus.CANCELED,
}

# Actions a worker triggers from a push message; the rest belong to the creator.
WORKER_ACTIONS = frozenset({OrderAction.CLAIM, OrderAction.COMPLETE})

EVENT_TYPES: dict[OrderAction, str] = {
    OrderAction.CLAIM: "claimed",
    OrderAction.COMPLETE: "completed",
    OrderAction.ARCHIVE: "archived",
    OrderAction.UNARCHIVE: "unarchived",
    OrderAction.CANCEL: "canceled",
}


def source_statuses(action: OrderAction) -> frozenset[OrderStatus]:
    """Statuses from which ``action`` is legal."""

    return frozenset(source for source, candidate in TRANSITIONS if candidate == action)


def target_status(current: OrderStatus, action: OrderAction) -> OrderStatus:
    """Resolve the target of ``action`` from ``current`` or raise ConflictError."""

    target = TRANSITIONS.get((current, action))
    if target is None:
        raise ConflictError(
            f"Action {action.value!r} is not allowed for an order in status {current.value!r}.",
        )
    return target


def allowed_actions(status: OrderStatus) -> list[OrderAction]:
    """Actions legal from ``status``, in declaration order."""

    return [action for (source, action) in TRANSITIONS if source == status]


def worker_actions(status: OrderStatus) -> list[OrderAction]:
    """Actions a worker may be offered as buttons for ``status``."""

    return [action for action in allowed_actions(status) if action in WORKER_ACTIONS]


def is_terminal(status: OrderStatus) -> bool:
    return not allowed_actions(status)
