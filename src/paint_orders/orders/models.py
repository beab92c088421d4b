"""Domain models for the order lifecycle and notification ledger."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class OrderStatus(str, Enum):
    """Durable order lifecycle states."""

    NEW = "new"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ARCHIVED = "archived"
    CANCELED = "canceled"


class OrderAction(str, Enum):
    """Operations that move an order between states."""

    CLAIM = "claim"
    COMPLETE = "complete"
    ARCHIVE = "archive"
    UNARCHIVE = "unarchive"
    CANCEL = "cancel"


class NotificationClass(str, Enum):
    """Lifecycle phase a push message belongs to."""

    AVAILABLE = "available"
    CLAIMED = "claimed"


class Role(str, Enum):
    """Resolved role of an identity."""

    CREATOR = "creator"
    WORKER = "worker"
    UNKNOWN = "unknown"


class WorkerTab(str, Enum):
    """Worker-side order list views."""

    URGENT = "urgent"
    NEW = "new"
    MINE = "mine"
    DONE = "done"


@dataclass(slots=True, frozen=True)
class OrderItem:
    """One requested line: product, color/attribute and quantity."""

    product: str
    color: str
    quantity: float


@dataclass(slots=True)
class OrderCreate:
    """Validated input payload for inserting a new order."""

    creator_id: str
    items: list[OrderItem]
    urgent: bool = False
    deadline: datetime | None = None


@dataclass(slots=True)
class OrderView:
    """Readable order view for callers and notifier."""

    order_id: int
    creator_id: str
    items: list[OrderItem]
    urgent: bool
    deadline: datetime | None
    status: OrderStatus
    worker_id: str | None
    created_at: datetime
    completed_at: datetime | None
    archived_at: datetime | None
    canceled_at: datetime | None
    cancel_reason: str | None
    updated_at: datetime


@dataclass(slots=True)
class NotificationRecordView:
    """One outstanding push-message handle."""

    record_id: int
    order_id: int
    recipient_id: str
    message_handle: str
    notification_class: NotificationClass
    created_at: datetime


@dataclass(slots=True)
class OrderEventView:
    """Order event entry for audit trail."""

    event_id: int
    order_id: int
    event_type: str
    status_from: OrderStatus | None
    status_to: OrderStatus | None
    actor_id: str | None
    created_at: datetime
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class OrderDetails:
    """Order with event stream and outstanding notifications."""

    order: OrderView
    events: list[OrderEventView]
    notifications: list[NotificationRecordView]


@dataclass(slots=True)
class UserView:
    """Registered identity with its role."""

    user_id: str
    role: Role
    display_name: str
    created_at: datetime
    updated_at: datetime


@dataclass(slots=True)
class TransitionResult:
    """Outcome of one committed conditional transition."""

    order: OrderView
    status_from: OrderStatus


@dataclass(slots=True)
class ArchiveSweepResult:
    """Counters for one auto-archive sweep."""

    cutoff: datetime
    candidates: int = 0
    archived: int = 0


@dataclass(slots=True)
class PurgeSweepResult:
    """Counters for one purge sweep."""

    archived_cutoff: datetime
    notification_cutoff: datetime
    orders_deleted: int = 0
    notifications_deleted: int = 0
    stale_notifications_deleted: int = 0
