"""Order store, notification ledger and identity registry backed by SQLModel + SQLite."""

from __future__ import annotations

import json
import logging
from collections import defaultdict
from collections.abc import Iterable, Mapping
from datetime import datetime
from pathlib import Path

from sqlalchemy import update as sa_update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlmodel import Session, col, delete, select

from paint_orders.orders.errors import AuthorizationError, ConflictError
from paint_orders.orders.lifecycle import EVENT_TYPES, source_statuses, target_status
from paint_orders.orders.models import (
    NotificationClass,
    NotificationRecordView,
    OrderAction,
    OrderCreate,
    OrderDetails,
    OrderEventView,
    OrderItem,
    OrderStatus,
    OrderView,
    Role,
    TransitionResult,
    UserView,
)
from paint_orders.storage.alembic_runner import upgrade_head
from paint_orders.storage.common import (
    build_sqlite_engine,
    to_db_datetime,
    to_utc_aware_datetime,
    to_utc_aware_or_none,
    utc_now,
)
from paint_orders.storage.sqlmodel_models import (
    AppUser,
    OrderEvent,
    OrderNotification,
    WorkOrder,
    WorkOrderItem,
)

logger = logging.getLogger(__name__)


class OrderRepository:
    """Persistence facade; every order mutation is one conditional single-row update."""

    def __init__(self, db_path: Path, *, sqlite_busy_timeout_ms: int = 5_000) -> None:
        self.db_path = db_path
        self.engine = build_sqlite_engine(db_path=db_path, busy_timeout_ms=sqlite_busy_timeout_ms)

    def close(self) -> None:
        """Close underlying DB resources."""

        self.engine.dispose()

    def init_schema(self) -> None:
        """Run schema migrations."""

        upgrade_head(self.db_path, engine=self.engine)

    # -- identity registry -----------------------------------------------------

    def upsert_user(self, *, user_id: str, role: Role, display_name: str) -> UserView:
        """Register an identity or update its role and name."""

        if role == Role.UNKNOWN:
            raise ValueError("Cannot register an identity with role 'unknown'.")
        now = to_db_datetime(utc_now())
        with Session(self.engine) as session:
            session.exec(
                sqlite_insert(AppUser)
                .values(
                    user_id=user_id,
                    role=role.value,
                    display_name=display_name,
                    created_at=now,
                    updated_at=now,
                )
                .on_conflict_do_update(
                    index_elements=["user_id"],
                    set_={"role": role.value, "display_name": display_name, "updated_at": now},
                ),
            )
            session.commit()
            row = session.exec(select(AppUser).where(AppUser.user_id == user_id)).one()
            return _to_user_view(row)

    def get_user(self, *, user_id: str) -> UserView | None:
        with Session(self.engine) as session:
            row = session.exec(select(AppUser).where(AppUser.user_id == user_id)).one_or_none()
        return _to_user_view(row) if row is not None else None

    def list_users(self, *, role: Role | None = None) -> list[UserView]:
        """List registered identities, optionally filtered by role."""

        with Session(self.engine) as session:
            statement = select(AppUser).order_by(col(AppUser.created_at).asc())
            if role is not None:
                statement = statement.where(AppUser.role == role.value)
            rows = session.exec(statement).all()
        return [_to_user_view(row) for row in rows]

    # -- orders ----------------------------------------------------------------

    def insert_order(self, payload: OrderCreate) -> OrderView:
        """Persist a new order in status ``new`` with its items and creation event."""

        now = utc_now()
        with Session(self.engine) as session:
            row = WorkOrder(
                creator_id=payload.creator_id,
                urgent=payload.urgent,
                deadline=to_db_datetime(payload.deadline) if payload.deadline else None,
                status=OrderStatus.NEW.value,
                created_at=to_db_datetime(now),
                updated_at=to_db_datetime(now),
            )
            session.add(row)
            session.flush()
            if row.order_id is None:
                raise RuntimeError("Order id was not assigned on insert.")
            order_id = row.order_id
            for position, item in enumerate(payload.items):
                session.add(
                    WorkOrderItem(
                        order_id=order_id,
                        position=position,
                        product=item.product,
                        color=item.color,
                        quantity=item.quantity,
                    ),
                )
            self._add_event(
                session=session,
                order_id=order_id,
                event_type="created",
                status_from=None,
                status_to=OrderStatus.NEW,
                actor_id=payload.creator_id,
                details={"items": len(payload.items), "urgent": payload.urgent},
            )
            session.commit()
            session.refresh(row)
            return _to_order_view(row, items=list(payload.items))

    def get_order(self, *, order_id: int) -> OrderView | None:
        with Session(self.engine) as session:
            row = session.get(WorkOrder, order_id)
            if row is None:
                return None
            return _to_order_view(row, items=self._load_items(session, [order_id])[order_id])

    def transition_order(  # noqa: PLR0913
        self,
        *,
        order_id: int,
        action: OrderAction,
        actor_id: str | None,
        creator_id: str | None = None,
        worker_id: str | None = None,
        values: Mapping[str, object] | None = None,
        details: dict[str, object] | None = None,
    ) -> TransitionResult:
        """Apply ``action`` iff the row still matches status and scope predicates.

        ``creator_id``/``worker_id`` are part of the same UPDATE predicate as the
        status. The preceding read only classifies failures and picks the exact
        source status to compare against; it never authorizes the write.
        """

        sources = source_statuses(action)
        update_values = {
            key: to_db_datetime(value) if isinstance(value, datetime) else value
            for key, value in (values or {}).items()
        }
        now = utc_now()
        with Session(self.engine) as session:
            current = session.exec(
                select(WorkOrder).where(WorkOrder.order_id == order_id),
            ).one_or_none()
            if current is None:
                raise ConflictError(f"Order #{order_id} not found.")
            if creator_id is not None and current.creator_id != creator_id:
                raise AuthorizationError(f"Order #{order_id} belongs to another creator.")
            previous = OrderStatus(current.status)
            if previous not in sources:
                raise ConflictError(
                    f"Order #{order_id} cannot be {EVENT_TYPES[action]}: "
                    f"status is {previous.value}.",
                )
            if worker_id is not None and current.worker_id != worker_id:
                raise ConflictError(f"Order #{order_id} is not assigned to you.")
            target = target_status(previous, action)

            statement = sa_update(WorkOrder).where(
                col(WorkOrder.order_id) == order_id,
                col(WorkOrder.status) == previous.value,
            )
            if creator_id is not None:
                statement = statement.where(col(WorkOrder.creator_id) == creator_id)
            if worker_id is not None:
                statement = statement.where(col(WorkOrder.worker_id) == worker_id)
            result = session.exec(
                statement.values(
                    status=target.value,
                    updated_at=to_db_datetime(now),
                    **update_values,
                ),
            )
            if result.rowcount != 1:
                session.rollback()
                logger.debug("Order #%s: %s lost a concurrent update", order_id, action.value)
                raise ConflictError(
                    f"Order #{order_id} changed concurrently; {action.value} was not applied.",
                )

            self._add_event(
                session=session,
                order_id=order_id,
                event_type=EVENT_TYPES[action],
                status_from=previous,
                status_to=target,
                actor_id=actor_id,
                details=details or {},
            )
            session.commit()
            updated = session.exec(
                select(WorkOrder)
                .where(WorkOrder.order_id == order_id)
                .execution_options(populate_existing=True),
            ).one()
            items = self._load_items(session, [order_id])[order_id]
            return TransitionResult(
                order=_to_order_view(updated, items=items),
                status_from=previous,
            )

    def list_orders(  # noqa: PLR0913
        self,
        *,
        creator_id: str | None = None,
        worker_id: str | None = None,
        statuses: Iterable[OrderStatus] | None = None,
        urgent_only: bool = False,
        limit: int = 100,
    ) -> list[OrderView]:
        """List orders sorted by urgency, then newest first."""

        with Session(self.engine) as session:
            statement = select(WorkOrder)
            if creator_id is not None:
                statement = statement.where(WorkOrder.creator_id == creator_id)
            if worker_id is not None:
                statement = statement.where(WorkOrder.worker_id == worker_id)
            if statuses is not None:
                statement = statement.where(
                    col(WorkOrder.status).in_([status.value for status in statuses]),
                )
            if urgent_only:
                statement = statement.where(col(WorkOrder.urgent).is_(True))
            statement = statement.order_by(
                col(WorkOrder.urgent).desc(),
                col(WorkOrder.created_at).desc(),
                col(WorkOrder.order_id).desc(),
            ).limit(limit)
            rows = session.exec(statement).all()
            items = self._load_items(session, [row.order_id for row in rows if row.order_id])
        return [_to_order_view(row, items=items[row.order_id or 0]) for row in rows]

    def list_completed_before(self, *, cutoff: datetime) -> list[int]:
        """Ids of completed orders whose completion timestamp is older than ``cutoff``."""

        with Session(self.engine) as session:
            order_ids = session.exec(
                select(WorkOrder.order_id)
                .where(
                    WorkOrder.status == OrderStatus.COMPLETED.value,
                    col(WorkOrder.completed_at).is_not(None),
                    col(WorkOrder.completed_at) < to_db_datetime(cutoff),
                )
                .order_by(col(WorkOrder.completed_at).asc()),
            ).all()
        return [order_id for order_id in order_ids if order_id is not None]

    def purge_archived_before(self, *, cutoff: datetime) -> tuple[int, int]:
        """Delete archived orders older than ``cutoff`` with their ledger rows.

        Returns ``(orders_deleted, notifications_deleted)``. Items and events go
        with the order through ``ON DELETE CASCADE``.
        """

        cutoff_db = to_db_datetime(cutoff)
        expired = select(WorkOrder.order_id).where(
            WorkOrder.status == OrderStatus.ARCHIVED.value,
            col(WorkOrder.archived_at).is_not(None),
            col(WorkOrder.archived_at) < cutoff_db,
        )
        with Session(self.engine) as session:
            notifications = session.exec(
                delete(OrderNotification).where(col(OrderNotification.order_id).in_(expired)),
            )
            orders = session.exec(
                delete(WorkOrder).where(
                    col(WorkOrder.status) == OrderStatus.ARCHIVED.value,
                    col(WorkOrder.archived_at).is_not(None),
                    col(WorkOrder.archived_at) < cutoff_db,
                ),
            )
            session.commit()
            return int(orders.rowcount or 0), int(notifications.rowcount or 0)

    def get_order_details(self, *, order_id: int) -> OrderDetails | None:
        """Return order with its event stream and outstanding notifications."""

        order = self.get_order(order_id=order_id)
        if order is None:
            return None
        with Session(self.engine) as session:
            event_rows = session.exec(
                select(OrderEvent)
                .where(OrderEvent.order_id == order_id)
                .order_by(col(OrderEvent.created_at).asc(), col(OrderEvent.id).asc()),
            ).all()

        events: list[OrderEventView] = []
        for row in event_rows:
            details = {}
            if row.details_json:
                parsed = json.loads(row.details_json)
                if isinstance(parsed, dict):
                    details = parsed
            events.append(
                OrderEventView(
                    event_id=row.id or 0,
                    order_id=row.order_id,
                    event_type=row.event_type,
                    status_from=OrderStatus(row.status_from) if row.status_from else None,
                    status_to=OrderStatus(row.status_to) if row.status_to else None,
                    actor_id=row.actor_id,
                    created_at=to_utc_aware_datetime(row.created_at),
                    details=details,
                ),
            )
        return OrderDetails(
            order=order,
            events=events,
            notifications=self.list_notifications(order_id=order_id),
        )

    # -- notification ledger ---------------------------------------------------

    def add_notification(
        self,
        *,
        order_id: int,
        recipient_id: str,
        message_handle: str,
        notification_class: NotificationClass,
    ) -> NotificationRecordView:
        """Record one delivered push message so it can be retracted later."""

        with Session(self.engine) as session:
            row = OrderNotification(
                order_id=order_id,
                recipient_id=recipient_id,
                message_handle=message_handle,
                notification_class=notification_class.value,
                created_at=to_db_datetime(utc_now()),
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return _to_notification_view(row)

    def list_notifications(
        self,
        *,
        order_id: int,
        notification_class: NotificationClass | None = None,
    ) -> list[NotificationRecordView]:
        with Session(self.engine) as session:
            statement = select(OrderNotification).where(OrderNotification.order_id == order_id)
            if notification_class is not None:
                statement = statement.where(
                    OrderNotification.notification_class == notification_class.value,
                )
            rows = session.exec(statement.order_by(col(OrderNotification.id).asc())).all()
        return [_to_notification_view(row) for row in rows]

    def delete_notifications(self, *, record_ids: Iterable[int]) -> int:
        ids = list(record_ids)
        if not ids:
            return 0
        with Session(self.engine) as session:
            result = session.exec(
                delete(OrderNotification).where(col(OrderNotification.id).in_(ids)),
            )
            session.commit()
            return int(result.rowcount or 0)

    def delete_notifications_before(self, *, cutoff: datetime) -> int:
        """Drop ledger rows older than ``cutoff`` regardless of order state."""

        with Session(self.engine) as session:
            result = session.exec(
                delete(OrderNotification).where(
                    col(OrderNotification.created_at) < to_db_datetime(cutoff),
                ),
            )
            session.commit()
            return int(result.rowcount or 0)

    # -- internals -------------------------------------------------------------

    def _load_items(self, session: Session, order_ids: list[int]) -> dict[int, list[OrderItem]]:
        grouped: dict[int, list[OrderItem]] = defaultdict(list)
        if not order_ids:
            return grouped
        rows = session.exec(
            select(WorkOrderItem)
            .where(col(WorkOrderItem.order_id).in_(order_ids))
            .order_by(col(WorkOrderItem.order_id).asc(), col(WorkOrderItem.position).asc()),
        ).all()
        for row in rows:
            grouped[row.order_id].append(
                OrderItem(product=row.product, color=row.color, quantity=row.quantity),
            )
        return grouped

    def _add_event(  # noqa: PLR0913
        self,
        *,
        session: Session,
        order_id: int,
        event_type: str,
        status_from: OrderStatus | None,
        status_to: OrderStatus | None,
        actor_id: str | None,
        details: dict[str, object],
    ) -> None:
        session.add(
            OrderEvent(
                order_id=order_id,
                event_type=event_type,
                status_from=status_from.value if status_from is not None else None,
                status_to=status_to.value if status_to is not None else None,
                actor_id=actor_id,
                details_json=json.dumps(details, ensure_ascii=False, sort_keys=True)
                if details
                else None,
                created_at=to_db_datetime(utc_now()),
            ),
        )


def _to_order_view(row: WorkOrder, *, items: list[OrderItem]) -> OrderView:
    if row.order_id is None:
        raise RuntimeError("Order row has no id.")
    return OrderView(
        order_id=row.order_id,
        creator_id=row.creator_id,
        items=items,
        urgent=bool(row.urgent),
        deadline=to_utc_aware_or_none(row.deadline),
        status=OrderStatus(row.status),
        worker_id=row.worker_id,
        created_at=to_utc_aware_datetime(row.created_at),
        completed_at=to_utc_aware_or_none(row.completed_at),
        archived_at=to_utc_aware_or_none(row.archived_at),
        canceled_at=to_utc_aware_or_none(row.canceled_at),
        cancel_reason=row.cancel_reason,
        updated_at=to_utc_aware_datetime(row.updated_at),
    )


def _to_notification_view(row: OrderNotification) -> NotificationRecordView:
    return NotificationRecordView(
        record_id=row.id or 0,
        order_id=row.order_id,
        recipient_id=row.recipient_id,
        message_handle=row.message_handle,
        notification_class=NotificationClass(row.notification_class),
        created_at=to_utc_aware_datetime(row.created_at),
    )


def _to_user_view(row: AppUser) -> UserView:
    return UserView(
        user_id=row.user_id,
        role=Role(row.role),
        display_name=row.display_name,
        created_at=to_utc_aware_datetime(row.created_at),
        updated_at=to_utc_aware_datetime(row.updated_at),
    )
