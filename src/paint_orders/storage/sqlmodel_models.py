"""SQLModel ORM tables for order storage."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, Text, UniqueConstraint
from sqlmodel import Field, SQLModel


class AppUser(SQLModel, table=True):
    __tablename__ = "users"  # type: ignore[bad-override]

    user_id: str = Field(primary_key=True)
    role: str = Field(index=True)
    display_name: str = ""
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class WorkOrder(SQLModel, table=True):
    __tablename__ = "orders"  # type: ignore[bad-override]
    __table_args__ = (
        Index("idx_orders_creator_listing", "creator_id", "status", "urgent", "created_at"),
        Index("idx_orders_status_completed", "status", "completed_at"),
        Index("idx_orders_status_archived", "status", "archived_at"),
        {"sqlite_autoincrement": True},
    )

    order_id: int | None = Field(default=None, primary_key=True)
    creator_id: str = Field(index=True)
    urgent: bool = Field(default=False)
    deadline: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True)))
    status: str = Field(index=True)
    worker_id: str | None = Field(default=None, index=True)
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    completed_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True)))
    archived_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True)))
    canceled_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True)))
    cancel_reason: str | None = Field(default=None, sa_column=Column(Text))
    updated_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class WorkOrderItem(SQLModel, table=True):
    __tablename__ = "order_items"  # type: ignore[bad-override]
    __table_args__ = (
        UniqueConstraint("order_id", "position", name="uq_order_items_order_position"),
    )

    id: int | None = Field(default=None, primary_key=True)
    order_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("orders.order_id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
    position: int
    product: str
    color: str
    quantity: float


class OrderNotification(SQLModel, table=True):
    __tablename__ = "order_notifications"  # type: ignore[bad-override]
    __table_args__ = (
        Index("idx_order_notifications_order_class", "order_id", "notification_class"),
    )

    id: int | None = Field(default=None, primary_key=True)
    order_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("orders.order_id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
    recipient_id: str = Field(index=True)
    message_handle: str
    notification_class: str
    created_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True),
    )


class OrderEvent(SQLModel, table=True):
    __tablename__ = "order_events"  # type: ignore[bad-override]
    __table_args__ = (Index("idx_order_events_order_time", "order_id", "created_at"),)

    id: int | None = Field(default=None, primary_key=True)
    order_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("orders.order_id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
    event_type: str = Field(index=True)
    status_from: str | None = None
    status_to: str | None = None
    actor_id: str | None = None
    details_json: str | None = Field(default=None, sa_column=Column(Text))
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
