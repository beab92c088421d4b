"""Initial order lifecycle schema: users, orders, items, notification ledger, events."""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("role", sa.String(), nullable=False),
        sa.Column("display_name", sa.String(), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("user_id"),
    )
    op.create_index("ix_users_role", "users", ["role"])

    op.create_table(
        "orders",
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column("creator_id", sa.String(), nullable=False),
        sa.Column("urgent", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("worker_id", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("archived_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("canceled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancel_reason", sa.Text(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("order_id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_orders_creator_id", "orders", ["creator_id"])
    op.create_index("ix_orders_status", "orders", ["status"])
    op.create_index("ix_orders_worker_id", "orders", ["worker_id"])
    op.create_index(
        "idx_orders_creator_listing",
        "orders",
        ["creator_id", "status", "urgent", "created_at"],
    )
    op.create_index("idx_orders_status_completed", "orders", ["status", "completed_at"])
    op.create_index("idx_orders_status_archived", "orders", ["status", "archived_at"])

    op.create_table(
        "order_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("product", sa.String(), nullable=False),
        sa.Column("color", sa.String(), nullable=False),
        sa.Column("quantity", sa.Float(), nullable=False),
        sa.ForeignKeyConstraint(["order_id"], ["orders.order_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("order_id", "position", name="uq_order_items_order_position"),
    )
    op.create_index("ix_order_items_order_id", "order_items", ["order_id"])

    op.create_table(
        "order_notifications",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column("recipient_id", sa.String(), nullable=False),
        sa.Column("message_handle", sa.String(), nullable=False),
        sa.Column("notification_class", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["order_id"], ["orders.order_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_order_notifications_order_id", "order_notifications", ["order_id"])
    op.create_index(
        "ix_order_notifications_recipient_id",
        "order_notifications",
        ["recipient_id"],
    )
    op.create_index("ix_order_notifications_created_at", "order_notifications", ["created_at"])
    op.create_index(
        "idx_order_notifications_order_class",
        "order_notifications",
        ["order_id", "notification_class"],
    )

    op.create_table(
        "order_events",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column("event_type", sa.String(), nullable=False),
        sa.Column("status_from", sa.String(), nullable=True),
        sa.Column("status_to", sa.String(), nullable=True),
        sa.Column("actor_id", sa.String(), nullable=True),
        sa.Column("details_json", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["order_id"], ["orders.order_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_order_events_order_id", "order_events", ["order_id"])
    op.create_index("ix_order_events_event_type", "order_events", ["event_type"])
    op.create_index("idx_order_events_order_time", "order_events", ["order_id", "created_at"])


def downgrade() -> None:
    op.drop_index("idx_order_events_order_time", table_name="order_events")
    op.drop_index("ix_order_events_event_type", table_name="order_events")
    op.drop_index("ix_order_events_order_id", table_name="order_events")
    op.drop_table("order_events")
    op.drop_index("idx_order_notifications_order_class", table_name="order_notifications")
    op.drop_index("ix_order_notifications_created_at", table_name="order_notifications")
    op.drop_index("ix_order_notifications_recipient_id", table_name="order_notifications")
    op.drop_index("ix_order_notifications_order_id", table_name="order_notifications")
    op.drop_table("order_notifications")
    op.drop_index("ix_order_items_order_id", table_name="order_items")
    op.drop_table("order_items")
    op.drop_index("idx_orders_status_archived", table_name="orders")
    op.drop_index("idx_orders_status_completed", table_name="orders")
    op.drop_index("idx_orders_creator_listing", table_name="orders")
    op.drop_index("ix_orders_worker_id", table_name="orders")
    op.drop_index("ix_orders_status", table_name="orders")
    op.drop_index("ix_orders_creator_id", table_name="orders")
    op.drop_table("orders")
    op.drop_index("ix_users_role", table_name="users")
    op.drop_table("users")
