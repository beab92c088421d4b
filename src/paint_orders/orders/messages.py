"""Plain-text push message bodies and button sets."""

from __future__ import annotations

from paint_orders.orders.lifecycle import worker_actions
from paint_orders.orders.models import OrderAction, OrderView
from paint_orders.orders.transport.base import PushAction

ACTION_LABELS: dict[OrderAction, str] = {
    OrderAction.CLAIM: "Take",
    OrderAction.COMPLETE: "Done",
}


def worker_buttons(order: OrderView) -> list[PushAction]:
    return [
        PushAction(action=action, order_id=order.order_id, label=ACTION_LABELS[action])
        for action in worker_actions(order.status)
    ]


def render_available(order: OrderView, *, creator_name: str) -> str:
    header = f"New order #{order.order_id}"
    if order.urgent:
        header += " (URGENT)"
    return "\n".join([header, f"From: {creator_name}", *_order_body(order)])


def render_claimed(order: OrderView) -> str:
    return "\n".join([f"Order #{order.order_id} is yours", *_order_body(order)])


def render_completed(order: OrderView, *, worker_name: str) -> str:
    return f"Order #{order.order_id} completed by {worker_name}"


def _order_body(order: OrderView) -> list[str]:
    lines = [
        f"- {item.product} | {item.color} | {_format_quantity(item.quantity)}" for item in order.items
    ]
    if order.deadline is not None:
        lines.append(f"Deadline: {order.deadline:%Y-%m-%d %H:%M} UTC")
    return lines


def _format_quantity(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:g}"
