"""Chat-callback adapter: button payloads such as ``claim:12`` to engine calls."""

from __future__ import annotations

from paint_orders.orders.errors import ValidationError
from paint_orders.orders.lifecycle import WORKER_ACTIONS
from paint_orders.orders.models import OrderAction, OrderView
from paint_orders.orders.services import OrderService

# Older messages still carry the original "take" button payload.
_ACTION_ALIASES = {"take": OrderAction.CLAIM}


def parse_action_payload(payload: str) -> tuple[OrderAction, int]:
    action_raw, separator, order_raw = payload.strip().partition(":")
    if not separator:
        raise ValidationError(f"Malformed action payload: {payload!r}")
    name = action_raw.strip().lower()
    action = _ACTION_ALIASES.get(name)
    if action is None:
        try:
            action = OrderAction(name)
        except ValueError as error:
            raise ValidationError(f"Unknown action in payload: {payload!r}") from error
    try:
        order_id = int(order_raw)
    except ValueError as error:
        raise ValidationError(f"Invalid order id in payload: {payload!r}") from error
    if order_id <= 0:
        raise ValidationError(f"Invalid order id in payload: {payload!r}")
    return action, order_id


def apply_action(service: OrderService, actor_id: str, payload: str) -> OrderView:
    """Run the worker action encoded in a push button for ``actor_id``."""

    action, order_id = parse_action_payload(payload)
    if action not in WORKER_ACTIONS:
        raise ValidationError(f"Action {action.value!r} cannot be triggered from a message.")
    if action == OrderAction.CLAIM:
        return service.claim(order_id, actor_id)
    return service.complete(order_id, actor_id)
