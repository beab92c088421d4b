"""Push transport interface consumed by the fan-out notifier."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from paint_orders.orders.models import OrderAction


class TransportError(RuntimeError):
    """Delivery or retraction failed for one message."""


@dataclass(slots=True, frozen=True)
class PushAction:
    """Button attached to a push message; the payload round-trips through the chat client."""

    action: OrderAction
    order_id: int
    label: str

    @property
    def payload(self) -> str:
        return f"{self.action.value}:{self.order_id}"


class PushTransport(Protocol):
    """Protocol implemented by push-message transports."""

    def send(self, recipient_id: str, text: str, actions: Sequence[PushAction] = ()) -> str:
        """Deliver one message and return a handle usable for retraction."""

    def retract(self, recipient_id: str, handle: str) -> None:
        """Delete a previously sent message; an already-missing message is not an error."""

    def close(self) -> None:
        """Release transport resources."""
