"""Fan-out notifier: sends push messages and reconciles them with the ledger."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from paint_orders.orders.models import NotificationClass, OrderView
from paint_orders.orders.repository import OrderRepository
from paint_orders.orders.transport.base import PushAction, PushTransport, TransportError

logger = logging.getLogger(__name__)


class FanoutNotifier:
    """Best-effort delivery per recipient; every delivered handle lands in the ledger.

    Transport failures are logged and swallowed here so they never fail the
    lifecycle transition that triggered the message.
    """

    def __init__(self, *, repository: OrderRepository, transport: PushTransport) -> None:
        self.repository = repository
        self.transport = transport

    def broadcast(  # noqa: PLR0913
        self,
        order: OrderView,
        notification_class: NotificationClass,
        recipients: Iterable[str],
        *,
        text: str,
        actions: Sequence[PushAction] = (),
    ) -> int:
        """Send the same message to every recipient; return how many were delivered."""

        delivered = 0
        for recipient_id in recipients:
            if self._deliver(order, notification_class, recipient_id, text=text, actions=actions):
                delivered += 1
        logger.info(
            "Order #%s: %s broadcast delivered to %d recipient(s)",
            order.order_id,
            notification_class.value,
            delivered,
        )
        return delivered

    def notify_one(  # noqa: PLR0913
        self,
        order: OrderView,
        notification_class: NotificationClass | None,
        recipient_id: str,
        *,
        text: str,
        actions: Sequence[PushAction] = (),
    ) -> bool:
        """Send one message; ``notification_class=None`` sends an untracked one-off notice."""

        if notification_class == NotificationClass.CLAIMED:
            # at most one claimed message per order
            self.retract(order.order_id, NotificationClass.CLAIMED)
        return self._deliver(order, notification_class, recipient_id, text=text, actions=actions)

    def retract(self, order_id: int, notification_class: NotificationClass) -> int:
        """Delete every outstanding message of a class, then its ledger rows. Idempotent."""

        records = self.repository.list_notifications(
            order_id=order_id,
            notification_class=notification_class,
        )
        if not records:
            return 0
        for record in records:
            try:
                self.transport.retract(record.recipient_id, record.message_handle)
            except TransportError as error:
                logger.warning(
                    "Order #%s: failed to retract %s message %s for %s: %s",
                    order_id,
                    notification_class.value,
                    record.message_handle,
                    record.recipient_id,
                    error,
                )
        removed = self.repository.delete_notifications(
            record_ids=[record.record_id for record in records],
        )
        logger.info(
            "Order #%s: retracted %d %s notification(s)",
            order_id,
            removed,
            notification_class.value,
        )
        return removed

    def _deliver(
        self,
        order: OrderView,
        notification_class: NotificationClass | None,
        recipient_id: str,
        *,
        text: str,
        actions: Sequence[PushAction],
    ) -> bool:
        try:
            handle = self.transport.send(recipient_id, text, actions)
        except TransportError as error:
            logger.warning(
                "Order #%s: failed to deliver %s message to %s: %s",
                order.order_id,
                notification_class.value if notification_class else "notice",
                recipient_id,
                error,
            )
            return False
        if notification_class is not None:
            self.repository.add_notification(
                order_id=order.order_id,
                recipient_id=recipient_id,
                message_handle=handle,
                notification_class=notification_class,
            )
        return True
