"""Transport that only logs messages, for local runs without a bot token."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from itertools import count

from paint_orders.orders.transport.base import PushAction

logger = logging.getLogger(__name__)


class LoggingTransport:
    """Logs every send/retract and hands out sequential synthetic handles."""

    def __init__(self) -> None:
        self._handles = count(1)

    def send(self, recipient_id: str, text: str, actions: Sequence[PushAction] = ()) -> str:
        handle = str(next(self._handles))
        logger.info(
            "Push to %s (handle=%s, actions=%s): %s",
            recipient_id,
            handle,
            ",".join(action.payload for action in actions) or "-",
            text.replace("\n", " | "),
        )
        return handle

    def retract(self, recipient_id: str, handle: str) -> None:
        logger.info("Retract push %s for %s", handle, recipient_id)

    def close(self) -> None:
        return None
