"""Push transport implementations."""

from paint_orders.orders.transport.base import PushAction, PushTransport, TransportError
from paint_orders.orders.transport.log_transport import LoggingTransport
from paint_orders.orders.transport.telegram import TelegramTransport

__all__ = [
    "LoggingTransport",
    "PushAction",
    "PushTransport",
    "TelegramTransport",
    "TransportError",
]
