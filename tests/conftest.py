"""Shared test fixtures."""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from itertools import count
from pathlib import Path

import pytest

from paint_orders.config import LifecycleSettings
from paint_orders.orders.identity import IdentityResolver
from paint_orders.orders.models import OrderItem, Role
from paint_orders.orders.notifier import FanoutNotifier
from paint_orders.orders.repository import OrderRepository
from paint_orders.orders.services import CreateOrder, OrderService
from paint_orders.orders.transport import PushAction, TransportError

CREATOR_ID = "creator-1"
WORKER_IDS = ("worker-1", "worker-2", "worker-3")


@dataclass(slots=True)
class SentMessage:
    recipient_id: str
    handle: str
    text: str
    payloads: tuple[str, ...]


class RecordingTransport:
    """In-memory push transport that records traffic and can fail per recipient."""

    def __init__(self) -> None:
        self.sent: list[SentMessage] = []
        self.retracted: list[tuple[str, str]] = []
        self.failing_send: set[str] = set()
        self.failing_retract: set[str] = set()
        self.on_send: Callable[[str], None] | None = None
        self._handles = count(100)
        self._lock = threading.Lock()

    def send(self, recipient_id: str, text: str, actions: Sequence[PushAction] = ()) -> str:
        if recipient_id in self.failing_send:
            raise TransportError(f"recipient {recipient_id} unreachable")
        with self._lock:
            handle = str(next(self._handles))
            self.sent.append(
                SentMessage(
                    recipient_id=recipient_id,
                    handle=handle,
                    text=text,
                    payloads=tuple(action.payload for action in actions),
                ),
            )
        if self.on_send is not None:
            hook, self.on_send = self.on_send, None
            hook(recipient_id)
        return handle

    def retract(self, recipient_id: str, handle: str) -> None:
        if recipient_id in self.failing_retract:
            raise TransportError(f"cannot delete {handle} for {recipient_id}")
        with self._lock:
            self.retracted.append((recipient_id, handle))

    def close(self) -> None:
        return None

    def sent_to(self, recipient_id: str) -> list[SentMessage]:
        return [message for message in self.sent if message.recipient_id == recipient_id]

    def live_handles(self) -> set[str]:
        removed = {handle for _, handle in self.retracted}
        return {message.handle for message in self.sent if message.handle not in removed}


@pytest.fixture()
def repository(tmp_path: Path) -> Iterator[OrderRepository]:
    repo = OrderRepository(tmp_path / "orders.db")
    repo.init_schema()
    yield repo
    repo.close()


@pytest.fixture()
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture()
def identity(repository: OrderRepository) -> IdentityResolver:
    resolver = IdentityResolver(repository)
    resolver.register(user_id=CREATOR_ID, role=Role.CREATOR, display_name="Anna")
    for index, worker_id in enumerate(WORKER_IDS, start=1):
        resolver.register(user_id=worker_id, role=Role.WORKER, display_name=f"Worker {index}")
    return resolver


@pytest.fixture()
def service(
    repository: OrderRepository,
    transport: RecordingTransport,
    identity: IdentityResolver,
) -> OrderService:
    return build_service(repository, transport, identity)


def build_service(
    repository: OrderRepository,
    transport: RecordingTransport,
    identity: IdentityResolver,
    settings: LifecycleSettings | None = None,
) -> OrderService:
    return OrderService(
        repository=repository,
        notifier=FanoutNotifier(repository=repository, transport=transport),
        identity=identity,
        settings=settings,
    )


def paint_order(*, urgent: bool = False, creator_id: str = CREATOR_ID) -> CreateOrder:
    return CreateOrder(
        creator_id=creator_id,
        items=[
            OrderItem(product="Facade paint", color="white", quantity=10),
            OrderItem(product="Primer", color="grey", quantity=2.5),
        ],
        urgent=urgent,
    )
