"""Telegram Bot API push transport over httpx."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import httpx

from paint_orders.orders.transport.base import PushAction, TransportError

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "https://api.telegram.org"
DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_MAX_RETRIES = 2

# deleteMessage descriptions meaning the message is already gone or too old to delete.
_IGNORABLE_DELETE_ERRORS = (
    "message to delete not found",
    "message can't be deleted",
)


class TelegramTransport:
    """Sends inline-keyboard messages and deletes them on retraction."""

    def __init__(
        self,
        *,
        bot_token: str,
        api_base_url: str = DEFAULT_API_BASE_URL,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        http_transport: httpx.BaseTransport | None = None,
    ) -> None:
        if not bot_token:
            raise ValueError("Telegram bot token is required.")
        self._base_url = f"{api_base_url.rstrip('/')}/bot{bot_token}"
        self._client = httpx.Client(
            timeout=httpx.Timeout(timeout_seconds, connect=min(timeout_seconds, 5.0)),
            transport=http_transport or httpx.HTTPTransport(retries=max_retries),
        )

    def send(self, recipient_id: str, text: str, actions: Sequence[PushAction] = ()) -> str:
        payload: dict[str, Any] = {"chat_id": recipient_id, "text": text}
        if actions:
            payload["reply_markup"] = {
                "inline_keyboard": [
                    [{"text": action.label, "callback_data": action.payload} for action in actions],
                ],
            }
        body = self._call("sendMessage", payload)
        if not body.get("ok"):
            raise TransportError(
                f"sendMessage to {recipient_id} rejected: {body.get('description', 'unknown error')}",
            )
        result = body.get("result") or {}
        message_id = result.get("message_id")
        if message_id is None:
            raise TransportError(f"sendMessage to {recipient_id} returned no message_id.")
        return str(message_id)

    def retract(self, recipient_id: str, handle: str) -> None:
        try:
            message_id = int(handle)
        except ValueError as exc:
            raise TransportError(f"Invalid Telegram message handle: {handle!r}") from exc
        body = self._call("deleteMessage", {"chat_id": recipient_id, "message_id": message_id})
        if body.get("ok"):
            return
        description = str(body.get("description", ""))
        if any(marker in description.lower() for marker in _IGNORABLE_DELETE_ERRORS):
            logger.debug("Message %s for %s already gone: %s", handle, recipient_id, description)
            return
        raise TransportError(
            f"deleteMessage {handle} for {recipient_id} rejected: {description or 'unknown error'}",
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> TelegramTransport:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def _call(self, method: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            response = self._client.post(f"{self._base_url}/{method}", json=payload)
        except httpx.TimeoutException as exc:
            raise TransportError(f"{method} timed out") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} failed: {type(exc).__name__}") from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise TransportError(
                f"{method} returned non-JSON response (HTTP {response.status_code})",
            ) from exc
        if not isinstance(body, dict):
            raise TransportError(f"{method} returned unexpected payload (HTTP {response.status_code})")
        return body
