"""New-order SMS to the fulfiller.

Delivery is best effort. Callers treat any exception from here as non-fatal.
"""

import logging
from typing import Optional

from twilio.rest import Client

from app.settings import settings

logger = logging.getLogger("kitchen.notify")


def format_new_order_message(dish_count: int, note: Optional[str] = None) -> str:
    body = f"New order! {dish_count} dish(es) waiting in the kitchen."
    if note:
        body += f"\nNote: {note}"
    return body


class OrderNotifier:
    """Sends SMS through Twilio. Logs instead of sending when not configured."""

    def __init__(
        self,
        account_sid: Optional[str] = None,
        auth_token: Optional[str] = None,
        from_number: Optional[str] = None,
        to_number: Optional[str] = None,
        client: Optional[Client] = None,
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.to_number = to_number
        self._client = client

    @classmethod
    def from_settings(cls) -> "OrderNotifier":
        return cls(
            account_sid=settings.twilio_account_sid,
            auth_token=settings.twilio_auth_token,
            from_number=settings.twilio_from_number,
            to_number=settings.fulfiller_phone_number,
        )

    @property
    def configured(self) -> bool:
        has_credentials = self._client is not None or (self.account_sid and self.auth_token)
        return bool(has_credentials and self.from_number and self.to_number)

    def _get_client(self) -> Client:
        if self._client is None:
            self._client = Client(self.account_sid, self.auth_token)
        return self._client

    def notify_new_order(self, dish_count: int, note: Optional[str] = None) -> None:
        body = format_new_order_message(dish_count, note)
        if not self.configured:
            logger.info(f"SMS not configured. Would send: {body!r}")
            return

        message = self._get_client().messages.create(
            body=body,
            from_=self.from_number,
            to=self.to_number,
        )
        logger.info(f"New-order SMS sent: {message.sid}")


_notifier: OrderNotifier | None = None


def get_notifier() -> OrderNotifier:
    """FastAPI dependency."""
    global _notifier
    if _notifier is None:
        _notifier = OrderNotifier.from_settings()
    return _notifier
