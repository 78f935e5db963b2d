"""
Webhook notifier.

POSTs the notification message as JSON to a configured URL. Timeouts and
connection errors are retried with exponential backoff; 4xx/5xx responses
are not.
"""

from typing import Optional

import httpx
import structlog
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from config.settings import settings
from exceptions import TransportError
from models.notification import NotificationMessage
from notifiers.base import Notifier

logger = structlog.get_logger()


class WebhookNotifier(Notifier):
    """Deliver notifications to an HTTP endpoint."""

    NAME = "webhook"

    def __init__(
        self,
        url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__()
        self.url = url or settings.notification_webhook_url
        if not self.url:
            raise ValueError("notification_webhook_url is required for the webhook notifier")
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_seconds or settings.notification_timeout_seconds),
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    async def close(self) -> None:
        await self.client.aclose()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        retry=retry_if_exception_type((httpx.TimeoutException, httpx.ConnectError)),
        reraise=True,
        before_sleep=lambda retry_state: logger.warning(
            "Retrying webhook delivery",
            attempt=retry_state.attempt_number,
            wait=getattr(retry_state.next_action, 'sleep', 0) if retry_state.next_action else 0,
        ),
    )
    async def _post(self, payload: str) -> httpx.Response:
        response = await self.client.post(self.url, content=payload)
        response.raise_for_status()
        return response

    async def notify(self, message: NotificationMessage) -> None:
        try:
            response = await self._post(message.encode())
        except httpx.HTTPStatusError as e:
            raise TransportError(
                f"Webhook returned HTTP {e.response.status_code} for message {message.message_id}"
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(f"Webhook delivery failed for message {message.message_id}: {e}") from e

        self.logger.info(
            "Webhook delivered",
            message_id=message.message_id,
            status=response.status_code,
        )
