"""Achievement announcement delivery."""

import logging
from dataclasses import asdict, dataclass
from typing import Optional, Protocol

import httpx

from posgoals.goals.errors import NotificationDeliveryFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    """User-facing announcement."""
    title: str
    body: str
    sound: bool = True
    tag: Optional[str] = None


class Notifier(Protocol):
    async def notify(self, notification: Notification) -> None: ...


class LogNotifier:
    """Writes announcements to the application log."""

    async def notify(self, notification: Notification) -> None:
        logger.info(f"🔔 {notification.title} {notification.body} [{notification.tag}]")


class WebhookNotifier:
    """POSTs announcements as JSON to a webhook URL."""

    def __init__(
        self,
        url: str,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize webhook notifier.

        Args:
            url: Endpoint receiving the JSON announcement
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.url = url
        self.timeout = timeout
        self.transport = transport

    async def notify(self, notification: Notification) -> None:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.url, json=asdict(notification))
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise NotificationDeliveryFailure(f"Webhook delivery failed: {e}") from e
        logger.debug(f"Delivered notification {notification.tag} to {self.url}")
