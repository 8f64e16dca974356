"""Discord-style webhook notifier (``POST {"content": message}``)."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from pds_a11y.errors import NotifyError
from pds_a11y.notify.base import NotifierPort

logger = logging.getLogger(__name__)


@dataclass
class WebhookNotifier:
    """Post run summaries to a webhook URL. One attempt, no retries."""

    http: httpx.AsyncClient
    url: str

    async def notify(self, message: str) -> None:
        try:
            response = await self.http.post(self.url, json={"content": message})
        except httpx.HTTPError as exc:
            raise NotifyError(f"Webhook request failed: {exc}") from exc
        if not response.is_success:
            raise NotifyError(f"Webhook rejected notification: HTTP {response.status_code}")


class NullNotifier:
    """Used when no webhook is configured; only logs the message."""

    async def notify(self, message: str) -> None:
        logger.debug("No webhook configured, dropping notification: %s", message)


async def dispatch_notification(notifier: NotifierPort, message: str) -> None:
    """Send *message*, logging instead of raising on any failure."""
    try:
        await notifier.notify(message)
    except NotifyError as exc:
        logger.warning("Notification not delivered: %s", exc)
    except Exception:
        logger.exception("Unexpected error while sending notification")
