"""
Chat webhook notifications.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from rebuild_ci.config import RebuildConfig, get_config
from rebuild_ci.context import RunContext
from rebuild_ci.models import NotificationEvent

logger = logging.getLogger(__name__)

TEXT_STYLE = "text"
ATTACHMENT_STYLE = "attachments"


class ChatNotifier:
    """
    Sends pipeline transitions to an incoming chat webhook.

    Best effort: failures are logged and reported as False, never raised
    and never retried.
    """

    def __init__(
        self,
        pipeline_name: str,
        style: str = TEXT_STYLE,
        webhook_url: Optional[str] = None,
        client: Optional[httpx.Client] = None,
        config: Optional[RebuildConfig] = None,
    ) -> None:
        """
        Initialize the notifier.

        Args:
            pipeline_name: Shown in the title, e.g. ``run-tests``
            style: ``text`` (single text block) or ``attachments``
            webhook_url: Webhook (default: config.chat_webhook_url)
            client: httpx client to send with
        """
        if style not in (TEXT_STYLE, ATTACHMENT_STYLE):
            raise ValueError(f"Unknown chat payload style: {style}")

        config = config or get_config()

        self.pipeline_name = pipeline_name
        self.style = style
        self.webhook_url = webhook_url or config.chat_webhook_url
        self._owns_client = client is None
        self.client = client or httpx.Client(timeout=config.http_timeout)

    def close(self) -> None:
        """Close the httpx client if this notifier created it."""
        if self._owns_client:
            self.client.close()

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    def build_payload(self, run: RunContext, event: NotificationEvent) -> Dict[str, Any]:
        if self.style == ATTACHMENT_STYLE:
            title = f"[{self.pipeline_name}] on {run.full_name}:{run.branch} by {run.actor}"
            return {
                "attachments": [
                    {"title": title, "text": event.message, "color": event.color},
                ],
            }

        title = f"*{run.full_name} {self.pipeline_name} triggered by {run.actor}*"
        return {
            "text": f"{title}\n{event.message}\n{run.link}",
            "color": event.color,
        }

    def notify(self, run: RunContext, event: NotificationEvent) -> bool:
        """
        Send one notification.

        Returns:
            True if the webhook accepted the message
        """
        if not self.enabled:
            logger.debug(f"Chat webhook not configured, dropping {event.kind.value} notification")
            return False

        try:
            response = self.client.post(self.webhook_url, json=self.build_payload(run, event))
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(f"Chat notification ({event.kind.value}) failed: {e}")
            return False

        logger.info(f"Sent {event.kind.value} chat notification")
        return True
