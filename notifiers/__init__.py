"""
Notification side effects run by the worker.
"""

from typing import Optional

from config.settings import settings, Settings
from notifiers.base import Notifier, LogNotifier
from notifiers.smtp import EmailNotifier
from notifiers.webhook import WebhookNotifier

__all__ = ["Notifier", "LogNotifier", "EmailNotifier", "WebhookNotifier", "build_notifier"]


def build_notifier(config: Optional[Settings] = None) -> Notifier:
    """Create the notifier selected by the `notifier` setting."""
    config = config or settings
    if config.notifier == "webhook":
        return WebhookNotifier(
            url=config.notification_webhook_url,
            timeout_seconds=config.notification_timeout_seconds,
        )
    if config.notifier == "email":
        return EmailNotifier(config)
    return LogNotifier()
