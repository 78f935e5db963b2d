"""
Email notifier.

Sends a plain-text email per new application over SMTP.
"""

from email.mime.text import MIMEText
from typing import Optional

import aiosmtplib

from config.settings import settings, Settings
from exceptions import TransportError
from models.notification import NotificationMessage
from notifiers.base import Notifier


class EmailNotifier(Notifier):
    """Deliver notifications as emails to a fixed recipient."""

    NAME = "email"

    def __init__(self, config: Optional[Settings] = None):
        super().__init__()
        self.config = config or settings
        self.recipient = self.config.notification_recipient
        self.sender = self.config.smtp_from_email or self.config.smtp_user
        if not (self.config.smtp_host and self.recipient and self.sender):
            raise ValueError(
                "smtp_host, notification_recipient and smtp_from_email (or smtp_user) "
                "are required for the email notifier"
            )

    def build_email(self, message: NotificationMessage) -> MIMEText:
        email = MIMEText(message.summary(), "plain", "utf-8")
        email["Subject"] = f"New application for job {message.job_id}"
        email["From"] = self.sender
        email["To"] = self.recipient
        email["Reply-To"] = message.candidate_email
        return email

    async def notify(self, message: NotificationMessage) -> None:
        try:
            await aiosmtplib.send(
                self.build_email(message),
                hostname=self.config.smtp_host,
                port=self.config.smtp_port,
                username=self.config.smtp_user,
                password=self.config.smtp_password,
                use_tls=self.config.smtp_use_tls,
                start_tls=self.config.smtp_start_tls if not self.config.smtp_use_tls else False,
                timeout=self.config.notification_timeout_seconds,
            )
        except aiosmtplib.SMTPException as e:
            raise TransportError(f"SMTP delivery failed for message {message.message_id}: {e}") from e
        except OSError as e:
            raise TransportError(f"SMTP connection failed for message {message.message_id}: {e}") from e

        self.logger.info("Email sent", message_id=message.message_id, to=self.recipient)
