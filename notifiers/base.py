"""
Base notifier class.
"""

from abc import ABC, abstractmethod

import structlog

from models.notification import NotificationMessage


class Notifier(ABC):
    """
    Abstract base class for the side effect performed per notification.
    Implementations raise on failure; the worker decides what that means.
    """

    # Subclasses should override this
    NAME: str = "unknown"

    def __init__(self):
        self.logger = structlog.get_logger().bind(notifier=self.NAME)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        """Release any client resources."""

    @abstractmethod
    async def notify(self, message: NotificationMessage) -> None:
        """
        Deliver one notification.

        Args:
            message: Decoded notification message.

        Raises:
            TransportError: If the delivery channel failed.
        """
        pass


class LogNotifier(Notifier):
    """Notifier that records each new application in the log."""

    NAME = "log"

    async def notify(self, message: NotificationMessage) -> None:
        self.logger.info(
            "New job application",
            message_id=message.message_id,
            job_id=message.job_id,
            application_id=message.application_id,
            candidate_name=message.candidate_name,
            candidate_email=message.candidate_email,
        )
