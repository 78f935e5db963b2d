"""
Notification queue interface.

The contract mirrors a hosted message queue: at-least-once delivery,
competing consumers, and a visibility timeout during which a received
message is hidden from other consumers until it is deleted or reappears.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class ReceivedMessage:
    """A message handed to a consumer by receive()."""

    message_id: str
    body: str
    receipt_handle: str
    receive_count: int = 1


class NotificationQueue(ABC):
    """Durable at-least-once message channel."""

    @abstractmethod
    async def send(self, body: str) -> str:
        """
        Enqueue a message body.

        Returns:
            The queue's message id.

        Raises:
            TransportError: If the message could not be stored.
        """

    @abstractmethod
    async def receive(self, max_messages: int = 10, wait_seconds: float = 20) -> list[ReceivedMessage]:
        """
        Long-poll for up to max_messages visible messages.

        Returns as soon as at least one message is available, or with an
        empty list once wait_seconds have passed. Must be cancellable while
        waiting.

        Raises:
            TransportError: If the queue could not be read.
        """

    @abstractmethod
    async def delete(self, receipt_handle: str) -> bool:
        """
        Acknowledge a received message.

        Returns:
            False if the handle no longer matches a message (already deleted,
            or re-received by another consumer after its visibility expired).

        Raises:
            TransportError: If the queue could not be written.
        """
