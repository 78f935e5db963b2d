"""
Error taxonomy for Job Manager.
"""

from typing import Optional


class JobManagerError(Exception):
    """Base class for all application errors."""


class NotFound(JobManagerError):
    """A job, application or stored object does not exist."""

    def __init__(self, kind: str, key: str):
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} not found: {key}")


class ValidationError(JobManagerError):
    """Input was rejected before any side effect was performed."""


class TransportError(JobManagerError):
    """A queue, store or notifier call failed at the transport level."""


class NotificationEnqueueFailed(JobManagerError):
    """
    The application was persisted but its notification could not be enqueued.

    The record is durable; no notification will be sent for it unless the
    reconciliation sweep picks it up later.
    """

    def __init__(self, application_id: str, cause: Optional[BaseException] = None):
        self.application_id = application_id
        self.cause = cause
        message = f"Notification enqueue failed for application {application_id}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class MessageDecodeError(JobManagerError):
    """A queue message body could not be decoded."""
