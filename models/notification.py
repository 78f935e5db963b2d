"""
Notification message schema.

A NotificationMessage is a denormalized copy of the application fields the
notifier needs, so it stays actionable even if the record store is
unavailable when the worker picks it up.
"""

import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from database.connection import get_db_connection
from exceptions import MessageDecodeError


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class NotificationMessage(BaseModel):
    """Queue body announcing a new job application."""

    message_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    job_id: str = Field(..., min_length=1)
    application_id: Optional[str] = None
    candidate_name: str
    candidate_email: str
    created_at: str = Field(default_factory=_utc_now)
    version: int = 1

    @classmethod
    def from_application(cls, application) -> "NotificationMessage":
        """Build a message from a persisted JobApplication."""
        return cls(
            job_id=application.job_id,
            application_id=application.id,
            candidate_name=application.candidate_name,
            candidate_email=application.candidate_email,
        )

    def encode(self) -> str:
        """Serialize to the JSON wire format."""
        return self.model_dump_json()

    @classmethod
    def decode(cls, body: str) -> "NotificationMessage":
        """
        Parse a queue body.

        Raises:
            MessageDecodeError: If the body is not a JSON object with the required fields.
        """
        try:
            data = json.loads(body)
        except (json.JSONDecodeError, TypeError) as e:
            raise MessageDecodeError(f"Message body is not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise MessageDecodeError(
                f"Message body must be a JSON object, got {type(data).__name__}"
            )

        try:
            return cls.model_validate(data)
        except PydanticValidationError as e:
            raise MessageDecodeError(f"Message body failed validation: {e}") from e

    def summary(self) -> str:
        """Human readable text used by the log and email notifiers."""
        return (
            f"New application for job {self.job_id}:\n"
            f"Name: {self.candidate_name}\n"
            f"Email: {self.candidate_email}"
        )


# Delivery log, used to suppress duplicate deliveries of a redelivered message

def was_delivered(message_id: str, db_path: Optional[Path] = None) -> bool:
    """Check whether a message id was already delivered by a notifier."""
    with get_db_connection(db_path) as conn:
        row = conn.execute(
            "SELECT 1 FROM notification_deliveries WHERE message_id = ?", (message_id,)
        ).fetchone()
        return row is not None


def record_delivery(message: NotificationMessage, db_path: Optional[Path] = None) -> None:
    """Remember that a message was delivered. Recording twice is a no-op."""
    with get_db_connection(db_path) as conn:
        conn.execute(
            """
            INSERT OR IGNORE INTO notification_deliveries (message_id, application_id)
            VALUES (?, ?)
            """,
            (message.message_id, message.application_id)
        )
