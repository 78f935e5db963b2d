"""
Job application model and database operations.
"""

import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from database.connection import get_db_connection, row_to_dict


@dataclass
class JobApplication:
    """A candidate's application to a job."""

    id: Optional[str] = None
    job_id: str = ""
    candidate_name: str = ""
    candidate_email: str = ""

    # Set once an upload succeeds; the only field the upload operation mutates
    resume_key: Optional[str] = None

    # Marker set after the notification was enqueued
    notification_enqueued_at: Optional[str] = None

    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "JobApplication":
        """Create a JobApplication from a database row."""
        data = row_to_dict(row) if hasattr(row, 'keys') else dict(row)
        return cls(**data)

    def to_dict(self) -> dict:
        """Convert JobApplication to a dictionary for database storage."""
        return {
            'id': self.id,
            'job_id': self.job_id,
            'candidate_name': self.candidate_name,
            'candidate_email': self.candidate_email,
            'resume_key': self.resume_key,
        }

    @property
    def notification_enqueued(self) -> bool:
        return self.notification_enqueued_at is not None


# Database operations

def create_application(application: JobApplication, db_path: Optional[Path] = None) -> JobApplication:
    """
    Insert a new application and commit it.

    The commit happens before this function returns, so callers may rely on
    the row being durable.
    """
    if not application.id:
        application.id = str(uuid.uuid4())

    with get_db_connection(db_path) as conn:
        data = application.to_dict()
        columns = ", ".join(data.keys())
        placeholders = ", ".join("?" * len(data))
        conn.execute(
            f"INSERT INTO job_applications ({columns}) VALUES ({placeholders})",
            list(data.values())
        )
        row = conn.execute(
            "SELECT created_at, updated_at FROM job_applications WHERE id = ?",
            (application.id,)
        ).fetchone()
        application.created_at = row["created_at"]
        application.updated_at = row["updated_at"]

    return application


def get_application_by_id(application_id: str, db_path: Optional[Path] = None) -> Optional[JobApplication]:
    """Get an application by ID."""
    with get_db_connection(db_path) as conn:
        row = conn.execute(
            "SELECT * FROM job_applications WHERE id = ?", (application_id,)
        ).fetchone()
        return JobApplication.from_row(row) if row else None


def get_applications_by_job(job_id: str, db_path: Optional[Path] = None) -> list[JobApplication]:
    """Get all applications for a job."""
    with get_db_connection(db_path) as conn:
        cursor = conn.execute(
            "SELECT * FROM job_applications WHERE job_id = ? ORDER BY created_at, rowid",
            (job_id,)
        )
        return [JobApplication.from_row(row) for row in cursor.fetchall()]


def update_resume_key(application_id: str, resume_key: str, db_path: Optional[Path] = None) -> bool:
    """
    Overwrite the resume key of an application. Last write wins.

    Returns:
        True if the application exists and was updated.
    """
    with get_db_connection(db_path) as conn:
        cursor = conn.execute(
            """
            UPDATE job_applications
            SET resume_key = ?, updated_at = CURRENT_TIMESTAMP
            WHERE id = ?
            """,
            (resume_key, application_id)
        )
        return cursor.rowcount > 0


def mark_notification_enqueued(application_id: str, db_path: Optional[Path] = None) -> None:
    """Set the notification marker on an application."""
    with get_db_connection(db_path) as conn:
        conn.execute(
            """
            UPDATE job_applications
            SET notification_enqueued_at = CURRENT_TIMESTAMP, updated_at = CURRENT_TIMESTAMP
            WHERE id = ?
            """,
            (application_id,)
        )


def get_applications_pending_notification(
    older_than_seconds: int = 0,
    limit: int = 100,
    db_path: Optional[Path] = None,
) -> list[JobApplication]:
    """Get applications without a notification marker, oldest first."""
    with get_db_connection(db_path) as conn:
        cursor = conn.execute(
            """
            SELECT * FROM job_applications
            WHERE notification_enqueued_at IS NULL
            AND created_at <= datetime('now', ?)
            ORDER BY created_at, rowid
            LIMIT ?
            """,
            (f"-{int(older_than_seconds)} seconds", limit)
        )
        return [JobApplication.from_row(row) for row in cursor.fetchall()]
