"""
Job model and database operations.
"""

import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from database.connection import get_db_connection, row_to_dict
from exceptions import ValidationError


@dataclass
class Job:
    """Represents a job posting that candidates apply to."""

    id: Optional[str] = None
    title: str = ""
    description: str = ""
    min_salary: float = 0
    max_salary: float = 0
    company: str = ""
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "Job":
        """Create a Job from a database row."""
        data = row_to_dict(row) if hasattr(row, 'keys') else dict(row)
        return cls(**data)

    def to_dict(self) -> dict:
        """Convert Job to a dictionary for database storage."""
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'min_salary': self.min_salary,
            'max_salary': self.max_salary,
            'company': self.company,
        }

    def validate(self) -> None:
        """Raise ValidationError unless the job can be stored."""
        if not self.title or not self.title.strip():
            raise ValidationError("Job title is required")
        if not self.company or not self.company.strip():
            raise ValidationError("Company name is required")
        if self.min_salary < 0 or self.max_salary < 0:
            raise ValidationError("Salary values must be non-negative")
        if self.min_salary > self.max_salary:
            raise ValidationError(
                f"Minimum salary {self.min_salary} exceeds maximum salary {self.max_salary}"
            )


# Database operations

def save_job(job: Job, db_path: Optional[Path] = None) -> Job:
    """
    Insert a new job. Jobs are immutable once stored.

    Returns:
        Job with its generated id.
    """
    job.validate()
    if not job.id:
        job.id = str(uuid.uuid4())

    with get_db_connection(db_path) as conn:
        data = job.to_dict()
        columns = ", ".join(data.keys())
        placeholders = ", ".join("?" * len(data))
        conn.execute(
            f"INSERT INTO jobs ({columns}) VALUES ({placeholders})",
            list(data.values())
        )
        row = conn.execute("SELECT created_at FROM jobs WHERE id = ?", (job.id,)).fetchone()
        job.created_at = row["created_at"]

    return job


def get_job_by_id(job_id: str, db_path: Optional[Path] = None) -> Optional[Job]:
    """Get a job by ID."""
    with get_db_connection(db_path) as conn:
        row = conn.execute("SELECT * FROM jobs WHERE id = ?", (job_id,)).fetchone()
        return Job.from_row(row) if row else None


def job_exists(job_id: str, db_path: Optional[Path] = None) -> bool:
    """Check if a job with the given ID exists."""
    with get_db_connection(db_path) as conn:
        row = conn.execute("SELECT 1 FROM jobs WHERE id = ?", (job_id,)).fetchone()
        return row is not None


def list_jobs(limit: int = 100, offset: int = 0, db_path: Optional[Path] = None) -> list[Job]:
    """List jobs, newest first."""
    with get_db_connection(db_path) as conn:
        cursor = conn.execute(
            "SELECT * FROM jobs ORDER BY created_at DESC, rowid DESC LIMIT ? OFFSET ?",
            (limit, offset)
        )
        return [Job.from_row(row) for row in cursor.fetchall()]
