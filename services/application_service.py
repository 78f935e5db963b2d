"""
Application submission service.

Owns the dual write from "record an application" to "enqueue a
notification". The application row is committed before the enqueue is
attempted; if the enqueue fails the row stays and the caller gets
NotificationEnqueueFailed. There is no outbox, so a failed enqueue is only
retried by the reconciliation sweep.

Record store failures surface as TransportError.
"""

from __future__ import annotations

from pathlib import Path, PurePosixPath
from typing import Iterable, Optional

import structlog

from config.settings import settings
from database.connection import record_store_errors
from exceptions import NotFound, NotificationEnqueueFailed, TransportError, ValidationError
from messaging.queue import NotificationQueue
from models.application import (
    JobApplication,
    create_application,
    get_application_by_id,
    get_applications_by_job,
    get_applications_pending_notification,
    mark_notification_enqueued,
    update_resume_key,
)
from models.job import job_exists
from models.notification import NotificationMessage
from storage.blob import BlobStore, resume_key_for

logger = structlog.get_logger()


def validate_candidate(candidate_name: str, candidate_email: str) -> tuple[str, str]:
    """Return the trimmed name and email, or raise ValidationError."""
    name = (candidate_name or "").strip()
    email = (candidate_email or "").strip()
    if not name:
        raise ValidationError("Candidate name is required")
    local, sep, domain = email.partition("@")
    if not sep or not local or not domain or "@" in domain or " " in email:
        raise ValidationError(f"Invalid candidate email: {candidate_email!r}")
    return name, email


class ApplicationService:
    """Create applications, notify about them, and store their resumes."""

    def __init__(
        self,
        queue: NotificationQueue,
        blob_store: BlobStore,
        db_path: Optional[Path] = None,
        allowed_extensions: Optional[Iterable[str]] = None,
    ) -> None:
        self._queue = queue
        self._blob_store = blob_store
        self._db_path = db_path
        extensions = allowed_extensions if allowed_extensions is not None else settings.resume_extensions
        self._allowed_extensions = {ext.lower() for ext in extensions}

    async def submit_application(self, job_id: str, candidate_name: str, candidate_email: str) -> str:
        """
        Record an application and enqueue its notification.

        Returns:
            The new application id.

        Raises:
            ValidationError: Bad candidate data. Nothing was written.
            NotFound: The job does not exist. Nothing was written.
            TransportError: The record store failed.
            NotificationEnqueueFailed: The application was stored but the
                notification could not be enqueued.
        """
        name, email = validate_candidate(candidate_name, candidate_email)

        self._require_job(job_id)

        with record_store_errors("create application"):
            application = create_application(
                JobApplication(job_id=job_id, candidate_name=name, candidate_email=email),
                db_path=self._db_path,
            )
        logger.info("Application stored", application_id=application.id, job_id=job_id)

        await self._enqueue(application)
        return application.id

    def _require_job(self, job_id: str) -> None:
        with record_store_errors("look up job"):
            found = job_exists(job_id, db_path=self._db_path)
        if not found:
            logger.info("Job not found", job_id=job_id)
            raise NotFound("job", job_id)

    async def _enqueue(self, application: JobApplication) -> str:
        message = NotificationMessage.from_application(application)
        try:
            queue_message_id = await self._queue.send(message.encode())
        except Exception as e:
            logger.error(
                "Notification enqueue failed, application stored without notification",
                application_id=application.id,
                job_id=application.job_id,
                error=str(e),
            )
            raise NotificationEnqueueFailed(application.id, e) from e

        try:
            with record_store_errors("mark notification enqueued"):
                mark_notification_enqueued(application.id, db_path=self._db_path)
        except TransportError as e:
            # The message is already queued; a missing marker only means the
            # sweep may enqueue a duplicate later.
            logger.warning(
                "Could not mark notification as enqueued",
                application_id=application.id,
                error=str(e),
            )

        logger.info(
            "Notification enqueued",
            application_id=application.id,
            message_id=message.message_id,
            queue_message_id=queue_message_id,
        )
        return queue_message_id

    def get_application(self, application_id: str) -> JobApplication:
        with record_store_errors("read application"):
            application = get_application_by_id(application_id, db_path=self._db_path)
        if application is None:
            raise NotFound("application", application_id)
        return application

    def list_applications(self, job_id: str) -> list[JobApplication]:
        """Applications for a job, oldest first. NotFound if the job does not exist."""
        self._require_job(job_id)
        with record_store_errors("list applications"):
            return get_applications_by_job(job_id, db_path=self._db_path)

    def attach_resume(self, application_id: str, filename: str, content: bytes) -> str:
        """
        Store a resume file and point the application at it.

        Returns:
            The resume key.

        Raises:
            ValidationError: Empty content, missing filename or disallowed extension.
            NotFound: The application does not exist. Nothing was stored.
        """
        if not content:
            raise ValidationError("Resume file is empty")
        if not filename or not filename.strip():
            raise ValidationError("Resume filename is required")

        extension = PurePosixPath(filename).suffix.lower()
        if extension not in self._allowed_extensions:
            allowed = ", ".join(sorted(self._allowed_extensions))
            raise ValidationError(f"File type {extension or '(none)'} not supported. Allowed: {allowed}")

        # Look up before writing so a missing application leaves no orphan object
        self.get_application(application_id)

        resume_key = resume_key_for(application_id, filename)
        self._blob_store.put(resume_key, content)

        with record_store_errors("update resume key"):
            updated = update_resume_key(application_id, resume_key, db_path=self._db_path)
        if not updated:
            raise NotFound("application", application_id)

        logger.info(
            "Resume attached",
            application_id=application_id,
            resume_key=resume_key,
            size=len(content),
        )
        return resume_key

    def get_resume(self, application_id: str) -> tuple[bytes, str]:
        """
        Fetch an application's resume.

        Returns:
            Tuple of (content, content_type).

        Raises:
            NotFound: Missing application, no resume uploaded, or missing object.
        """
        application = self.get_application(application_id)
        if not application.resume_key:
            raise NotFound("resume", application_id)
        return self._blob_store.get(application.resume_key)

    async def reconcile_notifications(
        self,
        older_than_seconds: Optional[int] = None,
        limit: int = 100,
    ) -> dict:
        """
        Re-enqueue notifications for applications that never got one.

        Only applications older than the grace period are considered, so a
        submission still in flight is left alone.

        Returns:
            Dictionary with counts: {'enqueued': N, 'failed': N}
        """
        grace = settings.reconcile_grace_seconds if older_than_seconds is None else older_than_seconds
        if grace < 0:
            raise ValidationError(f"Grace period must not be negative, got {grace}")
        if limit < 1:
            raise ValidationError(f"Limit must be at least 1, got {limit}")

        with record_store_errors("list pending notifications"):
            pending = get_applications_pending_notification(
                older_than_seconds=grace,
                limit=limit,
                db_path=self._db_path,
            )

        results = {'enqueued': 0, 'failed': 0}
        for application in pending:
            try:
                await self._enqueue(application)
                results['enqueued'] += 1
            except NotificationEnqueueFailed:
                results['failed'] += 1

        logger.info("Notification reconciliation complete", pending=len(pending), **results)
        return results
