"""
FastAPI Application

HTTP surface for posting jobs, submitting applications and uploading resumes.
Business rules live in the services; this module only maps them to HTTP.
"""

from pathlib import Path
from typing import Optional

import structlog
from fastapi import FastAPI, File, Request, Response, UploadFile, status
from fastapi.responses import JSONResponse

from api.schemas import (
    JobApplicationRequest,
    JobApplicationResponse,
    JobApplicationSubmitted,
    JobCreateRequest,
    JobResponse,
    ResumeUploaded,
)
from database.connection import check_database_health, init_database
from exceptions import NotFound, NotificationEnqueueFailed, TransportError, ValidationError
from messaging.sqlite_queue import SQLiteQueue
from models.application import JobApplication
from services.application_service import ApplicationService
from services.job_service import JobService
from storage.blob import FilesystemBlobStore

logger = structlog.get_logger()


def _application_response(application: JobApplication) -> JobApplicationResponse:
    return JobApplicationResponse(
        id=application.id,
        job_id=application.job_id,
        candidate_name=application.candidate_name,
        candidate_email=application.candidate_email,
        resume_key=application.resume_key,
        notification_enqueued=application.notification_enqueued,
        created_at=application.created_at,
        updated_at=application.updated_at,
    )


def create_app(
    job_service: Optional[JobService] = None,
    application_service: Optional[ApplicationService] = None,
    db_path: Optional[Path] = None,
) -> FastAPI:
    """
    Build the API.

    Services default to the SQLite record store and queue and the filesystem
    blob store from settings.
    """
    if application_service is None:
        init_database(db_path)
        application_service = ApplicationService(
            queue=SQLiteQueue(db_path=db_path),
            blob_store=FilesystemBlobStore(),
            db_path=db_path,
        )
    job_service = job_service or JobService(db_path=db_path)

    app = FastAPI(
        title="Job Manager API",
        description="Job postings, applications and resume uploads",
        version="1.0.0",
    )
    app.state.job_service = job_service
    app.state.application_service = application_service
    app.state.db_path = db_path

    @app.exception_handler(NotFound)
    async def not_found_handler(request: Request, exc: NotFound):
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})

    @app.exception_handler(TransportError)
    async def transport_error_handler(request: Request, exc: TransportError):
        logger.error("Dependency failure", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content={"detail": str(exc)})

    @app.get("/health")
    async def health():
        return check_database_health(app.state.db_path)

    @app.post("/api/jobs", response_model=JobResponse, status_code=status.HTTP_201_CREATED)
    async def create_job(body: JobCreateRequest, response: Response):
        job = app.state.job_service.create_job(
            title=body.title,
            company=body.company,
            description=body.description,
            min_salary=body.min_salary,
            max_salary=body.max_salary,
        )
        response.headers["Location"] = f"/api/jobs/{job.id}"
        return JobResponse(**job.to_dict(), created_at=job.created_at)

    @app.get("/api/jobs", response_model=list[JobResponse])
    async def list_jobs(limit: int = 100, offset: int = 0):
        jobs = app.state.job_service.list_jobs(limit=limit, offset=offset)
        return [JobResponse(**job.to_dict(), created_at=job.created_at) for job in jobs]

    @app.get("/api/jobs/{job_id}", response_model=JobResponse)
    async def get_job(job_id: str):
        job = app.state.job_service.get_job(job_id)
        return JobResponse(**job.to_dict(), created_at=job.created_at)

    @app.post(
        "/api/jobs/{job_id}/job-applications",
        response_model=JobApplicationSubmitted,
        status_code=status.HTTP_201_CREATED,
    )
    async def submit_application(job_id: str, body: JobApplicationRequest, response: Response):
        try:
            application_id = await app.state.application_service.submit_application(
                job_id, body.candidate_name, body.candidate_email
            )
            enqueued = True
        except NotificationEnqueueFailed as e:
            # The application exists; only the notification is missing
            application_id = e.application_id
            enqueued = False

        response.headers["Location"] = f"/api/job-applications/{application_id}"
        return JobApplicationSubmitted(id=application_id, job_id=job_id, notification_enqueued=enqueued)

    @app.get("/api/jobs/{job_id}/job-applications", response_model=list[JobApplicationResponse])
    async def list_applications(job_id: str):
        applications = app.state.application_service.list_applications(job_id)
        return [_application_response(application) for application in applications]

    @app.get("/api/job-applications/{application_id}", response_model=JobApplicationResponse)
    async def get_application(application_id: str):
        application = app.state.application_service.get_application(application_id)
        return _application_response(application)

    @app.put("/api/job-applications/{application_id}/upload-cv", response_model=ResumeUploaded)
    async def upload_cv(application_id: str, file: Optional[UploadFile] = File(None)):
        if file is None:
            raise ValidationError("Resume file is required")
        content = await file.read()
        logger.info(
            "Received resume upload",
            application_id=application_id,
            filename=file.filename,
            size=len(content),
        )
        resume_key = app.state.application_service.attach_resume(
            application_id, file.filename or "", content
        )
        return ResumeUploaded(application_id=application_id, resume_key=resume_key)

    @app.get("/api/job-applications/{application_id}/cv")
    async def download_cv(application_id: str):
        content, content_type = app.state.application_service.get_resume(application_id)
        return Response(content=content, media_type=content_type)

    return app
