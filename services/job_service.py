from __future__ import annotations

from pathlib import Path
from typing import Optional

import structlog

from database.connection import record_store_errors
from exceptions import NotFound
from models.job import Job, get_job_by_id, list_jobs, save_job

logger = structlog.get_logger()


class JobService:
    """Create and query job postings."""

    def __init__(self, db_path: Optional[Path] = None) -> None:
        self._db_path = db_path

    def create_job(
        self,
        title: str,
        company: str,
        description: str = "",
        min_salary: float = 0,
        max_salary: float = 0,
    ) -> Job:
        job = Job(
            title=title,
            company=company,
            description=description,
            min_salary=min_salary,
            max_salary=max_salary,
        )
        with record_store_errors("create job"):
            job = save_job(job, db_path=self._db_path)
        logger.info("Job created", job_id=job.id, title=job.title, company=job.company)
        return job

    def get_job(self, job_id: str) -> Job:
        with record_store_errors("read job"):
            job = get_job_by_id(job_id, db_path=self._db_path)
        if job is None:
            raise NotFound("job", job_id)
        return job

    def list_jobs(self, limit: int = 100, offset: int = 0) -> list[Job]:
        with record_store_errors("list jobs"):
            return list_jobs(limit=limit, offset=offset, db_path=self._db_path)
