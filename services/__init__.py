"""
Request-side services for jobs and applications.
"""

from services.application_service import ApplicationService
from services.job_service import JobService

__all__ = ["ApplicationService", "JobService"]
