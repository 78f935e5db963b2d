"""
Data models for Job Manager.
"""

from models.application import JobApplication
from models.job import Job
from models.notification import NotificationMessage

__all__ = ["Job", "JobApplication", "NotificationMessage"]
