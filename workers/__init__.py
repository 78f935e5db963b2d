"""
Background workers.
"""

from workers.notification_worker import NotificationWorker, WorkerState, WorkerStats

__all__ = ["NotificationWorker", "WorkerState", "WorkerStats"]
