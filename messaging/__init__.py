"""
Notification queue: interface and SQLite implementation.
"""

from messaging.queue import NotificationQueue, ReceivedMessage
from messaging.sqlite_queue import SQLiteQueue

__all__ = ["NotificationQueue", "ReceivedMessage", "SQLiteQueue"]
