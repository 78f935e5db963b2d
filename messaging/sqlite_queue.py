"""
SQLite-backed notification queue.

Messages live in the queue_messages table. Receiving a message stamps it
with a fresh receipt handle and pushes its visible_at forward by the
visibility timeout; deleting requires the current handle. Messages that
have been received max_receive_count times without being deleted move to
dead_letter_messages on their next receive.

SQLite calls run in a thread so a locked database never blocks the event
loop, and each call gives up after busy_timeout seconds.
"""

import asyncio
import sqlite3
import time
import uuid
from pathlib import Path
from typing import Callable, Optional

import structlog

from config.settings import settings
from database.connection import get_db_connection, immediate_transaction, rows_to_dicts
from exceptions import TransportError
from messaging.queue import NotificationQueue, ReceivedMessage


class SQLiteQueue(NotificationQueue):
    """Competing-consumer queue stored in the application database."""

    def __init__(
        self,
        name: Optional[str] = None,
        db_path: Optional[Path] = None,
        visibility_timeout: Optional[float] = None,
        poll_interval: Optional[float] = None,
        max_receive_count: Optional[int] = None,
        busy_timeout: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.name = name or settings.queue_name
        self.db_path = db_path
        self.visibility_timeout = (
            settings.queue_visibility_timeout_seconds if visibility_timeout is None else visibility_timeout
        )
        self.poll_interval = poll_interval or settings.queue_poll_interval_seconds
        self.max_receive_count = max_receive_count or settings.max_receive_count
        self.busy_timeout = settings.queue_busy_timeout_seconds if busy_timeout is None else busy_timeout
        self.clock = clock
        self.logger = structlog.get_logger().bind(queue=self.name)

    async def send(self, body: str) -> str:
        message_id = await asyncio.to_thread(self._insert, body)
        self.logger.debug("Message sent", message_id=message_id)
        return message_id

    def _insert(self, body: str) -> str:
        message_id = str(uuid.uuid4())
        now = self.clock()
        try:
            with get_db_connection(self.db_path, timeout=self.busy_timeout) as conn:
                conn.execute(
                    """
                    INSERT INTO queue_messages (id, queue_name, body, receive_count, visible_at, sent_at)
                    VALUES (?, ?, ?, 0, ?, ?)
                    """,
                    (message_id, self.name, body, now, now)
                )
        except sqlite3.Error as e:
            raise TransportError(f"Failed to send message to {self.name}: {e}") from e
        return message_id

    async def receive(self, max_messages: int = 10, wait_seconds: float = 20) -> list[ReceivedMessage]:
        deadline = time.monotonic() + max(wait_seconds, 0)
        while True:
            messages = await asyncio.to_thread(self._claim, max_messages)
            remaining = deadline - time.monotonic()
            if messages or remaining <= 0:
                return messages
            await asyncio.sleep(min(self.poll_interval, remaining))

    def _claim(self, max_messages: int) -> list[ReceivedMessage]:
        """Claim up to max_messages visible messages in one write transaction."""
        now = self.clock()
        claimed: list[ReceivedMessage] = []
        try:
            with immediate_transaction(self.db_path, timeout=self.busy_timeout) as conn:
                rows = conn.execute(
                    """
                    SELECT id, body, receive_count, sent_at FROM queue_messages
                    WHERE queue_name = ? AND visible_at <= ?
                    ORDER BY sent_at, rowid
                    LIMIT ?
                    """,
                    (self.name, now, max_messages)
                ).fetchall()

                for row in rows:
                    if row["receive_count"] >= self.max_receive_count:
                        self._dead_letter(conn, row, now)
                        continue

                    handle = uuid.uuid4().hex
                    conn.execute(
                        """
                        UPDATE queue_messages
                        SET receipt_handle = ?, receive_count = receive_count + 1, visible_at = ?
                        WHERE id = ?
                        """,
                        (handle, now + self.visibility_timeout, row["id"])
                    )
                    claimed.append(ReceivedMessage(
                        message_id=row["id"],
                        body=row["body"],
                        receipt_handle=handle,
                        receive_count=row["receive_count"] + 1,
                    ))
        except sqlite3.Error as e:
            raise TransportError(f"Failed to receive from {self.name}: {e}") from e

        return claimed

    def _dead_letter(self, conn: sqlite3.Connection, row: sqlite3.Row, now: float) -> None:
        conn.execute(
            """
            INSERT INTO dead_letter_messages (id, queue_name, body, receive_count, sent_at, dead_lettered_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (row["id"], self.name, row["body"], row["receive_count"], row["sent_at"], now)
        )
        conn.execute("DELETE FROM queue_messages WHERE id = ?", (row["id"],))
        self.logger.warning(
            "Message moved to dead-letter table",
            message_id=row["id"],
            receive_count=row["receive_count"],
        )

    async def delete(self, receipt_handle: str) -> bool:
        deleted = await asyncio.to_thread(self._delete, receipt_handle)
        if not deleted:
            self.logger.warning("Receipt handle matched no message", receipt_handle=receipt_handle)
        return deleted

    def _delete(self, receipt_handle: str) -> bool:
        try:
            with get_db_connection(self.db_path, timeout=self.busy_timeout) as conn:
                cursor = conn.execute(
                    "DELETE FROM queue_messages WHERE queue_name = ? AND receipt_handle = ?",
                    (self.name, receipt_handle)
                )
                return cursor.rowcount > 0
        except sqlite3.Error as e:
            raise TransportError(f"Failed to delete message from {self.name}: {e}") from e

    # Inspection helpers

    def count(self) -> int:
        """Number of messages in the queue, visible or in flight."""
        with get_db_connection(self.db_path) as conn:
            return conn.execute(
                "SELECT COUNT(*) FROM queue_messages WHERE queue_name = ?", (self.name,)
            ).fetchone()[0]

    def dead_letters(self) -> list[dict]:
        """Messages moved to the dead-letter table for this queue."""
        with get_db_connection(self.db_path) as conn:
            rows = conn.execute(
                "SELECT * FROM dead_letter_messages WHERE queue_name = ? ORDER BY dead_lettered_at",
                (self.name,)
            ).fetchall()
            return rows_to_dicts(rows)
