"""
Notification consumer worker.

Drains the notification queue in a loop:

    IDLE -> RECEIVING -> PROCESSING -> ACKNOWLEDGING -> IDLE
                                                      -> STOPPED

The stop signal is checked at the top of every iteration and raced against
the long-poll receive, so shutdown waits at most for the message currently
being handled. Receive failures are retried with exponential backoff;
processing failures are logged and never end the loop.

Acknowledgment follows ack_policy:
    "always"      delete every received message after attempting it, even
                  when processing failed (at-most-once delivery)
    "on_success"  delete only processed messages; failures reappear after
                  the visibility timeout and are dead-lettered by the queue
                  once they exceed its receive limit
"""

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional

import structlog
from tenacity import AsyncRetrying, retry_if_exception_type, wait_exponential

from config.settings import settings
from messaging.queue import NotificationQueue, ReceivedMessage
from models.notification import NotificationMessage, record_delivery, was_delivered
from notifiers.base import Notifier

logger = structlog.get_logger()

ACK_ALWAYS = "always"
ACK_ON_SUCCESS = "on_success"


class WorkerState(str, Enum):
    IDLE = "idle"
    RECEIVING = "receiving"
    PROCESSING = "processing"
    ACKNOWLEDGING = "acknowledging"
    STOPPED = "stopped"


@dataclass
class WorkerStats:
    """Running totals for one worker."""

    started_at: datetime = field(default_factory=datetime.now)
    stopped_at: Optional[datetime] = None
    iterations: int = 0
    received: int = 0
    processed: int = 0
    failed: int = 0
    duplicates: int = 0
    deleted: int = 0
    receive_errors: int = 0
    delete_errors: int = 0

    def __str__(self) -> str:
        return (
            f"Notification Worker Summary:\n"
            f"  Received: {self.received}\n"
            f"  Processed: {self.processed}\n"
            f"  Failed: {self.failed}\n"
            f"  Duplicates skipped: {self.duplicates}\n"
            f"  Deleted: {self.deleted}\n"
            f"  Receive errors: {self.receive_errors}\n"
            f"  Delete errors: {self.delete_errors}"
        )


class NotificationWorker:
    """Long-running consumer of the notification queue."""

    def __init__(
        self,
        queue: NotificationQueue,
        notifier: Notifier,
        max_messages: Optional[int] = None,
        wait_seconds: Optional[float] = None,
        ack_policy: Optional[str] = None,
        dedupe: Optional[bool] = None,
        backoff_initial: Optional[float] = None,
        backoff_max: Optional[float] = None,
        db_path: Optional[Path] = None,
        worker_id: Optional[str] = None,
    ):
        self.queue = queue
        self.notifier = notifier
        self.max_messages = settings.receive_max_messages if max_messages is None else max_messages
        self.wait_seconds = settings.receive_wait_seconds if wait_seconds is None else wait_seconds
        self.ack_policy = ack_policy or settings.ack_policy
        if self.ack_policy not in (ACK_ALWAYS, ACK_ON_SUCCESS):
            raise ValueError(f"Unknown ack policy: {self.ack_policy}")
        if not 1 <= self.max_messages <= 10:
            raise ValueError("max_messages must be between 1 and 10")
        if not 0 <= self.wait_seconds <= 20:
            raise ValueError("wait_seconds must be between 0 and 20")
        self.dedupe = settings.dedupe_messages if dedupe is None else dedupe
        self.backoff_initial = (
            settings.receive_backoff_initial_seconds if backoff_initial is None else backoff_initial
        )
        self.backoff_max = settings.receive_backoff_max_seconds if backoff_max is None else backoff_max
        self.db_path = db_path
        self.worker_id = worker_id or uuid.uuid4().hex[:8]
        self.stats = WorkerStats()
        self.logger = structlog.get_logger().bind(worker_id=self.worker_id)
        self._state = WorkerState.IDLE

    @property
    def state(self) -> WorkerState:
        return self._state

    def _set_state(self, state: WorkerState) -> None:
        self._state = state

    async def run(self, stop_event: Optional[asyncio.Event] = None) -> WorkerStats:
        """
        Consume messages until stop_event is set or the task is cancelled.

        Returns:
            WorkerStats for the run.
        """
        stop_event = stop_event or asyncio.Event()
        self.logger.info(
            "Notification worker started",
            ack_policy=self.ack_policy,
            max_messages=self.max_messages,
            wait_seconds=self.wait_seconds,
            dedupe=self.dedupe,
        )

        try:
            while not stop_event.is_set():
                self.stats.iterations += 1
                messages = await self._receive_until_stopped(stop_event)
                if messages is None:
                    break
                if not messages:
                    self._set_state(WorkerState.IDLE)
                    continue
                await self.process_batch(messages)
        except asyncio.CancelledError:
            self.logger.info("Notification worker cancelled")
            raise
        finally:
            self._set_state(WorkerState.STOPPED)
            self.stats.stopped_at = datetime.now()
            self.logger.info(
                "Notification worker stopped",
                received=self.stats.received,
                processed=self.stats.processed,
                failed=self.stats.failed,
                deleted=self.stats.deleted,
            )

        return self.stats

    async def run_once(self) -> int:
        """
        Run a single receive/process/acknowledge iteration.

        Returns:
            Number of messages received.
        """
        self.stats.iterations += 1
        self._set_state(WorkerState.RECEIVING)
        messages = await self._receive_with_retry()
        if messages:
            await self.process_batch(messages)
        self._set_state(WorkerState.IDLE)
        return len(messages)

    async def _receive_until_stopped(self, stop_event: asyncio.Event) -> Optional[list[ReceivedMessage]]:
        """
        Receive a batch, or return None if the stop signal fires first.
        """
        self._set_state(WorkerState.RECEIVING)
        receive_task = asyncio.ensure_future(self._receive_with_retry())
        stop_task = asyncio.ensure_future(stop_event.wait())
        try:
            done, _ = await asyncio.wait(
                {receive_task, stop_task},
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            for task in (receive_task, stop_task):
                if not task.done():
                    task.cancel()

        # A batch that arrived together with the stop signal is still handled
        if receive_task in done:
            return receive_task.result()

        await asyncio.wait({receive_task})
        self.logger.info("Stop signal received while waiting for messages")
        return None

    async def _receive_with_retry(self) -> list[ReceivedMessage]:
        messages: list[ReceivedMessage] = []
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(Exception),
            wait=wait_exponential(multiplier=self.backoff_initial, max=self.backoff_max),
            before_sleep=self._log_receive_retry,
        ):
            with attempt:
                messages = await self.queue.receive(
                    max_messages=self.max_messages,
                    wait_seconds=self.wait_seconds,
                )
        self.stats.received += len(messages)
        if messages:
            self.logger.debug("Received messages", count=len(messages))
        return messages

    def _log_receive_retry(self, retry_state) -> None:
        self.stats.receive_errors += 1
        error = retry_state.outcome.exception() if retry_state.outcome else None
        self.logger.warning(
            "Receive failed, retrying",
            attempt=retry_state.attempt_number,
            wait=getattr(retry_state.next_action, 'sleep', 0) if retry_state.next_action else 0,
            error=str(error),
        )

    async def process_batch(self, messages: list[ReceivedMessage]) -> list[bool]:
        """
        Process and acknowledge each message of a batch independently.

        Returns:
            Processing outcome per message, in batch order.
        """
        outcomes = []
        for message in messages:
            self._set_state(WorkerState.PROCESSING)
            succeeded = await self.process_message(message)
            outcomes.append(succeeded)

            self._set_state(WorkerState.ACKNOWLEDGING)
            if succeeded or self.ack_policy == ACK_ALWAYS:
                await self.acknowledge(message)
            else:
                self.logger.info(
                    "Leaving failed message for redelivery",
                    queue_message_id=message.message_id,
                    receive_count=message.receive_count,
                )

        self._set_state(WorkerState.IDLE)
        return outcomes

    async def process_message(self, message: ReceivedMessage) -> bool:
        """
        Decode a message and run the notifier on it.

        Returns:
            True on success. Failures are logged, never raised.
        """
        start_time = time.time()
        try:
            notification = NotificationMessage.decode(message.body)

            if self.dedupe and await asyncio.to_thread(was_delivered, notification.message_id, self.db_path):
                self.stats.duplicates += 1
                self.logger.info(
                    "Skipping already delivered notification",
                    message_id=notification.message_id,
                )
                return True

            await self.notifier.notify(notification)

            if self.dedupe:
                await asyncio.to_thread(record_delivery, notification, self.db_path)
        except Exception as e:
            self.stats.failed += 1
            self.logger.error(
                "Notification processing failed",
                queue_message_id=message.message_id,
                receive_count=message.receive_count,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        self.stats.processed += 1
        self.logger.info(
            "Notification processed",
            message_id=notification.message_id,
            application_id=notification.application_id,
            duration_seconds=round(time.time() - start_time, 3),
        )
        return True

    async def acknowledge(self, message: ReceivedMessage) -> None:
        """Delete a message from the queue. Failures are logged."""
        try:
            await self.queue.delete(message.receipt_handle)
        except Exception as e:
            self.stats.delete_errors += 1
            self.logger.error(
                "Failed to delete message",
                queue_message_id=message.message_id,
                error=str(e),
            )
            return
        self.stats.deleted += 1
