from __future__ import annotations

import asyncio
import json
import signal
from typing import Optional

import click

from config.logging_setup import configure_logging
from config.settings import settings
from database.connection import check_database_health, init_database
from messaging.sqlite_queue import SQLiteQueue
from notifiers import build_notifier
from services.application_service import ApplicationService
from storage.blob import FilesystemBlobStore
from workers.notification_worker import NotificationWorker


async def _run_worker(ack_policy: Optional[str], once: bool) -> None:
    queue = SQLiteQueue()
    async with build_notifier() as notifier:
        worker = NotificationWorker(queue, notifier, ack_policy=ack_policy)
        if once:
            count = await worker.run_once()
            click.echo(f"Handled {count} messages")
            return

        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, stop_event.set)
            except NotImplementedError:
                # Signal handlers are unavailable on some platforms; Ctrl+C still cancels
                pass

        stats = await worker.run(stop_event)
        click.echo(f"\n{stats}")


async def _run_reconcile(older_than: Optional[int], limit: int) -> dict:
    service = ApplicationService(queue=SQLiteQueue(), blob_store=FilesystemBlobStore())
    return await service.reconcile_notifications(older_than_seconds=older_than, limit=limit)


@click.group()
@click.option("--log-level", type=str, default=None, help="Override LOG_LEVEL.")
def cli(log_level: str | None) -> None:
    """Job manager CLI."""
    if log_level:
        settings.log_level = log_level
    configure_logging(settings)


@cli.command("init-db")
def init_db() -> None:
    """Initialize the SQLite database schema."""
    init_database()
    click.echo(f"Initialized database at {settings.database_path}")


@cli.command()
def health() -> None:
    """Print database statistics."""
    click.echo(json.dumps(check_database_health(), indent=2))


@cli.command("queue-status")
@click.option("--show-dead", is_flag=True, help="List dead-lettered message bodies.")
def queue_status(show_dead: bool) -> None:
    """Print pending and dead-lettered message counts."""
    queue = SQLiteQueue()
    dead = queue.dead_letters()
    click.echo(f"Queue {queue.name}: {queue.count()} pending, {len(dead)} dead-lettered")
    if show_dead:
        for message in dead:
            click.echo(f"  {message['id']} (received {message['receive_count']}x): {message['body']}")


@cli.command()
@click.option(
    "--ack-policy",
    type=click.Choice(["always", "on_success"]),
    default=None,
    help="Override ACK_POLICY.",
)
@click.option("--once", is_flag=True, help="Handle a single batch and exit.")
def worker(ack_policy: str | None, once: bool) -> None:
    """Consume the notification queue until interrupted."""
    init_database()
    asyncio.run(_run_worker(ack_policy, once))


@cli.command()
@click.option("--host", type=str, default=None)
@click.option("--port", type=int, default=None)
def serve(host: str | None, port: int | None) -> None:
    """Run the HTTP API."""
    import uvicorn

    from api.app import create_app

    uvicorn.run(
        create_app(),
        host=host or settings.server_host,
        port=port or settings.server_port,
        log_level=settings.log_level.lower(),
    )


@cli.command()
@click.option("--older-than", type=click.IntRange(min=0), default=None, help="Grace period in seconds.")
@click.option("--limit", type=click.IntRange(min=1), default=100, show_default=True)
def reconcile(older_than: int | None, limit: int) -> None:
    """Re-enqueue notifications for applications that never got one."""
    init_database()
    results = asyncio.run(_run_reconcile(older_than, limit))
    click.echo(f"Enqueued {results['enqueued']}, failed {results['failed']}")


if __name__ == "__main__":
    cli()
