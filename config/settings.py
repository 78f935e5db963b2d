"""
Application settings and configuration.
Uses pydantic-settings for environment variable loading.
"""

from pathlib import Path
from typing import Literal, Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent
DATA_DIR = PROJECT_ROOT / "data"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=PROJECT_ROOT / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Record store
    database_path: Path = Field(
        default=DATA_DIR / "job_manager.db",
        description="Path to SQLite database file"
    )

    # Blob store
    blob_storage_path: Path = Field(
        default=DATA_DIR / "blobs",
        description="Root directory for uploaded resume files"
    )
    allowed_resume_extensions: list[str] = Field(
        default=[".pdf", ".docx", ".txt"],
        description="Resume file extensions accepted by the upload operation"
    )

    # Notification queue
    queue_name: str = Field(
        default="job-application-notifications",
        description="Name of the notification queue"
    )
    queue_visibility_timeout_seconds: int = Field(
        default=30,
        ge=0,
        description="Seconds a received message stays hidden from other consumers"
    )
    queue_poll_interval_seconds: float = Field(
        default=1.0,
        gt=0,
        description="Delay between polls while a long-poll receive is waiting"
    )
    queue_busy_timeout_seconds: float = Field(
        default=5.0,
        ge=0,
        description="Seconds a queue operation waits on a locked database before failing"
    )

    # Notification worker
    receive_max_messages: int = Field(
        default=10,
        ge=1,
        le=10,
        description="Maximum messages requested per receive"
    )
    receive_wait_seconds: int = Field(
        default=20,
        ge=0,
        le=20,
        description="Long-poll wait per receive"
    )
    receive_backoff_initial_seconds: float = Field(
        default=1.0,
        ge=0,
        description="First delay after a failed receive"
    )
    receive_backoff_max_seconds: float = Field(
        default=30.0,
        ge=0,
        description="Ceiling for the receive retry delay"
    )
    ack_policy: Literal["always", "on_success"] = Field(
        default="always",
        description="Delete every received message, or only those processed successfully"
    )
    max_receive_count: int = Field(
        default=5,
        ge=1,
        description="Receives allowed before a message is dead-lettered"
    )
    dedupe_messages: bool = Field(
        default=False,
        description="Skip messages whose message_id was already delivered"
    )

    # Notifier
    notifier: Literal["log", "webhook", "email"] = Field(default="log")
    notification_webhook_url: Optional[str] = Field(default=None)
    notification_timeout_seconds: int = Field(default=10)
    smtp_host: Optional[str] = Field(default=None)
    smtp_port: int = Field(default=587)
    smtp_use_tls: bool = Field(default=False)
    smtp_start_tls: bool = Field(default=True)
    smtp_user: Optional[str] = Field(default=None)
    smtp_password: Optional[str] = Field(default=None)
    smtp_from_email: Optional[str] = Field(default=None)
    notification_recipient: Optional[str] = Field(
        default=None,
        description="Address that receives new application emails"
    )

    # Reconciliation
    reconcile_grace_seconds: int = Field(
        default=300,
        description="Minimum age of an application before the sweep re-enqueues it"
    )

    # HTTP server
    server_host: str = Field(default="0.0.0.0")
    server_port: int = Field(default=8000)

    # Logging
    log_level: str = Field(default="INFO")
    log_format: Literal["json", "console"] = Field(default="json")

    @property
    def resume_extensions(self) -> set[str]:
        """Allowed extensions, lower-cased."""
        return {ext.lower() for ext in self.allowed_resume_extensions}


# Global settings instance
settings = Settings()


# Ensure data directory exists
DATA_DIR.mkdir(parents=True, exist_ok=True)
