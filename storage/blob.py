"""
Blob storage for uploaded resume files.

Objects are addressed by opaque string keys. Keys are derived from
(application_id, filename), not from content, so the same filename
overwrites and a new filename leaves the previous object behind.
"""

import mimetypes
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath
from typing import Optional

import structlog

from config.settings import settings
from exceptions import NotFound, TransportError, ValidationError

logger = structlog.get_logger()

RESUME_KEY_PREFIX = "job-applications/"

DEFAULT_CONTENT_TYPE = "application/octet-stream"

# mimetypes does not know every office format on every platform
_CONTENT_TYPES = {
    ".pdf": "application/pdf",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".txt": "text/plain",
}


def resume_key_for(application_id: str, filename: str) -> str:
    """Build the blob key for an application's resume."""
    return f"{RESUME_KEY_PREFIX}{application_id}-{filename}"


def guess_content_type(key: str) -> str:
    """Guess the content type of an object from its key."""
    suffix = PurePosixPath(key).suffix.lower()
    if suffix in _CONTENT_TYPES:
        return _CONTENT_TYPES[suffix]
    content_type, _ = mimetypes.guess_type(key)
    return content_type or DEFAULT_CONTENT_TYPE


class BlobStore(ABC):
    """Object storage addressed by string key."""

    @abstractmethod
    def put(self, key: str, data: bytes) -> None:
        """Store bytes under key, replacing any existing object."""

    @abstractmethod
    def get(self, key: str) -> tuple[bytes, str]:
        """
        Fetch an object.

        Returns:
            Tuple of (content, content_type).

        Raises:
            NotFound: If no object is stored under key.
        """


class FilesystemBlobStore(BlobStore):
    """
    Blob store backed by a local directory.

    A key like "job-applications/abc-cv.pdf" becomes the file
    <root>/job-applications/abc-cv.pdf.
    """

    def __init__(self, root: Optional[Path] = None):
        self.root = Path(root or settings.blob_storage_path).resolve()
        self.logger = structlog.get_logger().bind(blob_root=str(self.root))

    def _path_for(self, key: str) -> Path:
        if not key:
            raise ValidationError("Blob key must not be empty")
        parts = PurePosixPath(key.replace("\\", "/")).parts
        if PurePosixPath(key).is_absolute() or any(part in ("..", "") for part in parts):
            raise ValidationError(f"Invalid blob key: {key!r}")
        path = self.root.joinpath(*parts).resolve()
        if self.root not in path.parents:
            raise ValidationError(f"Invalid blob key: {key!r}")
        return path

    def put(self, key: str, data: bytes) -> None:
        path = self._path_for(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # Write to a sibling temp file and rename so readers never see a partial object
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".upload-")
            try:
                with os.fdopen(fd, "wb") as handle:
                    handle.write(data)
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            self.logger.error("Blob write failed", key=key, error=str(e))
            raise TransportError(f"Failed to store blob {key}: {e}") from e

        self.logger.info("Stored blob", key=key, size=len(data))

    def get(self, key: str) -> tuple[bytes, str]:
        path = self._path_for(key)
        if not path.is_file():
            raise NotFound("blob", key)
        try:
            content = path.read_bytes()
        except OSError as e:
            self.logger.error("Blob read failed", key=key, error=str(e))
            raise TransportError(f"Failed to read blob {key}: {e}") from e
        return content, guess_content_type(key)
