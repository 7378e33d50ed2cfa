"""Persistence for post-call recording uploads.

Recordings are written under ``<base_dir>/<run_id>/`` where ``run_id`` is fixed
when the storage is created (once per process start), so each server run keeps
its recordings together. File names are derived from the client-supplied
timestamp, e.g. ``recording_2024-06-01T10-15-30-000Z.webm``.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from starlette.datastructures import UploadFile

from callbridge.config.constants import (
    DEFAULT_MAX_UPLOAD_BYTES,
    DEFAULT_RECORDING_EXTENSION,
    UPLOAD_CHUNK_SIZE,
)
from callbridge.config.logging_config import configure_logging

logger = configure_logging("recording_storage")

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]")
_SAFE_EXTENSION = re.compile(r"^\.[A-Za-z0-9]{1,10}$")


class RecordingTooLargeError(Exception):
    """Raised when an upload exceeds the configured size limit."""


@dataclass
class SavedRecording:
    filename: str
    size: int
    path: Path


def utc_timestamp() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


def sanitize_timestamp(timestamp: str) -> str:
    """Turn an arbitrary timestamp string into a safe filename fragment."""
    cleaned = _UNSAFE_CHARS.sub("-", timestamp.strip())
    return cleaned or "unknown"


def recording_extension(filename: Optional[str]) -> str:
    """Pick the file extension for a recording from its uploaded name."""
    if filename:
        suffix = Path(filename).suffix.lower()
        if _SAFE_EXTENSION.match(suffix):
            return suffix
    return DEFAULT_RECORDING_EXTENSION


class RecordingStorage:
    """Writes uploaded recordings to disk with a size cap.

    Args:
        base_dir: Root directory for all recordings.
        max_upload_bytes: Uploads larger than this are rejected and removed.
        run_id: Per-run subdirectory name; defaults to the creation time.
    """

    def __init__(
        self,
        base_dir: Union[str, Path] = "recordings",
        max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
        run_id: Optional[str] = None,
    ):
        self.base_dir = Path(base_dir)
        self.max_upload_bytes = max_upload_bytes
        self.run_id = run_id or datetime.now().strftime("%Y%m%d_%H%M%S")

    @property
    def run_dir(self) -> Path:
        return self.base_dir / self.run_id

    def build_filename(self, timestamp: str, original_filename: Optional[str]) -> str:
        return (
            f"recording_{sanitize_timestamp(timestamp)}"
            f"{recording_extension(original_filename)}"
        )

    async def save_upload(
        self, upload: UploadFile, timestamp: Optional[str] = None
    ) -> SavedRecording:
        """Stream ``upload`` to disk and return what was written.

        Raises:
            RecordingTooLargeError: If the upload exceeds ``max_upload_bytes``;
                the partially written file is removed.
            OSError: On any filesystem failure.
        """
        filename = self.build_filename(timestamp or utc_timestamp(), upload.filename)
        self.run_dir.mkdir(parents=True, exist_ok=True)
        path = self.run_dir / filename

        size = 0
        completed = False
        try:
            with open(path, "wb") as f:
                while True:
                    chunk = await upload.read(UPLOAD_CHUNK_SIZE)
                    if not chunk:
                        break
                    size += len(chunk)
                    if size > self.max_upload_bytes:
                        raise RecordingTooLargeError(
                            f"Recording exceeds {self.max_upload_bytes} bytes"
                        )
                    f.write(chunk)
            completed = True
        finally:
            if not completed:
                path.unlink(missing_ok=True)

        logger.info(f"Saved recording {path} ({size} bytes)")
        return SavedRecording(filename=filename, size=size, path=path)
