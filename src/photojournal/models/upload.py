"""
Upload batch models for photojournal.

An upload batch is transient: it exists only for the duration of one
orchestration call and is never persisted.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from photojournal.error_handling import PhotoJournalError
from photojournal.models.stored_object import StoredObject

CONTENT_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".svg": "image/svg+xml",
}


def guess_content_type(filename: str) -> str:
    """
    Determine content type from a file name.

    Args:
        filename: File name

    Returns:
        str: MIME content type, ``application/octet-stream`` when unknown
    """
    return CONTENT_TYPES.get(Path(filename).suffix.lower(), "application/octet-stream")


@dataclass
class UploadCandidate:
    """One file submitted for upload, as declared by the client."""

    filename: str
    data: bytes
    content_type: str

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def from_path(cls, path: str | Path) -> "UploadCandidate":
        """Build a candidate from a local file, guessing its type from the extension."""
        path = Path(path)
        return cls(filename=path.name, data=path.read_bytes(), content_type=guess_content_type(path.name))

    @classmethod
    def from_uploaded_file(cls, uploaded_file: Any) -> "UploadCandidate":
        """Build a candidate from a Streamlit ``UploadedFile``."""
        content_type = getattr(uploaded_file, "type", None) or guess_content_type(uploaded_file.name)
        return cls(filename=uploaded_file.name, data=uploaded_file.getvalue(), content_type=content_type)


class UploadState(Enum):
    """Lifecycle of one orchestration call."""

    IDLE = "idle"
    VALIDATING = "validating"
    UPLOADING = "uploading"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class UploadOutcome:
    """Result of uploading one file of a batch."""

    index: int
    filename: str
    stored_object: StoredObject | None = None
    error: PhotoJournalError | None = None

    @property
    def succeeded(self) -> bool:
        return self.stored_object is not None and self.error is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "filename": self.filename,
            "success": self.succeeded,
            "stored_object": self.stored_object.to_dict() if self.stored_object else None,
            "error": self.error.user_message if self.error else None,
        }


@dataclass
class BatchReport:
    """
    Itemized report of one upload batch.

    ``state`` is COMPLETED only when every file succeeded. ``error`` holds the
    batch-level failure: a fail-fast rejection (too many files, a file failing
    validation, no principal) or the first upload failure to settle.
    """

    total: int
    state: UploadState = UploadState.IDLE
    outcomes: list[UploadOutcome] = field(default_factory=list)
    error: PhotoJournalError | None = None
    completed: int = 0

    @property
    def progress(self) -> float:
        """Completed uploads as a percentage of the batch."""
        if self.total == 0:
            return 100.0 if self.state == UploadState.COMPLETED else 0.0
        return self.completed / self.total * 100

    @property
    def succeeded(self) -> list[StoredObject]:
        return [o.stored_object for o in self.outcomes if o.succeeded and o.stored_object is not None]

    @property
    def failed(self) -> list[UploadOutcome]:
        return [o for o in self.outcomes if not o.succeeded]

    @property
    def success(self) -> bool:
        return self.state == UploadState.COMPLETED

    @property
    def error_message(self) -> str | None:
        return self.error.user_message if self.error else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "state": self.state.value,
            "total": self.total,
            "completed": self.completed,
            "succeeded": len(self.succeeded),
            "failed": len(self.failed),
            "error": self.error_message,
            "outcomes": [o.to_dict() for o in self.outcomes],
        }
