"""Upload validation for photojournal: MIME type, size and storage extension."""

import re
from pathlib import Path

from photojournal.config import get_max_upload_bytes
from photojournal.error_handling import ValidationError
from photojournal.logging_config import get_logger
from photojournal.models.upload import UploadCandidate

logger = get_logger(__name__)

ALLOWED_CONTENT_TYPES = frozenset(
    {
        "image/jpeg",
        "image/jpg",
        "image/png",
        "image/webp",
        "image/svg+xml",
    }
)

DEFAULT_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/svg+xml": "svg",
}

INVALID_TYPE_MESSAGE = "Invalid file type. Only JPEG, PNG, WebP, and SVG images are allowed."
MISSING_FILE_MESSAGE = "No file provided"

_EXTENSION_RE = re.compile(r"^[a-z0-9]{1,10}$")


def too_large_message(max_size: int) -> str:
    return f"File too large. Maximum size is {max_size // (1024 * 1024)}MB."


class UploadValidator:
    """Checks candidates against the type and size constraints."""

    def __init__(self, max_size: int | None = None) -> None:
        self.max_size = max_size if max_size is not None else get_max_upload_bytes()

    def validate(self, candidate: UploadCandidate | None) -> None:
        """
        Validate one upload candidate.

        Args:
            candidate: The file to check

        Raises:
            ValidationError: ``missing_file``, ``invalid_type`` or ``too_large``
        """
        if candidate is None or not candidate.filename or not candidate.data:
            raise ValidationError(
                "Upload candidate has no file data",
                code="missing_file",
                user_message=MISSING_FILE_MESSAGE,
                details={"filename": getattr(candidate, "filename", None)},
            )

        content_type = (candidate.content_type or "").lower()
        if content_type not in ALLOWED_CONTENT_TYPES:
            raise ValidationError(
                f"File '{candidate.filename}' has unsupported type '{candidate.content_type}'",
                code="invalid_type",
                user_message=INVALID_TYPE_MESSAGE,
                details={"filename": candidate.filename, "content_type": candidate.content_type},
            )

        if candidate.size > self.max_size:
            raise ValidationError(
                f"File '{candidate.filename}' is too large ({candidate.size} bytes, limit {self.max_size})",
                code="too_large",
                user_message=too_large_message(self.max_size),
                details={"filename": candidate.filename, "file_size": candidate.size, "max_size": self.max_size},
            )

        logger.debug("file_validation_success", filename=candidate.filename, size=candidate.size)

    def validate_batch(self, candidates: list[UploadCandidate], max_files: int) -> None:
        """
        Validate a whole batch before any upload starts.

        The batch size cap is checked first; then every file in order, and the
        first failing file rejects the batch.

        Raises:
            ValidationError: ``too_many_files`` or the first file's error
        """
        if len(candidates) > max_files:
            raise ValidationError(
                f"Batch of {len(candidates)} files exceeds the limit of {max_files}",
                code="too_many_files",
                user_message=f"Maximum {max_files} files allowed",
                details={"file_count": len(candidates), "max_files": max_files},
            )

        for candidate in candidates:
            self.validate(candidate)


def storage_extension(candidate: UploadCandidate) -> str:
    """
    Pick the extension used in the storage key.

    The text after the last dot of the original name, lower-cased, when it is a
    short alphanumeric token; otherwise the default for the MIME type.
    """
    suffix = Path(candidate.filename).suffix.lstrip(".").lower()
    if suffix and _EXTENSION_RE.match(suffix):
        return suffix
    return DEFAULT_EXTENSIONS.get((candidate.content_type or "").lower(), "bin")
