"""
Centralized error handling and classification for photojournal.

Every user-initiated action (an upload batch, a gallery refresh, a delete, an
API request) catches errors at its boundary and turns them into a single
human-readable message. No error in this module suggests an automatic retry;
recovery is always manual.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from photojournal.logging_config import get_logger, log_error, log_security_event

logger = get_logger(__name__)


class ErrorCategory(Enum):
    """Error categories for classification and handling."""

    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    VALIDATION = "validation"
    UPSTREAM = "upstream"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class ErrorInfo:
    """Structured error information."""

    category: ErrorCategory
    severity: ErrorSeverity
    code: str
    message: str
    user_message: str
    details: dict[str, Any]
    timestamp: datetime
    recoverable: bool = True

    def to_dict(self) -> dict[str, Any]:
        """Convert error info to dictionary."""
        return {
            "category": self.category.value,
            "severity": self.severity.value,
            "code": self.code,
            "message": self.message,
            "user_message": self.user_message,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
            "recoverable": self.recoverable,
        }


class PhotoJournalError(Exception):
    """Base exception class for photojournal."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        code: str | None = None,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
        recoverable: bool = True,
        original_exception: Exception | None = None,
    ):
        super().__init__(message)
        self.category = category
        self.severity = severity
        self.code = code or f"{category.value}_error"
        self.user_message = user_message or self._generate_user_message()
        self.details = details or {}
        self.recoverable = recoverable
        self.original_exception = original_exception
        self.timestamp = datetime.now()

        self._log_error()

    @property
    def retry_suggested(self) -> bool:
        """Automatic retry is never suggested; the user re-submits."""
        return False

    def _generate_user_message(self) -> str:
        """Generate user-friendly error message."""
        user_messages = {
            ErrorCategory.AUTHENTICATION: "Please sign in to continue.",
            ErrorCategory.AUTHORIZATION: "You are not allowed to perform this action.",
            ErrorCategory.VALIDATION: "The submitted data is invalid.",
            ErrorCategory.UPSTREAM: "The storage service is unavailable. Please try again.",
            ErrorCategory.UNKNOWN: "An unexpected error occurred.",
        }
        return user_messages.get(self.category, "An error occurred.")

    def _log_error(self) -> None:
        """Log the error with a level matching its severity."""
        error_context = {
            "category": self.category.value,
            "severity": self.severity.value,
            "code": self.code,
            "recoverable": self.recoverable,
            **self.details,
        }

        if self.original_exception:
            error_context["original_exception"] = str(self.original_exception)

        if self.severity == ErrorSeverity.LOW:
            logger.warning("error_raised", error_type=type(self).__name__, error_message=str(self), **error_context)
        else:
            log_error(self, error_context)

        if self.category in (ErrorCategory.AUTHENTICATION, ErrorCategory.AUTHORIZATION):
            log_security_event(self.category.value, **error_context)

    def get_error_info(self) -> ErrorInfo:
        """Get structured error information."""
        return ErrorInfo(
            category=self.category,
            severity=self.severity,
            code=self.code,
            message=str(self),
            user_message=self.user_message,
            details=self.details,
            timestamp=self.timestamp,
            recoverable=self.recoverable,
        )


class ValidationError(PhotoJournalError):
    """Bad type, bad size, missing field or too many files. User-correctable."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.LOW,
            code=code or "validation_failed",
            user_message=user_message or message,
            details=details,
            recoverable=True,
            original_exception=original_exception,
        )


class AuthenticationError(PhotoJournalError):
    """Missing or unverifiable owner identity."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.AUTHENTICATION,
            severity=ErrorSeverity.HIGH,
            code=code or "unauthenticated",
            user_message=user_message or "Please sign in to continue.",
            details=details,
            recoverable=True,
            original_exception=original_exception,
        )


class AuthorizationError(PhotoJournalError):
    """The principal does not own the target object."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.AUTHORIZATION,
            severity=ErrorSeverity.HIGH,
            code=code or "unauthorized",
            user_message=user_message or "Unauthorized: Cannot access images not belonging to this account.",
            details=details,
            recoverable=False,
            original_exception=original_exception,
        )


class UpstreamError(PhotoJournalError):
    """The blob store failed. Surfaced as a generic message, never retried or queued."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.UPSTREAM,
            severity=ErrorSeverity.HIGH,
            code=code or "upstream_failure",
            user_message=user_message,
            details=details,
            recoverable=True,
            original_exception=original_exception,
        )


class ErrorHandler:
    """Converts any exception raised by a user action into an ErrorInfo."""

    def __init__(self) -> None:
        self.error_counts: dict[str, int] = {}
        self.logger = get_logger(__name__)

    def handle_error(self, error: Exception, context: dict[str, Any] | None = None) -> ErrorInfo:
        """
        Classify an error and count it.

        Args:
            error: The exception caught at the action boundary
            context: Extra context merged into the error details

        Returns:
            ErrorInfo: Structured error information with a user message
        """
        if isinstance(error, PhotoJournalError):
            error_info = error.get_error_info()
            if context:
                error_info.details = {**error_info.details, **context}
        else:
            log_error(error, context)
            error_info = ErrorInfo(
                category=ErrorCategory.UNKNOWN,
                severity=ErrorSeverity.MEDIUM,
                code="unexpected_error",
                message=str(error),
                user_message="An unexpected error occurred.",
                details=context or {},
                timestamp=datetime.now(),
                recoverable=True,
            )

        self.error_counts[error_info.code] = self.error_counts.get(error_info.code, 0) + 1
        self.logger.debug("error_handled", code=error_info.code, count=self.error_counts[error_info.code])
        return error_info


_error_handler: ErrorHandler | None = None


def get_error_handler() -> ErrorHandler:
    """Get the global error handler instance."""
    global _error_handler
    if _error_handler is None:
        _error_handler = ErrorHandler()
    return _error_handler
