"""Upload orchestration for photojournal.

Drives one batch through ``IDLE -> VALIDATING -> UPLOADING -> COMPLETED | FAILED``:
the whole batch is validated before anything is sent, then files are uploaded
through a bounded worker pool and every file gets its own outcome.
"""

from collections.abc import Callable, Iterable, MutableMapping
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Protocol

import structlog

from photojournal.api.client import ApiClient
from photojournal.config import get_api_url, get_max_files, get_upload_concurrency
from photojournal.error_handling import AuthenticationError, PhotoJournalError, UpstreamError, ValidationError
from photojournal.logging_config import log_user_action
from photojournal.models.stored_object import StoredObject
from photojournal.models.upload import BatchReport, UploadCandidate, UploadOutcome, UploadState
from photojournal.services.auth import AuthenticatedPrincipal
from photojournal.services.storage import get_storage_gateway
from photojournal.services.validation import UploadValidator

logger = structlog.get_logger(__name__)

ProgressCallback = Callable[[float, int, int], None]
CompletionCallback = Callable[[BatchReport], None]

UPLOAD_SESSION_KEYS = ("upload_report", "upload_progress", "upload_in_progress", "upload_error")


class ImageGateway(Protocol):
    """Anything exposing the storage gateway contract: the local gateway or the HTTP client."""

    def upload(self, candidate: UploadCandidate, principal: AuthenticatedPrincipal | None) -> StoredObject: ...

    def list(self, principal: AuthenticatedPrincipal | None) -> list[StoredObject]: ...

    def delete(self, url: str, principal: AuthenticatedPrincipal | None) -> None: ...


def get_image_gateway() -> ImageGateway:
    """The remote API client when API_URL is set, otherwise the direct storage gateway."""
    api_url = get_api_url()
    if api_url:
        return ApiClient(api_url)
    return get_storage_gateway()


class UploadOrchestrator:
    """Validates a batch, uploads it with bounded concurrency and reports per-file outcomes."""

    def __init__(
        self,
        gateway: ImageGateway,
        validator: UploadValidator | None = None,
        max_files: int | None = None,
        concurrency: int | None = None,
        on_progress: ProgressCallback | None = None,
        on_complete: CompletionCallback | None = None,
    ) -> None:
        self.gateway = gateway
        self.validator = validator or UploadValidator()
        self.max_files = max_files if max_files is not None else get_max_files()
        self.concurrency = max(1, concurrency if concurrency is not None else get_upload_concurrency())
        self.on_progress = on_progress
        self.on_complete = on_complete
        self.state = UploadState.IDLE
        self.progress = 0.0
        self.last_report: BatchReport | None = None

    def reset(self) -> None:
        self.state = UploadState.IDLE
        self.progress = 0.0

    def _transition(self, state: UploadState, report: BatchReport) -> None:
        logger.debug("upload_state_changed", from_state=self.state.value, to_state=state.value, total=report.total)
        self.state = state
        report.state = state

    def _report_progress(self, report: BatchReport) -> BaseException | None:
        """Publish progress; an exception raised by the callback is returned rather than raised."""
        self.progress = report.progress
        if self.on_progress is None:
            return None
        try:
            self.on_progress(self.progress, report.completed, report.total)
        except BaseException as e:  # Streamlit's rerun and stop signals derive from BaseException
            logger.warning("upload_progress_callback_failed", error_type=type(e).__name__)
            return e
        return None

    def _fail_fast(self, report: BatchReport, error: PhotoJournalError) -> BatchReport:
        report.error = error
        self._transition(UploadState.FAILED, report)
        logger.warning("upload_batch_rejected", total=report.total, code=error.code, error=str(error))
        return report

    def run(
        self, candidates: Iterable[UploadCandidate], principal: AuthenticatedPrincipal | None
    ) -> BatchReport:
        """
        Upload one batch.

        Args:
            candidates: Files in submission order
            principal: The verified owner of the batch

        Returns:
            BatchReport: Itemized outcomes; ``error`` carries the fail-fast
            rejection or the first upload failure to settle
        """
        batch = list(candidates)
        report = BatchReport(total=len(batch))
        self.last_report = report
        self.progress = 0.0
        self._transition(UploadState.VALIDATING, report)

        try:
            if principal is None:
                raise AuthenticationError(
                    "User not authenticated for upload",
                    code="unauthenticated",
                    user_message="User not authenticated for upload.",
                )
            self.validator.validate_batch(batch, self.max_files)
        except (AuthenticationError, ValidationError) as e:
            return self._fail_fast(report, e)

        if not batch:
            self._transition(UploadState.COMPLETED, report)
            return report

        self._transition(UploadState.UPLOADING, report)
        # The first callback failure stops progress reporting and is re-raised once the batch has settled
        callback_error = self._report_progress(report)
        logger.info(
            "upload_batch_started",
            user_id=principal.user_id,
            total=len(batch),
            workers=min(self.concurrency, len(batch)),
        )

        outcomes: dict[int, UploadOutcome] = {}
        with ThreadPoolExecutor(
            max_workers=min(self.concurrency, len(batch)), thread_name_prefix="photojournal-upload"
        ) as executor:
            futures = {
                executor.submit(self.gateway.upload, candidate, principal): i for i, candidate in enumerate(batch)
            }

            # Results are consumed on the calling thread, so progress updates are serialized.
            for future in as_completed(futures):
                index = futures[future]
                outcome = UploadOutcome(index=index, filename=batch[index].filename)
                try:
                    outcome.stored_object = future.result()
                except PhotoJournalError as e:
                    outcome.error = e
                except Exception as e:
                    outcome.error = UpstreamError(
                        f"Unexpected error uploading '{batch[index].filename}': {e}",
                        user_message="Upload failed. Please try again.",
                        details={"filename": batch[index].filename},
                        original_exception=e,
                    )

                if outcome.error is not None and report.error is None:
                    report.error = outcome.error

                outcomes[index] = outcome
                report.completed += 1
                if callback_error is None:
                    callback_error = self._report_progress(report)
                else:
                    self.progress = report.progress

        report.outcomes = [outcomes[i] for i in range(len(batch))]
        self._transition(UploadState.COMPLETED if report.error is None else UploadState.FAILED, report)

        log_user_action(
            principal.user_id,
            "upload_batch_finished",
            state=report.state.value,
            succeeded=len(report.succeeded),
            failed=len(report.failed),
        )

        if report.succeeded and self.on_complete is not None:
            self.on_complete(report)

        if callback_error is not None:
            raise callback_error
        return report


def clear_upload_session_state(session_state: MutableMapping[str, Any]) -> None:
    """Remove upload-related keys from a Streamlit session state."""
    for key in UPLOAD_SESSION_KEYS:
        session_state.pop(key, None)
