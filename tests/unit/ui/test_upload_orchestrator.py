"""
Unit tests for the upload orchestrator.
"""

import threading
import time
from unittest.mock import MagicMock

import pytest

from photojournal.api.client import ApiClient
from photojournal.models.upload import UploadState
from photojournal.services.storage import StorageGateway
from photojournal.ui.handlers.upload import UploadOrchestrator, clear_upload_session_state, get_image_gateway
from tests.conftest import MB, RecordingGateway, TestDataFactory


class TestUploadOrchestrator:
    """Test cases for UploadOrchestrator.run."""

    def setup_method(self):
        self.principal = TestDataFactory.create_principal("u1")

    def test_initial_state(self, recording_gateway):
        orchestrator = UploadOrchestrator(recording_gateway)

        assert orchestrator.state == UploadState.IDLE
        assert orchestrator.progress == 0.0

    def test_all_files_succeed(self, recording_gateway):
        progress_updates = []
        on_complete = MagicMock()
        orchestrator = UploadOrchestrator(
            recording_gateway,
            concurrency=2,
            on_progress=lambda progress, completed, total: progress_updates.append((progress, completed, total)),
            on_complete=on_complete,
        )
        candidates = [
            TestDataFactory.create_candidate("a.jpg", size=2 * MB),
            TestDataFactory.create_candidate("b.png", size=3 * MB, content_type="image/png"),
        ]

        report = orchestrator.run(candidates, self.principal)

        assert report.state == UploadState.COMPLETED
        assert orchestrator.state == UploadState.COMPLETED
        assert report.success is True
        assert report.error is None
        assert [outcome.filename for outcome in report.outcomes] == ["a.jpg", "b.png"]
        assert [obj.size for obj in report.succeeded] == [2 * MB, 3 * MB]
        assert orchestrator.progress == 100.0
        assert progress_updates[0] == (0.0, 0, 2)
        assert progress_updates[-1] == (100.0, 2, 2)
        on_complete.assert_called_once_with(report)

    def test_invalid_file_rejects_whole_batch(self, recording_gateway):
        on_complete = MagicMock()
        orchestrator = UploadOrchestrator(recording_gateway, on_complete=on_complete)
        candidates = [TestDataFactory.create_candidate(f"{i}.jpg") for i in range(3)]
        candidates.append(TestDataFactory.create_candidate("huge.jpg", size=10 * MB + 1))

        report = orchestrator.run(candidates, self.principal)

        assert report.state == UploadState.FAILED
        assert report.error.code == "too_large"
        assert report.error_message == "File too large. Maximum size is 10MB."
        assert report.outcomes == []
        assert recording_gateway.upload_calls == []
        on_complete.assert_not_called()

    def test_too_many_files(self, recording_gateway):
        orchestrator = UploadOrchestrator(recording_gateway, max_files=2)

        report = orchestrator.run([TestDataFactory.create_candidate(f"{i}.jpg") for i in range(3)], self.principal)

        assert report.state == UploadState.FAILED
        assert report.error_message == "Maximum 2 files allowed"
        assert recording_gateway.upload_calls == []

    def test_missing_principal(self, recording_gateway):
        orchestrator = UploadOrchestrator(recording_gateway)

        report = orchestrator.run([TestDataFactory.create_candidate()], None)

        assert report.state == UploadState.FAILED
        assert report.error.code == "unauthenticated"
        assert recording_gateway.upload_calls == []

    def test_empty_batch_completes_without_refresh(self, recording_gateway):
        on_complete = MagicMock()
        orchestrator = UploadOrchestrator(recording_gateway, on_complete=on_complete)

        report = orchestrator.run([], self.principal)

        assert report.state == UploadState.COMPLETED
        assert report.progress == 100.0
        on_complete.assert_not_called()

    def test_partial_failure_is_itemized(self):
        gateway = RecordingGateway(failing={"b.jpg"})
        on_complete = MagicMock()
        orchestrator = UploadOrchestrator(gateway, concurrency=3, on_complete=on_complete)
        candidates = [TestDataFactory.create_candidate(name) for name in ("a.jpg", "b.jpg", "c.jpg")]

        report = orchestrator.run(candidates, self.principal)

        assert report.state == UploadState.FAILED
        assert report.error_message == "Upload failed. Please try again."
        assert [outcome.succeeded for outcome in report.outcomes] == [True, False, True]
        assert [outcome.filename for outcome in report.failed] == ["b.jpg"]
        # Successful uploads are kept and trigger a refresh
        assert len(gateway.list(self.principal)) == 2
        on_complete.assert_called_once_with(report)

    def test_all_uploads_fail(self):
        gateway = RecordingGateway(failing={"a.jpg", "b.jpg"})
        on_complete = MagicMock()
        orchestrator = UploadOrchestrator(gateway, on_complete=on_complete)

        report = orchestrator.run(
            [TestDataFactory.create_candidate("a.jpg"), TestDataFactory.create_candidate("b.jpg")], self.principal
        )

        assert report.state == UploadState.FAILED
        assert report.succeeded == []
        assert report.progress == 100.0
        on_complete.assert_not_called()

    def test_unexpected_exception_becomes_upstream_error(self):
        gateway = MagicMock()
        gateway.upload.side_effect = RuntimeError("socket closed")
        orchestrator = UploadOrchestrator(gateway)

        report = orchestrator.run([TestDataFactory.create_candidate()], self.principal)

        assert report.outcomes[0].error.code == "upstream_failure"
        assert report.error_message == "Upload failed. Please try again."

    def test_progress_callback_error_settles_batch_first(self, recording_gateway):
        class RerunSignal(BaseException):
            pass

        calls = []

        def on_progress(progress, completed, total):
            calls.append(completed)
            if completed == 1:
                raise RerunSignal()

        on_complete = MagicMock()
        orchestrator = UploadOrchestrator(
            recording_gateway, concurrency=1, on_progress=on_progress, on_complete=on_complete
        )

        with pytest.raises(RerunSignal):
            orchestrator.run([TestDataFactory.create_candidate(f"{i}.jpg") for i in range(3)], self.principal)

        assert calls == [0, 1]
        assert orchestrator.state == UploadState.COMPLETED
        assert orchestrator.progress == 100.0
        assert len(orchestrator.last_report.succeeded) == 3
        assert len(recording_gateway.list(self.principal)) == 3
        on_complete.assert_called_once_with(orchestrator.last_report)

    def test_concurrency_is_bounded(self):
        active = 0
        peak = 0
        lock = threading.Lock()
        gateway = RecordingGateway()
        inner_upload = gateway.upload

        def slow_upload(candidate, principal):
            nonlocal active, peak
            with lock:
                active += 1
                peak = max(peak, active)
            time.sleep(0.02)
            with lock:
                active -= 1
            return inner_upload(candidate, principal)

        gateway.upload = slow_upload
        orchestrator = UploadOrchestrator(gateway, concurrency=2)

        report = orchestrator.run([TestDataFactory.create_candidate(f"{i}.jpg") for i in range(6)], self.principal)

        assert report.state == UploadState.COMPLETED
        assert peak <= 2

    def test_reset(self, recording_gateway):
        orchestrator = UploadOrchestrator(recording_gateway)
        orchestrator.run([TestDataFactory.create_candidate()], self.principal)

        orchestrator.reset()

        assert orchestrator.state == UploadState.IDLE
        assert orchestrator.progress == 0.0

    def test_defaults_come_from_config(self, monkeypatch, recording_gateway):
        monkeypatch.setenv("UPLOAD_CONCURRENCY", "0")
        monkeypatch.setenv("MAX_FILES", "7")

        orchestrator = UploadOrchestrator(recording_gateway)

        assert orchestrator.concurrency == 1
        assert orchestrator.max_files == 7


def test_clear_upload_session_state():
    session_state = {"upload_report": object(), "upload_progress": 50.0, "current_page": "upload"}

    clear_upload_session_state(session_state)

    assert session_state == {"current_page": "upload"}


def test_get_image_gateway_defaults_to_storage():
    assert isinstance(get_image_gateway(), StorageGateway)


def test_get_image_gateway_uses_api_url(monkeypatch):
    monkeypatch.setenv("API_URL", "http://api.local:8000/")

    gateway = get_image_gateway()

    assert isinstance(gateway, ApiClient)
    assert gateway.base_url == "http://api.local:8000"
