"""
Pytest configuration and fixtures for photojournal tests.
"""

import tempfile
import time
from collections.abc import Generator
from pathlib import Path

import pytest

from photojournal.config import get_config
from photojournal.error_handling import UpstreamError
from photojournal.models.upload import UploadCandidate
from photojournal.services.auth import AuthenticatedPrincipal, reset_auth_service
from photojournal.services.storage import InMemoryBlobStore, StorageGateway, reset_storage_gateway
from photojournal.services.validation import UploadValidator

MB = 1024 * 1024

# Simple 1x1 pixel PNG image
SAMPLE_PNG = bytes.fromhex(
    "89504e470d0a1a0a"
    "0000000d4948445200000001000000010802000000907753de"
    "0000000c4944415408d763f800000000010001000000000000"
    "49454e44ae426082"
)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield Path(tmp_dir)


@pytest.fixture
def sample_image_data() -> bytes:
    return SAMPLE_PNG


@pytest.fixture(autouse=True)
def setup_test_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Set up test environment variables and drop cached globals."""
    monkeypatch.setenv("ENVIRONMENT", "test")
    monkeypatch.setenv("STORAGE_BACKEND", "memory")
    monkeypatch.setenv("GCS_PHOTOS_BUCKET", "test-photos-bucket")
    monkeypatch.setenv("GOOGLE_CLOUD_PROJECT", "test-project")
    for key in ("MAX_UPLOAD_BYTES", "UPLOAD_CONCURRENCY", "MAX_FILES", "PUBLIC_BASE_URL", "IAP_AUDIENCE", "API_URL"):
        monkeypatch.delenv(key, raising=False)

    get_config().clear_cache()
    reset_auth_service()
    reset_storage_gateway()
    yield
    get_config().clear_cache()
    reset_auth_service()
    reset_storage_gateway()


class TestDataFactory:
    """Factory class for creating test data objects."""

    @staticmethod
    def create_principal(
        user_id: str = "test-user-123",
        email: str | None = "test@example.com",
        display_name: str | None = "Test User",
        token: str | None = None,
    ) -> AuthenticatedPrincipal:
        return AuthenticatedPrincipal(user_id=user_id, email=email, display_name=display_name, token=token)

    @staticmethod
    def create_candidate(
        filename: str = "photo.jpg",
        size: int = 1024,
        content_type: str = "image/jpeg",
    ) -> UploadCandidate:
        """Create an upload candidate with ``size`` bytes of filler data."""
        return UploadCandidate(filename=filename, data=b"x" * size, content_type=content_type)

    @staticmethod
    def create_iap_claims(
        user_id: str = "accounts.google.com:test-user-123",
        email: str = "test@example.com",
        name: str | None = "Test User",
        picture: str | None = None,
        iss: str = "https://cloud.google.com/iap",
        aud: str = "/projects/123456789/global/backendServices/test-service",
    ) -> dict:
        """Create the decoded claims of a Cloud IAP assertion.

        Args:
            user_id: Subject claim
            email: Email claim
            name: Display name claim
            picture: Profile picture URL claim
            iss: Issuer claim
            aud: Audience claim

        Returns:
            Dictionary of claims as returned by token verification
        """
        current_time = int(time.time())
        claims = {
            "sub": user_id,
            "email": email,
            "iss": iss,
            "aud": aud,
            "iat": current_time,
            "exp": current_time + 3600,
        }
        if name is not None:
            claims["name"] = name
        if picture is not None:
            claims["picture"] = picture
        return claims

    @staticmethod
    def create_iap_headers(token: str = "header.payload.signature") -> dict[str, str]:
        return {"X-Goog-IAP-JWT-Assertion": token}


class FailingBlobStore(InMemoryBlobStore):
    """In-memory store whose writes fail for selected file sizes."""

    def __init__(self, failing_sizes: set[int] | None = None, fail_list: bool = False) -> None:
        super().__init__()
        self.failing_sizes = failing_sizes or set()
        self.fail_list = fail_list

    def put(self, key, data, content_type):
        if len(data) in self.failing_sizes:
            raise ConnectionError("blob store unavailable")
        return super().put(key, data, content_type)

    def list(self, prefix):
        if self.fail_list:
            raise ConnectionError("blob store unavailable")
        return super().list(prefix)


class RecordingGateway:
    """Gateway double recording calls; uploads fail for filenames in ``failing``."""

    def __init__(self, failing: set[str] | None = None, delay: float = 0.0) -> None:
        self.inner = StorageGateway(InMemoryBlobStore(), UploadValidator(max_size=10 * MB))
        self.failing = failing or set()
        self.delay = delay
        self.upload_calls: list[str] = []
        self.list_calls = 0

    def upload(self, candidate, principal):
        self.upload_calls.append(candidate.filename)
        if self.delay:
            time.sleep(self.delay)
        if candidate.filename in self.failing:
            raise UpstreamError(f"store rejected {candidate.filename}", user_message="Upload failed. Please try again.")
        return self.inner.upload(candidate, principal)

    def list(self, principal):
        self.list_calls += 1
        return self.inner.list(principal)

    def delete(self, url, principal):
        return self.inner.delete(url, principal)


@pytest.fixture
def test_data_factory() -> TestDataFactory:
    """Provide TestDataFactory instance for tests."""
    return TestDataFactory()


@pytest.fixture
def memory_store() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def gateway(memory_store: InMemoryBlobStore) -> StorageGateway:
    return StorageGateway(memory_store, UploadValidator(max_size=10 * MB))


@pytest.fixture
def recording_gateway() -> RecordingGateway:
    return RecordingGateway()
