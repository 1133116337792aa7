"""Storage gateway for photojournal.

The gateway is the server boundary in front of the blob store. Every object is
keyed under ``"<ownerId>/"`` and the gateway itself enforces that a principal
only lists and deletes inside its own prefix.
"""

from __future__ import annotations

import secrets
import threading
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol
from urllib.parse import quote, unquote, urlsplit

from google.cloud import storage  # type: ignore[attr-defined]
from google.cloud.exceptions import NotFound

from ..config import get_photos_bucket, get_project_id, get_public_base_url, get_storage_backend
from ..error_handling import AuthenticationError, AuthorizationError, PhotoJournalError, UpstreamError
from ..logging_config import get_logger, log_context, log_security_event, log_user_action
from ..models.stored_object import StoredObject
from ..models.upload import UploadCandidate
from .auth import AuthenticatedPrincipal, validate_owner_id
from .validation import UploadValidator, storage_extension

logger = get_logger(__name__)

_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def to_base36(number: int) -> str:
    """Encode a non-negative integer in lower-case base 36."""
    if number < 0:
        raise ValueError("number must be non-negative")
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


@dataclass(frozen=True)
class BlobInfo:
    """What the blob store reports about one object."""

    url: str
    pathname: str
    size: int
    uploaded_at: datetime
    content_type: str

    def to_stored_object(self) -> StoredObject:
        return StoredObject(
            url=self.url,
            filename=self.pathname,
            size=self.size,
            uploaded_at=self.uploaded_at,
            mime_type=self.content_type,
        )


class BlobStore(Protocol):
    """Opaque key-value object store with prefix listing."""

    def put(self, key: str, data: bytes, content_type: str) -> BlobInfo: ...

    def list(self, prefix: str) -> list[BlobInfo]: ...

    def delete_key(self, key: str) -> None: ...

    def key_for_url(self, url: str) -> str | None: ...

    def ping(self) -> bool: ...


class GCSBlobStore:
    """Blob store backed by a Google Cloud Storage bucket with public object URLs."""

    def __init__(
        self,
        bucket_name: str,
        project_id: str | None = None,
        public_base_url: str | None = None,
        client: storage.Client | None = None,
    ) -> None:
        self.bucket_name = bucket_name
        self.project_id = project_id
        self.client = client or storage.Client(project=project_id)
        self.bucket = self.client.bucket(bucket_name)
        self.public_base_url = (public_base_url or f"https://storage.googleapis.com/{bucket_name}").rstrip("/")

        logger.info(
            "gcs_blob_store_initialized",
            bucket=bucket_name,
            project_id=project_id,
            public_base_url=self.public_base_url,
        )

    def _url_for(self, key: str) -> str:
        return f"{self.public_base_url}/{quote(key, safe='/~')}"

    def _to_blob_info(self, blob: storage.Blob) -> BlobInfo:
        return BlobInfo(
            url=self._url_for(blob.name),
            pathname=blob.name,
            size=int(blob.size or 0),
            uploaded_at=blob.time_created or datetime.now(UTC),
            content_type=blob.content_type or "application/octet-stream",
        )

    def put(self, key: str, data: bytes, content_type: str) -> BlobInfo:
        blob = self.bucket.blob(key)
        blob.metadata = {"uploaded_at": datetime.now(UTC).isoformat()}
        blob.upload_from_string(data, content_type=content_type)

        logger.debug("gcs_object_written", key=key, size=len(data), content_type=content_type)
        return BlobInfo(
            url=self._url_for(key),
            pathname=key,
            size=len(data),
            uploaded_at=blob.time_created or datetime.now(UTC),
            content_type=content_type,
        )

    def list(self, prefix: str) -> list[BlobInfo]:
        return [self._to_blob_info(blob) for blob in self.client.list_blobs(self.bucket_name, prefix=prefix)]

    def delete_key(self, key: str) -> None:
        try:
            self.bucket.blob(key).delete()
        except NotFound:
            logger.warning("gcs_object_not_found_for_deletion", key=key)

    def key_for_url(self, url: str) -> str | None:
        base = f"{self.public_base_url}/"
        if not url.startswith(base):
            return None
        key = unquote(urlsplit(url[len(base) :]).path)
        return key or None

    def ping(self) -> bool:
        return bool(self.bucket.exists())


class InMemoryBlobStore:
    """Thread-safe in-process blob store for development and tests."""

    def __init__(self, base_url: str = "memory://photojournal") -> None:
        self.base_url = base_url.rstrip("/")
        self._objects: dict[str, tuple[bytes, BlobInfo]] = {}
        self._lock = threading.Lock()

    def put(self, key: str, data: bytes, content_type: str) -> BlobInfo:
        info = BlobInfo(
            url=f"{self.base_url}/{key}",
            pathname=key,
            size=len(data),
            uploaded_at=datetime.now(UTC),
            content_type=content_type,
        )
        with self._lock:
            self._objects[key] = (data, info)
        return info

    def list(self, prefix: str) -> list[BlobInfo]:
        with self._lock:
            return [info for key, (_, info) in self._objects.items() if key.startswith(prefix)]

    def delete_key(self, key: str) -> None:
        with self._lock:
            if self._objects.pop(key, None) is None:
                logger.warning("memory_object_not_found_for_deletion", key=key)

    def key_for_url(self, url: str) -> str | None:
        base = f"{self.base_url}/"
        if not url.startswith(base):
            return None
        return url[len(base) :] or None

    def read(self, key: str) -> bytes | None:
        with self._lock:
            entry = self._objects.get(key)
        return entry[0] if entry else None

    def ping(self) -> bool:
        return True


class StorageGateway:
    """Server boundary exposing upload, list and delete scoped by owner prefix."""

    def __init__(self, store: BlobStore, validator: UploadValidator | None = None) -> None:
        self.store = store
        self.validator = validator or UploadValidator()

    @staticmethod
    def _require_owner(principal: AuthenticatedPrincipal | None) -> str:
        if principal is None:
            raise AuthenticationError("User ID is required", code="unauthenticated", user_message="User ID is required")
        return validate_owner_id(principal.user_id)

    def generate_key(self, owner_id: str, candidate: UploadCandidate) -> str:
        """
        Build the storage key ``"<ownerId>/<epochMillis>-<random base36>.<ext>"``.

        The timestamp plus random suffix makes keys practically unique without
        relying on the store to add a suffix.
        """
        timestamp = int(time.time() * 1000)
        token = to_base36(secrets.randbits(52))
        return f"{owner_id}/{timestamp}-{token}.{storage_extension(candidate)}"

    def upload(self, candidate: UploadCandidate, principal: AuthenticatedPrincipal | None) -> StoredObject:
        """
        Validate and store one file under the principal's prefix.

        Raises:
            AuthenticationError: No principal
            ValidationError: Bad type, too large or empty file
            UpstreamError: The blob store failed
        """
        owner_id = self._require_owner(principal)
        self.validator.validate(candidate)
        key = self.generate_key(owner_id, candidate)

        try:
            with log_context("storage_upload", logger, user_id=owner_id, key=key, size=candidate.size):
                info = self.store.put(key, candidate.data, candidate.content_type)
        except Exception as e:
            raise UpstreamError(
                f"Failed to upload '{candidate.filename}': {e}",
                user_message="Upload failed. Please try again.",
                details={"user_id": owner_id, "key": key},
                original_exception=e,
            ) from e

        log_user_action(owner_id, "image_uploaded", key=key, size=candidate.size)
        return StoredObject(
            url=info.url,
            filename=info.pathname,
            size=candidate.size,
            uploaded_at=info.uploaded_at,
            mime_type=candidate.content_type,
        )

    def list(self, principal: AuthenticatedPrincipal | None) -> list[StoredObject]:
        """
        List every object under the principal's prefix, in store order.

        Raises:
            AuthenticationError: No principal
            UpstreamError: The blob store failed
        """
        owner_id = self._require_owner(principal)
        prefix = f"{owner_id}/"

        try:
            with log_context("storage_list", logger, user_id=owner_id):
                blobs = self.store.list(prefix)
        except Exception as e:
            raise UpstreamError(
                f"Failed to list images for '{owner_id}': {e}",
                user_message="Failed to fetch images",
                details={"user_id": owner_id},
                original_exception=e,
            ) from e

        # The prefix filter is re-applied so a misbehaving store cannot leak another owner's keys.
        objects = [blob.to_stored_object() for blob in blobs if blob.pathname.startswith(prefix)]
        logger.debug("storage_listed", user_id=owner_id, count=len(objects))
        return objects

    def delete(self, url: str, principal: AuthenticatedPrincipal | None) -> None:
        """
        Permanently delete the object at ``url`` if the principal owns it.

        Raises:
            AuthenticationError: No principal
            AuthorizationError: The URL is unknown to the store or outside the prefix
            UpstreamError: The blob store failed
        """
        owner_id = self._require_owner(principal)
        key = self.store.key_for_url(url) if url else None

        if key is None or not key.startswith(f"{owner_id}/"):
            log_security_event("delete_outside_prefix", user_id=owner_id, url=url, key=key)
            raise AuthorizationError(
                f"User '{owner_id}' may not delete '{url}'",
                code="unauthorized",
                user_message="Unauthorized: Cannot delete images not belonging to this account.",
                details={"user_id": owner_id, "url": url},
            )

        try:
            with log_context("storage_delete", logger, user_id=owner_id, key=key):
                self.store.delete_key(key)
        except PhotoJournalError:
            raise
        except Exception as e:
            raise UpstreamError(
                f"Failed to delete '{key}': {e}",
                user_message="Failed to delete image",
                details={"user_id": owner_id, "key": key},
                original_exception=e,
            ) from e

        log_user_action(owner_id, "image_deleted", key=key)

    def check_health(self) -> bool:
        return self.store.ping()


def create_blob_store(backend: str | None = None) -> BlobStore:
    """
    Create the configured blob store.

    Args:
        backend: ``gcs`` or ``memory``; defaults to STORAGE_BACKEND

    Raises:
        UpstreamError: If the GCS client cannot be created
        ValueError: If the backend name is unknown
    """
    backend = (backend or get_storage_backend()).lower()
    if backend == "memory":
        return InMemoryBlobStore(base_url=get_public_base_url() or "memory://photojournal")
    if backend == "gcs":
        try:
            return GCSBlobStore(
                bucket_name=get_photos_bucket(),
                project_id=get_project_id(),
                public_base_url=get_public_base_url(),
            )
        except ValueError:
            raise
        except Exception as e:
            raise UpstreamError(f"Failed to initialize GCS client: {e}", original_exception=e) from e
    raise ValueError(f"Unknown storage backend: {backend}")


_storage_gateway: StorageGateway | None = None
_gateway_lock = threading.Lock()


def get_storage_gateway() -> StorageGateway:
    """Get the global storage gateway instance."""
    global _storage_gateway
    with _gateway_lock:
        if _storage_gateway is None:
            _storage_gateway = StorageGateway(create_blob_store())
        return _storage_gateway


def reset_storage_gateway() -> None:
    """Drop the global instance so the next call re-reads configuration."""
    global _storage_gateway
    with _gateway_lock:
        _storage_gateway = None
