"""
Services module for photojournal.

- CloudIAPAuthService: verifies Cloud IAP identities into AuthenticatedPrincipal
- UploadValidator: type and size checks for upload candidates
- StorageGateway: owner-scoped upload, list and delete over a blob store
"""

from .auth import AuthenticatedPrincipal, CloudIAPAuthService, get_auth_service
from .storage import (
    BlobInfo,
    GCSBlobStore,
    InMemoryBlobStore,
    StorageGateway,
    create_blob_store,
    get_storage_gateway,
)
from .validation import ALLOWED_CONTENT_TYPES, UploadValidator

__all__ = [
    "AuthenticatedPrincipal",
    "CloudIAPAuthService",
    "get_auth_service",
    "BlobInfo",
    "GCSBlobStore",
    "InMemoryBlobStore",
    "StorageGateway",
    "create_blob_store",
    "get_storage_gateway",
    "ALLOWED_CONTENT_TYPES",
    "UploadValidator",
]
