"""
Data models for photojournal.

- StoredObject: metadata of one image in the blob store
- UploadCandidate / UploadOutcome / BatchReport: transient upload batch records
"""

from .stored_object import StoredObject
from .upload import BatchReport, UploadCandidate, UploadOutcome, UploadState, guess_content_type

__all__ = [
    "StoredObject",
    "BatchReport",
    "UploadCandidate",
    "UploadOutcome",
    "UploadState",
    "guess_content_type",
]
