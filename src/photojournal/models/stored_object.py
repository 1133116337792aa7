"""
Stored object model for photojournal.

A StoredObject is the metadata record of one uploaded image as known to the
blob store. It is immutable: created only by an upload, destroyed only by a
delete.
"""

from dataclasses import dataclass
from datetime import UTC, datetime


@dataclass(frozen=True)
class StoredObject:
    """
    Represents one image held in the blob store.

    ``url`` is globally unique and serves as the primary key. ``filename`` is the
    storage key, ``"<ownerId>/<epochMillis>-<random>.<ext>"``.
    """

    url: str
    filename: str
    size: int
    uploaded_at: datetime
    mime_type: str

    @property
    def owner_id(self) -> str:
        """Owner identifier encoded in the storage key prefix."""
        return self.filename.split("/", 1)[0] if "/" in self.filename else ""

    def belongs_to(self, owner_id: str) -> bool:
        """Check that the storage key carries ``owner_id``'s prefix."""
        return bool(owner_id) and self.filename.startswith(f"{owner_id}/")

    def to_dict(self) -> dict:
        """
        Convert to the JSON shape returned by the HTTP API.

        Returns:
            Dictionary with camelCase ``uploadedAt`` and ``type`` keys
        """
        return {
            "url": self.url,
            "filename": self.filename,
            "size": self.size,
            "uploadedAt": self.uploaded_at.isoformat(),
            "type": self.mime_type,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "StoredObject":
        """
        Create a StoredObject from an API payload.

        Accepts both ``uploadedAt``/``type`` (API) and ``uploaded_at``/``mime_type``
        keys. A missing timestamp defaults to now.
        """
        uploaded_at = data.get("uploadedAt", data.get("uploaded_at"))
        if isinstance(uploaded_at, str):
            if uploaded_at.endswith("Z"):
                uploaded_at = uploaded_at[:-1] + "+00:00"
            uploaded_at = datetime.fromisoformat(uploaded_at)
        elif uploaded_at is None:
            uploaded_at = datetime.now(UTC)

        return cls(
            url=data["url"],
            filename=data["filename"],
            size=int(data.get("size", 0)),
            uploaded_at=uploaded_at,
            mime_type=data.get("type", data.get("mime_type", "")),
        )
