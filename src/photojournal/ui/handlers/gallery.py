"""Gallery handlers for photojournal.

The GalleryStore is a session-local reflection of the gateway's listing for the
active owner. It never patches itself incrementally: after every upload or
delete it re-lists and replaces its whole collection.
"""

import threading
from datetime import UTC, datetime, timezone
from typing import Any

import streamlit as st
import structlog

from photojournal.error_handling import AuthenticationError, AuthorizationError, PhotoJournalError
from photojournal.logging_config import log_security_event
from photojournal.models.stored_object import StoredObject
from photojournal.models.upload import BatchReport
from photojournal.services.auth import AuthenticatedPrincipal
from photojournal.ui.handlers.upload import ImageGateway

logger = structlog.get_logger(__name__)

GALLERY_SESSION_KEY = "gallery_store"


class GalleryStore:
    """Holds the current owner's images and reconciles them with the gateway."""

    def __init__(
        self,
        gateway: ImageGateway,
        principal: AuthenticatedPrincipal | None = None,
        newest_first: bool = True,
    ) -> None:
        self.gateway = gateway
        self.newest_first = newest_first
        self._principal = principal
        self._images: list[StoredObject] = []
        self._generation = 0
        self._lock = threading.RLock()
        self.last_error: str | None = None
        self.is_loading = False

    @property
    def principal(self) -> AuthenticatedPrincipal | None:
        return self._principal

    @property
    def owner_id(self) -> str | None:
        return self._principal.user_id if self._principal else None

    @property
    def images(self) -> list[StoredObject]:
        with self._lock:
            return list(self._images)

    @property
    def count(self) -> int:
        with self._lock:
            return len(self._images)

    def _clear(self) -> None:
        self._images = []

    def set_principal(self, principal: AuthenticatedPrincipal | None) -> bool:
        """
        Switch the active owner.

        Local state is cleared before anything else so the previous owner's
        images are never shown; listings still in flight for the old owner are
        discarded when they resolve.

        Returns:
            bool: True if the owner changed
        """
        with self._lock:
            previous = self.owner_id
            new_owner = principal.user_id if principal else None
            self._principal = principal
            if previous == new_owner:
                return False

            self._generation += 1
            self._clear()
            self.last_error = None

        logger.info("gallery_owner_switched", previous_owner=previous, new_owner=new_owner)
        return True

    def refresh(self) -> list[StoredObject]:
        """
        Replace the local collection with a fresh listing for the active owner.

        Returns:
            list: The images now held, newest first
        """
        with self._lock:
            principal = self._principal
            generation = self._generation
            if principal is None:
                self._clear()
                return []
            self.is_loading = True

        try:
            listed = self.gateway.list(principal)
            error: PhotoJournalError | None = None
        except PhotoJournalError as e:
            listed = []
            error = e
        except BaseException:
            with self._lock:
                self.is_loading = False
            raise

        with self._lock:
            self.is_loading = False
            if generation != self._generation:
                logger.info("gallery_stale_listing_discarded", owner_id=principal.user_id)
                return list(self._images)

            if error is not None:
                self.last_error = error.user_message
                self._clear()
                return []

            if self.newest_first:
                listed = sorted(listed, key=lambda obj: obj.uploaded_at, reverse=True)
            self._images = listed
            self.last_error = None
            logger.debug("gallery_reconciled", owner_id=principal.user_id, count=len(self._images))
            return list(self._images)

    def find(self, url: str) -> StoredObject | None:
        with self._lock:
            return next((image for image in self._images if image.url == url), None)

    def delete(self, url: str) -> bool:
        """
        Delete one image owned by the active principal.

        The owner prefix is checked locally before calling the gateway (which
        checks again); on success the item is dropped immediately and then the
        full collection is reconciled.

        Returns:
            bool: True if the image was deleted
        """
        principal = self._principal
        if principal is None:
            self.last_error = AuthenticationError(
                "User not authenticated to delete images",
                user_message="User not authenticated to delete images.",
            ).user_message
            return False

        target = self.find(url)
        if target is not None and not principal.owns(target.filename):
            log_security_event("gallery_delete_outside_prefix", user_id=principal.user_id, url=url)
            self.last_error = AuthorizationError(
                f"Image '{url}' does not belong to '{principal.user_id}'",
                user_message="Unauthorized: Cannot delete images not belonging to this account.",
                details={"url": url},
            ).user_message
            return False

        try:
            self.gateway.delete(url, principal)
        except PhotoJournalError as e:
            self.last_error = e.user_message
            return False

        with self._lock:
            self._images = [image for image in self._images if image.url != url]
        self.refresh()
        return True

    def handle_upload_report(self, report: BatchReport) -> None:
        """Reconcile after an upload batch that created objects."""
        if report.succeeded:
            self.refresh()


def get_session_gallery_store(gateway: ImageGateway, principal: AuthenticatedPrincipal | None) -> GalleryStore:
    """
    Get the gallery store of the current Streamlit session, switching its owner if needed.

    Args:
        gateway: Gateway used when a new store has to be created
        principal: The signed-in principal, or None after sign-out
    """
    store = st.session_state.get(GALLERY_SESSION_KEY)
    if store is None:
        store = GalleryStore(gateway)
        st.session_state[GALLERY_SESSION_KEY] = store

    if store.set_principal(principal):
        store.refresh()
    return store


def format_uploaded_at(uploaded_at: datetime, tz: timezone | None = None) -> str:
    """
    Format an upload timestamp for display.

    Naive timestamps are treated as UTC; ``tz`` defaults to UTC.
    """
    if uploaded_at.tzinfo is None:
        uploaded_at = uploaded_at.replace(tzinfo=UTC)
    return uploaded_at.astimezone(tz or UTC).strftime("%Y-%m-%d %H:%M")


def summarize_gallery(images: list[StoredObject]) -> dict[str, Any]:
    """Totals shown above the gallery grid."""
    total_size = sum(image.size for image in images)
    latest = max((image.uploaded_at for image in images), default=None)
    return {
        "count": len(images),
        "total_size": total_size,
        "latest_upload": latest,
    }
