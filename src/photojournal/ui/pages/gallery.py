"""Gallery page for the photojournal application."""

import streamlit as st
import structlog

from photojournal.models.stored_object import StoredObject
from photojournal.ui.components.common import format_file_size, render_empty_state, render_error_message
from photojournal.ui.handlers.auth import get_current_principal, require_authentication
from photojournal.ui.handlers.gallery import (
    GalleryStore,
    format_uploaded_at,
    get_session_gallery_store,
    summarize_gallery,
)
from photojournal.ui.handlers.upload import get_image_gateway

logger = structlog.get_logger(__name__)

GRID_COLUMNS = 3


def _displayable_url(image: StoredObject) -> str | None:
    return image.url if image.url.startswith(("http://", "https://")) else None


def render_gallery_header(store: GalleryStore) -> None:
    summary = summarize_gallery(store.images)
    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("Images", summary["count"])
    with col2:
        st.metric("Total size", format_file_size(summary["total_size"]))
    with col3:
        latest = summary["latest_upload"]
        st.metric("Latest upload", format_uploaded_at(latest) if latest else "-")


def render_image_card(store: GalleryStore, image: StoredObject, index: int) -> None:
    source = _displayable_url(image)
    if source:
        st.image(source, use_container_width=True)
    else:
        st.markdown("🖼️")

    st.caption(f"{format_file_size(image.size)} · {format_uploaded_at(image.uploaded_at)}")
    if st.button("🗑️ Delete", key=f"delete_{index}_{image.url}", use_container_width=True):
        if store.delete(image.url):
            st.session_state.gallery_notice = "Image deleted"
            st.rerun()
        else:
            st.error(store.last_error or "Failed to delete image")


def render_gallery_page() -> None:
    """Render the owner's images as a thumbnail grid, newest first."""
    if not require_authentication():
        return

    principal = get_current_principal()
    store = get_session_gallery_store(get_image_gateway(), principal)

    col1, col2 = st.columns([3, 1])
    with col1:
        st.markdown("### 🖼️ Your photo journal")
    with col2:
        if st.button("🔄 Refresh", use_container_width=True):
            store.refresh()

    notice = st.session_state.pop("gallery_notice", None)
    if notice:
        st.success(notice)

    if store.last_error:
        render_error_message("Gallery error", store.last_error)
        return

    images = store.images
    if not images:
        render_empty_state(
            title="No photos yet",
            description="Your journal is empty. Upload some photos to get started!",
            icon="📷",
            action_text="Upload photos",
            action_page="upload",
        )
        return

    render_gallery_header(store)
    st.divider()

    columns = st.columns(GRID_COLUMNS)
    for index, image in enumerate(images):
        with columns[index % GRID_COLUMNS]:
            render_image_card(store, image, index)
