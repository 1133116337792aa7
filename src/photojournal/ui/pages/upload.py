"""Upload page for the photojournal application."""

from typing import Any

import streamlit as st
import structlog

from photojournal.config import UPLOAD_PAGE_MAX_FILES, get_max_upload_bytes
from photojournal.models.upload import BatchReport, UploadCandidate, UploadState
from photojournal.ui.components.common import format_file_size, navigate_to, render_info_card
from photojournal.ui.handlers.auth import get_current_principal, require_authentication
from photojournal.ui.handlers.gallery import get_session_gallery_store
from photojournal.ui.handlers.upload import UploadOrchestrator, clear_upload_session_state, get_image_gateway

logger = structlog.get_logger()

ACCEPTED_TYPES = ["jpg", "jpeg", "png", "webp", "svg"]


def _render_file_uploader(max_size: int) -> list[Any]:
    st.markdown("#### Select photos to upload")
    uploaded = st.file_uploader(
        "Drag and drop photos here, or click to browse",
        type=ACCEPTED_TYPES,
        accept_multiple_files=True,
        help=f"JPEG, PNG, WebP or SVG. Up to {format_file_size(max_size)} per file, {UPLOAD_PAGE_MAX_FILES} files.",
        key="photo_uploader",
    )
    return list(uploaded or [])


def render_upload_results(report: BatchReport) -> None:
    """Show the per-file outcome of the last batch."""
    if report.state == UploadState.COMPLETED:
        st.success(f"✅ Uploaded {len(report.succeeded)} of {report.total} file(s)")
    elif report.outcomes:
        st.warning(f"⚠️ Uploaded {len(report.succeeded)} of {report.total} file(s). {report.error_message}")
    else:
        st.error(f"❌ {report.error_message}")

    for outcome in report.outcomes:
        if outcome.succeeded:
            st.markdown(f"✅ **{outcome.filename}** · {format_file_size(outcome.stored_object.size)}")
        else:
            st.markdown(f"❌ **{outcome.filename}** · {outcome.error.user_message}")


def render_upload_page() -> None:
    """Render the uploader, run the batch and report each file."""
    if not require_authentication():
        return

    principal = get_current_principal()
    gateway = get_image_gateway()
    store = get_session_gallery_store(gateway, principal)
    max_size = get_max_upload_bytes()

    st.markdown("### 📤 Upload photos")
    render_info_card(
        "Supported formats",
        f"JPEG, PNG, WebP and SVG images up to {format_file_size(max_size)} each.",
        "📋",
    )

    uploaded_files = _render_file_uploader(max_size)
    if uploaded_files:
        st.caption(f"{len(uploaded_files)} file(s) selected")

    upload_disabled = not uploaded_files or st.session_state.get("upload_in_progress", False)
    if st.button("🚀 Upload", type="primary", use_container_width=True, disabled=upload_disabled):
        st.session_state.upload_in_progress = True
        progress_bar = st.progress(0, text="Uploading...")

        def on_progress(progress: float, completed: int, total: int) -> None:
            st.session_state.upload_progress = progress
            progress_bar.progress(int(progress), text=f"Uploaded {completed} of {total}")

        orchestrator = UploadOrchestrator(
            gateway,
            max_files=UPLOAD_PAGE_MAX_FILES,
            on_progress=on_progress,
            on_complete=store.handle_upload_report,
        )
        candidates = [UploadCandidate.from_uploaded_file(uploaded) for uploaded in uploaded_files]
        try:
            report = orchestrator.run(candidates, principal)
        finally:
            # Still recorded when a rerun interrupts the progress bar
            st.session_state.upload_in_progress = False
            st.session_state.upload_report = orchestrator.last_report

        logger.info("upload_page_batch_finished", state=report.state.value, total=report.total)

    report = st.session_state.get("upload_report")
    if report is not None:
        render_upload_results(report)

        col1, col2 = st.columns(2)
        with col1:
            if st.button("🖼️ View gallery", use_container_width=True):
                clear_upload_session_state(st.session_state)
                navigate_to("gallery")
        with col2:
            if st.button("Clear results", use_container_width=True):
                clear_upload_session_state(st.session_state)
                st.rerun()
