"""Home page for the photojournal application."""

import streamlit as st

from photojournal.ui.components.common import navigate_to, render_empty_state, render_info_card
from photojournal.ui.handlers.auth import get_current_principal
from photojournal.ui.handlers.gallery import get_session_gallery_store
from photojournal.ui.handlers.upload import get_image_gateway


def render_home_page() -> None:
    """Render the greeting, the image count and the search box."""
    principal = get_current_principal()
    if principal is None:
        render_empty_state(
            title="Sign in required",
            description="Sign in to start your photo journal.",
            icon="🔐",
        )
        render_info_card(
            "Getting started",
            "Upload photos to keep your memories in one place and browse them in your private gallery.",
            "🚀",
        )
        return

    store = get_session_gallery_store(get_image_gateway(), principal)

    st.markdown(f"### 👋 Welcome back, {principal.display_name or principal.user_id}")
    st.metric("Images in your journal", store.count)
    if store.last_error:
        st.warning(store.last_error)

    with st.form("home_search_form"):
        query = st.text_input("Search your memories", placeholder="e.g. beach, birthday, 2024")
        if st.form_submit_button("🔎 Search") and query.strip():
            st.session_state.search_query = query.strip()
            navigate_to("search")

    col1, col2 = st.columns(2)
    with col1:
        if st.button("📤 Upload new photos", use_container_width=True, type="primary"):
            navigate_to("upload")
    with col2:
        if st.button("🖼️ Browse gallery", use_container_width=True):
            navigate_to("gallery")
