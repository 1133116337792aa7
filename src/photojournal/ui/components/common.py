"""Reusable UI components for the photojournal application."""

import streamlit as st
import structlog

from photojournal import __version__

logger = structlog.get_logger()

PAGES = {"🏠 Home": "home", "📤 Upload": "upload", "🖼️ Gallery": "gallery", "🔎 Search": "search"}


def render_empty_state(
    title: str,
    description: str,
    icon: str = "📭",
    action_text: str | None = None,
    action_page: str | None = None,
) -> None:
    """
    Render an empty state message with optional action button.

    Args:
        title: Main title for the empty state
        description: Description text
        icon: Emoji icon to display
        action_text: Text for action button (optional)
        action_page: Page to navigate to when action button is clicked (optional)
    """
    col1, col2, col3 = st.columns([1, 2, 1])

    with col2:
        st.markdown(
            f"""
        <div style='text-align: center; padding: 2rem 0;'>
            <div style='font-size: 4rem; margin-bottom: 1rem;'>{icon}</div>
            <h3 style='color: #666; margin-bottom: 1rem;'>{title}</h3>
            <p style='color: #888; margin-bottom: 2rem;'>{description}</p>
        </div>
        """,
            unsafe_allow_html=True,
        )

        if action_text and action_page:
            if st.button(action_text, use_container_width=True, type="primary"):
                st.session_state.current_page = action_page
                st.rerun()


def render_error_message(error_type: str, message: str, details: str | None = None) -> None:
    """
    Render a standardized error message.

    Args:
        error_type: Type of error (e.g., "Authentication required", "Upload failed")
        message: Main error message
        details: Additional error details (optional)
    """
    st.error(f"**{error_type}:** {message}")

    if details:
        with st.expander("🔍 Details"):
            st.code(details)


def render_info_card(title: str, content: str, icon: str = "ℹ️") -> None:
    st.markdown(
        f"""
    <div style='
        border: 1px solid #e0e0e0;
        border-radius: 8px;
        padding: 1rem;
        margin: 1rem 0;
        background-color: #f8f9fa;
    '>
        <h4 style='margin: 0 0 0.5rem 0; color: #333;'>
            {icon} {title}
        </h4>
        <p style='margin: 0; color: #666;'>
            {content}
        </p>
    </div>
    """,
        unsafe_allow_html=True,
    )


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in human-readable format.

    Args:
        size_bytes: File size in bytes

    Returns:
        str: Formatted file size (e.g., "1.5 MB")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    else:
        return f"{size_bytes / (1024 * 1024):.1f} MB"


def navigate_to(page: str) -> None:
    logger.info("page_navigation", from_page=st.session_state.get("current_page"), to_page=page)
    st.session_state.current_page = page
    st.rerun()


def render_header() -> None:
    st.markdown("# 📸 photojournal")
    st.divider()


def render_sidebar() -> None:
    """Render the navigation sidebar and the signed-in user's profile."""
    from photojournal.ui.handlers.auth import get_current_principal, handle_logout

    with st.sidebar:
        st.markdown("### 📸 photojournal")
        st.divider()

        st.subheader("Navigation")
        current_page = st.session_state.current_page
        for page_name, page_key in PAGES.items():
            if st.button(
                page_name,
                key=f"nav_{page_key}",
                use_container_width=True,
                type="primary" if page_key == current_page else "secondary",
            ):
                navigate_to(page_key)

        st.divider()

        principal = get_current_principal()
        if principal is not None:
            if principal.photo_url:
                st.image(principal.photo_url, width=48)
            st.markdown(f"**{principal.display_name or principal.user_id}**")
            if principal.email:
                st.markdown(f"📧 {principal.email}")
            if st.button("Sign out", key="sign_out", use_container_width=True):
                handle_logout()
        else:
            st.subheader("🔐 Sign in")
            st.info("Sign in to access your photos")
            if st.session_state.get("auth_error"):
                st.error(f"**Error:** {st.session_state.auth_error}")


def render_footer() -> None:
    st.divider()

    st.markdown(
        f"""
    <div style='text-align: center; color: #666; font-size: 0.8em;'>
        <strong>photojournal v{__version__}</strong>
    </div>
    """,
        unsafe_allow_html=True,
    )
