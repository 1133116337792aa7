"""
Main Streamlit application for photojournal.

This is the entry point for the photo journal web application.
"""

import streamlit as st

from photojournal.config import get_debug_mode
from photojournal.error_handling import get_error_handler
from photojournal.logging_config import configure_structured_logging, get_logger
from photojournal.ui.components.common import (
    navigate_to,
    render_error_message,
    render_footer,
    render_header,
    render_sidebar,
)
from photojournal.ui.handlers.auth import authenticate_user
from photojournal.ui.handlers.upload import clear_upload_session_state
from photojournal.ui.pages.gallery import render_gallery_page
from photojournal.ui.pages.home import render_home_page
from photojournal.ui.pages.search import render_search_page
from photojournal.ui.pages.upload import render_upload_page

configure_structured_logging()
logger = get_logger(__name__)

PAGE_RENDERERS = {
    "home": render_home_page,
    "upload": render_upload_page,
    "gallery": render_gallery_page,
    "search": render_search_page,
}


def initialize_session_state() -> None:
    """Initialize session state variables."""
    defaults = {
        "authenticated": False,
        "principal": None,
        "user_id": None,
        "user_email": None,
        "auth_error": None,
        "current_page": "home",
        "previous_page": None,
        "upload_in_progress": False,
    }
    for key, value in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = value


def render_main_content() -> None:
    """Render the main content area based on current page."""
    current_page = st.session_state.current_page

    # Upload results belong to the page they were produced on
    if st.session_state.previous_page == "upload" and current_page != "upload":
        clear_upload_session_state(st.session_state)
    st.session_state.previous_page = current_page

    renderer = PAGE_RENDERERS.get(current_page)
    if renderer is None:
        render_error_message("Page not found", f"Page '{current_page}' does not exist.")
        if st.button("🏠 Back to home", use_container_width=True, type="primary"):
            navigate_to("home")
        return

    renderer()


def main() -> None:
    """Main application entry point."""
    st.set_page_config(
        page_title="photojournal",
        page_icon="📸",
        layout="wide",
        initial_sidebar_state="expanded",
        menu_items={
            "Get Help": None,
            "Report a bug": None,
            "About": "photojournal - your personal photo journal",
        },
    )

    initialize_session_state()

    try:
        authenticate_user()

        logger.info(
            "session_initialized",
            authenticated=st.session_state.authenticated,
            current_page=st.session_state.current_page,
            user_id=st.session_state.user_id,
        )

        render_header()
        render_sidebar()
        with st.container():
            render_main_content()
        render_footer()

        if get_debug_mode():
            with st.expander("Debug Info"):
                st.write("Session State:", st.session_state)

    except Exception as e:
        error_info = get_error_handler().handle_error(e, {"operation": "main_application"})
        render_error_message("Application error", error_info.user_message, error_info.message)

        if st.button("🔄 Reload", type="primary"):
            st.rerun()


if __name__ == "__main__":
    main()
