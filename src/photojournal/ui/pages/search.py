"""Search page for the photojournal application.

Search is not wired to any index; the page only echoes the query.
"""

import streamlit as st

from photojournal.ui.components.common import render_empty_state
from photojournal.ui.handlers.auth import require_authentication


def render_search_page() -> None:
    if not require_authentication():
        return

    query = st.text_input("Search", value=st.session_state.get("search_query", ""))
    st.session_state.search_query = query

    if query:
        st.markdown(f"#### Results for “{query}”")
    render_empty_state(
        title="Search is coming soon",
        description="Searching your memories is not available yet.",
        icon="🔎",
        action_text="Browse gallery",
        action_page="gallery",
    )
