"""Configuration for UI unit tests."""

from unittest.mock import MagicMock, patch

import pytest


@pytest.fixture
def mock_session_state():
    """Replace Streamlit's session state with a plain dict for handler modules."""
    session_state: dict = {}
    mock_st = MagicMock()
    mock_st.session_state = session_state
    with patch("photojournal.ui.handlers.gallery.st", mock_st):
        yield session_state
