"""Session-level handlers behind the Streamlit pages."""
