"""
Health check page for the Streamlit application.
"""

from photojournal.health import render_health_page

render_health_page()
