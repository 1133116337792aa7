"""Authentication handlers for the Streamlit shell."""

import streamlit as st
import structlog

from photojournal.error_handling import PhotoJournalError
from photojournal.services.auth import AuthenticatedPrincipal, CloudIAPAuthService, get_auth_service
from photojournal.ui.components.common import render_error_message
from photojournal.ui.handlers.gallery import GALLERY_SESSION_KEY
from photojournal.ui.handlers.upload import clear_upload_session_state

logger = structlog.get_logger()

PRINCIPAL_SESSION_KEY = "principal"


def get_current_principal() -> AuthenticatedPrincipal | None:
    return st.session_state.get(PRINCIPAL_SESSION_KEY)


def _store_principal(principal: AuthenticatedPrincipal) -> None:
    st.session_state[PRINCIPAL_SESSION_KEY] = principal
    st.session_state.authenticated = True
    st.session_state.user_id = principal.user_id
    st.session_state.user_email = principal.email
    st.session_state.auth_error = None


def _clear_principal(auth_error: str | None = None) -> None:
    st.session_state[PRINCIPAL_SESSION_KEY] = None
    st.session_state.authenticated = False
    st.session_state.user_id = None
    st.session_state.user_email = None
    st.session_state.auth_error = auth_error


def _request_headers() -> dict[str, str]:
    if hasattr(st, "context") and hasattr(st.context, "headers"):
        return dict(st.context.headers)
    return {}


def render_dev_login(auth_service: CloudIAPAuthService) -> AuthenticatedPrincipal | None:
    """
    Render the development login form in the sidebar.

    Submitting the form with another user id switches identities; the gallery
    store notices the owner change on the next render.
    """
    current = get_current_principal()

    st.sidebar.markdown("---")
    st.sidebar.markdown("### 🔧 Development mode")
    if current is not None:
        st.sidebar.success(f"Signed in as {current.user_id}")

    defaults = auth_service.get_development_defaults()
    with st.sidebar.form("dev_auth_form"):
        user_id = st.text_input("User ID", value=current.user_id if current else defaults["user_id"])
        email = st.text_input("Email", value=(current.email if current else None) or defaults["email"])
        display_name = st.text_input(
            "Display name", value=(current.display_name if current else None) or defaults["display_name"]
        )
        submitted = st.form_submit_button("Sign in" if current is None else "Switch user")

    if submitted:
        try:
            principal = auth_service.development_principal(user_id, email=email, display_name=display_name)
        except PhotoJournalError as e:
            st.sidebar.error(e.user_message)
            return current

        _store_principal(principal)
        logger.info(
            "development_login",
            user_id=principal.user_id,
            previous_user_id=current.user_id if current else None,
        )
        st.rerun()

    return current


def authenticate_user() -> bool:
    """
    Authenticate the session using the Cloud IAP header, or the development login.

    Returns:
        bool: True if a principal is available
    """
    auth_service = get_auth_service()

    if auth_service.development_mode:
        return render_dev_login(auth_service) is not None

    headers = _request_headers()
    token = headers.get(auth_service.IAP_HEADER_NAME) or headers.get(auth_service.IAP_HEADER_NAME.lower())
    current = get_current_principal()
    if current is not None and token and current.token == token:
        return True

    try:
        principal = auth_service.authenticate_request(headers)
    except PhotoJournalError as e:
        _clear_principal(e.user_message)
        logger.warning("authentication_failed", code=e.code)
        return False

    _store_principal(principal)
    return True


def handle_logout() -> None:
    """Sign out and drop every piece of per-owner session state."""
    user_id = st.session_state.get("user_id")
    _clear_principal()
    clear_upload_session_state(st.session_state)

    gallery_store = st.session_state.get(GALLERY_SESSION_KEY)
    if gallery_store is not None:
        gallery_store.set_principal(None)

    st.session_state.current_page = "home"
    logger.info("user_logout", user_id=user_id)
    st.rerun()


def require_authentication() -> bool:
    """
    Require authentication for protected pages.

    Returns:
        bool: True if authenticated, False otherwise
    """
    if not st.session_state.get("authenticated"):
        render_error_message(
            error_type="Authentication required",
            message="Please sign in to access this page.",
            details=st.session_state.get("auth_error"),
        )

        if st.button("🏠 Back to home", use_container_width=True):
            st.session_state.current_page = "home"
            st.rerun()

        return False

    return True
