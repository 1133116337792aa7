"""Authentication service for photojournal.

Identity comes from Google Cloud IAP: every request through the proxy carries a
signed ``X-Goog-IAP-JWT-Assertion`` header that is verified here before an
AuthenticatedPrincipal is handed to the storage gateway. Development mode trusts
the user id supplied by the client instead.
"""

import html
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import google.auth.transport.requests
from google.auth import exceptions as google_auth_exceptions
from google.oauth2 import id_token

from ..config import get_iap_audience
from ..error_handling import AuthenticationError, AuthorizationError
from ..logging_config import get_logger, log_security_event, log_user_action

logger = get_logger(__name__)

IAP_CERTS_URL = "https://www.gstatic.com/iap/verify/public_key"
IAP_ISSUER = "https://cloud.google.com/iap"


@dataclass(frozen=True)
class AuthenticatedPrincipal:
    """A verified identity carried through every storage gateway call."""

    user_id: str
    email: str | None = None
    display_name: str | None = None
    photo_url: str | None = None
    token: str | None = field(default=None, repr=False, compare=False)

    @property
    def storage_prefix(self) -> str:
        """Key prefix of every object this principal owns."""
        return f"{self.user_id}/"

    def owns(self, key: str) -> bool:
        """Check that a storage key lies inside this principal's prefix."""
        return bool(self.user_id) and key.startswith(self.storage_prefix)

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "email": self.email,
            "display_name": self.display_name,
            "photo_url": self.photo_url,
        }


def validate_owner_id(user_id: str | None) -> str:
    """
    Return a usable owner id or raise.

    Raises:
        AuthenticationError: If the id is empty or would break prefix scoping
    """
    if not user_id or not user_id.strip():
        raise AuthenticationError("User ID is required", code="unauthenticated")
    if "/" in user_id:
        raise AuthenticationError(
            f"Invalid user identifier '{user_id}'",
            code="invalid_user_id",
            details={"user_id": user_id},
        )
    return user_id.strip()


def _sanitize_profile_field(value: Any) -> str | None:
    """HTML-escape profile fields taken from the identity provider."""
    if value is None:
        return None
    text = str(value).strip()
    return html.escape(text) if text else None


def _header(headers: Mapping[str, str], name: str) -> str | None:
    value = headers.get(name)
    if value is not None:
        return value
    lowered = name.lower()
    for key, candidate in headers.items():
        if key.lower() == lowered:
            return candidate
    return None


class CloudIAPAuthService:
    """Service turning request headers into an AuthenticatedPrincipal."""

    IAP_HEADER_NAME = "X-Goog-IAP-JWT-Assertion"

    def __init__(
        self,
        development_mode: bool | None = None,
        audience: str | None = None,
        http_request: Any = None,
    ) -> None:
        self._development_mode = self._is_development_mode() if development_mode is None else development_mode
        self._audience = audience if audience is not None else get_iap_audience()
        self._http_request = http_request

        if self._development_mode:
            logger.info("development_auth_mode_enabled", message="Client-supplied user ids are trusted")
        elif not self._audience:
            logger.warning("iap_audience_not_configured", message="IAP tokens are verified without an audience")

    @property
    def development_mode(self) -> bool:
        return self._development_mode

    def _is_development_mode(self) -> bool:
        environment = os.getenv("ENVIRONMENT", "development").lower().strip()
        return environment in ["development", "dev", "local", "test"]

    def _get_http_request(self) -> Any:
        if self._http_request is None:
            self._http_request = google.auth.transport.requests.Request()
        return self._http_request

    def get_development_defaults(self) -> dict[str, str]:
        """Default development identity, used to prefill the dev login form."""
        return {
            "user_id": os.getenv("DEV_USER_ID", "dev-user-123"),
            "email": os.getenv("DEV_USER_EMAIL", "dev@example.com"),
            "display_name": os.getenv("DEV_USER_NAME", "Development User"),
        }

    def development_principal(
        self, user_id: str, email: str | None = None, display_name: str | None = None
    ) -> AuthenticatedPrincipal:
        """Build a principal from a client-supplied id (development only)."""
        owner_id = validate_owner_id(user_id)
        return AuthenticatedPrincipal(
            user_id=owner_id,
            email=_sanitize_profile_field(email),
            display_name=_sanitize_profile_field(display_name),
        )

    def verify_iap_token(self, token: str) -> AuthenticatedPrincipal:
        """
        Verify a Cloud IAP signed header and extract the principal.

        Args:
            token: The raw JWT from the IAP header

        Returns:
            AuthenticatedPrincipal: The verified identity

        Raises:
            AuthenticationError: If the signature, issuer, audience or claims are invalid
        """
        try:
            claims = id_token.verify_token(
                token,
                self._get_http_request(),
                audience=self._audience,
                certs_url=IAP_CERTS_URL,
            )
        except (ValueError, google_auth_exceptions.GoogleAuthError) as e:
            raise AuthenticationError(
                f"IAP token verification failed: {e}",
                code="invalid_token",
                original_exception=e,
            ) from e

        if claims.get("iss") != IAP_ISSUER:
            raise AuthenticationError(
                f"Unexpected token issuer: {claims.get('iss')}",
                code="invalid_token",
                details={"issuer": claims.get("iss")},
            )

        owner_id = validate_owner_id(claims.get("sub"))
        return AuthenticatedPrincipal(
            user_id=owner_id,
            email=_sanitize_profile_field(claims.get("email")),
            display_name=_sanitize_profile_field(claims.get("name")),
            photo_url=_sanitize_profile_field(claims.get("picture")),
            token=token,
        )

    def authenticate_request(
        self, headers: Mapping[str, str], claimed_user_id: str | None = None
    ) -> AuthenticatedPrincipal:
        """
        Resolve the principal of one request.

        Args:
            headers: Request headers, possibly carrying the IAP assertion
            claimed_user_id: The ``userId`` the client sent, if any

        Returns:
            AuthenticatedPrincipal: The caller's identity

        Raises:
            AuthenticationError: If no identity can be established
            AuthorizationError: If the claimed id disagrees with the verified one
        """
        if self._development_mode:
            if not claimed_user_id:
                raise AuthenticationError(
                    "User ID is required",
                    code="unauthenticated",
                    user_message="User ID is required",
                )
            principal = self.development_principal(claimed_user_id)
            log_user_action(principal.user_id, "development_authentication")
            return principal

        token = _header(headers, self.IAP_HEADER_NAME)
        if not token:
            raise AuthenticationError(
                "Missing IAP assertion header",
                code="unauthenticated",
                user_message="User ID is required",
                details={"headers_present": sorted(headers.keys())},
            )

        principal = self.verify_iap_token(token)
        if claimed_user_id and claimed_user_id != principal.user_id:
            log_security_event("claimed_user_mismatch", user_id=principal.user_id, claimed_user_id=claimed_user_id)
            raise AuthorizationError(
                "Claimed user id does not match the verified identity",
                code="user_mismatch",
                details={"user_id": principal.user_id, "claimed_user_id": claimed_user_id},
            )

        log_user_action(principal.user_id, "authentication_success", email=principal.email)
        return principal


_auth_service: CloudIAPAuthService | None = None


def get_auth_service() -> CloudIAPAuthService:
    """Get the global authentication service instance."""
    global _auth_service
    if _auth_service is None:
        _auth_service = CloudIAPAuthService()
    return _auth_service


def reset_auth_service() -> None:
    """Drop the global instance so the next call re-reads configuration."""
    global _auth_service
    _auth_service = None
