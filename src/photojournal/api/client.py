"""
HTTP client for the photojournal API.

``ApiClient`` exposes the same ``upload``/``list``/``delete`` contract as the
storage gateway, so the upload orchestrator and the gallery store can work
against a remote server. Error responses are mapped back onto the error
taxonomy; requests are never retried.
"""

from __future__ import annotations

from typing import Any

import requests

from photojournal.error_handling import (
    AuthenticationError,
    AuthorizationError,
    PhotoJournalError,
    UpstreamError,
    ValidationError,
)
from photojournal.logging_config import get_logger
from photojournal.models.stored_object import StoredObject
from photojournal.models.upload import UploadCandidate
from photojournal.services.auth import AuthenticatedPrincipal, CloudIAPAuthService

logger = get_logger(__name__)

DEFAULT_API_URL = "http://localhost:8000"


class ApiClient:
    """Client for the photojournal HTTP API."""

    def __init__(
        self,
        base_url: str = DEFAULT_API_URL,
        session: requests.Session | None = None,
        timeout: float | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        self.timeout = timeout

    def _auth_headers(self, principal: AuthenticatedPrincipal | None) -> dict[str, str]:
        if principal is not None and principal.token:
            return {CloudIAPAuthService.IAP_HEADER_NAME: principal.token}
        return {}

    @staticmethod
    def _user_id(principal: AuthenticatedPrincipal | None) -> str | None:
        return principal.user_id if principal is not None else None

    def _error_for(self, response: requests.Response, fallback: str) -> PhotoJournalError:
        try:
            message = response.json().get("error") or fallback
        except ValueError:
            message = fallback

        details = {"status_code": response.status_code, "url": response.url}
        if response.status_code == 400:
            return ValidationError(message, code="rejected", user_message=message, details=details)
        if response.status_code == 401:
            return AuthenticationError(message, user_message=message, details=details)
        if response.status_code == 403:
            return AuthorizationError(message, user_message=message, details=details)
        return UpstreamError(f"API returned {response.status_code}: {message}", user_message=message, details=details)

    def _request(self, method: str, endpoint: str, fallback: str, **kwargs: Any) -> dict[str, Any]:
        """Make an HTTP request and return the decoded JSON body."""
        url = f"{self.base_url}{endpoint}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            raise UpstreamError(
                f"{method} {url} failed: {e}",
                user_message=fallback,
                details={"url": url},
                original_exception=e,
            ) from e

        if not response.ok:
            raise self._error_for(response, fallback)

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(
                f"{method} {url} returned a non-JSON body",
                user_message=fallback,
                details={"url": url, "status_code": response.status_code},
                original_exception=e,
            ) from e

    @staticmethod
    def _decode_images(payloads: Any, fallback: str) -> list[StoredObject]:
        """Build StoredObjects from response payloads; malformed payloads become UpstreamError."""
        try:
            return [StoredObject.from_dict(payload) for payload in payloads]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise UpstreamError(
                f"API returned a malformed image payload: {e!r}",
                user_message=fallback,
                original_exception=e,
            ) from e

    def upload(self, candidate: UploadCandidate, principal: AuthenticatedPrincipal | None) -> StoredObject:
        data = {}
        if self._user_id(principal):
            data["userId"] = self._user_id(principal)
        body = self._request(
            "POST",
            "/api/upload",
            "Upload failed. Please try again.",
            files={"file": (candidate.filename, candidate.data, candidate.content_type)},
            data=data,
            headers=self._auth_headers(principal),
        )
        (stored,) = self._decode_images([body], "Upload failed. Please try again.")
        logger.debug("api_client_uploaded", filename=candidate.filename, url=stored.url)
        return stored

    def list(self, principal: AuthenticatedPrincipal | None) -> list[StoredObject]:
        params = {"userId": self._user_id(principal)} if self._user_id(principal) else {}
        body = self._request(
            "GET",
            "/api/images",
            "Failed to fetch images",
            params=params,
            headers=self._auth_headers(principal),
        )
        images = body.get("images", []) if isinstance(body, dict) else None
        if not isinstance(images, list):
            raise UpstreamError("API listing has no images array", user_message="Failed to fetch images")
        return self._decode_images(images, "Failed to fetch images")

    def delete(self, url: str, principal: AuthenticatedPrincipal | None) -> None:
        params = {"url": url}
        if self._user_id(principal):
            params["userId"] = self._user_id(principal)
        self._request(
            "DELETE",
            "/api/images/delete",
            "Failed to delete image",
            params=params,
            headers=self._auth_headers(principal),
        )

    def health_check(self) -> dict[str, Any]:
        """Fetch ``GET /health``; an unhealthy server answers 503."""
        try:
            response = self.session.get(f"{self.base_url}/health", timeout=self.timeout)
            return response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            return {"status": "unhealthy", "message": str(e)}
