"""
Unit tests for the Cloud IAP authentication service.
"""

from unittest.mock import MagicMock, patch

import pytest
from google.auth import exceptions as google_auth_exceptions

from photojournal.error_handling import AuthenticationError, AuthorizationError
from photojournal.services.auth import (
    IAP_CERTS_URL,
    AuthenticatedPrincipal,
    CloudIAPAuthService,
    get_auth_service,
    validate_owner_id,
)
from tests.conftest import TestDataFactory

AUDIENCE = "/projects/123456789/global/backendServices/test-service"


class TestAuthenticatedPrincipal:
    def test_storage_prefix_and_owns(self):
        principal = AuthenticatedPrincipal(user_id="alice")

        assert principal.storage_prefix == "alice/"
        assert principal.owns("alice/1-a.jpg")
        assert not principal.owns("alicia/1-a.jpg")
        assert not principal.owns("bob/1-a.jpg")

    def test_token_is_hidden(self):
        principal = AuthenticatedPrincipal(user_id="alice", token="secret-token")

        assert "secret-token" not in repr(principal)
        assert "token" not in principal.to_dict()
        assert principal == AuthenticatedPrincipal(user_id="alice")


class TestValidateOwnerId:
    @pytest.mark.parametrize("user_id", [None, "", "   "])
    def test_missing(self, user_id):
        with pytest.raises(AuthenticationError) as exc_info:
            validate_owner_id(user_id)

        assert exc_info.value.code == "unauthenticated"

    def test_slash_rejected(self):
        with pytest.raises(AuthenticationError) as exc_info:
            validate_owner_id("alice/bob")

        assert exc_info.value.code == "invalid_user_id"

    def test_valid_id_is_stripped(self):
        assert validate_owner_id(" accounts.google.com:123 ") == "accounts.google.com:123"


class TestDevelopmentMode:
    """Development mode trusts the client-supplied user id."""

    def setup_method(self):
        self.auth_service = CloudIAPAuthService(development_mode=True)

    def test_environment_selects_development_mode(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "production")
        assert CloudIAPAuthService().development_mode is False

        monkeypatch.setenv("ENVIRONMENT", "local")
        assert CloudIAPAuthService().development_mode is True

    def test_claimed_user_id_is_trusted(self):
        principal = self.auth_service.authenticate_request({}, "u1")

        assert principal.user_id == "u1"
        assert principal.token is None

    def test_missing_user_id(self):
        with pytest.raises(AuthenticationError) as exc_info:
            self.auth_service.authenticate_request({}, None)

        assert exc_info.value.user_message == "User ID is required"

    def test_development_principal_escapes_profile(self):
        principal = self.auth_service.development_principal("u1", email="a@example.com", display_name="<b>Al</b>")

        assert principal.display_name == "&lt;b&gt;Al&lt;/b&gt;"

    def test_development_defaults(self, monkeypatch):
        monkeypatch.setenv("DEV_USER_ID", "dev-42")

        assert self.auth_service.get_development_defaults()["user_id"] == "dev-42"


class TestIAPVerification:
    """Production mode verifies the signed IAP header."""

    def setup_method(self):
        self.http_request = MagicMock()
        self.auth_service = CloudIAPAuthService(
            development_mode=False,
            audience=AUDIENCE,
            http_request=self.http_request,
        )

    @patch("photojournal.services.auth.id_token.verify_token")
    def test_valid_token(self, mock_verify):
        mock_verify.return_value = TestDataFactory.create_iap_claims(picture="https://example.com/me.png")
        headers = TestDataFactory.create_iap_headers("signed-jwt")

        principal = self.auth_service.authenticate_request(headers)

        mock_verify.assert_called_once_with(
            "signed-jwt", self.http_request, audience=AUDIENCE, certs_url=IAP_CERTS_URL
        )
        assert principal.user_id == "accounts.google.com:test-user-123"
        assert principal.email == "test@example.com"
        assert principal.photo_url == "https://example.com/me.png"
        assert principal.token == "signed-jwt"

    @patch("photojournal.services.auth.id_token.verify_token")
    def test_header_lookup_is_case_insensitive(self, mock_verify):
        mock_verify.return_value = TestDataFactory.create_iap_claims()

        principal = self.auth_service.authenticate_request({"x-goog-iap-jwt-assertion": "signed-jwt"})

        assert principal.token == "signed-jwt"

    def test_missing_header(self):
        with pytest.raises(AuthenticationError) as exc_info:
            self.auth_service.authenticate_request({}, "u1")

        assert exc_info.value.code == "unauthenticated"

    @pytest.mark.parametrize(
        "error",
        [ValueError("Token expired"), google_auth_exceptions.TransportError("certs unavailable")],
    )
    @patch("photojournal.services.auth.id_token.verify_token")
    def test_invalid_token(self, mock_verify, error):
        mock_verify.side_effect = error

        with pytest.raises(AuthenticationError) as exc_info:
            self.auth_service.authenticate_request(TestDataFactory.create_iap_headers())

        assert exc_info.value.code == "invalid_token"

    @patch("photojournal.services.auth.id_token.verify_token")
    def test_wrong_issuer(self, mock_verify):
        mock_verify.return_value = TestDataFactory.create_iap_claims(iss="https://accounts.google.com")

        with pytest.raises(AuthenticationError) as exc_info:
            self.auth_service.authenticate_request(TestDataFactory.create_iap_headers())

        assert exc_info.value.code == "invalid_token"

    @patch("photojournal.services.auth.id_token.verify_token")
    def test_claimed_user_mismatch(self, mock_verify):
        mock_verify.return_value = TestDataFactory.create_iap_claims(user_id="u1")

        with pytest.raises(AuthorizationError) as exc_info:
            self.auth_service.authenticate_request(TestDataFactory.create_iap_headers(), "u2")

        assert exc_info.value.code == "user_mismatch"

    @patch("photojournal.services.auth.id_token.verify_token")
    def test_claimed_user_match(self, mock_verify):
        mock_verify.return_value = TestDataFactory.create_iap_claims(user_id="u1")

        principal = self.auth_service.authenticate_request(TestDataFactory.create_iap_headers(), "u1")

        assert principal.user_id == "u1"


def test_global_auth_service_is_shared():
    assert get_auth_service() is get_auth_service()
    assert get_auth_service().development_mode is True
