"""FastAPI dependency helpers."""

from fastapi import Request

from photojournal.services.auth import AuthenticatedPrincipal, CloudIAPAuthService
from photojournal.services.storage import StorageGateway


def get_gateway(request: Request) -> StorageGateway:
    """Storage gateway attached to the application at startup."""
    return request.app.state.gateway


def get_auth_service(request: Request) -> CloudIAPAuthService:
    """Authentication service attached to the application at startup."""
    return request.app.state.auth_service


def resolve_principal(request: Request, claimed_user_id: str | None) -> AuthenticatedPrincipal:
    """
    Establish the caller's identity.

    Raises:
        AuthenticationError: No verifiable identity (401)
        AuthorizationError: ``userId`` disagrees with the verified identity (403)
    """
    return get_auth_service(request).authenticate_request(request.headers, claimed_user_id)
