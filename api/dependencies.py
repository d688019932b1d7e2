"""Dependency injection for the API routers."""

from typing import Optional

from fastapi import Depends, Header, Request

from api.container import ServiceContainer
from domain.user import VerifiedIdentity
from services.identity_service import extract_bearer_token


def get_container(request: Request) -> ServiceContainer:
    """
    Get the service container built at start-up.

    Returns:
        ServiceContainer stored on app.state
    """
    return request.app.state.container


def get_identity(
    authorization: Optional[str] = Header(default=None),
    container: ServiceContainer = Depends(get_container),
) -> VerifiedIdentity:
    """Verify the bearer token before the endpoint body runs."""
    token = extract_bearer_token(authorization)
    return container.identity.verify(token)
