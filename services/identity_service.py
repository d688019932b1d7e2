"""
Identity verification.

Exchanges a bearer token for a verified subject with the identity provider
(Supabase Auth) and answers role questions from the `users` profile table.
Signature checks are the provider's job; this module never inspects tokens.
"""

from __future__ import annotations

import logging
from typing import Optional

from supabase import Client  # type: ignore[import-not-found]

from domain.errors import Unauthorized
from domain.user import ADMIN_ROLE, VerifiedIdentity
from repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)

_BEARER_PREFIX = "Bearer "


def extract_bearer_token(authorization: Optional[str]) -> str:
    """
    Pull the token out of an `Authorization: Bearer <token>` header.

    Raises:
        Unauthorized: If the header is missing or not a bearer credential
    """
    if not authorization or not authorization.startswith(_BEARER_PREFIX):
        raise Unauthorized("Missing authorization token")

    token = authorization[len(_BEARER_PREFIX):].strip()
    if not token:
        raise Unauthorized("Missing authorization token")
    return token


class IdentityVerifier:
    def __init__(self, client: Client, users: UserRepository) -> None:
        self._client = client
        self._users = users

    def verify(self, token: str) -> VerifiedIdentity:
        """
        Verify a bearer token with the identity provider.

        A failure here is terminal for the request and is never retried.

        Raises:
            Unauthorized: If the provider rejects the token or cannot be reached
        """
        try:
            response = self._client.auth.get_user(token)
        except Exception as e:
            logger.warning("Token verification failed: %s", e)
            raise Unauthorized("Invalid or expired token") from e

        user = getattr(response, "user", None)
        if user is None or not getattr(user, "id", None):
            raise Unauthorized("Invalid or expired token")

        return VerifiedIdentity(subject_id=str(user.id), email=getattr(user, "email", None))

    def is_admin(self, subject_id: str) -> bool:
        """A subject without a profile row is not an admin."""
        return self._users.get_role(subject_id) == ADMIN_ROLE

    def delete_user(self, user_id: str) -> bool:
        """
        Delete the provider's account for `user_id`.

        Returns:
            False if the provider had no such user, True otherwise
        """
        try:
            self._client.auth.admin.delete_user(user_id)
        except Exception as e:
            if getattr(e, "status", None) == 404 or "not found" in str(e).lower():
                logger.info("Auth user %s already absent", user_id)
                return False
            raise
        return True


__all__ = ["IdentityVerifier", "extract_bearer_token"]
