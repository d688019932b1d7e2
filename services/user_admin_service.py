"""
User administration.

Deleting a user removes both the identity provider account and the profile
row. An account that is already gone from the provider still has its profile
row removed.
"""

from __future__ import annotations

import logging

from domain.errors import Forbidden, InvalidInput
from domain.user import VerifiedIdentity
from repositories.user_repository import UserRepository
from services.identity_service import IdentityVerifier

logger = logging.getLogger(__name__)


class UserAdminService:
    def __init__(self, identity: IdentityVerifier, users: UserRepository) -> None:
        self._identity = identity
        self._users = users

    def delete_user(self, caller: VerifiedIdentity, user_id: str) -> str:
        """
        Delete `user_id` on behalf of an admin.

        Returns:
            A human-readable outcome message

        Raises:
            Forbidden: If the caller is not an admin (nothing is deleted)
            InvalidInput: If user_id is empty
        """
        if not self._identity.is_admin(caller.subject_id):
            logger.warning("Non-admin %s attempted to delete user %s", caller.subject_id, user_id)
            raise Forbidden("Only admins can delete users")
        if not user_id:
            raise InvalidInput("userId is required")

        auth_deleted = self._identity.delete_user(user_id)
        self._users.delete_profile(user_id)

        logger.info("User %s deleted by admin %s", user_id, caller.subject_id)
        if not auth_deleted:
            return "User removed from database"
        return "User deleted successfully"


__all__ = ["UserAdminService"]
