"""
User profile repository.

Reads and writes rows of the `users` table. The row id is the identity
provider's subject id.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from supabase import Client  # type: ignore[import-not-found]

from domain.user import UserProfile
from repositories.client import execute

_USERS_TABLE: str = "users"


def _row_to_profile(row: Mapping[str, Any]) -> UserProfile:
    return UserProfile(
        user_id=str(row["id"]),
        email=row.get("email"),
        role=row.get("role"),
        stripe_connect_id=row.get("stripe_connect_id"),
        card_payments_enabled=bool(row.get("card_payments_enabled", False)),
    )


class UserRepository:
    def __init__(self, client: Client) -> None:
        self._client = client

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        """
        Get a user's profile by id.

        Returns:
            UserProfile or None if the user has no profile row
        """

        rows = execute(
            self._client.table(_USERS_TABLE).select("*").eq("id", user_id).limit(1),
            "fetch user",
        )
        if not rows:
            return None
        return _row_to_profile(rows[0])

    def get_role(self, user_id: str) -> Optional[str]:
        profile = self.get_profile(user_id)
        return profile.role if profile else None

    def get_stripe_connect_id(self, user_id: str) -> Optional[str]:
        profile = self.get_profile(user_id)
        return profile.stripe_connect_id if profile else None

    def set_stripe_connect_account(self, user_id: str, stripe_connect_id: str) -> None:
        """Attach a newly created connected account, pending onboarding."""

        execute(
            self._client.table(_USERS_TABLE)
            .update(
                {
                    "stripe_connect_id": stripe_connect_id,
                    "card_payments_enabled": True,
                    "stripe_connect_status": "pending",
                }
            )
            .eq("id", user_id),
            "update user payment account",
        )

    def delete_profile(self, user_id: str) -> None:
        execute(
            self._client.table(_USERS_TABLE).delete().eq("id", user_id),
            "delete user",
        )


__all__ = ["UserRepository"]
