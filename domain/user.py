"""
Domain: User profiles and verified identities.

A VerifiedIdentity is what the identity provider vouches for after a bearer
token is checked. A UserProfile is the application's own record for that
subject (role, connected payment account).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

ADMIN_ROLE = "admin"


@dataclass(frozen=True, slots=True)
class VerifiedIdentity:
    subject_id: str
    email: Optional[str] = None


@dataclass(frozen=True, slots=True)
class UserProfile:
    """
    Profile row for a user.

    Absence of a profile is a valid state: such a user is simply not an admin
    and has no connected payment account.
    """

    user_id: str
    email: Optional[str] = None
    role: Optional[str] = None
    stripe_connect_id: Optional[str] = None
    card_payments_enabled: bool = False

    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE
