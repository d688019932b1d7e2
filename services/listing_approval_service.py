"""
Listing approval and admin correspondence.

Both operations are admin-only and both send an email afterwards. The email
is a notification, not part of the operation: a failed send is reported back
to the admin and never undoes the approval.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from domain.errors import Forbidden, InvalidInput, NotFound
from domain.listing import ListingStatus
from domain.user import VerifiedIdentity
from repositories.listing_repository import ListingRepository
from services.email_service import EmailResult, EmailService
from services.identity_service import IdentityVerifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class NotificationOutcome:
    email_sent: bool
    email_error: Optional[str] = None

    @classmethod
    def from_result(cls, result: EmailResult) -> "NotificationOutcome":
        return cls(email_sent=result.success, email_error=None if result.success else result.error)


class ListingApprovalService:
    def __init__(
        self,
        identity: IdentityVerifier,
        listings: ListingRepository,
        email: EmailService,
    ) -> None:
        self._identity = identity
        self._listings = listings
        self._email = email

    def _require_admin(self, caller: VerifiedIdentity, action: str) -> None:
        if not self._identity.is_admin(caller.subject_id):
            logger.warning("Non-admin %s attempted to %s", caller.subject_id, action)
            raise Forbidden(f"Only admins can {action}")

    def approve_listing(self, caller: VerifiedIdentity, listing_id: str) -> NotificationOutcome:
        """
        Publish a listing and notify its owner.

        Raises:
            Forbidden: If the caller is not an admin
            InvalidInput: If listing_id is empty
            NotFound: If the listing does not exist
        """
        self._require_admin(caller, "approve listings")
        if not listing_id:
            raise InvalidInput("listingId is required")

        listing = self._listings.get_listing(listing_id)
        if listing is None:
            raise NotFound(f"Listing {listing_id} not found")

        self._listings.set_status(listing_id, ListingStatus.ACTIVE)
        logger.info("Listing %s approved by %s", listing_id, caller.subject_id)

        owner_email = listing.get("created_by")
        if not owner_email:
            return NotificationOutcome(email_sent=False, email_error="Listing has no owner email")

        result = self._email.send_listing_approved(owner_email, str(listing.get("title") or "Your listing"))
        return NotificationOutcome.from_result(result)

    def respond_to_contact(
        self,
        caller: VerifiedIdentity,
        user_email: str,
        response_message: str,
        user_name: Optional[str] = None,
        original_message: Optional[str] = None,
    ) -> NotificationOutcome:
        """Email an admin's response to a contact-form message."""
        self._require_admin(caller, "respond to messages")
        if not user_email or not response_message:
            raise InvalidInput("Missing required parameters: userEmail, responseMessage")

        result = self._email.send_contact_response(
            to=user_email,
            user_name=user_name,
            original_message=original_message or "",
            response_message=response_message,
        )
        return NotificationOutcome.from_result(result)


__all__ = ["ListingApprovalService", "NotificationOutcome"]
