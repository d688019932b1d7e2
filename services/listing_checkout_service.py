"""
Listing checkout service.

Sellers pay a flat publication fee before a listing enters the approval
queue. Payment happens on the gateway's hosted checkout page; this service
creates the session and, once the browser comes back, verifies it and moves
the listing forward.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from domain.errors import (
    ConfigurationError,
    IdentityMismatch,
    InvalidInput,
    PaymentNotConfirmed,
    UpstreamUnavailable,
)
from domain.time import utc_now
from domain.user import VerifiedIdentity
from repositories.listing_repository import ListingRepository
from services.payment_gateway import StripePaymentGateway

logger = logging.getLogger(__name__)


class ListingCheckoutService:
    def __init__(
        self,
        gateway: StripePaymentGateway,
        listings: ListingRepository,
        price_id: Optional[str],
        listing_fee: Decimal,
        frontend_url: str,
    ) -> None:
        self._gateway = gateway
        self._listings = listings
        self._price_id = price_id
        self._listing_fee = listing_fee
        self._frontend_url = frontend_url.rstrip("/")

    def create_checkout(
        self,
        identity: VerifiedIdentity,
        sale_id: str,
        sale_title: Optional[str] = None,
        origin: Optional[str] = None,
    ) -> str:
        """
        Start a hosted checkout for the publication fee of listing `sale_id`.

        Returns:
            URL of the hosted checkout page
        """
        if not sale_id:
            raise InvalidInput("Sale ID is required")
        if not self._price_id:
            raise ConfigurationError("Stripe not configured - missing STRIPE_LISTING_PRICE_ID")

        base_url = (origin or self._frontend_url).rstrip("/")
        metadata = {"saleId": sale_id, "saleTitle": sale_title or ""}

        session = self._gateway.create_checkout_session(
            price_id=self._price_id,
            customer_email=identity.email,
            success_url=f"{base_url}/Payment?id={sale_id}&session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{base_url}/CreateListing?edit={sale_id}",
            metadata=metadata,
            payment_intent_metadata=metadata,
        )
        logger.info("Created checkout session %s for listing %s", session.session_id, sale_id)

        if not session.url:
            raise UpstreamUnavailable("Checkout session has no redirect URL")
        return session.url

    def verify_checkout(self, identity: VerifiedIdentity, session_id: str, sale_id: str) -> None:
        """
        Confirm a returned checkout session and queue the listing for approval.

        Process:
        1. Session must report payment_status == "paid"
        2. Session must have been created for listing `sale_id`
        3. Insert the fee payment row, unless this payment was already recorded
        4. Move the listing to pending_approval

        Verifying the same session twice is a no-op the second time.

        Raises:
            InvalidInput: If session_id or sale_id is missing
            PaymentNotConfirmed: If the session is not paid
            IdentityMismatch: If the session paid for a different listing
        """
        if not session_id or not sale_id:
            raise InvalidInput("Missing required parameters")

        session = self._gateway.retrieve_checkout_session(session_id)
        if not session.is_paid:
            logger.warning("Checkout session %s for listing %s is %s", session_id, sale_id, session.payment_status)
            raise PaymentNotConfirmed("Payment not completed", status=session.payment_status)

        paid_for = session.metadata_value("saleId")
        if paid_for != sale_id:
            logger.warning(
                "Checkout session %s paid for listing %s, not %s (caller %s)",
                session_id, paid_for, sale_id, identity.subject_id,
            )
            raise IdentityMismatch("Checkout session does not belong to this listing")

        transaction_id = session.payment_intent_id or session.session_id
        if self._listings.has_payment(transaction_id):
            logger.info("Checkout session %s already recorded for listing %s", session_id, sale_id)
            return

        paid_at = utc_now()
        self._listings.insert_payment(
            listing_id=sale_id,
            user_uid=identity.subject_id,
            user_email=identity.email,
            amount=self._listing_fee,
            transaction_id=transaction_id,
            created_at=paid_at,
        )
        self._listings.mark_paid(sale_id, paid_at)
        logger.info("Listing %s paid via session %s", sale_id, session_id)


__all__ = ["ListingCheckoutService"]
