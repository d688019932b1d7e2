"""
Sale recording service.

One workflow for every way a seller gets paid:
- card: payment intent created by this service, confirmed on the client
- tap_to_pay: card-present payment captured on the seller's device
- cash: recorded directly, no gateway involved

Shape shared by all three:
1. Verified caller identity (done by the transport before we are called)
2. Gateway confirmation of the payment intent (card / tap_to_pay only)
3. Fee computation (tap_to_pay only)
4. Insert the sale record
5. Atomically bump the seller's aggregate

The aggregate is derived data. A failure in step 5 is retried a bounded number
of times and then logged; the sale stays recorded and the request succeeds.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from domain.errors import IdentityMismatch, InvalidInput, LedgerError, PaymentNotConfirmed
from domain.sale import (
    PaymentIntentHandle,
    PaymentMethod,
    SaleRecord,
    SaleStatus,
    SellerStats,
    compute_tap_to_pay_fees,
)
from domain.user import VerifiedIdentity
from repositories.sale_repository import SaleRepository
from repositories.seller_stats_repository import SellerStatsRepository
from repositories.user_repository import UserRepository
from services.payment_gateway import StripePaymentGateway

logger = logging.getLogger(__name__)

DEFAULT_SALE_DESCRIPTION = "Sale"
DEFAULT_INTENT_DESCRIPTION = "Urban Pay Sale"
STATS_UPDATE_ATTEMPTS = 3


@dataclass(frozen=True, slots=True)
class RecordSaleRequest:
    """A seller's request to record one sale."""
    seller_id: str
    amount: Decimal
    description: Optional[str] = None
    payment_method: PaymentMethod = PaymentMethod.CARD
    payment_intent_id: Optional[str] = None
    currency: Optional[str] = None


@dataclass(frozen=True, slots=True)
class RecordedSale:
    """
    Result of a successful recording.

    stats_updated is False when the sale was stored but the aggregate could
    not be bumped (it will be reconciled by scripts/recompute_seller_stats.py).
    """
    sale: SaleRecord
    stats_updated: bool

    @property
    def sale_id(self) -> str:
        return self.sale.sale_id

    def display_payload(self) -> Dict[str, Any]:
        """Echo of the recorded amounts for the seller's receipt screen."""
        sale = self.sale
        payload: Dict[str, Any] = {
            "amount": float(sale.amount),
            "description": sale.description,
            "paymentIntentId": sale.payment_intent_id,
            "paymentMethod": sale.payment_method.value,
            "status": sale.status.value,
            "currency": sale.currency,
            "timestamp": sale.timestamp.isoformat(),
        }
        if sale.transaction_fee is not None:
            payload["transactionFee"] = f"{sale.transaction_fee:.2f}"
        if sale.net_earnings is not None:
            payload["netEarnings"] = f"{sale.net_earnings:.2f}"
        return payload


@dataclass(frozen=True, slots=True)
class ConnectProfile:
    """Seller details forwarded to the gateway when opening a connected account."""
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    dob: Optional[date] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postcode: Optional[str] = None
    refresh_url: Optional[str] = None
    return_url: Optional[str] = None

    def individual(self) -> Dict[str, Any]:
        individual: Dict[str, Any] = {
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "address": {
                "line1": self.address,
                "city": self.city,
                "state": self.state,
                "postal_code": self.postcode,
                "country": "AU",
            },
        }
        if self.dob is not None:
            individual["dob"] = {"day": self.dob.day, "month": self.dob.month, "year": self.dob.year}
        return _drop_none(individual)


@dataclass(frozen=True, slots=True)
class ConnectOnboarding:
    stripe_connect_id: str
    onboarding_url: str

class SaleRecordingService:
    def __init__(
        self,
        sales: SaleRepository,
        stats: SellerStatsRepository,
        users: UserRepository,
        gateway: StripePaymentGateway,
        home_currency: str = "aud",
        frontend_url: str = "http://localhost:5173",
        stats_update_attempts: int = STATS_UPDATE_ATTEMPTS,
    ) -> None:
        self._sales = sales
        self._stats = stats
        self._users = users
        self._gateway = gateway
        self._home_currency = home_currency
        self._frontend_url = frontend_url.rstrip("/")
        self._stats_update_attempts = max(1, stats_update_attempts)

    # ------------------------------------------------------------------
    # Payment intents
    # ------------------------------------------------------------------

    def create_payment_intent(
        self,
        identity: VerifiedIdentity,
        amount: Decimal,
        description: Optional[str] = None,
        currency: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> PaymentIntentHandle:
        """
        Create a payment intent for a sale the caller is about to take.

        The intent is tagged with the seller and description, and created
        under the seller's connected account when one is on file so funds
        settle to them net of fees.

        Raises:
            InvalidInput: If amount is not positive
            ConfigurationError: If no gateway secret is configured
            UpstreamUnavailable: If the gateway call fails
        """
        _require_positive(amount)
        description = description or DEFAULT_INTENT_DESCRIPTION
        seller_id = identity.subject_id

        return self._gateway.create_payment_intent(
            amount=amount,
            currency=(currency or self._home_currency).lower(),
            description=f"Urban Pay Sale - {description}",
            metadata={"sellerId": seller_id, "saleDescription": description},
            stripe_account=self._users.get_stripe_connect_id(seller_id),
            idempotency_key=idempotency_key,
        )

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record_sale(self, identity: VerifiedIdentity, request: RecordSaleRequest) -> RecordedSale:
        """
        Record a sale for the verified seller.

        Process:
        1. Caller must be the seller named in the request
        2. Card / tap-to-pay: the payment intent must be confirmed by the gateway
        3. Tap-to-pay: compute transaction fee and net earnings
        4. Insert the sale record
        5. Bump the seller aggregate (non-fatal)

        Raises:
            IdentityMismatch: If the verified caller is not request.seller_id
            InvalidInput: If amount is not positive or a required intent id is missing
            PaymentNotConfirmed: If the gateway does not report the payment as succeeded
            LedgerError: If the sale insert fails
        """
        if request.seller_id != identity.subject_id:
            raise IdentityMismatch("sellerId does not match the authenticated user")
        _require_positive(request.amount)

        method = request.payment_method
        payment_intent_id = request.payment_intent_id if method.requires_gateway_confirmation else None

        if method.requires_gateway_confirmation:
            if not payment_intent_id:
                raise InvalidInput(f"paymentIntentId is required for {method.value} payments")
            self._confirm_payment(request.seller_id, payment_intent_id)

        fees = compute_tap_to_pay_fees(request.amount) if method is PaymentMethod.TAP_TO_PAY else None

        sale = self._sales.insert_sale(
            seller_id=request.seller_id,
            amount=request.amount,
            currency=(request.currency or self._home_currency).upper(),
            description=request.description or DEFAULT_SALE_DESCRIPTION,
            payment_method=method,
            status=SaleStatus.for_method(method),
            payment_intent_id=payment_intent_id,
            transaction_fee=fees.transaction_fee if fees else None,
            net_earnings=fees.net_earnings if fees else None,
        )
        logger.info(
            "Recorded %s sale %s for seller %s (%s %s)",
            method.value, sale.sale_id, sale.seller_id, sale.amount, sale.currency,
        )

        stats_updated = self._update_stats(sale)
        return RecordedSale(sale=sale, stats_updated=stats_updated)

    def record_tap_to_pay_sale(
        self,
        identity: VerifiedIdentity,
        amount: Decimal,
        payment_intent_id: str,
        description: Optional[str] = None,
        currency: Optional[str] = None,
    ) -> RecordedSale:
        """Record an in-person tap-to-pay sale for the verified caller."""
        return self.record_sale(
            identity,
            RecordSaleRequest(
                seller_id=identity.subject_id,
                amount=amount,
                description=description,
                payment_method=PaymentMethod.TAP_TO_PAY,
                payment_intent_id=payment_intent_id,
                currency=currency,
            ),
        )

    def _confirm_payment(self, seller_id: str, payment_intent_id: str) -> None:
        intent = self._gateway.retrieve_payment_intent(
            payment_intent_id,
            stripe_account=self._users.get_stripe_connect_id(seller_id),
        )
        if not intent.is_confirmed:
            logger.warning(
                "Refusing to record sale: payment intent %s has status %s",
                payment_intent_id, intent.status,
            )
            raise PaymentNotConfirmed("Payment intent not succeeded", status=intent.status)

    def _update_stats(self, sale: SaleRecord) -> bool:
        for attempt in range(1, self._stats_update_attempts + 1):
            try:
                self._stats.increment(sale.seller_id, sale.amount)
                return True
            except LedgerError as e:
                logger.warning(
                    "Seller stats update failed for sale %s (attempt %d/%d): %s",
                    sale.sale_id, attempt, self._stats_update_attempts, e,
                )

        logger.error(
            "Seller stats for %s no longer include sale %s; recompute from sales",
            sale.seller_id, sale.sale_id,
        )
        return False

    # ------------------------------------------------------------------
    # Seller payment setup
    # ------------------------------------------------------------------

    def enable_card_payments(self, identity: VerifiedIdentity, profile: ConnectProfile) -> ConnectOnboarding:
        """
        Open a connected account for the caller and return its onboarding link.

        The account id is stored on the user row before the link is requested,
        so a failed link can be retried without creating a second account.
        """
        seller_id = identity.subject_id
        email = profile.email or identity.email or f"seller-{seller_id}@urbangaragesale.com"

        account_id = self._gateway.create_connected_account(email=email, individual=profile.individual())
        self._users.set_stripe_connect_account(seller_id, account_id)
        logger.info("Created connected account %s for seller %s", account_id, seller_id)

        onboarding_url = self._gateway.create_onboarding_link(
            account_id,
            refresh_url=profile.refresh_url or f"{self._frontend_url}/profile?tab=payments",
            return_url=profile.return_url or f"{self._frontend_url}/profile?tab=payments&success=true",
        )
        return ConnectOnboarding(stripe_connect_id=account_id, onboarding_url=onboarding_url)

    def create_terminal_connection_token(self, identity: VerifiedIdentity) -> str:
        """Connection token for the caller's tap-to-pay reader."""
        return self._gateway.create_terminal_connection_token(
            stripe_account=self._users.get_stripe_connect_id(identity.subject_id),
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_seller_stats(self, identity: VerifiedIdentity, seller_id: str, is_admin: bool = False) -> SellerStats:
        """Aggregate for a seller; zeroed when the seller has no sales yet."""
        _require_owner(identity, seller_id, is_admin)
        return self._stats.get_stats(seller_id) or SellerStats.empty(seller_id)

    def list_sales(self, identity: VerifiedIdentity, seller_id: str, is_admin: bool = False) -> List[SaleRecord]:
        """The seller's most recent sales, newest first."""
        _require_owner(identity, seller_id, is_admin)
        return self._sales.list_recent_sales(seller_id)


def _drop_none(values: Dict[str, Any]) -> Dict[str, Any]:
    cleaned: Dict[str, Any] = {}
    for key, value in values.items():
        if isinstance(value, dict):
            value = _drop_none(value)
        if value is not None and value != {}:
            cleaned[key] = value
    return cleaned


def _require_positive(amount: Decimal) -> None:
    if not amount.is_finite() or amount <= 0:
        raise InvalidInput("amount must be a positive number")


def _require_owner(identity: VerifiedIdentity, seller_id: str, is_admin: bool) -> None:
    if seller_id != identity.subject_id and not is_admin:
        raise IdentityMismatch("Not authorized to view another seller's sales")


__all__ = [
    "ConnectOnboarding",
    "ConnectProfile",
    "RecordSaleRequest",
    "RecordedSale",
    "SaleRecordingService",
]
