"""
Domain: Sale records and seller statistics.

Rules captured here:
- A SaleRecord is created exactly once and is never mutated afterwards.
- Card and tap-to-pay sales are `completed`; cash sales are `recorded`.
- Cash sales never reference a payment intent.
- Transaction fees are only computed for tap-to-pay sales.

SellerStats is a denormalized running aggregate over a seller's sales. It is
derived data: it can lag behind `sales` and can always be recomputed from it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Mapping, Optional

from .time import require_utc_timestamp

HOME_CURRENCY = "AUD"

# Card-present processing fee schedule: 2.9% + 30c.
TAP_TO_PAY_FEE_RATE = Decimal("0.029")
TAP_TO_PAY_FIXED_FEE = Decimal("0.30")

_CENTS = Decimal("0.01")


class PaymentMethod(str, Enum):
    CARD = "card"
    CASH = "cash"
    TAP_TO_PAY = "tap_to_pay"

    @property
    def requires_gateway_confirmation(self) -> bool:
        return self is not PaymentMethod.CASH


class SaleStatus(str, Enum):
    COMPLETED = "completed"
    RECORDED = "recorded"

    @classmethod
    def for_method(cls, method: PaymentMethod) -> "SaleStatus":
        return cls.RECORDED if method is PaymentMethod.CASH else cls.COMPLETED


@dataclass(frozen=True, slots=True)
class TapToPayFees:
    transaction_fee: Decimal
    net_earnings: Decimal


def round_money(value: Decimal) -> Decimal:
    """Quantize to cents, rounding halves away from zero."""
    return value.quantize(_CENTS, rounding=ROUND_HALF_UP)


def compute_tap_to_pay_fees(amount: Decimal) -> TapToPayFees:
    """
    Compute the processing fee and the seller's net for a tap-to-pay sale.

    The net is derived from the already-rounded fee so that
    `transaction_fee + net_earnings == amount` holds exactly.
    """

    fee = round_money(amount * TAP_TO_PAY_FEE_RATE + TAP_TO_PAY_FIXED_FEE)
    return TapToPayFees(transaction_fee=fee, net_earnings=round_money(amount - fee))


def to_minor_units(amount: Decimal) -> int:
    """Convert major currency units to cents. Every currency is treated as 2-decimal."""
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True, slots=True)
class SaleRecord:
    """
    Immutable record of one recorded transaction.

    `sale_id` and `timestamp` are assigned by the ledger store on insert.
    """

    sale_id: str
    seller_id: str
    amount: Decimal
    currency: str
    description: str
    payment_method: PaymentMethod
    status: SaleStatus
    timestamp: datetime
    payment_intent_id: Optional[str] = None
    transaction_fee: Optional[Decimal] = None
    net_earnings: Optional[Decimal] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("timestamp", self.timestamp)
        if self.payment_method is PaymentMethod.CASH and self.payment_intent_id is not None:
            raise ValueError("cash sales cannot reference a payment intent")


@dataclass(frozen=True, slots=True)
class SellerStats:
    """Running totals for one seller. Absent aggregates read as zero."""

    seller_id: str
    total_earnings: Decimal = Decimal("0")
    total_sales: int = 0
    last_updated: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.last_updated is not None:
            require_utc_timestamp("last_updated", self.last_updated)

    @classmethod
    def empty(cls, seller_id: str) -> "SellerStats":
        return cls(seller_id=seller_id)


@dataclass(frozen=True, slots=True)
class PaymentIntentHandle:
    """The parts of a gateway payment intent this service reads."""

    payment_intent_id: str
    status: str
    client_secret: Optional[str] = None

    @property
    def is_confirmed(self) -> bool:
        return self.status in ("succeeded", "paid")


@dataclass(frozen=True, slots=True)
class CheckoutSessionHandle:
    session_id: str
    url: Optional[str]
    payment_status: Optional[str]
    payment_intent_id: Optional[str] = None
    metadata: Optional[Mapping[str, str]] = None

    @property
    def is_paid(self) -> bool:
        return self.payment_status == "paid"

    def metadata_value(self, key: str) -> Optional[str]:
        return (self.metadata or {}).get(key)
