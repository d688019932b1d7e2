"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
Field names are snake_case in Python and camelCase on the wire. Request
bodies reject unknown fields.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from domain.sale import PaymentMethod, SaleRecord, SellerStats


class ApiModel(BaseModel):
    """Base model: camelCase aliases, snake_case attributes, no extra fields."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        extra = "forbid"


# ============================================================================
# Payment Models
# ============================================================================

class CreatePaymentIntentRequest(ApiModel):
    """Request to start a card payment for a sale."""
    amount: Decimal = Field(..., gt=0, description="Amount in major units, e.g. dollars")
    description: Optional[str] = None
    currency: Optional[str] = Field(None, min_length=3, max_length=3)

    class Config:
        json_schema_extra = {
            "example": {
                "amount": 25.50,
                "description": "Vintage lamp",
                "currency": "aud"
            }
        }


class PaymentIntentResponse(ApiModel):
    success: bool = True
    client_secret: str
    payment_intent_id: str


class RecordSaleRequest(ApiModel):
    """Request to record a completed sale."""
    seller_id: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0)
    description: Optional[str] = None
    payment_method: PaymentMethod = PaymentMethod.CARD
    payment_intent_id: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "sellerId": "8f2c1d7e-0000-4000-8000-000000000001",
                "amount": 25.50,
                "description": "Vintage lamp",
                "paymentMethod": "card",
                "paymentIntentId": "pi_3P0abc"
            }
        }


class RecordSaleResponse(ApiModel):
    sale_id: str
    success: bool = True


class RecordTapToPaySaleRequest(ApiModel):
    """Request to record an in-person tap-to-pay sale."""
    amount: Decimal = Field(..., gt=0)
    description: Optional[str] = None
    payment_intent_id: str = Field(..., min_length=1)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)

    class Config:
        json_schema_extra = {
            "example": {
                "amount": 100.00,
                "description": "Bookshelf",
                "paymentIntentId": "pi_3P0abc",
                "currency": "aud"
            }
        }


class RecordTapToPaySaleResponse(ApiModel):
    success: bool = True
    sale_id: str
    message: str
    sale_data: Dict[str, Any]


class SellerStatsResponse(ApiModel):
    seller_id: str
    total_earnings: float
    total_sales: int
    last_updated: Optional[datetime] = None

    @classmethod
    def from_stats(cls, stats: SellerStats) -> "SellerStatsResponse":
        return cls(
            seller_id=stats.seller_id,
            total_earnings=float(stats.total_earnings),
            total_sales=stats.total_sales,
            last_updated=stats.last_updated,
        )


class SaleResponse(ApiModel):
    """Single sale record in API response."""
    id: str
    seller_id: str
    amount: float
    currency: str
    description: str
    payment_method: PaymentMethod
    payment_intent_id: Optional[str] = None
    status: str
    transaction_fee: Optional[float] = None
    net_earnings: Optional[float] = None
    timestamp: datetime

    @classmethod
    def from_record(cls, sale: SaleRecord) -> "SaleResponse":
        return cls(
            id=sale.sale_id,
            seller_id=sale.seller_id,
            amount=float(sale.amount),
            currency=sale.currency,
            description=sale.description,
            payment_method=sale.payment_method,
            payment_intent_id=sale.payment_intent_id,
            status=sale.status.value,
            transaction_fee=float(sale.transaction_fee) if sale.transaction_fee is not None else None,
            net_earnings=float(sale.net_earnings) if sale.net_earnings is not None else None,
            timestamp=sale.timestamp,
        )


class SalesListResponse(ApiModel):
    sales: List[SaleResponse]


class EnableCardPaymentsRequest(ApiModel):
    """Seller details for opening a connected payments account."""
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


class EnableCardPaymentsResponse(ApiModel):
    success: bool = True
    message: str = "Stripe Connect initialized"
    stripe_connect_id: str
    onboarding_url: str


class ConnectionTokenResponse(ApiModel):
    secret: str


# ============================================================================
# Checkout Models
# ============================================================================

class CreateCheckoutRequest(ApiModel):
    sale_id: str = Field(..., min_length=1)
    sale_title: Optional[str] = None


class CheckoutResponse(ApiModel):
    url: str


class VerifyCheckoutRequest(ApiModel):
    session_id: str = Field(..., min_length=1)
    sale_id: str = Field(..., min_length=1)


# ============================================================================
# Admin Models
# ============================================================================

class DeleteUserRequest(ApiModel):
    user_id: str


class SuccessResponse(ApiModel):
    success: bool = True
    message: Optional[str] = None


class ApproveListingRequest(ApiModel):
    listing_id: str = Field(..., min_length=1)


class ContactResponseRequest(ApiModel):
    user_email: str = Field(..., min_length=3)
    user_name: Optional[str] = None
    original_message: Optional[str] = None
    response_message: str = Field(..., min_length=1)


class NotificationResponse(ApiModel):
    success: bool = True
    email_sent: bool
    email_error: Optional[str] = None


# ============================================================================
# Location Models
# ============================================================================

class GeoLocationResponse(ApiModel):
    latitude: float
    longitude: float
    name: str
    cached: bool = False
    fallback: bool = False


class CountryResponse(ApiModel):
    country_code: str
    country: str
    city: str = ""
    detected: bool = False


class ValidateSuburbRequest(ApiModel):
    suburb: str = Field(..., min_length=1)
    postcode: str = Field(..., min_length=1)
