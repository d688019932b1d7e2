"""
Payments API Endpoints.

Endpoints for creating payment intents, recording sales (card, cash and
tap-to-pay), reading seller statistics and setting up seller payments.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException

from api.container import ServiceContainer
from api.dependencies import get_container, get_identity
from api.models import (
    ConnectionTokenResponse,
    CreatePaymentIntentRequest,
    EnableCardPaymentsRequest,
    EnableCardPaymentsResponse,
    PaymentIntentResponse,
    RecordSaleRequest,
    RecordSaleResponse,
    RecordTapToPaySaleRequest,
    RecordTapToPaySaleResponse,
    SaleResponse,
    SalesListResponse,
    SellerStatsResponse,
)
from domain.errors import MarketplaceError
from domain.user import VerifiedIdentity
from services.sale_recording_service import ConnectProfile
from services.sale_recording_service import RecordSaleRequest as ServiceRecordSaleRequest

logger = logging.getLogger(__name__)

router = APIRouter()


def _is_admin_for(container: ServiceContainer, identity: VerifiedIdentity, seller_id: str) -> bool:
    # Only consult the role when the caller is looking at someone else's data.
    return seller_id != identity.subject_id and container.identity.is_admin(identity.subject_id)


@router.post(
    "/createPaymentIntent",
    response_model=PaymentIntentResponse,
    summary="Create Payment Intent",
    description="Create a card payment intent for a sale the caller is about to take."
)
def create_payment_intent(
    request: CreatePaymentIntentRequest,
    idempotency_key: Optional[str] = Header(default=None),
    identity: VerifiedIdentity = Depends(get_identity),
    container: ServiceContainer = Depends(get_container),
):
    """
    Create a payment intent.

    The intent is created under the seller's connected account when one is
    on file. An `Idempotency-Key` header, when sent, is forwarded to the
    gateway so a retried request does not create a second intent.

    **Example request:**
    ```json
    {"amount": 25.50, "description": "Vintage lamp"}
    ```

    **Success response:**
    ```json
    {"success": true, "clientSecret": "pi_..._secret_...", "paymentIntentId": "pi_..."}
    ```
    """
    intent = container.sales.create_payment_intent(
        identity,
        amount=request.amount,
        description=request.description,
        currency=request.currency,
        idempotency_key=idempotency_key,
    )
    return PaymentIntentResponse(
        client_secret=intent.client_secret,
        payment_intent_id=intent.payment_intent_id,
    )


@router.post(
    "/recordSale",
    response_model=RecordSaleResponse,
    summary="Record Sale",
    description="Record a card or cash sale for the authenticated seller."
)
def record_sale(
    request: RecordSaleRequest,
    identity: VerifiedIdentity = Depends(get_identity),
    container: ServiceContainer = Depends(get_container),
):
    """
    Record a sale.

    **Process:**
    1. sellerId must be the authenticated user
    2. Card payments must have a succeeded payment intent
    3. The sale is stored and the seller's totals are updated

    Cash sales are stored with status `recorded` and no payment intent.

    **Example request:**
    ```json
    {"sellerId": "...", "amount": 20, "paymentMethod": "cash"}
    ```
    """
    try:
        recorded = container.sales.record_sale(
            identity,
            ServiceRecordSaleRequest(
                seller_id=request.seller_id,
                amount=request.amount,
                description=request.description,
                payment_method=request.payment_method,
                payment_intent_id=request.payment_intent_id,
            ),
        )
        return RecordSaleResponse(sale_id=recorded.sale_id)

    except MarketplaceError:
        raise
    except Exception as e:
        logger.exception("Unexpected failure recording sale")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to record sale: {str(e)}"
        )


@router.post(
    "/recordTapToPaySale",
    response_model=RecordTapToPaySaleResponse,
    summary="Record Tap to Pay Sale",
    description="Record an in-person tap-to-pay sale, including processing fees."
)
def record_tap_to_pay_sale(
    request: RecordTapToPaySaleRequest,
    identity: VerifiedIdentity = Depends(get_identity),
    container: ServiceContainer = Depends(get_container),
):
    """
    Record a tap-to-pay sale.

    **Success response:**
    ```json
    {
      "success": true,
      "saleId": "...",
      "message": "Sale recorded successfully",
      "saleData": {"amount": 100.0, "transactionFee": "3.20", "netEarnings": "96.80", "...": "..."}
    }
    ```
    """
    try:
        recorded = container.sales.record_tap_to_pay_sale(
            identity,
            amount=request.amount,
            payment_intent_id=request.payment_intent_id,
            description=request.description,
            currency=request.currency,
        )
        return RecordTapToPaySaleResponse(
            sale_id=recorded.sale_id,
            message="Sale recorded successfully",
            sale_data=recorded.display_payload(),
        )

    except MarketplaceError:
        raise
    except Exception as e:
        logger.exception("Unexpected failure recording tap-to-pay sale")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to record sale: {str(e)}"
        )


@router.get(
    "/stats/{seller_id}",
    response_model=SellerStatsResponse,
    summary="Seller Statistics",
    description="Running totals for a seller. Zeroed when the seller has no sales."
)
def get_seller_stats(
    seller_id: str,
    identity: VerifiedIdentity = Depends(get_identity),
    container: ServiceContainer = Depends(get_container),
):
    stats = container.sales.get_seller_stats(
        identity, seller_id, is_admin=_is_admin_for(container, identity, seller_id)
    )
    return SellerStatsResponse.from_stats(stats)


@router.get(
    "/sales/{seller_id}",
    response_model=SalesListResponse,
    summary="Seller Sales",
    description="A seller's 100 most recent sales, newest first."
)
def list_sales(
    seller_id: str,
    identity: VerifiedIdentity = Depends(get_identity),
    container: ServiceContainer = Depends(get_container),
):
    sales = container.sales.list_sales(
        identity, seller_id, is_admin=_is_admin_for(container, identity, seller_id)
    )
    return SalesListResponse(sales=[SaleResponse.from_record(sale) for sale in sales])


@router.post(
    "/enableCardPayments",
    response_model=EnableCardPaymentsResponse,
    summary="Enable Card Payments",
    description="Open a connected payments account for the seller and return its onboarding link."
)
def enable_card_payments(
    request: EnableCardPaymentsRequest,
    identity: VerifiedIdentity = Depends(get_identity),
    container: ServiceContainer = Depends(get_container),
):
    onboarding = container.sales.enable_card_payments(
        identity,
        ConnectProfile(
            email=request.email,
            first_name=request.first_name,
            last_name=request.last_name,
            dob=request.dob,
            address=request.address,
            city=request.city,
            state=request.state,
            postcode=request.postcode,
            refresh_url=request.refresh_url,
            return_url=request.return_url,
        ),
    )
    return EnableCardPaymentsResponse(
        stripe_connect_id=onboarding.stripe_connect_id,
        onboarding_url=onboarding.onboarding_url,
    )


@router.post(
    "/terminalConnectionToken",
    response_model=ConnectionTokenResponse,
    summary="Terminal Connection Token",
    description="Connection token for initialising a tap-to-pay reader."
)
def terminal_connection_token(
    identity: VerifiedIdentity = Depends(get_identity),
    container: ServiceContainer = Depends(get_container),
):
    return ConnectionTokenResponse(secret=container.sales.create_terminal_connection_token(identity))
