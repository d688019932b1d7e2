"""
Checkout API Endpoints.

Hosted checkout for the listing publication fee.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header

from api.container import ServiceContainer
from api.dependencies import get_container, get_identity
from api.models import CheckoutResponse, CreateCheckoutRequest, SuccessResponse, VerifyCheckoutRequest
from domain.user import VerifiedIdentity

router = APIRouter()


@router.post(
    "/create",
    response_model=CheckoutResponse,
    summary="Create Checkout",
    description="Start a hosted checkout for a listing's publication fee."
)
def create_checkout(
    request: CreateCheckoutRequest,
    origin: Optional[str] = Header(default=None),
    identity: VerifiedIdentity = Depends(get_identity),
    container: ServiceContainer = Depends(get_container),
):
    """
    Create a checkout session.

    The success and cancel URLs point back at the page that started the
    checkout (the request `Origin`), or the configured frontend URL.

    **Example request:**
    ```json
    {"saleId": "abc123", "saleTitle": "Moving sale"}
    ```
    """
    url = container.checkout.create_checkout(
        identity,
        sale_id=request.sale_id,
        sale_title=request.sale_title,
        origin=origin,
    )
    return CheckoutResponse(url=url)


@router.post(
    "/verify",
    response_model=SuccessResponse,
    response_model_exclude_none=True,
    summary="Verify Checkout",
    description="Confirm a completed checkout and queue the listing for approval."
)
def verify_checkout(
    request: VerifyCheckoutRequest,
    identity: VerifiedIdentity = Depends(get_identity),
    container: ServiceContainer = Depends(get_container),
):
    container.checkout.verify_checkout(identity, session_id=request.session_id, sale_id=request.sale_id)
    return SuccessResponse()
