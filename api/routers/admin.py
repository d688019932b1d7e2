"""
Admin API Endpoints.

User deletion, listing approval and contact-form responses. All of these
require an authenticated admin.
"""

from fastapi import APIRouter, Depends

from api.container import ServiceContainer
from api.dependencies import get_container, get_identity
from api.models import (
    ApproveListingRequest,
    ContactResponseRequest,
    DeleteUserRequest,
    NotificationResponse,
    SuccessResponse,
)
from domain.user import VerifiedIdentity
from services.listing_approval_service import NotificationOutcome

router = APIRouter()


def _notification_response(outcome: NotificationOutcome) -> NotificationResponse:
    return NotificationResponse(email_sent=outcome.email_sent, email_error=outcome.email_error)


@router.post(
    "/users/delete",
    response_model=SuccessResponse,
    summary="Delete User",
    description="Delete a user's account and profile (admin only)."
)
def delete_user(
    request: DeleteUserRequest,
    identity: VerifiedIdentity = Depends(get_identity),
    container: ServiceContainer = Depends(get_container),
):
    message = container.user_admin.delete_user(identity, request.user_id)
    return SuccessResponse(message=message)


@router.post(
    "/listings/approve",
    response_model=NotificationResponse,
    response_model_exclude_none=True,
    summary="Approve Listing",
    description="Publish a listing and email its owner (admin only)."
)
def approve_listing(
    request: ApproveListingRequest,
    identity: VerifiedIdentity = Depends(get_identity),
    container: ServiceContainer = Depends(get_container),
):
    """
    Approve a listing.

    The approval stands even when the notification email cannot be sent;
    that case is reported as `emailSent: false` with `emailError`.
    """
    return _notification_response(container.approvals.approve_listing(identity, request.listing_id))


@router.post(
    "/contact/respond",
    response_model=NotificationResponse,
    response_model_exclude_none=True,
    summary="Respond to Contact Message",
    description="Email an admin's response to a contact-form message (admin only)."
)
def respond_to_contact(
    request: ContactResponseRequest,
    identity: VerifiedIdentity = Depends(get_identity),
    container: ServiceContainer = Depends(get_container),
):
    outcome = container.approvals.respond_to_contact(
        identity,
        user_email=request.user_email,
        response_message=request.response_message,
        user_name=request.user_name,
        original_message=request.original_message,
    )
    return _notification_response(outcome)
