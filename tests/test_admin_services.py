"""
Tests for user administration, listing approval, checkout and email.

Covers contract rules:
- Admin-only operations raise Forbidden and change nothing for non-admins.
- A user missing from the identity provider still has their profile removed.
- Email failures never undo an approval; they are reported instead.
- A checkout is honoured once, and only when paid for its own listing.
- User-supplied text is HTML-escaped in email bodies.
"""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import patch

import pytest

from domain.errors import (
    ConfigurationError,
    Forbidden,
    IdentityMismatch,
    InvalidInput,
    NotFound,
    PaymentNotConfirmed,
)
from domain.listing import ListingStatus
from domain.user import UserProfile, VerifiedIdentity
from fakes import FakeListingRepository, FakeUserRepository, FakeWorld
from api.config import Settings
from services.email_service import EmailService

ADMIN = VerifiedIdentity("admin-1", "admin@example.com")
SELLER = VerifiedIdentity("seller-1", "seller@example.com")


@pytest.fixture
def world():
    users = FakeUserRepository(
        UserProfile("admin-1", email="admin@example.com", role="admin"),
        UserProfile("seller-1", email="seller@example.com", role="user"),
    )
    listings = FakeListingRepository(
        {"id": "sale-1", "title": "Moving <sale>", "status": ListingStatus.PENDING_APPROVAL, "created_by": "seller@example.com"},
        {"id": "sale-2", "title": "Orphan", "status": ListingStatus.DRAFT},
    )
    world = FakeWorld(users=users, listings=listings)
    world.identity.auth_users.update({"admin-1", "seller-1"})
    return world


# ============================================================================
# User administration
# ============================================================================

def test_non_admin_cannot_delete_users(world) -> None:
    container = world.container()

    with pytest.raises(Forbidden):
        container.user_admin.delete_user(SELLER, "admin-1")

    assert world.users.get_profile("admin-1") is not None
    assert world.identity.deleted == []


def test_admin_deletes_auth_user_and_profile(world) -> None:
    message = world.container().user_admin.delete_user(ADMIN, "seller-1")

    assert message == "User deleted successfully"
    assert world.identity.deleted == ["seller-1"]
    assert world.users.get_profile("seller-1") is None


def test_profile_removed_when_auth_user_already_gone(world) -> None:
    world.identity.auth_users.discard("seller-1")

    message = world.container().user_admin.delete_user(ADMIN, "seller-1")

    assert message == "User removed from database"
    assert world.users.get_profile("seller-1") is None


def test_delete_requires_user_id(world) -> None:
    with pytest.raises(InvalidInput):
        world.container().user_admin.delete_user(ADMIN, "")


# ============================================================================
# Listing approval
# ============================================================================

def test_approve_listing_activates_and_emails_owner(world) -> None:
    outcome = world.container().approvals.approve_listing(ADMIN, "sale-1")

    assert outcome.email_sent
    assert outcome.email_error is None
    assert world.listings.listings["sale-1"]["status"] == ListingStatus.ACTIVE
    assert world.email.sent == [{"kind": "approved", "to": "seller@example.com", "title": "Moving <sale>"}]


def test_approval_stands_when_email_fails(world) -> None:
    world.email.succeed = False

    outcome = world.container().approvals.approve_listing(ADMIN, "sale-1")

    assert not outcome.email_sent
    assert "Failed" in outcome.email_error
    assert world.listings.listings["sale-1"]["status"] == ListingStatus.ACTIVE


def test_approval_without_owner_email(world) -> None:
    outcome = world.container().approvals.approve_listing(ADMIN, "sale-2")

    assert not outcome.email_sent
    assert world.listings.listings["sale-2"]["status"] == ListingStatus.ACTIVE
    assert world.email.sent == []


def test_non_admin_cannot_approve(world) -> None:
    with pytest.raises(Forbidden):
        world.container().approvals.approve_listing(SELLER, "sale-1")

    assert world.listings.listings["sale-1"]["status"] == ListingStatus.PENDING_APPROVAL


def test_approve_unknown_listing(world) -> None:
    with pytest.raises(NotFound):
        world.container().approvals.approve_listing(ADMIN, "missing")


def test_respond_to_contact(world) -> None:
    outcome = world.container().approvals.respond_to_contact(
        ADMIN, user_email="buyer@example.com", response_message="Yes, still available"
    )

    assert outcome.email_sent
    assert world.email.sent[0]["to"] == "buyer@example.com"


# ============================================================================
# Listing checkout
# ============================================================================

def test_create_checkout_urls(world) -> None:
    url = world.container().checkout.create_checkout(
        SELLER, sale_id="sale-1", sale_title="Moving", origin="https://app.example.com/"
    )

    assert url == "https://checkout.stripe.test/cs_1"
    created = world.gateway.created_sessions[0]
    assert created["price_id"] == "price_listing"
    assert created["customer_email"] == "seller@example.com"
    assert created["success_url"] == "https://app.example.com/Payment?id=sale-1&session_id={CHECKOUT_SESSION_ID}"
    assert created["cancel_url"] == "https://app.example.com/CreateListing?edit=sale-1"
    assert created["metadata"] == {"saleId": "sale-1", "saleTitle": "Moving"}


def test_create_checkout_falls_back_to_frontend_url(world) -> None:
    world.container().checkout.create_checkout(SELLER, sale_id="sale-1")

    assert world.gateway.created_sessions[0]["cancel_url"] == "http://localhost:5173/CreateListing?edit=sale-1"


def test_create_checkout_without_price_is_configuration_error(world) -> None:
    container = world.container(Settings(stripe_listing_price_id=None))

    with pytest.raises(ConfigurationError):
        container.checkout.create_checkout(SELLER, sale_id="sale-1")


def test_verify_unpaid_checkout_changes_nothing(world) -> None:
    with pytest.raises(PaymentNotConfirmed):
        world.container().checkout.verify_checkout(SELLER, session_id="cs_1", sale_id="sale-1")

    assert world.listings.payments == []
    assert world.listings.listings["sale-1"].get("payment_status") is None


def test_verify_paid_checkout_queues_listing(world) -> None:
    container = world.container()
    container.checkout.create_checkout(SELLER, sale_id="sale-2")
    world.gateway.session_statuses["cs_1"] = "paid"

    container.checkout.verify_checkout(SELLER, session_id="cs_1", sale_id="sale-2")

    payment = world.listings.payments[0]
    assert payment["amount"] == Decimal("10.00")
    assert payment["user_uid"] == "seller-1"
    assert payment["transaction_id"] == "pi_for_cs_1"
    listing = world.listings.listings["sale-2"]
    assert listing["status"] == ListingStatus.PENDING_APPROVAL
    assert listing["payment_status"] == "paid"


def test_paid_session_cannot_be_used_for_another_listing(world) -> None:
    container = world.container()
    container.checkout.create_checkout(SELLER, sale_id="sale-1")
    world.gateway.session_statuses["cs_1"] = "paid"

    with pytest.raises(IdentityMismatch):
        container.checkout.verify_checkout(SELLER, session_id="cs_1", sale_id="sale-2")

    assert world.listings.payments == []
    assert world.listings.listings["sale-2"]["status"] == ListingStatus.DRAFT
    assert world.listings.listings["sale-2"].get("payment_status") is None


def test_verifying_a_session_twice_records_one_payment(world) -> None:
    container = world.container()
    container.checkout.create_checkout(SELLER, sale_id="sale-2")
    world.gateway.session_statuses["cs_1"] = "paid"

    container.checkout.verify_checkout(SELLER, session_id="cs_1", sale_id="sale-2")
    container.checkout.verify_checkout(SELLER, session_id="cs_1", sale_id="sale-2")

    assert len(world.listings.payments) == 1


# ============================================================================
# Email service
# ============================================================================

def test_unconfigured_email_service_reports_failure() -> None:
    service = EmailService(api_key=None)

    with patch("resend.Emails.send") as send:
        result = service.send_listing_approved("seller@example.com", "Moving")

    send.assert_not_called()
    assert not result.success
    assert result.error == "Email service not configured"


def test_email_sent_with_escaped_content() -> None:
    service = EmailService(api_key="re_test")

    with patch("resend.Emails.send", return_value={"id": "em_1"}) as send:
        result = service.send_contact_response(
            "buyer@example.com", "<b>Pat</b>", "Is it <script>x</script>?", "Yes & no"
        )

    assert result.success
    assert result.message_id == "em_1"
    params = send.call_args.args[0]
    assert params["to"] == ["buyer@example.com"]
    assert params["from"] == "Urban Garage Sale <notification@urbangaragesales.com.au>"
    assert "&lt;script&gt;" in params["html"]
    assert "<script>" not in params["html"]
    assert "&lt;b&gt;Pat&lt;/b&gt;" in params["html"]
    assert "Yes &amp; no" in params["html"]


def test_email_failure_returns_result() -> None:
    service = EmailService(api_key="re_test", retry_delay=0)

    with patch("resend.Emails.send", side_effect=RuntimeError("503 Service Unavailable")) as send:
        result = service.send_listing_approved("seller@example.com", "Moving")

    assert send.call_count == 3
    assert not result.success
    assert "503" in result.error
