"""
Tests for `services/payment_gateway.py`.

Stripe itself is patched out; these tests check what is sent to it and how
its answers and failures are translated.
"""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
import stripe

from domain.errors import ConfigurationError, UpstreamUnavailable
from services.payment_gateway import StripePaymentGateway


@pytest.fixture
def gateway():
    return StripePaymentGateway("sk_test_123", timeout=3.0)


def test_create_payment_intent_sends_minor_units(gateway) -> None:
    intent = MagicMock(id="pi_1", status="requires_payment_method", client_secret="pi_1_secret")

    with patch("stripe.PaymentIntent.create", return_value=intent) as create:
        handle = gateway.create_payment_intent(
            amount=Decimal("25.50"),
            currency="AUD",
            description="Urban Pay Sale - Lamp",
            metadata={"sellerId": "seller-1", "saleDescription": "Lamp"},
            stripe_account="acct_1",
            idempotency_key="key-1",
        )

    create.assert_called_once_with(
        amount=2550,
        currency="aud",
        description="Urban Pay Sale - Lamp",
        metadata={"sellerId": "seller-1", "saleDescription": "Lamp"},
        api_key="sk_test_123",
        stripe_account="acct_1",
        idempotency_key="key-1",
    )
    assert handle.payment_intent_id == "pi_1"
    assert handle.client_secret == "pi_1_secret"


def test_optional_request_options_are_omitted(gateway) -> None:
    intent = MagicMock(id="pi_1", status="requires_payment_method", client_secret="s")

    with patch("stripe.PaymentIntent.create", return_value=intent) as create:
        gateway.create_payment_intent(Decimal("1"), "aud", "d", {})

    kwargs = create.call_args.kwargs
    assert "stripe_account" not in kwargs
    assert "idempotency_key" not in kwargs


def test_missing_secret_key_is_configuration_error() -> None:
    gateway = StripePaymentGateway(None)

    with patch("stripe.PaymentIntent.create") as create:
        with pytest.raises(ConfigurationError):
            gateway.create_payment_intent(Decimal("10"), "aud", "d", {})

    create.assert_not_called()
    assert not gateway.configured


def test_stripe_error_is_upstream_unavailable(gateway) -> None:
    with patch("stripe.PaymentIntent.retrieve", side_effect=stripe.InvalidRequestError("No such payment_intent", "id")):
        with pytest.raises(UpstreamUnavailable) as excinfo:
            gateway.retrieve_payment_intent("pi_missing")

    assert not excinfo.value.retryable


def test_connection_error_is_retryable(gateway) -> None:
    with patch("stripe.PaymentIntent.create", side_effect=stripe.APIConnectionError("Network down")):
        with pytest.raises(UpstreamUnavailable) as excinfo:
            gateway.create_payment_intent(Decimal("10"), "aud", "d", {})

    assert excinfo.value.retryable
    assert excinfo.value.to_payload()["retryable"] is True


def test_retrieve_payment_intent_reads_status(gateway) -> None:
    with patch("stripe.PaymentIntent.retrieve", return_value=MagicMock(id="pi_1", status="succeeded")) as retrieve:
        handle = gateway.retrieve_payment_intent("pi_1", stripe_account="acct_1")

    retrieve.assert_called_once_with("pi_1", api_key="sk_test_123", stripe_account="acct_1")
    assert handle.is_confirmed


def test_checkout_session_for_one_unit_of_price(gateway) -> None:
    session = MagicMock(id="cs_1", url="https://checkout.stripe.test/cs_1", payment_status="unpaid")

    with patch("stripe.checkout.Session.create", return_value=session) as create:
        handle = gateway.create_checkout_session(
            price_id="price_1",
            customer_email="seller@example.com",
            success_url="https://app/Payment?id=s1&session_id={CHECKOUT_SESSION_ID}",
            cancel_url="https://app/CreateListing?edit=s1",
            metadata={"saleId": "s1"},
            payment_intent_metadata={"saleId": "s1"},
        )

    kwargs = create.call_args.kwargs
    assert kwargs["mode"] == "payment"
    assert kwargs["line_items"] == [{"price": "price_1", "quantity": 1}]
    assert kwargs["customer_email"] == "seller@example.com"
    assert kwargs["payment_intent_data"] == {"metadata": {"saleId": "s1"}}
    assert handle.url == "https://checkout.stripe.test/cs_1"


def test_retrieve_checkout_session_paid(gateway) -> None:
    session = MagicMock(id="cs_1", url=None, payment_status="paid", payment_intent="pi_9")

    with patch("stripe.checkout.Session.retrieve", return_value=session):
        handle = gateway.retrieve_checkout_session("cs_1")

    assert handle.is_paid
    assert handle.payment_intent_id == "pi_9"


def test_intent_without_client_secret_is_upstream_error(gateway) -> None:
    intent = MagicMock(id="pi_1", status="requires_payment_method", client_secret=None)

    with patch("stripe.PaymentIntent.create", return_value=intent):
        with pytest.raises(UpstreamUnavailable):
            gateway.create_payment_intent(Decimal("25"), "aud", "d", {})


def test_retrieve_checkout_session_carries_metadata(gateway) -> None:
    session = MagicMock(
        id="cs_1", url=None, payment_status="paid", payment_intent="pi_9", metadata={"saleId": "s1", "saleTitle": ""}
    )

    with patch("stripe.checkout.Session.retrieve", return_value=session):
        handle = gateway.retrieve_checkout_session("cs_1")

    assert handle.metadata_value("saleId") == "s1"
    assert handle.metadata_value("missing") is None
