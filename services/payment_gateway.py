"""
Payment gateway (Stripe).

Thin wrapper over the Stripe API that:
- Converts Stripe objects into the small domain handles the workflows read
- Scopes calls to a seller's connected account when one is given
- Turns Stripe failures into UpstreamUnavailable (never retried here, to
  avoid double charging; duplicate protection is the caller's idempotency key)
- Refuses to run without a secret key (ConfigurationError), rather than
  handing out a fake client secret
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional

import stripe

from domain.errors import ConfigurationError, UpstreamUnavailable
from domain.sale import CheckoutSessionHandle, PaymentIntentHandle, to_minor_units

logger = logging.getLogger(__name__)


class StripePaymentGateway:
    """Payment gateway backed by Stripe."""

    def __init__(self, secret_key: Optional[str], timeout: float = 10.0) -> None:
        """
        Args:
            secret_key: Stripe secret key. None disables every gateway operation.
            timeout: Per-request network timeout in seconds.
        """
        self._secret_key = secret_key
        # Stripe keeps its HTTP client in module state.
        stripe.default_http_client = stripe.RequestsClient(timeout=timeout)

    @property
    def configured(self) -> bool:
        return bool(self._secret_key)

    def _options(self, stripe_account: Optional[str] = None, idempotency_key: Optional[str] = None) -> Dict[str, Any]:
        if not self._secret_key:
            raise ConfigurationError("Stripe not configured - missing STRIPE_SECRET_KEY")

        options: Dict[str, Any] = {"api_key": self._secret_key}
        if stripe_account:
            options["stripe_account"] = stripe_account
        if idempotency_key:
            options["idempotency_key"] = idempotency_key
        return options

    def _upstream_error(self, action: str, error: stripe.StripeError) -> UpstreamUnavailable:
        logger.error("Stripe %s failed: %s", action, error)
        retryable = isinstance(error, stripe.APIConnectionError)
        message = getattr(error, "user_message", None) or str(error) or f"Failed to {action}"
        return UpstreamUnavailable(message, retryable=retryable)

    def create_payment_intent(
        self,
        amount: Decimal,
        currency: str,
        description: str,
        metadata: Dict[str, str],
        stripe_account: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> PaymentIntentHandle:
        """
        Create a payment intent for `amount` major units of `currency`.

        Returns:
            PaymentIntentHandle with the client secret to forward to the caller
        """
        options = self._options(stripe_account, idempotency_key)

        try:
            intent = stripe.PaymentIntent.create(
                amount=to_minor_units(amount),
                currency=currency.lower(),
                description=description,
                metadata=metadata,
                **options,
            )
        except stripe.StripeError as e:
            raise self._upstream_error("create payment intent", e) from e

        client_secret = getattr(intent, "client_secret", None)
        if not client_secret:
            raise UpstreamUnavailable(f"Payment intent {intent.id} has no client secret")

        return PaymentIntentHandle(
            payment_intent_id=intent.id,
            status=intent.status,
            client_secret=client_secret,
        )

    def retrieve_payment_intent(
        self,
        payment_intent_id: str,
        stripe_account: Optional[str] = None,
    ) -> PaymentIntentHandle:
        options = self._options(stripe_account)

        try:
            intent = stripe.PaymentIntent.retrieve(payment_intent_id, **options)
        except stripe.StripeError as e:
            raise self._upstream_error("retrieve payment intent", e) from e

        return PaymentIntentHandle(payment_intent_id=intent.id, status=intent.status)

    def create_checkout_session(
        self,
        price_id: str,
        customer_email: Optional[str],
        success_url: str,
        cancel_url: str,
        metadata: Dict[str, str],
        payment_intent_metadata: Dict[str, str],
    ) -> CheckoutSessionHandle:
        """Create a hosted checkout session for one unit of a fixed price."""
        options = self._options()

        params: Dict[str, Any] = {
            "mode": "payment",
            "line_items": [{"price": price_id, "quantity": 1}],
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata,
            "payment_intent_data": {"metadata": payment_intent_metadata},
        }
        if customer_email:
            params["customer_email"] = customer_email

        try:
            session = stripe.checkout.Session.create(**params, **options)
        except stripe.StripeError as e:
            raise self._upstream_error("create checkout session", e) from e

        return CheckoutSessionHandle(
            session_id=session.id,
            url=getattr(session, "url", None),
            payment_status=getattr(session, "payment_status", None),
        )

    def retrieve_checkout_session(self, session_id: str) -> CheckoutSessionHandle:
        options = self._options()

        try:
            session = stripe.checkout.Session.retrieve(session_id, **options)
        except stripe.StripeError as e:
            raise self._upstream_error("retrieve checkout session", e) from e

        payment_intent = getattr(session, "payment_intent", None)
        if payment_intent is not None and not isinstance(payment_intent, str):
            payment_intent = payment_intent.id

        return CheckoutSessionHandle(
            session_id=session.id,
            url=getattr(session, "url", None),
            payment_status=getattr(session, "payment_status", None),
            payment_intent_id=payment_intent,
            metadata=_plain_metadata(getattr(session, "metadata", None)),
        )

    def create_connected_account(self, email: str, individual: Dict[str, Any]) -> str:
        """
        Create an Express connected account for an Australian individual seller.

        Returns:
            The connected account id
        """
        options = self._options()

        try:
            account = stripe.Account.create(
                type="express",
                country="AU",
                email=email,
                business_type="individual",
                individual=individual,
                business_profile={
                    "product_description": "Online garage sale marketplace",
                },
                settings={
                    "payouts": {
                        "schedule": {"delay_days": 2, "interval": "daily"},
                    },
                },
                **options,
            )
        except stripe.StripeError as e:
            raise self._upstream_error("create connected account", e) from e

        return account.id

    def create_onboarding_link(self, account_id: str, refresh_url: str, return_url: str) -> str:
        options = self._options()

        try:
            link = stripe.AccountLink.create(
                account=account_id,
                type="account_onboarding",
                refresh_url=refresh_url,
                return_url=return_url,
                **options,
            )
        except stripe.StripeError as e:
            raise self._upstream_error("create onboarding link", e) from e

        return link.url

    def create_terminal_connection_token(self, stripe_account: Optional[str] = None) -> str:
        """Connection token used by a tap-to-pay reader to talk to Stripe Terminal."""
        options = self._options(stripe_account)

        try:
            token = stripe.terminal.ConnectionToken.create(**options)
        except stripe.StripeError as e:
            raise self._upstream_error("create terminal connection token", e) from e

        return token.secret


def _plain_metadata(metadata: Any) -> Dict[str, str]:
    if not metadata:
        return {}
    if not isinstance(metadata, Mapping) and hasattr(metadata, "to_dict"):
        metadata = metadata.to_dict()
    if not isinstance(metadata, Mapping):
        return {}
    return {str(key): str(value) for key, value in metadata.items()}


__all__ = ["StripePaymentGateway"]
