"""Stripe implementation of the payment provider protocol.

Every call passes the secret key and API version as request options, so the
module-level ``stripe.api_key`` is never touched.
"""
from __future__ import annotations

import logging
from typing import Any, Dict

import stripe

from ..config import BillingConfig
from .errors import ConfigurationMissing, ProviderError, ProviderRejected, Unavailable
from .models import USER_METADATA_KEY, BillingCustomerRef

logger = logging.getLogger(__name__)

_TRANSIENT_ERRORS = (stripe.APIConnectionError, stripe.RateLimitError, stripe.APIError)


class StripePaymentProvider:
    """Creates Stripe customers and subscription checkout sessions."""

    def __init__(self, config: BillingConfig) -> None:
        self._config = config

    def _request_options(self) -> Dict[str, Any]:
        if not self._config.secret_key:
            logger.error("STRIPE_SECRET_KEY is not configured")
            raise ConfigurationMissing(
                message="STRIPE_SECRET_KEY is not configured",
                missing=("STRIPE_SECRET_KEY",),
            )
        return {"api_key": self._config.secret_key, "stripe_version": self._config.api_version}

    def create_customer(self, *, user_id: str, email: str) -> BillingCustomerRef:
        options = self._request_options()
        if self._config.customer_idempotency:
            options["idempotency_key"] = f"customer-create-{user_id}"

        try:
            customer = stripe.Customer.create(
                email=email,
                metadata={USER_METADATA_KEY: user_id},
                **options,
            )
        except _TRANSIENT_ERRORS as exc:
            raise Unavailable(message=f"Failed to create Stripe customer: {exc}") from exc
        except stripe.StripeError as exc:
            raise ProviderRejected(message=f"Stripe rejected customer creation: {exc}") from exc

        logger.info("Created Stripe customer %s for user %s", customer.id, user_id)
        return BillingCustomerRef(customer_id=customer.id, user_id=user_id, email=email)

    def create_checkout_session(
        self,
        *,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        metadata: Dict[str, str],
    ) -> Dict[str, object]:
        options = self._request_options()
        try:
            session = stripe.checkout.Session.create(
                customer=customer_id,
                payment_method_types=["card"],
                line_items=[{"price": price_id, "quantity": 1}],
                mode="subscription",
                success_url=success_url,
                cancel_url=cancel_url,
                metadata=dict(metadata),
                **options,
            )
        except _TRANSIENT_ERRORS as exc:
            raise Unavailable(message=f"Failed to create checkout session: {exc}") from exc
        except stripe.StripeError as exc:
            raise ProviderError(message=f"Stripe rejected checkout session: {exc}") from exc

        if not session.url:
            raise ProviderError(message=f"Checkout session {session.id} has no redirect URL")
        return {"id": session.id, "url": session.url}


__all__ = ["StripePaymentProvider"]
