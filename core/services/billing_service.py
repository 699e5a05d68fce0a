# =============================================================================
# core/services/billing_service.py - Stripe Gateway
# =============================================================================
# Thin wrapper over the Stripe calls the API makes:
# - hosted Checkout Session creation (subscription mode, one item per region)
# - webhook signature verification
# - subscription / checkout session retrieval for reconciliation
#
# The API key is passed on every call instead of being set on the global
# `stripe` module, so nothing here mutates process-wide state.
# =============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import stripe

from app.exceptions import BillingNotConfiguredError, BillingProviderError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StripeConfig:
    secret_key: str
    webhook_secret: str | None
    checkout_success_url: str
    checkout_cancel_url: str
    allowed_price_ids: frozenset[str] = frozenset()


def stripe_config_from_settings(settings: Any) -> StripeConfig:
    """
    Load Stripe config from Settings.

    Fail closed: without a secret key no billing call can proceed.
    """
    if not settings.STRIPE_SECRET_KEY:
        raise BillingNotConfiguredError(["STRIPE_SECRET_KEY"])

    base = settings.SITE_URL.rstrip("/")
    return StripeConfig(
        secret_key=settings.STRIPE_SECRET_KEY,
        webhook_secret=settings.STRIPE_WEBHOOK_SECRET or None,
        # Stripe substitutes {CHECKOUT_SESSION_ID} on redirect
        checkout_success_url=f"{base}/directory?success=true&session_id={{CHECKOUT_SESSION_ID}}",
        checkout_cancel_url=f"{base}/subscribe?canceled=true",
        allowed_price_ids=frozenset(settings.allowed_price_ids),
    )


def field(obj: Any, name: str, default: Any = None) -> Any:
    """
    Read `name` from a StripeObject, a plain dict or a simple object.

    StripeObject keys are read by subscript so names like "items" don't
    resolve to dict methods.
    """
    if obj is None:
        return default
    try:
        value = obj[name]
    except (KeyError, TypeError, IndexError):
        return getattr(obj, name, default)
    return default if value is None else value


def object_id(ref: Any) -> str | None:
    """ID of an expandable reference (either an ID string or an expanded object)."""
    if ref is None:
        return None
    if isinstance(ref, str):
        return ref or None
    value = field(ref, "id")
    return str(value) if value else None


class StripeService:
    """Stripe calls used by checkout, webhooks and reconciliation."""

    def __init__(self, cfg: StripeConfig) -> None:
        self.cfg = cfg

    @classmethod
    def from_settings(cls, settings: Any) -> "StripeService":
        return cls(stripe_config_from_settings(settings))

    def create_checkout_session(
        self,
        *,
        user_id: str,
        email: str | None,
        price_ids: list[str],
    ) -> str:
        """
        Create a subscription-mode Checkout Session with one line item per price.

        The agency user id is stored on both the session and the subscription
        metadata so webhooks can tie later events back to the agency.

        Returns:
            Hosted checkout URL

        Raises:
            BillingProviderError: If Stripe rejects the request
        """
        params: dict[str, Any] = {
            "mode": "subscription",
            "line_items": [{"price": price_id, "quantity": 1} for price_id in price_ids],
            "success_url": self.cfg.checkout_success_url,
            "cancel_url": self.cfg.checkout_cancel_url,
            "client_reference_id": user_id,
            "metadata": {"user_id": user_id},
            "subscription_data": {"metadata": {"user_id": user_id}},
        }
        if email:
            params["customer_email"] = email

        try:
            session = stripe.checkout.Session.create(api_key=self.cfg.secret_key, **params)
        except stripe.StripeError as e:
            logger.error(f"Stripe checkout error: {e}")
            raise BillingProviderError(getattr(e, "user_message", None) or str(e))

        logger.info(f"Created checkout session {field(session, 'id')} for user {user_id}")
        return str(field(session, "url"))

    def construct_event(self, *, payload: bytes, sig_header: str) -> Any:
        """
        Verify a webhook signature and parse the event.

        Raises:
            BillingNotConfiguredError: If no webhook secret is configured
            stripe.SignatureVerificationError / ValueError: On a bad signature or body
        """
        if not self.cfg.webhook_secret:
            raise BillingNotConfiguredError(["STRIPE_WEBHOOK_SECRET"])
        return stripe.Webhook.construct_event(
            payload=payload,
            sig_header=sig_header,
            secret=self.cfg.webhook_secret,
        )

    def retrieve_subscription(self, subscription_id: str) -> Any:
        """Subscription with each item's price.product expanded (region metadata lives there)."""
        return stripe.Subscription.retrieve(
            subscription_id,
            api_key=self.cfg.secret_key,
            expand=["items.data.price.product"],
        )

    def retrieve_checkout_session(self, session_id: str) -> Any:
        return stripe.checkout.Session.retrieve(
            session_id,
            api_key=self.cfg.secret_key,
            expand=["subscription"],
        )
