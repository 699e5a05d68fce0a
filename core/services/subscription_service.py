# =============================================================================
# core/services/subscription_service.py - Subscription Reconciliation
# =============================================================================
# Keeps agency_subscriptions in line with Stripe. Two paths feed it:
# - push: verified webhook events (app/routers/billing.py)
# - pull: the checkout success redirect, when the webhook hasn't landed yet
#   (core/services/directory_service.py)
#
# Both go through reconcile(subscription_id), which re-reads the live
# subscription from Stripe, so event payload ordering doesn't matter.
#
# Each write carries synced_at (unix seconds taken just before the Stripe
# read). An update only applies when the stored synced_at is null or not
# newer, so a slow writer holding an older observation can't clobber a
# newer one.
# =============================================================================

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable

import stripe
from supabase import Client

from app.exceptions import BillingProviderError
from core.models.subscription import (
    ACCESS_STATUSES,
    AgencySubscription,
    ReconcileResult,
    SubscriptionStatus,
)
from core.services.billing_service import StripeService, field, object_id

logger = logging.getLogger(__name__)

TABLE = "agency_subscriptions"

_STATUS_MAP = {
    "active": SubscriptionStatus.ACTIVE,
    "trialing": SubscriptionStatus.ACTIVE,
    "past_due": SubscriptionStatus.PAST_DUE,
    "canceled": SubscriptionStatus.CANCELED,
    "unpaid": SubscriptionStatus.CANCELED,
    "incomplete_expired": SubscriptionStatus.CANCELED,
}

SUBSCRIPTION_EVENTS = ("customer.subscription.updated", "customer.subscription.deleted")


def normalize_status(stripe_status: str | None) -> SubscriptionStatus:
    """Map a Stripe subscription status onto the application's four states."""
    return _STATUS_MAP.get(stripe_status or "", SubscriptionStatus.INACTIVE)


def extract_regions(subscription: Any) -> list[str]:
    """
    Region labels from `items.data[].price.product.metadata.region`, in item order.

    Products that weren't expanded (plain ID strings) carry no metadata and
    are skipped.
    """
    items = field(field(subscription, "items"), "data", []) or []
    regions: list[str] = []
    for item in items:
        product = field(field(item, "price"), "product")
        if product is None or isinstance(product, str):
            continue
        region = field(field(product, "metadata"), "region")
        if isinstance(region, str) and region.strip():
            regions.append(region.strip())
    return regions


def _rows_to_models(data: list[dict] | None) -> list[AgencySubscription]:
    return [AgencySubscription(**row) for row in data or []]


def latest_active_subscription(client: Client, agency_user_id: str) -> AgencySubscription | None:
    """The agency's most recently updated subscription that grants access."""
    result = (
        client.table(TABLE)
        .select("*")
        .eq("agency_user_id", str(agency_user_id))
        .in_("status", list(ACCESS_STATUSES))
        .order("updated_at", desc=True)
        .limit(1)
        .execute()
    )
    rows = _rows_to_models(result.data)
    return rows[0] if rows else None


def list_subscriptions(client: Client, agency_user_id: str) -> list[AgencySubscription]:
    """All of the agency's subscription rows, newest first."""
    result = (
        client.table(TABLE)
        .select("*")
        .eq("agency_user_id", str(agency_user_id))
        .order("updated_at", desc=True)
        .execute()
    )
    return _rows_to_models(result.data)


class SubscriptionService:
    """
    Writes agency_subscriptions from Stripe state.

    Uses the service-role client: webhook calls have no user session.
    """

    def __init__(
        self,
        client: Client,
        stripe_service: StripeService,
        clock: Callable[[], float] = time.time,
    ):
        self.client = client
        self.stripe = stripe_service
        self._clock = clock

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def save_for_agency(
        self,
        agency_user_id: str,
        *,
        status: SubscriptionStatus,
        regions: list[str],
        customer_id: str | None,
        subscription_id: str | None,
        observed_at: int,
    ) -> bool:
        """
        Upsert the agency's latest subscription row.

        Updates the most recently updated row in place, or inserts one if
        the agency has none.

        Returns:
            False when a newer observation was already stored (nothing written)
        """
        payload = {
            "status": status.value,
            "subscribed_continents": regions,
            "stripe_customer_id": customer_id,
            "stripe_subscription_id": subscription_id,
            "synced_at": observed_at,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }

        existing = (
            self.client.table(TABLE)
            .select("id, synced_at")
            .eq("agency_user_id", str(agency_user_id))
            .order("updated_at", desc=True)
            .limit(1)
            .execute()
        )

        if existing.data:
            row_id = existing.data[0]["id"]
            result = (
                self.client.table(TABLE)
                .update(payload)
                .eq("id", row_id)
                .or_(f"synced_at.is.null,synced_at.lte.{observed_at}")
                .execute()
            )
            if not result.data:
                logger.info(
                    f"Skipped stale subscription write for agency {agency_user_id} "
                    f"(observed_at={observed_at})"
                )
                return False
            logger.info(f"Updated subscription row {row_id} for agency {agency_user_id}: {status.value}")
            return True

        self.client.table(TABLE).insert({"agency_user_id": str(agency_user_id), **payload}).execute()
        logger.info(f"Inserted subscription row for agency {agency_user_id}: {status.value}")
        return True

    # -------------------------------------------------------------------------
    # Reconciliation
    # -------------------------------------------------------------------------

    def _agency_for(self, column: str, value: str | None) -> str | None:
        if not value:
            return None
        result = (
            self.client.table(TABLE)
            .select("agency_user_id")
            .eq(column, value)
            .limit(1)
            .execute()
        )
        if result.data:
            return result.data[0]["agency_user_id"]
        return None

    def _resolve_agency(
        self,
        explicit: str | None,
        subscription_id: str,
        customer_id: str | None,
        subscription: Any,
    ) -> str | None:
        """Explicit id, then stored subscription id, then stored customer id, then metadata."""
        if explicit:
            return explicit
        return (
            self._agency_for("stripe_subscription_id", subscription_id)
            or self._agency_for("stripe_customer_id", customer_id)
            or field(field(subscription, "metadata"), "user_id")
        )

    def reconcile(self, subscription_id: str, agency_user_id: str | None = None) -> ReconcileResult:
        """
        Re-read a Stripe subscription and store its status and regions.

        Args:
            subscription_id: Stripe subscription ID
            agency_user_id: Owning agency when the caller already knows it

        Returns:
            ReconcileResult (matched=False when no agency could be resolved)

        Raises:
            BillingProviderError: If the Stripe read fails
        """
        observed_at = int(self._clock())
        try:
            subscription = self.stripe.retrieve_subscription(subscription_id)
        except stripe.StripeError as e:
            logger.error(f"Could not retrieve subscription {subscription_id}: {e}")
            raise BillingProviderError(str(e))

        status = normalize_status(field(subscription, "status"))
        regions = extract_regions(subscription)
        customer_id = object_id(field(subscription, "customer"))

        owner = self._resolve_agency(agency_user_id, subscription_id, customer_id, subscription)
        if not owner:
            logger.warning(f"No agency found for subscription {subscription_id}; not saved")
            return ReconcileResult(subscription_id=subscription_id, matched=False, status=status, regions=regions)

        applied = self.save_for_agency(
            owner,
            status=status,
            regions=regions,
            customer_id=customer_id,
            subscription_id=subscription_id,
            observed_at=observed_at,
        )
        return ReconcileResult(
            subscription_id=subscription_id,
            applied=applied,
            agency_user_id=owner,
            status=status,
            regions=regions,
        )

    def sync_from_checkout_session(self, session_id: str, agency_user_id: str) -> ReconcileResult | None:
        """
        Reconcile from a checkout redirect.

        Returns None when the session doesn't describe a subscription owned
        by `agency_user_id`.
        """
        session = self.stripe.retrieve_checkout_session(session_id)

        if field(session, "mode") != "subscription":
            logger.info(f"Checkout session {session_id} is not a subscription session")
            return None

        owner = field(field(session, "metadata"), "user_id")
        if owner and str(owner) != str(agency_user_id):
            logger.warning(f"Checkout session {session_id} belongs to another user")
            return None

        customer_id = object_id(field(session, "customer"))
        subscription_id = object_id(field(session, "subscription"))
        if not customer_id or not subscription_id:
            logger.info(f"Checkout session {session_id} has no customer/subscription yet")
            return None

        return self.reconcile(subscription_id, agency_user_id=str(agency_user_id))

    # -------------------------------------------------------------------------
    # Webhooks
    # -------------------------------------------------------------------------

    def handle_event(self, event: Any) -> dict[str, Any]:
        """
        Apply a verified Stripe event.

        Returns:
            Acknowledgement dict for the webhook response
        """
        event_type = field(event, "type")
        obj = field(field(event, "data"), "object")
        result: ReconcileResult | None = None

        if event_type == "checkout.session.completed":
            subscription_id = object_id(field(obj, "subscription"))
            user_id = field(field(obj, "metadata"), "user_id")
            if subscription_id and user_id:
                result = self.reconcile(subscription_id, agency_user_id=str(user_id))
            else:
                logger.info("checkout.session.completed without subscription or user_id; skipped")

        elif event_type in SUBSCRIPTION_EVENTS:
            subscription_id = object_id(obj)
            if subscription_id:
                result = self.reconcile(subscription_id)

        elif event_type == "invoice.payment_failed":
            subscription_id = object_id(field(obj, "subscription")) or object_id(
                field(field(field(obj, "parent"), "subscription_details"), "subscription")
            )
            if subscription_id:
                result = self.reconcile(subscription_id)

        else:
            logger.debug(f"Ignoring Stripe event type {event_type}")

        return {
            "received": True,
            "type": event_type,
            "handled": result is not None,
            "result": result.model_dump(mode="json") if result else None,
        }
