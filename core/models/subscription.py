# =============================================================================
# core/models/subscription.py - Agency Subscription Schemas
# =============================================================================
# These models define:
# - SubscriptionStatus: the four application-level billing states
# - AgencySubscription: one agency_subscriptions row
# - CheckoutRequest / CheckoutResponse: hosted checkout contract
# - ReconcileResult: what a reconciliation pass did
#
# Stripe's status vocabulary is wider than ours; see
# core.services.subscription_service.normalize_status for the mapping.
# =============================================================================

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class SubscriptionStatus(str, Enum):
    """
    Application subscription states.

    - active: paid or trialing; directory access granted
    - past_due: a payment failed; Stripe is retrying
    - canceled: ended (canceled, unpaid, incomplete_expired)
    - inactive: anything else (incomplete, paused, unknown)
    """
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    INACTIVE = "inactive"


# Stored statuses that unlock the directory. "trialing" is kept for rows
# written before statuses were normalized.
ACCESS_STATUSES = ("active", "trialing")


class AgencySubscription(BaseModel):
    """One row of agency_subscriptions."""

    id: UUID | int | None = None
    agency_user_id: UUID
    status: str = SubscriptionStatus.INACTIVE.value
    subscribed_continents: list[str] = Field(default_factory=list)
    stripe_customer_id: str | None = None
    stripe_subscription_id: str | None = None
    synced_at: int | None = None
    updated_at: datetime | None = None

    @property
    def grants_access(self) -> bool:
        return self.status in ACCESS_STATUSES


class CheckoutRequest(BaseModel):
    """
    Start a hosted checkout for one or more region prices.

    Example:
        {"price_ids": ["price_europe_monthly", "price_canada_monthly"]}
    """
    price_ids: list[str] = Field(..., min_length=1, max_length=20)


class CheckoutResponse(BaseModel):
    """Hosted checkout URL to redirect the browser to."""
    url: str


class ReconcileResult(BaseModel):
    """
    Outcome of one reconciliation pass.

    matched is false when no agency could be tied to the Stripe subscription;
    applied is false when a newer observation was already stored.
    """
    subscription_id: str
    matched: bool = True
    applied: bool = False
    agency_user_id: UUID | None = None
    status: SubscriptionStatus | None = None
    regions: list[str] = Field(default_factory=list)


class SubscriptionOverview(BaseModel):
    """The caller's subscription rows, newest first, plus the current one."""
    current: AgencySubscription | None = None
    rows: list[AgencySubscription] = Field(default_factory=list)
