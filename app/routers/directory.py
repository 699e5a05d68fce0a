# =============================================================================
# app/routers/directory.py - Agency Directory Endpoints
# =============================================================================
# Endpoints:
# - GET  /directory                      Filtered, paged search (subscribers)
# - GET  /directory/options              Sidebar dropdown values
# - GET  /directory/quota                Monthly contact-reveal usage
# - GET  /directory/{ambassador_id}      One profile
# - POST /directory/{ambassador_id}/reveal  Reveal contact details
#
# Search, options and detail are limited to the countries covered by the
# caller's subscribed regions.
# =============================================================================

import logging
from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Request

from app.auth import AuthUser, get_current_user
from app.config import settings
from app.dependencies import OptionalStripeDep, SupabaseDep
from core.models.directory import DirectoryOptions, DirectoryPage, QuotaSnapshot, RevealResponse
from core.models.subscription import AgencySubscription
from core.services.billing_service import StripeService
from core.services.contact_service import ContactService
from core.services.directory_service import (
    DirectoryAccessService,
    DirectoryService,
    parse_filters,
)
from core.services.subscription_service import SubscriptionService
from lib.supabase_client import SupabaseClients

logger = logging.getLogger(__name__)

router = APIRouter()


def _subscription(
    clients: SupabaseClients,
    user: AuthUser,
    stripe_service: Optional[StripeService],
    success: Optional[str] = None,
    session_id: Optional[str] = None,
) -> AgencySubscription:
    """Resolve the caller's subscription, syncing from Stripe on a checkout redirect."""
    redirected = (success or "").lower() == "true" and bool(session_id)
    subscriptions = None
    if redirected and stripe_service is not None:
        subscriptions = SubscriptionService(clients.admin(), stripe_service)

    access = DirectoryAccessService(clients.for_user(user.access_token), subscriptions)
    return access.resolve_subscription(str(user.id), success=redirected, session_id=session_id)


@router.get("", response_model=DirectoryPage)
async def search_directory(
    request: Request,
    clients: SupabaseDep,
    stripe_service: OptionalStripeDep,
    user: AuthUser = Depends(get_current_user),
    success: Optional[str] = None,
    session_id: Optional[str] = None,
) -> DirectoryPage:
    """
    Search ambassadors in the caller's subscribed regions.

    Query params: q, country, state, experience, availability, vehicle,
    travel, role_ids, skill_ids, language_ids (repeat or comma-separate),
    match=any|all, page, per.

    Raises:
        402: No active subscription
        403: Subscription covers no directory region
        502: Directory read failed
    """
    subscription = _subscription(clients, user, stripe_service, success, session_id)
    allowed = DirectoryAccessService.allowed_countries(subscription)
    filters = parse_filters(request.query_params, settings)

    page = DirectoryService(clients.for_user(user.access_token)).search(
        filters, allowed, subscription.subscribed_continents
    )
    logger.debug(f"Directory page {filters.page} for {user.id}: {len(page.items)} rows")
    return page


@router.get("/options", response_model=DirectoryOptions)
async def directory_options(
    clients: SupabaseDep,
    user: AuthUser = Depends(get_current_user),
) -> DirectoryOptions:
    """Country/state dropdowns (within subscribed regions) and tag vocabularies."""
    subscription = _subscription(clients, user, None)
    allowed = DirectoryAccessService.allowed_countries(subscription)
    return DirectoryService(clients.for_user(user.access_token)).options(allowed)


@router.get("/quota", response_model=Optional[QuotaSnapshot])
async def reveal_quota(
    clients: SupabaseDep,
    user: AuthUser = Depends(get_current_user),
) -> Optional[QuotaSnapshot]:
    """Contact reveals used and remaining this month."""
    return ContactService(clients.for_user(user.access_token)).quota()


@router.get("/{ambassador_id}")
async def get_ambassador(
    ambassador_id: UUID,
    clients: SupabaseDep,
    user: AuthUser = Depends(get_current_user),
) -> dict[str, Any]:
    """
    One directory profile.

    Raises:
        404: Missing, or outside the caller's subscribed regions
        422: ambassador_id is not a UUID
    """
    subscription = _subscription(clients, user, None)
    allowed = DirectoryAccessService.allowed_countries(subscription)
    return DirectoryService(clients.for_user(user.access_token)).get_profile(str(ambassador_id), allowed)


@router.post("/{ambassador_id}/reveal", response_model=RevealResponse)
async def reveal_contact(
    ambassador_id: UUID,
    clients: SupabaseDep,
    user: AuthUser = Depends(get_current_user),
) -> RevealResponse:
    """
    Reveal an ambassador's email, phone and Instagram handle.

    Counts against the agency's monthly quota.

    Raises:
        402: No active subscription
        429: Monthly quota used up
    """
    result = ContactService(clients.for_user(user.access_token)).reveal(str(ambassador_id))
    logger.info(f"User {user.id} revealed contact for ambassador {ambassador_id}")
    return result
