# =============================================================================
# app/routers/billing.py - Stripe Billing Endpoints
# =============================================================================
# Endpoints:
# - POST /billing/checkout      Start a hosted checkout for region prices
# - POST /billing/webhook       Stripe event receiver (signature verified)
# - GET  /billing/subscription  The caller's subscription rows
# =============================================================================

import logging

import stripe
from fastapi import APIRouter, Depends, HTTPException, Request

from app.auth import AuthUser, get_current_user
from app.config import settings
from app.dependencies import StripeDep, SupabaseDep
from app.exceptions import InvalidRequestError
from core.models.subscription import CheckoutRequest, CheckoutResponse, SubscriptionOverview
from core.services.subscription_service import SubscriptionService, list_subscriptions

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/checkout", response_model=CheckoutResponse)
async def create_checkout(
    body: CheckoutRequest,
    stripe_service: StripeDep,
    user: AuthUser = Depends(get_current_user),
) -> CheckoutResponse:
    """
    Create a Stripe Checkout Session for the selected region prices.

    Returns:
        CheckoutResponse with the hosted checkout URL

    Raises:
        400: If a price isn't on the allow-list
        502: If Stripe rejects the request
    """
    price_ids = list(dict.fromkeys(p.strip() for p in body.price_ids if p.strip()))
    if not price_ids:
        raise InvalidRequestError("No prices selected", suggestion="Pick at least one region")

    allowed = settings.allowed_price_ids
    if allowed:
        unknown = [p for p in price_ids if p not in allowed]
        if unknown:
            raise InvalidRequestError(
                f"Unknown price IDs: {', '.join(unknown)}",
                suggestion="Only prices listed on the subscribe page can be purchased",
            )

    url = stripe_service.create_checkout_session(
        user_id=str(user.id),
        email=user.email,
        price_ids=price_ids,
    )
    return CheckoutResponse(url=url)


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    clients: SupabaseDep,
    stripe_service: StripeDep,
) -> dict:
    """
    Stripe webhook endpoint.

    Verifies the signature over the raw body, then reconciles the affected
    subscription. Failures after verification return 500 so Stripe retries.
    """
    sig = request.headers.get("stripe-signature")
    if not sig:
        raise HTTPException(status_code=400, detail="Missing Stripe-Signature header")

    payload = await request.body()
    try:
        event = stripe_service.construct_event(payload=payload, sig_header=sig)
    except (ValueError, stripe.SignatureVerificationError) as e:
        logger.warning(f"Rejected Stripe webhook: {e}")
        raise HTTPException(status_code=400, detail="Invalid webhook signature")

    service = SubscriptionService(clients.admin(), stripe_service)
    try:
        return service.handle_event(event)
    except Exception as e:
        logger.exception(f"Stripe webhook processing failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/subscription", response_model=SubscriptionOverview)
async def get_subscription(
    clients: SupabaseDep,
    user: AuthUser = Depends(get_current_user),
) -> SubscriptionOverview:
    """
    The caller's agency subscription rows, newest first.

    `current` is the newest row that grants directory access, if any.
    """
    rows = list_subscriptions(clients.for_user(user.access_token), str(user.id))
    current = next((row for row in rows if row.grants_access), None)
    return SubscriptionOverview(current=current, rows=rows)
