# =============================================================================
# app/dependencies.py - Shared Dependencies
# =============================================================================
# FastAPI dependency injection for shared resources.
# These are injected into route handlers using Depends().
#
# The Supabase client factory lives on app.state (created in the lifespan in
# app/main.py); tests swap it via app.dependency_overrides.
# =============================================================================

from typing import Annotated, Optional

from fastapi import Depends, Request

from app.config import settings
from app.exceptions import BillingNotConfiguredError
from core.services.billing_service import StripeService
from lib.supabase_client import SupabaseClients


def get_supabase(request: Request) -> SupabaseClients:
    """Supabase client factory created at startup."""
    return request.app.state.supabase


def get_stripe_service() -> StripeService:
    """
    Stripe gateway built from settings.

    Raises:
        BillingNotConfiguredError: If STRIPE_SECRET_KEY is missing
    """
    return StripeService.from_settings(settings)


def get_stripe_service_optional() -> Optional[StripeService]:
    """Stripe gateway, or None when billing isn't configured."""
    try:
        return StripeService.from_settings(settings)
    except BillingNotConfiguredError:
        return None


# Type aliases for dependency injection
SupabaseDep = Annotated[SupabaseClients, Depends(get_supabase)]
StripeDep = Annotated[StripeService, Depends(get_stripe_service)]
OptionalStripeDep = Annotated[Optional[StripeService], Depends(get_stripe_service_optional)]
