# =============================================================================
# core/services/contact_service.py - Contact Reveal Gate
# =============================================================================
# Releases an ambassador's private contact fields through the reveal_contact
# RPC. Quota counting and the subscription check happen inside the database;
# this service only maps its errors to API errors.
#
# Must be given a user-scoped client so the RPC runs under the caller's JWT.
# =============================================================================

import logging

from supabase import Client

from app.exceptions import ContactRevealError
from core.models.directory import ContactDetails, QuotaSnapshot, RevealResponse
from lib.supabase_client import error_message

logger = logging.getLogger(__name__)


def _first_row(data):
    """RPCs returning a table come back as a list; scalar-record ones as a dict."""
    if isinstance(data, list):
        return data[0] if data else None
    return data or None


def reveal_error(message: str) -> ContactRevealError:
    """Map an RPC error message onto the API error the caller sees."""
    if "no_active_subscription" in message:
        return ContactRevealError(
            "Your account doesn't have an active subscription yet.",
            code="SUBSCRIPTION_REQUIRED",
            status_code=402,
        )
    if "quota_exceeded" in message:
        return ContactRevealError(
            "You've hit your monthly contact-reveal limit.",
            code="QUOTA_EXCEEDED",
            status_code=429,
        )
    return ContactRevealError(message)


class ContactService:
    """reveal_contact / quota_status RPC calls."""

    def __init__(self, client: Client):
        self.client = client

    def quota(self) -> QuotaSnapshot | None:
        """Current month's reveal usage, or None if the RPC returns nothing."""
        result = self.client.rpc("quota_status", {}).execute()
        row = _first_row(result.data)
        if row is None:
            return None
        return QuotaSnapshot(**row)

    def reveal(self, ambassador_id: str) -> RevealResponse:
        """
        Reveal one ambassador's contact details and report remaining quota.

        Raises:
            ContactRevealError: 402 without a subscription, 429 over quota,
                400 for other RPC errors, 502 when nothing came back
        """
        try:
            result = self.client.rpc("reveal_contact", {"p_ambassador_id": ambassador_id}).execute()
        except Exception as e:
            message = error_message(e)
            logger.info(f"reveal_contact refused for {ambassador_id}: {message}")
            raise reveal_error(message)

        row = _first_row(result.data)
        if row is None:
            raise ContactRevealError("No contact data returned.", code="EMPTY_REVEAL", status_code=502)

        try:
            quota = self.quota()
        except Exception as e:
            # reveal already succeeded; quota is optional in the response
            logger.warning(f"quota_status failed after reveal: {e}")
            quota = None

        return RevealResponse(contact=ContactDetails(**row), quota=quota)
