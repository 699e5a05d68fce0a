# =============================================================================
# core/services/agency_request_service.py - Agency Access Requests
# =============================================================================

import logging

from supabase import Client

from app.exceptions import InvalidRequestError
from core.models.agency_request import AgencyRequestCreate
from lib.supabase_client import error_message

logger = logging.getLogger(__name__)


class AgencyRequestService:
    """Stores sales-contact requests from agencies. Write-only."""

    def __init__(self, client: Client):
        self.client = client

    def submit(self, request: AgencyRequestCreate) -> None:
        """
        Insert one agency_requests row.

        Raises:
            InvalidRequestError: If the insert is rejected
        """
        row = {
            "company_name": request.company_name,
            "contact_name": request.contact_name,
            "email": request.email,
            "phone": request.phone,
            "continents_of_interest": request.continents_of_interest,
            "notes": request.notes,
        }
        try:
            self.client.table("agency_requests").insert(row).execute()
        except Exception as e:
            logger.error(f"Agency request insert failed: {e}")
            raise InvalidRequestError(error_message(e))

        logger.info(f"Agency request received from {request.company_name}")
