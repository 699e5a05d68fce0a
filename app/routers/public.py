# =============================================================================
# app/routers/public.py - Unauthenticated Endpoints
# =============================================================================
# Endpoints:
# - GET  /ambassador-stats  Ambassador counts by region
# - POST /agency-requests   Agency access request form
# =============================================================================

import logging

from fastapi import APIRouter, status

from app.dependencies import SupabaseDep
from core.models.agency_request import AgencyRequestCreate
from core.services.agency_request_service import AgencyRequestService
from core.services.stats_service import StatsService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/ambassador-stats")
async def ambassador_stats(clients: SupabaseDep) -> dict:
    """
    Total ambassadors and counts per region.

    Countries outside the region table are counted under "Other".
    """
    return StatsService(clients.admin()).ambassador_stats()


@router.post("/agency-requests", status_code=status.HTTP_201_CREATED)
async def create_agency_request(body: AgencyRequestCreate, clients: SupabaseDep) -> dict:
    """
    Record an agency's request to be contacted about access.

    Raises:
        422: Missing company name, contact name or email
    """
    AgencyRequestService(clients.admin()).submit(body)
    return {"ok": True}
