# =============================================================================
# core/services/stats_service.py - Public Ambassador Counts
# =============================================================================
# Total ambassadors and a per-region breakdown for the landing page.
# Reads with the service-role client since the page is public.
# =============================================================================

import logging
from collections import Counter

from supabase import Client

from lib.regions import region_of

logger = logging.getLogger(__name__)


class StatsService:
    """Aggregate ambassador statistics."""

    def __init__(self, client: Client):
        self.client = client

    def ambassador_stats(self) -> dict:
        """
        Count ambassadors by region.

        Rows without a country are left out; countries missing from the
        region table count as "Other".

        Returns:
            {"total": int, "by_region": {region: count}}
        """
        result = (
            self.client.table("ambassadors")
            .select("country")
            .not_.is_("country", "null")
            .execute()
        )

        counts: Counter[str] = Counter()
        for row in result.data or []:
            country = row.get("country")
            if not country or not str(country).strip():
                continue
            counts[region_of(country)] += 1

        total = sum(counts.values())
        logger.debug(f"Ambassador stats: {total} across {len(counts)} regions")
        return {"total": total, "by_region": dict(counts)}
