# =============================================================================
# lib/ - Standalone Utility Modules
# =============================================================================
# This package contains reusable utilities:
# - regions.py: Country <-> region label table
# - supabase_client.py: Supabase client factory (service role and per-user)
# - media.py: Headshot and intro video validation
# - saga.py: Named steps with compensations for multi-write operations
#
# These modules are self-contained and can be tested in isolation.
# =============================================================================

from lib.regions import OTHER_REGION, REGIONS, countries_of, region_of
from lib.supabase_client import SupabaseClients, SupabaseClientError
from lib.media import MediaError, MediaFile, validate_headshot, validate_video
from lib.saga import Saga, SagaFailed, SagaOutcome, SagaStep

__all__ = [
    # Regions
    "OTHER_REGION",
    "REGIONS",
    "countries_of",
    "region_of",
    # Supabase
    "SupabaseClients",
    "SupabaseClientError",
    # Media
    "MediaError",
    "MediaFile",
    "validate_headshot",
    "validate_video",
    # Saga
    "Saga",
    "SagaFailed",
    "SagaOutcome",
    "SagaStep",
]
