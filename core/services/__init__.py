# =============================================================================
# core/services/__init__.py - Service Layer Exports
# =============================================================================

from .agency_request_service import AgencyRequestService
from .ambassador_service import AmbassadorService
from .billing_service import StripeConfig, StripeService
from .contact_service import ContactService
from .directory_service import DirectoryAccessService, DirectoryService
from .stats_service import StatsService
from .storage_service import StorageService
from .subscription_service import SubscriptionService

__all__ = [
    "AgencyRequestService",
    "AmbassadorService",
    "ContactService",
    "DirectoryAccessService",
    "DirectoryService",
    "StatsService",
    "StorageService",
    "StripeConfig",
    "StripeService",
    "SubscriptionService",
]
