# =============================================================================
# core/models/ - Pydantic Data Models
# =============================================================================
# This package contains Pydantic schemas for data validation:
# - ambassador.py: profile signup/edit commands and read shapes
# - directory.py: directory filters, pages and contact reveal results
# - subscription.py: agency subscription rows and checkout contract
# - agency_request.py: agency access request form
#
# These models define the "contract" between API and clients.
# =============================================================================

# -----------------------------------------------------------------------------
# Ambassador Models - Profile intake and edit
# -----------------------------------------------------------------------------
from .ambassador import (
    AmbassadorCreate,
    AmbassadorProfile,
    AmbassadorUpdate,
    AvailabilityStatus,
    ExperienceLevel,
    ProfileOptions,
    SignupResult,
    VocabularyItem,
)

# -----------------------------------------------------------------------------
# Directory Models - Search and contact reveal
# -----------------------------------------------------------------------------
from .directory import (
    ContactDetails,
    DirectoryFilters,
    DirectoryOptions,
    DirectoryPage,
    MatchMode,
    QuotaSnapshot,
    RevealResponse,
)

# -----------------------------------------------------------------------------
# Subscription Models - Billing state
# -----------------------------------------------------------------------------
from .subscription import (
    ACCESS_STATUSES,
    AgencySubscription,
    CheckoutRequest,
    CheckoutResponse,
    ReconcileResult,
    SubscriptionOverview,
    SubscriptionStatus,
)

# -----------------------------------------------------------------------------
# Agency Request Models
# -----------------------------------------------------------------------------
from .agency_request import AgencyRequestCreate

__all__ = [
    # Ambassador
    "AmbassadorCreate",
    "AmbassadorProfile",
    "AmbassadorUpdate",
    "AvailabilityStatus",
    "ExperienceLevel",
    "ProfileOptions",
    "SignupResult",
    "VocabularyItem",
    # Directory
    "ContactDetails",
    "DirectoryFilters",
    "DirectoryOptions",
    "DirectoryPage",
    "MatchMode",
    "QuotaSnapshot",
    "RevealResponse",
    # Subscription
    "ACCESS_STATUSES",
    "AgencySubscription",
    "CheckoutRequest",
    "CheckoutResponse",
    "ReconcileResult",
    "SubscriptionOverview",
    "SubscriptionStatus",
    # Agency request
    "AgencyRequestCreate",
]
