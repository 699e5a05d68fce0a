# =============================================================================
# app/routers/ - API Route Definitions
# =============================================================================
# This package contains FastAPI routers organized by feature:
# - health.py: Health check endpoints
# - directory.py: Subscriber directory search, profiles and contact reveal
# - ambassadors.py: Ambassador signup and profile editing
# - billing.py: Stripe checkout, webhook and subscription status
# - public.py: Ambassador stats and agency access requests
#
# Each router is mounted in main.py with a URL prefix.
# =============================================================================

from . import health
from . import directory
from . import ambassadors
from . import billing
from . import public

__all__ = [
    "health",
    "directory",
    "ambassadors",
    "billing",
    "public",
]
