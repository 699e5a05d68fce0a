# =============================================================================
# core/ - Business Logic Package
# =============================================================================
# This package contains the marketplace logic:
# - models/: Pydantic schemas for data validation
# - services/: Supabase and Stripe operations (directory, reconciliation,
#   contact reveal, profile intake, stats)
#
# Services take their Supabase client in the constructor; routes decide
# whether that is the caller's RLS client or the service-role client.
# =============================================================================
