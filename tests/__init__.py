# =============================================================================
# tests/ - Test Suite
# =============================================================================
# This package contains all tests for the AmbassadorHub API:
# - conftest.py: In-memory Supabase fake and TestClient fixtures
# - test_regions.py / test_media.py / test_saga.py: lib/ units
# - test_*_service.py / test_directory_query.py: core services
# - test_*_routes.py / test_auth.py / test_health.py: HTTP endpoints
#
# Run tests with: pytest
# =============================================================================
