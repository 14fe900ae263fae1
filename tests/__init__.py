# =============================================================================
# tests/ - Test Suite
# =============================================================================
# This package contains all tests for the Digital Photo Request API:
# - test_models.py, test_security.py: models and credential utilities
# - test_*_service.py: service logic against the in-memory fakes (fakes.py)
# - test_*_client.py: gateway wrappers against mocked clients/transports
# - test_api.py: HTTP surfaces through TestClient
#
# Run tests with: pytest
# =============================================================================
