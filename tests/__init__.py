"""
Auralyst Test Suite
===================

This package contains all tests for the Auralyst medication and symptom journal.

Test Structure:
- test_tools/: Pure recurrence, matching and analytics logic
- test_services/: Services against an in-memory database
- test_api/: API endpoint tests for FastAPI routes
- conftest.py: Shared pytest fixtures

Running Tests:
    # Run all tests
    pytest

    # Run specific test module
    pytest tests/test_tools/

    # Run only marked tests
    pytest -m "unit"
    pytest -m "api"
"""

# Test configuration
TEST_DATABASE_URL = "sqlite:///:memory:"

__all__ = [
    "TEST_DATABASE_URL",
]
