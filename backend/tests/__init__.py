"""
VersaBlog Test Suite
====================

Test suite for the VersaBlog content backend.

Test Organization:
-----------------
- conftest.py: Pytest fixtures (database, services, loaders, FastAPI client)
- factories.py: Test data factories using factory_boy
- test_slugs.py, test_hierarchy.py, test_loaders.py: Unit tests with fakes
- test_filters.py, test_*_service.py: Tests against an in-memory database
- test_api.py: End-to-end API tests

Running Tests:
--------------
    # Run all tests
    pytest

    # Run specific markers
    pytest -m unit           # Unit tests only
    pytest -m integration    # Database-backed tests only

    # Run with verbose output
    pytest -v

Dependencies:
-------------
    pip install -e ".[test]"
"""
