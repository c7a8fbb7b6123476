"""
Test Suite

Tests for the support desk automation engine backend.

Structure:
    tests/
    ├── __init__.py         # This file
    ├── conftest.py         # Pytest fixtures
    ├── fakes.py            # In-memory repositories
    ├── unit/               # Unit tests
    │   ├── test_engine/    # Rule engine tests
    │   ├── test_repositories/ # Mongo document mapping tests
    │   ├── test_services/  # Channel, email and storage tests
    │   └── test_utils/     # Utility tests
    └── integration/        # Integration tests
        └── test_api/       # API endpoint tests

To run tests:
    pytest backend/tests/
    pytest backend/tests/unit/
    pytest backend/tests/integration/
"""
