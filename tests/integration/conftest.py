"""
Pytest configuration for integration tests.

Sets up fixtures for database and Redis connections. Tests are skipped
unless INTEGRATION_DATABASE_URL and INTEGRATION_REDIS_URL point at live
services (e.g. docker compose up -d db redis).
"""

import os
import sys

import pytest

# Add project paths to sys.path for imports
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.insert(0, os.path.join(project_root, "packages", "basecore", "src"))
sys.path.insert(0, os.path.join(project_root, "packages", "autodiscount_core", "src"))

DATABASE_URL = os.getenv("INTEGRATION_DATABASE_URL")
REDIS_URL = os.getenv("INTEGRATION_REDIS_URL")


def pytest_collection_modifyitems(config, items):
    if DATABASE_URL and REDIS_URL:
        return
    skip = pytest.mark.skip(reason="INTEGRATION_DATABASE_URL / INTEGRATION_REDIS_URL not set")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip)
