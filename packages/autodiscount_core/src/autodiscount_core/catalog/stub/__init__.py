"""
Stub catalog client for development and tests.
"""

from autodiscount_core.catalog.stub.client import StubCatalogClient

__all__ = ["StubCatalogClient"]
