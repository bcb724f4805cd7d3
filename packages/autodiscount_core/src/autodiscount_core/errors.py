"""
Exception hierarchy for the auto-discount runtime.
"""

from typing import Any


class AutoDiscountError(Exception):
    """Base error for the auto-discount runtime."""


class InvalidPriceError(AutoDiscountError):
    """A computed price is not acceptable (e.g. below zero)."""


class PersistenceConflictError(AutoDiscountError):
    """An enrollment changed or disappeared between read and write."""


class CatalogError(AutoDiscountError):
    """Error talking to the external catalog."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
        retryable: bool = False,
    ):
        super().__init__(message)
        self.code = code
        self.details = details or {}
        self.retryable = retryable


class CatalogTransportError(CatalogError):
    """
    The request did not get a usable answer.

    Network errors, auth failures, rate limits, timeouts and GraphQL
    top-level errors. Field-level rejections are NOT raised; they come back
    in CatalogUpdateResult.field_errors.
    """
