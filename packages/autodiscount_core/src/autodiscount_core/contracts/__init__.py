"""
Contracts shared between the engine, its triggers and its callers.
"""

from autodiscount_core.contracts.phase import Phase
from autodiscount_core.contracts.results import (
    ItemOutcome,
    ItemStatus,
    ShopOutcome,
    ShopStatus,
    SweepResult,
)

__all__ = [
    "Phase",
    "ItemOutcome",
    "ItemStatus",
    "ShopOutcome",
    "ShopStatus",
    "SweepResult",
]
