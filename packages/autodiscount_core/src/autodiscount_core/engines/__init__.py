"""
Engine implementations.

The oscillation engine and the pure phase toggle rule it applies.
"""

from autodiscount_core.engines.phase_toggle import PhaseToggleRule, PriceState
from autodiscount_core.engines.oscillation import PriceOscillationEngine

__all__ = [
    "PhaseToggleRule",
    "PriceState",
    "PriceOscillationEngine",
]
