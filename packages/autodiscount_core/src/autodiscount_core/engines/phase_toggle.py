"""
Phase Toggle Rule

Two-state price oscillation around a product's original price:

    BASE     -> ELEVATED : original + ELEVATION_OFFSET
    ELEVATED -> BASE     : original - BASE_OFFSET

The next price is always derived from the original price and the current
phase, never from the current price, so repeated cycles cannot drift.

BASE_OFFSET defaults to zero: the BASE price is the original price, so two
cycles bring a product back to exactly what it was enrolled at. Setting
AUTODISCOUNT_BASE_OFFSET=2.00 gives the older +2/-2 oscillation around the
original instead.
"""

from dataclasses import dataclass
from decimal import Decimal

from autodiscount_core.contracts.money import round_price
from autodiscount_core.contracts.phase import Phase
from autodiscount_core.errors import InvalidPriceError

ELEVATION_OFFSET = Decimal("2.00")
BASE_OFFSET = Decimal("0.00")


@dataclass(frozen=True)
class PriceState:
    """Target state for one cycle."""

    phase: Phase
    price: Decimal


@dataclass(frozen=True)
class PhaseToggleRule:
    """
    Pure transition function of (original_price, current_phase).

    Calling it twice against the same stored state yields the same target
    both times, so the caller must persist exactly once per cycle.
    """

    elevation_offset: Decimal = ELEVATION_OFFSET
    base_offset: Decimal = BASE_OFFSET

    def __post_init__(self):
        if self.elevation_offset < 0 or self.base_offset < 0:
            raise ValueError("offsets must be zero or positive")

    def price_for(self, original_price: Decimal, phase: Phase) -> Decimal:
        """Price a product should carry while in `phase`."""
        original = Decimal(str(original_price))
        if phase is Phase.ELEVATED:
            price = round_price(original + self.elevation_offset)
        else:
            price = round_price(original - self.base_offset)

        if price < 0:
            raise InvalidPriceError(
                f"Computed price {price} for phase {phase.value} is negative "
                f"(original={original})"
            )
        return price

    def next_state(self, original_price: Decimal, current_phase: Phase) -> PriceState:
        """State after one successful cycle."""
        target = current_phase.next()
        return PriceState(phase=target, price=self.price_for(original_price, target))
