"""
Tests for the phase toggle rule and price helpers.
"""

from decimal import Decimal

import pytest

from autodiscount_core.contracts.money import format_price, round_price
from autodiscount_core.contracts.phase import Phase
from autodiscount_core.engines.phase_toggle import (
    BASE_OFFSET,
    ELEVATION_OFFSET,
    PhaseToggleRule,
)
from autodiscount_core.errors import InvalidPriceError


class TestPhase:
    """Tests for the Phase enum."""

    def test_next_alternates(self):
        assert Phase.BASE.next() is Phase.ELEVATED
        assert Phase.ELEVATED.next() is Phase.BASE

    def test_str_is_value(self):
        assert str(Phase.ELEVATED) == "elevated"


class TestMoney:
    """Tests for rounding and wire formatting."""

    def test_round_half_up(self):
        assert round_price(Decimal("10.005")) == Decimal("10.01")
        assert round_price(Decimal("10.004")) == Decimal("10.00")

    def test_round_from_float_uses_repr(self):
        assert round_price(0.1 + 0.2) == Decimal("0.30")

    def test_format_two_fraction_digits(self):
        assert format_price(Decimal("21")) == "21.00"
        assert format_price("19.9") == "19.90"


class TestPhaseToggleRule:
    """Tests for PhaseToggleRule."""

    def test_defaults(self):
        assert ELEVATION_OFFSET == Decimal("2.00")
        assert BASE_OFFSET == Decimal("0.00")

    def test_base_to_elevated(self):
        state = PhaseToggleRule().next_state(Decimal("19.99"), Phase.BASE)
        assert state.phase is Phase.ELEVATED
        assert state.price == Decimal("21.99")

    def test_elevated_to_base_returns_original(self):
        state = PhaseToggleRule().next_state(Decimal("19.99"), Phase.ELEVATED)
        assert state.phase is Phase.BASE
        assert state.price == Decimal("19.99")

    def test_no_drift_over_many_cycles(self):
        """Prices derive from the original, so any even cycle count lands on it."""
        rule = PhaseToggleRule()
        original = Decimal("7.35")
        phase = Phase.BASE

        for cycle in range(1, 11):
            state = rule.next_state(original, phase)
            phase = state.phase
            if cycle % 2 == 0:
                assert state.price == original
                assert phase is Phase.BASE
            else:
                assert state.price == Decimal("9.35")
                assert phase is Phase.ELEVATED

    def test_rounds_original_with_extra_precision(self):
        state = PhaseToggleRule().next_state(Decimal("10.005"), Phase.BASE)
        assert state.price == Decimal("12.01")

    def test_base_offset_gives_trough(self):
        """A non-zero base offset oscillates between original + 2 and original - 2."""
        rule = PhaseToggleRule(base_offset=Decimal("2.00"))
        assert rule.price_for(Decimal("19.99"), Phase.BASE) == Decimal("17.99")
        assert rule.price_for(Decimal("19.99"), Phase.ELEVATED) == Decimal("21.99")

    def test_negative_price_rejected(self):
        rule = PhaseToggleRule(base_offset=Decimal("2.00"))
        with pytest.raises(InvalidPriceError):
            rule.next_state(Decimal("1.50"), Phase.ELEVATED)

    def test_zero_price_allowed(self):
        rule = PhaseToggleRule(base_offset=Decimal("2.00"))
        assert rule.price_for(Decimal("2.00"), Phase.BASE) == Decimal("0.00")

    def test_negative_offset_rejected(self):
        with pytest.raises(ValueError):
            PhaseToggleRule(elevation_offset=Decimal("-1"))
