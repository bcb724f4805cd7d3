"""
Oscillation phases.
"""

from enum import Enum


class Phase(str, Enum):
    """
    The two oscillation states of an enrolled product.

    BASE is where every enrollment starts; ELEVATED carries the offset.
    """

    BASE = "base"
    ELEVATED = "elevated"

    @property
    def is_elevated(self) -> bool:
        return self is Phase.ELEVATED

    def next(self) -> "Phase":
        """Phase after one successful cycle."""
        return Phase.BASE if self is Phase.ELEVATED else Phase.ELEVATED

    def __str__(self) -> str:
        return self.value
