"""Core value types shared across the polyquant application.

Hold the decimal constants used by every pricing calculation and the
binary ``Outcome`` enum that names which side of a market is traded.
"""

from decimal import Decimal
from enum import Enum

ZERO = Decimal(0)
ONE = Decimal(1)
TWO = Decimal(2)
HUNDRED = Decimal(100)


class Outcome(Enum):
    """Side of a binary prediction market: the YES or the NO token."""

    YES = "YES"
    NO = "NO"
