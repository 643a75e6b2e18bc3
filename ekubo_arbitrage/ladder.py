"""
Amount ladder generation for the quote sweep.
"""

from typing import List

from .config_schema import MAX_POWER_OF_2_CEILING, MIN_POWER_OF_2_FLOOR


def clamp_exponents(min_exponent: int, max_exponent: int) -> tuple:
    """Clamp exponents so that 32 <= min and min < max <= 65."""
    min_exponent = min(MAX_POWER_OF_2_CEILING - 1, max(MIN_POWER_OF_2_FLOOR, min_exponent))
    max_exponent = max(min_exponent + 1, min(MAX_POWER_OF_2_CEILING, max_exponent))
    return min_exponent, max_exponent


def generate_amount_ladder(min_exponent: int, max_exponent: int) -> List[int]:
    """
    Candidate input amounts as ascending powers of two.

    Returns [2**min_exponent, ..., 2**(max_exponent - 1)] after clamping the
    exponents to the supported range.
    """
    min_exponent, max_exponent = clamp_exponents(min_exponent, max_exponent)
    return [1 << exponent for exponent in range(min_exponent, max_exponent)]
