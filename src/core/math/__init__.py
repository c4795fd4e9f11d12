"""
Core math modules для ledger

Целочисленные примитивы с гарантией отсутствия float в расчётах сумм.
"""

from src.core.math.integer_math import (
    UINT16_MAX,
    UINT256_MAX,
    is_uint,
    mul_div_floor,
    validate_positive_int,
    validate_uint,
)

__all__ = [
    # Bounds
    "UINT16_MAX",
    "UINT256_MAX",
    # Validation
    "is_uint",
    "validate_uint",
    "validate_positive_int",
    # Arithmetic
    "mul_div_floor",
]
