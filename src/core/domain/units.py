"""
TokenUnits — Централизованный модуль конверсии единиц токена

Единственный допустимый способ преобразований между:
- base units (int, минимальная неделимая единица)
- token amount (Decimal, человекочитаемое количество с 18 знаками)

ЗАПРЕЩЕНО использовать float для сумм: только int и Decimal.
"""

from decimal import Decimal, InvalidOperation
from typing import Final, Union

from src.core.math.integer_math import validate_uint


# =============================================================================
# ПАРАМЕТРЫ ТОКЕНА
# =============================================================================
# Количество implied decimals
TOKEN_DECIMALS: Final[int] = 18

# 1 токен в base units
ONE_TOKEN: Final[int] = 10**TOKEN_DECIMALS


# =============================================================================
# КОНВЕРТЕРЫ
# =============================================================================


def to_base_units(amount: Union[str, int, Decimal], decimals: int = TOKEN_DECIMALS) -> int:
    """
    Конверсия: количество токенов → base units

    Args:
        amount: Количество токенов ("1000", "0.5", 1000, Decimal("1.25"))
        decimals: Количество знаков (default: 18)

    Returns:
        Сумма в base units

    Raises:
        ValueError: Если amount отрицательный, float, или имеет больше знаков чем decimals

    Examples:
        >>> to_base_units("1000")
        1000000000000000000000
        >>> to_base_units("0.000000000000000001")
        1
    """
    if isinstance(amount, (float, bool)):
        raise ValueError(f"amount must be str, int or Decimal, got {type(amount).__name__}")

    try:
        value = Decimal(amount)
    except InvalidOperation:
        raise ValueError(f"amount is not a number: {amount!r}")

    if not value.is_finite():
        raise ValueError(f"amount must be finite, got {amount!r}")

    if value < 0:
        raise ValueError(f"amount must be non-negative, got {amount!r}")

    scaled = value.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"amount {amount!r} has more than {decimals} decimal places")

    return int(scaled)


def from_base_units(base_units: int, decimals: int = TOKEN_DECIMALS) -> Decimal:
    """
    Конверсия: base units → количество токенов (Decimal)

    Raises:
        ValueError: Если base_units не неотрицательный int
    """
    validate_uint(base_units, "base_units")
    return Decimal(base_units).scaleb(-decimals)


def format_units(base_units: int, decimals: int = TOKEN_DECIMALS) -> str:
    """
    Человекочитаемая строка без лишних нулей (для логов).

    Examples:
        >>> format_units(970 * 10**18)
        '970'
        >>> format_units(15 * 10**17)
        '1.5'
    """
    value = from_base_units(base_units, decimals)
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text
