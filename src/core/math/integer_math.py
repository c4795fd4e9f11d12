"""
Integer Math — Safe Integer Primitives

Все суммы в ledger — неотрицательные целые числа (fixed-point, 18 знаков).
Модуль обеспечивает:
- Валидацию целых значений (bool отклоняется, отрицательные отклоняются)
- Границы uint16/uint256 для bps и allowance
- Целочисленное mul/div с округлением вниз (floor)

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Float никогда не участвует в расчётах сумм
2. Деление на ноль никогда не происходит (denominator валидируется)
3. Округление всегда в сторону нуля (floor для неотрицательных)
"""

from typing import Final

# =============================================================================
# ГРАНИЦЫ
# =============================================================================

# Максимальное значение bps (uint16)
UINT16_MAX: Final[int] = 2**16 - 1

# Максимальное значение суммы/allowance (uint256)
UINT256_MAX: Final[int] = 2**256 - 1


# =============================================================================
# ВАЛИДАЦИЯ
# =============================================================================


def is_uint(value: object, max_value: int = UINT256_MAX) -> bool:
    """
    Проверка, является ли значение неотрицательным целым в пределах max_value.

    bool формально наследуется от int, но суммой не является.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return 0 <= value <= max_value


def validate_uint(value: object, name: str, max_value: int = UINT256_MAX) -> int:
    """
    Валидация неотрицательного целого значения.

    Args:
        value: Проверяемое значение
        name: Имя параметра (для сообщения об ошибке)
        max_value: Максимально допустимое значение (default: UINT256_MAX)

    Returns:
        value (для использования в выражениях)

    Raises:
        ValueError: Если value не int, bool, отрицательное или больше max_value
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {type(value).__name__}")

    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")

    if value > max_value:
        raise ValueError(f"{name} must be <= {max_value}, got {value}")

    return value


def validate_positive_int(value: object, name: str) -> int:
    """
    Валидация строго положительного целого значения.

    Raises:
        ValueError: Если value не int или value <= 0
    """
    validate_uint(value, name)
    if value == 0:
        raise ValueError(f"{name} must be positive, got 0")
    return value


# =============================================================================
# АРИФМЕТИКА
# =============================================================================


def mul_div_floor(amount: int, numerator: int, denominator: int) -> int:
    """
    floor(amount * numerator / denominator) без промежуточного float.

    Args:
        amount: Сумма (base units)
        numerator: Числитель (например, bps)
        denominator: Знаменатель (> 0)

    Returns:
        Целочисленный результат, округлённый вниз

    Raises:
        ValueError: Если denominator <= 0 или входы отрицательные

    Examples:
        >>> mul_div_floor(1000, 300, 10000)
        30
        >>> mul_div_floor(999, 300, 10000)
        29
    """
    validate_uint(amount, "amount")
    validate_uint(numerator, "numerator")
    validate_positive_int(denominator, "denominator")
    return (amount * numerator) // denominator
