"""Gatekeeper — система гейтов для допуска transfer к исполнению.

Каждый transfer/transfer_from проходит гейты в фиксированном порядке
до расчёта fee и применения изменений балансов.
"""

from .gates import MAX_ALLOWANCE, Gate00Listing, Gate00Result, Gate01Funds, Gate01Result

__all__ = [
    "Gate00Listing",
    "Gate00Result",
    "Gate01Funds",
    "Gate01Result",
    "MAX_ALLOWANCE",
]
