"""Ledger — единый владелец балансов, allowances, supply и событий."""

from .ledger import Ledger

__all__ = [
    "Ledger",
]
