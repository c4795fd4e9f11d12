"""Fees — tiered fee engine (normal / antibot schedules)."""

from .engine import FeeEngine, FeeQuote

__all__ = [
    "FeeEngine",
    "FeeQuote",
]
