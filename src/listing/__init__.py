"""Listing — двухфазная state machine UNLISTED → LISTED.

- Состояние вычисляется заново на каждой проверке (now >= listing_at)
- LISTED терминально
- listing_at переносится только пока UNLISTED
"""

from .state_machine import ListingStateMachine, ListingTransitionResult

__all__ = [
    "ListingStateMachine",
    "ListingTransitionResult",
]
