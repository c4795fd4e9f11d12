"""Listing State Machine — управление состоянием listing.

Переходы:
- UNLISTED → LISTED: как только now >= listing_at (необратимо)
- LISTED → UNLISTED: невозможен

Guard вычисляется на каждой проверке, состояние не кэшируется.
listing_at неизменяем после наступления, поэтому LISTED терминально.
"""

import logging
from dataclasses import dataclass

from src.core.domain.events import ListingTimestampUpdated
from src.core.domain.ledger_state import ListingState
from src.core.errors import AlreadyListed
from src.core.journal import Journal
from src.core.math.integer_math import validate_uint

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ListingTransitionResult:
    """Результат переноса listing_at."""

    previous_listing_at: int
    new_listing_at: int
    state_after: ListingState

    # Для отладки
    details: str


class ListingStateMachine:
    """Listing State Machine.

    States:
    - UNLISTED: now < listing_at, переводы только для ALLOWED_PRE_LISTING_TRANSFER
    - LISTED: now >= listing_at, переводы открыты всем
    """

    def __init__(self, journal: Journal, listing_at: int):
        """
        Args:
            journal: журнал транзакций ledger
            listing_at: момент listing (Unix seconds)
        """
        self._journal = journal
        self._listing_at = validate_uint(listing_at, "listing_at")

    @property
    def listing_at(self) -> int:
        return self._listing_at

    def state(self, now: int) -> ListingState:
        if now >= self._listing_at:
            return ListingState.LISTED
        return ListingState.UNLISTED

    def is_listed(self, now: int) -> bool:
        return self.state(now) == ListingState.LISTED

    def reschedule(self, new_listing_at: int, now: int) -> ListingTransitionResult:
        """Перенос listing_at.

        Новое значение <= now означает немедленный listing. Роль ADMIN здесь
        не проверяется: вызывать только через Ledger.set_listing_at.

        Raises:
            AlreadyListed: если listing уже произошёл (независимо от new_listing_at)
            ValueError: если new_listing_at не неотрицательный int
        """
        if self.is_listed(now):
            raise AlreadyListed(self._listing_at, now)

        validate_uint(new_listing_at, "new_listing_at")
        previous = self._listing_at

        with self._journal.transaction():
            self._journal.set_attr(self, "_listing_at", new_listing_at)
            self._journal.emit(ListingTimestampUpdated(listing_at=new_listing_at))

        state_after = self.state(now)
        logger.info("Listing rescheduled %d -> %d (state=%s)", previous, new_listing_at, state_after.value)

        return ListingTransitionResult(
            previous_listing_at=previous,
            new_listing_at=new_listing_at,
            state_after=state_after,
            details=f"listing_at {previous} → {new_listing_at}, now={now}",
        )
