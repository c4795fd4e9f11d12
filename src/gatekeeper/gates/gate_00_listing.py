"""GATE 0: Listing / Pre-listing transfer restriction

Первый gate в цепочке transfer:
- LISTED → пропуск для любого вызывающего
- UNLISTED → пропуск только если вызывающий держит ALLOWED_PRE_LISTING_TRANSFER

Вызывающий — тот, кто инициирует перевод: владелец токенов для transfer,
spender для transfer_from.

Gate не мутирует состояние и не поднимает исключений: решение возвращается
в Gate00Result, ledger превращает блокировку в TransferRestricted.
"""

from dataclasses import dataclass

from src.access.registry import CapabilityRegistry
from src.core.domain.ledger_state import ListingState
from src.core.domain.roles import Role
from src.listing.state_machine import ListingStateMachine


@dataclass(frozen=True)
class Gate00Result:
    """Результат GATE 0."""

    transfer_allowed: bool
    block_reason: str

    # Входные параметры для диагностики
    caller: str
    listing_state: ListingState
    listing_at: int
    now: int
    caller_is_pre_listing_allowed: bool

    # Детали
    details: str


class Gate00Listing:
    """GATE 0: Listing gate.

    Порядок проверок:
    1. listing state (вычисляется заново по now)
    2. UNLISTED → роль вызывающего
    """

    def __init__(self, listing: ListingStateMachine, registry: CapabilityRegistry):
        self._listing = listing
        self._registry = registry

    def evaluate(self, caller: str, now: int) -> Gate00Result:
        """Оценка GATE 0.

        Args:
            caller: identity, инициирующий перевод
            now: текущее время (Unix seconds)

        Returns:
            Gate00Result с решением о допуске
        """
        listing_state = self._listing.state(now)
        listing_at = self._listing.listing_at
        allowed_role = self._registry.has(Role.ALLOWED_PRE_LISTING_TRANSFER, caller)

        if listing_state == ListingState.LISTED:
            return Gate00Result(
                transfer_allowed=True,
                block_reason="",
                caller=caller,
                listing_state=listing_state,
                listing_at=listing_at,
                now=now,
                caller_is_pre_listing_allowed=allowed_role,
                details=f"PASS: listed since {listing_at}",
            )

        if allowed_role:
            return Gate00Result(
                transfer_allowed=True,
                block_reason="",
                caller=caller,
                listing_state=listing_state,
                listing_at=listing_at,
                now=now,
                caller_is_pre_listing_allowed=True,
                details=f"PASS: {caller} holds ALLOWED_PRE_LISTING_TRANSFER",
            )

        return Gate00Result(
            transfer_allowed=False,
            block_reason="pre_listing_transfer_restricted",
            caller=caller,
            listing_state=listing_state,
            listing_at=listing_at,
            now=now,
            caller_is_pre_listing_allowed=False,
            details=f"BLOCK: {listing_at - now}s until listing, {caller} lacks ALLOWED_PRE_LISTING_TRANSFER",
        )
