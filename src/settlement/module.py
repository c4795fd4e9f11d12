"""Fee Settlement — перевод fee accumulator получателю fee collector

claim_in_base (ADMIN):
1. v = accumulator; v == 0 → InsufficientClaimAmount
2. accumulator → fee collector в активе ledger
3. FeeClaimed(v, collector)

claim_via_exchange (ADMIN):
1. v = accumulator; v == 0 → InsufficientClaimAmount
2. Effects до внешнего вызова: accumulator → settlement escrow (accumulator = 0),
   approve adapter на v со счёта escrow
3. Внешний вызов: adapter.swap_exact_tokens_for_base(escrow, v, ..., recipient=collector)
4. Escrow должен быть пуст после swap, иначе ExchangeError
5. FeeClaimed(v, collector, proceeds)

Любая ошибка на любом шаге откатывает settlement целиком, включая
обнуление accumulator. Reentrant claim во время внешнего вызова видит
нулевой accumulator и получает InsufficientClaimAmount.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional

from src.core.domain.events import FeeClaimed, LedgerEvent
from src.core.domain.roles import Role
from src.core.errors import ExchangeError, InsufficientClaimAmount, LedgerError
from src.core.math.integer_math import validate_uint
from src.settlement.exchange import ExchangeAdapter, SettlementRoute

if TYPE_CHECKING:
    from src.ledger.ledger import Ledger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SettlementHooks:
    """Мутации ledger, доступные settlement (без gate и fee).

    Ledger передаёт их при создании FeeSettlement; вызываются только внутри
    ledger.atomic().
    """

    require_role: Callable[[Role, str], None]
    move: Callable[[str, str, int], None]
    approve: Callable[[str, str, int], None]
    emit: Callable[[LedgerEvent], None]


@dataclass(frozen=True)
class SettlementResult:
    """Результат settlement."""

    amount: int  # Сумма, снятая с accumulator
    fee_collector: str
    via_exchange: bool
    proceeds: Optional[int]  # Base currency, если через exchange

    details: str


class FeeSettlement:
    """Settlement fee accumulator ledger."""

    def __init__(
        self,
        ledger: "Ledger",
        hooks: SettlementHooks,
        route: SettlementRoute,
        deadline_seconds: int = 600,
        amount_out_min: int = 0,
    ):
        """
        Args:
            ledger: ledger, чей accumulator дренируется
            hooks: мутации ledger для settlement
            route: маршрут token → base currency
            deadline_seconds: deadline swap относительно now
            amount_out_min: minimum-output guard swap
        """
        self._ledger = ledger
        self._hooks = hooks
        self._route = route
        self._deadline_seconds = validate_uint(deadline_seconds, "deadline_seconds")
        self._amount_out_min = validate_uint(amount_out_min, "amount_out_min")
        self._exchange: Optional[ExchangeAdapter] = None

    @property
    def route(self) -> SettlementRoute:
        return self._route

    @property
    def exchange(self) -> Optional[ExchangeAdapter]:
        return self._exchange

    def connect(self, adapter: ExchangeAdapter, expected_address: str) -> None:
        """Привязка adapter. Identity adapter фиксирован конфигурацией ledger.

        Raises:
            ValueError: адрес adapter не совпадает с конфигурацией или adapter уже привязан
        """
        if adapter.address != expected_address:
            raise ValueError(
                f"exchange adapter address {adapter.address!r} does not match configured {expected_address!r}"
            )
        if self._exchange is not None and self._exchange is not adapter:
            raise ValueError(f"exchange adapter {expected_address!r} is already connected")
        self._exchange = adapter

    def claim_in_base(self, caller: str) -> SettlementResult:
        """Settlement в активе ledger.

        Raises:
            Unauthorized, InsufficientClaimAmount
        """
        ledger = self._ledger
        hooks = self._hooks
        with ledger.atomic():
            hooks.require_role(Role.ADMIN, caller)
            amount = ledger.claimable_fee()
            if amount == 0:
                raise InsufficientClaimAmount()

            collector = ledger.fee_collector
            hooks.move(ledger.address, collector, amount)
            hooks.emit(FeeClaimed(amount=amount, fee_collector=collector))

        logger.info("Claimed %d fee to %s in %s", amount, collector, ledger.symbol)
        return SettlementResult(
            amount=amount,
            fee_collector=collector,
            via_exchange=False,
            proceeds=None,
            details=f"{amount} {ledger.symbol} → {collector}",
        )

    def claim_via_exchange(self, caller: str) -> SettlementResult:
        """Settlement в base currency через exchange adapter.

        Raises:
            Unauthorized, InsufficientClaimAmount, ExchangeError
        """
        ledger = self._ledger
        hooks = self._hooks
        try:
            with ledger.atomic():
                hooks.require_role(Role.ADMIN, caller)
                amount = ledger.claimable_fee()
                if amount == 0:
                    raise InsufficientClaimAmount()

                adapter = self._exchange
                if adapter is None:
                    raise ExchangeError("no exchange adapter connected")

                collector = ledger.fee_collector
                escrow = ledger.escrow_address

                # Effects до внешнего вызова: accumulator обнулён
                hooks.move(ledger.address, escrow, amount)
                hooks.approve(escrow, adapter.address, amount)

                deadline = ledger.now() + self._deadline_seconds
                try:
                    proceeds = adapter.swap_exact_tokens_for_base(
                        payer=escrow,
                        amount_in=amount,
                        amount_out_min=self._amount_out_min,
                        path=self._route.path,
                        recipient=collector,
                        deadline=deadline,
                    )
                except ExchangeError:
                    raise
                except LedgerError as e:
                    raise ExchangeError(f"exchange swap failed: {e}") from e

                leftover = ledger.balance_of(escrow)
                if leftover:
                    raise ExchangeError(f"exchange left {leftover} of {amount} in settlement escrow")
                if ledger.allowance(escrow, adapter.address):
                    hooks.approve(escrow, adapter.address, 0)

                validate_uint(proceeds, "proceeds")
                hooks.emit(FeeClaimed(amount=amount, fee_collector=collector, proceeds=proceeds))
        except ExchangeError as e:
            logger.warning("Fee settlement via exchange rolled back: %s", e)
            raise

        logger.info(
            "Claimed %d fee via %s to %s: proceeds %d %s",
            amount,
            adapter.address,
            collector,
            proceeds,
            self._route.base,
        )
        return SettlementResult(
            amount=amount,
            fee_collector=collector,
            via_exchange=True,
            proceeds=proceeds,
            details=f"{amount} {ledger.symbol} → {proceeds} {self._route.base} → {collector}",
        )
