"""Fee Engine — расчёт комиссии transfer

Правило применения:
- fee только если ровно одна сторона держит MARKET_PARTICIPANT
  * sender — market participant → BUY (покупка из pool)
  * recipient — market participant → SELL (продажа в pool)
- обе стороны или ни одной → fee = 0

Активный schedule:
- now < antibot_end_at → antibot
- иначе → normal

fee_amount = floor(amount * bps / denominator)
net_amount = amount - fee_amount

Cap maximum_bps применяется только к normal schedule. Antibot schedule
фиксируется при создании и против cap не проверяется.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from src.core.domain.events import FeesUpdated
from src.core.domain.fee_schedule import FeeSchedule, FeeSide, ScheduleName
from src.core.errors import FeeCapExceeded
from src.core.journal import Journal
from src.core.math.integer_math import UINT16_MAX, mul_div_floor, validate_positive_int, validate_uint

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeeQuote:
    """Результат расчёта комиссии."""

    amount: int
    fee_amount: int
    net_amount: int

    # None если перевод не облагается
    side: Optional[FeeSide]
    bps: int
    schedule: Optional[ScheduleName]

    details: str

    @property
    def is_fee_bearing(self) -> bool:
        return self.fee_amount > 0


class FeeEngine:
    """Fee Engine ledger.

    Владеет normal/antibot schedules, cap и denominator. Проверки ролей
    выполняет ledger: engine получает уже вычисленные флаги сторон.
    """

    def __init__(
        self,
        journal: Journal,
        maximum_bps: int,
        denominator: int,
        fees: FeeSchedule,
        antibot_fees: FeeSchedule,
        antibot_end_at: int,
    ):
        """
        Args:
            journal: журнал транзакций ledger
            maximum_bps: cap для normal schedule
            denominator: знаменатель bps (константа, > 0)
            fees: начальный normal schedule (должен быть <= cap)
            antibot_fees: antibot schedule (без cap)
            antibot_end_at: конец antibot окна (Unix seconds, неизменяем)

        Raises:
            FeeCapExceeded: если fees превышает maximum_bps
        """
        self._journal = journal
        self._maximum_bps = validate_uint(maximum_bps, "maximum_bps", UINT16_MAX)
        self._denominator = validate_positive_int(denominator, "denominator")
        self._antibot_end_at = validate_uint(antibot_end_at, "antibot_end_at")
        if fees.exceeds(self._maximum_bps):
            raise FeeCapExceeded(fees.buy_bps, fees.sell_bps, self._maximum_bps)
        self._fees = fees
        self._antibot_fees = antibot_fees

    # -------------------------------------------------------------------------
    # Read-only
    # -------------------------------------------------------------------------

    @property
    def fees(self) -> FeeSchedule:
        return self._fees

    @property
    def antibot_fees(self) -> FeeSchedule:
        return self._antibot_fees

    @property
    def maximum_bps(self) -> int:
        return self._maximum_bps

    @property
    def denominator(self) -> int:
        return self._denominator

    @property
    def antibot_end_at(self) -> int:
        return self._antibot_end_at

    def is_antibot_active(self, now: int) -> bool:
        return now < self._antibot_end_at

    def active_schedule(self, now: int) -> Tuple[ScheduleName, FeeSchedule]:
        if self.is_antibot_active(now):
            return ScheduleName.ANTIBOT, self._antibot_fees
        return ScheduleName.NORMAL, self._fees

    @staticmethod
    def fee_side(sender_is_market_participant: bool, recipient_is_market_participant: bool) -> Optional[FeeSide]:
        """Сторона сделки или None, если перевод не облагается."""
        if sender_is_market_participant == recipient_is_market_participant:
            return None
        if sender_is_market_participant:
            return FeeSide.BUY
        return FeeSide.SELL

    # -------------------------------------------------------------------------
    # Расчёт
    # -------------------------------------------------------------------------

    def quote(
        self,
        amount: int,
        sender_is_market_participant: bool,
        recipient_is_market_participant: bool,
        now: int,
        fee_exempt: bool = False,
    ) -> FeeQuote:
        """Расчёт комиссии для перевода.

        Args:
            amount: gross сумма перевода
            sender_is_market_participant: sender держит MARKET_PARTICIPANT
            recipient_is_market_participant: recipient держит MARKET_PARTICIPANT
            now: текущее время (Unix seconds)
            fee_exempt: перевод собственных средств ledger (accumulator/escrow)

        Returns:
            FeeQuote с fee_amount и net_amount
        """
        validate_uint(amount, "amount")

        side = None if fee_exempt else self.fee_side(
            sender_is_market_participant, recipient_is_market_participant
        )
        if side is None:
            reason = "ledger-owned account" if fee_exempt else "no single market participant"
            return FeeQuote(
                amount=amount,
                fee_amount=0,
                net_amount=amount,
                side=None,
                bps=0,
                schedule=None,
                details=f"fee-free: {reason}",
            )

        schedule_name, schedule = self.active_schedule(now)
        bps = schedule.bps_for(side)
        fee_amount = mul_div_floor(amount, bps, self._denominator)

        return FeeQuote(
            amount=amount,
            fee_amount=fee_amount,
            net_amount=amount - fee_amount,
            side=side,
            bps=bps,
            schedule=schedule_name,
            details=f"{side.value} {bps}/{self._denominator} ({schedule_name.value}): fee={fee_amount}",
        )

    def compute_fee(
        self,
        amount: int,
        sender_is_market_participant: bool,
        recipient_is_market_participant: bool,
        now: int,
    ) -> int:
        """fee_amount для перевода (см. quote)."""
        return self.quote(
            amount, sender_is_market_participant, recipient_is_market_participant, now
        ).fee_amount

    # -------------------------------------------------------------------------
    # Обновление
    # -------------------------------------------------------------------------

    def update_fees(self, schedule: FeeSchedule) -> FeeSchedule:
        """Замена normal schedule.

        Роль ADMIN здесь не проверяется: вызывать только через
        Ledger.update_fees.

        Returns:
            Предыдущий normal schedule

        Raises:
            FeeCapExceeded: buy_bps или sell_bps > maximum_bps
        """
        if schedule.exceeds(self._maximum_bps):
            raise FeeCapExceeded(schedule.buy_bps, schedule.sell_bps, self._maximum_bps)

        previous = self._fees
        with self._journal.transaction():
            self._journal.set_attr(self, "_fees", schedule)
            self._journal.emit(FeesUpdated(schedule=schedule))

        logger.info(
            "Normal fees updated buy=%d sell=%d (was buy=%d sell=%d)",
            schedule.buy_bps,
            schedule.sell_bps,
            previous.buy_bps,
            previous.sell_bps,
        )
        return previous
