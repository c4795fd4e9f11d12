"""
FeeSchedule — Модель ставок комиссии

Immutable Pydantic модель {buy_bps, sell_bps}. Ставки в basis points,
хранятся как uint16 (0..65535) и делятся на denominator ledger.

Два экземпляра в ledger:
- normal: ограничен maximum_bps
- antibot: фиксируется при создании, cap НЕ применяется
"""

from enum import Enum

from pydantic import BaseModel, Field, StrictInt

from src.core.math.integer_math import UINT16_MAX


# =============================================================================
# ENUMS
# =============================================================================


class FeeSide(str, Enum):
    """Сторона сделки с market participant."""

    BUY = "buy"  # sender: market participant (покупка из pool)
    SELL = "sell"  # recipient: market participant (продажа в pool)


class ScheduleName(str, Enum):
    NORMAL = "normal"
    ANTIBOT = "antibot"


# =============================================================================
# FEE SCHEDULE MODEL
# =============================================================================


class FeeSchedule(BaseModel):
    """
    Ставки комиссии buy/sell.

    Immutable модель (frozen=True).
    """

    buy_bps: StrictInt = Field(..., ge=0, le=UINT16_MAX, description="Ставка buy (bps)")
    sell_bps: StrictInt = Field(..., ge=0, le=UINT16_MAX, description="Ставка sell (bps)")

    model_config = {"frozen": True}

    def bps_for(self, side: FeeSide) -> int:
        """Ставка для стороны сделки."""
        if side == FeeSide.BUY:
            return self.buy_bps
        return self.sell_bps

    def exceeds(self, maximum_bps: int) -> bool:
        """True если хотя бы одна ставка выше maximum_bps."""
        return self.buy_bps > maximum_bps or self.sell_bps > maximum_bps
