"""
Ledger Events — неизменяемые факты о применённых операциях.

События буферизуются внутри транзакции ledger и публикуются подписчикам
только после commit внешней транзакции. При откате буфер отбрасывается.
"""

from typing import Optional

from pydantic import BaseModel, Field

from .fee_schedule import FeeSchedule
from .roles import Role


class LedgerEvent(BaseModel):
    """Базовая модель события."""

    model_config = {"frozen": True}

    @property
    def name(self) -> str:
        return type(self).__name__


class Transfer(LedgerEvent):
    """Перемещение суммы. mint: sender=None, burn: recipient=None."""

    sender: Optional[str] = Field(..., description="Отправитель (None для mint)")
    recipient: Optional[str] = Field(..., description="Получатель (None для burn)")
    amount: int = Field(..., ge=0, description="Сумма (base units)")


class Approval(LedgerEvent):
    owner: str
    spender: str
    amount: int = Field(..., ge=0)


class RoleGranted(LedgerEvent):
    role: Role
    account: str
    sender: str = Field(..., description="Кто выдал роль")


class RoleRevoked(LedgerEvent):
    role: Role
    account: str
    sender: str = Field(..., description="Кто отозвал роль")


class FeesUpdated(LedgerEvent):
    schedule: FeeSchedule


class FeeCollectorUpdated(LedgerEvent):
    fee_collector: str


class ListingTimestampUpdated(LedgerEvent):
    listing_at: int = Field(..., ge=0)


class FeeClaimed(LedgerEvent):
    """Settlement fee accumulator.

    proceeds — сумма в base currency, если settlement шёл через exchange.
    """

    amount: int = Field(..., gt=0)
    fee_collector: str
    proceeds: Optional[int] = Field(None, ge=0)
