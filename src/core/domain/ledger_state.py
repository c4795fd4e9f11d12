"""
LedgerState — Модели конфигурации и снапшота ledger

Immutable Pydantic модели:
- LedgerConfig: параметры создания ledger (то, что передаёт deployment tooling).
  Совместима с JSON Schema (contracts/schema/ledger_config.json).
- LedgerSnapshot: read-only снапшот состояния для инспекции и экспорта.
  Совместима с JSON Schema (contracts/schema/ledger_snapshot.json).
"""

from enum import Enum

from pydantic import BaseModel, Field, model_validator

from src.core.math.integer_math import UINT16_MAX

from .fee_schedule import FeeSchedule


# =============================================================================
# ENUMS
# =============================================================================


class ListingState(str, Enum):
    """
    Состояние listing gate.

    LISTED терминально: после now >= listing_at возврата нет.
    """

    UNLISTED = "UNLISTED"
    LISTED = "LISTED"


# =============================================================================
# CONFIG
# =============================================================================


class LedgerConfig(BaseModel):
    """
    Параметры создания ledger.

    Инвариант: fees (normal) не превышает maximum_bps.
    antibot_fees против maximum_bps НЕ проверяется.
    """

    # Метаданные токена
    name: str = Field("RandomDEX", min_length=1, description="Имя токена")
    symbol: str = Field("RDX", min_length=1, description="Тикер токена")
    address: str = Field(
        "ledger", min_length=1, description="Собственный identity ledger (fee accumulator)"
    )

    # Участники
    admin: str = Field(..., min_length=1, description="Начальный держатель ADMIN")
    fee_collector: str = Field(..., min_length=1, description="Получатель settled fees")

    # Комиссии
    maximum_bps: int = Field(..., ge=0, le=UINT16_MAX, description="Cap для normal schedule")
    denominator: int = Field(..., gt=0, le=UINT16_MAX, description="Знаменатель bps")
    fees: FeeSchedule = Field(..., description="Normal schedule")
    antibot_fees: FeeSchedule = Field(..., description="Antibot schedule (без cap)")

    # Время (Unix seconds)
    antibot_end_at: int = Field(..., ge=0, description="Конец antibot окна")
    listing_at: int = Field(..., ge=0, description="Момент listing")

    # Settlement через exchange
    exchange_adapter: str = Field(..., min_length=1, description="Identity exchange adapter")
    route_base: str = Field("WETH", min_length=1, description="Base currency маршрута")
    settlement_deadline_seconds: int = Field(
        600, ge=0, description="Deadline swap относительно now"
    )
    settlement_amount_out_min: int = Field(
        0, ge=0, description="Минимальный выход swap (base currency)"
    )

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_fee_cap(self) -> "LedgerConfig":
        """Проверка normal schedule против maximum_bps."""
        if self.fees.exceeds(self.maximum_bps):
            raise ValueError(
                f"fees buy={self.fees.buy_bps} sell={self.fees.sell_bps} "
                f"exceed maximum_bps {self.maximum_bps}"
            )
        return self

    @model_validator(mode="after")
    def validate_distinct_ledger_address(self) -> "LedgerConfig":
        """Собственный identity ledger не может совпадать с участниками."""
        for field_name in ("admin", "fee_collector", "exchange_adapter"):
            if getattr(self, field_name) == self.address:
                raise ValueError(f"{field_name} must differ from ledger address {self.address!r}")
        return self


# =============================================================================
# SNAPSHOT
# =============================================================================


class LedgerSnapshot(BaseModel):
    """
    Снапшот состояния ledger.

    Immutable модель (frozen=True). Не является механизмом persistence:
    используется для инспекции, логирования и проверки инвариантов.
    """

    name: str
    symbol: str
    decimals: int = Field(..., ge=0)
    ts: int = Field(..., ge=0, description="now на момент снапшота")

    # Supply
    total_supply: int = Field(..., ge=0)
    total_minted: int = Field(..., ge=0)
    total_burned: int = Field(..., ge=0)
    claimable_fee: int = Field(..., ge=0, description="Баланс fee accumulator")

    # Комиссии и время
    fee_collector: str
    fees: FeeSchedule
    antibot_fees: FeeSchedule
    maximum_bps: int = Field(..., ge=0)
    denominator: int = Field(..., gt=0)
    listing_at: int = Field(..., ge=0)
    antibot_end_at: int = Field(..., ge=0)
    listing_state: ListingState

    # Состояние счетов
    balances: dict[str, int] = Field(default_factory=dict)
    allowances: dict[str, dict[str, int]] = Field(default_factory=dict)
    roles: dict[str, list[str]] = Field(default_factory=dict)

    model_config = {"frozen": True}

    def balances_sum(self) -> int:
        return sum(self.balances.values())
