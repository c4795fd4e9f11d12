"""
Exchange — внешний exchange для settlement в base currency

Содержит:
- ExchangeAdapter: протокол "swap exact input along a route, с deadline и
  minimum-output guard", который потребляет FeeSettlement
- SettlementRoute: маршрут token → base currency
- BaseCurrencyBook: балансы base currency (вне ledger, мутации через журнал ledger)
- ConstantProductExchange: reference adapter, pool x*y=k с комиссией pool

ConstantProductExchange забирает токены через ledger.transfer_from (payer
должен заранее выдать allowance) и измеряет фактически полученную pool сумму,
поэтому корректно работает с fee-on-transfer токеном.
"""

import logging
from typing import Callable, Dict, Optional, Protocol, Sequence, Tuple, runtime_checkable

from pydantic import BaseModel, Field

from src.core.domain.identity import validate_account
from src.core.errors import ExchangeError
from src.core.journal import Journal
from src.core.math.integer_math import validate_positive_int, validate_uint

logger = logging.getLogger(__name__)


# =============================================================================
# PROTOCOL
# =============================================================================


@runtime_checkable
class ExchangeAdapter(Protocol):
    """Внешний exchange, используемый settlement."""

    address: str

    def swap_exact_tokens_for_base(
        self,
        payer: str,
        amount_in: int,
        amount_out_min: int,
        path: Sequence[str],
        recipient: str,
        deadline: int,
    ) -> int:
        """Обмен ровно amount_in токенов payer'а на base currency для recipient.

        Returns:
            Сумма base currency, зачисленная recipient

        Raises:
            ExchangeError: deadline истёк, выход ниже amount_out_min, неверный маршрут
        """
        ...


class SettlementRoute(BaseModel):
    """Маршрут token → base currency."""

    token: str = Field(..., min_length=1, description="Identity токена ledger")
    base: str = Field(..., min_length=1, description="Base currency (например, WETH)")

    model_config = {"frozen": True}

    @property
    def path(self) -> Tuple[str, str]:
        return (self.token, self.base)


# =============================================================================
# BASE CURRENCY BOOK
# =============================================================================


class BaseCurrencyBook:
    """Балансы base currency (reference currency вне ledger).

    Мутации идут через Journal. Для exchange, подключённого к ledger, это
    журнал ledger (Ledger.journal): откат settlement или внешнего
    ledger.atomic() откатывает и выплаты в base currency.
    """

    def __init__(self, currency: str = "WETH", journal: Optional[Journal] = None):
        self.currency = currency
        self._journal = journal or Journal()
        self._balances: Dict[str, int] = {}

    @property
    def journal(self) -> Journal:
        return self._journal

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def deposit(self, account: str, amount: int) -> None:
        validate_uint(amount, "amount")
        account = validate_account(account)
        with self._journal.transaction():
            self._journal.set_item(self._balances, account, self.balance_of(account) + amount)

    def transfer(self, source: str, destination: str, amount: int) -> None:
        validate_uint(amount, "amount")
        destination = validate_account(destination)
        balance = self.balance_of(source)
        if balance < amount:
            raise ExchangeError(
                f"{self.currency} balance of {source!r} is {balance}, cannot transfer {amount}"
            )
        with self._journal.transaction():
            self._journal.set_item(self._balances, source, balance - amount)
            self._journal.set_item(self._balances, destination, self.balance_of(destination) + amount)


# =============================================================================
# CONSTANT PRODUCT EXCHANGE
# =============================================================================


class ConstantProductExchange:
    """Reference exchange adapter: один pool token/base, x*y=k.

    Резерв token — баланс pool в ledger, резерв base — баланс pool в
    BaseCurrencyBook. Pool должен держать MARKET_PARTICIPANT в ledger,
    чтобы продажи в pool облагались sell fee.
    """

    def __init__(
        self,
        address: str,
        ledger,
        base_book: BaseCurrencyBook,
        pool_address: str,
        clock: Callable[[], int],
        swap_fee_bps: int = 30,
        fee_denominator: int = 10_000,
    ):
        """
        Args:
            address: identity adapter (spender в ledger)
            ledger: ledger токена
            base_book: балансы base currency
            pool_address: identity pool (держатель резервов)
            clock: источник текущего времени для deadline
            swap_fee_bps: комиссия pool (default 30 = 0.3%)
            fee_denominator: знаменатель комиссии pool

        Raises:
            ValueError: base_book не использует журнал ledger
        """
        self.address = validate_account(address)
        self.pool_address = validate_account(pool_address)
        if base_book.journal is not ledger.journal:
            raise ValueError("base currency book must share the ledger journal")
        self._ledger = ledger
        self._base_book = base_book
        self._clock = clock
        self._fee_denominator = validate_positive_int(fee_denominator, "fee_denominator")
        self._swap_fee_bps = validate_uint(swap_fee_bps, "swap_fee_bps", self._fee_denominator - 1)

    def reserves(self) -> Tuple[int, int]:
        """(token_reserve, base_reserve)."""
        return (
            self._ledger.balance_of(self.pool_address),
            self._base_book.balance_of(self.pool_address),
        )

    def get_amount_out(self, amount_in: int, reserve_in: int, reserve_out: int) -> int:
        """Выход swap по формуле constant product с комиссией pool.

        Raises:
            ExchangeError: если резервы пусты
        """
        validate_uint(amount_in, "amount_in")
        if reserve_in <= 0 or reserve_out <= 0:
            raise ExchangeError("insufficient liquidity")

        amount_in_with_fee = amount_in * (self._fee_denominator - self._swap_fee_bps)
        numerator = amount_in_with_fee * reserve_out
        denominator = reserve_in * self._fee_denominator + amount_in_with_fee
        return numerator // denominator

    def swap_exact_tokens_for_base(
        self,
        payer: str,
        amount_in: int,
        amount_out_min: int,
        path: Sequence[str],
        recipient: str,
        deadline: int,
    ) -> int:
        """Продажа amount_in токенов payer'а в pool, base currency → recipient."""
        validate_uint(amount_in, "amount_in")
        validate_uint(amount_out_min, "amount_out_min")

        now = self._clock()
        if now > deadline:
            raise ExchangeError(f"swap expired: deadline {deadline} < now {now}")

        expected_path = (self._ledger.address, self._base_book.currency)
        if tuple(path) != expected_path:
            raise ExchangeError(f"unsupported path {tuple(path)}, expected {expected_path}")

        reserve_in, reserve_out = self.reserves()

        with self._ledger.atomic():
            self._ledger.transfer_from(self.address, payer, self.pool_address, amount_in)
            received = self._ledger.balance_of(self.pool_address) - reserve_in

            amount_out = self.get_amount_out(received, reserve_in, reserve_out)
            if amount_out < amount_out_min:
                raise ExchangeError(
                    f"insufficient output amount: {amount_out} < minimum {amount_out_min}"
                )

            self._base_book.transfer(self.pool_address, recipient, amount_out)

        logger.info(
            "Swapped %d tokens from %s for %d %s to %s (received by pool: %d)",
            amount_in,
            payer,
            amount_out,
            self._base_book.currency,
            recipient,
            received,
        )
        return amount_out
