"""Ledger — fee-bearing, access-gated ledger fungible токена

Ledger — единый агрегат состояния: балансы, allowances, счётчики supply,
роли (CapabilityRegistry), listing (ListingStateMachine), комиссии (FeeEngine)
и settlement (FeeSettlement). Компоненты не обращаются к состоянию друг
друга напрямую, только через операции ниже.

Transfer pipeline (transfer / transfer_from):
1. GATE 0: listing gate по identity вызывающего → TransferRestricted
2. GATE 1: allowance и balance (gross amount) → InsufficientAllowance / InsufficientBalance
3. FeeEngine: fee по ролям owner (sender) и recipient
4. Атомарное применение: debit owner на amount, credit recipient на net,
   credit ledger (fee accumulator) на fee

Каждая публичная операция выполняется в транзакции Journal: при любой ошибке
все изменения и события откатываются.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Dict, FrozenSet, Iterator, List, Optional, Sequence, Tuple, Union

from src.access.registry import CapabilityRegistry
from src.core.clock import SystemClock
from src.core.domain.events import Approval, FeeCollectorUpdated, LedgerEvent, Transfer
from src.core.domain.fee_schedule import FeeSchedule
from src.core.domain.identity import validate_account
from src.core.domain.ledger_state import LedgerConfig, LedgerSnapshot, ListingState
from src.core.domain.roles import Role
from src.core.domain.units import TOKEN_DECIMALS, format_units
from src.core.errors import (
    InsufficientAllowance,
    InsufficientBalance,
    InvalidAccount,
    TransferRestricted,
)
from src.core.journal import Journal
from src.core.math.integer_math import UINT256_MAX, validate_uint
from src.fees.engine import FeeEngine, FeeQuote
from src.gatekeeper.gates.gate_00_listing import Gate00Listing
from src.gatekeeper.gates.gate_01_funds import Gate01Funds
from src.listing.state_machine import ListingStateMachine, ListingTransitionResult
from src.settlement.exchange import ExchangeAdapter, SettlementRoute
from src.settlement.module import FeeSettlement, SettlementHooks, SettlementResult

logger = logging.getLogger(__name__)

EventSubscriber = Callable[[LedgerEvent], None]


class Ledger:
    """Fee-bearing, access-gated ledger.

    Все операции принимают identity вызывающего явно (caller): ledger не
    знает ничего о транспорте, через который пришёл запрос.
    """

    def __init__(self, config: LedgerConfig, clock: Optional[Callable[[], int]] = None):
        """
        Args:
            config: параметры создания (от deployment tooling)
            clock: источник текущего времени (Unix seconds), default SystemClock
        """
        self._config = config
        self._clock = clock or SystemClock()
        self._journal = Journal(on_commit=self._publish)

        # Состояние счетов
        self._balances: Dict[str, int] = {}
        self._allowances: Dict[str, Dict[str, int]] = {}
        self._total_supply = 0
        self._total_minted = 0
        self._total_burned = 0
        self._fee_collector = config.fee_collector

        # События
        self._events: List[LedgerEvent] = []
        self._subscribers: List[EventSubscriber] = []

        # Компоненты
        self._registry = CapabilityRegistry(self._journal)
        self._listing = ListingStateMachine(self._journal, config.listing_at)
        self._fee_engine = FeeEngine(
            journal=self._journal,
            maximum_bps=config.maximum_bps,
            denominator=config.denominator,
            fees=config.fees,
            antibot_fees=config.antibot_fees,
            antibot_end_at=config.antibot_end_at,
        )
        self._gate00 = Gate00Listing(self._listing, self._registry)
        self._gate01 = Gate01Funds()
        self._settlement = FeeSettlement(
            ledger=self,
            hooks=SettlementHooks(
                require_role=self._registry.require,
                move=self._move,
                approve=self._approve,
                emit=self._journal.emit,
            ),
            route=SettlementRoute(token=config.address, base=config.route_base),
            deadline_seconds=config.settlement_deadline_seconds,
            amount_out_min=config.settlement_amount_out_min,
        )

        self._registry.bootstrap(Role.ADMIN, config.admin)

        logger.info(
            "Ledger %s (%s) created: admin=%s, fee_collector=%s, listing_at=%d, antibot_end_at=%d",
            config.name,
            config.symbol,
            config.admin,
            config.fee_collector,
            config.listing_at,
            config.antibot_end_at,
        )

    @classmethod
    def from_config_file(
        cls, path: Union[str, Path], clock: Optional[Callable[[], int]] = None
    ) -> "Ledger":
        """Создание ledger из JSON файла параметров (с валидацией по JSON Schema)."""
        from src.core.contracts.validators import load_ledger_config

        return cls(load_ledger_config(path), clock=clock)

    # =========================================================================
    # VIEWS
    # =========================================================================

    @property
    def config(self) -> LedgerConfig:
        return self._config

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def symbol(self) -> str:
        return self._config.symbol

    @property
    def decimals(self) -> int:
        return TOKEN_DECIMALS

    @property
    def address(self) -> str:
        """Собственный identity ledger. Его баланс — fee accumulator."""
        return self._config.address

    @property
    def escrow_address(self) -> str:
        """Счёт ledger, держащий accumulator на время settlement через exchange."""
        return f"{self._config.address}:settlement"

    @property
    def own_accounts(self) -> FrozenSet[str]:
        return frozenset((self.address, self.escrow_address))

    def now(self) -> int:
        return self._clock()

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get(owner, {}).get(spender, 0)

    @property
    def total_supply(self) -> int:
        return self._total_supply

    @property
    def total_minted(self) -> int:
        return self._total_minted

    @property
    def total_burned(self) -> int:
        return self._total_burned

    @property
    def fee_collector(self) -> str:
        return self._fee_collector

    @property
    def fees(self) -> FeeSchedule:
        return self._fee_engine.fees

    @property
    def antibot_fees(self) -> FeeSchedule:
        return self._fee_engine.antibot_fees

    @property
    def maximum_bps(self) -> int:
        return self._fee_engine.maximum_bps

    @property
    def denominator(self) -> int:
        return self._fee_engine.denominator

    @property
    def listing_at(self) -> int:
        return self._listing.listing_at

    @property
    def antibot_end_at(self) -> int:
        return self._fee_engine.antibot_end_at

    @property
    def fee_engine(self) -> FeeEngine:
        return self._fee_engine

    @property
    def settlement(self) -> FeeSettlement:
        return self._settlement

    def listing_state(self) -> ListingState:
        return self._listing.state(self.now())

    def is_listed(self) -> bool:
        return self._listing.is_listed(self.now())

    def claimable_fee(self) -> int:
        """Баланс fee accumulator, доступный для settlement."""
        return self.balance_of(self.address)

    def has_role(self, role: Role, account: str) -> bool:
        return self._registry.has(role, account)

    def role_members(self, role: Role) -> FrozenSet[str]:
        return self._registry.members(role)

    @property
    def events(self) -> Tuple[LedgerEvent, ...]:
        """Закоммиченные события в порядке применения."""
        return tuple(self._events)

    def subscribe(self, subscriber: EventSubscriber) -> Callable[[], None]:
        """Подписка на закоммиченные события.

        Returns:
            Функция отписки
        """
        self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe

    def snapshot(self) -> LedgerSnapshot:
        """Read-only снапшот состояния."""
        with self._journal.transaction():
            return LedgerSnapshot(
                name=self.name,
                symbol=self.symbol,
                decimals=self.decimals,
                ts=self.now(),
                total_supply=self._total_supply,
                total_minted=self._total_minted,
                total_burned=self._total_burned,
                claimable_fee=self.claimable_fee(),
                fee_collector=self._fee_collector,
                fees=self.fees,
                antibot_fees=self.antibot_fees,
                maximum_bps=self.maximum_bps,
                denominator=self.denominator,
                listing_at=self.listing_at,
                antibot_end_at=self.antibot_end_at,
                listing_state=self.listing_state(),
                balances=dict(self._balances),
                allowances={
                    owner: dict(spenders)
                    for owner, spenders in self._allowances.items()
                    if spenders
                },
                roles={
                    role.value: sorted(self._registry.members(role))
                    for role in Role
                },
            )

    # =========================================================================
    # SUPPLY
    # =========================================================================

    def mint(self, caller: str, to: str, amount: int) -> None:
        """Выпуск amount на счёт to. Требует MINTER."""
        with self._journal.transaction():
            self._registry.require(Role.MINTER, caller)
            to = self._validate_destination(to)
            validate_uint(amount, "amount")
            if self._total_supply + amount > UINT256_MAX:
                raise ValueError(f"mint of {amount} overflows total supply")

            self._credit(to, amount)
            self._journal.set_attr(self, "_total_supply", self._total_supply + amount)
            self._journal.set_attr(self, "_total_minted", self._total_minted + amount)
            self._journal.emit(Transfer(sender=None, recipient=to, amount=amount))

        logger.info("Minted %s %s to %s by %s", format_units(amount), self.symbol, to, caller)

    def burn(self, caller: str, from_: str, amount: int) -> None:
        """Сжигание amount со счёта from_. Требует BURNER.

        Raises:
            InsufficientBalance: баланс from_ меньше amount
            InvalidAccount: from_ — счёт ledger
        """
        with self._journal.transaction():
            self._registry.require(Role.BURNER, caller)
            from_ = self._validate_owner(from_, self.own_accounts)
            validate_uint(amount, "amount")

            balance = self.balance_of(from_)
            if balance < amount:
                raise InsufficientBalance(from_, balance, amount)

            self._debit(from_, amount)
            self._journal.set_attr(self, "_total_supply", self._total_supply - amount)
            self._journal.set_attr(self, "_total_burned", self._total_burned + amount)
            self._journal.emit(Transfer(sender=from_, recipient=None, amount=amount))

        logger.info("Burned %s %s from %s by %s", format_units(amount), self.symbol, from_, caller)

    # =========================================================================
    # TRANSFERS
    # =========================================================================

    def approve(self, owner: str, spender: str, amount: int) -> None:
        """Установка allowance spender'а на средства owner.

        Raises:
            InvalidAccount: owner — счёт ledger (accumulator или escrow)
        """
        with self._journal.transaction():
            owner = self._validate_owner(owner, self.own_accounts)
            spender = validate_account(spender)
            validate_uint(amount, "amount")
            self._approve(owner, spender, amount)

    def transfer(self, caller: str, to: str, amount: int) -> FeeQuote:
        """Перевод amount со счёта caller на счёт to.

        Returns:
            FeeQuote применённого перевода

        Raises:
            TransferRestricted, InsufficientBalance
            InvalidAccount: caller — счёт ledger (accumulator или escrow)
        """
        return self._transfer(caller=caller, owner=caller, to=to, amount=amount, delegated=False)

    def transfer_from(self, caller: str, owner: str, to: str, amount: int) -> FeeQuote:
        """Перевод amount со счёта owner на счёт to силами spender'а caller.

        Allowance уменьшается на gross amount (не на net), кроме MAX_ALLOWANCE.

        Raises:
            TransferRestricted, InsufficientAllowance, InsufficientBalance
            InvalidAccount: owner — fee accumulator
        """
        return self._transfer(caller=caller, owner=owner, to=to, amount=amount, delegated=True)

    def _transfer(self, caller: str, owner: str, to: str, amount: int, delegated: bool) -> FeeQuote:
        with self._journal.transaction():
            caller = validate_account(caller)
            # Escrow тратится только по allowance (pull exchange adapter)
            reserved = frozenset((self.address,)) if delegated else self.own_accounts
            owner = self._validate_owner(owner, reserved)
            to = self._validate_destination(to)
            validate_uint(amount, "amount")
            now = self.now()

            # GATE 0: listing
            gate00 = self._gate00.evaluate(caller, now)
            if not gate00.transfer_allowed:
                logger.debug("Transfer blocked: %s", gate00.details)
                raise TransferRestricted(caller, gate00.listing_at, now)

            # GATE 1: allowance + balance
            allowance = self.allowance(owner, caller) if delegated else None
            gate01 = self._gate01.evaluate(amount, self.balance_of(owner), allowance)
            if not gate01.transfer_allowed:
                logger.debug("Transfer blocked: %s", gate01.details)
                if gate01.block_reason == "insufficient_allowance":
                    raise InsufficientAllowance(owner, caller, gate01.allowance, amount)
                raise InsufficientBalance(owner, gate01.balance, amount)

            # Fee
            quote = self._fee_engine.quote(
                amount,
                sender_is_market_participant=self._registry.has(Role.MARKET_PARTICIPANT, owner),
                recipient_is_market_participant=self._registry.has(Role.MARKET_PARTICIPANT, to),
                now=now,
                fee_exempt=owner in self.own_accounts or to in self.own_accounts,
            )

            # Применение
            if gate01.consumes_allowance:
                self._set_allowance(owner, caller, allowance - amount)
            self._debit(owner, amount)
            self._credit(to, quote.net_amount)
            self._journal.emit(Transfer(sender=owner, recipient=to, amount=quote.net_amount))
            if quote.fee_amount:
                self._credit(self.address, quote.fee_amount)
                self._journal.emit(Transfer(sender=owner, recipient=self.address, amount=quote.fee_amount))

        logger.debug(
            "Transfer %s -> %s by %s: amount=%d net=%d fee=%d (%s)",
            owner,
            to,
            caller,
            amount,
            quote.net_amount,
            quote.fee_amount,
            quote.details,
        )
        return quote

    # =========================================================================
    # ADMINISTRATION
    # =========================================================================

    def update_fees(self, caller: str, schedule: Union[FeeSchedule, dict]) -> FeeSchedule:
        """Замена normal schedule. Требует ADMIN.

        Returns:
            Предыдущий normal schedule

        Raises:
            Unauthorized, FeeCapExceeded
        """
        with self._journal.transaction():
            self._registry.require(Role.ADMIN, caller)
            if not isinstance(schedule, FeeSchedule):
                schedule = FeeSchedule.model_validate(schedule)
            return self._fee_engine.update_fees(schedule)

    def update_fee_collector(self, caller: str, fee_collector: str) -> None:
        """Замена получателя settled fees. Требует ADMIN."""
        with self._journal.transaction():
            self._registry.require(Role.ADMIN, caller)
            fee_collector = validate_account(fee_collector)
            if fee_collector in self.own_accounts:
                raise InvalidAccount(fee_collector, "fee collector cannot be a ledger-owned account")
            self._journal.set_attr(self, "_fee_collector", fee_collector)
            self._journal.emit(FeeCollectorUpdated(fee_collector=fee_collector))

        logger.info("Fee collector updated to %s by %s", fee_collector, caller)

    def set_listing_at(self, caller: str, listing_at: int) -> ListingTransitionResult:
        """Перенос listing. Требует ADMIN; только пока UNLISTED.

        Raises:
            Unauthorized, AlreadyListed
        """
        with self._journal.transaction():
            self._registry.require(Role.ADMIN, caller)
            return self._listing.reschedule(listing_at, self.now())

    def grant_role(self, caller: str, role: Role, account: str) -> bool:
        return self._registry.grant(caller, role, account)

    def revoke_role(self, caller: str, role: Role, account: str) -> bool:
        return self._registry.revoke(caller, role, account)

    def renounce_role(self, caller: str, role: Role) -> bool:
        return self._registry.renounce(caller, role)

    # =========================================================================
    # SETTLEMENT
    # =========================================================================

    def connect_exchange(self, adapter: ExchangeAdapter) -> None:
        """Привязка объекта exchange adapter к identity из конфигурации."""
        self._settlement.connect(adapter, expected_address=self._config.exchange_adapter)

    def claim_in_base(self, caller: str) -> SettlementResult:
        """Settlement accumulator на счёт fee collector в активе ledger."""
        return self._settlement.claim_in_base(caller)

    def claim_via_exchange(self, caller: str) -> SettlementResult:
        """Settlement accumulator через exchange в base currency."""
        return self._settlement.claim_via_exchange(caller)

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """Группа операций ledger, применяемая целиком или не применяемая вовсе.

        Используется внешними участниками (exchange adapter), которым нужно
        связать перевод с собственными проверками.
        """
        with self._journal.transaction():
            yield

    @property
    def journal(self) -> Journal:
        """Журнал транзакций ledger.

        Внешнее состояние, которое должно откатываться вместе с ledger
        (например, BaseCurrencyBook exchange), мутируется через этот журнал.
        """
        return self._journal

    # =========================================================================
    # INTERNALS (_move / _approve передаются FeeSettlement как SettlementHooks)
    # =========================================================================

    def _move(self, source: str, destination: str, amount: int) -> None:
        """Перемещение без gate и fee. Только для счетов, которыми владеет ledger."""
        balance = self.balance_of(source)
        if balance < amount:
            raise InsufficientBalance(source, balance, amount)
        self._debit(source, amount)
        self._credit(destination, amount)
        self._journal.emit(Transfer(sender=source, recipient=destination, amount=amount))

    def _approve(self, owner: str, spender: str, amount: int) -> None:
        self._set_allowance(owner, spender, amount)
        self._journal.emit(Approval(owner=owner, spender=spender, amount=amount))

    def _set_allowance(self, owner: str, spender: str, amount: int) -> None:
        if owner not in self._allowances:
            self._journal.set_item(self._allowances, owner, {})
        self._journal.set_item(self._allowances[owner], spender, amount)

    def _credit(self, account: str, amount: int) -> None:
        self._journal.set_item(self._balances, account, self.balance_of(account) + amount)

    def _debit(self, account: str, amount: int) -> None:
        self._journal.set_item(self._balances, account, self.balance_of(account) - amount)

    def _validate_owner(self, account: str, reserved: FrozenSet[str]) -> str:
        account = validate_account(account)
        if account in reserved:
            raise InvalidAccount(account, "ledger-owned funds move only through settlement")
        return account

    def _validate_destination(self, account: str) -> str:
        account = validate_account(account)
        if account == self.escrow_address:
            raise InvalidAccount(account, "settlement escrow is reserved")
        return account

    def _publish(self, events: Sequence[LedgerEvent]) -> None:
        self._events.extend(events)
        for event in events:
            for subscriber in list(self._subscribers):
                try:
                    subscriber(event)
                except Exception:
                    logger.exception("Event subscriber %r failed on %s", subscriber, event.name)
