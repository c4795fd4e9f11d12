"""
Unit tests для Fee Settlement

Coverage:
- claim_in_base: перевод accumulator на fee collector
- claim_via_exchange: swap через ConstantProductExchange в base currency
- Пустой accumulator → InsufficientClaimAmount
- Ошибка exchange откатывает settlement целиком
- Reentrant claim во время внешнего вызова видит нулевой accumulator
"""

import pytest

from src.core.clock import ManualClock
from src.core.domain.events import FeeClaimed
from src.core.domain.fee_schedule import FeeSchedule
from src.core.domain.ledger_state import LedgerConfig
from src.core.domain.roles import Role
from src.core.errors import (
    ExchangeError,
    InsufficientAllowance,
    InsufficientClaimAmount,
    TransferRestricted,
    Unauthorized,
)
from src.ledger import Ledger
from src.settlement import (
    BaseCurrencyBook,
    ConstantProductExchange,
    ExchangeAdapter,
    FeeSettlement,
    SettlementHooks,
    SettlementRoute,
)

LISTING_AT = 1_500
ANTIBOT_END_AT = 2_000
POOL_TOKENS = 1_000_000
POOL_BASE = 1_000_000


def make_config(**overrides) -> LedgerConfig:
    params = dict(
        admin="admin",
        fee_collector="collector",
        maximum_bps=300,
        denominator=10_000,
        fees=FeeSchedule(buy_bps=300, sell_bps=300),
        antibot_fees=FeeSchedule(buy_bps=2500, sell_bps=2500),
        antibot_end_at=ANTIBOT_END_AT,
        listing_at=LISTING_AT,
        exchange_adapter="router",
    )
    params.update(overrides)
    return LedgerConfig(**params)


def make_ledger(clock: ManualClock, **overrides) -> Ledger:
    """Ledger с pool, ликвидностью и накопленной комиссией 30 (Scenario A)."""
    ledger = Ledger(make_config(**overrides), clock=clock)
    ledger.grant_role("admin", Role.MINTER, "minter")
    ledger.grant_role("admin", Role.MARKET_PARTICIPANT, "pool")
    ledger.mint("minter", "pool", POOL_TOKENS)
    ledger.mint("minter", "alice", 10_000)
    return ledger


class ScriptedExchange:
    """Exchange adapter, выполняющий заданный сценарий вместо swap."""

    address = "router"

    def __init__(self, ledger: Ledger, pull=None, proceeds: int = 7, on_swap=None):
        self._ledger = ledger
        self._pull = pull
        self._proceeds = proceeds
        self._on_swap = on_swap
        self.calls = []

    def swap_exact_tokens_for_base(self, payer, amount_in, amount_out_min, path, recipient, deadline):
        self.calls.append((payer, amount_in, amount_out_min, tuple(path), recipient, deadline))
        if self._on_swap is not None:
            self._on_swap()
        pull = amount_in if self._pull is None else self._pull
        self._ledger.transfer_from(self.address, payer, "sink", pull)
        return self._proceeds


@pytest.fixture
def clock():
    return ManualClock(ANTIBOT_END_AT)


@pytest.fixture
def ledger(clock):
    ledger = make_ledger(clock)
    ledger.transfer("alice", "pool", 1_000)
    assert ledger.claimable_fee() == 30
    return ledger


def make_book(ledger: Ledger) -> BaseCurrencyBook:
    book = BaseCurrencyBook("WETH", journal=ledger.journal)
    book.deposit("pool", POOL_BASE)
    return book


@pytest.fixture
def base_book(ledger):
    return make_book(ledger)


@pytest.fixture
def exchange(ledger, base_book, clock):
    exchange = ConstantProductExchange(
        address="router",
        ledger=ledger,
        base_book=base_book,
        pool_address="pool",
        clock=clock,
    )
    ledger.connect_exchange(exchange)
    return exchange


def assert_settlement_rolled_back(ledger: Ledger, events_before: int) -> None:
    assert ledger.claimable_fee() == 30
    assert ledger.balance_of(ledger.escrow_address) == 0
    assert ledger.allowance(ledger.escrow_address, "router") == 0
    assert len(ledger.events) == events_before


# =============================================================================
# CLAIM IN BASE
# =============================================================================


class TestClaimInBase:
    def test_claim_moves_accumulator_to_collector(self, ledger) -> None:
        result = ledger.claim_in_base("admin")

        assert result.amount == 30
        assert result.fee_collector == "collector"
        assert not result.via_exchange
        assert result.proceeds is None
        assert ledger.claimable_fee() == 0
        assert ledger.balance_of("collector") == 30
        assert ledger.events[-1] == FeeClaimed(amount=30, fee_collector="collector")

    def test_claim_is_fee_free_for_participant_collector(self, ledger) -> None:
        """Collector с MARKET_PARTICIPANT получает accumulator полностью."""
        ledger.grant_role("admin", Role.MARKET_PARTICIPANT, "collector")
        ledger.claim_in_base("admin")
        assert ledger.balance_of("collector") == 30

    def test_claim_uses_current_collector(self, ledger) -> None:
        ledger.update_fee_collector("admin", "treasury")
        ledger.claim_in_base("admin")
        assert ledger.balance_of("treasury") == 30

    def test_zero_accumulator(self, clock) -> None:
        ledger = make_ledger(clock)
        with pytest.raises(InsufficientClaimAmount):
            ledger.claim_in_base("admin")

    def test_second_claim_fails(self, ledger) -> None:
        ledger.claim_in_base("admin")
        with pytest.raises(InsufficientClaimAmount):
            ledger.claim_in_base("admin")

    def test_requires_admin(self, ledger) -> None:
        with pytest.raises(Unauthorized):
            ledger.claim_in_base("collector")
        assert ledger.claimable_fee() == 30

    def test_not_gated_by_listing(self) -> None:
        ledger = make_ledger(ManualClock(1_000))
        ledger.grant_role("admin", Role.ALLOWED_PRE_LISTING_TRANSFER, "alice")
        ledger.transfer("alice", "pool", 1_000)

        assert not ledger.is_listed()
        result = ledger.claim_in_base("admin")
        assert result.amount == 250

    def test_state_changes_only_through_hooks(self, ledger) -> None:
        """FeeSettlement меняет ledger только через переданные hooks."""
        calls = []
        hooks = SettlementHooks(
            require_role=lambda role, caller: calls.append(("require_role", role, caller)),
            move=lambda source, destination, amount: calls.append(("move", source, destination, amount)),
            approve=lambda owner, spender, amount: calls.append(("approve", owner, spender, amount)),
            emit=lambda event: calls.append(("emit", event)),
        )
        settlement = FeeSettlement(ledger, hooks, SettlementRoute(token="ledger", base="WETH"))

        result = settlement.claim_in_base("admin")

        assert result.amount == 30
        assert calls == [
            ("require_role", Role.ADMIN, "admin"),
            ("move", "ledger", "collector", 30),
            ("emit", FeeClaimed(amount=30, fee_collector="collector")),
        ]
        assert ledger.claimable_fee() == 30


# =============================================================================
# CLAIM VIA EXCHANGE
# =============================================================================


class TestClaimViaExchange:
    def test_swap_through_constant_product_pool(self, ledger, exchange, base_book) -> None:
        reserve_in, reserve_out = exchange.reserves()
        expected = exchange.get_amount_out(30, reserve_in, reserve_out)

        result = ledger.claim_via_exchange("admin")

        assert result.via_exchange
        assert result.amount == 30
        assert result.proceeds == expected
        assert expected > 0
        assert base_book.balance_of("collector") == expected
        assert base_book.balance_of("pool") == POOL_BASE - expected
        assert ledger.balance_of("pool") == reserve_in + 30
        assert ledger.claimable_fee() == 0
        assert ledger.balance_of(ledger.escrow_address) == 0
        assert ledger.allowance(ledger.escrow_address, "router") == 0
        assert ledger.events[-1] == FeeClaimed(amount=30, fee_collector="collector", proceeds=expected)

    def test_swap_arguments(self, ledger, clock) -> None:
        adapter = ScriptedExchange(ledger)
        ledger.connect_exchange(adapter)

        ledger.claim_via_exchange("admin")

        assert adapter.calls == [
            (ledger.escrow_address, 30, 0, ("ledger", "WETH"), "collector", ANTIBOT_END_AT + 600)
        ]
        assert ledger.balance_of("sink") == 30

    def test_zero_accumulator(self, clock) -> None:
        ledger = make_ledger(clock)
        ledger.connect_exchange(ScriptedExchange(ledger))
        with pytest.raises(InsufficientClaimAmount):
            ledger.claim_via_exchange("admin")

    def test_requires_admin(self, ledger, exchange) -> None:
        with pytest.raises(Unauthorized):
            ledger.claim_via_exchange("alice")

    def test_no_adapter_connected(self, ledger) -> None:
        events_before = len(ledger.events)
        with pytest.raises(ExchangeError, match="no exchange adapter"):
            ledger.claim_via_exchange("admin")
        assert_settlement_rolled_back(ledger, events_before)

    def test_expired_deadline_rolls_back(self, ledger, base_book) -> None:
        late_clock = ManualClock(ANTIBOT_END_AT + 601)
        ledger.connect_exchange(
            ConstantProductExchange("router", ledger, base_book, "pool", clock=late_clock)
        )
        events_before = len(ledger.events)

        with pytest.raises(ExchangeError, match="expired"):
            ledger.claim_via_exchange("admin")

        assert_settlement_rolled_back(ledger, events_before)
        assert base_book.balance_of("collector") == 0

    def test_minimum_output_rolls_back(self, clock) -> None:
        ledger = make_ledger(clock, settlement_amount_out_min=1_000)
        ledger.transfer("alice", "pool", 1_000)
        base_book = make_book(ledger)
        ledger.connect_exchange(
            ConstantProductExchange("router", ledger, base_book, "pool", clock=clock)
        )
        pool_tokens = ledger.balance_of("pool")
        events_before = len(ledger.events)

        with pytest.raises(ExchangeError, match="insufficient output"):
            ledger.claim_via_exchange("admin")

        assert_settlement_rolled_back(ledger, events_before)
        assert ledger.balance_of("pool") == pool_tokens
        assert base_book.balance_of("pool") == POOL_BASE

    def test_enclosing_atomic_rollback_reverts_base_payout(self, ledger, exchange, base_book) -> None:
        """Откат внешнего ledger.atomic() возвращает и выплату в base currency."""
        events_before = len(ledger.events)

        with pytest.raises(RuntimeError, match="abort"):
            with ledger.atomic():
                ledger.claim_via_exchange("admin")
                assert base_book.balance_of("collector") > 0
                raise RuntimeError("abort")

        assert_settlement_rolled_back(ledger, events_before)
        assert base_book.balance_of("collector") == 0
        assert base_book.balance_of("pool") == POOL_BASE
        assert exchange.reserves() == (POOL_TOKENS + 970, POOL_BASE)

    def test_ledger_error_from_adapter_is_wrapped(self, ledger) -> None:
        ledger.connect_exchange(ScriptedExchange(ledger, pull=31))
        events_before = len(ledger.events)

        with pytest.raises(ExchangeError) as exc_info:
            ledger.claim_via_exchange("admin")

        assert isinstance(exc_info.value.__cause__, InsufficientAllowance)
        assert_settlement_rolled_back(ledger, events_before)
        assert ledger.balance_of("sink") == 0

    def test_partial_pull_rejected(self, ledger) -> None:
        ledger.connect_exchange(ScriptedExchange(ledger, pull=10))
        events_before = len(ledger.events)

        with pytest.raises(ExchangeError, match="settlement escrow"):
            ledger.claim_via_exchange("admin")

        assert_settlement_rolled_back(ledger, events_before)
        assert ledger.balance_of("sink") == 0

    def test_adapter_needs_pre_listing_role_before_listing(self) -> None:
        clock = ManualClock(1_000)
        ledger = make_ledger(clock)
        ledger.grant_role("admin", Role.ALLOWED_PRE_LISTING_TRANSFER, "alice")
        ledger.transfer("alice", "pool", 1_000)
        ledger.connect_exchange(ScriptedExchange(ledger))

        with pytest.raises(ExchangeError) as exc_info:
            ledger.claim_via_exchange("admin")
        assert isinstance(exc_info.value.__cause__, TransferRestricted)
        assert ledger.claimable_fee() == 250

        ledger.grant_role("admin", Role.ALLOWED_PRE_LISTING_TRANSFER, "router")
        assert ledger.claim_via_exchange("admin").amount == 250

    def test_reentrant_claim_sees_empty_accumulator(self, ledger) -> None:
        observed = []

        def reenter():
            observed.append(ledger.claimable_fee())
            try:
                ledger.claim_via_exchange("admin")
            except InsufficientClaimAmount as e:
                observed.append(e)

        ledger.connect_exchange(ScriptedExchange(ledger, on_swap=reenter))
        result = ledger.claim_via_exchange("admin")

        assert observed[0] == 0
        assert isinstance(observed[1], InsufficientClaimAmount)
        assert result.amount == 30
        assert ledger.balance_of("sink") == 30
        assert sum(1 for event in ledger.events if isinstance(event, FeeClaimed)) == 1


# =============================================================================
# EXCHANGE ADAPTER
# =============================================================================


class TestConstantProductExchange:
    def test_connect_checks_configured_address(self, ledger, base_book, clock) -> None:
        other = ConstantProductExchange("other-router", ledger, base_book, "pool", clock=clock)
        with pytest.raises(ValueError, match="does not match"):
            ledger.connect_exchange(other)

    def test_second_adapter_rejected(self, ledger, exchange, base_book, clock) -> None:
        replacement = ConstantProductExchange("router", ledger, base_book, "pool", clock=clock)
        with pytest.raises(ValueError, match="already connected"):
            ledger.connect_exchange(replacement)
        ledger.connect_exchange(exchange)

    def test_satisfies_protocol(self, exchange) -> None:
        assert isinstance(exchange, ExchangeAdapter)

    def test_get_amount_out(self, exchange) -> None:
        # 1000 * 9970 * 1_000_000 / (1_000_000 * 10000 + 1000 * 9970)
        assert exchange.get_amount_out(1_000, 1_000_000, 1_000_000) == 996

    def test_empty_reserves(self, exchange) -> None:
        with pytest.raises(ExchangeError, match="liquidity"):
            exchange.get_amount_out(1_000, 0, 1_000_000)

    def test_unsupported_path(self, ledger, exchange, clock) -> None:
        with pytest.raises(ExchangeError, match="unsupported path"):
            exchange.swap_exact_tokens_for_base(
                "alice", 10, 0, ("ledger", "USDC"), "alice", clock() + 10
            )

    def test_direct_swap_charges_sell_fee(self, ledger, exchange, base_book, clock) -> None:
        """Прямой swap пользователя облагается sell fee; pool учитывает фактически полученное."""
        ledger.approve("alice", "router", 1_000)
        reserve_in, reserve_out = exchange.reserves()

        out = exchange.swap_exact_tokens_for_base(
            "alice", 1_000, 0, ("ledger", "WETH"), "alice", clock() + 10
        )

        assert ledger.balance_of("pool") == reserve_in + 970
        assert out == exchange.get_amount_out(970, reserve_in, reserve_out)
        assert base_book.balance_of("alice") == out

    def test_base_book_overdraft(self) -> None:
        book = BaseCurrencyBook()
        with pytest.raises(ExchangeError):
            book.transfer("pool", "alice", 1)

    def test_book_must_share_ledger_journal(self, ledger, clock) -> None:
        foreign = BaseCurrencyBook("WETH")
        with pytest.raises(ValueError, match="journal"):
            ConstantProductExchange("router", ledger, foreign, "pool", clock=clock)

    def test_book_changes_roll_back_with_ledger(self, ledger, base_book) -> None:
        with pytest.raises(RuntimeError):
            with ledger.atomic():
                base_book.deposit("alice", 5)
                base_book.transfer("pool", "alice", 10)
                raise RuntimeError("abort")

        assert base_book.balance_of("alice") == 0
        assert base_book.balance_of("pool") == POOL_BASE
