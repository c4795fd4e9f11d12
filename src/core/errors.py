"""
Ledger errors — именованные причины отказа операций.

Каждая операция ledger либо применяется целиком, либо откатывается и
поднимает одно из исключений ниже. Вызывающая сторона различает
"нужна другая роль" (Unauthorized), "нужно подождать" (TransferRestricted)
и "недостаточно средств" (InsufficientBalance/InsufficientAllowance).
"""

from typing import Optional


class LedgerError(Exception):
    """Базовый класс ошибок ledger."""


class Unauthorized(LedgerError):
    """Вызывающий не имеет требуемой роли."""

    def __init__(self, role, account: str):
        self.role = role
        self.account = account
        role_name = getattr(role, "value", role)
        super().__init__(f"account {account!r} is missing role {role_name}")


class TransferRestricted(LedgerError):
    """Transfer до listing от вызывающего без ALLOWED_PRE_LISTING_TRANSFER."""

    def __init__(self, caller: str, listing_at: int, now: int):
        self.caller = caller
        self.listing_at = listing_at
        self.now = now
        super().__init__(
            f"transfers by {caller!r} are restricted until listing at {listing_at} (now={now})"
        )


class FeeCapExceeded(LedgerError):
    """Обновление normal schedule выше maximum_bps."""

    def __init__(self, buy_bps: int, sell_bps: int, maximum_bps: int):
        self.buy_bps = buy_bps
        self.sell_bps = sell_bps
        self.maximum_bps = maximum_bps
        super().__init__(
            f"fees buy={buy_bps} sell={sell_bps} exceed maximum {maximum_bps} bps"
        )


class AlreadyListed(LedgerError):
    """Перенос listing после того, как listing уже произошёл."""

    def __init__(self, listing_at: int, now: int):
        self.listing_at = listing_at
        self.now = now
        super().__init__(f"already listed at {listing_at} (now={now})")


class InsufficientBalance(LedgerError):
    def __init__(self, account: str, balance: int, needed: int):
        self.account = account
        self.balance = balance
        self.needed = needed
        super().__init__(
            f"account {account!r} balance {balance} is less than {needed}"
        )


class InsufficientAllowance(LedgerError):
    def __init__(self, owner: str, spender: str, allowance: int, needed: int):
        self.owner = owner
        self.spender = spender
        self.allowance = allowance
        self.needed = needed
        super().__init__(
            f"spender {spender!r} allowance {allowance} from {owner!r} is less than {needed}"
        )


class InsufficientClaimAmount(LedgerError):
    """Fee accumulator пуст."""

    def __init__(self):
        super().__init__("fee accumulator is empty")


class InvalidAccount(LedgerError):
    def __init__(self, account: object, reason: Optional[str] = None):
        self.account = account
        message = f"invalid account identity {account!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ExchangeError(LedgerError):
    """Внешний exchange adapter не смог выполнить swap."""
