"""GATE 1: Allowance / Balance sufficiency

Второй gate в цепочке transfer (после GATE 0):
- transfer_from: allowance spender'а >= amount (MAX_ALLOWANCE всегда достаточно)
- balance владельца >= amount

Проверяется gross amount: fee удерживается из суммы перевода, а не сверху.
"""

from dataclasses import dataclass
from typing import Optional

from src.core.math.integer_math import UINT256_MAX

# Sentinel "unlimited" allowance: не уменьшается при transfer_from
MAX_ALLOWANCE = UINT256_MAX


@dataclass(frozen=True)
class Gate01Result:
    """Результат GATE 1."""

    transfer_allowed: bool
    block_reason: str

    amount: int
    balance: int
    allowance: Optional[int]  # None для прямого transfer

    # True если allowance нужно уменьшить после перевода
    consumes_allowance: bool

    details: str


class Gate01Funds:
    """GATE 1: достаточность allowance и баланса.

    Порядок проверок:
    1. allowance (только для transfer_from)
    2. balance
    """

    def evaluate(self, amount: int, balance: int, allowance: Optional[int] = None) -> Gate01Result:
        """Оценка GATE 1.

        Args:
            amount: gross сумма перевода
            balance: баланс владельца
            allowance: allowance spender'а (None для прямого transfer)
        """
        if allowance is not None and allowance < amount:
            return Gate01Result(
                transfer_allowed=False,
                block_reason="insufficient_allowance",
                amount=amount,
                balance=balance,
                allowance=allowance,
                consumes_allowance=False,
                details=f"BLOCK: allowance {allowance} < amount {amount}",
            )

        if balance < amount:
            return Gate01Result(
                transfer_allowed=False,
                block_reason="insufficient_balance",
                amount=amount,
                balance=balance,
                allowance=allowance,
                consumes_allowance=False,
                details=f"BLOCK: balance {balance} < amount {amount}",
            )

        consumes_allowance = allowance is not None and allowance != MAX_ALLOWANCE

        return Gate01Result(
            transfer_allowed=True,
            block_reason="",
            amount=amount,
            balance=balance,
            allowance=allowance,
            consumes_allowance=consumes_allowance,
            details=f"PASS: amount={amount}, balance={balance}, allowance={allowance}",
        )
