"""Settlement — перевод fee accumulator получателю (напрямую или через exchange)."""

from .exchange import BaseCurrencyBook, ConstantProductExchange, ExchangeAdapter, SettlementRoute
from .module import FeeSettlement, SettlementHooks, SettlementResult

__all__ = [
    "FeeSettlement",
    "SettlementHooks",
    "SettlementResult",
    "ExchangeAdapter",
    "SettlementRoute",
    "BaseCurrencyBook",
    "ConstantProductExchange",
]
