"""
Contract Validation Module

Модуль для валидации JSON контрактов ledger (deployment параметры, снапшоты).
"""

from .validators import (
    ContractValidator,
    LedgerConfigValidator,
    LedgerSnapshotValidator,
    SchemaLoader,
    load_ledger_config,
    validate_ledger_config,
    validate_ledger_snapshot,
)

__all__ = [
    # Classes
    "SchemaLoader",
    "ContractValidator",
    "LedgerConfigValidator",
    "LedgerSnapshotValidator",
    # Functions
    "validate_ledger_config",
    "validate_ledger_snapshot",
    "load_ledger_config",
]
