"""
Domain models and value objects.

Contains fundamental domain entities like Role, FeeSchedule, LedgerConfig and
the ledger events.
"""

from src.core.domain.events import (
    Approval,
    FeeClaimed,
    FeeCollectorUpdated,
    FeesUpdated,
    LedgerEvent,
    ListingTimestampUpdated,
    RoleGranted,
    RoleRevoked,
    Transfer,
)
from src.core.domain.fee_schedule import FeeSchedule, FeeSide, ScheduleName
from src.core.domain.ledger_state import LedgerConfig, LedgerSnapshot, ListingState
from src.core.domain.roles import Role
from src.core.domain.units import (
    ONE_TOKEN,
    TOKEN_DECIMALS,
    format_units,
    from_base_units,
    to_base_units,
)

__all__ = [
    # Units module
    "TOKEN_DECIMALS",
    "ONE_TOKEN",
    "to_base_units",
    "from_base_units",
    "format_units",
    # Roles
    "Role",
    # Fee schedule
    "FeeSchedule",
    "FeeSide",
    "ScheduleName",
    # Ledger state
    "LedgerConfig",
    "LedgerSnapshot",
    "ListingState",
    # Events
    "LedgerEvent",
    "Transfer",
    "Approval",
    "RoleGranted",
    "RoleRevoked",
    "FeesUpdated",
    "FeeCollectorUpdated",
    "ListingTimestampUpdated",
    "FeeClaimed",
]
