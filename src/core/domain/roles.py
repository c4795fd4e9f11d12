"""
Roles — теги capability модели ledger.

Роли не наследуются: ADMIN не удовлетворяет проверку MINTER и т.д.
"""

from enum import Enum


class Role(str, Enum):
    """Роль в capability registry."""

    ADMIN = "ADMIN"  # grant/revoke, fees, listing, settlement
    MINTER = "MINTER"
    BURNER = "BURNER"
    ALLOWED_PRE_LISTING_TRANSFER = "ALLOWED_PRE_LISTING_TRANSFER"
    MARKET_PARTICIPANT = "MARKET_PARTICIPANT"  # pool/router, переводы облагаются fee
