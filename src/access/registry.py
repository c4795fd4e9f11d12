"""Capability Registry — назначения role → holders и правила администрирования.

- Только держатели ADMIN выдают/отзывают роли
- Membership — множество: grant/revoke идемпотентны
- Наследования ролей нет: ADMIN не удовлетворяет проверку MINTER и т.д.
- RoleGranted/RoleRevoked эмитятся только при фактическом изменении
"""

import logging
from typing import Dict, FrozenSet, Set

from src.core.domain.events import RoleGranted, RoleRevoked
from src.core.domain.identity import validate_account
from src.core.domain.roles import Role
from src.core.errors import Unauthorized
from src.core.journal import Journal

logger = logging.getLogger(__name__)


class CapabilityRegistry:
    """Registry ролей ledger.

    Все мутации идут через Journal и откатываются вместе с транзакцией,
    в которой выполняются.
    """

    def __init__(self, journal: Journal):
        self._journal = journal
        self._members: Dict[Role, Set[str]] = {role: set() for role in Role}

    # -------------------------------------------------------------------------
    # Проверки
    # -------------------------------------------------------------------------

    def has(self, role: Role, account: str) -> bool:
        return account in self._members[Role(role)]

    def require(self, role: Role, account: str) -> None:
        """Capability check, вызывается первым в каждой привилегированной операции.

        Raises:
            Unauthorized: если account не держит role
        """
        if not self.has(role, account):
            raise Unauthorized(Role(role), account)

    def role_admin(self, role: Role) -> Role:
        """Роль, которая администрирует role. Для всех ролей это ADMIN."""
        Role(role)
        return Role.ADMIN

    def members(self, role: Role) -> FrozenSet[str]:
        return frozenset(self._members[Role(role)])

    # -------------------------------------------------------------------------
    # Мутации
    # -------------------------------------------------------------------------

    def grant(self, caller: str, role: Role, account: str) -> bool:
        """Выдача роли.

        Returns:
            True если membership изменился

        Raises:
            Unauthorized: caller не держит admin роль для role
            InvalidAccount: account не валидный identity
        """
        role = Role(role)
        with self._journal.transaction():
            self.require(self.role_admin(role), caller)
            return self._grant(role, validate_account(account), sender=caller)

    def revoke(self, caller: str, role: Role, account: str) -> bool:
        """Отзыв роли.

        Returns:
            True если membership изменился
        """
        role = Role(role)
        with self._journal.transaction():
            self.require(self.role_admin(role), caller)
            return self._revoke(role, validate_account(account), sender=caller)

    def renounce(self, caller: str, role: Role) -> bool:
        """Отказ держателя от собственной роли. Прав администратора не требует."""
        role = Role(role)
        with self._journal.transaction():
            return self._revoke(role, validate_account(caller), sender=caller)

    def bootstrap(self, role: Role, account: str) -> bool:
        """Начальная выдача роли при создании ledger (без проверки прав)."""
        role = Role(role)
        with self._journal.transaction():
            return self._grant(role, validate_account(account), sender=account)

    def _grant(self, role: Role, account: str, sender: str) -> bool:
        if not self._journal.add_member(self._members[role], account):
            return False
        self._journal.emit(RoleGranted(role=role, account=account, sender=sender))
        logger.info("Role %s granted to %s by %s", role.value, account, sender)
        return True

    def _revoke(self, role: Role, account: str, sender: str) -> bool:
        if not self._journal.discard_member(self._members[role], account):
            return False
        self._journal.emit(RoleRevoked(role=role, account=account, sender=sender))
        logger.info("Role %s revoked from %s by %s", role.value, account, sender)
        return True
