"""
Journal — транзакционный журнал отмены (undo log) для ledger.

Каждая мутация состояния внутри транзакции записывает операцию отмены.
При исключении журнал откатывается до отметки начала транзакции в обратном
порядке, буфер событий обрезается. Вложенные транзакции (например, callback
exchange adapter в transfer_from во время settlement) откатывают только
собственные изменения; события публикуются только после commit внешней
транзакции.

Транзакции сериализуются re-entrant lock: конкурентные вызывающие видят
только полностью применённое или полностью откатанное состояние.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterator, List, MutableMapping, Optional, Sequence

from src.core.domain.events import LedgerEvent

logger = logging.getLogger(__name__)

_MISSING = object()


class Journal:
    """Undo log + буфер событий + lock."""

    def __init__(self, on_commit: Optional[Callable[[Sequence[LedgerEvent]], None]] = None):
        """
        Args:
            on_commit: вызывается с событиями закоммиченной внешней транзакции
        """
        self._lock = threading.RLock()
        self._undo: List[Callable[[], None]] = []
        self._pending_events: List[LedgerEvent] = []
        self._depth = 0
        self._on_commit = on_commit

    @property
    def depth(self) -> int:
        return self._depth

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Все мутации внутри блока применяются целиком или не применяются вовсе."""
        with self._lock:
            undo_mark = len(self._undo)
            event_mark = len(self._pending_events)
            self._depth += 1
            try:
                yield
            except BaseException:
                self._rollback_to(undo_mark, event_mark)
                self._depth -= 1
                raise
            self._depth -= 1
            if self._depth == 0:
                self._commit()

    # -------------------------------------------------------------------------
    # Журналируемые мутации
    # -------------------------------------------------------------------------

    def set_item(self, mapping: MutableMapping, key: Any, value: Any) -> None:
        self._require_transaction()
        old = mapping.get(key, _MISSING)
        if old is _MISSING:
            self._undo.append(lambda: mapping.pop(key, None))
        else:
            self._undo.append(lambda: mapping.__setitem__(key, old))
        mapping[key] = value

    def set_attr(self, obj: Any, name: str, value: Any) -> None:
        self._require_transaction()
        old = getattr(obj, name)
        self._undo.append(lambda: setattr(obj, name, old))
        setattr(obj, name, value)

    def add_member(self, members: set, item: Any) -> bool:
        self._require_transaction()
        if item in members:
            return False
        members.add(item)
        self._undo.append(lambda: members.discard(item))
        return True

    def discard_member(self, members: set, item: Any) -> bool:
        self._require_transaction()
        if item not in members:
            return False
        members.discard(item)
        self._undo.append(lambda: members.add(item))
        return True

    def emit(self, event: LedgerEvent) -> None:
        self._require_transaction()
        self._pending_events.append(event)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _require_transaction(self) -> None:
        if self._depth == 0:
            raise RuntimeError("ledger state may only be mutated inside a transaction")

    def _rollback_to(self, undo_mark: int, event_mark: int) -> None:
        while len(self._undo) > undo_mark:
            self._undo.pop()()
        discarded = len(self._pending_events) - event_mark
        del self._pending_events[event_mark:]
        logger.debug(
            "Rolled back transaction at depth %d (%d pending events discarded)",
            self._depth,
            discarded,
        )

    def _commit(self) -> None:
        events = self._pending_events
        self._undo = []
        self._pending_events = []
        if self._on_commit is not None and events:
            self._on_commit(tuple(events))
