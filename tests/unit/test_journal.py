"""
Unit tests для Journal (undo log) и Clock

Проверка:
- Откат всех мутаций при исключении
- Вложенные транзакции откатывают только собственные изменения
- События публикуются только после commit внешней транзакции
- Мутации вне транзакции запрещены
"""

import pytest

from src.core.clock import ManualClock
from src.core.domain.events import ListingTimestampUpdated
from src.core.journal import Journal


class Holder:
    def __init__(self):
        self.value = 0


@pytest.fixture
def published():
    return []


@pytest.fixture
def journal(published):
    return Journal(on_commit=published.extend)


class TestJournalRollback:
    """Откат мутаций."""

    def test_commit_keeps_changes(self, journal) -> None:
        balances = {"alice": 10}
        with journal.transaction():
            journal.set_item(balances, "alice", 5)
            journal.set_item(balances, "bob", 5)
        assert balances == {"alice": 5, "bob": 5}

    def test_exception_restores_mapping(self, journal) -> None:
        balances = {"alice": 10}
        with pytest.raises(RuntimeError, match="boom"):
            with journal.transaction():
                journal.set_item(balances, "alice", 5)
                journal.set_item(balances, "bob", 5)
                raise RuntimeError("boom")
        assert balances == {"alice": 10}

    def test_exception_restores_attr_and_set(self, journal) -> None:
        holder = Holder()
        members = {"admin"}
        with pytest.raises(ValueError):
            with journal.transaction():
                journal.set_attr(holder, "value", 42)
                assert journal.add_member(members, "minter")
                assert journal.discard_member(members, "admin")
                raise ValueError("rollback")
        assert holder.value == 0
        assert members == {"admin"}

    def test_add_existing_member_is_noop(self, journal) -> None:
        members = {"admin"}
        with journal.transaction():
            assert not journal.add_member(members, "admin")
            assert not journal.discard_member(members, "nobody")
        assert members == {"admin"}

    def test_nested_rollback_is_scoped(self, journal) -> None:
        """Вложенная транзакция откатывает только собственные изменения."""
        balances = {}
        with journal.transaction():
            journal.set_item(balances, "outer", 1)
            with pytest.raises(KeyError):
                with journal.transaction():
                    journal.set_item(balances, "inner", 2)
                    raise KeyError("inner")
            assert journal.depth == 1
        assert balances == {"outer": 1}
        assert not journal.in_transaction

    def test_mutation_outside_transaction_rejected(self, journal) -> None:
        with pytest.raises(RuntimeError, match="inside a transaction"):
            journal.set_item({}, "alice", 1)


class TestJournalEvents:
    """Буферизация событий."""

    def test_events_published_on_outer_commit(self, journal, published) -> None:
        with journal.transaction():
            journal.emit(ListingTimestampUpdated(listing_at=1))
            with journal.transaction():
                journal.emit(ListingTimestampUpdated(listing_at=2))
            assert published == []
        assert [event.listing_at for event in published] == [1, 2]

    def test_rolled_back_events_discarded(self, journal, published) -> None:
        with journal.transaction():
            journal.emit(ListingTimestampUpdated(listing_at=1))
            with pytest.raises(RuntimeError):
                with journal.transaction():
                    journal.emit(ListingTimestampUpdated(listing_at=2))
                    raise RuntimeError("inner")
        assert [event.listing_at for event in published] == [1]

    def test_failed_outer_publishes_nothing(self, journal, published) -> None:
        with pytest.raises(RuntimeError):
            with journal.transaction():
                journal.emit(ListingTimestampUpdated(listing_at=1))
                raise RuntimeError("outer")
        assert published == []


class TestManualClock:
    def test_advance_and_set(self) -> None:
        clock = ManualClock(100)
        assert clock() == 100
        assert clock.advance(50) == 150
        clock.set(200)
        assert clock.now == 200

    def test_cannot_move_backwards(self) -> None:
        clock = ManualClock(100)
        with pytest.raises(ValueError, match="backwards"):
            clock.set(99)
        with pytest.raises(ValueError):
            clock.advance(-1)
