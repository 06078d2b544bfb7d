"""Tests for the in-memory repository."""

import pytest

from shiftflow.errors import PersistenceError
from shiftflow.models.entities import EntityKind
from shiftflow.persistence.repository import InMemoryRepository


def record(entity_id, owner="alice", active=True, **extra):
    return dict({"id": entity_id, "owner": owner, "active": active}, **extra)


class TestInMemoryRepository:
    """Test InMemoryRepository."""

    def test_save_and_get(self):
        """Test a simple save and load."""
        repository = InMemoryRepository()
        repository.save(EntityKind.ALERT, record("a1", target_rate=50000))

        loaded = repository.get(EntityKind.ALERT, "a1")
        assert loaded["target_rate"] == 50000
        assert repository.get(EntityKind.ALERT, "missing") is None
        assert repository.get(EntityKind.LIMIT_ORDER, "a1") is None

    def test_reads_are_copies(self):
        """Test that mutating a loaded record does not change the stored one."""
        repository = InMemoryRepository()
        original = record("a1", history=[])
        repository.save(EntityKind.DCA_ORDER, original)

        original["history"].append("mutated")
        loaded = repository.get(EntityKind.DCA_ORDER, "a1")
        loaded["active"] = False

        assert repository.get(EntityKind.DCA_ORDER, "a1") == record("a1", history=[])

    def test_save_replaces_by_id(self):
        """Test that saving the same id overwrites."""
        repository = InMemoryRepository()
        repository.save(EntityKind.ALERT, record("a1"))
        repository.save(EntityKind.ALERT, record("a1", active=False))

        assert repository.count(EntityKind.ALERT) == 1
        assert repository.get(EntityKind.ALERT, "a1")["active"] is False

    def test_load_active_filters(self):
        """Test owner and active filtering."""
        repository = InMemoryRepository()
        repository.save(EntityKind.ALERT, record("a1"))
        repository.save(EntityKind.ALERT, record("a2", active=False))
        repository.save(EntityKind.ALERT, record("b1", owner="bob"))

        assert {r["id"] for r in repository.load_active(EntityKind.ALERT)} == {"a1", "b1"}
        assert [r["id"] for r in repository.load_active(EntityKind.ALERT, "alice")] == ["a1"]
        assert {r["id"] for r in repository.load_all(EntityKind.ALERT, "alice")} == {"a1", "a2"}

    def test_delete(self):
        """Test delete reports whether anything was removed."""
        repository = InMemoryRepository()
        repository.save(EntityKind.ALERT, record("a1"))

        assert repository.delete(EntityKind.ALERT, "a1") is True
        assert repository.delete(EntityKind.ALERT, "a1") is False

    @pytest.mark.parametrize("bad", [{"owner": "alice"}, {"id": "a1"}, {"id": "", "owner": "alice"}])
    def test_records_need_id_and_owner(self, bad):
        """Test that a record without identity is refused."""
        repository = InMemoryRepository()
        with pytest.raises(PersistenceError):
            repository.save(EntityKind.ALERT, bad)
