"""Tests for automation entity models."""

from datetime import datetime, timedelta, timezone

import pytest

from shiftflow.errors import MalformedEntityError
from shiftflow.models.entities import Alert, DCAOrder, Direction, Frequency, LimitOrder

NOW = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


def dca_order(**overrides):
    fields = {
        "owner": "alice",
        "from_coin": "usdt",
        "to_coin": "btc",
        "amount": "100",
        "frequency": Frequency.DAILY,
        "destination_address": "bc1-destination",
        "next_execution_at": NOW,
        "created_at": NOW,
    }
    fields.update(overrides)
    return DCAOrder(**fields)


class TestAlert:
    """Test Alert."""

    def test_mark_triggered_deactivates(self):
        """Test that a triggered alert is never active."""
        alert = Alert(owner="alice", from_coin="btc", to_coin="usdt", target_rate=50000, direction=Direction.ABOVE)

        alert.mark_triggered(NOW)

        assert alert.active is False
        assert alert.triggered is True
        assert alert.triggered_at == NOW

    def test_dict_round_trip(self):
        """Test that a stored alert decodes to an equal alert."""
        alert = Alert(
            owner="alice", from_coin="btc", to_coin="usdt",
            target_rate=50000.0, direction=Direction.BELOW, created_at=NOW,
        )

        assert Alert.from_dict(alert.to_dict()) == alert

    def test_ids_are_unique(self):
        """Test that every alert gets its own id."""
        first = Alert(owner="alice", from_coin="btc", to_coin="usdt", target_rate=1, direction=Direction.ABOVE)
        second = Alert(owner="alice", from_coin="btc", to_coin="usdt", target_rate=1, direction=Direction.ABOVE)
        assert first.id != second.id

    @pytest.mark.parametrize("broken", [
        {"id": "a1", "owner": "alice"},
        {"id": "a1", "owner": "alice", "from_coin": "btc", "to_coin": "usdt",
         "target_rate": 1, "direction": "sideways"},
        {"id": "a1", "owner": "alice", "from_coin": "btc", "to_coin": "usdt",
         "target_rate": "lots", "direction": "above"},
    ])
    def test_malformed_record(self, broken):
        """Test that undecodable records raise MalformedEntityError with the id."""
        with pytest.raises(MalformedEntityError) as exc_info:
            Alert.from_dict(broken)
        assert exc_info.value.entity_id == "a1"


class TestDCAOrder:
    """Test DCAOrder."""

    def test_record_success(self):
        """Test that a success counts, reschedules and logs history."""
        order = dca_order()
        later = NOW + timedelta(hours=3)

        order.record_success("shift-1", later)

        assert order.total_executions == 1
        assert order.last_executed_at == later
        assert order.next_execution_at == later + timedelta(days=1)
        assert order.history[-1].succeeded
        assert order.active is True

    def test_record_success_at_cap_deactivates(self):
        """Test that the last allowed execution deactivates the order."""
        order = dca_order(max_executions=1)

        order.record_success("shift-1", NOW)

        assert order.cap_reached
        assert order.active is False

    def test_record_failure_keeps_count(self):
        """Test that a failure reschedules without counting."""
        order = dca_order()

        order.record_failure("quote rejected", NOW)

        assert order.total_executions == 0
        assert order.next_execution_at == NOW + timedelta(days=1)
        assert order.history[-1].error == "quote rejected"
        assert not order.history[-1].succeeded

    def test_dict_round_trip(self):
        """Test that history survives storage."""
        order = dca_order(max_executions=5)
        order.record_success("shift-1", NOW)
        order.record_failure("timeout", NOW + timedelta(days=1))

        assert DCAOrder.from_dict(order.to_dict()) == order

    @pytest.mark.parametrize("next_execution_at", [None, ""])
    def test_missing_next_execution_is_malformed(self, next_execution_at):
        record = dca_order().to_dict()
        record["next_execution_at"] = next_execution_at

        with pytest.raises(MalformedEntityError) as exc_info:
            DCAOrder.from_dict(record)
        assert exc_info.value.entity_id == record["id"]

    def test_uncapped_order(self):
        """Test that an order without max_executions never reaches a cap."""
        order = dca_order(total_executions=1000)
        assert not order.cap_reached


class TestLimitOrder:
    """Test LimitOrder."""

    def test_dict_round_trip(self):
        """Test that an executed order survives storage."""
        order = LimitOrder(
            owner="alice", from_coin="eth", to_coin="usdt", amount="1.5",
            target_rate=3000.0, direction=Direction.ABOVE, destination_address="0xdestination",
            active=False, created_at=NOW, executed_at=NOW, shift_id="shift-9",
        )

        assert LimitOrder.from_dict(order.to_dict()) == order

    def test_missing_field(self):
        """Test that a record without a destination is malformed."""
        record = LimitOrder(
            owner="alice", from_coin="eth", to_coin="usdt", amount="1.5",
            target_rate=3000.0, direction=Direction.ABOVE, destination_address="0xdestination",
        ).to_dict()
        del record["destination_address"]

        with pytest.raises(MalformedEntityError):
            LimitOrder.from_dict(record)
