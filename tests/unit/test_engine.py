"""Tests for the transition engine decision tables."""

import pytest

from beacon.heartbeat.engine import is_silent, on_ping, on_sweep_tick
from beacon.heartbeat.models import EntityState, Transition
from tests.helpers import make_record


class TestOnPing:
    """Tests for on_ping."""

    def test_absent_entity_is_created_up(self) -> None:
        """Test first contact creates an UP record with both timestamps at now."""
        decision = on_ping("db1", None, 1000)

        assert decision.transition == Transition.CREATED
        assert decision.record is not None
        assert decision.record.state == EntityState.UP
        assert decision.record.last_seen_at == 1000
        assert decision.record.state_changed_at == 1000
        assert decision.notification is not None
        assert "first ping" in decision.notification
        assert "*db1*" in decision.notification

    def test_down_entity_recovers(self) -> None:
        """Test a DOWN record recovers with downtime since last sighting."""
        existing = make_record(last_seen_at=1000, state=EntityState.DOWN, state_changed_at=1100)

        decision = on_ping("db1", existing, 1300)

        assert decision.transition == Transition.RECOVERED
        assert decision.record.state == EntityState.UP
        assert decision.record.last_seen_at == 1300
        assert decision.record.state_changed_at == 1300
        assert decision.downtime_seconds == 300
        assert "back UP" in decision.notification
        assert "5 minutes 0 seconds" in decision.notification

    def test_recovery_from_onboarded_down(self) -> None:
        """Test recovery of an entity that was onboarded as DOWN and never seen."""
        existing = make_record(last_seen_at=0, state=EntityState.DOWN, state_changed_at=2000)

        decision = on_ping("new1", existing, 2030)

        assert decision.transition == Transition.RECOVERED
        assert decision.downtime_seconds == 2030

    @pytest.mark.parametrize("now", [1000, 1001, 1089, 5000])
    def test_up_entity_refresh_keeps_change_timestamp(self, now: int) -> None:
        """Test refreshing never moves state_changed_at."""
        existing = make_record(last_seen_at=1000, state_changed_at=500)

        decision = on_ping("db1", existing, now)

        assert decision.transition == Transition.REFRESHED
        assert decision.record.state == EntityState.UP
        assert decision.record.last_seen_at == now
        assert decision.record.state_changed_at == 500
        assert decision.notification is None

    def test_does_not_mutate_existing(self) -> None:
        """Test the input record is left untouched."""
        existing = make_record(state=EntityState.DOWN)

        on_ping("db1", existing, 2000)

        assert existing.state == EntityState.DOWN
        assert existing.last_seen_at == 1000


class TestOnSweepTick:
    """Tests for on_sweep_tick."""

    def test_absent_entity_is_onboarded_down(self) -> None:
        """Test a never-seen entity is stored as DOWN with last_seen_at=0."""
        decision = on_sweep_tick("new1", None, 2000, 90)

        assert decision.transition == Transition.ONBOARDED_DOWN
        assert decision.record.state == EntityState.DOWN
        assert decision.record.last_seen_at == 0
        assert decision.record.state_changed_at == 2000
        assert "has not reported" in decision.notification

    def test_fresh_up_entity_is_left_alone(self) -> None:
        """Test 50s of silence is below the threshold."""
        decision = on_sweep_tick("db1", make_record(), 1050, 90)

        assert decision.transition == Transition.NO_OP
        assert decision.record is None
        assert decision.notification is None

    def test_silent_up_entity_is_declared_down(self) -> None:
        """Test 100s of silence declares DOWN."""
        decision = on_sweep_tick("db1", make_record(), 1100, 90)

        assert decision.transition == Transition.DECLARED_DOWN
        assert decision.record.state == EntityState.DOWN
        assert decision.record.last_seen_at == 1000
        assert decision.record.state_changed_at == 1100
        assert "over 90 seconds" in decision.notification

    def test_threshold_boundary_is_strict(self) -> None:
        """Test silence exactly equal to the threshold is not yet DOWN."""
        assert on_sweep_tick("db1", make_record(), 1090, 90).transition == Transition.NO_OP
        assert on_sweep_tick("db1", make_record(), 1091, 90).transition == Transition.DECLARED_DOWN

    def test_down_entity_is_left_alone(self) -> None:
        """Test a DOWN entity never re-fires, however long it stays silent."""
        existing = make_record(state=EntityState.DOWN, state_changed_at=1100)

        decision = on_sweep_tick("db1", existing, 999_999, 90)

        assert decision.transition == Transition.NO_OP
        assert decision.record is None

    def test_ping_then_immediate_sweep_never_declares_down(self) -> None:
        """Test a freshly created record survives a sweep at the same instant."""
        created = on_ping("db1", None, 1000).record

        decision = on_sweep_tick("db1", created, 1000, 0)

        assert decision.transition == Transition.NO_OP


class TestIsSilent:
    """Tests for the silence predicate."""

    def test_strictly_greater(self) -> None:
        """Test the predicate uses strict inequality."""
        record = make_record(last_seen_at=1000)
        assert is_silent(record, 1090, 90) is False
        assert is_silent(record, 1091, 90) is True


class TestDecisionTable:
    """The full {absent, UP, DOWN} x {ping, tick} table."""

    @pytest.mark.parametrize(
        ("existing", "expected_ping", "expected_tick"),
        [
            (None, Transition.CREATED, Transition.ONBOARDED_DOWN),
            (make_record(state=EntityState.UP), Transition.REFRESHED, Transition.DECLARED_DOWN),
            (make_record(state=EntityState.DOWN), Transition.RECOVERED, Transition.NO_OP),
        ],
    )
    def test_every_state_has_one_outcome(self, existing, expected_ping, expected_tick) -> None:
        """Test each combination maps to exactly one transition."""
        assert on_ping("db1", existing, 5000).transition == expected_ping
        assert on_sweep_tick("db1", existing, 5000, 90).transition == expected_tick

    @pytest.mark.parametrize(
        "existing",
        [None, make_record(state=EntityState.UP), make_record(state=EntityState.DOWN)],
    )
    def test_change_timestamp_moves_only_with_state(self, existing) -> None:
        """Test state_changed_at changes if and only if state changes."""
        for decision in (on_ping("db1", existing, 5000), on_sweep_tick("db1", existing, 5000, 90)):
            if existing is None or decision.record is None:
                continue
            state_changed = decision.record.state != existing.state
            stamp_changed = decision.record.state_changed_at != existing.state_changed_at
            assert state_changed == stamp_changed
