"""Unit tests for the refresh and series state machines."""

import pytest

from devbytes.refresh.state_machine import (
    RefreshState,
    RefreshStateError,
    RefreshStateMachine,
)
from devbytes.scheduler.errors import SchedulerError
from devbytes.scheduler.state_machine import (
    SeriesState,
    SeriesStateError,
    SeriesStateMachine,
)


class TestRefreshStateMachine:
    """Tests for RefreshStateMachine."""

    @pytest.mark.unit
    def test_initial_state(self) -> None:
        """Test that attempts start PENDING."""
        machine = RefreshStateMachine("attempt-1")
        assert machine.state == RefreshState.PENDING
        assert not machine.is_terminal()

    @pytest.mark.unit
    def test_success_path(self) -> None:
        """Test PENDING -> RUNNING -> SUCCEEDED."""
        machine = RefreshStateMachine("attempt-1")
        machine.transition(RefreshState.RUNNING)
        machine.transition(RefreshState.SUCCEEDED)
        assert machine.is_terminal()

    @pytest.mark.unit
    def test_failure_path(self) -> None:
        """Test PENDING -> RUNNING -> FAILED."""
        machine = RefreshStateMachine("attempt-1")
        machine.transition(RefreshState.RUNNING)
        machine.transition(RefreshState.FAILED)
        assert machine.state == RefreshState.FAILED
        assert machine.is_terminal()

    @pytest.mark.unit
    def test_cannot_skip_running(self) -> None:
        """Test that PENDING cannot finish directly."""
        machine = RefreshStateMachine("attempt-1")
        with pytest.raises(RefreshStateError) as exc_info:
            machine.transition(RefreshState.SUCCEEDED)
        assert exc_info.value.from_state == RefreshState.PENDING
        assert exc_info.value.to_state == RefreshState.SUCCEEDED

    @pytest.mark.unit
    def test_terminal_states_are_final(self) -> None:
        """Test that finished attempts cannot move again."""
        machine = RefreshStateMachine("attempt-1")
        machine.transition(RefreshState.RUNNING)
        machine.transition(RefreshState.SUCCEEDED)
        for state in RefreshState:
            assert not machine.can_transition(state)


class TestSeriesStateMachine:
    """Tests for SeriesStateMachine."""

    @pytest.mark.unit
    def test_all_states_defined(self) -> None:
        """Test that all expected states are defined."""
        expected = {"IDLE", "CONSTRAINTS_PENDING", "RUNNING", "BACKOFF", "CANCELLED"}
        assert {state.name for state in SeriesState} == expected

    @pytest.mark.unit
    def test_periodic_cycle(self) -> None:
        """Test IDLE -> CONSTRAINTS_PENDING -> RUNNING -> IDLE."""
        machine = SeriesStateMachine("RefreshDataWorker", "s1")
        machine.transition(SeriesState.CONSTRAINTS_PENDING)
        machine.transition(SeriesState.RUNNING)
        machine.transition(SeriesState.IDLE)
        assert machine.state == SeriesState.IDLE

    @pytest.mark.unit
    def test_backoff_cycle(self) -> None:
        """Test RUNNING -> BACKOFF -> CONSTRAINTS_PENDING."""
        machine = SeriesStateMachine("RefreshDataWorker", "s1")
        machine.transition(SeriesState.CONSTRAINTS_PENDING)
        machine.transition(SeriesState.RUNNING)
        machine.transition(SeriesState.BACKOFF)
        machine.transition(SeriesState.CONSTRAINTS_PENDING)
        assert machine.state == SeriesState.CONSTRAINTS_PENDING

    @pytest.mark.unit
    def test_cancel_from_every_live_state(self) -> None:
        """Test that every non-terminal state can be cancelled."""
        paths = {
            SeriesState.IDLE: [],
            SeriesState.CONSTRAINTS_PENDING: [SeriesState.CONSTRAINTS_PENDING],
            SeriesState.RUNNING: [SeriesState.CONSTRAINTS_PENDING, SeriesState.RUNNING],
            SeriesState.BACKOFF: [
                SeriesState.CONSTRAINTS_PENDING,
                SeriesState.RUNNING,
                SeriesState.BACKOFF,
            ],
        }
        for expected, path in paths.items():
            machine = SeriesStateMachine("s", "id")
            for state in path:
                machine.transition(state)
            assert machine.state == expected
            machine.transition(SeriesState.CANCELLED)
            assert machine.is_cancelled()

    @pytest.mark.unit
    def test_cancelled_is_terminal(self) -> None:
        """Test that CANCELLED has no outgoing transitions."""
        machine = SeriesStateMachine("s", "id")
        machine.transition(SeriesState.CANCELLED)
        with pytest.raises(SeriesStateError):
            machine.transition(SeriesState.IDLE)

    @pytest.mark.unit
    def test_idle_cannot_run_without_constraint_check(self) -> None:
        """Test that IDLE -> RUNNING is rejected."""
        machine = SeriesStateMachine("s", "id")
        with pytest.raises(SchedulerError):
            machine.transition(SeriesState.RUNNING)
