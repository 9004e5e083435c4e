"""Scheduled series state machine."""

from enum import Enum, auto
from typing import ClassVar

import structlog

from devbytes.scheduler.errors import SchedulerError


logger = structlog.get_logger()


class SeriesState(Enum):
    """States of a scheduled refresh series.

    State transitions:
        IDLE -> CONSTRAINTS_PENDING: Period timer fired
        CONSTRAINTS_PENDING -> RUNNING: Constraints satisfied, refresh started
        RUNNING -> IDLE: Refresh finished, wait for the next period
        RUNNING -> BACKOFF: Refresh failed, wait for the backoff delay
        BACKOFF -> CONSTRAINTS_PENDING: Backoff timer fired
        any -> CANCELLED: Series cancelled or replaced (terminal)
    """

    IDLE = auto()
    CONSTRAINTS_PENDING = auto()
    RUNNING = auto()
    BACKOFF = auto()
    CANCELLED = auto()


class SeriesStateError(SchedulerError):
    """Raised when an invalid series state transition is attempted."""

    def __init__(self, from_state: SeriesState, to_state: SeriesState) -> None:
        """Initialize the error.

        Args:
            from_state: The current state.
            to_state: The attempted target state.
        """
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Invalid series state transition: {from_state.name} -> {to_state.name}"
        )


class SeriesStateMachine:
    """Enforces valid transitions of one scheduled series."""

    VALID_TRANSITIONS: ClassVar[dict[SeriesState, set[SeriesState]]] = {
        SeriesState.IDLE: {SeriesState.CONSTRAINTS_PENDING, SeriesState.CANCELLED},
        SeriesState.CONSTRAINTS_PENDING: {SeriesState.RUNNING, SeriesState.CANCELLED},
        SeriesState.RUNNING: {
            SeriesState.IDLE,
            SeriesState.BACKOFF,
            SeriesState.CANCELLED,
        },
        SeriesState.BACKOFF: {SeriesState.CONSTRAINTS_PENDING, SeriesState.CANCELLED},
        SeriesState.CANCELLED: set(),  # Terminal state
    }

    def __init__(self, name: str, series_id: str) -> None:
        """Initialize the state machine in IDLE state.

        Args:
            name: Schedule name for logging.
            series_id: Series identifier for logging.
        """
        self._state = SeriesState.IDLE
        self._log = logger.bind(component="scheduler", schedule=name, series_id=series_id)

    @property
    def state(self) -> SeriesState:
        """Get the current state."""
        return self._state

    def can_transition(self, to_state: SeriesState) -> bool:
        """Check if a transition to the given state is valid."""
        return to_state in self.VALID_TRANSITIONS.get(self._state, set())

    def transition(self, to_state: SeriesState) -> None:
        """Transition to a new state.

        Raises:
            SeriesStateError: If the transition is invalid.
        """
        if not self.can_transition(to_state):
            self._log.error(
                "invariant_violation",
                error_type="illegal_state_transition",
                from_state=self._state.name,
                to_state=to_state.name,
            )
            raise SeriesStateError(self._state, to_state)

        old_state = self._state
        self._state = to_state
        self._log.info(
            "series_state_transition",
            from_state=old_state.name,
            to_state=to_state.name,
        )

    def is_cancelled(self) -> bool:
        """Check if the series reached its terminal state."""
        return self._state == SeriesState.CANCELLED
