"""Refresh task lifecycle state machine."""

from enum import Enum, auto
from typing import ClassVar

import structlog


logger = structlog.get_logger()


class RefreshState(Enum):
    """Refresh task states.

    State transitions:
        PENDING -> RUNNING: The attempt was picked up by the worker
        RUNNING -> SUCCEEDED: Cache replaced with the fetched playlist
        RUNNING -> FAILED: Fetch or store failed, cache untouched
    """

    PENDING = auto()
    RUNNING = auto()
    SUCCEEDED = auto()
    FAILED = auto()


class RefreshStateError(Exception):
    """Raised when an invalid refresh state transition is attempted."""

    def __init__(self, from_state: RefreshState, to_state: RefreshState) -> None:
        """Initialize the error.

        Args:
            from_state: The current state.
            to_state: The attempted target state.
        """
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Invalid refresh state transition: {from_state.name} -> {to_state.name}"
        )


class RefreshStateMachine:
    """State machine for one refresh attempt."""

    VALID_TRANSITIONS: ClassVar[dict[RefreshState, set[RefreshState]]] = {
        RefreshState.PENDING: {RefreshState.RUNNING},
        RefreshState.RUNNING: {RefreshState.SUCCEEDED, RefreshState.FAILED},
        RefreshState.SUCCEEDED: set(),
        RefreshState.FAILED: set(),
    }

    def __init__(self, attempt_id: str) -> None:
        """Initialize the state machine in PENDING state.

        Args:
            attempt_id: Attempt identifier for logging.
        """
        self._attempt_id = attempt_id
        self._state = RefreshState.PENDING
        self._log = logger.bind(attempt_id=attempt_id, component="refresh")

    @property
    def state(self) -> RefreshState:
        """Get the current state."""
        return self._state

    def can_transition(self, to_state: RefreshState) -> bool:
        """Check if a transition to the given state is valid."""
        return to_state in self.VALID_TRANSITIONS.get(self._state, set())

    def transition(self, to_state: RefreshState) -> None:
        """Transition to a new state.

        Raises:
            RefreshStateError: If the transition is invalid.
        """
        if not self.can_transition(to_state):
            self._log.error(
                "invariant_violation",
                error_type="illegal_state_transition",
                from_state=self._state.name,
                to_state=to_state.name,
            )
            raise RefreshStateError(self._state, to_state)

        old_state = self._state
        self._state = to_state
        self._log.debug(
            "refresh_state_transition",
            from_state=old_state.name,
            to_state=to_state.name,
        )

    def is_terminal(self) -> bool:
        """Check if the attempt has finished."""
        return self._state in (RefreshState.SUCCEEDED, RefreshState.FAILED)
