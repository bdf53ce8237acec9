"""Error types raised by the liftplan engine."""


class LiftplanError(Exception):
    """Base class for all engine errors."""


class ValidationError(LiftplanError):
    """Malformed input or a missing reference value (e.g. no recorded max)."""


class StateError(LiftplanError):
    """Operation not allowed in the current enrollment or session state."""


class InvalidTransitionError(StateError):
    """A state machine was asked to move along an edge it does not have."""

    def __init__(self, machine: str, from_state: str | None, to_state: str):
        self.machine = machine
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"invalid {machine} transition: {from_state or 'none'} -> {to_state}"
        )


class NotFoundError(LiftplanError):
    """A referenced program, day, week, prescription or record does not exist."""


class ConcurrencyConflict(LiftplanError):
    """A write lost a race against another writer for the same record."""
