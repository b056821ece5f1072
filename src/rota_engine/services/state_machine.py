"""Pay run state machine with transition validation."""

from __future__ import annotations

from enum import Enum


class PayRunStatus(str, Enum):
    """Pay run status values."""

    DRAFT = "draft"
    REVIEWING = "reviewing"
    APPROVED = "approved"
    FINALISED = "finalised"


class InvalidTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""

    code = "invalid_transition"

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = _value(from_status)
        self.to_status = _value(to_status)
        self.reason = reason
        msg = f"Invalid transition from '{self.from_status}' to '{self.to_status}'"
        required = PayRunStateMachine.required_status_for(self.to_status)
        if required is not None and required != self.from_status:
            msg += f" (pay run must be '{required}')"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class PayRunNotEditableError(InvalidTransitionError):
    """Raised when a run is modified outside the statuses that allow it."""

    def __init__(self, status: str, allowed: set[str] | list[str], action: str = "edit"):
        self.from_status = _value(status)
        self.to_status = self.from_status
        self.allowed = sorted(allowed)
        self.reason = None
        Exception.__init__(
            self,
            f"Cannot {action} a pay run in '{self.from_status}' "
            f"(pay run must be {' or '.join(repr(s) for s in self.allowed)})",
        )


def _value(status: str) -> str:
    return status.value if isinstance(status, PayRunStatus) else str(status)


class PayRunStateMachine:
    """State machine for pay run status transitions.

    Allowed transitions:
    - draft → reviewing
    - reviewing → approved
    - approved → finalised
    finalised is terminal; there is no skipping and no reversal.
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        PayRunStatus.DRAFT.value: [PayRunStatus.REVIEWING.value],
        PayRunStatus.REVIEWING.value: [PayRunStatus.APPROVED.value],
        PayRunStatus.APPROVED.value: [PayRunStatus.FINALISED.value],
        PayRunStatus.FINALISED.value: [],  # Terminal state
    }

    # Statuses where lines can be edited
    LINES_MUTABLE = {
        PayRunStatus.DRAFT.value,
        PayRunStatus.REVIEWING.value,
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(_value(from_status), [])
        return _value(to_status) in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status, to_status)

    @classmethod
    def required_status_for(cls, to_status: str) -> str | None:
        """The single status a run must be in to move to to_status."""
        target = _value(to_status)
        for from_status, allowed in cls.VALID_TRANSITIONS.items():
            if target in allowed:
                return from_status
        return None

    @classmethod
    def can_edit_lines(cls, status: str) -> bool:
        """Check if line adjustments and inclusion changes are allowed."""
        return _value(status) in cls.LINES_MUTABLE

    @classmethod
    def is_terminal(cls, status: str) -> bool:
        return not cls.VALID_TRANSITIONS.get(_value(status), [])

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return cls.VALID_TRANSITIONS.get(_value(current_status), [])

    @classmethod
    def validate_editable(cls, status: str, action: str = "edit lines of") -> None:
        """Raise PayRunNotEditableError unless lines may still change."""
        if not cls.can_edit_lines(status):
            raise PayRunNotEditableError(status, cls.LINES_MUTABLE, action)
