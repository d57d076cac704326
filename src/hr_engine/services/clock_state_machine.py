"""Clock action state machine for a day's timecard."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from hr_engine.errors import AlreadyClockedIn, OutOfOrderAction

if TYPE_CHECKING:
    from hr_engine.models import Timecard


class ClockState(str, Enum):
    NOT_STARTED = "not_started"
    WORKING_1 = "working_1"
    ON_BREAK = "on_break"
    WORKING_2 = "working_2"
    COMPLETED = "completed"


class ClockAction(str, Enum):
    CLOCK_IN_1 = "clock_in_1"
    CLOCK_OUT_1 = "clock_out_1"
    CLOCK_IN_2 = "clock_in_2"
    CLOCK_OUT_2 = "clock_out_2"


ACTION_SLOTS: dict[str, str] = {
    ClockAction.CLOCK_IN_1: "in1",
    ClockAction.CLOCK_OUT_1: "out1",
    ClockAction.CLOCK_IN_2: "in2",
    ClockAction.CLOCK_OUT_2: "out2",
}


class ClockStateMachine:
    """State machine for the four clock actions.

    Allowed transitions:
    - not_started → working_1 (clock_in_1)
    - working_1 → on_break (clock_out_1)
    - on_break → working_2 (clock_in_2)
    - working_1 → completed (clock_out_2, no break taken)
    - working_2 → completed (clock_out_2)
    """

    # {from_state: {action: to_state}}
    VALID_TRANSITIONS: dict[str, dict[str, str]] = {
        ClockState.NOT_STARTED: {ClockAction.CLOCK_IN_1: ClockState.WORKING_1},
        ClockState.WORKING_1: {
            ClockAction.CLOCK_OUT_1: ClockState.ON_BREAK,
            ClockAction.CLOCK_OUT_2: ClockState.COMPLETED,
        },
        ClockState.ON_BREAK: {ClockAction.CLOCK_IN_2: ClockState.WORKING_2},
        ClockState.WORKING_2: {ClockAction.CLOCK_OUT_2: ClockState.COMPLETED},
        ClockState.COMPLETED: {},  # Terminal state
    }

    # What the employee is expected to do next in each state
    NEXT_ACTION: dict[str, str | None] = {
        ClockState.NOT_STARTED: ClockAction.CLOCK_IN_1,
        ClockState.WORKING_1: ClockAction.CLOCK_OUT_1,
        ClockState.ON_BREAK: ClockAction.CLOCK_IN_2,
        ClockState.WORKING_2: ClockAction.CLOCK_OUT_2,
        ClockState.COMPLETED: None,
    }

    @classmethod
    def state_of(cls, timecard: Timecard | None) -> ClockState:
        """Derive the state from which slots are filled."""
        if timecard is None or timecard.clock_in_1 is None:
            return ClockState.NOT_STARTED
        if timecard.clock_out_2 is not None:
            return ClockState.COMPLETED
        if timecard.clock_in_2 is not None:
            return ClockState.WORKING_2
        if timecard.clock_out_1 is not None:
            return ClockState.ON_BREAK
        return ClockState.WORKING_1

    @classmethod
    def can_apply(cls, state: str, action: str) -> bool:
        return action in cls.VALID_TRANSITIONS.get(state, {})

    @classmethod
    def apply(cls, state: str, action: str, timecard: Timecard | None = None) -> ClockState:
        """Return the state after ``action``; raise when it is out of order."""
        if action == ClockAction.CLOCK_IN_1 and state != ClockState.NOT_STARTED:
            if timecard is not None:
                raise AlreadyClockedIn(timecard.employee_id, timecard.work_date)
            raise OutOfOrderAction(_value(action), _value(state), "already clocked in")

        if not cls.can_apply(state, action):
            expected = cls.NEXT_ACTION.get(state)
            reason = f"expected {_value(expected)}" if expected else "day already completed"
            raise OutOfOrderAction(_value(action), _value(state), reason)

        return ClockState(cls.VALID_TRANSITIONS[state][action])

    @classmethod
    def next_action(cls, state: str) -> str | None:
        return cls.NEXT_ACTION.get(state)

    @classmethod
    def get_allowed_actions(cls, state: str) -> list[str]:
        return list(cls.VALID_TRANSITIONS.get(state, {}))


def _value(member: object) -> str:
    return str(getattr(member, "value", member))
