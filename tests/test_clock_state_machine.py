"""Tests for the clock action state machine."""

from datetime import date, time
from types import SimpleNamespace
from uuid import uuid4

import pytest

from hr_engine.errors import AlreadyClockedIn, OutOfOrderAction
from hr_engine.services.clock_state_machine import (
    ClockAction,
    ClockState,
    ClockStateMachine,
)


def timecard(in1=None, out1=None, in2=None, out2=None):
    return SimpleNamespace(
        employee_id=uuid4(),
        work_date=date(2025, 12, 1),
        clock_in_1=in1,
        clock_out_1=out1,
        clock_in_2=in2,
        clock_out_2=out2,
    )


class TestClockStateMachine:
    """Test clock action transitions."""

    def test_full_day_sequence(self):
        """The four actions in order end in completed."""
        state = ClockState.NOT_STARTED
        for action, expected in [
            (ClockAction.CLOCK_IN_1, ClockState.WORKING_1),
            (ClockAction.CLOCK_OUT_1, ClockState.ON_BREAK),
            (ClockAction.CLOCK_IN_2, ClockState.WORKING_2),
            (ClockAction.CLOCK_OUT_2, ClockState.COMPLETED),
        ]:
            state = ClockStateMachine.apply(state, action)
            assert state == expected

    def test_skip_break(self):
        """clock_out_2 straight from working_1 completes the day."""
        assert ClockStateMachine.can_apply("working_1", "clock_out_2") is True
        assert (
            ClockStateMachine.apply(ClockState.WORKING_1, ClockAction.CLOCK_OUT_2)
            == ClockState.COMPLETED
        )

    def test_out_of_order(self):
        """clock_in_2 before clock_out_1 is rejected with the expected action."""
        with pytest.raises(OutOfOrderAction) as exc_info:
            ClockStateMachine.apply(ClockState.WORKING_1, ClockAction.CLOCK_IN_2)

        assert exc_info.value.action == "clock_in_2"
        assert exc_info.value.state == "working_1"
        assert "expected clock_out_1" in exc_info.value.message

    def test_completed_is_terminal(self):
        """Completed is terminal."""
        assert ClockStateMachine.get_allowed_actions(ClockState.COMPLETED) == []
        assert ClockStateMachine.next_action(ClockState.COMPLETED) is None

        with pytest.raises(OutOfOrderAction) as exc_info:
            ClockStateMachine.apply(ClockState.COMPLETED, ClockAction.CLOCK_OUT_2)

        assert "day already completed" in exc_info.value.message

    def test_second_clock_in_is_already_clocked_in(self):
        """A repeated clock_in_1 on an existing timecard is AlreadyClockedIn."""
        card = timecard(in1=time(9, 0))

        with pytest.raises(AlreadyClockedIn) as exc_info:
            ClockStateMachine.apply(ClockState.WORKING_1, ClockAction.CLOCK_IN_1, card)

        assert exc_info.value.employee_id == card.employee_id
        assert exc_info.value.code == "ALREADY_CLOCKED_IN"

    def test_state_of_timecard(self):
        """State is derived from which slots are filled."""
        assert ClockStateMachine.state_of(None) == ClockState.NOT_STARTED
        assert ClockStateMachine.state_of(timecard()) == ClockState.NOT_STARTED
        assert ClockStateMachine.state_of(timecard(time(9))) == ClockState.WORKING_1
        assert ClockStateMachine.state_of(timecard(time(9), time(12))) == ClockState.ON_BREAK
        assert (
            ClockStateMachine.state_of(timecard(time(9), time(12), time(13)))
            == ClockState.WORKING_2
        )
        assert (
            ClockStateMachine.state_of(timecard(time(9), time(12), time(13), time(18)))
            == ClockState.COMPLETED
        )
        assert ClockStateMachine.state_of(timecard(time(9), None, None, time(18))) == (
            ClockState.COMPLETED
        )

    def test_next_action(self):
        assert ClockStateMachine.next_action(ClockState.NOT_STARTED) == ClockAction.CLOCK_IN_1
        assert ClockStateMachine.next_action(ClockState.ON_BREAK) == ClockAction.CLOCK_IN_2
        assert set(ClockStateMachine.get_allowed_actions(ClockState.WORKING_1)) == {
            ClockAction.CLOCK_OUT_1,
            ClockAction.CLOCK_OUT_2,
        }
