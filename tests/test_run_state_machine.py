import pytest

from kiln.core.execution.models import RunState
from kiln.core.execution.state_machine import allowed_next, can_transition, ensure_transition, is_terminal


def test_happy_path_transitions():
    assert can_transition(RunState.PENDING, RunState.RUNNING)
    assert can_transition(RunState.RUNNING, RunState.SUCCEEDED)
    assert can_transition(RunState.RUNNING, RunState.FAILED)
    assert can_transition(RunState.RUNNING, RunState.CANCELED)


def test_terminal_states_are_final():
    for st in (RunState.SUCCEEDED, RunState.FAILED, RunState.CANCELED):
        assert is_terminal(st)
        assert not can_transition(st, RunState.RUNNING)
        with pytest.raises(ValueError):
            ensure_transition(st, RunState.PENDING)


def test_pending_cannot_succeed_without_running():
    assert not can_transition(RunState.PENDING, RunState.SUCCEEDED)
    assert allowed_next(RunState.PENDING) == {"RUNNING": True, "FAILED": True, "CANCELED": True}
