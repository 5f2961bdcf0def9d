from __future__ import annotations

from typing import Dict, Set, Tuple

from .models import RunState


_ALLOWED: Set[Tuple[RunState, RunState]] = {
    (RunState.PENDING, RunState.RUNNING),
    (RunState.RUNNING, RunState.SUCCEEDED),
    (RunState.RUNNING, RunState.FAILED),
    (RunState.RUNNING, RunState.CANCELED),

    # preflight block / interrupt before the first step
    (RunState.PENDING, RunState.FAILED),
    (RunState.PENDING, RunState.CANCELED),
}

_TERMINAL: Set[RunState] = {
    RunState.SUCCEEDED,
    RunState.FAILED,
    RunState.CANCELED,
}


def is_terminal(state: RunState) -> bool:
    return state in _TERMINAL


def can_transition(src: RunState, dst: RunState) -> bool:
    if src == dst:
        return True
    if src in _TERMINAL:
        return False
    return (src, dst) in _ALLOWED


def ensure_transition(src: RunState, dst: RunState) -> None:
    if not can_transition(src, dst):
        raise ValueError(f"Illegal transition: {src.value} -> {dst.value}")


def allowed_next(src: RunState) -> Dict[str, bool]:
    out: Dict[str, bool] = {}
    for a, b in _ALLOWED:
        if a == src:
            out[b.value] = True
    return out
