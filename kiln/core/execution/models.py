from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _parse_iso(ts: Optional[str]) -> Optional[datetime]:
    if not ts:
        return None
    t = ts.strip()
    if t.endswith("Z"):
        t = t[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(t)
    except ValueError:
        return None


class RunState(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    CANCELED = "CANCELED"


@dataclass
class RunEvent:
    ts: str
    state: RunState
    message: str = ""
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class StepResult:
    index: int
    kind: str
    argv: List[str]
    returncode: Optional[int] = None
    started_ts: Optional[str] = None
    finished_ts: Optional[str] = None
    duration_seconds: Optional[float] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "kind": self.kind,
            "argv": list(self.argv),
            "returncode": self.returncode,
            "started_ts": self.started_ts,
            "finished_ts": self.finished_ts,
            "duration_seconds": self.duration_seconds,
            "error": self.error,
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "StepResult":
        return StepResult(
            index=int(d.get("index", 0)),
            kind=d.get("kind", "command"),
            argv=list(d.get("argv") or []),
            returncode=d.get("returncode"),
            started_ts=d.get("started_ts"),
            finished_ts=d.get("finished_ts"),
            duration_seconds=d.get("duration_seconds"),
            error=d.get("error"),
        )


@dataclass
class RunRecord:
    run_id: str
    recipe: str
    state: RunState
    created_ts: str
    updated_ts: str

    dry_run: bool = False
    backend: Optional[str] = None
    started_ts: Optional[str] = None
    finished_ts: Optional[str] = None

    exit_code: Optional[int] = None
    last_error: Optional[str] = None
    preflight: Optional[Dict[str, Any]] = None

    steps: List[StepResult] = field(default_factory=list)
    events: List[RunEvent] = field(default_factory=list)

    def duration_seconds(self) -> Optional[float]:
        started = _parse_iso(self.started_ts)
        finished = _parse_iso(self.finished_ts)
        if started and finished:
            return max(0.0, (finished - started).total_seconds())
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "recipe": self.recipe,
            "state": self.state.value,
            "created_ts": self.created_ts,
            "updated_ts": self.updated_ts,
            "dry_run": self.dry_run,
            "backend": self.backend,
            "started_ts": self.started_ts,
            "finished_ts": self.finished_ts,
            "exit_code": self.exit_code,
            "last_error": self.last_error,
            "preflight": self.preflight,
            "steps": [s.to_dict() for s in self.steps],
            "events": [
                {
                    "ts": e.ts,
                    "state": e.state.value,
                    "message": e.message,
                    "data": e.data,
                }
                for e in self.events
            ],
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "RunRecord":
        evs: List[RunEvent] = []
        for e in d.get("events", []) or []:
            evs.append(
                RunEvent(
                    ts=e["ts"],
                    state=RunState(e["state"]),
                    message=e.get("message", ""),
                    data=e.get("data", {}) or {},
                )
            )

        return RunRecord(
            run_id=d["run_id"],
            recipe=d["recipe"],
            state=RunState(d["state"]),
            created_ts=d.get("created_ts") or _utc_now_iso(),
            updated_ts=d.get("updated_ts") or _utc_now_iso(),
            dry_run=bool(d.get("dry_run", False)),
            backend=d.get("backend"),
            started_ts=d.get("started_ts"),
            finished_ts=d.get("finished_ts"),
            exit_code=d.get("exit_code"),
            last_error=d.get("last_error"),
            preflight=d.get("preflight"),
            steps=[StepResult.from_dict(s) for s in d.get("steps", []) or []],
            events=evs,
        )
