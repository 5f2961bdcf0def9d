from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from .models import RunEvent, RunRecord, RunState, StepResult, _parse_iso, _utc_now_iso
from .state_machine import ensure_transition, is_terminal

_log = logging.getLogger("kiln.runs")


def _runs_dir(state_dir: Path) -> Path:
    d = state_dir / "runs"
    d.mkdir(parents=True, exist_ok=True)
    return d


def new_run_id(recipe: str) -> str:
    ts = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    return f"{recipe}-{ts}-{uuid.uuid4().hex[:8]}"


class RunRegistry:
    """File-backed run registry.

    Path: <state_dir>/runs/{run_id}.json
    """

    def __init__(self, *, state_dir: Path):
        self.state_dir = state_dir

    def _path(self, run_id: str) -> Path:
        if not run_id or "/" in run_id or "\\" in run_id or run_id.startswith("."):
            raise ValueError(f"invalid run_id: {run_id!r}")
        return _runs_dir(self.state_dir) / f"{run_id}.json"

    def get(self, run_id: str) -> Optional[RunRecord]:
        p = self._path(run_id)
        if not p.exists():
            return None
        obj = json.loads(p.read_text(encoding="utf-8"))
        return RunRecord.from_dict(obj)

    def upsert(self, rec: RunRecord) -> None:
        p = self._path(rec.run_id)
        p.write_text(json.dumps(rec.to_dict(), indent=2, sort_keys=True), encoding="utf-8")

    def create(self, *, recipe: str, dry_run: bool = False, backend: Optional[str] = None) -> RunRecord:
        now = _utc_now_iso()
        rec = RunRecord(
            run_id=new_run_id(recipe),
            recipe=recipe,
            state=RunState.PENDING,
            created_ts=now,
            updated_ts=now,
            dry_run=dry_run,
            backend=backend,
            events=[RunEvent(ts=now, state=RunState.PENDING, message="created", data={})],
        )
        self.upsert(rec)
        return rec

    def transition(
        self,
        rec: RunRecord,
        dst: RunState,
        *,
        message: str = "",
        data: Optional[Dict[str, Any]] = None,
    ) -> RunRecord:
        ensure_transition(rec.state, dst)

        now = _utc_now_iso()
        rec.state = dst
        rec.updated_ts = now
        if dst == RunState.RUNNING and rec.started_ts is None:
            rec.started_ts = now
        if is_terminal(dst):
            rec.finished_ts = now
        rec.events.append(RunEvent(ts=now, state=dst, message=message, data=data or {}))
        self.upsert(rec)
        return rec

    def add_step(self, rec: RunRecord, step: StepResult) -> RunRecord:
        rec.steps.append(step)
        rec.updated_ts = _utc_now_iso()
        self.upsert(rec)
        return rec

    def list(self, *, recipe: Optional[str] = None, limit: Optional[int] = None) -> List[RunRecord]:
        """Newest first."""
        out: List[RunRecord] = []
        for p in _runs_dir(self.state_dir).glob("*.json"):
            try:
                rec = RunRecord.from_dict(json.loads(p.read_text(encoding="utf-8")))
            except (OSError, ValueError, KeyError) as exc:
                _log.warning("Skipping unreadable run record %s: %s", p.name, exc)
                continue
            if recipe and rec.recipe != recipe:
                continue
            out.append(rec)
        out.sort(key=lambda r: (r.created_ts, r.run_id), reverse=True)
        if limit is not None:
            out = out[: max(0, int(limit))]
        return out

    def latest(self, recipe: str) -> Optional[RunRecord]:
        runs = self.list(recipe=recipe, limit=1)
        return runs[0] if runs else None

    def reconcile_stale(self, stale_after_seconds: int) -> int:
        """
        Any PENDING/RUNNING run not updated within stale_after_seconds becomes FAILED.
        Such records are left behind by a killed process.
        """
        n = 0
        cutoff = datetime.now(timezone.utc) - timedelta(seconds=stale_after_seconds)
        for rec in self.list():
            if is_terminal(rec.state):
                continue
            updated = _parse_iso(rec.updated_ts)
            if updated is not None and updated >= cutoff:
                continue
            rec.last_error = "stale_run_reconciled"
            self.transition(rec, RunState.FAILED, message="stale run reconciled")
            n += 1
        return n
