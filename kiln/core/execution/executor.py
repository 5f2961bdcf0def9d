from __future__ import annotations

import logging
import time
from typing import Dict, List, Optional

from kiln.core.artifacts import clean_wheels_dir
from kiln.core.config import KilnConfig
from kiln.core.errors import ArtifactsMissing, KilnError, PreflightBlocked, StepFailed
from kiln.core.observability.audit import audit_event
from kiln.core.observability.metrics import record_run, record_step
from kiln.core.preflight import run_preflight
from kiln.core.recipes import RecipeRegistry, render_step
from kiln.core.recipes.models import Recipe, Step
from kiln.core.recipes.render import RenderedStep

from .backends import BACKENDS
from .backends.base import ExecutionBackend
from .models import RunRecord, RunState, StepResult, _utc_now_iso
from .registry import RunRegistry
from .state_machine import is_terminal

_log = logging.getLogger("kiln.executor")

RC_PREFLIGHT_BLOCKED = 2
RC_INTERRUPTED = 130


class Executor:
    """Runs one recipe at a time, step by step.

    - preflight (skipped with force=True, reported but not enforced on dry runs)
    - PENDING -> RUNNING, then each step in order
    - the first failing step ends the run: RUNNING -> FAILED, later steps never start
    - KeyboardInterrupt ends the run as CANCELED and propagates
    """

    def __init__(
        self,
        config: KilnConfig,
        *,
        registry: Optional[RunRegistry] = None,
        recipes: Optional[RecipeRegistry] = None,
        backends: Optional[Dict[str, ExecutionBackend]] = None,
    ):
        self.config = config
        self.registry = registry or RunRegistry(state_dir=config.state_path)
        self.recipes = recipes or RecipeRegistry(config)
        self.backends = backends if backends is not None else BACKENDS

    def _backend_for(self, step: Step, *, dry_run: bool) -> ExecutionBackend:
        if dry_run:
            name = "dry-run"
        elif step.kind == "container":
            name = "docker"
        else:
            name = "local"
        backend = self.backends.get(name)
        if backend is None:
            raise ValueError(f"Unsupported backend: {name}")
        return backend

    def _clean(self, rendered: RenderedStep, *, dry_run: bool) -> StepResult:
        rel = rendered.argv[0] if rendered.argv else self.config.wheels_dir
        target = self.config.resolve(rel)
        if dry_run:
            _log.info("[dry-run] clean %s/*", target)
            return StepResult(index=rendered.index, kind="clean", argv=[rel], returncode=0)
        try:
            removed = clean_wheels_dir(target)
        except OSError as e:
            return StepResult(index=rendered.index, kind="clean", argv=[rel], returncode=1, error=str(e))
        _log.debug("cleaned %s", removed)
        return StepResult(index=rendered.index, kind="clean", argv=[rel], returncode=0)

    def _shown_argv(self, step: Step, index: int) -> List[str]:
        # substituted but unexpanded; raw templates if even that fails
        try:
            return list(render_step(step, self.config, index=index, expand=False).argv)
        except KilnError:
            return list(step.argv)

    def _run_step(self, index: int, step: Step, *, dry_run: bool) -> StepResult:
        started_ts = _utc_now_iso()
        t0 = time.monotonic()

        try:
            try:
                rendered = render_step(step, self.config, index=index)
            except ArtifactsMissing:
                if not dry_run:
                    raise
                rendered = render_step(step, self.config, index=index, expand=False)

            if step.kind == "clean":
                result = self._clean(rendered, dry_run=dry_run)
            else:
                out = self._backend_for(step, dry_run=dry_run).execute(rendered, config=self.config)
                result = StepResult(
                    index=index,
                    kind=step.kind,
                    argv=list(out.get("argv") or rendered.argv),
                    returncode=int(out.get("returncode", 1)),
                    error=out.get("error"),
                )
        except KilnError as e:
            argv = self._shown_argv(step, index)
            result = StepResult(index=index, kind=step.kind, argv=argv, returncode=1, error=str(e))
        except Exception as e:
            _log.exception("%s step %d crashed", step.kind, index + 1)
            result = StepResult(
                index=index,
                kind=step.kind,
                argv=self._shown_argv(step, index),
                returncode=1,
                error=f"{type(e).__name__}: {e}",
            )

        result.started_ts = started_ts
        result.finished_ts = _utc_now_iso()
        result.duration_seconds = round(time.monotonic() - t0, 3)
        return result

    def _finish(self, rec: RunRecord) -> RunRecord:
        record_run(rec.recipe, rec.state.value, rec.duration_seconds())
        audit_event(
            "recipe_run",
            state_dir=self.config.state_path,
            run_id=rec.run_id,
            recipe=rec.recipe,
            state=rec.state.value,
            exit_code=rec.exit_code,
            extra={"dry_run": rec.dry_run, "steps": len(rec.steps)},
        )
        _log.info("%s finished: %s (exit %s)", rec.recipe, rec.state.value, rec.exit_code)
        return rec

    def _fail(self, rec: RunRecord, *, exit_code: int, error: str, message: str) -> RunRecord:
        rec.exit_code = exit_code
        rec.last_error = error
        rec = self.registry.transition(rec, RunState.FAILED, message=message, data={"exit_code": exit_code})
        return self._finish(rec)

    def run(
        self,
        recipe_name: str,
        *,
        dry_run: bool = False,
        force: bool = False,
        check_network: bool = False,
        check: bool = False,
    ) -> RunRecord:
        recipe: Recipe = self.recipes.require(recipe_name)
        rec = self.registry.create(recipe=recipe.name, dry_run=dry_run, backend="dry-run" if dry_run else "local")
        _log.info("%s: %d step(s)%s", recipe.name, len(recipe.steps), " [dry-run]" if dry_run else "")

        try:
            if not force:
                report = run_preflight(recipe, self.config, check_network=check_network)
                rec.preflight = report.model_dump()
                self.registry.upsert(rec)
                if report.decision == "BLOCK" and not dry_run:
                    reasons = report.reasons("BLOCK")
                    self._fail(
                        rec,
                        exit_code=RC_PREFLIGHT_BLOCKED,
                        error="; ".join(reasons),
                        message="blocked by preflight",
                    )
                    raise PreflightBlocked(recipe.name, reasons)

            rec = self.registry.transition(rec, RunState.RUNNING, message="running")

            total = len(recipe.steps)
            for i, step in enumerate(recipe.steps):
                _log.info("%s step %d/%d (%s)", recipe.name, i + 1, total, step.description or step.kind)
                result = self._run_step(i, step, dry_run=dry_run)
                rec = self.registry.add_step(rec, result)
                record_step(recipe.name, step.kind, result.ok)

                if not result.ok:
                    rc = result.returncode if result.returncode not in (None, 0) else 1
                    error = result.error or f"exit code {rc}: {' '.join(result.argv)}"
                    self._fail(rec, exit_code=rc, error=error, message=f"step {i + 1} failed")
                    if check:
                        raise StepFailed(argv=result.argv, returncode=rc, reason=result.error)
                    return rec

            rec.exit_code = 0
            rec = self.registry.transition(rec, RunState.SUCCEEDED, message="succeeded")
            return self._finish(rec)

        except KeyboardInterrupt:
            if not is_terminal(rec.state):
                rec.exit_code = RC_INTERRUPTED
                rec.last_error = "interrupted"
                rec = self.registry.transition(rec, RunState.CANCELED, message="interrupted")
                self._finish(rec)
            raise
