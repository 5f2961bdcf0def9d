from __future__ import annotations

from collections import Counter
from typing import Dict, Optional

from prometheus_client import Counter as PromCounter, Histogram

# Named counters (in-process snapshot)
_NAMED = Counter()

RECIPE_RUNS_TOTAL = PromCounter(
    "kiln_recipe_runs_total",
    "Finished recipe runs",
    ["recipe", "state"],
)

STEPS_TOTAL = PromCounter(
    "kiln_steps_total",
    "Executed recipe steps",
    ["recipe", "kind", "outcome"],
)

RECIPE_DURATION_SECONDS = Histogram(
    "kiln_recipe_duration_seconds",
    "Wall time of a recipe run",
    ["recipe"],
    buckets=(1, 5, 15, 30, 60, 120, 300, 600, 1200, 3600),
)


def reset_metrics() -> None:
    """
    Test helper: clears the named counters to avoid cross-test leakage.
    Prometheus collectors are process-global and are not reset.
    """
    _NAMED.clear()


def inc_named(name: str, value: int = 1) -> None:
    if not name:
        return
    _NAMED[name] += int(value)


def record_step(recipe: str, kind: str, ok: bool) -> None:
    outcome = "ok" if ok else "failed"
    STEPS_TOTAL.labels(recipe=recipe, kind=kind, outcome=outcome).inc()
    inc_named(f"steps_{outcome}")


def record_run(recipe: str, state: str, duration_seconds: Optional[float]) -> None:
    RECIPE_RUNS_TOTAL.labels(recipe=recipe, state=state).inc()
    if duration_seconds is not None:
        RECIPE_DURATION_SECONDS.labels(recipe=recipe).observe(duration_seconds)
    inc_named("runs_total")
    inc_named(f"runs_{state.lower()}")
    inc_named(f"recipe_{recipe}|{state}")


def snapshot_named() -> Dict[str, int]:
    return dict(_NAMED)
