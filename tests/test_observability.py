import json

from prometheus_client import REGISTRY

from kiln.core.observability.audit import AUDIT_FILENAME, audit_event
from kiln.core.observability.metrics import inc_named, record_run, record_step, reset_metrics, snapshot_named


def test_named_counters_reset():
    inc_named("health_live")
    inc_named("health_live", 2)
    inc_named("")
    assert snapshot_named() == {"health_live": 3}
    reset_metrics()
    assert snapshot_named() == {}


def test_record_run_updates_prometheus():
    before = REGISTRY.get_sample_value("kiln_recipe_runs_total", {"recipe": "develop", "state": "SUCCEEDED"}) or 0.0
    record_run("develop", "SUCCEEDED", 1.5)
    after = REGISTRY.get_sample_value("kiln_recipe_runs_total", {"recipe": "develop", "state": "SUCCEEDED"})
    assert after == before + 1

    snap = snapshot_named()
    assert snap["runs_total"] == 1
    assert snap["runs_succeeded"] == 1
    assert snap["recipe_develop|SUCCEEDED"] == 1


def test_record_step_outcomes():
    record_step("build", "container", True)
    record_step("build", "command", False)
    assert snapshot_named() == {"steps_ok": 1, "steps_failed": 1}
    assert REGISTRY.get_sample_value(
        "kiln_steps_total", {"recipe": "build", "kind": "command", "outcome": "failed"}
    ) >= 1


def test_audit_appends_json_lines(tmp_path):
    audit_event("recipe_run", state_dir=tmp_path, run_id="r1", recipe="build", state="FAILED", exit_code=5)
    audit_event(
        "recipe_run",
        state_dir=tmp_path,
        run_id="r2",
        recipe="venv",
        state="SUCCEEDED",
        exit_code=0,
        extra={"dry_run": True},
    )

    lines = (tmp_path / AUDIT_FILENAME).read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    first, second = (json.loads(x) for x in lines)
    assert first["run_id"] == "r1"
    assert first["exit_code"] == 5
    assert "extra" not in first
    assert second["extra"] == {"dry_run": True}
    assert isinstance(second["ts_ms"], int)
