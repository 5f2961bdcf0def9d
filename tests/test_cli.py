import json
import os

import pytest

from kiln.cli import build_parser, main
from kiln.core.execution.registry import RunRegistry


def _run(project, *args):
    return main(["--project-root", str(project), *args])


def test_parser_requires_command():
    with pytest.raises(SystemExit) as exc:
        build_parser().parse_args([])
    assert exc.value.code == 2


def test_list(project, capsys):
    assert _run(project, "list") == 0
    out = capsys.readouterr().out
    for name in ("build", "upload", "upload-test", "debug", "develop", "venv"):
        assert name in out


def test_list_steps_shows_commands(project, capsys):
    assert _run(project, "list", "--steps") == 0
    out = capsys.readouterr().out
    assert "<container> ghcr.io/pyo3/maturin build --release --sdist" in out
    assert "python3 -m twine upload --repository testpypi target/wheels/*" in out


def test_dry_run_prints_commands(project, capsys):
    assert _run(project, "build", "--dry-run") == 0
    out = capsys.readouterr().out.splitlines()
    assert out[0] == "rm -rf target/wheels/*"
    assert out[1].startswith("docker run --rm -v ")
    assert out[1].endswith(":/io ghcr.io/pyo3/maturin build --release --sdist")
    assert out[2] == ".venv/bin/maturin build --release --target x86_64-pc-windows-gnu"


def test_blocked_recipe_exits_2(project, capsys):
    assert _run(project, "develop") == 2
    err = capsys.readouterr().err
    assert "develop blocked" in err
    assert "venv_tool_missing" in err


def test_failing_step_exit_code_propagates(project, capsys):
    (project / "kiln.yaml").write_text("debug_script: fail.py\n", encoding="utf-8")
    (project / "fail.py").write_text("", encoding="utf-8")
    bin_dir = project / ".venv" / "bin"
    bin_dir.mkdir(parents=True)
    fake_python = bin_dir / "python"
    fake_python.write_text("#!/bin/sh\nexit 7\n", encoding="utf-8")
    fake_python.chmod(0o755)

    assert _run(project, "debug") == 7
    assert "exit code 7" in capsys.readouterr().err


def test_runs_and_show(project, capsys):
    _run(project, "venv", "--dry-run")
    capsys.readouterr()

    assert _run(project, "runs", "--json") == 0
    runs = json.loads(capsys.readouterr().out)
    assert len(runs) == 1
    run_id = runs[0]["run_id"]
    assert runs[0]["dry_run"] is True

    assert _run(project, "show", run_id) == 0
    assert json.loads(capsys.readouterr().out)["recipe"] == "venv"

    assert _run(project, "show", "venv-20240101T000000Z-00000000") == 1
    assert _run(project, "show", ".hidden") == 2


def test_runs_reconcile(project, capsys):
    reg = RunRegistry(state_dir=project / ".kiln")
    rec = reg.create(recipe="build")
    path = project / ".kiln" / "runs" / f"{rec.run_id}.json"
    obj = json.loads(path.read_text(encoding="utf-8"))
    obj["updated_ts"] = "2000-01-01T00:00:00Z"
    path.write_text(json.dumps(obj), encoding="utf-8")

    assert _run(project, "runs", "--reconcile", "60") == 0
    assert reg.get(rec.run_id).state.value == "FAILED"
    assert "FAILED" in capsys.readouterr().out


def test_artifacts_verify(project, capsys, wheel_factory):
    assert _run(project, "artifacts") == 0
    assert "no artifacts" in capsys.readouterr().out

    wheels = project / "target" / "wheels"
    wheel_factory(wheels)
    assert _run(project, "artifacts", "--verify", "--write-manifest") == 0
    result = json.loads(capsys.readouterr().out)
    assert result["ok"] is True
    assert (wheels / ".artifact_manifest.json").exists()

    (wheels / "broken-0.1-py3-none-any.whl").write_bytes(b"junk")
    assert _run(project, "artifacts", "--verify") == 1


def test_invalid_config_exits_1(project, capsys):
    (project / "kiln.yaml").write_text("pull_images: [1, 2]\n", encoding="utf-8")
    assert _run(project, "list") == 1
    assert "invalid configuration" in capsys.readouterr().err


def test_serve_passes_config_to_app(project, monkeypatch):
    import uvicorn

    # restored (removed) at teardown
    monkeypatch.setenv("KILN_PROJECT_ROOT", "unset")
    monkeypatch.setenv("KILN_CONFIG", "unset")
    calls = []
    monkeypatch.setattr(uvicorn, "run", lambda app, **kw: calls.append((app, kw)))

    (project / "ci.yaml").write_text("wheels_dir: dist\n", encoding="utf-8")
    assert _run(project, "--config", "ci.yaml", "serve", "--port", "9100") == 0

    assert calls == [("kiln.api.main:app", {"host": "127.0.0.1", "port": 9100})]
    assert os.environ["KILN_PROJECT_ROOT"] == str(project.resolve())
    assert os.environ["KILN_CONFIG"] == str(project.resolve() / "ci.yaml")
