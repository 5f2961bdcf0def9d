import json
import logging
from pathlib import Path

import pytest

from kiln.core.config import load_config
from kiln.core.errors import ConfigError


def test_defaults_match_makefile_layout(project: Path):
    cfg = load_config(project_root=project)
    assert cfg.project_root == project.resolve()
    assert cfg.venv_dir == ".venv"
    assert cfg.wheels_dir == "target/wheels"
    assert cfg.maturin_image == "ghcr.io/pyo3/maturin"
    assert cfg.windows_target == "x86_64-pc-windows-gnu"
    assert cfg.test_repository == "testpypi"
    assert cfg.wheels_path == project.resolve() / "target" / "wheels"


def test_yaml_file_overrides_defaults(project: Path):
    (project / "kiln.yaml").write_text(
        "venv_dir: env\nwindows_target: aarch64-pc-windows-msvc\nstep_timeout_seconds: 30\n",
        encoding="utf-8",
    )
    cfg = load_config(project_root=project)
    assert cfg.venv_dir == "env"
    assert cfg.windows_target == "aarch64-pc-windows-msvc"
    assert cfg.step_timeout_seconds == 30.0


def test_json_file_is_accepted(project: Path):
    path = project / "custom.json"
    path.write_text(json.dumps({"debug_script": "scripts/dbg.py"}), encoding="utf-8")
    cfg = load_config(project_root=project, path=Path("custom.json"))
    assert cfg.debug_script == "scripts/dbg.py"


def test_env_overrides_file(project: Path, monkeypatch):
    (project / "kiln.yaml").write_text("wheels_dir: dist\n", encoding="utf-8")
    monkeypatch.setenv("KILN_WHEELS_DIR", "out/wheels")
    monkeypatch.setenv("KILN_PULL_IMAGES", "no")
    cfg = load_config(project_root=project)
    assert cfg.wheels_dir == "out/wheels"
    assert cfg.pull_images is False


def test_config_path_from_env(project: Path, tmp_path: Path, monkeypatch):
    other = tmp_path / "elsewhere.yaml"
    other.write_text("system_python: python3.12\n", encoding="utf-8")
    monkeypatch.setenv("KILN_CONFIG", str(other))
    assert load_config(project_root=project).system_python == "python3.12"


def test_malformed_file_falls_back_to_defaults(project: Path, caplog):
    (project / "kiln.yaml").write_text("venv_dir: [unclosed\n", encoding="utf-8")
    with caplog.at_level(logging.WARNING, logger="kiln.config"):
        cfg = load_config(project_root=project)
    assert cfg.venv_dir == ".venv"
    assert "Failed to parse config file" in caplog.text


def test_non_mapping_file_falls_back_to_defaults(project: Path):
    (project / "kiln.yaml").write_text("- a\n- b\n", encoding="utf-8")
    assert load_config(project_root=project).wheels_dir == "target/wheels"


def test_invalid_values_raise(project: Path):
    (project / "kiln.yaml").write_text("step_timeout_seconds: soon\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(project_root=project)


def test_project_root_in_file_is_ignored(project: Path, tmp_path: Path):
    (project / "kiln.yaml").write_text(f"project_root: {tmp_path}\n", encoding="utf-8")
    assert load_config(project_root=project).project_root == project.resolve()


def test_template_vars_keep_paths_relative(config):
    v = config.template_vars()
    assert v["venv_bin"] in (".venv/bin", ".venv/Scripts")
    assert v["wheels_dir"] == "target/wheels"
    assert v["project_root"] == str(config.project_root)
