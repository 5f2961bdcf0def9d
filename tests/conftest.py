import io
import os
import tarfile
import zipfile
from pathlib import Path
from typing import Any, Dict, List

import pytest
from fastapi.testclient import TestClient

from kiln.core.config import load_config
from kiln.core.execution.backends.base import ExecutionBackend
from kiln.core.observability.audit import close_audit_handlers
from kiln.core.observability.metrics import reset_metrics


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for k in list(os.environ):
        if k.startswith("KILN_"):
            monkeypatch.delenv(k, raising=False)
    reset_metrics()
    yield
    close_audit_handlers()


@pytest.fixture()
def project(tmp_path: Path) -> Path:
    root = tmp_path / "proj"
    root.mkdir()
    return root


@pytest.fixture()
def config(project: Path):
    return load_config(project_root=project)


class FakeBackend(ExecutionBackend):
    """Records every step; exit codes come from ``returncodes`` keyed by argv[0]."""

    def __init__(self, name: str, returncodes: Dict[str, int] = None):
        self.name = name
        self.returncodes = returncodes or {}
        self.calls: List[List[str]] = []

    def execute(self, step, *, config) -> Dict[str, Any]:
        argv = list(step.argv) if step.kind != "container" else ["<container>", step.image, *step.argv]
        self.calls.append(argv)
        return {"returncode": self.returncodes.get(argv[0], 0), "argv": argv, "error": None, "meta": {}}


@pytest.fixture()
def fake_backends():
    return {
        "local": FakeBackend("local"),
        "docker": FakeBackend("docker"),
        "dry-run": FakeBackend("dry-run"),
    }


@pytest.fixture()
def venv_tools(config):
    """Creates empty executables for the venv tools the recipes call."""
    bin_dir = config.venv_bin()
    bin_dir.mkdir(parents=True, exist_ok=True)
    for tool in ("maturin", "python", "pip"):
        p = bin_dir / tool
        p.write_text("#!/bin/sh\nexit 0\n", encoding="utf-8")
        p.chmod(0o755)
    return bin_dir


def make_wheel(directory: Path, name: str = "pyegui-0.1.0-cp39-abi3-manylinux_2_17_x86_64.whl") -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    dist_info = "-".join(name.split("-")[:2]) + ".dist-info"
    path = directory / name
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("pyegui/__init__.py", "")
        zf.writestr(f"{dist_info}/WHEEL", "Wheel-Version: 1.0\n")
        zf.writestr(f"{dist_info}/METADATA", "Name: pyegui\n")
        zf.writestr(f"{dist_info}/RECORD", "")
    return path


def make_sdist(directory: Path, name: str = "pyegui-0.1.0.tar.gz") -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    top = name[: -len(".tar.gz")]
    with tarfile.open(path, "w:gz") as tf:
        data = b"Metadata-Version: 2.1\nName: pyegui\n"
        ti = tarfile.TarInfo(f"{top}/PKG-INFO")
        ti.size = len(data)
        tf.addfile(ti, io.BytesIO(data))
    return path


@pytest.fixture()
def client(project, monkeypatch):
    monkeypatch.setenv("KILN_PROJECT_ROOT", str(project))
    from kiln.api.main import app

    return TestClient(app)


@pytest.fixture()
def wheel_factory():
    return make_wheel


@pytest.fixture()
def sdist_factory():
    return make_sdist
