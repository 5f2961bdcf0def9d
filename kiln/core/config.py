"""
Project configuration loader.

Reads an optional ``kiln.yaml`` (YAML or JSON) and merges it with the
built-in defaults, then applies ``KILN_*`` environment overrides.

Config file format:
    venv_dir: .venv
    wheels_dir: target/wheels
    maturin_image: ghcr.io/pyo3/maturin
    windows_target: x86_64-pc-windows-gnu
    recipes:
      debug:
        steps:
          - argv: ["{venv_bin}/python", "scripts/debug.py"]

Environment variables:
    KILN_CONFIG: path to the config file (optional).
    Default search path: <project_root>/kiln.yaml
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from kiln.core.errors import ConfigError

_log = logging.getLogger("kiln.config")

CONFIG_FILENAME = "kiln.yaml"

# env var -> config field
_ENV_OVERRIDES: Dict[str, str] = {
    "KILN_VENV_DIR": "venv_dir",
    "KILN_WHEELS_DIR": "wheels_dir",
    "KILN_STATE_DIR": "state_dir",
    "KILN_SYSTEM_PYTHON": "system_python",
    "KILN_DOCKER_BIN": "docker_bin",
    "KILN_MATURIN_IMAGE": "maturin_image",
    "KILN_CONTAINER_WORKDIR": "container_workdir",
    "KILN_WINDOWS_TARGET": "windows_target",
    "KILN_DEBUG_SCRIPT": "debug_script",
    "KILN_TEST_REPOSITORY": "test_repository",
    "KILN_INDEX_URL": "index_url",
    "KILN_TEST_INDEX_URL": "test_index_url",
    "KILN_STEP_TIMEOUT": "step_timeout_seconds",
    "KILN_PULL_IMAGES": "pull_images",
}


class KilnConfig(BaseModel):
    project_root: Path = Field(default_factory=Path.cwd)

    venv_dir: str = ".venv"
    wheels_dir: str = "target/wheels"
    state_dir: str = ".kiln"

    system_python: str = "python3"
    docker_bin: str = "docker"
    maturin_image: str = "ghcr.io/pyo3/maturin"
    container_workdir: str = "/io"
    windows_target: str = "x86_64-pc-windows-gnu"
    debug_script: str = "debug.py"

    test_repository: str = "testpypi"
    index_url: str = "https://upload.pypi.org/legacy/"
    test_index_url: str = "https://test.pypi.org/legacy/"

    step_timeout_seconds: Optional[float] = None
    pull_images: bool = True

    # raw per-recipe overrides, validated by the recipe registry
    recipes: Dict[str, Dict[str, Any]] = Field(default_factory=dict)

    def resolve(self, rel: str) -> Path:
        p = Path(rel)
        if p.is_absolute():
            return p
        return self.project_root / p

    @property
    def venv_path(self) -> Path:
        return self.resolve(self.venv_dir)

    @property
    def wheels_path(self) -> Path:
        return self.resolve(self.wheels_dir)

    @property
    def state_path(self) -> Path:
        return self.resolve(self.state_dir)

    def venv_bin(self) -> Path:
        """Interpreter/tool directory of the project virtualenv."""
        return self.venv_path / ("Scripts" if os.name == "nt" else "bin")

    def template_vars(self) -> Dict[str, str]:
        return {
            "project_root": str(self.project_root),
            "venv_dir": self.venv_dir,
            "venv_bin": self.venv_bin().relative_to(self.project_root).as_posix()
            if _is_relative_to(self.venv_bin(), self.project_root)
            else str(self.venv_bin()),
            "wheels_dir": self.wheels_dir,
            "system_python": self.system_python,
            "docker_bin": self.docker_bin,
            "maturin_image": self.maturin_image,
            "container_workdir": self.container_workdir,
            "windows_target": self.windows_target,
            "debug_script": self.debug_script,
            "test_repository": self.test_repository,
        }


def _is_relative_to(p: Path, root: Path) -> bool:
    try:
        p.relative_to(root)
        return True
    except ValueError:
        return False


def _resolve_path(project_root: Path, path: Optional[Path]) -> Path:
    if path is not None:
        p = Path(path)
        return p if p.is_absolute() else project_root / p
    env_path = os.getenv("KILN_CONFIG", "").strip()
    if env_path:
        return Path(env_path)
    return project_root / CONFIG_FILENAME


def _read_config_file(resolved: Path) -> Dict[str, Any]:
    """
    Returns an empty dict if the file is absent, not readable, or malformed;
    defaults apply in that case.
    """
    if not resolved.exists():
        return {}

    try:
        raw_text = resolved.read_text(encoding="utf-8")
    except OSError as exc:
        _log.warning("Cannot read config file %s: %s", resolved, exc)
        return {}

    try:
        data = json.loads(raw_text)
    except json.JSONDecodeError:
        try:
            data = yaml.safe_load(raw_text)
        except yaml.YAMLError as exc:
            _log.warning("Failed to parse config file %s as JSON or YAML: %s", resolved, exc)
            return {}

    if data is None:
        return {}
    if not isinstance(data, dict):
        _log.warning("Config file %s must be a mapping, got %s", resolved, type(data).__name__)
        return {}

    _log.debug("Loaded %d config keys from %s", len(data), resolved)
    return data


def _env_overrides() -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for env_key, field in _ENV_OVERRIDES.items():
        raw = os.getenv(env_key)
        if raw is None or not raw.strip():
            continue
        val: Any = raw.strip()
        if field == "pull_images":
            val = val.lower() in ("1", "true", "yes")
        out[field] = val
    return out


def load_config(project_root: Optional[Path] = None, path: Optional[Path] = None) -> KilnConfig:
    root = Path(project_root or Path.cwd()).resolve()
    data = _read_config_file(_resolve_path(root, path))

    # project_root always comes from the caller, never from the file
    data.pop("project_root", None)
    data.update(_env_overrides())

    try:
        return KilnConfig(project_root=root, **data)
    except ValidationError as exc:
        raise ConfigError(f"invalid configuration: {exc}") from exc
