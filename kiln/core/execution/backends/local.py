from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path
from typing import Any, Dict, List, Optional

from kiln.core.config import KilnConfig
from kiln.core.recipes.render import RenderedStep

from .base import ExecutionBackend

_log = logging.getLogger("kiln.backend.local")

# shell conventions
RC_NOT_EXECUTABLE = 126
RC_NOT_FOUND = 127
RC_TIMEOUT = 124


def _resolve_executable(argv: List[str], cwd: Path) -> List[str]:
    # ".venv/bin/maturin" is relative to the project root, not to our own cwd
    exe = argv[0]
    if (os.sep in exe or "/" in exe) and not os.path.isabs(exe):
        return [str(cwd / exe), *argv[1:]]
    return list(argv)


def run_argv(argv: List[str], *, cwd: Path, timeout: Optional[float] = None) -> Dict[str, Any]:
    """Run a command in the foreground; its output goes straight to our console."""
    cmd = _resolve_executable(argv, cwd)
    _log.debug("exec %s (cwd=%s)", cmd, cwd)
    try:
        r = subprocess.run(cmd, cwd=str(cwd), timeout=timeout)
    except FileNotFoundError:
        return {"returncode": RC_NOT_FOUND, "argv": list(argv), "error": f"executable not found: {argv[0]}"}
    except PermissionError:
        return {"returncode": RC_NOT_FOUND, "argv": list(argv), "error": f"executable not runnable: {argv[0]}"}
    except OSError as e:
        return {"returncode": RC_NOT_EXECUTABLE, "argv": list(argv), "error": f"cannot execute {argv[0]}: {e.strerror or e}"}
    except subprocess.TimeoutExpired:
        return {"returncode": RC_TIMEOUT, "argv": list(argv), "error": f"timed out after {timeout}s"}
    return {"returncode": r.returncode, "argv": list(argv), "error": None}


class LocalBackend(ExecutionBackend):
    name = "local"

    def execute(self, step: RenderedStep, *, config: KilnConfig) -> Dict[str, Any]:
        if step.kind != "command":
            raise ValueError(f"local backend cannot run {step.kind} steps")
        out = run_argv(step.argv, cwd=config.project_root, timeout=config.step_timeout_seconds)
        out["meta"] = {"cwd": str(config.project_root)}
        return out
