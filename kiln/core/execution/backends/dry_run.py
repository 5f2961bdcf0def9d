from __future__ import annotations

import logging
from typing import Any, Dict

from kiln.core.config import KilnConfig
from kiln.core.recipes.render import RenderedStep

from .base import ExecutionBackend
from .docker import DockerBackend

_log = logging.getLogger("kiln.backend.dry_run")


class DryRunBackend(ExecutionBackend):
    """Records what would run; never spawns a process."""

    name = "dry-run"

    def execute(self, step: RenderedStep, *, config: KilnConfig) -> Dict[str, Any]:
        if step.kind == "container":
            argv = DockerBackend().build_argv(step, config=config)
        else:
            argv = list(step.argv)
        _log.info("[dry-run] %s", " ".join(argv))
        return {"returncode": 0, "argv": argv, "error": None, "meta": {"simulated": True}}
