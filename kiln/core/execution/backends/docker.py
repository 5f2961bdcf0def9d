from __future__ import annotations

import logging
import shutil
import subprocess
from typing import Any, Dict, List

from kiln.core.config import KilnConfig
from kiln.core.recipes.render import RenderedStep

from .base import ExecutionBackend
from .local import RC_NOT_FOUND, run_argv

_log = logging.getLogger("kiln.backend.docker")


class DockerBackend(ExecutionBackend):
    name = "docker"

    def _image_exists(self, docker: str, image: str) -> bool:
        r = subprocess.run(
            [docker, "image", "inspect", image],
            capture_output=True,
            text=True,
        )
        return r.returncode == 0

    def _pull_image(self, docker: str, image: str) -> None:
        # pull output is captured; only the build's own output reaches the console
        _log.info("pulling image %s", image)
        r = subprocess.run(
            [docker, "pull", image],
            capture_output=True,
            text=True,
        )
        if r.returncode != 0:
            raise RuntimeError(f"docker pull failed: {r.stderr.strip() or r.stdout.strip()}")

    def build_argv(self, step: RenderedStep, *, config: KilnConfig) -> List[str]:
        if not step.image:
            raise ValueError("docker backend requires an image")
        mount = f"{config.project_root}:{config.container_workdir}"
        return [config.docker_bin, "run", "--rm", "-v", mount, step.image, *step.argv]

    def execute(self, step: RenderedStep, *, config: KilnConfig) -> Dict[str, Any]:
        if step.kind != "container":
            raise ValueError(f"docker backend cannot run {step.kind} steps")

        argv = self.build_argv(step, config=config)
        docker = config.docker_bin
        if shutil.which(docker) is None:
            return {"returncode": RC_NOT_FOUND, "argv": argv, "error": f"executable not found: {docker}", "meta": {}}

        if config.pull_images and not self._image_exists(docker, step.image or ""):
            try:
                self._pull_image(docker, step.image or "")
            except RuntimeError as e:
                return {"returncode": 1, "argv": argv, "error": str(e), "meta": {"image": step.image}}

        out = run_argv(argv, cwd=config.project_root, timeout=config.step_timeout_seconds)
        out["argv"] = argv
        out["meta"] = {"image": step.image, "mount": f"{config.project_root}:{config.container_workdir}"}
        return out
