from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from kiln.core.artifacts import list_artifacts, verify_artifacts
from kiln.core.config import KilnConfig
from kiln.core.recipes.models import Recipe
from kiln.core.recipes.render import substitute

from .models import PreflightReport
from .network import index_reachable

_log = logging.getLogger("kiln.preflight")


def _venv_tool_exists(path: Path) -> bool:
    if path.exists():
        return True
    return os.name == "nt" and path.with_suffix(".exe").exists()


def _check_executables(recipe: Recipe, config: KilnConfig, report: PreflightReport) -> None:
    variables = config.template_vars()
    venv_prefix = variables["venv_bin"].rstrip("/") + "/"
    seen: set[str] = set()

    for step in recipe.steps:
        if step.kind == "container":
            exe = config.docker_bin
        elif step.kind == "command":
            exe = substitute(step.argv[0], variables)
        else:
            continue
        if exe in seen:
            continue
        seen.add(exe)

        if exe.startswith(venv_prefix):
            # recipes that build the venv themselves are not checked
            if recipe.uses_venv and not _venv_tool_exists(config.resolve(exe)):
                report.add(
                    "venv_tool_missing",
                    "BLOCK",
                    f"{exe} not found; create the environment with `kiln venv`",
                )
            continue

        if "/" in exe or os.sep in exe:
            if not config.resolve(exe).exists():
                report.add("executable_missing", "BLOCK", f"{exe} not found")
            continue

        if shutil.which(exe) is None:
            report.add("executable_missing", "BLOCK", f"{exe} not found on PATH")


def _check_files(recipe: Recipe, config: KilnConfig, report: PreflightReport) -> None:
    variables = config.template_vars()
    for tpl in recipe.requires_files:
        rel = substitute(tpl, variables)
        if not config.resolve(rel).exists():
            report.add("file_missing", "BLOCK", f"{rel} does not exist")


def _check_artifacts(config: KilnConfig, report: PreflightReport) -> None:
    wheels = config.wheels_path
    if not list_artifacts(wheels):
        report.add("no_artifacts", "BLOCK", f"nothing to upload in {config.wheels_dir}; run `kiln build` first")
        return

    result = verify_artifacts(wheels)
    for c in result["checks"]:
        if c["ok"]:
            continue
        level = "WARN" if c["problems"] == ["unexpected_file"] else "BLOCK"
        report.add("artifact_invalid", level, f"{c['name']}: {', '.join(c['problems'])}")


def _check_network(recipe: Recipe, config: KilnConfig, report: PreflightReport) -> None:
    url = config.test_index_url if recipe.index == "staging" else config.index_url
    err = index_reachable(url)
    if err:
        report.add("index_unreachable", "WARN", f"{url} did not respond ({err})")


def run_preflight(recipe: Recipe, config: KilnConfig, *, check_network: bool = False) -> PreflightReport:
    report = PreflightReport(recipe=recipe.name)

    _check_executables(recipe, config, report)
    _check_files(recipe, config, report)
    if recipe.uses_artifacts:
        _check_artifacts(config, report)
    if check_network and recipe.requires_network:
        _check_network(recipe, config, report)

    for f in report.findings:
        _log.log(logging.ERROR if f.level == "BLOCK" else logging.WARNING, "%s %s: %s", recipe.name, f.code, f.message)
    return report
