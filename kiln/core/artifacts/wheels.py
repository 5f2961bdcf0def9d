from __future__ import annotations

import logging
import re
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

_log = logging.getLogger("kiln.artifacts")

# {distribution}-{version}(-{build tag})?-{python tag}-{abi tag}-{platform tag}.whl
_WHEEL_RE = re.compile(
    r"^(?P<distribution>[^-]+)-(?P<version>[^-]+)(-(?P<build>\d[^-]*))?"
    r"-(?P<python>[^-]+)-(?P<abi>[^-]+)-(?P<platform>[^-]+)\.whl$"
)

SDIST_SUFFIXES = (".tar.gz", ".zip")


@dataclass(frozen=True)
class WheelName:
    distribution: str
    version: str
    build: Optional[str]
    python: str
    abi: str
    platform: str


def parse_wheel_filename(name: str) -> WheelName:
    m = _WHEEL_RE.match(name)
    if not m:
        raise ValueError(f"not a wheel filename: {name}")
    return WheelName(
        distribution=m.group("distribution"),
        version=m.group("version"),
        build=m.group("build"),
        python=m.group("python"),
        abi=m.group("abi"),
        platform=m.group("platform"),
    )


def artifact_kind(path: Path) -> str:
    name = path.name
    if name.endswith(".whl"):
        return "wheel"
    if name.endswith(SDIST_SUFFIXES):
        return "sdist"
    return "other"


def clean_wheels_dir(wheels_dir: Path) -> List[str]:
    """Equivalent of ``rm -rf <wheels_dir>/*``.

    Hidden entries survive (shell ``*`` skips them) and the directory itself
    is kept. A missing directory is not an error.
    """
    removed: List[str] = []
    if not wheels_dir.exists():
        return removed
    if not wheels_dir.is_dir():
        raise NotADirectoryError(str(wheels_dir))

    for entry in sorted(wheels_dir.iterdir()):
        if entry.name.startswith("."):
            continue
        if entry.is_dir() and not entry.is_symlink():
            shutil.rmtree(entry)
        else:
            entry.unlink()
        removed.append(entry.name)

    _log.info("removed %d entries from %s", len(removed), wheels_dir)
    return removed


def list_artifacts(wheels_dir: Path) -> List[Path]:
    if not wheels_dir.is_dir():
        return []
    return sorted(
        p for p in wheels_dir.iterdir()
        if p.is_file() and not p.name.startswith(".")
    )
