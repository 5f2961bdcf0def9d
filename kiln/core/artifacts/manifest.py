from __future__ import annotations

import hashlib
import json
import tarfile
import zipfile
from pathlib import Path
from typing import Any, Dict, List

from .wheels import artifact_kind, list_artifacts, parse_wheel_filename

MANIFEST_NAME = "artifact_manifest.json"


def sha256_file(path: Path) -> str:
    h = hashlib.sha256()
    with path.open("rb") as fp:
        for chunk in iter(lambda: fp.read(1024 * 1024), b""):
            h.update(chunk)
    return h.hexdigest()


def describe_artifact(path: Path) -> Dict[str, Any]:
    kind = artifact_kind(path)
    out: Dict[str, Any] = {
        "name": path.name,
        "kind": kind,
        "size": path.stat().st_size,
        "sha256": sha256_file(path),
    }
    if kind == "wheel":
        try:
            w = parse_wheel_filename(path.name)
            out["tags"] = {
                "distribution": w.distribution,
                "version": w.version,
                "python": w.python,
                "abi": w.abi,
                "platform": w.platform,
            }
        except ValueError:
            out["tags"] = None
    return out


def build_artifact_manifest(wheels_dir: Path) -> Dict[str, Any]:
    files = [
        describe_artifact(p)
        for p in list_artifacts(wheels_dir)
    ]
    return {
        "kind": "artifact_manifest",
        "directory": wheels_dir.as_posix(),
        "files": files,
        "total_files": len(files),
    }


def write_artifact_manifest(wheels_dir: Path, manifest: Dict[str, Any]) -> Path:
    # kept next to the artifacts but hidden, so "<wheels_dir>/*" never uploads it
    path = wheels_dir / f".{MANIFEST_NAME}"
    path.write_text(json.dumps(manifest, indent=2, sort_keys=True), encoding="utf-8")
    return path


def _check_wheel(path: Path) -> List[str]:
    problems: List[str] = []
    try:
        parse_wheel_filename(path.name)
    except ValueError:
        problems.append("bad_filename")
    try:
        with zipfile.ZipFile(path) as zf:
            names = zf.namelist()
    except zipfile.BadZipFile:
        return problems + ["not_a_zip"]
    dist_info = {n.split("/", 1)[0] for n in names if ".dist-info/" in n}
    if not any(f"{d}/WHEEL" in names for d in dist_info):
        problems.append("missing_WHEEL")
    if not any(f"{d}/RECORD" in names for d in dist_info):
        problems.append("missing_RECORD")
    return problems


def _check_sdist(path: Path) -> List[str]:
    if path.name.endswith(".zip"):
        try:
            with zipfile.ZipFile(path) as zf:
                names = zf.namelist()
        except zipfile.BadZipFile:
            return ["not_a_zip"]
    else:
        try:
            with tarfile.open(path, mode="r:gz") as tf:
                names = tf.getnames()
        except (tarfile.ReadError, EOFError, OSError):
            return ["not_a_gzipped_tarball"]
    # PKG-INFO lives in the top-level "<name>-<version>/" directory
    if not any(n.count("/") == 1 and n.endswith("/PKG-INFO") for n in names):
        return ["missing_PKG-INFO"]
    return []


def verify_artifacts(wheels_dir: Path) -> Dict[str, Any]:
    checks: List[Dict[str, Any]] = []
    for p in list_artifacts(wheels_dir):
        kind = artifact_kind(p)
        if kind == "wheel":
            problems = _check_wheel(p)
        elif kind == "sdist":
            problems = _check_sdist(p)
        else:
            problems = ["unexpected_file"]
        checks.append({"name": p.name, "kind": kind, "ok": not problems, "problems": problems})

    return {
        "ok": bool(checks) and all(c["ok"] for c in checks),
        "directory": wheels_dir.as_posix(),
        "empty": not checks,
        "checks": checks,
    }
