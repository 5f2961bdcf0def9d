import json
import zipfile
from pathlib import Path

import pytest

from kiln.core.artifacts import (
    artifact_kind,
    build_artifact_manifest,
    clean_wheels_dir,
    list_artifacts,
    parse_wheel_filename,
    sha256_file,
    verify_artifacts,
    write_artifact_manifest,
)


def test_clean_removes_visible_entries_only(tmp_path: Path):
    wheels = tmp_path / "target" / "wheels"
    (wheels / "nested").mkdir(parents=True)
    (wheels / "nested" / "x.whl").write_bytes(b"x")
    (wheels / "a.whl").write_bytes(b"x")
    (wheels / ".keep").write_bytes(b"")

    removed = clean_wheels_dir(wheels)

    assert removed == ["a.whl", "nested"]
    assert wheels.is_dir()
    assert sorted(p.name for p in wheels.iterdir()) == [".keep"]


def test_clean_missing_dir_is_noop(tmp_path: Path):
    assert clean_wheels_dir(tmp_path / "nope") == []


def test_clean_rejects_file(tmp_path: Path):
    f = tmp_path / "wheels"
    f.write_text("x")
    with pytest.raises(NotADirectoryError):
        clean_wheels_dir(f)


def test_parse_wheel_filename():
    w = parse_wheel_filename("pyegui-0.1.4-cp39-abi3-manylinux_2_17_x86_64.manylinux2014_x86_64.whl")
    assert (w.distribution, w.version, w.build) == ("pyegui", "0.1.4", None)
    assert (w.python, w.abi) == ("cp39", "abi3")
    assert w.platform == "manylinux_2_17_x86_64.manylinux2014_x86_64"

    built = parse_wheel_filename("pyegui-0.1.4-1-cp39-abi3-win_amd64.whl")
    assert built.build == "1"
    assert built.platform == "win_amd64"

    with pytest.raises(ValueError):
        parse_wheel_filename("pyegui-0.1.4.tar.gz")


def test_artifact_kind():
    assert artifact_kind(Path("a-1-py3-none-any.whl")) == "wheel"
    assert artifact_kind(Path("a-1.tar.gz")) == "sdist"
    assert artifact_kind(Path("notes.txt")) == "other"


def test_manifest_lists_hashes(tmp_path: Path, wheel_factory, sdist_factory):
    wheels = tmp_path / "wheels"
    w = wheel_factory(wheels)
    s = sdist_factory(wheels)

    m = build_artifact_manifest(wheels)
    assert m["total_files"] == 2
    by_name = {f["name"]: f for f in m["files"]}
    assert by_name[w.name]["sha256"] == sha256_file(w)
    assert by_name[w.name]["tags"]["platform"] == "manylinux_2_17_x86_64"
    assert by_name[s.name]["kind"] == "sdist"

    path = write_artifact_manifest(wheels, m)
    assert path.name.startswith(".")
    assert json.loads(path.read_text(encoding="utf-8"))["total_files"] == 2
    # the manifest itself is never an artifact
    assert [p.name for p in list_artifacts(wheels)] == sorted([w.name, s.name])


def test_verify_ok(tmp_path: Path, wheel_factory, sdist_factory):
    wheels = tmp_path / "wheels"
    wheel_factory(wheels)
    sdist_factory(wheels)
    out = verify_artifacts(wheels)
    assert out["ok"] is True
    assert all(c["ok"] for c in out["checks"])


def test_verify_detects_broken_artifacts(tmp_path: Path):
    wheels = tmp_path / "wheels"
    wheels.mkdir()
    (wheels / "pyegui-0.1.0-cp39-abi3-win_amd64.whl").write_bytes(b"not a zip")
    with zipfile.ZipFile(wheels / "pyegui-0.1.0-cp39-abi3-macosx_11_0_arm64.whl", "w") as zf:
        zf.writestr("pyegui/__init__.py", "")
    (wheels / "pyegui-0.1.0.tar.gz").write_bytes(b"junk")
    (wheels / "notes.txt").write_text("x")

    out = verify_artifacts(wheels)
    problems = {c["name"]: c["problems"] for c in out["checks"]}
    assert out["ok"] is False
    assert problems["pyegui-0.1.0-cp39-abi3-win_amd64.whl"] == ["not_a_zip"]
    assert problems["pyegui-0.1.0-cp39-abi3-macosx_11_0_arm64.whl"] == ["missing_WHEEL", "missing_RECORD"]
    assert problems["pyegui-0.1.0.tar.gz"] == ["not_a_gzipped_tarball"]
    assert problems["notes.txt"] == ["unexpected_file"]


def test_verify_empty_dir_is_not_ok(tmp_path: Path):
    out = verify_artifacts(tmp_path / "missing")
    assert out["ok"] is False
    assert out["empty"] is True
