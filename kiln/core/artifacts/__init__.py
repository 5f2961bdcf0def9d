from .wheels import WheelName, artifact_kind, clean_wheels_dir, list_artifacts, parse_wheel_filename
from .manifest import build_artifact_manifest, sha256_file, verify_artifacts, write_artifact_manifest

__all__ = [
    "WheelName",
    "artifact_kind",
    "clean_wheels_dir",
    "list_artifacts",
    "parse_wheel_filename",
    "build_artifact_manifest",
    "sha256_file",
    "verify_artifacts",
    "write_artifact_manifest",
]
