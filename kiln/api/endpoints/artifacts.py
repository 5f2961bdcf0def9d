from fastapi import APIRouter, Depends

from kiln.api.deps import get_config
from kiln.core.artifacts import build_artifact_manifest, verify_artifacts
from kiln.core.config import KilnConfig

router = APIRouter(tags=["artifacts"])


@router.get("/api/v1/artifacts")
def list_artifacts(config: KilnConfig = Depends(get_config)):
    return build_artifact_manifest(config.wheels_path)


@router.post("/api/v1/artifacts/verify")
def verify(config: KilnConfig = Depends(get_config)):
    return verify_artifacts(config.wheels_path)
