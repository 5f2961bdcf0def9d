from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from kiln.api.deps import get_config
from kiln.core.config import KilnConfig
from kiln.core.execution.registry import RunRegistry

router = APIRouter(tags=["runs"])


@router.get("/api/v1/runs")
def list_runs(recipe: Optional[str] = None, limit: int = 50, config: KilnConfig = Depends(get_config)):
    runs = RunRegistry(state_dir=config.state_path).list(recipe=recipe, limit=limit)
    return {"runs": [r.to_dict() for r in runs]}


@router.get("/api/v1/runs/{run_id}")
def get_run(run_id: str, config: KilnConfig = Depends(get_config)):
    try:
        rec = RunRegistry(state_dir=config.state_path).get(run_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="invalid_run_id")
    if rec is None:
        raise HTTPException(status_code=404, detail="run_not_found")
    return rec.to_dict()
