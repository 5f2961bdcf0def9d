from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from kiln.api.deps import exec_allowed, get_config
from kiln.core.config import KilnConfig
from kiln.core.errors import PreflightBlocked, RecipeNotFound
from kiln.core.execution.executor import Executor
from kiln.core.preflight import run_preflight
from kiln.core.recipes import RecipeRegistry, render_recipe

router = APIRouter(tags=["recipes"])


class RunRequest(BaseModel):
    dry_run: bool = True
    force: bool = False
    check_network: bool = False


def _describe(recipe, config: KilnConfig) -> dict:
    body = recipe.model_dump()
    body["commands"] = [s.display() for s in render_recipe(recipe, config)]
    return body


def _require(name: str, config: KilnConfig):
    try:
        return RecipeRegistry(config).require(name)
    except RecipeNotFound:
        raise HTTPException(status_code=404, detail="recipe_not_found")


@router.get("/api/v1/recipes")
def list_recipes(config: KilnConfig = Depends(get_config)):
    return {"recipes": [_describe(r, config) for r in RecipeRegistry(config).list()]}


@router.get("/api/v1/recipes/{name}")
def get_recipe(name: str, config: KilnConfig = Depends(get_config)):
    return _describe(_require(name, config), config)


@router.get("/api/v1/recipes/{name}/preflight")
def preflight_recipe(name: str, check_network: bool = False, config: KilnConfig = Depends(get_config)):
    recipe = _require(name, config)
    return run_preflight(recipe, config, check_network=check_network).model_dump()


@router.post("/api/v1/recipes/{name}/run")
def run_recipe(name: str, req: RunRequest, config: KilnConfig = Depends(get_config)):
    _require(name, config)
    # named recipes only; real execution must be enabled explicitly
    if not req.dry_run and not exec_allowed():
        raise HTTPException(status_code=403, detail="exec_disabled")

    try:
        rec = Executor(config).run(name, dry_run=req.dry_run, force=req.force, check_network=req.check_network)
    except PreflightBlocked as e:
        raise HTTPException(status_code=409, detail={"error": "preflight_blocked", "reasons": e.reasons})
    return rec.to_dict()
