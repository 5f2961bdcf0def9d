from __future__ import annotations

from fastapi import APIRouter, Depends
from starlette.responses import JSONResponse

from kiln.api.deps import get_config
from kiln.core.config import KilnConfig
from kiln.core.observability.metrics import inc_named

router = APIRouter()


@router.get("/health/live")
def live():
    inc_named("health_live")
    return {"status": "ok"}


@router.get("/health/ready")
def ready(config: KilnConfig = Depends(get_config)):
    """Ready when run records can be written."""
    inc_named("health_ready")

    problems: list[str] = []
    try:
        state = config.state_path
        state.mkdir(parents=True, exist_ok=True)
        probe = state / ".ready_check.tmp"
        probe.write_text("ok", encoding="utf-8")
        probe.unlink()
    except OSError as e:
        problems.append(f"state_dir_not_writable:{type(e).__name__}")

    if problems:
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "problems": problems},
        )

    return {"status": "ready"}
