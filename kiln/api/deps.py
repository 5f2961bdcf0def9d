from __future__ import annotations

import os
from pathlib import Path

from fastapi import HTTPException

from kiln.core.config import KilnConfig, load_config
from kiln.core.errors import ConfigError


def get_config() -> KilnConfig:
    root = (os.getenv("KILN_PROJECT_ROOT") or "").strip()
    try:
        return load_config(project_root=Path(root) if root else None)
    except ConfigError as e:
        raise HTTPException(status_code=500, detail=f"config_invalid: {e}")


def exec_allowed() -> bool:
    return (os.getenv("KILN_API_ALLOW_EXEC") or "0").strip().lower() in ("1", "true", "yes")
