from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from kiln.core.config import KilnConfig
from kiln.core.errors import RecipeNotFound

from .builtins import builtin_recipes
from .models import Recipe

_log = logging.getLogger("kiln.recipes")


class RecipeRegistry:
    """Named build recipes.

    Resolution order:
      1) Built-in recipes (always present)
      2) ``recipes:`` overrides from the project config; a mapping for an
         existing name replaces the given fields, a new name adds a recipe
    """

    def __init__(self, config: KilnConfig):
        self.config = config
        self._recipes: Dict[str, Recipe] = {}
        self._load_all()

    def _load_all(self) -> None:
        self._recipes = {r.name: r for r in builtin_recipes()}

        for name, override in sorted((self.config.recipes or {}).items()):
            if not isinstance(override, dict):
                _log.warning("Ignoring recipe override %r: expected a mapping", name)
                continue
            base = self._recipes.get(name)
            data: Dict[str, Any] = base.model_dump() if base is not None else {}
            data.update(override)
            data["name"] = name
            try:
                self._recipes[name] = Recipe(**data)
            except ValidationError as exc:
                _log.warning("Ignoring invalid recipe override %r: %s", name, exc)

    def list_names(self) -> list[str]:
        return sorted(self._recipes.keys())

    def list(self) -> list[Recipe]:
        return [self._recipes[n] for n in self.list_names()]

    def get(self, name: str) -> Optional[Recipe]:
        return self._recipes.get(name)

    def require(self, name: str) -> Recipe:
        rec = self._recipes.get(name)
        if rec is None:
            raise RecipeNotFound(name)
        return rec
