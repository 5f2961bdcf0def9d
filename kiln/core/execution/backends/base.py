from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict

from kiln.core.config import KilnConfig
from kiln.core.recipes.render import RenderedStep


class ExecutionBackend(ABC):
    name: str

    @abstractmethod
    def execute(self, step: RenderedStep, *, config: KilnConfig) -> Dict[str, Any]:
        """Run one rendered step to completion.

        Returns a dict: {"returncode": int, "argv": [...], "error": str|None, "meta": {...}}
        """
