from __future__ import annotations

from typing import List, Optional


class KilnError(Exception):
    pass


class ConfigError(KilnError):
    pass


class RecipeNotFound(KilnError, KeyError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"unknown recipe: {name}")

    def __str__(self) -> str:
        return f"unknown recipe: {self.name}"


class ArtifactsMissing(KilnError):
    def __init__(self, pattern: str):
        self.pattern = pattern
        super().__init__(f"no artifacts match {pattern}")


class PreflightBlocked(KilnError):
    def __init__(self, recipe: str, reasons: List[str]):
        self.recipe = recipe
        self.reasons = list(reasons)
        super().__init__(f"preflight BLOCK for {recipe}: {'; '.join(self.reasons)}")


class StepFailed(KilnError):
    def __init__(self, *, argv: List[str], returncode: int, reason: Optional[str] = None):
        self.argv = list(argv)
        self.returncode = int(returncode)
        self.reason = reason
        msg = f"command failed with exit code {self.returncode}: {' '.join(self.argv)}"
        if reason:
            msg = f"{msg} ({reason})"
        super().__init__(msg)
