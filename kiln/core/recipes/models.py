from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator


StepKind = Literal["command", "container", "clean"]


class Step(BaseModel):
    kind: StepKind = "command"
    # template strings; see render.render_step for the available placeholders
    argv: List[str] = Field(default_factory=list)
    # container steps only
    image: Optional[str] = None
    description: Optional[str] = None

    @model_validator(mode="after")
    def _check_shape(self) -> "Step":
        if self.kind == "command" and not self.argv:
            raise ValueError("command step requires argv")
        if self.kind == "container" and not self.image:
            raise ValueError("container step requires image")
        return self


class Recipe(BaseModel):
    name: str
    description: Optional[str] = None
    steps: List[Step] = Field(default_factory=list)

    # preflight hints
    requires_network: bool = False
    uses_venv: bool = False
    uses_artifacts: bool = False
    # files that must exist before the first step (templates)
    requires_files: List[str] = Field(default_factory=list)
    # which package index the recipe talks to
    index: Optional[Literal["production", "staging"]] = None
