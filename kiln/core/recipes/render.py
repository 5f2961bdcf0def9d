from __future__ import annotations

import glob
import os
from dataclasses import dataclass, field
from typing import List, Optional

from kiln.core.config import KilnConfig
from kiln.core.errors import ArtifactsMissing, ConfigError

from .models import Recipe, Step

_GLOB_CHARS = ("*", "?", "[")


@dataclass
class RenderedStep:
    index: int
    kind: str
    argv: List[str] = field(default_factory=list)
    image: Optional[str] = None
    description: Optional[str] = None

    def display(self) -> str:
        if self.kind == "container":
            return " ".join(["<container>", self.image or "", *self.argv]).strip()
        if self.kind == "clean":
            return f"<clean> {self.argv[0]}/*" if self.argv else "<clean>"
        return " ".join(self.argv)


def substitute(value: str, variables: dict) -> str:
    try:
        return value.format_map(variables)
    except KeyError as exc:
        raise ConfigError(f"unknown placeholder {exc} in {value!r}") from exc


def _is_path_glob(arg: str) -> bool:
    # "maturin[patchelf]" is a requirement, "target/wheels/*" is a path
    return any(c in arg for c in _GLOB_CHARS) and ("/" in arg or os.sep in arg)


def _expand_globs(argv: List[str], config: KilnConfig) -> List[str]:
    """Shell-style expansion of path arguments relative to the project root; paths stay relative."""
    out: List[str] = []
    root = str(config.project_root)
    for arg in argv:
        if not _is_path_glob(arg):
            out.append(arg)
            continue
        matches = sorted(glob.glob(arg, root_dir=root))
        if not matches:
            raise ArtifactsMissing(arg)
        out.extend(matches)
    return out


def render_step(step: Step, config: KilnConfig, *, index: int = 0, expand: bool = True) -> RenderedStep:
    variables = config.template_vars()
    argv = [substitute(a, variables) for a in step.argv]
    image = substitute(step.image, variables) if step.image else None

    # container args are interpreted inside the container, clean handles its own glob
    if expand and step.kind == "command":
        argv = _expand_globs(argv, config)

    return RenderedStep(index=index, kind=step.kind, argv=argv, image=image, description=step.description)


def render_recipe(recipe: Recipe, config: KilnConfig, *, expand: bool = False) -> List[RenderedStep]:
    return [render_step(s, config, index=i, expand=expand) for i, s in enumerate(recipe.steps)]
