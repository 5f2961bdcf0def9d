from .models import Recipe, Step
from .registry import RecipeRegistry
from .render import RenderedStep, render_recipe, render_step

__all__ = [
    "Recipe",
    "Step",
    "RecipeRegistry",
    "RenderedStep",
    "render_recipe",
    "render_step",
]
