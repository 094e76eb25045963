"""
Recipes — the four named ways of invoking the cross-compilation tool.

A recipe only decides the argument list.  Hiding the cargo config and
running the tool are core/ concerns; nothing here touches the filesystem.

    cross                         cross build
    cross-release                 cross build --release
    cross-target TARGET           cross build --target TARGET
    cross-release-target TARGET   cross build --release --target TARGET
"""
from dataclasses import dataclass
from enum import Enum, unique
from typing import Dict, Iterator, List, Optional


# ── Errors ───────────────────────────────────────────────────────────────────

class RecipeError(Exception):
    """Base class for recipe resolution / argument errors."""


class UnknownRecipeError(RecipeError):
    pass


class TargetRequiredError(RecipeError):
    pass


class UnexpectedTargetError(RecipeError):
    pass


# ── Types ────────────────────────────────────────────────────────────────────

@unique
class BuildProfile(str, Enum):
    DEFAULT = "default"
    RELEASE = "release"

    def to_flags(self) -> List[str]:
        """Tool flags selecting this profile."""
        return ["--release"] if self is BuildProfile.RELEASE else []

    @property
    def output_dir_name(self) -> str:
        """Cargo's output subdirectory for this profile."""
        return "release" if self is BuildProfile.RELEASE else "debug"


@dataclass(frozen=True)
class Recipe:
    name: str
    profile: BuildProfile
    takes_target: bool
    description: str = ""


RECIPES: Dict[str, Recipe] = {
    r.name: r
    for r in (
        Recipe(
            name="cross",
            profile=BuildProfile.DEFAULT,
            takes_target=False,
            description="cross build",
        ),
        Recipe(
            name="cross-release",
            profile=BuildProfile.RELEASE,
            takes_target=False,
            description="cross build --release",
        ),
        Recipe(
            name="cross-target",
            profile=BuildProfile.DEFAULT,
            takes_target=True,
            description="cross build --target TARGET",
        ),
        Recipe(
            name="cross-release-target",
            profile=BuildProfile.RELEASE,
            takes_target=True,
            description="cross build --release --target TARGET",
        ),
    )
}


# ── Operations ───────────────────────────────────────────────────────────────

def get_recipe(name: str) -> Recipe:
    try:
        return RECIPES[name]
    except KeyError:
        raise UnknownRecipeError(
            f"Unknown recipe '{name}' (known: {', '.join(RECIPES)})"
        ) from None


def iter_recipes() -> Iterator[Recipe]:
    """Recipes in registration order."""
    yield from RECIPES.values()


def build_argv(
    recipe: Recipe,
    target: Optional[str] = None,
    tool: str = "cross",
) -> List[str]:
    """
    Build the tool argument list for *recipe*.

    The target is appended as a single argv element exactly as given:
    it is never quoted, trimmed or checked against a list of triples.
    """
    if recipe.takes_target:
        if not target:
            raise TargetRequiredError(f"Recipe '{recipe.name}' requires a TARGET")
    elif target is not None:
        raise UnexpectedTargetError(
            f"Recipe '{recipe.name}' takes no TARGET (got '{target}')"
        )

    argv = [tool, "build"] + recipe.profile.to_flags()
    if recipe.takes_target:
        argv += ["--target", target]
    return argv
