"""Version model, dependency graph and resolution.

All public names are re-exported here so callers can write
``from recipepm.core.dependency import DependencyResolver``.

- ``constraints``: ``Version``, ``VersionConstraint``, ``DependencySpec``.
- ``graph``: ``DependencyGraph`` built by scanning a recipe directory, with
  reverse-dependency, orphan, ``why`` and ``impact`` views.
- ``resolver``: three-colour DFS install plans and constraint validation.
"""

from recipepm.core.dependency.constraints import (
    ConstraintAtom,
    DependencySpec,
    Version,
    VersionConstraint,
    is_upgrade_needed,
    version_key,
)
from recipepm.core.dependency.graph import (
    RECIPE_SUFFIX,
    DependencyGraph,
    RecipeNode,
    TreeNode,
)
from recipepm.core.dependency.resolver import (
    DependencyResolver,
    PlanEntry,
    ResolutionPlan,
    resolve,
)

__all__ = [
    "ConstraintAtom",
    "DependencySpec",
    "Version",
    "VersionConstraint",
    "is_upgrade_needed",
    "version_key",
    "RECIPE_SUFFIX",
    "DependencyGraph",
    "RecipeNode",
    "TreeNode",
    "DependencyResolver",
    "PlanEntry",
    "ResolutionPlan",
    "resolve",
]
