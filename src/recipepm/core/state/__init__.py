"""Recipe State Store: the recipe file as the package database.

- ``parser``: structural scanner for top-level ``let`` bindings and the
  literal value grammar.
- ``store``: ``read_declared`` / ``write_declared``, transactions and the
  install-state helpers.
- ``locking``: advisory sidecar locks and atomic file replacement.
- ``models``: the typed ``Recipe`` view.
"""

from recipepm.core.state.locking import advisory_lock, atomic_write_text
from recipepm.core.state.models import Recipe
from recipepm.core.state.parser import Value, parse_literal, render_value
from recipepm.core.state.store import (
    RecipeStore,
    Transaction,
    apply_updates,
    load_recipe,
    parse_declared,
    read_declared,
    write_declared,
)

__all__ = [
    "Recipe",
    "RecipeStore",
    "Transaction",
    "Value",
    "advisory_lock",
    "apply_updates",
    "atomic_write_text",
    "load_recipe",
    "parse_declared",
    "parse_literal",
    "read_declared",
    "render_value",
    "write_declared",
]
