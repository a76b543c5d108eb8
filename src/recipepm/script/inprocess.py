"""In-process script host for embedding and tests.

Phase functions are registered as Python callables per recipe name, so a
recipe file only needs its declared variables::

    host = InProcessHost()
    host.register("hello", acquire=lambda ctx: ctx, install=write_files)
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

from recipepm.core.state.store import parse_declared
from recipepm.exceptions import RecipeError
from recipepm.script.base import FunctionTableHandle, ScriptHandle, ScriptHost


class InProcessHost(ScriptHost):
    """Serves recipes whose functions were registered in this process."""

    name = "inprocess"

    def __init__(self) -> None:
        self._tables: dict[str, dict[str, Callable[..., Any]]] = {}

    def register(self, recipe: str, **functions: Callable[..., Any]) -> None:
        """Register (or extend) the functions of the recipe named *recipe*."""
        self._tables.setdefault(recipe, {}).update(functions)

    def unregister(self, recipe: str) -> None:
        self._tables.pop(recipe, None)

    def _key(self, path: Path) -> str | None:
        path = Path(path)
        if path.stem in self._tables:
            return path.stem
        try:
            declared = parse_declared(path.read_text(encoding="utf-8"), path, require=False)
        except (OSError, RecipeError):
            return None
        name = declared.get("name")
        return name if isinstance(name, str) and name in self._tables else None

    def can_load(self, path: Path) -> bool:
        return self._key(path) is not None

    def load(self, path: Path) -> ScriptHandle:
        key = self._key(path)
        if key is None:
            raise RecipeError(f"No functions registered for recipe {path}")
        return FunctionTableHandle(path, self._tables[key])
