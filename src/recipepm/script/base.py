"""Script execution capability consumed by the lifecycle executor.

The executor never looks inside a recipe's script. It needs three things
from whatever runs it:

- ``bindings()`` -- top-level variable bindings, read without side effects.
- ``has_function(name, arity)`` -- a capability query used before every
  optional phase or hook.
- ``call(name, *args)`` -- invoke a function with zero or one argument.

A ``ScriptHost`` turns a recipe path into a ``ScriptHandle``; the
``HostRegistry`` picks the first host that can load a given recipe.
"""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

from recipepm.core.state.parser import Value
from recipepm.core.state.store import parse_declared
from recipepm.exceptions import RecipePMError, ScriptFailure


class ScriptHandle(ABC):
    """A loaded recipe script."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def bindings(self) -> dict[str, Value]:
        """Top-level literal bindings, extracted without running the script."""
        return parse_declared(self.path.read_text(encoding="utf-8"), self.path, require=False)

    @abstractmethod
    def has_function(self, name: str, arity: int | None = None) -> bool:
        """True if the script defines *name*, callable with *arity* arguments.

        ``arity=None`` accepts any arity.
        """

    @abstractmethod
    def call(self, name: str, *args: Any) -> Any:
        """Invoke *name* and return its result.

        Raises:
            ScriptFailure: If the function raised inside the script.
            RecipePMError: Typed failures raised by helpers pass through.
        """


class ScriptHost(ABC):
    """Knows how to load one kind of recipe script."""

    name: str = "abstract"

    @abstractmethod
    def can_load(self, path: Path) -> bool:
        """Can this host run the recipe at *path*? Must not load it."""

    @abstractmethod
    def load(self, path: Path) -> ScriptHandle:
        """Load the recipe at *path*.

        Raises:
            RecipeError: If the script cannot be loaded or fails while
                being loaded.
        """


def accepts_arity(func: Callable[..., Any], arity: int) -> bool:
    """True if *func* can be called with *arity* positional arguments."""
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        return False
    try:
        signature.bind(*([None] * arity))
    except TypeError:
        return False
    return True


class FunctionTableHandle(ScriptHandle):
    """A handle whose functions are plain Python callables in a mapping."""

    def __init__(self, path: Path, functions: Mapping[str, Callable[..., Any]]) -> None:
        super().__init__(path)
        self._functions = dict(functions)

    @property
    def function_names(self) -> list[str]:
        return sorted(self._functions)

    def has_function(self, name: str, arity: int | None = None) -> bool:
        func = self._functions.get(name)
        if func is None or not callable(func):
            return False
        if arity is None:
            return True
        return accepts_arity(func, arity)

    def call(self, name: str, *args: Any) -> Any:
        func = self._functions.get(name)
        if func is None:
            raise ScriptFailure(name, "function not defined")
        try:
            return func(*args)
        except RecipePMError:
            raise
        except Exception as exc:
            raise ScriptFailure(name, f"{type(exc).__name__}: {exc}") from exc
