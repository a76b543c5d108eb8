"""Script execution adapters: how recipe phase functions are found and called."""

from recipepm.script.base import (
    FunctionTableHandle,
    ScriptHandle,
    ScriptHost,
    accepts_arity,
)
from recipepm.script.inprocess import InProcessHost
from recipepm.script.module_host import ModuleHost
from recipepm.script.registry import HostRegistry, default_registry

__all__ = [
    "FunctionTableHandle",
    "HostRegistry",
    "InProcessHost",
    "ModuleHost",
    "ScriptHandle",
    "ScriptHost",
    "accepts_arity",
    "default_registry",
]
