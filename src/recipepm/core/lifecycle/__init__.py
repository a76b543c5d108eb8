"""Lifecycle Executor: install, update, upgrade and removal state machines.

- ``states``: ``Phase``, ``RemovalPhase`` and the three-valued ``CheckResult``.
- ``context``: the per-run ``ExecutionContext`` that helpers see.
- ``runner``: calls recipe functions with the ctx mapping.
- ``executor``: ``LifecycleExecutor`` (install / update / upgrade / remove).
- ``removal``: the removal sub-machine and file deletion.
- ``build_deps``: tool dependencies installed into the build area.
"""

from recipepm.core.lifecycle.context import ExecutionContext, activate, current_context
from recipepm.core.lifecycle.executor import (
    REQUIRED_FUNCTIONS,
    InstallOutcome,
    LifecycleExecutor,
)
from recipepm.core.lifecycle.removal import RecipeRemover, RemovalOutcome
from recipepm.core.lifecycle.states import (
    CheckResult,
    CheckStatus,
    Phase,
    RemovalPhase,
)

__all__ = [
    "REQUIRED_FUNCTIONS",
    "CheckResult",
    "CheckStatus",
    "ExecutionContext",
    "InstallOutcome",
    "LifecycleExecutor",
    "Phase",
    "RecipeRemover",
    "RemovalOutcome",
    "RemovalPhase",
    "activate",
    "current_context",
]
