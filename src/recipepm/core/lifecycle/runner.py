"""Calls recipe functions with the ctx mapping and interprets the results.

Phase functions take one argument, the ctx mapping, and return the updated
mapping; returning ``None`` keeps it unchanged. Zero-argument functions are
accepted too. Before every call the mapping is refreshed with the current
constants (``PREFIX`` moves to the staging root for the install phase).
The mapping lives only for one executor run and is never persisted.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from recipepm.core.lifecycle.context import ExecutionContext, activate
from recipepm.core.lifecycle.states import (
    NOT_SATISFIED,
    SATISFIED,
    CheckResult,
    CheckStatus,
)
from recipepm.exceptions import PhaseError, RecipePMError, ScriptFailure
from recipepm.script.base import ScriptHandle

logger = logging.getLogger(__name__)


class PhaseRunner:
    """Invokes one recipe's functions against one execution context."""

    def __init__(self, handle: ScriptHandle, ctx: ExecutionContext) -> None:
        self.handle = handle
        self.ctx = ctx
        self.state: dict[str, Any] = {}

    def has(self, name: str) -> bool:
        return self.handle.has_function(name, 1) or self.handle.has_function(name, 0)

    def _invoke(self, name: str) -> Any:
        self.state.update(self.ctx.constants())
        with activate(self.ctx):
            if self.handle.has_function(name, 1):
                return self.handle.call(name, self.state)
            return self.handle.call(name)

    def call_value(self, name: str) -> Any:
        """Call *name* and return its raw result.

        Raises:
            PhaseError: If the function fails in the script.
        """
        try:
            return self._invoke(name)
        except ScriptFailure as exc:
            raise PhaseError(self.ctx.name, name, exc.message) from exc

    def run(self, name: str) -> None:
        """Run a phase or hook, threading the ctx mapping through it.

        Raises:
            PhaseError: If the function fails or returns something other
                than a mapping or ``None``.
        """
        logger.debug("%s: running %s()", self.ctx.name, name)
        result = self.call_value(name)
        if result is None:
            return
        if isinstance(result, Mapping):
            self.state = dict(result)
            return
        raise PhaseError(
            self.ctx.name,
            name,
            f"must return the ctx mapping or nothing, got {type(result).__name__}",
        )

    def check(self, name: str) -> CheckResult:
        """Evaluate an ``is_*`` check function.

        Truthy is satisfied, falsy is not satisfied, raising is
        ``CHECK_FAILED``. An undefined check is not satisfied.
        """
        if not self.has(name):
            return NOT_SATISFIED
        try:
            result = self._invoke(name)
        except ScriptFailure as exc:
            return CheckResult(CheckStatus.CHECK_FAILED, exc.message)
        except RecipePMError as exc:
            return CheckResult(CheckStatus.CHECK_FAILED, str(exc))
        return SATISFIED if result else NOT_SATISFIED

    def require_check(self, name: str) -> bool:
        """Like ``check`` but a failed check aborts.

        Raises:
            PhaseError: On ``CHECK_FAILED``.
        """
        result = self.check(name)
        if result.status is CheckStatus.CHECK_FAILED:
            raise PhaseError(self.ctx.name, name, result.reason)
        return result.satisfied
