"""Per-invocation execution context shared by phases and helpers.

One ``ExecutionContext`` belongs to one executor run of one recipe. The
executor activates it around every phase call; helper functions find it
through ``current_context()`` instead of taking it as an argument.
"""

from __future__ import annotations

import os
import platform
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from recipepm.exceptions import InternalError

_current: ContextVar[ExecutionContext | None] = ContextVar("recipepm_context", default=None)


@dataclass
class ExecutionContext:
    """Mutable state of one recipe execution.

    Attributes:
        name: Recipe name.
        version: Declared recipe version.
        recipe_path: The recipe file.
        recipes_path: The recipe search path.
        prefix: The real install destination.
        build_dir: Ephemeral build area for this run.
        staging_root: Set while the install phase writes into staging.
        cwd: Working directory for helpers; starts at ``build_dir``.
        env: Environment overrides for subprocesses.
        path_prepend: Directories put in front of ``PATH`` (build tools).
        last_downloaded: Last file produced by an acquire helper, used for
            hash verification chaining.
        produced_files: Files reported by install helpers.
    """

    name: str
    version: str
    recipe_path: Path
    recipes_path: Path
    prefix: Path
    build_dir: Path
    staging_root: Path | None = None
    cwd: Path | None = None
    env: dict[str, str] = field(default_factory=dict)
    path_prepend: list[Path] = field(default_factory=list)
    last_downloaded: Path | None = None
    produced_files: list[Path] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.cwd is None:
            self.cwd = self.build_dir

    @property
    def install_root(self) -> Path:
        """Where install output goes right now: staging if active, else prefix."""
        return self.staging_root if self.staging_root is not None else self.prefix

    def constants(self) -> dict[str, Any]:
        """Values exposed to phase functions in the ctx mapping."""
        return {
            "NAME": self.name,
            "VERSION": self.version,
            "PREFIX": str(self.install_root),
            "BUILD_DIR": str(self.build_dir),
            "RECIPES_PATH": str(self.recipes_path),
            "ARCH": platform.machine(),
            "NPROC": os.cpu_count() or 1,
        }

    def subprocess_env(self) -> dict[str, str]:
        """``os.environ`` with overrides and the build-tool ``PATH`` applied."""
        env = dict(os.environ)
        env.update(self.env)
        if self.path_prepend:
            parts = [str(p) for p in self.path_prepend]
            if env.get("PATH"):
                parts.append(env["PATH"])
            env["PATH"] = os.pathsep.join(parts)
        return env

    def resolve(self, path: str | os.PathLike[str]) -> Path:
        """Resolve *path* against the context's working directory."""
        p = Path(path)
        return p if p.is_absolute() else Path(self.cwd) / p  # type: ignore[arg-type]

    def record_file(self, path: Path) -> None:
        self.produced_files.append(Path(path))


def current_context() -> ExecutionContext:
    """Return the active context.

    Raises:
        InternalError: If called outside a phase.
    """
    ctx = _current.get()
    if ctx is None:
        raise InternalError("No recipe execution is active; helpers run only inside phases")
    return ctx


@contextmanager
def activate(ctx: ExecutionContext) -> Iterator[ExecutionContext]:
    """Make *ctx* the active context for the duration of the block."""
    token = _current.set(ctx)
    try:
        yield ctx
    finally:
        _current.reset(token)
