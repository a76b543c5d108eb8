"""Install helpers: write files under ``PREFIX`` and report them.

These helpers write only into the staging root, which exists from
``pre_install`` until commit. Called from any other phase they raise
``RecipeError`` instead of touching the live destination tree.
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path

from recipepm.core.lifecycle.context import current_context
from recipepm.exceptions import RecipeError


def _staging_root() -> Path:
    ctx = current_context()
    if ctx.staging_root is None:
        raise RecipeError(
            f"{ctx.name}: install helpers can only be used from pre_install, "
            "install or post_install"
        )
    return ctx.staging_root


def _target(relative: str | os.PathLike[str]) -> Path:
    root = _staging_root()
    rel = Path(relative)
    if rel.is_absolute():
        # Absolute destinations are taken relative to PREFIX.
        rel = rel.relative_to(rel.anchor)
    target = root / rel
    if ".." in rel.parts:
        raise ValueError(f"install destination escapes PREFIX: {relative}")
    return target


def install_file(
    source: str | os.PathLike[str],
    dest: str | os.PathLike[str],
    mode: int = 0o644,
) -> Path:
    """Copy *source* to ``PREFIX/dest`` with *mode*."""
    ctx = current_context()
    src = ctx.resolve(source)
    target = _target(dest)
    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(src, target)
    os.chmod(target, mode)
    ctx.record_file(target)
    return target


def install_bin(source: str | os.PathLike[str], name: str | None = None) -> Path:
    """Install an executable into ``PREFIX/bin``."""
    src = Path(source)
    return install_file(src, Path("bin") / (name or src.name), mode=0o755)


def install_tree(source: str | os.PathLike[str], dest: str | os.PathLike[str] = "") -> list[Path]:
    """Copy a directory tree into ``PREFIX/dest``, keeping symlinks."""
    ctx = current_context()
    src = ctx.resolve(source)
    target = _target(dest) if str(dest) else _staging_root()
    shutil.copytree(src, target, symlinks=True, dirs_exist_ok=True)
    produced = []
    for dirpath, _dirnames, filenames in os.walk(target):
        for f in filenames:
            produced.append(Path(dirpath) / f)
    for p in produced:
        ctx.record_file(p)
    return produced
