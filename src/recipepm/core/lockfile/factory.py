"""Lockfile generation and verification against a recipe directory.

``generate`` snapshots the declared ``version`` of every recipe (installed
state is ignored). ``verify`` compares a snapshot with the recipes on disk
by exact string equality, so non-semantic versions are opaque values.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from recipepm.core.dependency.graph import DependencyGraph
from recipepm.core.lockfile.lockfile import Lockfile
from recipepm.core.lockfile.models import LOCKFILE_NAME, MISSING, UNREADABLE, LockMismatch
from recipepm.exceptions import LockMismatchError

logger = logging.getLogger(__name__)


def lockfile_path(search_path: Path) -> Path:
    """The lockfile lives at the root of the recipe search path."""
    return Path(search_path) / LOCKFILE_NAME


def generate(search_path: Path, graph: DependencyGraph | None = None) -> Lockfile:
    """Snapshot the declared version of every readable recipe.

    Args:
        search_path: The recipe directory.
        graph: A graph already scanned from *search_path*, to avoid a rescan.
    """
    graph = graph if graph is not None else DependencyGraph.scan(search_path)
    lf = Lockfile()
    for node in graph.nodes:
        lf.set_version(node.name, node.version)
    lf.stamp()
    logger.debug("Generated lockfile with %d packages", lf.package_count)
    return lf


def verify(
    search_path: Path,
    lockfile: Lockfile,
    names: Iterable[str] | None = None,
    graph: DependencyGraph | None = None,
) -> list[LockMismatch]:
    """Compare locked versions with the recipes currently on disk.

    Args:
        search_path: The recipe directory.
        lockfile: The snapshot to check against.
        names: Restrict the check to these packages (a resolution plan).
            Packages not present in the lockfile are not mismatches.
        graph: A graph already scanned from *search_path*.

    Returns:
        Every mismatch, sorted by name. Empty means consistent.
    """
    graph = graph if graph is not None else DependencyGraph.scan(search_path)
    broken = graph.broken
    locked = lockfile.packages
    selected = sorted(locked) if names is None else sorted(set(names) & locked.keys())

    mismatches: list[LockMismatch] = []
    for name in selected:
        node = graph.get(name)
        if node is not None:
            current = node.version
        elif name in broken:
            current = UNREADABLE
        else:
            current = MISSING
        if current != locked[name]:
            mismatches.append(LockMismatch(name, locked[name], current))
    return mismatches


def check_locked(
    search_path: Path,
    lockfile: Lockfile,
    names: Iterable[str],
    graph: DependencyGraph | None = None,
) -> None:
    """Fail a ``--locked`` install if any planned package drifted.

    Raises:
        LockMismatchError: Listing every mismatch, not only the first.
    """
    mismatches = verify(search_path, lockfile, names, graph)
    if mismatches:
        raise LockMismatchError(mismatches)
