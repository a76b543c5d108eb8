"""Typed view of a recipe file's declared variables."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

# Definition variables, in the order they conventionally appear.
DEFINITION_VARS = ("name", "version", "description", "deps", "build_deps")

# State block variables written by the lifecycle executor.
STATE_VARS = (
    "installed",
    "installed_version",
    "installed_at",
    "installed_files",
    "installed_as_dep",
    "install_incomplete",
)

REQUIRED_VARS = ("name", "version", "installed")


@dataclass
class Recipe:
    """A recipe as read from disk, without executing it.

    ``deps`` and ``build_deps`` are kept as the raw specification strings;
    the dependency graph parses them.

    Attributes:
        path: The recipe file.
        variables: Every literal top-level binding, including unknown ones.
    """

    path: Path
    name: str
    version: str
    description: str = ""
    deps: list[str] = field(default_factory=list)
    build_deps: list[str] = field(default_factory=list)
    installed: bool = False
    installed_version: str | None = None
    installed_at: int = 0
    installed_files: list[str] = field(default_factory=list)
    installed_as_dep: bool = False
    install_incomplete: bool = False
    variables: dict[str, Any] = field(default_factory=dict, repr=False)
