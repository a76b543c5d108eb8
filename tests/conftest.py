"""Shared fixtures for recipepm tests.

Recipes are written as ``.rhai`` files carrying only their declared
variables; phase functions are registered on an ``InProcessHost`` so no
script runtime is needed. Recipe-writing helpers live in ``tests.helpers``.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from recipepm.config import Settings
from recipepm.core.lifecycle.executor import LifecycleExecutor
from recipepm.script.inprocess import InProcessHost
from recipepm.script.registry import HostRegistry


@pytest.fixture
def recipes_dir(tmp_path: Path) -> Path:
    path = tmp_path / "recipes"
    path.mkdir()
    return path


@pytest.fixture
def prefix(tmp_path: Path) -> Path:
    path = tmp_path / "prefix"
    path.mkdir()
    return path


@pytest.fixture
def build_dir(tmp_path: Path) -> Path:
    return tmp_path / "build"


@pytest.fixture
def host() -> InProcessHost:
    return InProcessHost()


@pytest.fixture
def hosts(host: InProcessHost) -> HostRegistry:
    return HostRegistry([host])


@pytest.fixture
def executor(
    recipes_dir: Path, prefix: Path, build_dir: Path, hosts: HostRegistry
) -> LifecycleExecutor:
    return LifecycleExecutor(recipes_dir, prefix, build_dir, hosts=hosts)


@pytest.fixture
def settings(recipes_dir: Path, prefix: Path, build_dir: Path) -> Settings:
    return Settings(
        recipes_path=recipes_dir,
        prefix=prefix,
        build_dir=build_dir,
        lock_timeout=2.0,
    )
