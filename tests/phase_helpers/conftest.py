"""Fixtures for helper tests: an active execution context."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from recipepm.core.lifecycle import ExecutionContext, activate


@pytest.fixture
def ctx(tmp_path: Path) -> Iterator[ExecutionContext]:
    recipes = tmp_path / "recipes"
    recipes.mkdir()
    build = tmp_path / "build"
    build.mkdir()
    staging = tmp_path / "staging"
    staging.mkdir()
    context = ExecutionContext(
        name="demo",
        version="1.0.0",
        recipe_path=recipes / "demo.rhai",
        recipes_path=recipes,
        prefix=tmp_path / "prefix",
        build_dir=build,
        staging_root=staging,
    )
    with activate(context):
        yield context
