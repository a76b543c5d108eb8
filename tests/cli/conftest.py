"""Shared fixtures for CLI tests.

``invoke`` runs the ``recipe`` group against the temporary recipe
directory, prefix and build area, with phase functions served by the
shared ``InProcessHost`` and no user configuration file.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest
from click.testing import CliRunner, Result

from recipepm.cli.main import cli
from recipepm.script.inprocess import InProcessHost
from recipepm.script.registry import HostRegistry
from tests.helpers import file_installer, noop, write_recipe


@pytest.fixture
def runner() -> CliRunner:
    """Create a Click CliRunner for invoking commands."""
    return CliRunner()


@pytest.fixture
def invoke(
    runner: CliRunner,
    tmp_path: Path,
    recipes_dir: Path,
    prefix: Path,
    build_dir: Path,
    hosts: HostRegistry,
) -> Callable[..., Result]:
    def _invoke(*args: str) -> Result:
        return runner.invoke(
            cli,
            [
                "--recipes-path", str(recipes_dir),
                "--prefix", str(prefix),
                "--build-dir", str(build_dir),
                *args,
            ],
            obj={"hosts": hosts},
            env={"RECIPE_CONFIG": str(tmp_path / "no-config.yaml")},
        )

    return _invoke


@pytest.fixture
def stack(host: InProcessHost, recipes_dir: Path) -> Path:
    """app -> lib -> base, plus an unrelated ``tool``."""
    write_recipe(recipes_dir, "base", "1.0.0", description="Base runtime")
    write_recipe(recipes_dir, "lib", "1.2.0", ["base >= 1.0"])
    write_recipe(recipes_dir, "app", "0.9.0", ["lib"], description="Demo application")
    write_recipe(recipes_dir, "tool", "3.0.0", description="Standalone tool")
    for name in ("base", "lib", "app", "tool"):
        host.register(name, acquire=noop, install=file_installer(f"share/{name}"))
    return recipes_dir
