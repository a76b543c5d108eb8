"""Tests for the PackageManager operations behind the CLI commands."""

from __future__ import annotations

from pathlib import Path

import pytest

from recipepm.config import Settings
from recipepm.core.manager import PackageManager
from recipepm.core.state import load_recipe
from recipepm.exceptions import (
    LockMismatchError,
    PhaseError,
    RecipeNotFoundError,
    ReverseDependencyError,
    UserError,
)
from recipepm.script.inprocess import InProcessHost
from recipepm.script.registry import HostRegistry
from tests.helpers import failing, file_installer, noop, write_recipe


@pytest.fixture
def manager(settings: Settings, hosts: HostRegistry) -> PackageManager:
    return PackageManager(settings, hosts=hosts)


@pytest.fixture
def stack(host: InProcessHost, recipes_dir: Path) -> Path:
    """app -> lib -> base, each installing one file."""
    write_recipe(recipes_dir, "base", "1.0.0", description="Base runtime")
    write_recipe(recipes_dir, "lib", "1.0.0", ["base >= 1.0"])
    write_recipe(recipes_dir, "app", "1.0.0", ["lib"], description="The application")
    for name in ("base", "lib", "app"):
        host.register(name, acquire=noop, install=file_installer(f"share/{name}"))
    return recipes_dir


class TestInstall:
    """Tests for ``PackageManager.install``."""

    def test_installs_in_plan_order(
        self, manager: PackageManager, stack: Path, prefix: Path
    ) -> None:
        outcomes = manager.install("app")
        assert [o.name for o in outcomes] == ["base", "lib", "app"]
        assert (prefix / "share" / "base").exists()
        assert load_recipe(stack / "base.rhai").installed_as_dep is True
        assert load_recipe(stack / "lib.rhai").installed_as_dep is True
        assert load_recipe(stack / "app.rhai").installed_as_dep is False

    def test_no_deps(self, manager: PackageManager, stack: Path) -> None:
        outcomes = manager.install("app", no_deps=True)
        assert [o.name for o in outcomes] == ["app"]
        assert not load_recipe(stack / "lib.rhai").installed

    def test_second_install_skips(self, manager: PackageManager, stack: Path) -> None:
        manager.install("app")
        assert all(o.skipped for o in manager.install("app"))

    def test_failure_stops_plan(
        self, manager: PackageManager, stack: Path, host: InProcessHost
    ) -> None:
        host.register("lib", install=failing("compile error"))
        with pytest.raises(PhaseError):
            manager.install("app")
        assert load_recipe(stack / "base.rhai").installed
        assert not load_recipe(stack / "lib.rhai").installed
        assert not load_recipe(stack / "app.rhai").installed

    def test_unknown_package(self, manager: PackageManager, stack: Path) -> None:
        with pytest.raises(RecipeNotFoundError):
            manager.install("nope")

    def test_plan_only(self, manager: PackageManager, stack: Path) -> None:
        plan = manager.plan("app")
        assert plan.names == ["base", "lib", "app"]
        assert not load_recipe(stack / "base.rhai").installed


class TestLocked:
    """Tests for ``--locked`` installs."""

    def test_without_lockfile(self, manager: PackageManager, stack: Path) -> None:
        with pytest.raises(UserError, match="lock update"):
            manager.install("app", locked=True)

    def test_drift_refuses_before_installing(self, manager: PackageManager, stack: Path) -> None:
        manager.lock_update()
        write_recipe(stack, "lib", "1.1.0", ["base >= 1.0"])
        with pytest.raises(LockMismatchError) as info:
            manager.install("app", locked=True)
        assert [m.name for m in info.value.mismatches] == ["lib"]
        assert not load_recipe(stack / "base.rhai").installed

    def test_consistent(self, manager: PackageManager, stack: Path) -> None:
        manager.lock_update()
        assert len(manager.install("app", locked=True)) == 3


class TestRemoveAndAutoremove:
    """Tests for ``remove``, ``orphans`` and ``autoremove``."""

    def test_remove_blocked_by_dependent(self, manager: PackageManager, stack: Path) -> None:
        manager.install("app")
        with pytest.raises(ReverseDependencyError):
            manager.remove("lib")

    def test_autoremove_cascades(self, manager: PackageManager, stack: Path, prefix: Path) -> None:
        manager.install("app")
        manager.remove("app")
        assert [n.name for n in manager.orphans()] == ["lib"]

        assert manager.autoremove() == ["lib", "base"]
        assert not (prefix / "share").exists()
        assert manager.orphans() == []

    def test_autoremove_dry_run(self, manager: PackageManager, stack: Path) -> None:
        manager.install("app")
        manager.remove("app")
        assert manager.autoremove(dry_run=True) == ["lib", "base"]
        assert load_recipe(stack / "lib.rhai").installed
        assert load_recipe(stack / "base.rhai").installed

    def test_explicit_packages_are_not_orphans(
        self, manager: PackageManager, stack: Path
    ) -> None:
        manager.install("base")
        assert manager.autoremove() == []


class TestUpdateUpgrade:
    """Tests for batch and single-package update/upgrade."""

    def test_batch_update_continues_past_failures(
        self, manager: PackageManager, stack: Path, host: InProcessHost
    ) -> None:
        host.register("base", check_update=failing("offline"))
        host.register("lib", check_update=lambda ctx: "1.2.0")
        report = manager.update()
        assert report.succeeded == {"lib": "1.2.0"}
        assert list(report.failed) == ["base"]
        assert not report.ok
        assert load_recipe(stack / "lib.rhai").version == "1.2.0"

    def test_single_update_raises(
        self, manager: PackageManager, stack: Path, host: InProcessHost
    ) -> None:
        host.register("base", check_update=failing("offline"))
        with pytest.raises(PhaseError):
            manager.update("base")

    def test_upgrade_outdated_only(
        self, manager: PackageManager, stack: Path, prefix: Path
    ) -> None:
        manager.install("app")
        write_recipe(
            stack,
            "lib",
            "2.0.0",
            ["base >= 1.0"],
            installed=True,
            installed_version="1.0.0",
            installed_as_dep=True,
            installed_files=[str(prefix / "share" / "lib")],
        )
        report = manager.upgrade()
        assert list(report.succeeded) == ["lib"]
        lib = load_recipe(stack / "lib.rhai")
        assert lib.installed_version == "2.0.0"
        assert lib.installed_as_dep is True

    def test_upgrade_named_not_installed(self, manager: PackageManager, stack: Path) -> None:
        with pytest.raises(UserError, match="not installed"):
            manager.upgrade("app")


class TestQueries:
    """Tests for list, search and info."""

    def test_list(self, manager: PackageManager, stack: Path) -> None:
        assert [n.name for n in manager.list_packages()] == ["app", "base", "lib"]
        manager.install("lib")
        assert [n.name for n in manager.list_packages(installed_only=True)] == ["base", "lib"]

    def test_search_name_and_description(self, manager: PackageManager, stack: Path) -> None:
        assert [n.name for n in manager.search("RUNTIME")] == ["base"]
        assert [n.name for n in manager.search("lib")] == ["lib"]
        assert manager.search("zzz") == []

    def test_info(self, manager: PackageManager, stack: Path) -> None:
        recipe = manager.info("app")
        assert recipe.description == "The application"
        assert recipe.deps == ["lib"]


class TestLockfileOperations:
    def test_update_reports_diff(self, manager: PackageManager, stack: Path) -> None:
        lockfile, diff = manager.lock_update()
        assert lockfile.packages == {"app": "1.0.0", "base": "1.0.0", "lib": "1.0.0"}
        assert diff["added"] == ["app", "base", "lib"]
        write_recipe(stack, "base", "1.1.0")
        _, diff = manager.lock_update()
        assert diff["changed"] == [{"name": "base", "old": "1.0.0", "new": "1.1.0"}]
        assert manager.lock_verify() == []
