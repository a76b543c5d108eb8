"""Tests for the commands that change what is installed."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from click.testing import Result

from recipepm.core.state import load_recipe
from recipepm.script.inprocess import InProcessHost
from tests.helpers import failing, write_recipe

Invoke = Callable[..., Result]


class TestInstallCommand:
    """Tests for ``recipe install``."""

    def test_installs_with_dependencies(self, invoke: Invoke, stack: Path, prefix: Path) -> None:
        result = invoke("install", "app")
        assert result.exit_code == 0, result.output
        assert "Installed base 1.0.0 (1 files)" in result.output
        assert "Installed app 0.9.0" in result.output
        assert (prefix / "share" / "lib").exists()
        assert load_recipe(stack / "lib.rhai").installed_as_dep is True

    def test_reinstall_reports_skip(self, invoke: Invoke, stack: Path) -> None:
        invoke("install", "tool")
        result = invoke("install", "tool")
        assert result.exit_code == 0
        assert "tool 3.0.0 already installed" in result.output

    def test_force_reinstalls(self, invoke: Invoke, stack: Path) -> None:
        invoke("install", "tool")
        result = invoke("install", "tool", "--force")
        assert result.exit_code == 0, result.output
        assert "Installed tool 3.0.0 (1 files)" in result.output
        assert "already installed" not in result.output

    def test_dry_run(self, invoke: Invoke, stack: Path, prefix: Path) -> None:
        result = invoke("install", "app", "--dry-run")
        assert result.exit_code == 0
        assert "Install plan for app (3 packages)" in result.output
        assert "1. base (dependency)" in result.output
        assert "3. app (target)" in result.output
        assert list(prefix.iterdir()) == []

    def test_no_deps(self, invoke: Invoke, stack: Path) -> None:
        result = invoke("install", "app", "--no-deps")
        assert result.exit_code == 0
        assert "Installed app" in result.output
        assert "base" not in result.output

    def test_locked_drift_exits_4(self, invoke: Invoke, stack: Path) -> None:
        assert invoke("lock", "update").exit_code == 0
        write_recipe(stack, "base", "1.1.0")
        result = invoke("install", "app", "--locked")
        assert result.exit_code == 4
        assert "locked 1.0.0" in result.output

    def test_phase_failure_exits_1(
        self, invoke: Invoke, stack: Path, host: InProcessHost
    ) -> None:
        host.register("tool", install=failing("make: *** Error 2"))
        result = invoke("install", "tool")
        assert result.exit_code == 1
        assert "error:" in result.output
        assert not load_recipe(stack / "tool.rhai").installed


class TestRemoveCommand:
    """Tests for ``recipe remove``."""

    def test_remove(self, invoke: Invoke, stack: Path, prefix: Path) -> None:
        invoke("install", "tool")
        result = invoke("remove", "tool")
        assert result.exit_code == 0
        assert "Removed tool (1 files)" in result.output
        assert not (prefix / "share").exists()

    def test_blocked_by_dependent(self, invoke: Invoke, stack: Path) -> None:
        invoke("install", "app")
        result = invoke("remove", "lib")
        assert result.exit_code == 4
        assert "app" in result.output

    def test_force_warns(self, invoke: Invoke, stack: Path) -> None:
        invoke("install", "app")
        result = invoke("remove", "lib", "--force")
        assert result.exit_code == 0
        assert "Warning: app still depend on lib" in result.output

    def test_not_installed(self, invoke: Invoke, stack: Path) -> None:
        result = invoke("remove", "tool")
        assert result.exit_code == 2
        assert "not installed" in result.output


class TestOrphansCommands:
    """Tests for ``recipe orphans`` and ``recipe autoremove``."""

    def test_none(self, invoke: Invoke, stack: Path) -> None:
        assert "No orphaned packages." in invoke("orphans").output
        assert "No orphaned packages." in invoke("autoremove").output

    def test_autoremove_after_remove(self, invoke: Invoke, stack: Path, prefix: Path) -> None:
        invoke("install", "app")
        invoke("remove", "app")
        assert invoke("orphans").output.split() == ["lib"]

        dry = invoke("autoremove", "--dry-run")
        assert "Would remove lib" in dry.output
        assert "Would remove base" in dry.output
        assert (prefix / "share" / "base").exists()

        result = invoke("autoremove")
        assert result.exit_code == 0
        assert "Removed lib" in result.output
        assert "Removed base" in result.output
        assert not (prefix / "share").exists()


class TestUpdateUpgradeCommands:
    """Tests for ``recipe update`` and ``recipe upgrade``."""

    def test_update_nothing_new(self, invoke: Invoke, stack: Path) -> None:
        result = invoke("update")
        assert result.exit_code == 0
        assert "Everything is up to date." in result.output

    def test_update_then_upgrade(self, invoke: Invoke, stack: Path, host: InProcessHost) -> None:
        invoke("install", "tool")
        host.register("tool", check_update=lambda ctx: "3.1.0")

        result = invoke("update", "tool")
        assert result.exit_code == 0
        assert "tool -> 3.1.0" in result.output

        result = invoke("upgrade")
        assert result.exit_code == 0, result.output
        assert "Upgraded tool to 3.1.0" in result.output
        assert load_recipe(stack / "tool.rhai").installed_version == "3.1.0"

        assert "Nothing to upgrade." in invoke("upgrade").output

    def test_batch_failure_exits_1(self, invoke: Invoke, stack: Path, host: InProcessHost) -> None:
        host.register("base", check_update=failing("offline"))
        result = invoke("update")
        assert result.exit_code == 1
        assert "base:" in result.output

    def test_upgrade_not_installed(self, invoke: Invoke, stack: Path) -> None:
        result = invoke("upgrade", "tool")
        assert result.exit_code == 2
