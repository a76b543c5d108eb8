"""Tests for generating and verifying a lockfile against a recipe directory."""

from __future__ import annotations

from pathlib import Path

import pytest

from recipepm.core.lockfile import (
    LOCKFILE_NAME,
    MISSING,
    UNREADABLE,
    LockMismatch,
    check_locked,
    generate,
    lockfile_path,
    verify,
)
from recipepm.exceptions import LockMismatchError
from tests.helpers import write_recipe


@pytest.fixture
def populated(recipes_dir: Path) -> Path:
    write_recipe(recipes_dir, "app", "2.0.0", ["lib"], installed=True)
    write_recipe(recipes_dir, "lib", "1.1.0")
    write_recipe(recipes_dir, "tool", "nightly-7")
    return recipes_dir


class TestGenerate:
    """Tests for ``generate``."""

    def test_snapshots_declared_versions(self, populated: Path) -> None:
        lf = generate(populated)
        assert lf.packages == {"app": "2.0.0", "lib": "1.1.0", "tool": "nightly-7"}
        assert lf.metadata.generated_at
        assert lf.metadata.generated_by.startswith("recipepm")

    def test_installed_state_is_ignored(self, recipes_dir: Path) -> None:
        write_recipe(recipes_dir, "app", "2.0.0", installed=True, installed_version="1.0.0")
        assert generate(recipes_dir).packages == {"app": "2.0.0"}

    def test_lockfile_path(self, recipes_dir: Path) -> None:
        assert lockfile_path(recipes_dir) == recipes_dir / LOCKFILE_NAME


class TestVerify:
    """Tests for ``verify``."""

    def test_consistent(self, populated: Path) -> None:
        assert verify(populated, generate(populated)) == []

    def test_changed_version(self, populated: Path) -> None:
        lf = generate(populated)
        write_recipe(populated, "lib", "1.2.0")
        assert verify(populated, lf) == [LockMismatch("lib", "1.1.0", "1.2.0")]

    def test_removed_recipe_is_missing(self, populated: Path) -> None:
        lf = generate(populated)
        (populated / "tool.rhai").unlink()
        assert verify(populated, lf) == [LockMismatch("tool", "nightly-7", MISSING)]

    def test_unreadable_recipe(self, populated: Path) -> None:
        lf = generate(populated)
        (populated / "tool.rhai").write_text("let broken = ;")
        assert verify(populated, lf) == [LockMismatch("tool", "nightly-7", UNREADABLE)]

    def test_opaque_versions_compare_exactly(self, populated: Path) -> None:
        lf = generate(populated)
        write_recipe(populated, "tool", "nightly-8")
        assert [m.name for m in verify(populated, lf)] == ["tool"]

    def test_restricted_to_names(self, populated: Path) -> None:
        lf = generate(populated)
        write_recipe(populated, "lib", "1.2.0")
        write_recipe(populated, "tool", "nightly-8")
        assert [m.name for m in verify(populated, lf, names=["app", "lib"])] == ["lib"]

    def test_unlocked_names_are_not_mismatches(self, populated: Path) -> None:
        lf = generate(populated)
        write_recipe(populated, "newcomer", "0.1.0")
        assert verify(populated, lf, names=["newcomer"]) == []


class TestCheckLocked:
    """Tests for the ``--locked`` gate."""

    def test_lists_every_mismatch(self, populated: Path) -> None:
        lf = generate(populated)
        write_recipe(populated, "app", "2.1.0", ["lib"])
        write_recipe(populated, "lib", "1.2.0")
        with pytest.raises(LockMismatchError) as info:
            check_locked(populated, lf, ["lib", "app"])
        assert [m.name for m in info.value.mismatches] == ["app", "lib"]
        assert "lib: locked 1.1.0, recipe has 1.2.0" in str(info.value)

    def test_passes_when_consistent(self, populated: Path) -> None:
        check_locked(populated, generate(populated), ["lib", "app"])
