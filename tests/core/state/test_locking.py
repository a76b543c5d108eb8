"""Tests for advisory locks and atomic file replacement."""

from __future__ import annotations

from pathlib import Path

import pytest

from recipepm.core.state import advisory_lock, atomic_write_text
from recipepm.core.state.locking import lock_path_for
from recipepm.exceptions import LockError


class TestAdvisoryLock:
    """Tests for the flock-based sidecar lock."""

    def test_creates_sidecar(self, tmp_path: Path) -> None:
        target = tmp_path / "demo.rhai"
        with advisory_lock(target, timeout=1) as lock_path:
            assert lock_path == lock_path_for(target)
            assert lock_path.name == "demo.rhai.lock"
            assert lock_path.exists()

    def test_contention_times_out(self, tmp_path: Path) -> None:
        target = tmp_path / "demo.rhai"
        with advisory_lock(target, timeout=1):
            with pytest.raises(LockError, match="Timed out"):
                with advisory_lock(target, timeout=0.1):
                    pass

    def test_released_after_block(self, tmp_path: Path) -> None:
        target = tmp_path / "demo.rhai"
        with advisory_lock(target, timeout=1):
            pass
        with advisory_lock(target, timeout=0):
            pass

    def test_released_when_block_raises(self, tmp_path: Path) -> None:
        target = tmp_path / "demo.rhai"
        with pytest.raises(ValueError):
            with advisory_lock(target, timeout=1):
                raise ValueError("inside")
        with advisory_lock(target, timeout=0):
            pass


class TestAtomicWriteText:
    """Tests for ``atomic_write_text``."""

    def test_writes_new_file(self, tmp_path: Path) -> None:
        target = tmp_path / "sub" / "file.txt"
        atomic_write_text(target, "hello\n")
        assert target.read_text() == "hello\n"

    def test_replaces_without_leftovers(self, tmp_path: Path) -> None:
        target = tmp_path / "file.txt"
        target.write_text("old")
        atomic_write_text(target, "new")
        assert target.read_text() == "new"
        assert [p.name for p in tmp_path.iterdir()] == ["file.txt"]

    def test_keeps_newlines_verbatim(self, tmp_path: Path) -> None:
        target = tmp_path / "file.txt"
        atomic_write_text(target, "a\r\nb\n")
        assert target.read_bytes() == b"a\r\nb\n"
