"""Tests for the install helpers."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from recipepm.core.lifecycle import ExecutionContext
from recipepm.exceptions import RecipeError
from recipepm.helpers import install_bin, install_file, install_tree


@pytest.fixture
def built(ctx: ExecutionContext) -> Path:
    out = ctx.build_dir / "out"
    (out / "share" / "man").mkdir(parents=True)
    (out / "tool").write_text("#!/bin/sh\n")
    (out / "share" / "man" / "tool.1").write_text(".TH TOOL 1\n")
    os.symlink("tool.1", out / "share" / "man" / "alias.1")
    return out


class TestInstallHelpers:
    """Install helpers write under the staging root and record their output."""

    def test_install_file(self, ctx: ExecutionContext, built: Path) -> None:
        target = install_file("out/share/man/tool.1", "share/man/man1/tool.1")
        assert target == ctx.staging_root / "share/man/man1/tool.1"
        assert target.stat().st_mode & 0o777 == 0o644
        assert ctx.produced_files == [target]
        assert not ctx.prefix.exists()

    def test_install_bin(self, ctx: ExecutionContext, built: Path) -> None:
        target = install_bin("out/tool")
        assert target == ctx.staging_root / "bin" / "tool"
        assert target.stat().st_mode & 0o777 == 0o755
        assert install_bin("out/tool", "tool2").name == "tool2"

    def test_absolute_destination_is_prefix_relative(
        self, ctx: ExecutionContext, built: Path
    ) -> None:
        target = install_file("out/tool", "/etc/tool.conf")
        assert target == ctx.staging_root / "etc" / "tool.conf"

    def test_rejects_parent_escape(self, ctx: ExecutionContext, built: Path) -> None:
        with pytest.raises(ValueError, match="escapes"):
            install_file("out/tool", "../outside")

    def test_install_tree(self, ctx: ExecutionContext, built: Path) -> None:
        produced = install_tree("out/share", "share")
        root = ctx.staging_root / "share"
        assert sorted(produced) == sorted(
            [root / "man" / "alias.1", root / "man" / "tool.1"]
        )
        assert (root / "man" / "alias.1").is_symlink()
        assert sorted(ctx.produced_files) == sorted(produced)

    def test_refused_outside_staging(self, ctx: ExecutionContext, built: Path) -> None:
        """Before staging exists there is nowhere safe to write."""
        ctx.staging_root = None
        with pytest.raises(RecipeError, match="install helpers"):
            install_bin("out/tool")
        with pytest.raises(RecipeError):
            install_tree("out/share")
        assert not ctx.prefix.exists()
        assert ctx.produced_files == []
