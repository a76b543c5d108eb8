"""Tests for PhaseRunner: ctx threading and three-valued checks."""

from __future__ import annotations

from pathlib import Path

import pytest

from recipepm.core.lifecycle import CheckStatus, ExecutionContext, current_context
from recipepm.core.lifecycle.runner import PhaseRunner
from recipepm.exceptions import InternalError, IntegrityError, PhaseError
from recipepm.script.base import FunctionTableHandle


def _runner(tmp_path: Path, **functions) -> PhaseRunner:
    ctx = ExecutionContext(
        name="demo",
        version="1.0.0",
        recipe_path=tmp_path / "demo.rhai",
        recipes_path=tmp_path,
        prefix=tmp_path / "prefix",
        build_dir=tmp_path / "build",
    )
    return PhaseRunner(FunctionTableHandle(tmp_path / "demo.rhai", functions), ctx)


class TestRun:
    """Tests for ``PhaseRunner.run``."""

    def test_returned_mapping_replaces_state(self, tmp_path: Path) -> None:
        def first(ctx: dict) -> dict:
            return {**ctx, "EXTRA": 1}

        def second(ctx: dict) -> None:
            ctx["EXTRA"] += 1

        runner = _runner(tmp_path, first=first, second=second)
        runner.run("first")
        runner.run("second")
        assert runner.state["EXTRA"] == 2
        assert runner.state["NAME"] == "demo"

    def test_constants_are_refreshed(self, tmp_path: Path) -> None:
        seen: list[str] = []

        def clobber(ctx: dict) -> dict:
            ctx["PREFIX"] = "/elsewhere"
            return ctx

        runner = _runner(
            tmp_path, clobber=clobber, peek=lambda ctx: seen.append(ctx["PREFIX"])
        )
        runner.run("clobber")
        runner.ctx.staging_root = tmp_path / "staging"
        runner.run("peek")
        assert seen == [str(tmp_path / "staging")]

    def test_context_active_only_during_call(self, tmp_path: Path) -> None:
        names: list[str] = []
        runner = _runner(tmp_path, phase=lambda: names.append(current_context().name))
        runner.run("phase")
        assert names == ["demo"]
        with pytest.raises(InternalError):
            current_context()

    def test_script_error_becomes_phase_error(self, tmp_path: Path) -> None:
        def acquire(ctx: dict) -> None:
            raise KeyError("url")

        runner = _runner(tmp_path, acquire=acquire)
        with pytest.raises(PhaseError) as info:
            runner.run("acquire")
        assert info.value.phase == "acquire"
        assert "KeyError" in str(info.value)

    def test_rejects_non_mapping_result(self, tmp_path: Path) -> None:
        runner = _runner(tmp_path, build=lambda ctx: [1, 2])
        with pytest.raises(PhaseError, match="got list"):
            runner.run("build")


class TestCheck:
    """Tests for the three-valued ``check``."""

    def test_undefined_is_not_satisfied(self, tmp_path: Path) -> None:
        result = _runner(tmp_path).check("is_built")
        assert result.status is CheckStatus.NOT_SATISFIED

    @pytest.mark.parametrize(
        "value, status",
        [
            (True, CheckStatus.SATISFIED),
            ("yes", CheckStatus.SATISFIED),
            (False, CheckStatus.NOT_SATISFIED),
            (None, CheckStatus.NOT_SATISFIED),
        ],
    )
    def test_truthiness(self, tmp_path: Path, value: object, status: CheckStatus) -> None:
        runner = _runner(tmp_path, is_built=lambda ctx: value)
        assert runner.check("is_built").status is status

    def test_raising_check_fails(self, tmp_path: Path) -> None:
        def is_acquired(ctx: dict) -> bool:
            raise OSError("stat failed")

        runner = _runner(tmp_path, is_acquired=is_acquired)
        result = runner.check("is_acquired")
        assert result.status is CheckStatus.CHECK_FAILED
        assert "stat failed" in result.reason
        with pytest.raises(PhaseError):
            runner.require_check("is_acquired")

    def test_typed_error_in_check_fails(self, tmp_path: Path) -> None:
        def is_acquired(ctx: dict) -> bool:
            raise IntegrityError("hash mismatch")

        result = _runner(tmp_path, is_acquired=is_acquired).check("is_acquired")
        assert result.status is CheckStatus.CHECK_FAILED
        assert result.reason == "hash mismatch"
