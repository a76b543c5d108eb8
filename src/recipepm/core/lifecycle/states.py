"""Lifecycle states and install-check results."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Phase(str, Enum):
    """States of the install state machine."""

    PENDING = "pending"
    CHECKING_INSTALLED = "checking_installed"
    ACQUIRING = "acquiring"
    BUILDING = "building"
    PRE_INSTALL = "pre_install"
    INSTALLING = "installing"
    POST_INSTALL = "post_install"
    COMMITTING = "committing"
    DONE = "done"
    FAILED = "failed"


class RemovalPhase(str, Enum):
    """States of the removal sub-machine."""

    CHECK_REVERSE_DEPS = "check_reverse_deps"
    PRE_REMOVE = "pre_remove"
    DELETING_FILES = "deleting_files"
    POST_REMOVE = "post_remove"
    CUSTOM_REMOVE = "custom_remove"
    COMMITTED = "committed"
    FAILED = "failed"


class CheckStatus(str, Enum):
    SATISFIED = "satisfied"
    NOT_SATISFIED = "not_satisfied"
    CHECK_FAILED = "check_failed"


@dataclass(frozen=True)
class CheckResult:
    """Outcome of an ``is_installed`` / ``is_acquired`` / ``is_built`` check.

    A check that raises is ``CHECK_FAILED``, which is fatal and distinct
    from ``NOT_SATISFIED``.
    """

    status: CheckStatus
    reason: str = ""

    @property
    def satisfied(self) -> bool:
        return self.status is CheckStatus.SATISFIED


SATISFIED = CheckResult(CheckStatus.SATISFIED)
NOT_SATISFIED = CheckResult(CheckStatus.NOT_SATISFIED)
