"""Property-based tests for version constraints against SemVer precedence.

Verifies over generated versions, pre-releases included, that:
- Ordered operators with a full target agree with ``Version`` ordering.
- ``>=`` and ``<`` with a partial target agree with the zero-padded
  target, so ``>= 2.0`` never admits ``2.0.0-rc.1``.
- Caret and tilde ranges stay inside their major (or major.minor) and
  never admit a pre-release of the first version past the range.
"""
from __future__ import annotations

import operator

from hypothesis import given
from hypothesis import strategies as st

from recipepm.core.dependency import Version, VersionConstraint

# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

components = st.integers(min_value=0, max_value=3)
prereleases = st.sampled_from(["", "0", "1", "alpha", "alpha.1", "beta.2", "rc.1"])


@st.composite
def versions(draw: st.DrawFn) -> str:
    text = f"{draw(components)}.{draw(components)}.{draw(components)}"
    pre = draw(prereleases)
    return f"{text}-{pre}" if pre else text


@st.composite
def partial_targets(draw: st.DrawFn) -> str:
    parts = draw(st.lists(components, min_size=1, max_size=2))
    return ".".join(str(p) for p in parts)


ORDERED = {
    ">=": operator.ge,
    ">": operator.gt,
    "<=": operator.le,
    "<": operator.lt,
}


class TestOrderedOperators:
    @given(version=versions(), target=versions(), op=st.sampled_from(sorted(ORDERED)))
    def test_full_target_agrees_with_precedence(self, version: str, target: str, op: str) -> None:
        expected = ORDERED[op](Version.parse(version), Version.parse(target))
        assert VersionConstraint(f"{op}{target}").satisfies(version) == expected

    @given(version=versions(), target=partial_targets(), op=st.sampled_from([">=", "<"]))
    def test_partial_bound_agrees_with_padded_target(self, version: str, target: str, op: str) -> None:
        expected = ORDERED[op](Version.parse(version), Version.parse(target))
        assert VersionConstraint(f"{op}{target}").satisfies(version) == expected


class TestRanges:
    @given(version=versions(), major=st.integers(min_value=1, max_value=3), minor=components)
    def test_caret_stays_within_major(self, version: str, major: int, minor: int) -> None:
        found = Version.parse(version)
        if VersionConstraint(f"^{major}.{minor}").satisfies(version):
            assert found.major == major
            assert found >= Version(major, minor)

    @given(version=versions(), major=components, minor=components)
    def test_tilde_stays_within_minor(self, version: str, major: int, minor: int) -> None:
        found = Version.parse(version)
        if VersionConstraint(f"~{major}.{minor}").satisfies(version):
            assert (found.major, found.minor) == (major, minor)

    @given(
        major=st.integers(min_value=1, max_value=3),
        minor=components,
        pre=prereleases.filter(bool),
    )
    def test_next_major_prerelease_excluded(self, major: int, minor: int, pre: str) -> None:
        assert not VersionConstraint(f"^{major}.{minor}").satisfies(f"{major + 1}.0.0-{pre}")
        assert not VersionConstraint(f"~{major}").satisfies(f"{major + 1}.0.0-{pre}")

    @given(major=components, minor=components, pre=prereleases.filter(bool))
    def test_next_minor_prerelease_excluded(self, major: int, minor: int, pre: str) -> None:
        assert not VersionConstraint(f"~{major}.{minor}").satisfies(f"{major}.{minor + 1}.0-{pre}")
        assert not VersionConstraint(f"<={major}.{minor}").satisfies(f"{major}.{minor + 1}.0-{pre}")
