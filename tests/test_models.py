"""Tests for lazy_versions.models."""

from __future__ import annotations

from pathlib import Path

import pytest

from lazy_versions.errors import ConfigError
from lazy_versions.models import Bump, DependencyVersion, Workspace


class TestBump:
    def test_total_order(self) -> None:
        assert Bump.MAJOR > Bump.MINOR > Bump.PATCH
        assert sorted([Bump.MINOR, Bump.MAJOR, Bump.PATCH]) == [
            Bump.PATCH,
            Bump.MINOR,
            Bump.MAJOR,
        ]

    @pytest.mark.parametrize("a", list(Bump))
    @pytest.mark.parametrize("b", list(Bump))
    def test_max_is_commutative(self, a: Bump, b: Bump) -> None:
        assert max(a, b) == max(b, a)

    @pytest.mark.parametrize("a", list(Bump))
    def test_max_is_idempotent(self, a: Bump) -> None:
        assert max(a, a) == a

    def test_parse_is_case_insensitive(self) -> None:
        assert Bump.parse("Major") is Bump.MAJOR
        assert Bump.parse(" minor ") is Bump.MINOR
        assert Bump.parse("PATCH") is Bump.PATCH

    def test_parse_invalid_raises(self) -> None:
        with pytest.raises(ConfigError, match="Invalid bump severity"):
            Bump.parse("huge")

    def test_str_is_lowercase_name(self) -> None:
        assert str(Bump.MINOR) == "minor"


class TestWorkspace:
    def test_defaults(self) -> None:
        ws = Workspace(directory=Path("/repo/pkg"))
        assert ws.name is None
        assert ws.version is None
        assert ws.dependencies == []

    def test_dependency_version_returns_first_match(self) -> None:
        first = DependencyVersion(raw="^1.0.0", range="^1.0.0")
        second = DependencyVersion(raw="workspace:*", range="*", workspace=True)
        ws = Workspace(
            directory=Path("/repo/pkg"),
            dependencies=[("a", first), ("b", second), ("a", second)],
        )
        assert ws.dependency_version("a") == first
        assert ws.dependency_version("b") == second
        assert ws.dependency_version("missing") is None
