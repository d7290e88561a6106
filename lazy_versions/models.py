"""Data models for lazy-versions.

These Pydantic models represent the core data structures passed between the
discovery, change ledger, propagation and version-writing phases.
"""

from __future__ import annotations

from enum import IntEnum
from pathlib import Path

from pydantic import BaseModel, Field

from .errors import ConfigError


class Bump(IntEnum):
    """Severity of a version change.

    Severities are totally ordered (MAJOR > MINOR > PATCH), so combining two
    requested bumps is just max().
    """

    PATCH = 1
    MINOR = 2
    MAJOR = 3

    @classmethod
    def parse(cls, token: str) -> Bump:
        """Parse a severity token such as "minor" (case-insensitive).

        Raises:
            ConfigError: If the token is not major, minor or patch.
        """
        try:
            return cls[str(token).strip().upper()]
        except KeyError:
            raise ConfigError(
                f"Invalid bump severity {token!r}; expected major, minor or patch"
            ) from None

    def __str__(self) -> str:
        return self.name.lower()


class DependencyVersion(BaseModel):
    """A parsed dependency constraint from a manifest.

    Attributes:
        raw: The constraint exactly as written (e.g., "^1.2.0", "workspace:*").
        range: The npm range with any "workspace:" prefix removed. The pnpm
               shorthands "*", "^" and "~" are kept as written.
        workspace: True when the constraint uses the "workspace:" protocol,
                   meaning "resolve to the sibling's real version".
    """

    raw: str
    range: str
    workspace: bool = False


class Workspace(BaseModel):
    """One versionable package in the monorepo.

    Attributes:
        directory: Directory containing the package manifest.
        name: Declared package name, if any.
        version: Declared version string, if any.
        dependencies: (name, constraint) pairs merged from dependencies,
                      devDependencies and peerDependencies, in that order.
                      A name listed in several categories appears once per
                      category.
    """

    directory: Path
    name: str | None = None
    version: str | None = None
    dependencies: list[tuple[str, DependencyVersion]] = Field(default_factory=list)

    def dependency_version(self, name: str) -> DependencyVersion | None:
        """Return the first constraint declared for name, if any."""
        for dep_name, version in self.dependencies:
            if dep_name == name:
                return version
        return None


class ChangeEntry(BaseModel):
    """A pending change read from (or about to be written to) the change store.

    Attributes:
        bumps: Requested severity per package name.
        summary: Free-form description of the change.
        path: File the change was read from; used to delete it once applied.
        created: Creation timestamp used to order records chronologically.
    """

    bumps: dict[str, Bump]
    summary: str = ""
    path: Path | None = None
    created: float = 0.0


class VersionBump(BaseModel):
    """Records a version change for a package.

    Attributes:
        old: The version before bumping.
        new: The version after bumping.
        bump: The severity that was applied.
    """

    old: str
    new: str
    bump: Bump


class BumpPlan(BaseModel):
    """Result of propagating change records through the dependency graph.

    Attributes:
        bumps: Highest severity each affected workspace must receive.
        reasons: For workspaces bumped through a dependency, the names of the
                 bumped dependencies that caused it.
        warnings: Non-fatal problems found while planning.
    """

    bumps: dict[str, Bump] = Field(default_factory=dict)
    reasons: dict[str, list[str]] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
