"""Error types for lazy-versions.

Every error the release engine raises on purpose derives from
LazyVersionsError, so the CLI can turn them into a clean message and a
non-zero exit without catching unrelated bugs.
"""

from __future__ import annotations

from pathlib import Path


class LazyVersionsError(Exception):
    """Base class for all lazy-versions errors."""


class ConfigError(LazyVersionsError):
    """Invalid setup: missing change store, bad config file, bad severity."""


class ManifestError(LazyVersionsError):
    """A package manifest could not be read or understood."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class ChangeFileError(LazyVersionsError):
    """A change record has a missing or malformed front-matter header."""

    def __init__(self, path: Path | None, reason: str) -> None:
        self.path = path
        self.reason = reason
        where = str(path) if path is not None else "<change>"
        super().__init__(f"{where}: {reason}")


class CycleError(LazyVersionsError):
    """The workspace dependency graph contains a cycle.

    Attributes:
        involved: Names (or node indices, when names are unknown) of the
            packages that could not be ordered.
    """

    def __init__(self, involved: list[str]) -> None:
        self.involved = involved
        super().__init__(
            f"Dependency cycle detected involving: {', '.join(involved)}"
        )
