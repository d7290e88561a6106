"""The change ledger: pending change records stored as markdown files.

Each record describes one change and the packages it affects:

    ---
    "pkg-a": minor
    "pkg-b": patch
    ---

    Add a frobnicate() helper.

Records live in the change store (`.changes/` by default), are read once per
`version` run and deleted after the new versions have been written.
"""

from __future__ import annotations

import re
import secrets
from collections.abc import Hashable
from pathlib import Path

import yaml

from .errors import ChangeFileError, ConfigError, LazyVersionsError
from .models import Bump, ChangeEntry

# Files in the store that are not change records
RESERVED_FILES = {"README.md"}

_FRONTMATTER = re.compile(
    r"\A---[ \t]*\r?\n(.*?)^---[ \t]*\r?$\n?", re.DOTALL | re.MULTILINE
)


class _HeaderLoader(yaml.SafeLoader):
    """SafeLoader that rejects a package named twice in one header."""

    def construct_mapping(self, node, deep=False):
        seen = set()
        for key_node, _ in node.value:
            key = self.construct_object(key_node, deep=deep)
            if not isinstance(key, Hashable):
                continue
            if key in seen:
                raise yaml.constructor.ConstructorError(
                    None,
                    None,
                    f"duplicate package name {key!r}",
                    key_node.start_mark,
                )
            seen.add(key)
        return super().construct_mapping(node, deep=deep)


def parse_change(text: str, path: Path | None = None) -> ChangeEntry:
    """Parse the text of a change record.

    Args:
        text: Full file contents.
        path: Where the text came from; kept on the entry and used in errors.

    Raises:
        ChangeFileError: If the front-matter header is missing, is not a
            mapping of package name to severity, names no packages, or names
            a package twice.
    """
    match = _FRONTMATTER.match(text)
    if not match:
        raise ChangeFileError(path, "missing front-matter header")

    try:
        header = yaml.load(match.group(1), Loader=_HeaderLoader)
    except yaml.YAMLError as exc:
        raise ChangeFileError(path, f"invalid header ({exc})") from exc

    if not header:
        raise ChangeFileError(path, "header names no packages")
    if not isinstance(header, dict):
        raise ChangeFileError(path, "header must map package names to severities")

    bumps: dict[str, Bump] = {}
    for name, severity in header.items():
        try:
            bumps[str(name)] = Bump.parse(str(severity))
        except ConfigError as exc:
            raise ChangeFileError(path, f"{name}: {exc}") from exc

    summary = text[match.end() :].strip()
    return ChangeEntry(bumps=bumps, summary=summary, path=path)


def format_change(bumps: dict[str, Bump], summary: str) -> str:
    """Render a change record in the on-disk format."""
    # Names are double-quoted so scoped names like @org/pkg stay valid YAML
    lines = ["---"]
    lines.extend(f'"{name}": {bump}' for name, bump in bumps.items())
    lines.append("---")
    lines.append("")
    lines.append(summary.strip())
    return "\n".join(lines) + "\n"


def read_changes(store: Path) -> tuple[list[ChangeEntry], list[str]]:
    """Read every change record in the store.

    Records that cannot be parsed are skipped, not fatal; a warning is
    returned for each one.

    Args:
        store: The change store directory.

    Returns:
        Tuple of (entries sorted oldest first, warnings).

    Raises:
        ConfigError: If the store does not exist.
    """
    if not store.is_dir():
        raise ConfigError(
            f"No change store at {store}. Run `lazy-versions init` first."
        )

    entries: list[ChangeEntry] = []
    warnings: list[str] = []
    for path in sorted(store.glob("*.md")):
        if path.name in RESERVED_FILES:
            continue
        try:
            entry = parse_change(_read_text(path), path)
        except ChangeFileError as exc:
            warnings.append(f"Skipping {exc}")
            continue
        entry.created = _created_at(path)
        entries.append(entry)

    # Oldest first; file name breaks ties between records written together
    entries.sort(key=lambda e: (e.created, e.path.name if e.path else ""))
    return entries, warnings


def write_change(store: Path, bumps: dict[str, Bump], summary: str) -> Path:
    """Write a new change record to the store and return its path.

    Raises:
        ConfigError: If the store does not exist.
        LazyVersionsError: If no packages are given.
    """
    if not store.is_dir():
        raise ConfigError(
            f"No change store at {store}. Run `lazy-versions init` first."
        )
    if not bumps:
        raise LazyVersionsError("A change must name at least one package")

    # Short random names keep concurrent branches from colliding
    path = store / f"{secrets.token_hex(4)}.md"
    while path.exists():
        path = store / f"{secrets.token_hex(4)}.md"
    path.write_text(format_change(bumps, summary), encoding="utf-8")
    return path


def clear_changes(entries: list[ChangeEntry]) -> list[Path]:
    """Delete the files of consumed change records and return their paths."""
    removed: list[Path] = []
    for entry in entries:
        if entry.path is not None and entry.path.exists():
            entry.path.unlink()
            removed.append(entry.path)
    return removed


def _created_at(path: Path) -> float:
    stat = path.stat()
    # st_birthtime only exists on macOS/BSD (and Windows on 3.12+)
    return getattr(stat, "st_birthtime", stat.st_mtime)


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ChangeFileError(path, "not valid UTF-8") from exc
