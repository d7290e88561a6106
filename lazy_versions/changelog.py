"""CHANGELOG.md generation for released workspaces."""

from __future__ import annotations

from pathlib import Path

from .models import Bump, ChangeEntry, VersionBump

CHANGELOG_FILENAME = "CHANGELOG.md"

_HEADINGS = {
    Bump.MAJOR: "Major Changes",
    Bump.MINOR: "Minor Changes",
    Bump.PATCH: "Patch Changes",
}


def render_section(
    name: str,
    bump: VersionBump,
    entries: list[ChangeEntry],
    updated_deps: dict[str, str],
) -> str:
    """Render the release notes for one workspace's new version.

    Args:
        name: Workspace name.
        bump: The version change being released.
        entries: All consumed change records, oldest first.
        updated_deps: Bumped dependency name → new version, for the
            "Updated dependencies" note.
    """
    groups: dict[Bump, list[str]] = {severity: [] for severity in _HEADINGS}
    for entry in entries:
        severity = entry.bumps.get(name)
        if severity is not None and entry.summary:
            groups[severity].append(_bullet(entry.summary))

    if updated_deps:
        lines = ["- Updated dependencies"]
        lines.extend(f"  - {dep}@{version}" for dep, version in updated_deps.items())
        groups[bump.bump].append("\n".join(lines))

    parts = [f"## {bump.new}"]
    for severity in sorted(groups, reverse=True):
        if groups[severity]:
            parts.append(f"### {_HEADINGS[severity]}")
            parts.append("\n".join(groups[severity]))
    return "\n\n".join(parts) + "\n"


def prepend_section(path: Path, name: str, section: str) -> None:
    """Insert a release section at the top of a changelog, below its title.

    Creates the file, titled after the workspace, if it does not exist.
    """
    title = f"# {name}"
    existing = path.read_text(encoding="utf-8") if path.exists() else ""
    body = existing
    first_line, _, remainder = existing.partition("\n")
    if first_line.strip() == title:
        body = remainder.lstrip("\n")
    content = f"{title}\n\n{section}"
    if body:
        content += f"\n{body}"
    path.write_text(content, encoding="utf-8")


def _bullet(summary: str) -> str:
    first, *rest = summary.strip().splitlines()
    lines = [f"- {first}"]
    # Continuation lines are indented so they stay inside the list item
    lines.extend(f"  {line}" if line else "" for line in rest)
    return "\n".join(lines)
