"""Version pipeline: discover → read changes → propagate → write → clear.

This module orchestrates a lazy-versions run:
1. Discover all workspaces and their dependency graph
2. Read the pending change records from the change store
3. Propagate the requested bumps to every dependent workspace
4. Rewrite each bumped manifest (version + internal dependency ranges)
5. Prepend release notes to each bumped workspace's CHANGELOG.md
6. Delete the consumed change records
7. Optionally commit the result

Problems that only affect one file (an unparseable manifest or change
record, a change naming an unknown package) are collected and printed at
the end instead of aborting the run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from .changelog import CHANGELOG_FILENAME, prepend_section, render_section
from .changes import clear_changes, read_changes
from .deps import rewrite_manifest
from .errors import LazyVersionsError
from .graph import topo_sort
from .models import BumpPlan, ChangeEntry, VersionBump
from .project import Project
from .propagate import propagate
from .shell import git, step, warn
from .versions import bump_version


@dataclass
class Release:
    """Everything a run has worked out before it writes anything.

    Attributes:
        project: The discovered workspace graph.
        entries: Change records being consumed, oldest first.
        plan: Severity per affected workspace.
        bumped: Old and new version per workspace that will be written,
                in dependency order.
        warnings: Every non-fatal problem found so far.
    """

    project: Project
    entries: list[ChangeEntry]
    plan: BumpPlan
    bumped: dict[str, VersionBump] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)


def discover_project(root: Path) -> Project:
    """Discover workspaces and print a summary of the graph."""
    step("Discovering workspaces")

    project = Project.discover(root)
    for index, workspace in project.workspaces():
        label = workspace.name or "<unnamed>"
        version = workspace.version or "<no version>"
        deps = [
            project.graph.nodes[dep].data.name or "?"
            for dep in project.dependencies(index)
        ]
        suffix = f" → [{', '.join(sorted(deps))}]" if deps else ""
        rel = workspace.directory.relative_to(project.root)
        print(f"  {label} {version} ({rel}){suffix}")

    return project


def plan_release(root: Path) -> Release:
    """Work out the new version of every workspace without writing anything.

    Raises:
        ConfigError: If the change store is missing.
        CycleError: If the workspace dependencies contain a cycle.
    """
    project = discover_project(root)

    step("Reading change records")
    store = project.root / project.config.changes_dir
    entries, ledger_warnings = read_changes(store)
    print(f"  {len(entries)} change record(s)")

    step("Computing version bumps")
    plan = propagate(project, entries)
    release = Release(
        project=project,
        entries=entries,
        plan=plan,
        warnings=[*project.warnings, *ledger_warnings, *plan.warnings],
    )

    # Dependencies first, so notes and pins line up with the release order
    for index in topo_sort(project.graph):
        workspace = project.graph.nodes[index].data
        name = workspace.name
        if name not in plan.bumps or project.find(name) != index:
            continue
        if workspace.version is None:
            release.warnings.append(f"{name} has no version field; not bumped")
            continue
        severity = plan.bumps[name]
        release.bumped[name] = VersionBump(
            old=workspace.version,
            new=bump_version(workspace.version, severity),
            bump=severity,
        )
        via = plan.reasons.get(name)
        reason = f" (via {', '.join(via)})" if via else ""
        print(f"  {name}: {severity}{reason}")

    if not release.bumped:
        print("  Nothing to release")

    return release


def write_versions(release: Release) -> list[Path]:
    """Write new versions, re-pin internal deps and update changelogs.

    Also updates the version stored on each bumped Workspace, so the
    project reflects what is on disk afterwards.

    Returns:
        Paths of every file written.
    """
    step("Writing new versions")

    project = release.project
    new_versions = {name: bump.new for name, bump in release.bumped.items()}
    written: list[Path] = []

    for name, bump in release.bumped.items():
        index = project.find(name)
        workspace = project.graph.nodes[index].data
        # Versions of the bumped workspaces this one depends on
        internal: dict[str, str] = {}
        for dep in project.dependencies(index):
            dep_name = project.graph.nodes[dep].data.name
            if dep_name in new_versions:
                internal[dep_name] = new_versions[dep_name]

        manifest_path = workspace.directory / project.config.manifest
        release.warnings.extend(rewrite_manifest(manifest_path, bump.new, internal))
        workspace.version = bump.new
        written.append(manifest_path)

        if project.config.changelog:
            changelog_path = workspace.directory / CHANGELOG_FILENAME
            section = render_section(
                name, bump, release.entries, dict(sorted(internal.items()))
            )
            prepend_section(changelog_path, name, section)
            written.append(changelog_path)

        print(f"  {name}: {bump.old} → {bump.new}")

    return written


def commit_versions(release: Release, written: list[Path]) -> None:
    """Stage the rewritten files and the change store, then commit."""
    step("Committing")

    project = release.project
    root = project.root
    for path in written:
        git("add", "--", str(path.relative_to(root)), cwd=root)
    # Picks up the deleted change records
    git("add", "--all", "--", project.config.changes_dir, cwd=root)

    staged = git("diff", "--cached", "--name-only", cwd=root, check=False)
    if not staged:
        raise LazyVersionsError("No changes to commit")

    summary = "\n".join(
        f"  {name}: {bump.old} → {bump.new}" for name, bump in release.bumped.items()
    )
    git("commit", "-m", "chore: version packages", "-m", summary, cwd=root)
    print("  Committed")


def run_version(
    root: Path, *, commit: bool = False, dry_run: bool = False
) -> dict[str, VersionBump]:
    """Execute the full version pipeline.

    Args:
        root: Project root directory.
        commit: If True, commit the rewritten files and deleted records.
        dry_run: If True, only print the plan; nothing is written or deleted.

    Returns:
        Map of workspace name → VersionBump for every workspace released.
    """
    release = plan_release(root)

    if release.bumped and not dry_run:
        written = write_versions(release)

        step("Clearing change records")
        removed = clear_changes(release.entries)
        print(f"  Removed {len(removed)} change record(s)")

        if commit:
            commit_versions(release, written)

    for message in release.warnings:
        warn(message)

    return release.bumped


def tag_versions(root: Path) -> list[str]:
    """Create a git tag for the current version of every workspace.

    Tags use the configured tag_format ({name}/v{version} by default).
    Workspaces without a name or version, and tags that already exist,
    are skipped.

    Returns:
        The tags that were created.
    """
    project = discover_project(root)

    step("Creating package tags")

    created: list[str] = []
    for index in topo_sort(project.graph):
        workspace = project.graph.nodes[index].data
        if not workspace.name or not workspace.version:
            continue
        tag = project.config.tag_format.format(
            name=workspace.name, version=workspace.version
        )
        if git("tag", "--list", tag, cwd=project.root, check=False):
            print(f"  {tag} (exists)")
            continue
        git("tag", tag, cwd=project.root)
        created.append(tag)
        print(f"  {tag}")

    for message in project.warnings:
        warn(message)

    return created
