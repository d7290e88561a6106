"""Dependency constraint handling.

Parses npm-style dependency constraints (including the "workspace:"
protocol) and rewrites manifests so internal dependencies follow the
versions produced by a release.
"""

from __future__ import annotations

import re
from pathlib import Path

from semantic_version import NpmSpec
from semantic_version import Version as NpmVersion

from .manifest import load_manifest, save_manifest
from .models import DependencyVersion
from .versions import parse_version

WORKSPACE_PROTOCOL = "workspace:"

# Manifest tables that can reference other workspaces
DEPENDENCY_TABLES = ("dependencies", "devDependencies", "peerDependencies")

# pnpm shorthands: workspace:* / workspace:^ / workspace:~
_WORKSPACE_SHORTHANDS = {"*", "^", "~"}

# Ranges we know how to re-pin: an optional single operator and a version
_SIMPLE_RANGE = re.compile(r"^(?P<op>\^|~|>=|=)?(?P<version>\d+(?:\.\d+){0,2})$")


def parse_dependency_version(constraint: str) -> DependencyVersion:
    """Parse a dependency constraint string.

    Examples:
        "^1.2.0" → range "^1.2.0"
        "workspace:^1.2.0" → workspace range "^1.2.0"
        "workspace:*" → workspace range "*" (any version)

    Raises:
        ValueError: If the range is not a valid npm semver range. Non-semver
            specifiers like "file:../x", "latest" or git URLs end up here.
    """
    raw = constraint.strip()
    workspace = raw.startswith(WORKSPACE_PROTOCOL)
    version_range = raw[len(WORKSPACE_PROTOCOL) :].strip() if workspace else raw

    if not version_range:
        version_range = "*"

    if not (workspace and version_range in _WORKSPACE_SHORTHANDS):
        # NpmSpec raises ValueError on anything it cannot parse
        NpmSpec(version_range)

    return DependencyVersion(raw=constraint, range=version_range, workspace=workspace)


def dependency_allows(dep: DependencyVersion, version: str) -> bool:
    """Check whether a concrete version satisfies a dependency constraint."""
    if dep.workspace and dep.range in _WORKSPACE_SHORTHANDS:
        return True
    return NpmSpec(dep.range).match(NpmVersion(str(parse_version(version))))


def update_range(constraint: str, new_version: str) -> str:
    """Re-pin a simple range to a new version, keeping its operator.

    "workspace:" constraints and compound ranges are returned unchanged.

    Examples:
        update_range("^1.2.0", "1.3.0") → "^1.3.0"
        update_range("1.2.0", "2.0.0") → "2.0.0"
        update_range(">=1 <2", "2.0.0") → ">=1 <2"
    """
    if constraint.startswith(WORKSPACE_PROTOCOL):
        return constraint
    match = _SIMPLE_RANGE.match(constraint.strip())
    if not match:
        return constraint
    return f"{match.group('op') or ''}{new_version}"


def rewrite_manifest(
    manifest_path: Path,
    new_version: str,
    internal_dep_versions: dict[str, str],
) -> list[str]:
    """Update a package's version and re-pin its internal dependencies.

    This function:
    1. Updates the top-level "version" to new_version
    2. Re-pins every internal dependency with a simple range to the
       dependency's new version, in all dependency tables

    Args:
        manifest_path: Path to the package.json file.
        new_version: New version string to set.
        internal_dep_versions: Map of package name → new version for the
            internal deps that were bumped in this run.

    Returns:
        Warnings for internal ranges that were left untouched but no longer
        accept the dependency's new version.
    """
    data = load_manifest(manifest_path)
    data["version"] = new_version
    warnings: list[str] = []

    for table in DEPENDENCY_TABLES:
        deps = data.get(table)
        if not isinstance(deps, dict):
            continue
        for name, constraint in deps.items():
            if name not in internal_dep_versions or not isinstance(constraint, str):
                continue
            dep_version = internal_dep_versions[name]
            updated = update_range(constraint, dep_version)
            deps[name] = updated
            if updated == constraint and not _still_allows(constraint, dep_version):
                warnings.append(
                    f"{manifest_path}: {table}.{name} {constraint!r} "
                    f"does not accept {dep_version}"
                )

    save_manifest(manifest_path, data)
    return warnings


def _still_allows(constraint: str, version: str) -> bool:
    try:
        return dependency_allows(parse_dependency_version(constraint), version)
    except ValueError:
        return True
