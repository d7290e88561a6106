"""Workspace discovery: turn a directory tree into a dependency graph.

Discovery runs in three passes over a project root:
1. Walk the tree (honouring ignore rules) and create one graph node per
   manifest that parses
2. Expand each workspace's `workspaces` globs and link the matched child
   workspaces to their parent with MEMBER edges
3. Link every workspace to the sibling workspaces it declares as
   dependencies with DEPENDENCY edges

Every link is stored as an edge pair, one in each direction, so both
"what does X depend on" and "what depends on X" are a single edge-list walk.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

import pathspec

from .config import Config, load_config
from .deps import parse_dependency_version
from .errors import ManifestError
from .graph import Direction, EdgeKind, Graph
from .manifest import parse_manifest
from .models import DependencyVersion, Workspace

# Never descend into these, whatever the project's own ignore files say
DEFAULT_IGNORE_PATTERNS: tuple[str, ...] = (
    ".git/",
    ".hg/",
    ".svn/",
    "node_modules/",
    "bower_components/",
    ".yarn/",
    ".pnpm-store/",
    ".turbo/",
    ".next/",
    "coverage/",
)


@dataclass(frozen=True)
class IgnoreRules:
    spec: pathspec.PathSpec

    def is_ignored(self, rel_path: Path, is_dir: bool = False) -> bool:
        # PathSpec expects POSIX-style paths; directories need a trailing slash
        posix = rel_path.as_posix()
        if is_dir:
            posix += "/"
        return self.spec.match_file(posix)


def build_ignore_rules(
    root: Path, extra_patterns: list[str] | None = None
) -> IgnoreRules:
    """Build ignore rules from defaults + the root `.gitignore` + extra patterns."""
    patterns: list[str] = list(DEFAULT_IGNORE_PATTERNS)
    gitignore = root / ".gitignore"
    if gitignore.is_file():
        patterns.extend(
            gitignore.read_text(encoding="utf-8", errors="replace").splitlines()
        )
    if extra_patterns:
        patterns.extend(extra_patterns)
    return IgnoreRules(spec=pathspec.GitIgnoreSpec.from_lines(patterns))


def find_manifests(root: Path, manifest_name: str, rules: IgnoreRules) -> list[Path]:
    """Walk root and return every manifest file that is not ignored.

    Directories are visited in sorted, top-down order so the result (and
    therefore node numbering) is deterministic.
    """
    found: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        current = Path(dirpath)
        rel = current.relative_to(root)
        # Prune ignored directories in place so os.walk skips them
        dirnames[:] = sorted(
            d for d in dirnames if not rules.is_ignored(rel / d, is_dir=True)
        )
        if manifest_name in filenames and not rules.is_ignored(rel / manifest_name):
            found.append(current / manifest_name)
    return found


def expand_workspace_globs(directory: Path, patterns: list[str]) -> list[Path]:
    """Expand a workspace's `workspaces` globs into matching directories.

    Patterns are relative to directory. Leading "./" and trailing "/" are
    tolerated; negated ("!") and absolute patterns are not supported by npm
    workspaces and are skipped.
    """
    matches: list[Path] = []
    seen: set[Path] = set()
    for pattern in patterns:
        cleaned = pattern.strip().removeprefix("./").rstrip("/")
        if not cleaned or cleaned.startswith(("!", "/")):
            continue
        for match in sorted(directory.glob(cleaned)):
            if match.is_dir() and match not in seen:
                seen.add(match)
                matches.append(match)
    return matches


class Project:
    """A monorepo: its root directory and the graph of its workspaces.

    Build one with Project.discover(). The graph topology is fixed after
    discovery; only the stored version fields change, during version-write.

    Attributes:
        root: Absolute project root.
        config: Settings the project was discovered with.
        graph: One node per workspace; MEMBER and DEPENDENCY edge pairs.
        warnings: Manifests that were skipped and other non-fatal problems.
    """

    def __init__(
        self,
        root: Path,
        config: Config,
        graph: Graph[Workspace],
        warnings: list[str] | None = None,
    ) -> None:
        self.root = root
        self.config = config
        self.graph = graph
        self.warnings: list[str] = warnings or []
        self._by_name: dict[str, int] = {}
        for index, node in graph.get_nodes():
            name = node.data.name
            if name is None:
                continue
            if name in self._by_name:
                self.warnings.append(
                    f"Duplicate workspace name {name!r} in "
                    f"{node.data.directory}; using "
                    f"{graph.nodes[self._by_name[name]].data.directory}"
                )
                continue
            self._by_name[name] = index

    @classmethod
    def discover(cls, root: Path, config: Config | None = None) -> Project:
        """Scan root and build the workspace graph.

        Manifests that cannot be parsed are skipped and reported in
        Project.warnings instead of aborting discovery.

        Args:
            root: Project root directory.
            config: Settings to use; loaded from root when omitted.
        """
        root = root.resolve()
        config = config or load_config(root)
        rules = build_ignore_rules(root, config.ignore)
        graph: Graph[Workspace] = Graph()
        warnings: list[str] = []

        # First pass: one node per parseable manifest
        by_directory: dict[Path, int] = {}
        child_patterns: list[tuple[int, list[str]]] = []
        for manifest_path in find_manifests(root, config.manifest, rules):
            try:
                manifest = parse_manifest(manifest_path)
            except ManifestError as exc:
                warnings.append(f"Skipping {exc}")
                continue

            workspace = Workspace(
                directory=manifest_path.parent,
                name=manifest.name,
                version=manifest.version,
                dependencies=_parse_requirements(manifest.all_dependency_strings()),
            )
            index = graph.add_node(workspace)
            by_directory[workspace.directory] = index
            if manifest.workspaces:
                child_patterns.append((index, manifest.workspaces))

        project = cls(root, config, graph, warnings)

        # Second pass: link parents to the child workspaces their globs match
        for parent, patterns in child_patterns:
            directory = graph.nodes[parent].data.directory
            for match in expand_workspace_globs(directory, patterns):
                child = by_directory.get(match)
                if child is None or child == parent:
                    continue
                graph.add_edge(parent, child, Direction.INCOMING, EdgeKind.MEMBER)
                graph.add_edge(child, parent, Direction.OUTGOING, EdgeKind.MEMBER)

        # Third pass: link consumers to the sibling workspaces they depend on
        for consumer, node in graph.get_nodes():
            linked: set[int] = set()
            for dep_name, _ in node.data.dependencies:
                dependency = project.find(dep_name)
                if dependency is None or dependency == consumer:
                    continue
                if dependency in linked:
                    continue
                linked.add(dependency)
                graph.add_edge(consumer, dependency, Direction.OUTGOING)
                graph.add_edge(dependency, consumer, Direction.INCOMING)

        return project

    def workspaces(self) -> Iterator[tuple[int, Workspace]]:
        """Iterate over (index, workspace) pairs in discovery order."""
        for index, node in self.graph.get_nodes():
            yield index, node.data

    def workspace(self, index: int) -> Workspace | None:
        node = self.graph.get_node(index)
        return node.data if node is not None else None

    def find(self, name: str) -> int | None:
        """Return the index of the workspace declaring this name, if any."""
        return self._by_name.get(name)

    def names(self) -> list[str]:
        return sorted(self._by_name)

    def dependents(self, index: int) -> Iterator[int]:
        """Workspaces that declare a dependency on this one."""
        return self.graph.edges(index, Direction.INCOMING, EdgeKind.DEPENDENCY)

    def dependencies(self, index: int) -> Iterator[int]:
        """Sibling workspaces this one declares as dependencies."""
        return self.graph.edges(index, Direction.OUTGOING, EdgeKind.DEPENDENCY)

    def members(self, index: int) -> Iterator[int]:
        """Child workspaces matched by this workspace's `workspaces` globs."""
        return self.graph.edges(index, Direction.INCOMING, EdgeKind.MEMBER)

    def parents(self, index: int) -> Iterator[int]:
        """Workspaces whose `workspaces` globs match this one."""
        return self.graph.edges(index, Direction.OUTGOING, EdgeKind.MEMBER)


def _parse_requirements(
    requirements: list[tuple[str, str]],
) -> list[tuple[str, DependencyVersion]]:
    # Non-semver specifiers (file:, git URLs, tags) cannot name a workspace
    # version, so they are dropped rather than treated as errors
    parsed: list[tuple[str, DependencyVersion]] = []
    for name, constraint in requirements:
        try:
            parsed.append((name, parse_dependency_version(constraint)))
        except ValueError:
            continue
    return parsed
