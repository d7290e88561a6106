"""Tests for lazy_versions.project."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from lazy_versions.config import Config
from lazy_versions.project import (
    Project,
    build_ignore_rules,
    expand_workspace_globs,
)


def _names(project: Project, indices) -> set[str | None]:
    return {project.graph.nodes[i].data.name for i in indices}


class TestDiscoverSingle:
    def test_single_workspace(
        self, tmp_path: Path, write_manifest: Callable[..., Path]
    ) -> None:
        write_manifest(tmp_path, name="solo", version="1.0.0")

        project = Project.discover(tmp_path)

        workspaces = list(project.workspaces())
        assert len(workspaces) == 1
        index, ws = workspaces[0]
        assert index == 0
        assert ws.name == "solo"
        assert ws.version == "1.0.0"
        assert ws.directory == tmp_path.resolve()

    def test_empty_manifest(
        self, tmp_path: Path, write_manifest: Callable[..., Path]
    ) -> None:
        write_manifest(tmp_path)
        project = Project.discover(tmp_path)
        assert [ws.name for _, ws in project.workspaces()] == [None]

    def test_no_manifests(self, tmp_path: Path) -> None:
        assert len(Project.discover(tmp_path).graph) == 0


class TestDiscoverMembers:
    def test_glob_links_parent_and_children(
        self, tmp_path: Path, write_manifest: Callable[..., Path]
    ) -> None:
        write_manifest(tmp_path, workspaces=["packages/*"])
        for name in ["a", "b", "c"]:
            write_manifest(tmp_path / "packages" / name, name=name)

        project = Project.discover(tmp_path)

        assert len(project.graph) == 4
        root = 0
        assert project.workspace(root).directory == tmp_path.resolve()
        assert _names(project, project.members(root)) == {"a", "b", "c"}
        for child in range(1, 4):
            assert list(project.parents(child)) == [root]
            assert list(project.members(child)) == []
        assert list(project.parents(root)) == []

    def test_directories_without_manifest_are_not_members(
        self, tmp_path: Path, write_manifest: Callable[..., Path]
    ) -> None:
        write_manifest(tmp_path, workspaces=["packages/*"])
        write_manifest(tmp_path / "packages" / "a", name="a")
        (tmp_path / "packages" / "docs").mkdir()
        (tmp_path / "packages" / "README.md").write_text("hi")

        project = Project.discover(tmp_path)

        assert _names(project, project.members(0)) == {"a"}

    def test_nested_manifest_outside_glob_is_a_node_but_not_a_member(
        self, tmp_path: Path, write_manifest: Callable[..., Path]
    ) -> None:
        write_manifest(tmp_path, workspaces=["packages/*"])
        write_manifest(tmp_path / "packages" / "a", name="a")
        write_manifest(tmp_path / "tools" / "x", name="x")

        project = Project.discover(tmp_path)

        assert len(project.graph) == 3
        assert _names(project, project.members(0)) == {"a"}

    def test_membership_is_not_a_dependency(
        self, tmp_path: Path, write_manifest: Callable[..., Path]
    ) -> None:
        write_manifest(tmp_path, workspaces=["packages/*"])
        write_manifest(tmp_path / "packages" / "a", name="a")

        project = Project.discover(tmp_path)

        assert list(project.dependencies(1)) == []
        assert list(project.dependents(0)) == []


class TestDiscoverDependencies:
    def test_dependency_edges_in_both_directions(self, monorepo: Path) -> None:
        project = Project.discover(monorepo)

        a = project.find("pkg-a")
        b = project.find("pkg-b")
        c = project.find("pkg-c")

        assert list(project.dependencies(b)) == [a]
        assert list(project.dependents(a)) == [b]
        assert list(project.dependencies(c)) == [b]
        assert list(project.dependents(b)) == [c]
        assert list(project.dependencies(a)) == []
        assert list(project.dependents(c)) == []

    def test_requirements_merged_without_dedup(
        self, tmp_path: Path, write_manifest: Callable[..., Path]
    ) -> None:
        write_manifest(tmp_path / "a", name="a", version="1.0.0")
        write_manifest(
            tmp_path / "b",
            name="b",
            dependencies={"a": "^1.0.0"},
            devDependencies={"a": "workspace:*"},
            peerDependencies={"a": ">=1"},
        )

        project = Project.discover(tmp_path)
        b = project.find("b")
        ws = project.workspace(b)

        assert [name for name, _ in ws.dependencies] == ["a", "a", "a"]
        assert ws.dependency_version("a").range == "^1.0.0"
        # One edge pair, however many categories list the dependency
        assert list(project.dependencies(b)) == [project.find("a")]
        assert list(project.dependents(project.find("a"))) == [b]

    def test_non_semver_constraints_dropped(
        self, tmp_path: Path, write_manifest: Callable[..., Path]
    ) -> None:
        write_manifest(
            tmp_path,
            name="app",
            dependencies={"local": "file:../local", "react": "^18.0.0"},
        )
        ws = Project.discover(tmp_path).workspace(0)
        assert [name for name, _ in ws.dependencies] == ["react"]

    def test_external_deps_make_no_edges(self, monorepo: Path) -> None:
        project = Project.discover(monorepo)
        b = project.find("pkg-b")
        assert "left-pad" in [name for name, _ in project.workspace(b).dependencies]
        assert len(list(project.dependencies(b))) == 1

    def test_self_dependency_ignored(
        self, tmp_path: Path, write_manifest: Callable[..., Path]
    ) -> None:
        write_manifest(tmp_path, name="me", devDependencies={"me": "*"})
        project = Project.discover(tmp_path)
        assert list(project.dependencies(0)) == []


class TestDiscoverFailures:
    def test_non_utf8_manifest_is_skipped_with_warning(
        self, monorepo: Path
    ) -> None:
        bad = monorepo / "packages" / "bad"
        bad.mkdir()
        (bad / "package.json").write_bytes(b'{"name": "\xff\xfe"}')

        project = Project.discover(monorepo)

        assert len(project.graph) == 4
        assert len(project.warnings) == 1
        assert "not valid UTF-8" in project.warnings[0]

    def test_broken_manifest_is_skipped_with_warning(
        self, monorepo: Path
    ) -> None:
        broken = monorepo / "packages" / "broken"
        broken.mkdir()
        (broken / "package.json").write_text("{ nope")

        project = Project.discover(monorepo)

        assert project.find("pkg-a") is not None
        assert len(project.graph) == 4
        assert len(project.warnings) == 1
        assert "broken" in project.warnings[0]

    def test_duplicate_names_warn(
        self, tmp_path: Path, write_manifest: Callable[..., Path]
    ) -> None:
        write_manifest(tmp_path / "one", name="dup")
        write_manifest(tmp_path / "two", name="dup")

        project = Project.discover(tmp_path)

        assert project.find("dup") == 0
        assert any("Duplicate workspace name" in w for w in project.warnings)


class TestIgnoreRules:
    def test_node_modules_skipped(
        self, monorepo: Path, write_manifest: Callable[..., Path]
    ) -> None:
        write_manifest(
            monorepo / "packages" / "a" / "node_modules" / "dep", name="dep"
        )
        project = Project.discover(monorepo)
        assert project.find("dep") is None

    def test_gitignore_respected(
        self, monorepo: Path, write_manifest: Callable[..., Path]
    ) -> None:
        (monorepo / ".gitignore").write_text("fixtures/\n")
        write_manifest(monorepo / "fixtures" / "sample", name="sample")
        assert Project.discover(monorepo).find("sample") is None

    def test_config_ignore_patterns(
        self, monorepo: Path, write_manifest: Callable[..., Path]
    ) -> None:
        write_manifest(monorepo / "examples" / "demo", name="demo")
        config = Config(ignore=["examples/"])
        assert Project.discover(monorepo, config).find("demo") is None
        assert Project.discover(monorepo).find("demo") is not None

    def test_is_ignored_directory_needs_slash_pattern(self, tmp_path: Path) -> None:
        rules = build_ignore_rules(tmp_path, ["build/"])
        assert rules.is_ignored(Path("build"), is_dir=True)
        assert not rules.is_ignored(Path("build"))


class TestExpandWorkspaceGlobs:
    def test_tolerates_dot_slash_and_trailing_slash(self, tmp_path: Path) -> None:
        (tmp_path / "packages" / "a").mkdir(parents=True)
        (tmp_path / "packages" / "b").mkdir(parents=True)
        matches = expand_workspace_globs(tmp_path, ["./packages/*/"])
        assert [m.name for m in matches] == ["a", "b"]

    def test_skips_negations_and_duplicates(self, tmp_path: Path) -> None:
        (tmp_path / "packages" / "a").mkdir(parents=True)
        matches = expand_workspace_globs(
            tmp_path, ["packages/*", "packages/a", "!packages/a"]
        )
        assert [m.name for m in matches] == ["a"]
