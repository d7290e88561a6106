"""Shared test fixtures."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

WriteManifest = Callable[..., Path]
WriteChange = Callable[..., Path]


@pytest.fixture
def write_manifest() -> WriteManifest:
    """Return a helper that writes a package.json into a directory."""

    def _write(directory: Path, **fields: Any) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / "package.json"
        path.write_text(json.dumps(fields, indent=2) + "\n")
        return path

    return _write


@pytest.fixture
def write_change() -> WriteChange:
    """Return a helper that writes a change record into a store."""

    def _write(
        store: Path, filename: str, bumps: dict[str, str], summary: str
    ) -> Path:
        store.mkdir(parents=True, exist_ok=True)
        header = "\n".join(f'"{name}": {bump}' for name, bump in bumps.items())
        path = store / filename
        path.write_text(f"---\n{header}\n---\n\n{summary}\n")
        return path

    return _write


@pytest.fixture
def monorepo(tmp_path: Path, write_manifest: WriteManifest) -> Path:
    """Create a small npm-style monorepo.

    Layout:
        package.json          root, private, workspaces = ["packages/*"]
        packages/a            pkg-a 1.2.3
        packages/b            pkg-b 2.0.0, depends on pkg-a ^1.2.3
        packages/c            pkg-c 0.1.0, devDepends on pkg-b workspace:*
        .changes/             empty change store
    """
    write_manifest(tmp_path, name="root", private=True, workspaces=["packages/*"])
    write_manifest(tmp_path / "packages" / "a", name="pkg-a", version="1.2.3")
    write_manifest(
        tmp_path / "packages" / "b",
        name="pkg-b",
        version="2.0.0",
        dependencies={"pkg-a": "^1.2.3", "left-pad": "^1.3.0"},
    )
    write_manifest(
        tmp_path / "packages" / "c",
        name="pkg-c",
        version="0.1.0",
        devDependencies={"pkg-b": "workspace:*"},
    )
    (tmp_path / ".changes").mkdir()
    return tmp_path
