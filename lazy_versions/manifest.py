"""Package manifest reading and writing utilities.

Manifests are package.json files. Reads go through a Pydantic model so that
malformed fields are reported as a single ManifestError; writes operate on
the raw JSON object so unknown keys and key order survive a round trip.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ManifestError
from .versions import parse_version


class Manifest(BaseModel):
    """The manifest fields lazy-versions cares about.

    Everything else in the file is ignored on read and preserved on write.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str | None = None
    version: str | None = None
    workspaces: list[str] = Field(default_factory=list)
    dependencies: dict[str, str] = Field(default_factory=dict)
    dev_dependencies: dict[str, str] = Field(
        default_factory=dict, alias="devDependencies"
    )
    peer_dependencies: dict[str, str] = Field(
        default_factory=dict, alias="peerDependencies"
    )

    @field_validator("workspaces", mode="before")
    @classmethod
    def _accept_yarn_object_form(cls, value: Any) -> Any:
        # Yarn classic allows {"packages": [...], "nohoist": [...]}
        if isinstance(value, dict):
            return value.get("packages", [])
        return value

    @field_validator("version")
    @classmethod
    def _check_semver(cls, value: str | None) -> str | None:
        if value is not None:
            parse_version(value)
        return value

    def all_dependency_strings(self) -> list[tuple[str, str]]:
        """Collect (name, constraint) pairs from every dependency category.

        Order is dependencies, then devDependencies, then peerDependencies.
        A package listed in several categories appears once per category.
        """
        deps: list[tuple[str, str]] = list(self.dependencies.items())
        deps.extend(self.dev_dependencies.items())
        deps.extend(self.peer_dependencies.items())
        return deps


def load_manifest(path: Path) -> dict[str, Any]:
    """Load a manifest as a raw JSON object, preserving key order.

    Raises:
        ManifestError: If the file is not UTF-8, not valid JSON, or not a
            JSON object.
        OSError: If the file cannot be read.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ManifestError(path, "not valid UTF-8") from exc
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ManifestError(path, f"invalid JSON ({exc})") from exc
    if not isinstance(data, dict):
        raise ManifestError(path, "expected a JSON object")
    return data


def parse_manifest(path: Path) -> Manifest:
    """Load and validate a manifest.

    Raises:
        ManifestError: If the file is unreadable, not valid JSON, or has
            fields of the wrong type (including a non-semver version).
    """
    try:
        data = load_manifest(path)
    except OSError as exc:
        raise ManifestError(path, f"cannot read ({exc.strerror})") from exc
    try:
        return Manifest.model_validate(data)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in exc.errors()
        )
        raise ManifestError(path, problems) from exc


def save_manifest(path: Path, data: dict[str, Any]) -> None:
    """Write a raw manifest back to disk.

    Keeps the indentation of the existing file (two spaces if it cannot be
    detected) and always ends with a newline, as npm does.
    """
    indent = 2
    if path.exists():
        indent = detect_indent(path.read_text(encoding="utf-8"))
    path.write_text(
        json.dumps(data, indent=indent, ensure_ascii=False) + "\n", encoding="utf-8"
    )


def detect_indent(text: str) -> int | str:
    """Return the indentation used by a JSON document.

    Returns "\\t" for tab-indented files, the number of leading spaces of the
    first indented line otherwise, or 2 when nothing is indented.
    """
    for line in text.splitlines()[1:]:
        stripped = line.lstrip(" \t")
        if stripped and stripped != line:
            prefix = line[: len(line) - len(stripped)]
            if prefix.startswith("\t"):
                return "\t"
            return len(prefix)
    return 2
