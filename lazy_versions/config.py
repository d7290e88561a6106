"""Configuration loading.

Settings live in `.changes/config.toml`. Uses tomlkit so the generated file
carries comments describing each setting.
"""

from __future__ import annotations

from pathlib import Path

import tomlkit
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from tomlkit.exceptions import ParseError

from .errors import ConfigError

DEFAULT_CHANGES_DIR = ".changes"
CONFIG_FILENAME = "config.toml"


class Config(BaseModel):
    """Project-level settings.

    Attributes:
        changes_dir: Change store directory, relative to the project root.
        manifest: File name that marks a directory as a workspace.
        ignore: Extra gitignore-style patterns skipped during discovery.
        changelog: Whether `version` prepends entries to CHANGELOG.md.
        tag_format: Format for tags created by `tag`; receives name and version.
    """

    model_config = ConfigDict(extra="forbid")

    changes_dir: str = DEFAULT_CHANGES_DIR
    manifest: str = "package.json"
    ignore: list[str] = Field(default_factory=list)
    changelog: bool = True
    tag_format: str = "{name}/v{version}"

    @field_validator("tag_format")
    @classmethod
    def _check_tag_format(cls, value: str) -> str:
        try:
            value.format(name="pkg", version="1.0.0")
        except (AttributeError, KeyError, IndexError, ValueError) as exc:
            raise ValueError(
                "must only use the {name} and {version} placeholders"
            ) from exc
        return value


def config_path(root: Path) -> Path:
    """Return where the config file for a project root lives.

    The file always sits in the default store directory, even when
    changes_dir points the change records somewhere else.
    """
    return root / DEFAULT_CHANGES_DIR / CONFIG_FILENAME


def load_config(root: Path) -> Config:
    """Load the project config, falling back to defaults if there is none.

    Raises:
        ConfigError: If the file is not valid TOML or has unknown or
            mistyped settings.
    """
    path = config_path(root)
    if not path.exists():
        return Config()

    try:
        doc = tomlkit.parse(path.read_text(encoding="utf-8"))
    except ParseError as exc:
        raise ConfigError(f"{path}: invalid TOML ({exc})") from exc

    try:
        return Config.model_validate(doc.unwrap())
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in exc.errors()
        )
        raise ConfigError(f"{path}: {problems}") from exc


def write_default_config(path: Path) -> None:
    """Write a commented config file holding the default settings."""
    defaults = Config()
    doc = tomlkit.document()
    doc.add(tomlkit.comment("lazy-versions configuration"))
    doc.add(tomlkit.nl())
    doc.add(
        "changes_dir",
        _commented(defaults.changes_dir, "where change records are kept"),
    )
    doc.add(
        "manifest",
        _commented(defaults.manifest, "file that marks a directory as a workspace"),
    )
    doc.add("ignore", _commented(tomlkit.array(), "extra gitignore-style patterns"))
    doc.add(
        "changelog",
        _commented(defaults.changelog, "prepend release notes to CHANGELOG.md"),
    )
    doc.add("tag_format", tomlkit.item(defaults.tag_format))
    path.write_text(tomlkit.dumps(doc), encoding="utf-8")


def _commented(value: object, comment: str) -> tomlkit.items.Item:
    item = tomlkit.item(value)
    item.comment(comment)
    return item
