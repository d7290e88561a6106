"""CLI entry point for lazy-versions."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import click

from lazy_versions.changes import write_change
from lazy_versions.config import (
    DEFAULT_CHANGES_DIR,
    config_path,
    load_config,
    write_default_config,
)
from lazy_versions.errors import LazyVersionsError
from lazy_versions.models import Bump
from lazy_versions.pipeline import plan_release, run_version, tag_versions
from lazy_versions.project import Project
from lazy_versions.shell import warn

STORE_README = """\
# Change records

Each markdown file in this directory describes one pending change and the
packages it affects. Create one with:

    lazy-versions new -p my-package:minor -m "Describe the change"

`lazy-versions version` applies every record, bumps the affected packages
(and everything that depends on them) and deletes the records.
"""


@contextmanager
def _errors() -> Iterator[None]:
    """Turn lazy-versions and I/O errors into a clean message and exit code 1."""
    try:
        yield
    except LazyVersionsError as exc:
        raise click.ClickException(str(exc)) from exc
    except OSError as exc:
        where = f"{exc.filename}: " if exc.filename else ""
        raise click.ClickException(f"{where}{exc.strerror or exc}") from exc


def _parse_package(value: str) -> tuple[str, Bump]:
    # rpartition: scoped names (@org/pkg) never contain ":"
    name, sep, severity = value.rpartition(":")
    if not sep or not name:
        raise click.BadParameter(
            f"expected NAME:SEVERITY, got {value!r}", param_hint="'-p'"
        )
    with _errors():
        return name, Bump.parse(severity)


@click.group()
@click.version_option(package_name="lazy-versions")
@click.option(
    "-C",
    "--directory",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
    show_default=True,
    help="Project root to operate on.",
)
@click.pass_context
def cli(ctx: click.Context, directory: Path) -> None:
    """Version the packages of a monorepo from pending change records."""
    ctx.obj = directory


@cli.command()
@click.pass_obj
def init(root: Path) -> None:
    """Create the change store in the project root."""
    with _errors():
        settings = load_config(root)
    if not (root / settings.manifest).exists():
        raise click.ClickException(
            f"No {settings.manifest} found in {root.resolve()}. "
            "Run from the repo root."
        )

    store = root / DEFAULT_CHANGES_DIR
    store.mkdir(parents=True, exist_ok=True)
    # Records may be kept outside the default store
    (root / settings.changes_dir).mkdir(parents=True, exist_ok=True)

    config = config_path(root)
    if not config.exists():
        write_default_config(config)
    readme = store / "README.md"
    if not readme.exists():
        readme.write_text(STORE_README, encoding="utf-8")

    click.echo(f"✓ Change store ready at {DEFAULT_CHANGES_DIR}/")
    click.echo()
    click.echo("Next steps:")
    click.echo("  1. Record a change:")
    click.echo('       lazy-versions new -p my-package:patch -m "Fix a bug"')
    click.echo("  2. Apply all pending changes:")
    click.echo("       lazy-versions version")


@cli.command()
@click.option(
    "-p",
    "--package",
    "packages",
    multiple=True,
    metavar="NAME:SEVERITY",
    help="Package and bump severity (major, minor or patch). Repeatable.",
)
@click.option("-m", "--message", prompt="Describe the change", help="Change summary.")
@click.pass_obj
def new(root: Path, packages: tuple[str, ...], message: str) -> None:
    """Record a new pending change."""
    if not packages:
        raise click.UsageError("Name at least one package with -p NAME:SEVERITY.")

    bumps: dict[str, Bump] = {}
    for value in packages:
        name, bump = _parse_package(value)
        bumps[name] = max(bumps.get(name, bump), bump)

    with _errors():
        project = Project.discover(root)
        unknown = [name for name in bumps if project.find(name) is None]
        if unknown:
            known = ", ".join(project.names()) or "none"
            raise click.ClickException(
                f"Unknown package(s): {', '.join(unknown)}. Known packages: {known}"
            )
        path = write_change(project.root / project.config.changes_dir, bumps, message)

    click.echo(f"✓ Wrote {path.relative_to(project.root)}")


@cli.command()
@click.pass_obj
def status(root: Path) -> None:
    """Show the versions the next `version` run would produce."""
    with _errors():
        release = plan_release(root)

    click.echo()
    for name, bump in release.bumped.items():
        click.echo(f"  {name}: {bump.old} → {bump.new} ({bump.bump})")
    for message in release.warnings:
        warn(message)


@cli.command()
@click.option("--commit", is_flag=True, help="Commit the version changes with git.")
@click.option("--dry-run", is_flag=True, help="Only print the plan.")
@click.pass_obj
def version(root: Path, commit: bool, dry_run: bool) -> None:
    """Apply all pending changes and bump package versions."""
    with _errors():
        bumped = run_version(root, commit=commit, dry_run=dry_run)

    if bumped:
        verb = "Would release" if dry_run else "Released"
        click.echo(f"\n{verb} {len(bumped)} package(s).")


@cli.command()
@click.pass_obj
def tag(root: Path) -> None:
    """Create git tags for the current package versions."""
    with _errors():
        created = tag_versions(root)
    click.echo(f"\nCreated {len(created)} tag(s).")
