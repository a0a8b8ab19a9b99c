"""CLI entry point for lazy-bump."""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import click

from .commits import group_commits_by_type
from .config import load_config
from .errors import BumpError, format_error
from .models import ReleasePlan, VersionBump
from .overrides import write_override_file
from .pipeline import apply_plan, compute_plan
from .shell import step


@contextmanager
def _bump_errors() -> Iterator[None]:
    try:
        yield
    except BumpError as exc:
        raise click.ClickException(format_error(exc)) from exc


def _describe(bump: VersionBump) -> str:
    line = f"  {bump.package}: {bump.current_version} → {bump.new_version} ({bump.release_type})"
    if bump.updated_deps:
        deps = ", ".join(f"{d.name}@{d.version}" for d in bump.updated_deps)
        line += f" [deps: {deps}]"
    return line


def _print_plan(plan: ReleasePlan) -> None:
    if not plan.bumps:
        click.echo("  Nothing to release.")
    for bump in plan.bumps:
        click.echo(_describe(bump))
        for commit_type, commits in group_commits_by_type(bump.commits).items():
            click.echo(f"      {commit_type}: {len(commits)}")


def _report_failures(plan: ReleasePlan) -> None:
    if not plan.failures:
        return
    click.echo("\nFailed packages:", err=True)
    for failure in plan.failures:
        click.echo(f"  {failure.package}: {failure.reason}", err=True)
    sys.exit(1)


@click.group()
@click.version_option(package_name="lazy-bump")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """Work out the next version of every package from commits and override files."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Print the plan as JSON.")
@click.option("--preid", default=None, help="Pre-release channel (alpha, beta, rc, ...).")
@click.option("--graduate", is_flag=True, help="Promote 0.x packages to 1.0.0.")
def status(as_json: bool, preid: str | None, graduate: bool) -> None:
    """Show the versions the next release would produce."""
    root = Path.cwd()
    with _bump_errors():
        config = load_config(root)
        run = compute_plan(root, config, preid=preid, graduate=graduate)

    if as_json:
        click.echo(run.plan.model_dump_json(indent=2))
    else:
        step("Release plan")
        _print_plan(run.plan)
    _report_failures(run.plan)


@cli.command()
@click.option("--dry-run", is_flag=True, help="Compute the plan without writing anything.")
@click.option("--preid", default=None, help="Pre-release channel (alpha, beta, rc, ...).")
@click.option("--graduate", is_flag=True, help="Promote 0.x packages to 1.0.0.")
def bump(dry_run: bool, preid: str | None, graduate: bool) -> None:
    """Write the next versions into each package's pyproject.toml."""
    root = Path.cwd()
    with _bump_errors():
        config = load_config(root)
        step("Computing release plan")
        run = compute_plan(root, config, preid=preid, graduate=graduate)
        _print_plan(run.plan)

        if dry_run:
            click.echo("\nDry run: nothing written.")
        elif run.plan.bumps:
            step("Writing versions")
            consumed = apply_plan(run.repo_root, run.plan, run.packages, run.overrides)
            click.echo(f"  Updated {len(run.plan.bumps)} packages")
            for override in consumed:
                click.echo(f"  Consumed {override.id}.md")
    _report_failures(run.plan)


@cli.command()
@click.option(
    "--release",
    "-r",
    required=True,
    help='patch, minor, major or an explicit version such as "1.2.3".',
)
@click.option(
    "--package",
    "-p",
    "packages",
    multiple=True,
    help="Package the release applies to (repeatable). Omit for all packages.",
)
@click.option("--prerelease", default=None, help="Pre-release channel for this release.")
@click.option("--message", "-m", default="", help="Changelog text.")
def add(release: str, packages: tuple[str, ...], prerelease: str | None, message: str) -> None:
    """Record a release instruction in a new override file."""
    root = Path.cwd()
    with _bump_errors():
        config = load_config(root)
        path = write_override_file(
            root,
            release,
            packages=list(packages) or None,
            prerelease=prerelease,
            message=message,
            override_dir=config.override_dir,
        )
    click.echo(f"✓ Wrote {path.relative_to(root)}")
