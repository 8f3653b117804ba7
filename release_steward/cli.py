"""CLI entry point for release-steward."""

from __future__ import annotations

import click

from release_steward.exceptions import StewardError
from release_steward.pipeline import (
    check_dependencies,
    generate_report,
    update_dependencies,
)


@click.group()
@click.version_option(package_name="release-steward")
def cli() -> None:
    """Keep dependencies current and decide when to release."""


@cli.command("update-dependencies")
@click.option(
    "-d", "--dry-run", is_flag=True, help="Report updates without changing anything."
)
@click.option(
    "-p", "--create-pr", is_flag=True, help="Open a pull request with the changes."
)
@click.option(
    "--remote",
    default=None,
    metavar="REMOTE/BRANCH",
    help="Base for the update branch. (default: [tool.release-steward].base)",
)
@click.option(
    "--new-branch",
    default=None,
    help="Override the generated branch name (e.g., update-dependencies-1.2.3).",
)
def update_dependencies_cmd(
    dry_run: bool, create_pr: bool, remote: str | None, new_branch: str | None
) -> None:
    """Update allowed dependencies to their latest versions."""
    try:
        update_dependencies(
            dry_run=dry_run, create_pr=create_pr, remote=remote, new_branch=new_branch
        )
    except StewardError as exc:
        raise click.ClickException(str(exc)) from exc


@cli.command("check-dependencies")
def check_dependencies_cmd() -> None:
    """Check current dependency status."""
    try:
        check_dependencies()
    except StewardError as exc:
        raise click.ClickException(str(exc)) from exc


@cli.command("generate-report")
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False),
    default=None,
    help="Output file path for the report. (default: dependency-report.md)",
)
def generate_report_cmd(output: str | None) -> None:
    """Generate a dependency update report."""
    try:
        generate_report(output)
    except StewardError as exc:
        raise click.ClickException(str(exc)) from exc


cli.add_command(update_dependencies_cmd, name="ud")
cli.add_command(check_dependencies_cmd, name="cd")
cli.add_command(generate_report_cmd, name="gr")
