"""CLI entry point for jj-stack-prs."""

from importlib.metadata import PackageNotFoundError, version
from typing import Optional

import typer

from jjstack import jj_ops, workflow_engine
from jjstack.config import apply_overrides, load_config, validate_options
from jjstack.exceptions import JjStackError
from jjstack.executor import SubprocessExecutor
from jjstack.output import Reporter

app = typer.Typer(
    name="jj-stack-prs",
    help="Create and update a chain of dependent GitHub PRs from a jj (Jujutsu) stack.",
    context_settings={"help_option_names": ["-h", "--help"]},
    add_completion=False,
)


def get_version() -> str:
    try:
        return version("jj-stack-prs")
    except PackageNotFoundError:
        return "unknown"


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"jj-stack-prs {get_version()}")
        raise typer.Exit()


def report_error(error: JjStackError, dry_run: bool) -> None:
    """Print a fatal error with its details and the suggested remedy."""
    typer.echo(f"Error: {error}", err=True)
    for detail in error.details:
        typer.echo(f"  - {detail}", err=True)
    if error.suggestion:
        typer.echo(f"\nTo fix this:\n  {error.suggestion}", err=True)
    if dry_run:
        typer.echo("\n(This was a dry run - no changes were made)", err=True)


@app.command()
def main(
    base: Optional[str] = typer.Option(
        None, "--base", "-b", help="Base branch for the stack (auto-detected if not specified)"
    ),
    remote: Optional[str] = typer.Option(
        None, "--remote", help="Primary git remote (default: origin)"
    ),
    no_auto_bookmark: bool = typer.Option(
        False, "--no-auto-bookmark", help="Don't create bookmarks for unbookmarked changes"
    ),
    keep_auto: bool = typer.Option(
        False, "--keep-auto", help="Keep auto-generated bookmarks after their PRs merge"
    ),
    cleanup_all_auto: bool = typer.Option(
        False, "--cleanup-all-auto", help="Delete all auto-generated bookmarks first"
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Show what would happen without making changes"
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Show detailed progress"),
    show_version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show the version and exit",
    ),
) -> None:
    """Submit the current jj stack as a chain of dependent GitHub PRs."""
    reporter = Reporter(verbose=verbose, dry_run=dry_run)
    executor = SubprocessExecutor()

    try:
        repo_root = jj_ops.get_repo_root(executor)
        config = apply_overrides(
            load_config(repo_root),
            base_branch=base,
            remote=remote,
            auto_bookmark=False if no_auto_bookmark else None,
            keep_auto=True if keep_auto else None,
            cleanup_all_auto=True if cleanup_all_auto else None,
        )

        errors = validate_options(config)
        if errors:
            for error in errors:
                typer.echo(f"Error: {error}", err=True)
            raise typer.Exit(1)

        if dry_run:
            reporter.info("Dry run: no changes will be made.\n")

        result = workflow_engine.run_stack_prs(executor, config, reporter, dry_run=dry_run)
    except JjStackError as e:
        report_error(e, dry_run)
        raise typer.Exit(1)

    if not result.success:
        typer.echo(f"Error: {result.message}", err=True)
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
