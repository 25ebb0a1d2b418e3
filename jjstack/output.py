"""User-facing output for jj-stack-prs.

A Reporter is created once by the CLI and handed to every component that
needs to talk to the user, so verbosity is never global state.
"""

from __future__ import annotations

import typer


class Reporter:
    """Writes progress and results through typer.echo.

    Args:
        verbose: Show detail lines and numbered progress.
        dry_run: Prefix mutation intents as things that would happen.
    """

    def __init__(self, verbose: bool = False, dry_run: bool = False) -> None:
        self.verbose = verbose
        self.dry_run = dry_run

    def info(self, message: str) -> None:
        typer.echo(message)

    def detail(self, message: str) -> None:
        if self.verbose:
            typer.echo(message)

    def warn(self, message: str) -> None:
        typer.echo(f"Warning: {message}", err=True)

    def error(self, message: str) -> None:
        typer.echo(message, err=True)

    def intent(self, message: str) -> None:
        """Report a mutation that dry-run mode skipped."""
        typer.echo(f"  (dry-run) Would {message}")

    def progress(self, current: int, total: int, action: str, details: str) -> None:
        if self.verbose:
            typer.echo(f"[{current}/{total}] {action}: {details}")
        else:
            typer.echo(f"{action} {details}")

    def summary(self, created: int, updated: int, ready: int, draft: int) -> None:
        if not self.verbose:
            typer.echo(
                f"\nCreated: {created}, Updated: {updated}, Ready: {ready}, Draft: {draft}"
            )
            return

        typer.echo("\nSummary:")
        if created > 0:
            typer.echo(f"  - Created: {created} new PR(s)")
        if updated > 0:
            typer.echo(f"  - Updated: {updated} existing PR(s)")
        typer.echo(f"  - Ready for review: {ready}")
        typer.echo(f"  - Drafts: {draft}")
        typer.echo("\nView your stack:")
        typer.echo("  gh pr list --author @me --state open")
