"""Custom exceptions for jj-stack-prs."""

from __future__ import annotations

from typing import Optional, Sequence


class JjStackError(Exception):
    """Base exception for all jj-stack-prs errors.

    Attributes:
        details: Offending identifiers or extra lines shown under the message.
        suggestion: A command or action the user can take to recover.
    """

    suggestion: str = ""

    def __init__(
        self,
        message: str,
        details: Optional[Sequence[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        self.details = list(details or [])
        if suggestion is not None:
            self.suggestion = suggestion
        super().__init__(message)


class CommandError(JjStackError):
    """A required external command exited with a non-zero status."""

    def __init__(
        self,
        message: str,
        argv: Optional[Sequence[str]] = None,
        returncode: int = 1,
        stderr: str = "",
    ) -> None:
        self.argv = list(argv or [])
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)


class VCSExecutionError(CommandError):
    """Error executing a jj command."""


class ForgeQueryError(CommandError):
    """Error executing a gh (GitHub CLI) command."""


class NoBookmarksError(JjStackError):
    """The resolved stack contains no bookmarks."""

    suggestion = (
        "Create bookmarks for your changes, e.g. 'jj bookmark create <name> -r @-', "
        "or run without --no-auto-bookmark to create them automatically."
    )

    def __init__(self) -> None:
        super().__init__("No bookmarks found in current stack!")


class NonLinearStackError(JjStackError):
    """The stack contains merge commits or divergent changes."""

    suggestion = "Linearize the stack first, e.g. 'jj rebase -s <change> -d <parent>'."

    def __init__(self, message: str, problematic_commits: Sequence[str]) -> None:
        self.problematic_commits = list(problematic_commits)
        super().__init__(message, details=self.problematic_commits)


class ConflictError(JjStackError):
    """One or more changes in the stack are conflicted."""

    suggestion = "Resolve the conflicts with 'jj resolve -r <change>' and run again."

    def __init__(self, conflicted: Sequence[str]) -> None:
        self.conflicted = list(conflicted)
        super().__init__(
            f"Found {len(self.conflicted)} conflicted change(s) in the stack.",
            details=self.conflicted,
        )


class ReconciliationError(JjStackError):
    """A local bookmark could not be created from its remote counterpart."""

    def __init__(self, bookmark: str, reason: str) -> None:
        self.bookmark = bookmark
        self.reason = reason
        super().__init__(f"Failed to create local bookmark '{bookmark}': {reason}")


class ChainIntegrityError(JjStackError):
    """The forge's PR base graph is malformed (e.g. contains a cycle)."""

    suggestion = "Inspect the PR bases with 'gh pr list --author @me' and fix the cycle."


class NotAJjRepoError(JjStackError):
    """Current directory is not a jj repository."""

    def __init__(self) -> None:
        super().__init__("Not a jj repository. Please run this command inside a jj repo.")


class GhNotAuthenticatedError(JjStackError):
    """GitHub CLI is not authenticated."""

    suggestion = "gh auth login"

    def __init__(self, stderr: str = "") -> None:
        # Lines starting with "X " are gh's status bullets, not the reason
        lines = [line.strip() for line in stderr.splitlines() if line.strip()]
        reasons = [line for line in lines if not line.startswith("X ")]
        details = (reasons or lines)[:1]
        super().__init__("GitHub CLI is not authenticated.", details=details)


class ConfigError(JjStackError):
    """Error reading or parsing the config file."""
