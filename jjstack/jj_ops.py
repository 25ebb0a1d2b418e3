"""jj (Jujutsu) operations for jj-stack-prs.

Each function builds one jj invocation and runs it through the injected
CommandExecutor. Templates and revsets live here so the rest of the
package only deals with parsed results.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from jjstack.exceptions import NotAJjRepoError, VCSExecutionError
from jjstack.executor import CommandExecutor, CommandResult

# Bookmarks of the working-copy lineage above trunk, tip first
LINEAGE_REVSET = "(::@ | @::) & trunk().."
DESCENDANTS_REVSET = "@:: & trunk().."
LINEARITY_REVSET = "::@ & trunk().."
MUTABLE_STACK_REVSET = "::@ ~ immutable()"
EMPTY_CHANGES_REVSET = "(::@ ~ immutable()) & empty()"

BOOKMARKS_TEMPLATE = 'bookmarks ++ "\\n"'
CHANGE_BOOKMARKS_TEMPLATE = 'change_id ++ " " ++ bookmarks ++ "\\n"'
CHANGE_ID_TEMPLATE = 'change_id ++ "\\n"'
MERGE_TEMPLATE = 'if(parents.len() > 1, change_id ++ " MERGE " ++ parents.len() ++ "\\n", "")'
CHILDREN_TEMPLATE = 'change_id ++ " " ++ children.len() ++ "\\n"'


def run_jj(executor: CommandExecutor, *args: str, check: bool = True) -> CommandResult:
    """Run a jj command and return the result.

    Args:
        executor: Executor that runs the command.
        *args: jj command arguments (e.g., "log", "-r", "@").
        check: If True, raise VCSExecutionError on non-zero exit code.

    Returns:
        CommandResult with stdout, stderr, and returncode.

    Raises:
        VCSExecutionError: If check=True and command fails.
    """
    cmd = ["jj", *args]
    result = executor.run(cmd)

    if check and not result.ok:
        error_msg = (
            result.stderr.strip() or result.stdout.strip() or f"jj command failed: {' '.join(cmd)}"
        )
        raise VCSExecutionError(
            error_msg, argv=cmd, returncode=result.returncode, stderr=result.stderr
        )

    return result


def get_repo_root(executor: CommandExecutor) -> Path:
    """Get the root directory of the jj repository.

    Raises:
        NotAJjRepoError: If not inside a jj repository.
    """
    result = run_jj(executor, "root", check=False)
    if not result.ok:
        raise NotAJjRepoError()
    return Path(result.stdout.strip())


def log(executor: CommandExecutor, revset: str, template: str, check: bool = True) -> CommandResult:
    """Run 'jj log' without graph for a revset and template."""
    return run_jj(executor, "log", "-r", revset, "--no-graph", "--template", template, check=check)


def get_lineage_log(executor: CommandExecutor) -> str:
    """Get the bookmark lines of the current lineage, tip first."""
    return log(executor, LINEAGE_REVSET, BOOKMARKS_TEMPLATE).stdout


def get_descendant_bookmarks_log(executor: CommandExecutor) -> Optional[str]:
    """Get bookmark lines of @ and its descendants, or None if the query fails."""
    result = log(executor, DESCENDANTS_REVSET, BOOKMARKS_TEMPLATE, check=False)
    if not result.ok:
        return None
    return result.stdout


def get_trunk_bookmarks(executor: CommandExecutor) -> Optional[str]:
    """Get the raw bookmark list of trunk(), or None if the query fails."""
    result = run_jj(
        executor,
        "log",
        "--no-graph",
        "-r",
        "trunk()",
        "--template",
        "bookmarks",
        "--limit",
        "1",
        check=False,
    )
    if not result.ok:
        return None
    return result.stdout


def get_description(executor: CommandExecutor, revision: str) -> Optional[str]:
    """Get the first line of a revision's description.

    Args:
        executor: Executor that runs the command.
        revision: Any jj revision, e.g. a bookmark or 'name@origin'.

    Returns:
        First description line, or None if the lookup fails or it is empty.
    """
    result = run_jj(
        executor,
        "log",
        "-r",
        revision,
        "--no-graph",
        "--template",
        "description",
        "--limit",
        "1",
        check=False,
    )
    if not result.ok:
        return None

    lines = result.stdout.strip().splitlines()
    if not lines or not lines[0].strip():
        return None
    return lines[0].strip()


def get_merge_commits_log(executor: CommandExecutor) -> str:
    return log(executor, LINEARITY_REVSET, MERGE_TEMPLATE).stdout


def get_children_log(executor: CommandExecutor) -> Optional[str]:
    result = log(executor, LINEARITY_REVSET, CHILDREN_TEMPLATE, check=False)
    if not result.ok:
        return None
    return result.stdout


def get_oneline_log(executor: CommandExecutor, base_branch: str) -> str:
    """Get builtin_log_oneline output for changes above the base branch."""
    return log(executor, f"::@ ~ ::{base_branch}", "builtin_log_oneline").stdout


def get_mutable_changes_log(executor: CommandExecutor) -> str:
    return log(executor, MUTABLE_STACK_REVSET, CHANGE_BOOKMARKS_TEMPLATE).stdout


def get_empty_change_ids(executor: CommandExecutor) -> set[str]:
    """Get ids of empty mutable changes in the lineage. Failure means none."""
    result = log(executor, EMPTY_CHANGES_REVSET, CHANGE_ID_TEMPLATE, check=False)
    if not result.ok:
        return set()
    return {line.strip() for line in result.stdout.splitlines() if line.strip()}


def list_bookmarks(executor: CommandExecutor) -> Optional[str]:
    """Get raw 'jj bookmark list' output, or None if the command fails."""
    result = run_jj(executor, "bookmark", "list", check=False)
    if not result.ok:
        return None
    return result.stdout


def create_bookmark(
    executor: CommandExecutor, name: str, revision: str, check: bool = True
) -> CommandResult:
    """Create a bookmark pointing at a revision.

    Raises:
        VCSExecutionError: If check=True and jj refuses.
    """
    return run_jj(executor, "bookmark", "create", name, "-r", revision, check=check)


def delete_bookmark(executor: CommandExecutor, name: str, check: bool = True) -> CommandResult:
    return run_jj(executor, "bookmark", "delete", name, check=check)


def git_push_all(executor: CommandExecutor) -> CommandResult:
    """Push every bookmark to the git remote.

    Raises:
        VCSExecutionError: If the push fails.
    """
    return run_jj(executor, "git", "push", "--all")


def forget_bookmark(executor: CommandExecutor, ref: str, check: bool = True) -> CommandResult:
    """Forget a remote-tracking bookmark such as 'name@origin'."""
    return run_jj(executor, "bookmark", "forget", ref, check=check)


def git_fetch(executor: CommandExecutor) -> CommandResult:
    return run_jj(executor, "git", "fetch")
