"""GitHub CLI operations wrapper for jj-stack-prs.

All gh commands go through the injected CommandExecutor. JSON output is
parsed into ExistingPR at this boundary.
"""

from __future__ import annotations

import json
import re
from typing import Optional

from pydantic import TypeAdapter, ValidationError

from jjstack.exceptions import ForgeQueryError, GhNotAuthenticatedError
from jjstack.executor import CommandExecutor, CommandResult
from jjstack.models import ExistingPR

PR_FIELDS = "number,headRefName,baseRefName,isDraft,state"

_pr_list_adapter = TypeAdapter(list[ExistingPR])


def run_gh(executor: CommandExecutor, *args: str, check: bool = True) -> CommandResult:
    """Run a gh command and return the result.

    Args:
        executor: Executor that runs the command.
        *args: gh command arguments (e.g., "pr", "view").
        check: If True, raise ForgeQueryError on non-zero exit code.

    Returns:
        CommandResult with stdout, stderr, and returncode.

    Raises:
        ForgeQueryError: If check=True and command fails.
    """
    cmd = ["gh", *args]
    result = executor.run(cmd)

    if check and not result.ok:
        error_msg = (
            result.stderr.strip() or result.stdout.strip() or f"gh command failed: {' '.join(cmd)}"
        )
        raise ForgeQueryError(
            error_msg, argv=cmd, returncode=result.returncode, stderr=result.stderr
        )

    return result


def is_gh_authenticated(executor: CommandExecutor) -> bool:
    """Check if the GitHub CLI is authenticated.

    Returns:
        True if authenticated, False otherwise.
    """
    result = run_gh(executor, "auth", "status", check=False)
    return result.ok


def require_gh_auth(executor: CommandExecutor) -> None:
    """Require the GitHub CLI to be authenticated.

    Raises:
        GhNotAuthenticatedError: If not authenticated.
    """
    result = run_gh(executor, "auth", "status", check=False)
    if not result.ok:
        raise GhNotAuthenticatedError(result.stderr)


def list_open_prs(executor: CommandExecutor) -> list[ExistingPR]:
    """List the user's open pull requests.

    Raises:
        ForgeQueryError: If gh fails or returns output that is not a PR list.
    """
    result = run_gh(
        executor,
        "pr",
        "list",
        "--author",
        "@me",
        "--state",
        "open",
        "--json",
        PR_FIELDS,
    )

    try:
        return _pr_list_adapter.validate_json(result.stdout or "[]")
    except ValidationError as e:
        raise ForgeQueryError(f"Unexpected gh pr list output: {e}") from e


def find_existing_prs(executor: CommandExecutor) -> dict[str, ExistingPR]:
    """Get the user's open PRs keyed by head bookmark.

    Listing failures degrade to an empty map so a run can still create PRs.
    """
    try:
        prs = list_open_prs(executor)
    except ForgeQueryError:
        return {}
    return {pr.head_ref_name: pr for pr in prs}


def list_merged_heads(executor: CommandExecutor, prefix: str = "") -> list[str]:
    """List head names of the user's merged PRs, optionally filtered by prefix.

    Returns:
        Head names, or an empty list if gh fails.
    """
    result = run_gh(
        executor,
        "pr",
        "list",
        "--author",
        "@me",
        "--state",
        "merged",
        "--json",
        "headRefName",
        "--limit",
        "100",
        check=False,
    )
    if not result.ok:
        return []

    try:
        data = json.loads(result.stdout or "[]")
    except json.JSONDecodeError:
        return []

    heads = [item.get("headRefName", "") for item in data if isinstance(item, dict)]
    return [head for head in heads if head and head.startswith(prefix)]


def get_pr_for_head(executor: CommandExecutor, head: str) -> Optional[ExistingPR]:
    """Get the most recent PR for a head bookmark in any state.

    Returns:
        ExistingPR if a PR exists, None otherwise.
    """
    result = run_gh(executor, "pr", "view", head, "--json", PR_FIELDS, check=False)
    if not result.ok:
        return None

    try:
        return ExistingPR.model_validate_json(result.stdout)
    except ValidationError:
        return None


def get_pr_body(executor: CommandExecutor, number: int) -> Optional[str]:
    """Get the body of a PR, or None if it cannot be fetched."""
    result = run_gh(executor, "pr", "view", str(number), "--json", "body", check=False)
    if not result.ok:
        return None

    try:
        data = json.loads(result.stdout)
    except json.JSONDecodeError:
        return None
    body = data.get("body") if isinstance(data, dict) else None
    return body if isinstance(body, str) else None


def extract_pr_number(output: str) -> Optional[int]:
    """Extract the PR number from gh pr create output.

    Tries a /pull/<n> URL first, then a #<n> reference.
    """
    match = re.search(r"/pull/(\d+)", output)
    if match is None:
        match = re.search(r"#(\d+)", output)
    if match is None:
        return None
    return int(match.group(1))


def create_pr(
    executor: CommandExecutor,
    head: str,
    base: str,
    title: str,
    body: str,
    draft: bool = False,
) -> Optional[int]:
    """Create a new pull request.

    Args:
        executor: Executor that runs the command.
        head: Head bookmark name.
        base: Base bookmark name.
        title: PR title.
        body: PR body.
        draft: Create the PR as a draft.

    Returns:
        The new PR number, or None if gh's output did not contain one.

    Raises:
        ForgeQueryError: If PR creation fails.
    """
    # gh pr create prints the PR URL to stdout
    args = ["pr", "create", "--title", title, "--body", body, "--base", base, "--head", head]
    if draft:
        args.append("--draft")

    result = run_gh(executor, *args)
    return extract_pr_number(result.stdout)


def update_pr_base(executor: CommandExecutor, number: int, new_base: str) -> None:
    """Update the base branch of a pull request.

    Raises:
        ForgeQueryError: If update fails.
    """
    run_gh(executor, "pr", "edit", str(number), "--base", new_base)


def update_pr_body(executor: CommandExecutor, number: int, body: str) -> None:
    run_gh(executor, "pr", "edit", str(number), "--body", body)


def set_pr_draft(executor: CommandExecutor, number: int, draft: bool) -> None:
    """Mark a PR ready for review, or convert it back to a draft."""
    args = ["pr", "ready", str(number)]
    if draft:
        args.append("--undo")
    run_gh(executor, *args)
