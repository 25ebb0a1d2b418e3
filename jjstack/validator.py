"""Linearity and conflict validation of the current stack.

A stack is submittable only if every change has one parent, no change
has more than one child, and nothing between the base and @ is conflicted.
"""

from __future__ import annotations

import re
from typing import Optional

from jjstack import jj_ops
from jjstack.exceptions import ConflictError, NonLinearStackError
from jjstack.executor import CommandExecutor
from jjstack.models import ConflictCheckResult, ConflictedCommit, LinearityCheckResult

_COMMIT_HASH_RE = re.compile(r"^[a-f0-9]{8}")
_TIME_RE = re.compile(r"^\d{2}:\d{2}(:\d{2})?$")


def parse_merge_commits(output: str) -> list[str]:
    """Parse '<id> MERGE <n>' lines into '<id> (<n> parents)' entries."""
    merges: list[str] = []
    for line in output.splitlines():
        parts = line.split()
        if len(parts) >= 3 and parts[1] == "MERGE":
            merges.append(f"{parts[0]} ({parts[2]} parents)")
    return merges


def parse_divergent_commits(output: str) -> list[str]:
    """Parse '<id> <children>' lines, keeping changes with more than one child."""
    divergent: list[str] = []
    for line in output.splitlines():
        parts = line.split()
        if len(parts) < 2 or not parts[1].isdigit():
            continue
        if int(parts[1]) > 1:
            divergent.append(f"{parts[0]} ({parts[1]} children)")
    return divergent


def check_stack_linearity(executor: CommandExecutor) -> LinearityCheckResult:
    """Check the stack for merge commits, then for divergent changes.

    Merges are reported first; divergence is only checked on a merge-free
    stack. A failed divergence query is reported as linear.

    Raises:
        VCSExecutionError: If the merge query fails.
    """
    merges = parse_merge_commits(jj_ops.get_merge_commits_log(executor))
    if merges:
        return LinearityCheckResult(
            status="merge",
            problematic_commits=merges,
            message=f"Non-linear stack detected! Found {len(merges)} merge commit(s)",
        )

    children_output = jj_ops.get_children_log(executor)
    if children_output is None:
        return LinearityCheckResult(
            status="linear", message="Could not check for divergent branches"
        )

    divergent = parse_divergent_commits(children_output)
    if divergent:
        return LinearityCheckResult(
            status="divergent",
            problematic_commits=divergent,
            message=f"Non-linear stack detected! Found {len(divergent)} divergent commit(s)",
        )

    return LinearityCheckResult(status="linear", message="Stack is linear")


def is_conflicted_line(line: str) -> bool:
    return " conflict" in line or "(conflict)" in line


def parse_conflicted_commit(line: str) -> Optional[ConflictedCommit]:
    """Parse a builtin_log_oneline line.

    The line reads '<change_id> <author> <date> [<time>] [<bookmarks>] <commit_hash>
    <description>'. The first 8-hex token after the date anchors the parse;
    the token before it is the bookmark unless it is the time.
    """
    parts = line.split()
    if len(parts) < 5:
        return None

    for i in range(3, len(parts) - 1):
        if _COMMIT_HASH_RE.match(parts[i + 1]):
            bookmark = parts[i].replace("*", "")
            if _TIME_RE.match(bookmark):
                bookmark = ""
            return ConflictedCommit(
                change_id=parts[0],
                bookmark=bookmark,
                description=" ".join(parts[i + 2 :]),
            )
    return None


def check_conflicts(executor: CommandExecutor, base_branch: str) -> ConflictCheckResult:
    """Find conflicted changes between the base branch and @.

    Raises:
        VCSExecutionError: If the log query fails.
    """
    output = jj_ops.get_oneline_log(executor, base_branch)

    conflicted: list[ConflictedCommit] = []
    for line in output.splitlines():
        if not line.strip() or not is_conflicted_line(line):
            continue
        commit = parse_conflicted_commit(line)
        if commit is not None:
            conflicted.append(commit)

    return ConflictCheckResult(conflicted_commits=conflicted)


def ensure_linear_stack(executor: CommandExecutor) -> LinearityCheckResult:
    """Raise NonLinearStackError unless the stack is linear."""
    result = check_stack_linearity(executor)
    if not result.is_linear:
        raise NonLinearStackError(result.message, result.problematic_commits)
    return result


def ensure_no_conflicts(executor: CommandExecutor, base_branch: str) -> None:
    """Raise ConflictError if any change in the stack is conflicted."""
    result = check_conflicts(executor, base_branch)
    if result.has_conflicts:
        raise ConflictError(
            [
                " ".join(part for part in (c.change_id, c.bookmark, c.description) if part)
                for c in result.conflicted_commits
            ]
        )
