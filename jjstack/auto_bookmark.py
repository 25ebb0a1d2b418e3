"""Lifecycle of auto-generated bookmarks.

Unbookmarked changes in the stack get an ephemeral 'auto/jjsp-*' bookmark
so each change can have its own PR. Cleanup only ever touches names with
that prefix; user bookmarks that merely start with 'auto/' are left alone.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Optional

from jjstack import gh_ops, jj_ops
from jjstack.config import DEFAULT_REMOTE
from jjstack.executor import CommandExecutor
from jjstack.models import AutoBookmark, CleanupResult, UnbookmarkedChange
from jjstack.output import Reporter

AUTO_BOOKMARK_PREFIX = "auto/jjsp-"
MAX_SLUG_LENGTH = 30

_CONVENTIONAL_PREFIX_RE = re.compile(
    r"^(feat|fix|docs|style|refactor|test|chore|perf|ci|build|revert)(\([^)]+\))?:\s*",
    re.IGNORECASE,
)


def is_auto_bookmark(name: str) -> bool:
    return name.startswith(AUTO_BOOKMARK_PREFIX)


def generate_bookmark_name(message: str, change_id: str) -> str:
    """Generate a deterministic auto bookmark name for a change.

    Args:
        message: Commit description; only the first line is used.
        change_id: jj change id; its first 6 characters suffix the name.

    Returns:
        Name of the form 'auto/jjsp-<slug>-<short id>'.

    Example:
        >>> generate_bookmark_name("feat: add user authentication", "abc123")
        'auto/jjsp-add-user-authentication-abc123'
    """
    first_line = message.split("\n", 1)[0]
    slug = _CONVENTIONAL_PREFIX_RE.sub("", first_line, count=1)
    slug = re.sub(r"[^a-zA-Z0-9\s]", " ", slug)
    slug = re.sub(r"\s+", " ", slug).lower().strip().replace(" ", "-")
    slug = slug[:MAX_SLUG_LENGTH].rstrip("-")

    if not slug:
        slug = "change"

    return f"{AUTO_BOOKMARK_PREFIX}{slug}-{change_id[:6]}"


def _merged_auto_suffixes(executor: CommandExecutor) -> list[str]:
    """Short change ids taken from the heads of merged auto-bookmark PRs."""
    suffixes = []
    for head in gh_ops.list_merged_heads(executor, AUTO_BOOKMARK_PREFIX):
        suffix = head.rsplit("-", 1)[-1]
        if suffix:
            suffixes.append(suffix)
    return suffixes


def find_unbookmarked_changes(executor: CommandExecutor) -> list[UnbookmarkedChange]:
    """Find mutable changes in the stack that need an auto bookmark.

    Skips the root change, changes that already carry a bookmark, empty
    changes, and changes whose PR was already merged under an auto bookmark.

    Returns:
        Changes ordered from base to tip.

    Raises:
        VCSExecutionError: If the stack query fails.
    """
    output = jj_ops.get_mutable_changes_log(executor)
    empty_ids = jj_ops.get_empty_change_ids(executor)
    merged_suffixes = _merged_auto_suffixes(executor)

    changes: list[UnbookmarkedChange] = []
    for line in reversed(output.splitlines()):
        if not line.strip():
            continue

        change_id, _, bookmarks = line.strip().partition(" ")
        if set(change_id) == {"z"}:
            continue
        if bookmarks.strip():
            continue
        if change_id in empty_ids:
            continue
        if any(change_id.startswith(suffix) for suffix in merged_suffixes):
            continue

        description = jj_ops.get_description(executor, change_id) or ""
        changes.append(UnbookmarkedChange(change_id=change_id, description=description))

    return changes


def create_auto_bookmark(
    executor: CommandExecutor,
    change: UnbookmarkedChange,
    dry_run: bool = False,
    reporter: Optional[Reporter] = None,
) -> AutoBookmark:
    """Create an auto bookmark on a change.

    Raises:
        VCSExecutionError: If jj refuses to create the bookmark.
    """
    name = generate_bookmark_name(change.description, change.change_id)

    if dry_run:
        if reporter is not None:
            reporter.intent(f"create bookmark {name} at {change.change_id[:8]}")
    else:
        jj_ops.create_bookmark(executor, name, change.change_id)

    return AutoBookmark(name=name, change_id=change.change_id)


def find_auto_bookmarks(executor: CommandExecutor) -> list[str]:
    """List local auto bookmarks. A failed listing yields none."""
    output = jj_ops.list_bookmarks(executor)
    if output is None:
        return []

    names: list[str] = []
    for line in output.splitlines():
        trimmed = line.strip()
        if not is_auto_bookmark(trimmed):
            continue
        # Lines read "name: <change> <commit> <description>"
        name = trimmed.split(":", 1)[0].strip().split()[0]
        if name not in names:
            names.append(name)
    return names


def _delete_auto_bookmark(
    executor: CommandExecutor,
    name: str,
    remote: str,
    dry_run: bool,
    reporter: Optional[Reporter],
) -> bool:
    """Delete a bookmark and forget its remote-tracking ref.

    Returns:
        True if the bookmark was (or in dry-run, would be) deleted.
    """
    if dry_run:
        if reporter is not None:
            reporter.intent(f"delete bookmark {name}")
        return True

    result = jj_ops.delete_bookmark(executor, name, check=False)
    if not result.ok:
        if reporter is not None:
            reporter.warn(f"Could not delete bookmark {name}: {result.stderr.strip()}")
        return False

    # The remote-tracking ref may already be gone
    jj_ops.forget_bookmark(executor, f"{name}@{remote}", check=False)
    return True


def cleanup_merged_auto_bookmarks(
    executor: CommandExecutor,
    names: Iterable[str],
    remote: str = DEFAULT_REMOTE,
    dry_run: bool = False,
    reporter: Optional[Reporter] = None,
) -> CleanupResult:
    """Delete auto bookmarks whose PR is merged, closed, or missing.

    Args:
        executor: Executor for jj and gh commands.
        names: Candidate bookmarks; names without the auto prefix are ignored.
        remote: Remote whose tracking ref is forgotten after deletion.
        dry_run: Report deletions without performing them.
        reporter: Receives dry-run intents and deletion warnings.

    Returns:
        CleanupResult whose snapshots hold every PR found during lookup.
    """
    result = CleanupResult()

    for name in names:
        if not is_auto_bookmark(name):
            continue

        pr = gh_ops.get_pr_for_head(executor, name)
        if pr is not None:
            result.snapshots[name] = pr

        if pr is not None and pr.state not in ("MERGED", "CLOSED"):
            result.kept.append(name)
            continue

        if _delete_auto_bookmark(executor, name, remote, dry_run, reporter):
            result.deleted.append(name)
        else:
            result.kept.append(name)

    return result


def cleanup_orphaned_auto_bookmarks(
    executor: CommandExecutor,
    names: Iterable[str],
    stack_names: Iterable[str],
    remote: str = DEFAULT_REMOTE,
    dry_run: bool = False,
    reporter: Optional[Reporter] = None,
) -> CleanupResult:
    """Delete auto bookmarks that are no longer part of the current stack."""
    result = CleanupResult()
    in_stack = set(stack_names)

    for name in names:
        if not is_auto_bookmark(name):
            continue
        if name in in_stack:
            result.kept.append(name)
        elif _delete_auto_bookmark(executor, name, remote, dry_run, reporter):
            result.deleted.append(name)
        else:
            result.kept.append(name)

    return result


def cleanup_all_auto_bookmarks(
    executor: CommandExecutor,
    names: Iterable[str],
    remote: str = DEFAULT_REMOTE,
    dry_run: bool = False,
    reporter: Optional[Reporter] = None,
) -> CleanupResult:
    """Delete every auto bookmark regardless of PR state."""
    result = CleanupResult()

    for name in names:
        if not is_auto_bookmark(name):
            continue
        if _delete_auto_bookmark(executor, name, remote, dry_run, reporter):
            result.deleted.append(name)
        else:
            result.kept.append(name)

    return result
