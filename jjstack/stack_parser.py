"""Bookmark chain parsing for the current jj lineage.

The lineage log lists one line of space-separated bookmark names per
change, tip first. Parsing turns it into a base-to-tip StackInfo.
"""

from __future__ import annotations

from typing import NamedTuple, Optional

from jjstack import jj_ops
from jjstack.config import DEFAULT_REMOTE
from jjstack.exceptions import NoBookmarksError
from jjstack.executor import CommandExecutor
from jjstack.models import Bookmark, RemoteBookmark, StackInfo

CURRENT_MARKER = "*"

# jj prints "(no bookmarks)" for changes without any
_PLACEHOLDER_TOKENS = {"(no", "bookmarks)"}


class BookmarkToken(NamedTuple):
    name: str
    is_remote: bool
    is_marked: bool


def parse_token(token: str, remote: str = DEFAULT_REMOTE) -> Optional[BookmarkToken]:
    """Parse one bookmark token from the log.

    Args:
        token: Raw token, e.g. 'feat-a*', 'feat-b@origin' or 'feat-c??'.
        remote: Primary remote. Tokens tracking any other remote are dropped.

    Returns:
        BookmarkToken, or None if the token should be ignored.
    """
    if token in _PLACEHOLDER_TOKENS:
        return None

    is_marked = CURRENT_MARKER in token
    name = token.replace(CURRENT_MARKER, "")
    if name.endswith("??"):
        name = name[:-2]

    is_remote = False
    if "@" in name:
        name, _, token_remote = name.rpartition("@")
        if token_remote != remote:
            return None
        is_remote = True

    if not name:
        return None
    return BookmarkToken(name=name, is_remote=is_remote, is_marked=is_marked)


def parse_stack(log_output: str, base_branch: str, remote: str = DEFAULT_REMOTE) -> StackInfo:
    """Parse lineage log output into an ordered StackInfo.

    Args:
        log_output: Output of the lineage query, tip first.
        base_branch: Trunk bookmark, excluded from the result.
        remote: Primary remote whose name@remote tokens are kept as candidates.

    Returns:
        StackInfo with bookmarks ordered base to tip.

    Raises:
        NoBookmarksError: If no bookmarks remain after filtering.
    """
    bookmarks: list[Bookmark] = []
    seen: set[str] = set()
    local_names: set[str] = set()
    remote_candidates: list[str] = []
    current_position: Optional[str] = None
    group_count = 0

    for line in reversed(log_output.split("\n")):
        group_id: Optional[str] = None

        for raw in line.split():
            token = parse_token(raw, remote)
            if token is None or token.name == base_branch:
                continue

            if not token.is_remote:
                local_names.add(token.name)
            if token.name in seen:
                continue
            seen.add(token.name)

            if group_id is None:
                group_count += 1
                group_id = f"commit{group_count}"

            bookmark = Bookmark(name=token.name, commit_hash=group_id)
            if token.is_marked and not token.is_remote and current_position is None:
                bookmark.is_current = True
                current_position = token.name
            if token.is_remote:
                remote_candidates.append(token.name)
            bookmarks.append(bookmark)

    if not bookmarks:
        raise NoBookmarksError()

    remote_bookmarks = [
        RemoteBookmark(name=name, remote=remote)
        for name in remote_candidates
        if name not in local_names
    ]

    return StackInfo(
        bookmarks=bookmarks,
        base_branch=base_branch,
        current_position=current_position,
        remote_bookmarks=remote_bookmarks,
    )


def detect_partial_stack(
    executor: CommandExecutor, stack: StackInfo, remote: str = DEFAULT_REMOTE
) -> bool:
    """Check whether bookmarks above the working copy are missing from the stack.

    A failed query is treated as "not partial".
    """
    output = jj_ops.get_descendant_bookmarks_log(executor)
    if output is None:
        return False

    known = set(stack.names)
    for raw in output.split():
        token = parse_token(raw, remote)
        if token is None or token.name == stack.base_branch:
            continue
        if token.name not in known:
            return True
    return False


def detect_stack(
    executor: CommandExecutor, base_branch: str, remote: str = DEFAULT_REMOTE
) -> StackInfo:
    """Detect the bookmark stack of the current lineage.

    Args:
        executor: Executor for jj commands.
        base_branch: Trunk bookmark the stack sits on.
        remote: Primary remote name.

    Returns:
        StackInfo with commit messages filled in where available.

    Raises:
        VCSExecutionError: If the lineage query fails.
        NoBookmarksError: If the lineage has no bookmarks.
    """
    stack = parse_stack(jj_ops.get_lineage_log(executor), base_branch, remote)

    remote_only = {rb.name: rb.ref for rb in stack.remote_bookmarks}
    for bookmark in stack.bookmarks:
        revision = remote_only.get(bookmark.name, bookmark.name)
        bookmark.commit_message = jj_ops.get_description(executor, revision)

    stack.is_partial_stack = detect_partial_stack(executor, stack, remote)
    return stack
