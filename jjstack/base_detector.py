"""Base branch detection from jj's trunk() revision."""

from __future__ import annotations

from typing import Optional

from jjstack import jj_ops
from jjstack.executor import CommandExecutor

COMMON_BASE_BRANCHES = ("main", "master", "trunk", "develop", "development")


def clean_bookmark_name(token: str) -> str:
    """Strip the '??' conflict marker and the '*' unsynced marker from a token."""
    name = token
    if name.endswith("??"):
        name = name[:-2]
    return name.replace("*", "")


def select_base_branch(local_bookmarks: list[str]) -> Optional[str]:
    """Pick the most conventional base name, else the first bookmark."""
    for base in COMMON_BASE_BRANCHES:
        if base in local_bookmarks:
            return base
    return local_bookmarks[0] if local_bookmarks else None


def detect_base_branch(executor: CommandExecutor) -> Optional[str]:
    """Detect the base branch from the bookmarks on trunk().

    Never raises. Returns None when jj fails or trunk() carries no local
    bookmark; callers fall back to DEFAULT_BASE_BRANCH.
    """
    output = jj_ops.get_trunk_bookmarks(executor)
    if not output or not output.strip():
        return None

    local_bookmarks = [
        clean_bookmark_name(token) for token in output.split() if "@" not in token
    ]
    local_bookmarks = [name for name in local_bookmarks if name]
    return select_base_branch(local_bookmarks)
