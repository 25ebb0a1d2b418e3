"""Stack graph resolution.

Combines the local bookmark chain with the forge's open-PR graph into one
gap-free PRChain. PRs stacked above the local bookmarks are pulled in, as
is every branch a member PR is based on. Bookmarks deleted during cleanup
are skipped by retargeting their dependents.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Optional

from jjstack import jj_ops
from jjstack.config import DEFAULT_REMOTE
from jjstack.exceptions import ChainIntegrityError, ReconciliationError
from jjstack.executor import CommandExecutor
from jjstack.models import (
    Bookmark,
    ChainBuildResult,
    ExistingPR,
    PRChain,
    PRChainNode,
    ReconcileResult,
    StackInfo,
)
from jjstack.output import Reporter

CREATED = "created"
EXISTS = "exists"
FAILED = "failed"


def _close_upward(
    members: list[str], existing_prs: Mapping[str, ExistingPR], base_branch: str
) -> None:
    """Add the recorded base of every member PR other than the base branch."""
    for _ in range(len(existing_prs) + 1):
        added = False
        for name in list(members):
            pr = existing_prs.get(name)
            if pr is None:
                continue
            base = pr.base_ref_name
            if base != base_branch and base not in members:
                members.append(base)
                added = True
        if not added:
            return
    raise ChainIntegrityError("PR base graph did not settle while walking toward the base branch")


def _close_downward(
    members: list[str], existing_prs: Mapping[str, ExistingPR], base_branch: str
) -> None:
    """Add heads of PRs that target a member."""
    for _ in range(len(existing_prs) + 1):
        added = False
        for head, pr in existing_prs.items():
            if head == base_branch or head in members:
                continue
            if pr.base_ref_name in members:
                members.append(head)
                added = True
        if not added:
            return
    raise ChainIntegrityError("PR base graph did not settle while collecting dependent PRs")


def _effective_base(
    base: str,
    existing_prs: Mapping[str, ExistingPR],
    deleted: set[str],
    base_branch: str,
) -> str:
    """Follow recorded PR bases through deleted bookmarks.

    Raises:
        ChainIntegrityError: If the deleted bookmarks' bases form a cycle.
    """
    visited: set[str] = set()
    current = base
    while current in deleted:
        if current in visited:
            raise ChainIntegrityError(
                f"Cycle in PR bases through deleted bookmarks: {' -> '.join(sorted(visited))}",
                details=sorted(visited),
            )
        visited.add(current)
        pr = existing_prs.get(current)
        if pr is None:
            return base_branch
        current = pr.base_ref_name
    return current


def _parent_map(
    survivors: list[str],
    local_names: list[str],
    existing_prs: Mapping[str, ExistingPR],
    deleted: set[str],
    base_branch: str,
) -> dict[str, str]:
    """Pick each member's parent: local order first, recorded PR base otherwise."""
    members = set(survivors)
    parents: dict[str, str] = {}

    previous_local: Optional[str] = None
    for name in local_names:
        if name not in members:
            continue
        if previous_local is not None:
            parents[name] = previous_local
        else:
            # A stale PR base pointing back into the local stack is ignored
            parent = base_branch
            pr = existing_prs.get(name)
            if pr is not None:
                candidate = _effective_base(pr.base_ref_name, existing_prs, deleted, base_branch)
                if candidate in members and candidate not in local_names:
                    parent = candidate
            parents[name] = parent
        previous_local = name

    for name in survivors:
        if name in parents:
            continue
        parent = base_branch
        pr = existing_prs.get(name)
        if pr is not None:
            candidate = _effective_base(pr.base_ref_name, existing_prs, deleted, base_branch)
            if candidate in members and candidate != name:
                parent = candidate
        parents[name] = parent

    return parents


def _base_first_order(
    members: Sequence[str], parents: Mapping[str, str], base_branch: str
) -> list[str]:
    """Place every member after its parent, visiting members in seed order.

    The local stack comes first in the seed, so it stays contiguous and
    PRs hanging off it follow the tip.

    Raises:
        ChainIntegrityError: If parent links form a cycle.
    """
    order: list[str] = []
    placed: set[str] = set()

    for name in members:
        path: list[str] = []
        current = name
        while current != base_branch and current not in placed:
            if current in path:
                raise ChainIntegrityError(
                    f"Cycle in PR bases involving '{name}'", details=path
                )
            path.append(current)
            current = parents.get(current, base_branch)

        for node in reversed(path):
            order.append(node)
            placed.add(node)

    return order


def resolve_chain_order(
    local_names: Sequence[str],
    existing_prs: Mapping[str, ExistingPR],
    base_branch: str,
    deleted_bookmarks: Iterable[str] = (),
) -> list[str]:
    """Resolve the ordered bookmark names of the PR chain, base first.

    Args:
        local_names: Local stack bookmarks, base to tip.
        existing_prs: Open PRs keyed by head bookmark.
        base_branch: Trunk bookmark; never part of the result.
        deleted_bookmarks: Bookmarks removed this run; dependents are retargeted.

    Returns:
        Bookmark names in topological order.

    Raises:
        ChainIntegrityError: If the PR base graph contains a cycle.
    """
    deleted = set(deleted_bookmarks)
    locals_ = [name for name in dict.fromkeys(local_names) if name != base_branch]

    members = list(locals_)
    _close_upward(members, existing_prs, base_branch)
    _close_downward(members, existing_prs, base_branch)

    survivors = [name for name in members if name not in deleted and name != base_branch]
    parents = _parent_map(survivors, locals_, existing_prs, deleted, base_branch)
    return _base_first_order(survivors, parents, base_branch)


def _assemble_chain(
    order: Sequence[str],
    local_bookmarks: Sequence[Bookmark],
    existing_prs: Mapping[str, ExistingPR],
    base_branch: str,
    with_local_bookmark: set[str],
) -> PRChain:
    messages = {b.name: b.commit_message for b in local_bookmarks}
    nodes = []
    previous = base_branch
    for i, name in enumerate(order):
        nodes.append(
            PRChainNode(
                bookmark=name,
                base=previous,
                title=messages.get(name) or f"Changes from {name}",
                is_bottom=i == 0,
                existing_pr=existing_prs.get(name),
                has_local_bookmark=name in with_local_bookmark,
            )
        )
        previous = name
    return PRChain(nodes, base_branch)


def build_pr_chain(
    local_bookmarks: Sequence[Bookmark],
    existing_prs: Mapping[str, ExistingPR],
    base_branch: str,
    deleted_bookmarks: Iterable[str] = (),
) -> PRChain:
    """Build the PR chain without touching the repository.

    Nodes for PRs that have no local bookmark are flagged with
    has_local_bookmark=False.
    """
    order = resolve_chain_order(
        [b.name for b in local_bookmarks], existing_prs, base_branch, deleted_bookmarks
    )
    local_names = {b.name for b in local_bookmarks}
    return _assemble_chain(order, local_bookmarks, existing_prs, base_branch, local_names)


def materialize_bookmark(
    executor: CommandExecutor,
    name: str,
    ref: str,
    dry_run: bool = False,
    reporter: Optional[Reporter] = None,
) -> tuple[str, Optional[ReconciliationError]]:
    """Create a local bookmark pointing at a remote ref.

    Returns:
        (status, error) where status is CREATED, EXISTS or FAILED and error
        is set only for FAILED.
    """
    if dry_run:
        if reporter is not None:
            reporter.intent(f"create bookmark {name} tracking {ref}")
        return CREATED, None

    result = jj_ops.create_bookmark(executor, name, ref, check=False)
    if result.ok:
        if reporter is not None:
            reporter.detail(f"  Created local bookmark {name} tracking {ref}")
        return CREATED, None
    if "already exists" in result.stderr:
        return EXISTS, None

    reason = result.stderr.strip() or f"jj exited with code {result.returncode}"
    return FAILED, ReconciliationError(name, reason)


def build_pr_chain_with_auto_create(
    executor: CommandExecutor,
    local_bookmarks: Sequence[Bookmark],
    existing_prs: Mapping[str, ExistingPR],
    base_branch: str,
    deleted_bookmarks: Iterable[str] = (),
    remote: str = DEFAULT_REMOTE,
    dry_run: bool = False,
    reporter: Optional[Reporter] = None,
) -> ChainBuildResult:
    """Build the PR chain, creating local bookmarks for PRs that lack one.

    Bookmarks are created from '<name>@<remote>'. Creation failures are
    collected, never raised; their nodes keep has_local_bookmark=False.

    Raises:
        ChainIntegrityError: If the PR base graph contains a cycle.
    """
    order = resolve_chain_order(
        [b.name for b in local_bookmarks], existing_prs, base_branch, deleted_bookmarks
    )

    with_local = {b.name for b in local_bookmarks}
    created: list[str] = []
    failures: list[ReconciliationError] = []

    for name in order:
        if name in with_local:
            continue
        status, error = materialize_bookmark(
            executor, name, f"{name}@{remote}", dry_run=dry_run, reporter=reporter
        )
        if status == CREATED:
            created.append(name)
        if error is not None:
            failures.append(error)
        else:
            with_local.add(name)

    chain = _assemble_chain(order, local_bookmarks, existing_prs, base_branch, with_local)
    return ChainBuildResult(chain=chain, created_bookmarks=created, failures=failures)


def reconcile_remote_bookmarks(
    executor: CommandExecutor,
    stack: StackInfo,
    dry_run: bool = False,
    reporter: Optional[Reporter] = None,
) -> ReconcileResult:
    """Create local bookmarks for the stack's remote-only candidates.

    Fetches from the remote first so the tracking refs are current.

    Raises:
        VCSExecutionError: If the fetch fails.
    """
    result = ReconcileResult()
    if not stack.remote_bookmarks:
        return result

    if dry_run:
        if reporter is not None:
            reporter.intent("fetch from the git remote")
    else:
        jj_ops.git_fetch(executor)

    for remote_bookmark in stack.remote_bookmarks:
        status, error = materialize_bookmark(
            executor, remote_bookmark.name, remote_bookmark.ref, dry_run=dry_run, reporter=reporter
        )
        if status == CREATED:
            result.created_bookmarks.append(remote_bookmark.name)
        if error is not None:
            result.failures.append(error)

    return result
