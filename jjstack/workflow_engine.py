"""Workflow engine for submitting a jj stack as a chain of GitHub PRs.

Runs every stage in order: validation, auto-bookmark cleanup and creation,
stack detection, push, chain resolution, PR creation/update and the
description refresh. Each stage is idempotent so a failed run can be
repeated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from jjstack import (
    auto_bookmark,
    base_detector,
    chain_builder,
    gh_ops,
    jj_ops,
    stack_parser,
    validator,
)
from jjstack.config import DEFAULT_BASE_BRANCH, StackPrsConfig
from jjstack.exceptions import NoBookmarksError
from jjstack.executor import CommandExecutor
from jjstack.models import (
    ChainEntry,
    CleanupResult,
    ExistingPR,
    PRChain,
    PRChainNode,
    StackInfo,
)
from jjstack.output import Reporter
from jjstack.pr_description import compose_description, extract_original_body


@dataclass
class SubmitResult:
    """Result of a stack submission.

    Attributes:
        success: Whether the run completed.
        message: Human-readable outcome.
        chain: The resolved chain, if the run got that far.
        created: Bookmarks whose PR was created.
        updated: Bookmarks whose existing PR was updated.
        ready_count: PRs left ready for review.
        draft_count: PRs left as drafts.
        dry_run: True if mutations were skipped.
    """

    success: bool
    message: str = ""
    chain: Optional[PRChain] = None
    created: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    ready_count: int = 0
    draft_count: int = 0
    dry_run: bool = False


def resolve_base_branch(executor: CommandExecutor, config: StackPrsConfig) -> str:
    """Use the configured base branch, else trunk()'s bookmark, else the default."""
    if config.base_branch:
        return config.base_branch
    return base_detector.detect_base_branch(executor) or DEFAULT_BASE_BRANCH


def cleanup_auto_bookmarks(
    executor: CommandExecutor,
    config: StackPrsConfig,
    reporter: Reporter,
    dry_run: bool = False,
) -> CleanupResult:
    """Remove auto bookmarks before the stack is detected.

    With cleanup_all_auto every auto bookmark goes; otherwise only those
    whose PR is merged, closed or missing.
    """
    if config.keep_auto:
        return CleanupResult()

    names = auto_bookmark.find_auto_bookmarks(executor)
    if not names:
        return CleanupResult()

    if config.cleanup_all_auto:
        reporter.info(f"Cleaning up all {len(names)} auto-generated bookmark(s)...")
        result = auto_bookmark.cleanup_all_auto_bookmarks(
            executor, names, config.remote, dry_run=dry_run, reporter=reporter
        )
    else:
        reporter.detail("Checking auto-generated bookmarks for merged or closed PRs...")
        result = auto_bookmark.cleanup_merged_auto_bookmarks(
            executor, names, config.remote, dry_run=dry_run, reporter=reporter
        )

    for name in result.deleted:
        reporter.info(f"  - {name}: deleted")
    return result


def create_auto_bookmarks(
    executor: CommandExecutor,
    config: StackPrsConfig,
    reporter: Reporter,
    dry_run: bool = False,
) -> list[str]:
    """Create auto bookmarks for unbookmarked changes in the stack."""
    if not config.auto_bookmark:
        return []

    changes = auto_bookmark.find_unbookmarked_changes(executor)
    if not changes:
        return []

    reporter.info(f"Found {len(changes)} unbookmarked change(s), creating bookmarks...")
    names = []
    for change in changes:
        created = auto_bookmark.create_auto_bookmark(
            executor, change, dry_run=dry_run, reporter=reporter
        )
        reporter.detail(f"  {created.name} -> {change.change_id[:8]}")
        names.append(created.name)
    return names


def _report_chain(reporter: Reporter, chain: PRChain, stack: StackInfo) -> None:
    local_names = set(stack.names)
    local_count = sum(1 for name in chain.bookmarks if name in local_names)
    dependent_count = len(chain) - local_count

    if dependent_count:
        reporter.info(
            f"Detected PR chain: {len(chain)} PRs "
            f"({local_count} local bookmarks + {dependent_count} dependent PRs)"
        )
    else:
        reporter.info(f"Detected PR chain: {len(chain)} PRs")

    for i, node in enumerate(chain, start=1):
        reporter.detail(f"  {i}. {node.bookmark} → {node.base}")


def submit_chain(
    executor: CommandExecutor,
    chain: PRChain,
    config: StackPrsConfig,
    reporter: Reporter,
    dry_run: bool = False,
    commit_messages: Optional[dict[str, Optional[str]]] = None,
) -> tuple[list[ChainEntry], list[str], list[str]]:
    """Create or update one PR per chain node.

    The bottom PR is left ready for review; PRs above it are created as
    drafts when draft_dependents is set. Nodes without a local bookmark
    are skipped. A new PR starts with its commit message as the body, or
    an empty body when the change has none.

    Returns:
        (entries, created, updated) where entries describe every node.

    Raises:
        ForgeQueryError: If a PR create or edit fails.
    """
    entries: list[ChainEntry] = []
    created: list[str] = []
    updated: list[str] = []
    total = len(chain)
    messages = commit_messages or {}

    for i, node in enumerate(chain, start=1):
        existing = node.existing_pr

        if not node.has_local_bookmark:
            reporter.warn(f"Skipping {node.bookmark}: no local bookmark could be created")
            entries.append(
                ChainEntry(
                    bookmark=node.bookmark,
                    base=node.base,
                    pr_number=existing.number if existing else None,
                    is_draft=existing.is_draft if existing else True,
                )
            )
            continue

        if existing is not None:
            entry = _update_pr(executor, node, existing, i, total, reporter, dry_run)
            entries.append(entry)
            updated.append(node.bookmark)
            continue

        draft = config.draft_dependents and not node.is_bottom
        status = "draft" if draft else "ready"
        reporter.progress(i, total, "Creating PR", f"{node.bookmark} → {node.base}")

        number: Optional[int] = None
        if dry_run:
            reporter.intent(f"create {status} PR: {node.bookmark} → {node.base}")
        else:
            number = gh_ops.create_pr(
                executor,
                head=node.bookmark,
                base=node.base,
                title=node.title,
                body=messages.get(node.bookmark) or "",
                draft=draft,
            )
            if number is None:
                reporter.warn(f"Created PR for {node.bookmark} but could not read its number")
            else:
                reporter.detail(f"  Created PR #{number} ({status})")

        created.append(node.bookmark)
        entries.append(
            ChainEntry(bookmark=node.bookmark, base=node.base, pr_number=number, is_draft=draft)
        )

    return entries, created, updated


def _update_pr(
    executor: CommandExecutor,
    node: PRChainNode,
    existing: ExistingPR,
    index: int,
    total: int,
    reporter: Reporter,
    dry_run: bool,
) -> ChainEntry:
    number = existing.number
    reporter.progress(index, total, "Updating PR", f"#{number}: {node.bookmark} → {node.base}")

    if existing.base_ref_name != node.base:
        if dry_run:
            reporter.intent(f"retarget PR #{number}: {existing.base_ref_name} → {node.base}")
        else:
            gh_ops.update_pr_base(executor, existing.number, node.base)
            reporter.detail(f"  Updated base: {existing.base_ref_name} → {node.base}")

    is_draft = existing.is_draft
    if node.is_bottom and is_draft:
        if dry_run:
            reporter.intent(f"mark PR #{existing.number} ready for review")
        else:
            gh_ops.set_pr_draft(executor, existing.number, draft=False)
            reporter.detail(f"  Marked PR #{existing.number} ready for review")
        is_draft = False

    return ChainEntry(
        bookmark=node.bookmark, base=node.base, pr_number=number, is_draft=is_draft
    )


def update_descriptions(
    executor: CommandExecutor,
    entries: list[ChainEntry],
    commit_messages: dict[str, Optional[str]],
    reporter: Reporter,
    dry_run: bool = False,
) -> None:
    """Rewrite every numbered PR's body with the current stack view.

    User text already in a PR body is kept; PRs without one get their
    commit message.
    """
    numbered = [entry for entry in entries if entry.pr_number]
    if not numbered:
        return

    if dry_run:
        reporter.intent(f"update the description of {len(numbered)} PR(s)")
        return

    reporter.info("Updating PR descriptions...")
    for position, entry in enumerate(entries, start=1):
        if not entry.pr_number:
            continue

        body = gh_ops.get_pr_body(executor, entry.pr_number)
        original = extract_original_body(body) if body else None
        description = compose_description(
            entry,
            entries,
            position,
            original_body=original,
            commit_message=commit_messages.get(entry.bookmark),
        )
        gh_ops.update_pr_body(executor, entry.pr_number, description)


def run_stack_prs(
    executor: CommandExecutor,
    config: StackPrsConfig,
    reporter: Reporter,
    dry_run: bool = False,
) -> SubmitResult:
    """Submit the current jj stack as a chain of dependent PRs.

    Algorithm:
    1. Resolve the base branch and check gh authentication
    2. Validate: stack is linear and conflict-free
    3. Clean up merged (or all) auto bookmarks
    4. Create auto bookmarks for unbookmarked changes
    5. Detect the stack and drop orphaned auto bookmarks
    6. Materialize remote-only bookmarks and push
    7. Resolve the PR chain against open PRs
    8. Create or update PRs, then refresh their descriptions

    Args:
        executor: Executor for jj and gh commands.
        config: Resolved settings.
        reporter: Output sink.
        dry_run: Run every query but skip every mutation.

    Returns:
        SubmitResult with the chain and what changed.

    Raises:
        GhNotAuthenticatedError: If gh is not authenticated.
        NonLinearStackError: If the stack has merges or divergent changes.
        ConflictError: If the stack has conflicted changes.
        NoBookmarksError: If the stack has no bookmarks.
        VCSExecutionError: If a required jj command fails.
        ForgeQueryError: If a PR create or edit fails.
        ChainIntegrityError: If the PR base graph contains a cycle.
    """
    base_branch = resolve_base_branch(executor, config)
    reporter.detail(f"Using base branch: {base_branch}")

    gh_ops.require_gh_auth(executor)

    linearity = validator.ensure_linear_stack(executor)
    reporter.detail(linearity.message)
    validator.ensure_no_conflicts(executor, base_branch)

    cleanup = cleanup_auto_bookmarks(executor, config, reporter, dry_run)
    deleted = list(cleanup.deleted)

    auto_created = create_auto_bookmarks(executor, config, reporter, dry_run)

    try:
        stack = stack_parser.detect_stack(executor, base_branch, config.remote)
    except NoBookmarksError:
        if dry_run and auto_created:
            reporter.info("Dry run complete: every change in the stack would be auto-bookmarked.")
            return SubmitResult(success=True, message="Dry run complete.", dry_run=True)
        raise

    if stack.is_partial_stack:
        reporter.warn("Bookmarks above the current change are not part of this stack.")

    if not config.keep_auto:
        remaining = [
            name for name in auto_bookmark.find_auto_bookmarks(executor) if name not in deleted
        ]
        orphans = auto_bookmark.cleanup_orphaned_auto_bookmarks(
            executor,
            remaining,
            stack.names + auto_created,
            config.remote,
            dry_run=dry_run,
            reporter=reporter,
        )
        for name in orphans.deleted:
            reporter.info(f"  - {name}: no longer in the stack, deleted")
        deleted.extend(orphans.deleted)

    reconcile = chain_builder.reconcile_remote_bookmarks(
        executor, stack, dry_run=dry_run, reporter=reporter
    )
    for failure in reconcile.failures:
        reporter.warn(str(failure))

    if dry_run:
        reporter.intent("push all bookmarks with 'jj git push --all'")
    else:
        reporter.info("Pushing bookmarks...")
        jj_ops.git_push_all(executor)

    existing = gh_ops.find_existing_prs(executor)
    for name, pr in cleanup.snapshots.items():
        existing.setdefault(name, pr)

    build = chain_builder.build_pr_chain_with_auto_create(
        executor,
        stack.bookmarks,
        existing,
        base_branch,
        deleted_bookmarks=deleted,
        remote=config.remote,
        dry_run=dry_run,
        reporter=reporter,
    )
    for failure in build.failures:
        reporter.warn(str(failure))
    _report_chain(reporter, build.chain, stack)

    if not build.chain:
        return SubmitResult(success=True, message="Nothing to submit.", dry_run=dry_run)

    commit_messages = {b.name: b.commit_message for b in stack.bookmarks}
    entries, created, updated = submit_chain(
        executor, build.chain, config, reporter, dry_run, commit_messages
    )

    update_descriptions(executor, entries, commit_messages, reporter, dry_run)

    ready_count = sum(1 for entry in entries if not entry.is_draft)
    draft_count = len(entries) - ready_count
    reporter.summary(len(created), len(updated), ready_count, draft_count)

    return SubmitResult(
        success=True,
        message=f"Created {len(created)} PR(s), updated {len(updated)} PR(s).",
        chain=build.chain,
        created=created,
        updated=updated,
        ready_count=ready_count,
        draft_count=draft_count,
        dry_run=dry_run,
    )
