"""Data models for jj-stack-prs.

Entities are pydantic models; run results are plain dataclasses.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from jjstack.exceptions import ChainIntegrityError, ReconciliationError


class Bookmark(BaseModel):
    """A named pointer to a change in the local stack.

    Attributes:
        name: Bookmark name.
        commit_hash: Commit group id shared by bookmarks on the same change.
        commit_message: First line of the change description, if known.
        is_current: True if this bookmark carries the working-copy marker.
    """

    name: str
    commit_hash: str | None = None
    commit_message: str | None = None
    is_current: bool = False


class RemoteBookmark(BaseModel):
    """A bookmark known only on a remote (e.g. feat/x@origin)."""

    name: str
    remote: str

    @property
    def ref(self) -> str:
        return f"{self.name}@{self.remote}"


class StackInfo(BaseModel):
    """The ordered bookmarks of the current lineage.

    Attributes:
        bookmarks: Bookmarks ordered from closest-to-base to tip.
        base_branch: Trunk bookmark the stack sits on. Never in bookmarks.
        current_position: Name of the bookmark at the working copy, if any.
        remote_bookmarks: Candidates seen only as name@remote in the log.
        is_partial_stack: True if bookmarks exist above the resolved chain.
    """

    bookmarks: list[Bookmark] = Field(default_factory=list)
    base_branch: str
    current_position: str | None = None
    remote_bookmarks: list[RemoteBookmark] = Field(default_factory=list)
    is_partial_stack: bool = False

    @model_validator(mode="after")
    def _check_bookmarks(self) -> StackInfo:
        names = [b.name for b in self.bookmarks]
        if len(names) != len(set(names)):
            raise ValueError("bookmark names must be unique")
        if self.base_branch in names:
            raise ValueError(f"base branch '{self.base_branch}' cannot be part of the stack")
        if sum(1 for b in self.bookmarks if b.is_current) > 1:
            raise ValueError("at most one bookmark can be current")
        return self

    @property
    def names(self) -> list[str]:
        return [b.name for b in self.bookmarks]


class ExistingPR(BaseModel):
    """An open pull request as reported by gh."""

    model_config = ConfigDict(populate_by_name=True)

    number: int
    head_ref_name: str = Field(alias="headRefName")
    base_ref_name: str = Field(alias="baseRefName")
    is_draft: bool = Field(default=False, alias="isDraft")
    state: str = "OPEN"


class PRChainNode(BaseModel):
    """One pull request slot in the resolved chain.

    Attributes:
        bookmark: Head bookmark of the PR.
        base: Bookmark (or base branch) the PR targets.
        title: PR title for creation.
        is_bottom: True only for the PR targeting the base branch.
        existing_pr: The open PR for this head, if one exists.
        has_local_bookmark: False if the bookmark could not be materialized locally.
    """

    bookmark: str
    base: str
    title: str
    is_bottom: bool = False
    existing_pr: ExistingPR | None = None
    has_local_bookmark: bool = True


class PRChain(Sequence):
    """Ordered base-to-tip sequence of PRChainNode.

    The constructor checks the chain shape, so a PRChain in hand is always
    gap-free: the first node targets the base branch and every other node
    targets its predecessor.
    """

    def __init__(self, nodes: Sequence[PRChainNode], base_branch: str) -> None:
        self._nodes = tuple(nodes)
        self.base_branch = base_branch
        self._validate()

    def _validate(self) -> None:
        seen: set[str] = set()
        previous = self.base_branch
        for index, node in enumerate(self._nodes):
            if node.bookmark in seen:
                raise ChainIntegrityError(f"Bookmark '{node.bookmark}' appears twice in the chain")
            if node.bookmark == self.base_branch:
                raise ChainIntegrityError(
                    f"Base branch '{self.base_branch}' cannot be part of the chain"
                )
            if node.base != previous:
                raise ChainIntegrityError(
                    f"Chain gap: '{node.bookmark}' targets '{node.base}', expected '{previous}'"
                )
            if node.is_bottom != (index == 0):
                raise ChainIntegrityError("Only the first node can be the bottom of the chain")
            seen.add(node.bookmark)
            previous = node.bookmark

    def __getitem__(self, index):
        return self._nodes[index]

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[PRChainNode]:
        return iter(self._nodes)

    def __repr__(self) -> str:
        return f"PRChain({' -> '.join([self.base_branch, *self.bookmarks])})"

    @property
    def bookmarks(self) -> list[str]:
        return [node.bookmark for node in self._nodes]

    def index_of(self, bookmark: str) -> int:
        """Return the 0-based position of a bookmark in the chain."""
        return self.bookmarks.index(bookmark)


class UnbookmarkedChange(BaseModel):
    """A mutable change in the stack with no bookmark."""

    change_id: str
    description: str = ""


class AutoBookmark(BaseModel):
    """A bookmark created by this tool for an unbookmarked change."""

    name: str
    change_id: str
    is_temporary: bool = True


class ConflictedCommit(BaseModel):
    change_id: str
    bookmark: str = ""
    description: str = ""


class LinearityCheckResult(BaseModel):
    """Outcome of the merge and divergence checks."""

    status: Literal["linear", "merge", "divergent"]
    problematic_commits: list[str] = Field(default_factory=list)
    message: str = ""

    @property
    def is_linear(self) -> bool:
        return self.status == "linear"


class ConflictCheckResult(BaseModel):
    conflicted_commits: list[ConflictedCommit] = Field(default_factory=list)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicted_commits)


class ChainEntry(BaseModel):
    """A chain item as rendered in PR descriptions."""

    bookmark: str
    base: str
    pr_number: int | None = None
    is_draft: bool = False


@dataclass
class CleanupResult:
    """Result of an auto-bookmark cleanup pass.

    Attributes:
        deleted: Bookmarks that were (or in dry-run, would be) deleted.
        kept: Bookmarks left in place.
        snapshots: PRs looked up during cleanup, keyed by head name.
    """

    deleted: list[str] = field(default_factory=list)
    kept: list[str] = field(default_factory=list)
    snapshots: dict[str, ExistingPR] = field(default_factory=dict)


@dataclass
class ReconcileResult:
    """Result of materializing remote-only bookmarks locally."""

    created_bookmarks: list[str] = field(default_factory=list)
    failures: list[ReconciliationError] = field(default_factory=list)


@dataclass
class ChainBuildResult:
    """Result of building the PR chain with bookmark materialization."""

    chain: PRChain
    created_bookmarks: list[str] = field(default_factory=list)
    failures: list[ReconciliationError] = field(default_factory=list)

