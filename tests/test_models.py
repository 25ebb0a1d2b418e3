"""Tests for jj-stack-prs data models."""

import pytest
from pydantic import ValidationError

from jjstack.exceptions import ChainIntegrityError
from jjstack.models import (
    Bookmark,
    ExistingPR,
    LinearityCheckResult,
    PRChain,
    PRChainNode,
    RemoteBookmark,
    StackInfo,
)


def node(bookmark: str, base: str, is_bottom: bool = False) -> PRChainNode:
    return PRChainNode(bookmark=bookmark, base=base, title=bookmark, is_bottom=is_bottom)


class TestStackInfo:
    """Tests for StackInfo validation."""

    def test_valid_stack(self) -> None:
        stack = StackInfo(
            bookmarks=[Bookmark(name="feat-a"), Bookmark(name="feat-b", is_current=True)],
            base_branch="main",
            current_position="feat-b",
        )

        assert stack.names == ["feat-a", "feat-b"]
        assert stack.is_partial_stack is False

    def test_rejects_duplicate_names(self) -> None:
        with pytest.raises(ValidationError):
            StackInfo(
                bookmarks=[Bookmark(name="feat-a"), Bookmark(name="feat-a")],
                base_branch="main",
            )

    def test_rejects_base_branch_in_bookmarks(self) -> None:
        with pytest.raises(ValidationError):
            StackInfo(bookmarks=[Bookmark(name="main")], base_branch="main")

    def test_rejects_two_current_bookmarks(self) -> None:
        with pytest.raises(ValidationError):
            StackInfo(
                bookmarks=[
                    Bookmark(name="feat-a", is_current=True),
                    Bookmark(name="feat-b", is_current=True),
                ],
                base_branch="main",
            )


class TestRemoteBookmark:
    def test_ref(self) -> None:
        assert RemoteBookmark(name="feat-a", remote="origin").ref == "feat-a@origin"


class TestExistingPR:
    """Tests for ExistingPR parsing."""

    def test_parses_gh_json(self) -> None:
        """gh's camelCase field names map onto the model."""
        pr = ExistingPR.model_validate_json(
            '{"number": 42, "headRefName": "feat-a", "baseRefName": "main", '
            '"isDraft": true, "state": "OPEN"}'
        )

        assert pr.number == 42
        assert pr.head_ref_name == "feat-a"
        assert pr.base_ref_name == "main"
        assert pr.is_draft is True
        assert pr.state == "OPEN"

    def test_accepts_field_names(self) -> None:
        pr = ExistingPR(number=1, head_ref_name="feat-a", base_ref_name="main")

        assert pr.is_draft is False
        assert pr.state == "OPEN"


class TestPRChain:
    """Tests for PRChain construction checks."""

    def test_valid_chain(self) -> None:
        chain = PRChain(
            [node("feat-a", "main", is_bottom=True), node("feat-b", "feat-a")], "main"
        )

        assert len(chain) == 2
        assert chain.bookmarks == ["feat-a", "feat-b"]
        assert chain[1].base == "feat-a"
        assert chain.index_of("feat-b") == 1
        assert [n.bookmark for n in chain] == ["feat-a", "feat-b"]

    def test_empty_chain_is_valid(self) -> None:
        assert len(PRChain([], "main")) == 0

    def test_rejects_gap(self) -> None:
        """Every node must target its predecessor."""
        with pytest.raises(ChainIntegrityError):
            PRChain([node("feat-a", "main", is_bottom=True), node("feat-b", "main")], "main")

    def test_rejects_wrong_bottom_base(self) -> None:
        with pytest.raises(ChainIntegrityError):
            PRChain([node("feat-a", "develop", is_bottom=True)], "main")

    def test_rejects_bottom_flag_above_first(self) -> None:
        with pytest.raises(ChainIntegrityError):
            PRChain(
                [node("feat-a", "main", is_bottom=True), node("feat-b", "feat-a", is_bottom=True)],
                "main",
            )

    def test_rejects_missing_bottom_flag(self) -> None:
        with pytest.raises(ChainIntegrityError):
            PRChain([node("feat-a", "main")], "main")

    def test_rejects_duplicates(self) -> None:
        with pytest.raises(ChainIntegrityError):
            PRChain(
                [node("feat-a", "main", is_bottom=True), node("feat-a", "feat-a")],
                "main",
            )


class TestLinearityCheckResult:
    def test_is_linear(self) -> None:
        assert LinearityCheckResult(status="linear").is_linear is True
        assert LinearityCheckResult(status="merge").is_linear is False
        assert LinearityCheckResult(status="divergent").is_linear is False

    def test_rejects_unknown_status(self) -> None:
        with pytest.raises(ValidationError):
            LinearityCheckResult(status="tangled")
