"""Tests for stack linearity and conflict validation."""

import pytest

from jjstack import jj_ops
from jjstack.exceptions import ConflictError, NonLinearStackError, VCSExecutionError
from jjstack.validator import (
    check_conflicts,
    check_stack_linearity,
    ensure_linear_stack,
    ensure_no_conflicts,
    is_conflicted_line,
    parse_conflicted_commit,
    parse_divergent_commits,
    parse_merge_commits,
)

CONFLICT_LINE = (
    "qpvuntsm test@example.com 2024-01-15 10:30:00 feature-1* a1b2c3d4 (conflict) Add feature"
)


class TestParsers:
    """Tests for the log line parsers."""

    def test_parse_merge_commits(self) -> None:
        assert parse_merge_commits("xyz MERGE 2\n\n") == ["xyz (2 parents)"]

    def test_parse_divergent_commits(self) -> None:
        output = "abc 1\ndef 2\nghi 0\n"

        assert parse_divergent_commits(output) == ["def (2 children)"]


class TestCheckStackLinearity:
    """Tests for check_stack_linearity."""

    def test_linear(self, fake_executor) -> None:
        fake_executor.on(jj_ops.CHILDREN_TEMPLATE, stdout="abc 1\ndef 0\n")

        result = check_stack_linearity(fake_executor)

        assert result.is_linear
        assert result.message == "Stack is linear"

    def test_merge_commits(self, fake_executor) -> None:
        fake_executor.on(jj_ops.MERGE_TEMPLATE, stdout="xyz MERGE 2\n")

        result = check_stack_linearity(fake_executor)

        assert result.status == "merge"
        assert result.problematic_commits == ["xyz (2 parents)"]
        assert result.message == "Non-linear stack detected! Found 1 merge commit(s)"
        assert not fake_executor.commands(jj_ops.CHILDREN_TEMPLATE)

    def test_divergent_commits(self, fake_executor) -> None:
        fake_executor.on(jj_ops.CHILDREN_TEMPLATE, stdout="abc 2\n")

        result = check_stack_linearity(fake_executor)

        assert result.status == "divergent"
        assert result.problematic_commits == ["abc (2 children)"]

    def test_children_query_failure_is_linear(self, fake_executor) -> None:
        fake_executor.on(jj_ops.CHILDREN_TEMPLATE, returncode=1)

        result = check_stack_linearity(fake_executor)

        assert result.is_linear
        assert result.message == "Could not check for divergent branches"

    def test_merge_query_failure_raises(self, fake_executor) -> None:
        fake_executor.on(jj_ops.MERGE_TEMPLATE, returncode=1, stderr="Error")

        with pytest.raises(VCSExecutionError):
            check_stack_linearity(fake_executor)

    def test_ensure_linear_stack_raises(self, fake_executor) -> None:
        fake_executor.on(jj_ops.MERGE_TEMPLATE, stdout="xyz MERGE 2\n")

        with pytest.raises(NonLinearStackError) as exc_info:
            ensure_linear_stack(fake_executor)

        assert exc_info.value.details == ["xyz (2 parents)"]
        assert "jj rebase" in exc_info.value.suggestion


class TestParseConflictedCommit:
    """Tests for parse_conflicted_commit."""

    def test_is_conflicted_line(self) -> None:
        assert is_conflicted_line(CONFLICT_LINE)
        assert not is_conflicted_line("qpvuntsm test@example.com 2024-01-15 a1b2c3d4 Add")

    def test_with_bookmark(self) -> None:
        commit = parse_conflicted_commit(CONFLICT_LINE)

        assert commit is not None
        assert commit.change_id == "qpvuntsm"
        assert commit.bookmark == "feature-1"
        assert commit.description == "(conflict) Add feature"

    def test_without_bookmark(self) -> None:
        """The time token before the hash is not a bookmark."""
        commit = parse_conflicted_commit(
            "qpvuntsm test@example.com 2024-01-15 10:30:00 a1b2c3d4 conflict Fix"
        )

        assert commit is not None
        assert commit.bookmark == ""
        assert commit.description == "conflict Fix"

    def test_too_short(self) -> None:
        assert parse_conflicted_commit("qpvuntsm conflict") is None


class TestConflicts:
    """Tests for check_conflicts and ensure_no_conflicts."""

    def test_no_conflicts(self, fake_executor) -> None:
        fake_executor.on(
            "builtin_log_oneline",
            stdout="qpvuntsm test@example.com 2024-01-15 10:30:00 a1b2c3d4 Add feature\n",
        )

        assert not check_conflicts(fake_executor, "main").has_conflicts
        ensure_no_conflicts(fake_executor, "main")

    def test_conflicts_raise(self, fake_executor) -> None:
        fake_executor.on("builtin_log_oneline", stdout=CONFLICT_LINE + "\n")

        with pytest.raises(ConflictError) as exc_info:
            ensure_no_conflicts(fake_executor, "main")

        assert str(exc_info.value) == "Found 1 conflicted change(s) in the stack."
        assert exc_info.value.details == ["qpvuntsm feature-1 (conflict) Add feature"]
        assert fake_executor.commands("::@ ~ ::main")
