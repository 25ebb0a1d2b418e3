"""Shared pytest fixtures for jj-stack-prs tests."""

from __future__ import annotations

import subprocess
from collections.abc import Sequence
from typing import TYPE_CHECKING

import pytest

from jjstack.executor import CommandExecutor, CommandResult
from jjstack.output import Reporter

if TYPE_CHECKING:
    from unittest.mock import MagicMock

    from pytest_mock import MockerFixture


class FakeExecutor(CommandExecutor):
    """Executor that records every argv and replays canned results.

    Rules are matched in registration order; a rule applies when every one
    of its fragments is an element of the argv. Unmatched commands succeed
    with empty output.

    Example:
        fake.on("jj", "bookmark", "list", stdout="feat-a: abc123 desc\\n")
        fake.on("gh", "auth", "status", returncode=1, stderr="not logged in")
    """

    def __init__(self) -> None:
        self.rules: list[tuple[tuple[str, ...], CommandResult]] = []
        self.calls: list[list[str]] = []

    def on(
        self,
        *fragments: str,
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
    ) -> FakeExecutor:
        self.rules.append((fragments, CommandResult(stdout, stderr, returncode)))
        return self

    def run(self, argv: Sequence[str]) -> CommandResult:
        cmd = list(argv)
        self.calls.append(cmd)
        for fragments, result in self.rules:
            if all(fragment in cmd for fragment in fragments):
                return result
        return CommandResult(stdout="", stderr="", returncode=0)

    def commands(self, *fragments: str) -> list[list[str]]:
        """Recorded argvs containing every fragment."""
        return [cmd for cmd in self.calls if all(fragment in cmd for fragment in fragments)]


@pytest.fixture
def fake_executor() -> FakeExecutor:
    """A FakeExecutor with no rules; every command succeeds with no output."""
    return FakeExecutor()


@pytest.fixture
def reporter() -> Reporter:
    return Reporter(verbose=True)


@pytest.fixture
def mock_subprocess(mocker: MockerFixture) -> MagicMock:
    """Mock subprocess.run for testing the real executor without side effects.

    Returns a MagicMock defaulting to a successful empty result.
    """
    mock = mocker.patch("subprocess.run")
    mock.return_value = subprocess.CompletedProcess(
        args=[],
        returncode=0,
        stdout="",
        stderr="",
    )
    return mock
