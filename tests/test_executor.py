"""Tests for command execution."""

import subprocess

import pytest

from jjstack.executor import CommandExecutor, CommandResult, SubprocessExecutor


class TestCommandResult:
    """Tests for CommandResult."""

    def test_ok_on_zero_exit(self) -> None:
        assert CommandResult(stdout="", stderr="", returncode=0).ok is True

    def test_not_ok_on_nonzero_exit(self) -> None:
        assert CommandResult(stdout="", stderr="boom", returncode=1).ok is False


class TestCommandExecutor:
    """Tests for the CommandExecutor interface."""

    def test_cannot_be_instantiated(self) -> None:
        with pytest.raises(TypeError):
            CommandExecutor()

    def test_subclass_must_implement_run(self) -> None:
        class Incomplete(CommandExecutor):
            pass

        with pytest.raises(TypeError):
            Incomplete()


class TestSubprocessExecutor:
    """Tests for SubprocessExecutor."""

    def test_captures_output(self, mock_subprocess) -> None:
        """stdout, stderr and returncode are copied from the process."""
        mock_subprocess.return_value = subprocess.CompletedProcess(
            args=["jj", "root"],
            returncode=0,
            stdout="/home/user/repo\n",
            stderr="",
        )

        result = SubprocessExecutor().run(["jj", "root"])

        assert result.stdout == "/home/user/repo\n"
        assert result.returncode == 0

    def test_nonzero_exit_is_returned_not_raised(self, mock_subprocess) -> None:
        """A failing command is reported through its return code."""
        mock_subprocess.return_value = subprocess.CompletedProcess(
            args=["gh", "pr", "view"],
            returncode=1,
            stdout="",
            stderr="no pull request found",
        )

        result = SubprocessExecutor().run(["gh", "pr", "view"])

        assert result.returncode == 1
        assert result.stderr == "no pull request found"

    def test_runs_with_text_capture_and_cwd(self, mock_subprocess, tmp_path) -> None:
        """Commands run in the configured directory with captured text output."""
        SubprocessExecutor(cwd=tmp_path).run(["jj", "log"])

        args, kwargs = mock_subprocess.call_args
        assert args[0] == ["jj", "log"]
        assert kwargs["capture_output"] is True
        assert kwargs["text"] is True
        assert kwargs["cwd"] == tmp_path

    def test_disables_editor_and_prompts(self, mock_subprocess) -> None:
        """jj and gh never open an editor, a pager or a prompt."""
        SubprocessExecutor().run(["gh", "pr", "list"])

        env = mock_subprocess.call_args.kwargs["env"]
        assert env["JJ_EDITOR"] == "true"
        assert env["GH_PROMPT_DISABLED"] == "1"
        assert env["GH_PAGER"] == ""

    def test_missing_binary_returns_127(self, mocker) -> None:
        """A missing executable yields returncode 127 instead of raising."""
        mocker.patch("subprocess.run", side_effect=FileNotFoundError("jj"))

        result = SubprocessExecutor().run(["jj", "root"])

        assert result.returncode == 127
        assert "jj" in result.stderr
