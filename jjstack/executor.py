"""Command execution for jj-stack-prs.

Every jj and gh invocation goes through a CommandExecutor. A non-zero
return code is the only error signal; callers decide whether it is fatal.
"""

from __future__ import annotations

import os
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence


@dataclass
class CommandResult:
    """Result of an external command execution."""

    stdout: str
    stderr: str
    returncode: int

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandExecutor(ABC):
    """Runs an argv and returns its captured output."""

    @abstractmethod
    def run(self, argv: Sequence[str]) -> CommandResult:
        """Run a command to completion without raising on a non-zero exit."""


class SubprocessExecutor(CommandExecutor):
    """Executor backed by subprocess.run.

    Args:
        cwd: Working directory for every command.
    """

    def __init__(self, cwd: Optional[Path] = None) -> None:
        self.cwd = cwd

    def run(self, argv: Sequence[str]) -> CommandResult:
        # Prevent jj and gh from opening an editor or a pager
        env = os.environ.copy()
        env["JJ_EDITOR"] = "true"
        env["GH_PROMPT_DISABLED"] = "1"
        env["GH_PAGER"] = ""

        try:
            result = subprocess.run(
                list(argv),
                capture_output=True,
                text=True,
                cwd=self.cwd,
                env=env,
            )
        except FileNotFoundError:
            return CommandResult(
                stdout="",
                stderr=f"{argv[0]}: command not found",
                returncode=127,
            )

        return CommandResult(
            stdout=result.stdout,
            stderr=result.stderr,
            returncode=result.returncode,
        )
