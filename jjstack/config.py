"""Configuration for jj-stack-prs.

Settings are read from an optional .jj-stack-prs.json file at the
repository root and overridden by command-line flags.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ValidationError

from jjstack.exceptions import ConfigError

CONFIG_FILENAME = ".jj-stack-prs.json"
DEFAULT_BASE_BRANCH = "master"
DEFAULT_REMOTE = "origin"


class StackPrsConfig(BaseModel):
    """Settings for a stack submission run.

    Attributes:
        base_branch: Trunk bookmark PRs target. None means auto-detect.
        remote: Primary remote whose bookmarks are treated as local candidates.
        auto_bookmark: Create auto/jjsp-* bookmarks for unbookmarked changes.
        keep_auto: Skip cleanup of auto-generated bookmarks.
        cleanup_all_auto: Delete every auto-generated bookmark before running.
        draft_dependents: Create PRs above the bottom of the stack as drafts.
    """

    base_branch: Optional[str] = None
    remote: str = DEFAULT_REMOTE
    auto_bookmark: bool = True
    keep_auto: bool = False
    cleanup_all_auto: bool = False
    draft_dependents: bool = True


def get_config_path(repo_root: Path) -> Path:
    """Get the path to the config file.

    Args:
        repo_root: Repository root directory.

    Returns:
        Path to .jj-stack-prs.json.
    """
    return repo_root / CONFIG_FILENAME


def load_config(repo_root: Path) -> StackPrsConfig:
    """Load the config from disk.

    Args:
        repo_root: Repository root directory.

    Returns:
        StackPrsConfig loaded from file, or the defaults if the file doesn't exist.

    Raises:
        ConfigError: If the config file exists but is invalid.
    """
    config_path = get_config_path(repo_root)

    if not config_path.exists():
        return StackPrsConfig()

    try:
        content = config_path.read_text()
        return StackPrsConfig.model_validate_json(content)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in config file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"Invalid config format: {e}") from e


def apply_overrides(config: StackPrsConfig, **overrides: object) -> StackPrsConfig:
    """Return a copy of config with every non-None override applied."""
    updates = {key: value for key, value in overrides.items() if value is not None}
    return config.model_copy(update=updates)


def validate_options(config: StackPrsConfig) -> list[str]:
    """Check a resolved config for contradictory or empty options.

    Returns:
        List of error messages. Empty when the options are valid.
    """
    errors: list[str] = []

    if config.keep_auto and config.cleanup_all_auto:
        errors.append("Cannot use --keep-auto and --cleanup-all-auto together")

    if config.base_branch is not None and not config.base_branch.strip():
        errors.append("Base branch cannot be empty")

    if not config.remote.strip():
        errors.append("Remote cannot be empty")

    return errors
