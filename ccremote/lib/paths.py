#!/usr/bin/env python3
"""
Path resolution for ccremote.

All persisted files live under a single home directory so that every hook
process and CLI invocation on the machine sees the same store.

Optional environment variables:
- $CCREMOTE_HOME: Override the home directory (default: ~/.ccremote)
"""

from __future__ import annotations

import os
from datetime import datetime
from pathlib import Path

HOME_ENV_VAR = "CCREMOTE_HOME"
DEFAULT_HOME_DIRNAME = ".ccremote"


def get_home_dir() -> Path:
    """
    Get the ccremote home directory.

    Resolution strategy:
    1. $CCREMOTE_HOME if set
    2. ~/.ccremote

    The directory is not created here; writers create it on demand.

    Returns:
        Path: Absolute path to the home directory
    """
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override).expanduser().resolve()
    return Path.home() / DEFAULT_HOME_DIRNAME


def get_state_file() -> Path:
    """Get the persisted remote-mode state file (home/state.json)."""
    return get_home_dir() / "state.json"


def get_config_file() -> Path:
    """Get the configuration file (home/config.yaml)."""
    return get_home_dir() / "config.yaml"


def get_logs_dir() -> Path:
    """Get the hook log directory (home/logs)."""
    return get_home_dir() / "logs"


def get_hook_log_path(date: str | None = None) -> Path:
    """Get the per-day JSONL hook log path, creating its directory.

    Args:
        date: YYYY-MM-DD string. Defaults to today (local time).

    Returns:
        Path to logs/hooks-<date>.jsonl
    """
    if date is None:
        date = datetime.now().strftime("%Y-%m-%d")
    logs_dir = get_logs_dir()
    logs_dir.mkdir(parents=True, exist_ok=True)
    return logs_dir / f"hooks-{date}.jsonl"


def lock_path_for(path: Path) -> Path:
    """Sidecar lock file used to serialize writers of ``path``."""
    return path.with_suffix(path.suffix + ".lock")
