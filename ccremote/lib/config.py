"""Configuration for ccremote.

Config file: <home>/config.yaml (see lib/paths.py)

Example:

    notification:
      channel: ntfy
      recipient: my-remote-topic       # ntfy topic messages are published to
      server: https://ntfy.sh
      reply_topic: ""                  # defaults to <recipient>-reply
      token: ""                        # optional ntfy access token
      priority: 4
      tags: robot,ccremote
    wait:
      timeout: 0                       # seconds, 0 waits indefinitely
      poll_interval: 3.0

A missing file yields the defaults; `ccremote config` writes it. The token
may also be supplied through $NTFY_TOKEN, which takes precedence.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from ccremote.lib.errors import ConfigError
from ccremote.lib.fileio import atomic_write_text
from ccremote.lib.paths import get_config_file

logger = logging.getLogger(__name__)

TOKEN_ENV_VAR = "NTFY_TOKEN"


class NotificationConfig(BaseModel):
    """Where notifications go and how replies come back."""

    channel: str = "ntfy"
    recipient: str = ""
    server: str = "https://ntfy.sh"
    reply_topic: str = ""
    token: str = ""
    priority: int = Field(default=4, ge=1, le=5)
    tags: str = "robot,ccremote"


class WaitConfig(BaseModel):
    """Reply wait behaviour."""

    timeout: int = Field(default=0, ge=0)
    poll_interval: float = Field(default=3.0, gt=0)


class RemoteConfig(BaseModel):
    notification: NotificationConfig = Field(default_factory=NotificationConfig)
    wait: WaitConfig = Field(default_factory=WaitConfig)

    def effective_token(self) -> str:
        """Access token, preferring $NTFY_TOKEN over the config file."""
        return os.environ.get(TOKEN_ENV_VAR) or self.notification.token

    def require_recipient(self, override: str | None = None) -> str:
        """Resolve the recipient, failing if neither override nor config has one.

        Raises:
            ConfigError: If no recipient is configured.
        """
        recipient = (override or self.notification.recipient).strip()
        if not recipient:
            raise ConfigError(
                "No notification recipient configured.\n"
                "Set one with:\n"
                "  ccremote config --recipient <topic>\n"
                "or pass --to-id for a single command."
            )
        return recipient


def load_config(path: Path | None = None) -> RemoteConfig:
    """Load configuration from YAML.

    Args:
        path: Config file path. Defaults to <home>/config.yaml.

    Returns:
        RemoteConfig; defaults when the file does not exist.

    Raises:
        ConfigError: If the file exists but is not valid YAML or fails validation.
    """
    path = path or get_config_file()
    if not path.exists():
        logger.debug(f"No config file at {path}, using defaults")
        return RemoteConfig()

    try:
        data: Any = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to read config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at the top level")

    try:
        return RemoteConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config file {path}:\n{e}") from e


def save_config(config: RemoteConfig, path: Path | None = None) -> Path:
    """Write configuration to YAML atomically. Returns the path written."""
    path = path or get_config_file()
    content = yaml.safe_dump(
        config.model_dump(mode="json"), sort_keys=False, allow_unicode=True
    )
    atomic_write_text(path, content)
    return path


def update_config(
    path: Path | None = None,
    *,
    channel: str | None = None,
    recipient: str | None = None,
    server: str | None = None,
    reply_topic: str | None = None,
    timeout: int | None = None,
    poll_interval: float | None = None,
) -> RemoteConfig:
    """Apply the given non-None fields to the stored config and save it.

    Raises:
        ConfigError: If the resulting config fails validation.
    """
    config = load_config(path)
    notification = config.notification.model_dump()
    wait = config.wait.model_dump()

    for key, value in (
        ("channel", channel),
        ("recipient", recipient),
        ("server", server),
        ("reply_topic", reply_topic),
    ):
        if value is not None:
            notification[key] = value
    if timeout is not None:
        wait["timeout"] = timeout
    if poll_interval is not None:
        wait["poll_interval"] = poll_interval

    try:
        updated = RemoteConfig(
            notification=NotificationConfig.model_validate(notification),
            wait=WaitConfig.model_validate(wait),
        )
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration value:\n{e}") from e

    save_config(updated, path)
    return updated
