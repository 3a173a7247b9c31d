"""Error taxonomy for ccremote.

A reply timeout is an expected outcome and is modelled as a Decision
(lib/decision.py), not as an exception.
"""

from __future__ import annotations


class CcRemoteError(Exception):
    """Base class for errors surfaced to the invoking process."""


class StoreContention(CcRemoteError):
    """Raised when the state lock cannot be acquired in time. Retryable."""

    def __init__(self, lock_path: str, timeout: float):
        super().__init__(
            f"Could not lock {lock_path} within {timeout:g}s; "
            "another ccremote process is holding it. Retry the command."
        )
        self.lock_path = lock_path
        self.timeout = timeout


class ChannelSendFailed(CcRemoteError):
    """Raised when the notification channel could not deliver a message."""


class ChannelReceiveFailed(CcRemoteError):
    """Raised when waiting for a reply fails for a reason other than timeout."""


class MalformedHookInput(CcRemoteError):
    """Raised when hook stdin does not match the expected event schema."""


class ConfigError(CcRemoteError):
    """Raised when configuration is missing or invalid for the requested action."""
