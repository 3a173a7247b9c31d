"""Shared fixtures: isolated home directory, store and a scripted fake channel."""

from __future__ import annotations

from pathlib import Path

import pytest

from ccremote.lib.config import NotificationConfig, RemoteConfig, WaitConfig
from ccremote.lib.state_store import StateStore


class FakeChannel:
    """In-memory NotificationChannel.

    replies: queue of reply strings, None (timeout) or exceptions to raise
    from receive(), consumed in order.
    """

    def __init__(self, replies=None, send_error: Exception | None = None):
        self.replies = list(replies or [])
        self.send_error = send_error
        self.sent: list[tuple[str, str]] = []
        self.receives: list[tuple[str, int]] = []

    def send(self, recipient: str, message: str) -> None:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append((recipient, message))

    def receive(self, recipient: str, timeout: int) -> str | None:
        self.receives.append((recipient, timeout))
        if not self.replies:
            return None
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture(autouse=True)
def ccremote_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point every test at its own home directory."""
    home = tmp_path / "ccremote-home"
    monkeypatch.setenv("CCREMOTE_HOME", str(home))
    monkeypatch.delenv("NTFY_TOKEN", raising=False)
    return home


@pytest.fixture
def store(ccremote_home: Path) -> StateStore:
    return StateStore(lock_timeout=2.0)


@pytest.fixture
def remote_config() -> RemoteConfig:
    return RemoteConfig(
        notification=NotificationConfig(recipient="team-topic"),
        wait=WaitConfig(timeout=5, poll_interval=0.01),
    )


@pytest.fixture
def fake_channel() -> FakeChannel:
    return FakeChannel()


