"""Remote-mode state store.

Single source of truth for the global remote-mode flag and per-session
overrides. Every hook firing and CLI call is a separate short-lived process,
so state is never cached in memory between invocations: each call reads the
file, and each mutation is a read-modify-write transaction under an
exclusive file lock.

State file: <home>/state.json (lock: <home>/state.json.lock)

    {
      "enabled": false,
      "sessions": {
        "<session_id>": {"session_id": "...", "enabled": true, "updated_at": "..."}
      }
    }

Precedence: an override for the queried session wins over the global flag in
both directions; without one, the global flag applies.

Usage:
    from ccremote.lib.state_store import StateStore

    store = StateStore()
    store.set_global(True)
    store.set_session_override("abc123", False)
    store.get_effective_mode("abc123").enabled  # False
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Literal

from filelock import FileLock, Timeout
from pydantic import BaseModel, Field, ValidationError

from ccremote.lib.errors import StoreContention
from ccremote.lib.fileio import atomic_write_text
from ccremote.lib.paths import get_state_file, lock_path_for

logger = logging.getLogger(__name__)

# Bounded wait for the exclusive lock before giving up with StoreContention
DEFAULT_LOCK_TIMEOUT = 10.0
LOCK_POLL_INTERVAL = 0.05


def _now_iso() -> str:
    return datetime.now().astimezone().replace(microsecond=0).isoformat()


class SessionOverride(BaseModel):
    """Per-session exception to the global flag."""

    session_id: str
    enabled: bool
    updated_at: str = Field(default_factory=_now_iso)


class RemoteState(BaseModel):
    """Persisted document: global flag plus overrides keyed by session id."""

    enabled: bool = False
    sessions: dict[str, SessionOverride] = Field(default_factory=dict)


class EffectiveMode(BaseModel):
    """Resolved enablement for one session. Derived, never stored."""

    enabled: bool
    source: Literal["global", "session"]
    global_enabled: bool
    override: SessionOverride | None = None


def resolve_mode(state: RemoteState, session_id: str | None) -> EffectiveMode:
    """Apply override precedence to a loaded state. Pure function."""
    override = state.sessions.get(session_id) if session_id else None
    if override is not None:
        return EffectiveMode(
            enabled=override.enabled,
            source="session",
            global_enabled=state.enabled,
            override=override,
        )
    return EffectiveMode(
        enabled=state.enabled, source="global", global_enabled=state.enabled
    )


class StateStore:
    """File-backed store for RemoteState with locked read-modify-write."""

    def __init__(
        self,
        state_file: Path | None = None,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
    ):
        """Initialize the store.

        Args:
            state_file: Path to the JSON state file. Defaults to <home>/state.json.
            lock_timeout: Seconds to keep retrying the lock before StoreContention.
        """
        self.state_file = state_file or get_state_file()
        self.lock_file = lock_path_for(self.state_file)
        self.lock_timeout = lock_timeout

    # --- Reads ---

    def load(self) -> RemoteState:
        """Read the last committed state.

        Writes are atomic renames, so no lock is needed to read a consistent
        document. A missing file is the initial state; an unreadable one is
        logged and treated as the initial state.
        """
        if not self.state_file.exists():
            return RemoteState()

        try:
            data = json.loads(self.state_file.read_text(encoding="utf-8"))
            return RemoteState.model_validate(data)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"State file {self.state_file} unreadable, using initial state: {e}")
        except ValidationError as e:
            logger.warning(f"State file {self.state_file} invalid, using initial state: {e}")
        return RemoteState()

    def get_effective_mode(self, session_id: str | None) -> EffectiveMode:
        """Resolve enablement for a session. Missing overrides are not errors."""
        return resolve_mode(self.load(), session_id)

    # --- Mutations ---

    @contextmanager
    def transaction(self) -> Iterator[RemoteState]:
        """Exclusive read-modify-write transaction.

        Yields the freshly loaded state for in-place mutation and commits it
        on clean exit. Nothing is written if the body raises.

        Raises:
            StoreContention: If the lock is not acquired within lock_timeout.
        """
        self.state_file.parent.mkdir(parents=True, exist_ok=True)
        lock = FileLock(str(self.lock_file), timeout=self.lock_timeout)
        try:
            lock.acquire(poll_interval=LOCK_POLL_INTERVAL)
        except Timeout as e:
            raise StoreContention(str(self.lock_file), self.lock_timeout) from e

        try:
            state = self.load()
            yield state
            self._save(state)
        finally:
            lock.release()

    def _save(self, state: RemoteState) -> None:
        atomic_write_text(self.state_file, state.model_dump_json(indent=2))

    def set_global(self, enabled: bool) -> None:
        """Overwrite the global flag. Overrides are left untouched."""
        with self.transaction() as state:
            state.enabled = enabled
        logger.info(f"Global remote mode set to {enabled}")

    def set_session_override(self, session_id: str, enabled: bool) -> SessionOverride:
        """Create or update the override for one session.

        Raises:
            ValueError: If session_id is empty.
            StoreContention: If the lock is not acquired in time.
        """
        if not session_id or not session_id.strip():
            raise ValueError("session_id must not be empty")

        override = SessionOverride(session_id=session_id, enabled=enabled)
        with self.transaction() as state:
            state.sessions[session_id] = override
        logger.info(f"Session {session_id} override set to {enabled}")
        return override

    def clear_session_override(self, session_id: str) -> bool:
        """Remove a session's override so it follows the global flag again.

        Only the override is removed; the global flag is never changed here.

        Returns:
            True if an override existed.
        """
        if not session_id:
            return False

        with self.transaction() as state:
            existed = state.sessions.pop(session_id, None) is not None
        if existed:
            logger.info(f"Session {session_id} override cleared")
        return existed
