"""Tests for the remote-mode state store: precedence, idempotence, locking."""

from __future__ import annotations

import itertools
import json
import multiprocessing
from pathlib import Path

import pytest
from filelock import FileLock

from ccremote.lib.errors import StoreContention
from ccremote.lib.state_store import RemoteState, SessionOverride, StateStore, resolve_mode


def _set_override(state_file: str, session_id: str, enabled: bool) -> None:
    StateStore(Path(state_file), lock_timeout=60).set_session_override(session_id, enabled)


def _run_processes(targets: list[tuple]) -> None:
    processes = [multiprocessing.Process(target=_set_override, args=args) for args in targets]
    for p in processes:
        p.start()
    for p in processes:
        p.join(timeout=60)
    assert all(p.exitcode == 0 for p in processes)


class TestInitialState:
    def test_missing_file_is_disabled_without_overrides(self, store):
        state = store.load()
        assert state.enabled is False
        assert state.sessions == {}

    def test_missing_override_is_not_an_error(self, store):
        mode = store.get_effective_mode("never-seen")
        assert mode.enabled is False
        assert mode.source == "global"
        assert mode.override is None

    def test_empty_session_id_resolves_to_global(self, store):
        store.set_global(True)
        assert store.get_effective_mode("").enabled is True
        assert store.get_effective_mode(None).enabled is True

    def test_corrupt_file_falls_back_to_initial_state(self, store):
        store.state_file.parent.mkdir(parents=True, exist_ok=True)
        store.state_file.write_text("{not json")
        assert store.load() == RemoteState()

    def test_invalid_document_falls_back_to_initial_state(self, store):
        store.state_file.parent.mkdir(parents=True, exist_ok=True)
        store.state_file.write_text(json.dumps({"enabled": "maybe", "sessions": []}))
        assert store.load() == RemoteState()


class TestPrecedence:
    @pytest.mark.parametrize(
        "global_enabled,override,others",
        list(
            itertools.product(
                [False, True],
                [None, False, True],
                [{}, {"s2": True}, {"s2": False, "s3": True}],
            )
        ),
    )
    def test_override_wins_else_global(self, store, global_enabled, override, others):
        store.set_global(global_enabled)
        for sid, enabled in others.items():
            store.set_session_override(sid, enabled)
        if override is not None:
            store.set_session_override("s1", override)

        mode = store.get_effective_mode("s1")

        expected = global_enabled if override is None else override
        assert mode.enabled is expected
        assert mode.global_enabled is global_enabled
        assert mode.source == ("global" if override is None else "session")

    def test_resolve_mode_is_pure(self):
        state = RemoteState(
            enabled=False,
            sessions={"a": SessionOverride(session_id="a", enabled=True)},
        )
        assert resolve_mode(state, "a").enabled is True
        assert resolve_mode(state, "b").enabled is False
        assert state.enabled is False
        assert list(state.sessions) == ["a"]


class TestMutations:
    def test_set_global_is_idempotent(self, store):
        store.set_global(True)
        once = store.load()
        store.set_global(True)
        twice = store.load()
        assert once == twice
        assert twice.enabled is True

    def test_set_global_leaves_overrides(self, store):
        store.set_session_override("s1", False)
        store.set_global(True)
        state = store.load()
        assert state.sessions["s1"].enabled is False

    def test_set_session_override_upserts(self, store):
        first = store.set_session_override("s1", True)
        second = store.set_session_override("s1", False)
        state = store.load()
        assert list(state.sessions) == ["s1"]
        assert state.sessions["s1"].enabled is False
        assert second.updated_at >= first.updated_at

    def test_set_session_override_rejects_empty_id(self, store):
        with pytest.raises(ValueError):
            store.set_session_override("  ", True)

    def test_clear_reverts_to_global(self, store):
        store.set_global(True)
        store.set_session_override("s1", False)
        assert store.get_effective_mode("s1").enabled is False

        assert store.clear_session_override("s1") is True
        assert store.get_effective_mode("s1").enabled is True
        assert store.load().enabled is True

    def test_clear_missing_override_returns_false(self, store):
        assert store.clear_session_override("nobody") is False
        assert store.clear_session_override("") is False

    def test_transaction_body_error_writes_nothing(self, store):
        store.set_global(True)
        with pytest.raises(RuntimeError):
            with store.transaction() as state:
                state.enabled = False
                raise RuntimeError("boom")
        assert store.load().enabled is True

    def test_state_file_is_json(self, store):
        store.set_global(True)
        store.set_session_override("s1", False)
        data = json.loads(store.state_file.read_text())
        assert data["enabled"] is True
        assert data["sessions"]["s1"]["enabled"] is False
        assert data["sessions"]["s1"]["session_id"] == "s1"


class TestLocking:
    def test_held_lock_raises_store_contention(self, store):
        store.state_file.parent.mkdir(parents=True, exist_ok=True)

        with FileLock(str(store.lock_file)):
            with pytest.raises(StoreContention):
                StateStore(store.state_file, lock_timeout=0.2).set_global(True)

        # Released lock: the same write now succeeds
        StateStore(store.state_file, lock_timeout=0.2).set_global(True)
        assert store.load().enabled is True

    def test_concurrent_distinct_sessions_lose_no_updates(self, store):
        session_ids = [f"session-{i}" for i in range(8)]
        _run_processes([(str(store.state_file), sid, i % 2 == 0) for i, sid in enumerate(session_ids)])

        state = store.load()
        assert set(state.sessions) == set(session_ids)
        for i, sid in enumerate(session_ids):
            assert state.sessions[sid].enabled is (i % 2 == 0)

    def test_concurrent_same_session_matches_one_ordering(self, store):
        _run_processes(
            [
                (str(store.state_file), "shared", True),
                (str(store.state_file), "shared", False),
            ]
        )

        state = store.load()
        assert list(state.sessions) == ["shared"]
        assert state.sessions["shared"].enabled in (True, False)
        # The file is a complete, valid document
        RemoteState.model_validate_json(store.state_file.read_text())
