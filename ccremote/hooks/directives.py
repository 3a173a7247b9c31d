"""In-band prompt directives.

A prompt starting with one of these exact, case-sensitive prefixes is
consumed by the hook instead of being forwarded to the model:

    >remote-on      force remote mode on for this session
    >remote-off     force remote mode off for this session
    >remote-status  report the effective mode for this session

Directives only ever touch the session override; the global flag is
changed from the CLI (`ccremote on` / `ccremote off`).
"""

from __future__ import annotations

from enum import Enum

from ccremote.hooks.schemas import CanonicalHookOutput
from ccremote.lib.state_store import EffectiveMode, StateStore


class Directive(Enum):
    ENABLE_SESSION = ">remote-on"
    DISABLE_SESSION = ">remote-off"
    QUERY_STATUS = ">remote-status"


MISSING_SESSION_WARNING = "⚠️ No session id received; the session state was not changed."


def match_directive(prompt_text: str | None) -> Directive | None:
    """Return the directive the prompt starts with, if any."""
    if not prompt_text:
        return None
    for directive in Directive:
        if prompt_text.startswith(directive.value):
            return directive
    return None


def describe_mode(mode: EffectiveMode, session_id: str) -> str:
    status = "✅ enabled" if mode.enabled else "❌ disabled"
    if mode.source == "session":
        source = "session override"
    else:
        source = "global setting"
    lines = [
        "📊 Remote mode status",
        "",
        f"Status: {status} ({source})",
        f"Global: {'on' if mode.global_enabled else 'off'}",
        f"Session: {session_id or 'unknown'}",
    ]
    if mode.override is not None:
        lines.append(f"Override updated: {mode.override.updated_at}")
    if not mode.enabled:
        lines += ["", f"Use {Directive.ENABLE_SESSION.value} to enable remote mode for this session."]
    return "\n".join(lines)


def apply_directive(
    directive: Directive, session_id: str, store: StateStore
) -> CanonicalHookOutput:
    """Run a directive against the store and build the blocking output.

    Raises:
        StoreContention: If the state lock could not be acquired.
    """
    has_session = bool(session_id and session_id.strip())

    if directive is Directive.QUERY_STATUS:
        mode = store.get_effective_mode(session_id if has_session else None)
        reason = describe_mode(mode, session_id)
    elif not has_session:
        reason = f"Directive {directive.value} ignored.\n\n{MISSING_SESSION_WARNING}"
    elif directive is Directive.ENABLE_SESSION:
        store.set_session_override(session_id, True)
        reason = (
            "✅ Remote mode enabled for this session\n\n"
            f"Session: {session_id}\n\n"
            "When a task finishes you will be notified and asked for the next instruction."
        )
    else:
        store.set_session_override(session_id, False)
        reason = (
            "✅ Remote mode disabled for this session\n\n"
            f"Session: {session_id}\n\n"
            "The global setting is unchanged; other sessions are not affected."
        )

    return CanonicalHookOutput(
        verdict="block",
        reason=reason,
        metadata={"directive": directive.value},
    )
